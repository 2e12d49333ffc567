"""CBOR building blocks: type headers, object keys, text and byte strings."""

from __future__ import annotations

from collections.abc import Iterable

# Major types, already shifted into the top three bits of the initial byte.
MAJOR_UNSIGNED_INT = 0 << 5
MAJOR_NEGATIVE_INT = 1 << 5
MAJOR_BYTE_STRING = 2 << 5
MAJOR_UTF8_STRING = 3 << 5
MAJOR_ARRAY = 4 << 5
MAJOR_MAP = 5 << 5
MAJOR_TAGS = 6 << 5
MAJOR_SIMPLE_AND_FLOAT = 7 << 5

MASK_OUT_ADDITIONAL_TYPE = 7 << 5
MASK_OUT_MAJOR_TYPE = 31

ADDITIONAL_MAX = 23

# Simple values.
ADDITIONAL_BOOL_FALSE = 20
ADDITIONAL_BOOL_TRUE = 21
ADDITIONAL_NULL = 22

# Integer argument widths.
ADDITIONAL_UINT8 = 24
ADDITIONAL_UINT16 = 25
ADDITIONAL_UINT32 = 26
ADDITIONAL_UINT64 = 27

# Float widths.
ADDITIONAL_FLOAT16 = 25
ADDITIONAL_FLOAT32 = 26
ADDITIONAL_FLOAT64 = 27
ADDITIONAL_BREAK = 31

# Tags.
ADDITIONAL_TIMESTAMP = 1
TAG_EMBEDDED_CBOR = 63
TAG_NETWORK_ADDR = 260
TAG_NETWORK_PREFIX = 261
TAG_EMBEDDED_JSON = 262
TAG_HEX_STRING = 263

ADDITIONAL_INFINITE_COUNT = 31

FLOAT32_NAN = b"\xfa\x7f\xc0\x00\x00"
FLOAT32_POS_INFINITY = b"\xfa\x7f\x80\x00\x00"
FLOAT32_NEG_INFINITY = b"\xfa\xff\x80\x00\x00"
FLOAT64_NAN = b"\xfb\x7f\xf8\x00\x00\x00\x00\x00\x00"
FLOAT64_POS_INFINITY = b"\xfb\x7f\xf0\x00\x00\x00\x00\x00\x00"
FLOAT64_NEG_INFINITY = b"\xfb\xff\xf0\x00\x00\x00\x00\x00\x00"

BEGIN_MARKER = bytes([MAJOR_MAP | ADDITIONAL_INFINITE_COUNT])
ARRAY_START = bytes([MAJOR_ARRAY | ADDITIONAL_INFINITE_COUNT])
BREAK = bytes([MAJOR_SIMPLE_AND_FLOAT | ADDITIONAL_BREAK])
NULL = bytes([MAJOR_SIMPLE_AND_FLOAT | ADDITIONAL_NULL])

_WIDTHS = (
    (1 << 8, 1, ADDITIONAL_UINT8),
    (1 << 16, 2, ADDITIONAL_UINT16),
    (1 << 32, 4, ADDITIONAL_UINT32),
)


def type_prefix(major: int, number: int) -> bytes:
    """Header for ``major`` with ``number`` in a following 1, 2, 4 or 8 byte argument.

    The argument is never folded into the initial byte, even for small numbers.
    Raises ValueError for negative numbers or numbers that need more than 64 bits.
    """
    if number < 0 or number >= 1 << 64:
        raise ValueError(f"CBOR argument out of range: {number}")
    for limit, width, minor in _WIDTHS:
        if number < limit:
            break
    else:
        width, minor = 8, ADDITIONAL_UINT64
    return bytes([major | minor]) + number.to_bytes(width, "big")


def _head(major: int, length: int) -> bytes:
    if length <= ADDITIONAL_MAX:
        return bytes([major | length])
    return type_prefix(major, length)


def append_key(dst: bytes, key: str) -> bytes:
    """Append ``key`` as a map key, opening an indefinite map if ``dst`` is empty."""
    out = bytes(dst)
    if not out:
        out = BEGIN_MARKER
    return out + encode_string(key)


def encode_string(s: str) -> bytes:
    """Encode ``s`` as a UTF-8 text string.

    Lone surrogates produced by ``surrogateescape`` are written back as the
    raw bytes they stand for.
    """
    data = s.encode("utf-8", "surrogateescape")
    return _head(MAJOR_UTF8_STRING, len(data)) + data


def encode_strings(vals: Iterable[str]) -> bytes:
    """Encode strings as a definite-length array."""
    items = [encode_string(v) for v in vals]
    return _head(MAJOR_ARRAY, len(items)) + b"".join(items)


def encode_stringer(val: object) -> bytes:
    """Encode ``str(val)`` as a text string, or null for None."""
    if val is None:
        return NULL
    return encode_string(str(val))


def encode_stringers(vals: Iterable[object]) -> bytes:
    """Encode the string forms of ``vals`` as an indefinite-length array."""
    return ARRAY_START + b"".join(encode_stringer(v) for v in vals) + BREAK


def encode_bytes(data: bytes) -> bytes:
    """Encode raw bytes as a byte string."""
    raw = bytes(data)
    return _head(MAJOR_BYTE_STRING, len(raw)) + raw


def encode_embedded_json(data: bytes) -> bytes:
    """Wrap already encoded JSON in the embedded-JSON tag as a byte string."""
    tag = bytes([MAJOR_TAGS | ADDITIONAL_UINT16]) + TAG_EMBEDDED_JSON.to_bytes(2, "big")
    return tag + encode_bytes(data)


def encode_embedded_cbor(data: bytes) -> bytes:
    """Wrap already encoded CBOR in the embedded-CBOR tag as a byte string."""
    tag = bytes([MAJOR_TAGS | ADDITIONAL_UINT8, TAG_EMBEDDED_CBOR])
    return tag + encode_bytes(data)