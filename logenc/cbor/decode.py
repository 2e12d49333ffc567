"""Conversion of CBOR encoded log lines back into JSON text."""

from __future__ import annotations

import base64
import ipaddress
import struct
from datetime import datetime, timedelta, timezone, tzinfo
from decimal import Decimal

from logenc.cbor.core import (
    ADDITIONAL_BOOL_FALSE,
    ADDITIONAL_BOOL_TRUE,
    ADDITIONAL_BREAK,
    ADDITIONAL_FLOAT16,
    ADDITIONAL_FLOAT32,
    ADDITIONAL_FLOAT64,
    ADDITIONAL_INFINITE_COUNT,
    ADDITIONAL_NULL,
    ADDITIONAL_TIMESTAMP,
    ADDITIONAL_UINT8,
    ADDITIONAL_UINT16,
    ADDITIONAL_UINT32,
    ADDITIONAL_UINT64,
    MAJOR_ARRAY,
    MAJOR_BYTE_STRING,
    MAJOR_MAP,
    MAJOR_NEGATIVE_INT,
    MAJOR_SIMPLE_AND_FLOAT,
    MAJOR_TAGS,
    MAJOR_UNSIGNED_INT,
    MAJOR_UTF8_STRING,
    MASK_OUT_ADDITIONAL_TYPE,
    MASK_OUT_MAJOR_TYPE,
    TAG_EMBEDDED_CBOR,
    TAG_EMBEDDED_JSON,
    TAG_HEX_STRING,
    TAG_NETWORK_ADDR,
    TAG_NETWORK_PREFIX,
)
from logenc.json.strings import encode_bytes as _json_string_from_bytes

FLOAT32_WIDTH = 4
FLOAT64_WIDTH = 8

_BREAK_BYTE = MAJOR_SIMPLE_AND_FLOAT | ADDITIONAL_BREAK
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ARGUMENT_WIDTHS = {
    ADDITIONAL_UINT8: 1,
    ADDITIONAL_UINT16: 2,
    ADDITIONAL_UINT32: 4,
    ADDITIONAL_UINT64: 8,
}


class CborDecodeError(ValueError):
    """Raised when CBOR input is truncated or uses an unsupported construct."""


def _fixed_float(value: float, width: int) -> bytes:
    """Shortest round-tripping decimal form of ``value``, without an exponent."""
    if width == FLOAT32_WIDTH:
        text = repr(value)
        for digits in range(1, 10):
            candidate = f"{value:.{digits}g}"
            try:
                back = struct.unpack(">f", struct.pack(">f", float(candidate)))[0]
            except OverflowError:
                continue
            if back == value:
                text = candidate
                break
    else:
        text = repr(value)
    return format(Decimal(text).normalize(), "f").encode("ascii")


def _format_time(secs: int, nanos: int, tz: tzinfo, with_fraction: bool) -> bytes:
    moment = (_EPOCH + timedelta(seconds=secs)).astimezone(tz)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if with_fraction:
        fraction = f"{nanos:09d}".rstrip("0")
        if fraction:
            text += "." + fraction
    offset = moment.utcoffset() or timedelta(0)
    total = int(offset.total_seconds())
    if total == 0:
        text += "Z"
    else:
        sign = "-" if total < 0 else "+"
        hours, minutes = divmod(abs(total) // 60, 60)
        text += f"{sign}{hours:02d}:{minutes:02d}"
    return b'"' + text.encode("ascii") + b'"'


def _address_text(octets: bytes) -> str:
    try:
        addr = ipaddress.ip_address(octets)
    except ValueError as err:
        raise CborDecodeError(f"Invalid IP address of length {len(octets)}") from err
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return str(addr.ipv4_mapped)
    return str(addr)


class CborDecoder:
    """Reads CBOR items from a byte string and renders each one as JSON.

    Timestamps are shown in ``tz``, UTC when it is not given.
    """

    def __init__(self, data: bytes, tz: tzinfo | None = None) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._tz = tz if tz is not None else timezone.utc

    # Low level reading.

    def _read_byte(self) -> int:
        if self._pos >= len(self._data):
            raise CborDecodeError("Tried to Read 1 Byte.. But hit end of file")
        value = self._data[self._pos]
        self._pos += 1
        return value

    def _read_n(self, count: int) -> bytes:
        if count > len(self._data) - self._pos:
            self._pos = len(self._data)
            raise CborDecodeError(f"Tried to Read {count} Bytes.. But hit end of file")
        chunk = self._data[self._pos:self._pos + count]
        self._pos += count
        return chunk

    def _peek(self) -> int:
        if self._pos >= len(self._data):
            raise CborDecodeError("EOF")
        return self._data[self._pos]

    def _head(self) -> tuple[int, int]:
        initial = self._read_byte()
        return initial & MASK_OUT_ADDITIONAL_TYPE, initial & MASK_OUT_MAJOR_TYPE

    def _argument(self, minor: int) -> int:
        if minor <= 23:
            return minor
        width = _ARGUMENT_WIDTHS.get(minor)
        if width is None:
            raise CborDecodeError(
                f"Invalid Additional Type: {minor} in decodeInteger (expected <28)"
            )
        return int.from_bytes(self._read_n(width), "big")

    def _at_break(self) -> bool:
        if self._peek() == _BREAK_BYTE:
            self._read_byte()
            return True
        return False

    def has_more(self) -> bool:
        """True while unread input remains."""
        return self._pos < len(self._data)

    # Scalars.

    def decode_integer(self) -> int:
        """Read a positive or negative integer."""
        major, minor = self._head()
        if major not in (MAJOR_UNSIGNED_INT, MAJOR_NEGATIVE_INT):
            raise CborDecodeError(
                f"Major type is: {major} in decodeInteger!! (expected 0 or 1)"
            )
        value = self._argument(minor)
        return value if major == MAJOR_UNSIGNED_INT else -1 - value

    def decode_float(self) -> tuple[float, int]:
        """Read a single or double precision float and return it with its byte width."""
        major, minor = self._head()
        if major != MAJOR_SIMPLE_AND_FLOAT:
            raise CborDecodeError(f"Incorrect Major type is: {major} in decodeFloat")
        if minor == ADDITIONAL_FLOAT16:
            raise CborDecodeError("float16 is not supported in decodeFloat")
        if minor == ADDITIONAL_FLOAT32:
            return struct.unpack(">f", self._read_n(4))[0], FLOAT32_WIDTH
        if minor == ADDITIONAL_FLOAT64:
            return struct.unpack(">d", self._read_n(8))[0], FLOAT64_WIDTH
        raise CborDecodeError(f"Invalid Additional Type: {minor} in decodeFloat")

    def decode_string(self, no_quotes: bool = False) -> bytes:
        """Read a byte string and return its raw content, quoted unless ``no_quotes``."""
        major, minor = self._head()
        if major != MAJOR_BYTE_STRING:
            raise CborDecodeError(f"Major type is: {major} in decodeString")
        content = self._read_n(self._argument(minor))
        return content if no_quotes else b'"' + content + b'"'

    def _decode_data_url(self, mime_type: str) -> bytes:
        major, minor = self._head()
        if major != MAJOR_BYTE_STRING:
            raise CborDecodeError(f"Major type is: {major} in decodeString")
        content = self._read_n(self._argument(minor))
        return b'"data:' + mime_type.encode("ascii") + b";base64," + base64.b64encode(content) + b'"'

    def decode_utf8_string(self) -> bytes:
        """Read a text string and return it as an escaped, quoted JSON string."""
        major, minor = self._head()
        if major != MAJOR_UTF8_STRING:
            raise CborDecodeError(f"Major type is: {major} in decodeUTF8String")
        return _json_string_from_bytes(self._read_n(self._argument(minor)))

    def decode_simple_float(self) -> bytes:
        """Read a boolean, null or float and return its JSON form."""
        major, minor = self._head()
        if major != MAJOR_SIMPLE_AND_FLOAT:
            raise CborDecodeError(f"Major type is: {major} in decodeSimpleFloat")
        if minor == ADDITIONAL_BOOL_TRUE:
            return b"true"
        if minor == ADDITIONAL_BOOL_FALSE:
            return b"false"
        if minor == ADDITIONAL_NULL:
            return b"null"
        if minor in (ADDITIONAL_FLOAT16, ADDITIONAL_FLOAT32, ADDITIONAL_FLOAT64):
            self._pos -= 1
            value, width = self.decode_float()
            if value != value:
                return b'"NaN"'
            if value == float("inf"):
                return b'"+Inf"'
            if value == float("-inf"):
                return b'"-Inf"'
            return _fixed_float(value, width)
        raise CborDecodeError(f"Invalid Additional Type: {minor} in decodeSimpleFloat")

    # Tags.

    def _decode_timestamp(self) -> bytes:
        major = self._peek() & MASK_OUT_ADDITIONAL_TYPE
        if major in (MAJOR_UNSIGNED_INT, MAJOR_NEGATIVE_INT):
            return _format_time(self.decode_integer(), 0, self._tz, with_fraction=False)
        if major == MAJOR_SIMPLE_AND_FLOAT:
            value, _ = self.decode_float()
            whole = int(value)
            nanos = int((value - whole) * 1e9)
            secs, rest = divmod(whole * 1_000_000_000 + nanos, 1_000_000_000)
            return _format_time(secs, rest, self._tz, with_fraction=True)
        raise CborDecodeError(f"TS format is neither int nor float: {major}")

    def _expect_embedded_bytes(self, context: str) -> None:
        major = self._peek() & MASK_OUT_ADDITIONAL_TYPE
        if major != MAJOR_BYTE_STRING:
            self._read_byte()
            raise CborDecodeError(f"Unsupported embedded Type: {major} in {context}")

    def decode_tag(self) -> bytes:
        """Read a tagged item (timestamp, embedded data, address, prefix or hex)."""
        major, minor = self._head()
        if major != MAJOR_TAGS:
            raise CborDecodeError(f"Major type is: {major} in decodeTagData")
        if minor == ADDITIONAL_TIMESTAMP:
            return self._decode_timestamp()
        if minor == ADDITIONAL_UINT8:
            tag = self._argument(minor)
            if tag == TAG_EMBEDDED_CBOR:
                self._expect_embedded_bytes("decodeEmbeddedCBOR")
                return self._decode_data_url("application/cbor")
            raise CborDecodeError(f"Unsupported Additional Tag Type: {tag} in decodeTagData")
        if minor == ADDITIONAL_UINT16:
            tag = self._argument(minor)
            if tag == TAG_EMBEDDED_JSON:
                self._expect_embedded_bytes("decodeEmbeddedJSON")
                return self.decode_string(no_quotes=True)
            if tag == TAG_NETWORK_ADDR:
                return self._decode_network_addr()
            if tag == TAG_NETWORK_PREFIX:
                return self._decode_network_prefix()
            if tag == TAG_HEX_STRING:
                return b'"' + self.decode_string(no_quotes=True).hex().encode("ascii") + b'"'
            raise CborDecodeError(f"Unsupported Additional Tag Type: {tag} in decodeTagData")
        raise CborDecodeError(f"Unsupported Additional Type: {minor} in decodeTagData")

    def _decode_network_addr(self) -> bytes:
        octets = self.decode_string(no_quotes=True)
        if len(octets) == 6:
            text = ":".join(f"{b:02x}" for b in octets)
        elif len(octets) in (4, 16):
            text = _address_text(octets)
        else:
            raise CborDecodeError(
                f"Unexpected Network Address length: {len(octets)} (expected 4,6,16)"
            )
        return b'"' + text.encode("ascii") + b'"'

    def _decode_network_prefix(self) -> bytes:
        if self._read_byte() != MAJOR_MAP | 1:
            raise CborDecodeError("IP Prefix is NOT of MAP of 1 elements as expected")
        octets = self.decode_string(no_quotes=True)
        length = self.decode_integer()
        return b'"' + f"{_address_text(octets)}/{length}".encode("ascii") + b'"'

    # Containers.

    def _emit_array(self, out: list[bytes]) -> None:
        out.append(b"[")
        major, minor = self._head()
        if major != MAJOR_ARRAY:
            raise CborDecodeError(f"Major type is: {major} in array2Json")
        if minor == ADDITIONAL_INFINITE_COUNT:
            while not self._at_break():
                self._emit(out)
                if self._at_break():
                    break
                out.append(b",")
        else:
            count = self._argument(minor)
            for index in range(count):
                self._emit(out)
                if index + 1 < count:
                    out.append(b",")
        out.append(b"]")

    def _emit_map(self, out: list[bytes]) -> None:
        major, minor = self._head()
        if major != MAJOR_MAP:
            raise CborDecodeError(f"Major type is: {major} in map2Json")
        indefinite = minor == ADDITIONAL_INFINITE_COUNT
        count = 0 if indefinite else self._argument(minor)
        out.append(b"{")
        index = 0
        while indefinite or index < count:
            if indefinite and self._at_break():
                break
            self._emit(out)
            if index % 2 == 0:
                out.append(b":")
            elif indefinite:
                if self._at_break():
                    break
                out.append(b",")
            elif index + 1 < count:
                out.append(b",")
            index += 1
        out.append(b"}")

    def _emit(self, out: list[bytes]) -> None:
        major = self._peek() & MASK_OUT_ADDITIONAL_TYPE
        if major in (MAJOR_UNSIGNED_INT, MAJOR_NEGATIVE_INT):
            out.append(str(self.decode_integer()).encode("ascii"))
        elif major == MAJOR_BYTE_STRING:
            out.append(self.decode_string(no_quotes=False))
        elif major == MAJOR_UTF8_STRING:
            out.append(self.decode_utf8_string())
        elif major == MAJOR_ARRAY:
            self._emit_array(out)
        elif major == MAJOR_MAP:
            self._emit_map(out)
        elif major == MAJOR_TAGS:
            out.append(self.decode_tag())
        else:
            out.append(self.decode_simple_float())

    def decode_array(self) -> bytes:
        """Read an array of definite or indefinite length as JSON."""
        out: list[bytes] = []
        self._emit_array(out)
        return b"".join(out)

    def decode_map(self) -> bytes:
        """Read a map as a JSON object; a definite count gives keys and values together."""
        out: list[bytes] = []
        self._emit_map(out)
        return b"".join(out)

    def decode_object(self) -> bytes:
        """Read the next item of any type as JSON."""
        out: list[bytes] = []
        self._emit(out)
        return b"".join(out)


def _convert(data: bytes, tz: tzinfo | None) -> tuple[bytes, CborDecodeError | None]:
    decoder = CborDecoder(data, tz)
    out: list[bytes] = []
    try:
        while decoder.has_more():
            decoder._emit(out)
            out.append(b"\n")
    except CborDecodeError as err:
        return b"".join(out), err
    return b"".join(out), None


def _is_binary(data: bytes) -> bool:
    return len(data) > 0 and data[0] > 0x7F


def cbor_to_json(data: bytes, tz: tzinfo | None = None) -> str:
    """Decode every CBOR item in ``data`` into JSON, one line per item.

    Raises CborDecodeError on malformed input.
    """
    output, error = _convert(bytes(data), tz)
    if error is not None:
        raise error
    return output.decode("utf-8", "replace")


def decode_if_binary_to_bytes(data: bytes) -> bytes:
    """Decode ``data`` to JSON lines if it is CBOR, otherwise return it unchanged.

    Decoding stops silently at the first error, keeping what was produced.
    """
    raw = bytes(data)
    if _is_binary(raw):
        return _convert(raw, None)[0]
    return raw


def decode_if_binary_to_string(data: bytes) -> str:
    """Like :func:`decode_if_binary_to_bytes`, returning text."""
    return decode_if_binary_to_bytes(data).decode("utf-8", "replace")


def decode_object_to_str(data: bytes) -> str:
    """Decode the first CBOR item of ``data`` to JSON, or return non-CBOR input as text."""
    raw = bytes(data)
    if _is_binary(raw):
        return CborDecoder(raw).decode_object().decode("utf-8", "replace")
    return raw.decode("utf-8", "replace")