"""JSON encoding of strings, byte strings and object keys for log lines."""

from __future__ import annotations

from collections.abc import Iterable

_REPLACEMENT = "\\ufffd"

_SHORT_ESCAPES = {
    ord('"'): '\\"',
    ord("\\"): "\\\\",
    ord("\b"): "\\b",
    ord("\f"): "\\f",
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
}


def _build_escape_table() -> dict[int, str]:
    table: dict[int, str] = {code: f"\\u{code:04x}" for code in range(0x20)}
    table[0x7F] = "\\u007f"
    table.update(_SHORT_ESCAPES)
    # Surrogates stand for bytes that were not valid UTF-8.
    table.update(dict.fromkeys(range(0xD800, 0xE000), _REPLACEMENT))
    return table


_ESCAPE_TABLE = _build_escape_table()


def _escape(text: str) -> bytes:
    return text.translate(_ESCAPE_TABLE).encode("utf-8")


def append_key(dst: bytes, key: str) -> bytes:
    """Append ``key`` as an object key, adding a comma unless ``dst`` just opened an object.

    Raises IndexError when ``dst`` is empty.
    """
    out = bytes(dst)
    if out[-1] != ord("{"):
        out += b","
    return out + encode_string(key) + b":"


def encode_string(s: str) -> bytes:
    """Encode ``s`` as a quoted JSON string.

    Control characters, quotes, backslashes and DEL are escaped; lone
    surrogates (undecodable bytes) become ``\\ufffd``.
    """
    return b'"' + _escape(s) + b'"'


def encode_strings(vals: Iterable[str]) -> bytes:
    """Encode a sequence of strings as a JSON array."""
    return b"[" + b",".join(encode_string(v) for v in vals) + b"]"


def encode_stringer(val: object) -> bytes:
    """Encode ``str(val)`` as a JSON string, or ``null`` for None."""
    if val is None:
        return b"null"
    return encode_string(str(val))


def encode_stringers(vals: Iterable[object]) -> bytes:
    """Encode the string forms of ``vals`` as a JSON array."""
    return b"[" + b",".join(encode_stringer(v) for v in vals) + b"]"


def encode_bytes(data: bytes) -> bytes:
    """Encode raw bytes as a quoted JSON string.

    Valid UTF-8 passes through; each byte that is not part of a valid
    sequence is replaced by ``\\ufffd``.
    """
    return encode_string(bytes(data).decode("utf-8", "surrogateescape"))


def encode_hex(data: bytes) -> bytes:
    """Encode bytes as a quoted lower-case hexadecimal string."""
    return b'"' + bytes(data).hex().encode("ascii") + b'"'