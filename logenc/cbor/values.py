"""CBOR encoding of scalar values, arrays and network addresses for log lines."""

from __future__ import annotations

import ipaddress
import json
import math
import struct
from collections.abc import Iterable
from typing import Any, Union

from logenc.cbor.core import (
    ADDITIONAL_BOOL_FALSE,
    ADDITIONAL_BOOL_TRUE,
    ADDITIONAL_FLOAT32,
    ADDITIONAL_FLOAT64,
    ADDITIONAL_MAX,
    ADDITIONAL_UINT16,
    ARRAY_START,
    BREAK,
    FLOAT32_NAN,
    FLOAT32_NEG_INFINITY,
    FLOAT32_POS_INFINITY,
    FLOAT64_NAN,
    FLOAT64_NEG_INFINITY,
    FLOAT64_POS_INFINITY,
    MAJOR_ARRAY,
    MAJOR_MAP,
    MAJOR_NEGATIVE_INT,
    MAJOR_SIMPLE_AND_FLOAT,
    MAJOR_TAGS,
    MAJOR_UNSIGNED_INT,
    NULL,
    TAG_HEX_STRING,
    TAG_NETWORK_ADDR,
    TAG_NETWORK_PREFIX,
    encode_bytes,
    encode_embedded_json,
    encode_string,
    type_prefix,
)

IPLike = Union[str, bytes, bytearray, int, ipaddress.IPv4Address, ipaddress.IPv6Address]


def _array(items: list[bytes]) -> bytes:
    """Definite-length array of encoded items, or an empty indefinite one."""
    if not items:
        return ARRAY_START + BREAK
    count = len(items)
    if count <= ADDITIONAL_MAX:
        head = bytes([MAJOR_ARRAY | count])
    else:
        head = type_prefix(MAJOR_ARRAY, count)
    return head + b"".join(items)


def _tag16(tag: int) -> bytes:
    return bytes([MAJOR_TAGS | ADDITIONAL_UINT16]) + tag.to_bytes(2, "big")


def encode_nil() -> bytes:
    """Encode the null simple value."""
    return NULL


def encode_bool(val: bool) -> bytes:
    """Encode a boolean simple value."""
    minor = ADDITIONAL_BOOL_TRUE if val else ADDITIONAL_BOOL_FALSE
    return bytes([MAJOR_SIMPLE_AND_FLOAT | minor])


def encode_bools(vals: Iterable[bool]) -> bytes:
    """Encode booleans as an array."""
    return _array([encode_bool(v) for v in vals])


def encode_int(val: int) -> bytes:
    """Encode a signed integer; raises ValueError if it does not fit in 64 bits."""
    val = int(val)
    if val < 0:
        major, content = MAJOR_NEGATIVE_INT, -val - 1
    else:
        major, content = MAJOR_UNSIGNED_INT, val
    if content <= ADDITIONAL_MAX:
        return bytes([major | content])
    return type_prefix(major, content)


def encode_ints(vals: Iterable[int]) -> bytes:
    """Encode signed integers as an array."""
    return _array([encode_int(v) for v in vals])


def encode_uint(val: int) -> bytes:
    """Encode an unsigned integer; raises ValueError for negative values."""
    val = int(val)
    if val < 0:
        raise ValueError(f"unsigned integer expected, got {val}")
    return encode_int(val)


def encode_uints(vals: Iterable[int]) -> bytes:
    """Encode unsigned integers as an array."""
    return _array([encode_uint(v) for v in vals])


def encode_float32(val: float) -> bytes:
    """Encode ``val`` as a single precision float.

    Values too large for single precision become infinity.
    """
    val = float(val)
    if math.isnan(val):
        return FLOAT32_NAN
    if math.isinf(val):
        return FLOAT32_POS_INFINITY if val > 0 else FLOAT32_NEG_INFINITY
    try:
        packed = struct.pack(">f", val)
    except OverflowError:
        return FLOAT32_POS_INFINITY if val > 0 else FLOAT32_NEG_INFINITY
    return bytes([MAJOR_SIMPLE_AND_FLOAT | ADDITIONAL_FLOAT32]) + packed


def encode_floats32(vals: Iterable[float]) -> bytes:
    """Encode single precision floats as an array."""
    return _array([encode_float32(v) for v in vals])


def encode_float64(val: float) -> bytes:
    """Encode ``val`` as a double precision float."""
    val = float(val)
    if math.isnan(val):
        return FLOAT64_NAN
    if math.isinf(val):
        return FLOAT64_POS_INFINITY if val > 0 else FLOAT64_NEG_INFINITY
    return bytes([MAJOR_SIMPLE_AND_FLOAT | ADDITIONAL_FLOAT64]) + struct.pack(">d", val)


def encode_floats64(vals: Iterable[float]) -> bytes:
    """Encode double precision floats as an array."""
    return _array([encode_float64(v) for v in vals])


def encode_interface(obj: Any) -> bytes:
    """Marshal ``obj`` to JSON and embed it under the embedded-JSON tag.

    When it cannot be marshalled, a text string describing the error is
    produced instead.
    """
    try:
        text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as err:
        return encode_string(f"marshaling error: {err}")
    return encode_embedded_json(text.encode("utf-8"))


def _type_name(obj: Any) -> str:
    if obj is None:
        return "<nil>"
    cls = type(obj)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def encode_type(obj: Any) -> bytes:
    """Encode the name of the type of ``obj`` as a text string."""
    return encode_string(_type_name(obj))


def append_object_data(dst: bytes, obj: bytes) -> bytes:
    """Append encoded map content to ``dst``, dropping the map start byte of ``obj``."""
    return bytes(dst) + bytes(obj)[1:]


def _ip(ip: IPLike) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return ip
    if isinstance(ip, (bytes, bytearray, memoryview)):
        return ipaddress.ip_address(bytes(ip))
    return ipaddress.ip_address(ip)


def encode_ip_addr(ip: IPLike) -> bytes:
    """Encode an IPv4 or IPv6 address as a tagged byte string of 4 or 16 bytes."""
    return _tag16(TAG_NETWORK_ADDR) + encode_bytes(_ip(ip).packed)


def encode_ip_prefix(prefix: Any) -> bytes:
    """Encode an address and prefix length as a tagged one-pair map.

    Accepts networks, interfaces, ``"addr/len"`` strings and ``(addr, len)``
    tuples; host bits are kept as given.
    """
    if isinstance(prefix, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        address, length = prefix.ip, prefix.network.prefixlen
    elif isinstance(prefix, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        address, length = prefix.network_address, prefix.prefixlen
    elif isinstance(prefix, tuple):
        raw_address, raw_length = prefix
        address, length = _ip(raw_address), int(raw_length)
    else:
        iface = ipaddress.ip_interface(prefix)
        address, length = iface.ip, iface.network.prefixlen
    return (
        _tag16(TAG_NETWORK_PREFIX)
        + bytes([MAJOR_MAP | 1])
        + encode_bytes(address.packed)
        + encode_uint(length)
    )


def encode_mac_addr(mac: str | bytes | bytearray) -> bytes:
    """Encode a hardware address as a tagged byte string.

    A string may use ``:``, ``-`` or ``.`` as separators.
    """
    if isinstance(mac, str):
        raw = bytes.fromhex(mac.replace(":", "").replace("-", "").replace(".", ""))
    else:
        raw = bytes(mac)
    return _tag16(TAG_NETWORK_ADDR) + encode_bytes(raw)


def encode_hex(data: bytes) -> bytes:
    """Encode bytes under the hex-string tag, to be shown as hexadecimal."""
    return _tag16(TAG_HEX_STRING) + encode_bytes(data)