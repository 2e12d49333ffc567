"""JSON encoding of scalar values, arrays and network addresses for log lines."""

from __future__ import annotations

import ipaddress
import json
import math
import struct
from collections.abc import Iterable
from typing import Any, Union

from logenc.json.strings import encode_string

IPLike = Union[str, bytes, bytearray, int, ipaddress.IPv4Address, ipaddress.IPv6Address]


def _to_float32(val: float) -> float:
    """Round ``val`` to the nearest single precision value."""
    try:
        return struct.unpack("<f", struct.pack("<f", val))[0]
    except OverflowError:
        return math.copysign(math.inf, val)


def _shortest_digits(val: float, bits: int) -> tuple[str, int]:
    """Shortest decimal digits that read back as ``val`` and the decimal exponent.

    ``val`` must be finite and non-negative; the result means ``d.ddd * 10**exp``.
    """
    text = f"{val:.16e}"
    for ndigits in range(1, 18):
        candidate = f"{val:.{ndigits - 1}e}"
        parsed = float(candidate)
        if bits == 32:
            parsed = _to_float32(parsed)
        if parsed == val:
            text = candidate
            break
    mantissa, exponent = text.split("e")
    digits = mantissa.replace(".", "").rstrip("0") or "0"
    return digits, int(exponent)


def _fixed(digits: str, exp: int) -> str:
    point = exp + 1
    if point <= 0:
        return "0." + "0" * -point + digits
    if point >= len(digits):
        return digits + "0" * (point - len(digits))
    return digits[:point] + "." + digits[point:]


def _scientific(digits: str, exp: int) -> str:
    mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    if -10 < exp < 0:
        return f"{mantissa}e-{-exp}"
    sign = "-" if exp < 0 else "+"
    return f"{mantissa}e{sign}{abs(exp):02d}"


def _format_float(val: float, bits: int, precision: int) -> bytes:
    # JSON has no NaN or Infinity; they are written as strings so the log line survives.
    if math.isnan(val):
        return b'"NaN"'
    if math.isinf(val):
        return b'"+Inf"' if val > 0 else b'"-Inf"'
    if precision >= 0:
        return f"{val:.{precision}f}".encode("ascii")

    sign = "-" if math.copysign(1.0, val) < 0 else ""
    magnitude = abs(val)
    digits, exp = _shortest_digits(magnitude, bits)
    scientific = False
    if precision == -1 and magnitude != 0:
        if bits == 32:
            low, high = _to_float32(1e-6), _to_float32(1e21)
        else:
            low, high = 1e-6, 1e21
        scientific = magnitude < low or magnitude >= high
    body = _scientific(digits, exp) if scientific else _fixed(digits, exp)
    return (sign + body).encode("ascii")


def _array(items: Iterable[bytes]) -> bytes:
    return b"[" + b",".join(items) + b"]"


def encode_nil() -> bytes:
    """Encode the JSON null value."""
    return b"null"


def encode_bool(val: bool) -> bytes:
    """Encode the truth value of ``val`` as a JSON boolean."""
    return json.dumps(bool(val)).encode("ascii")


def encode_bools(vals: Iterable[bool]) -> bytes:
    """Encode booleans as a JSON array."""
    return _array(encode_bool(v) for v in vals)


def encode_int(val: int) -> bytes:
    """Encode an integer of any size in base 10."""
    return str(int(val)).encode("ascii")


def encode_ints(vals: Iterable[int]) -> bytes:
    """Encode integers as a JSON array."""
    return _array(encode_int(v) for v in vals)


def encode_float32(val: float, precision: int = -1) -> bytes:
    """Encode ``val`` rounded to single precision.

    With ``precision`` -1 the shortest round-tripping form is used, switching
    to exponent notation below 1e-6 and from 1e21 up; with a non-negative
    ``precision`` that many decimals are written.
    """
    return _format_float(_to_float32(float(val)), 32, precision)


def encode_floats32(vals: Iterable[float], precision: int = -1) -> bytes:
    """Encode single precision floats as a JSON array."""
    return _array(encode_float32(v, precision) for v in vals)


def encode_float64(val: float, precision: int = -1) -> bytes:
    """Encode a double precision float; see :func:`encode_float32` for ``precision``."""
    return _format_float(float(val), 64, precision)


def encode_floats64(vals: Iterable[float], precision: int = -1) -> bytes:
    """Encode double precision floats as a JSON array."""
    return _array(encode_float64(v, precision) for v in vals)


def encode_interface(obj: Any) -> bytes:
    """Marshal an arbitrary object to compact JSON.

    When the object cannot be marshalled, a JSON string describing the
    error is produced instead.
    """
    try:
        text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as err:
        return encode_string(f"marshaling error: {err}")
    return text.encode("utf-8")


def encode_type(obj: Any) -> bytes:
    """Encode the name of the type of ``obj`` as a JSON string."""
    if obj is None:
        return encode_string("<nil>")
    cls = type(obj)
    if cls.__module__ == "builtins":
        return encode_string(cls.__qualname__)
    return encode_string(f"{cls.__module__}.{cls.__qualname__}")


def append_object_data(dst: bytes, obj: bytes) -> bytes:
    """Append already encoded object fields to ``dst``.

    A leading ``{`` in ``obj`` is dropped, and a comma separates the new
    fields from any already in ``dst``. Raises IndexError for empty ``obj``.
    """
    out = bytes(dst)
    data = bytes(obj)
    if data[0] == ord("{"):
        data = data[1:]
    if len(out) > 1:
        out += b","
    return out + data


def append_array_delim(dst: bytes) -> bytes:
    """Append an element separator unless ``dst`` is empty."""
    out = bytes(dst)
    return out + b"," if out else out


def _ip(ip: IPLike) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        addr = ip
    elif isinstance(ip, (bytearray, memoryview)):
        addr = ipaddress.ip_address(bytes(ip))
    else:
        addr = ipaddress.ip_address(ip)
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def encode_ip_addr(ip: IPLike) -> bytes:
    """Encode an IPv4 or IPv6 address in its textual form.

    IPv4-mapped IPv6 addresses are written as IPv4.
    """
    return encode_string(str(_ip(ip)))


def encode_ip_prefix(prefix: Any) -> bytes:
    """Encode an address with its prefix length, e.g. ``192.0.2.200/24``.

    Accepts networks, interfaces, ``"addr/len"`` strings and ``(addr, len)``
    tuples; host bits are kept as given.
    """
    if isinstance(prefix, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        iface = prefix
    elif isinstance(prefix, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        iface = ipaddress.ip_interface((prefix.network_address, prefix.prefixlen))
    elif isinstance(prefix, tuple):
        address, length = prefix
        iface = ipaddress.ip_interface((_ip(address), length))
    else:
        iface = ipaddress.ip_interface(prefix)
    return encode_string(f"{_ip(iface.ip)}/{iface.network.prefixlen}")


def encode_mac_addr(mac: str | bytes | bytearray) -> bytes:
    """Encode a hardware address as colon-separated lower-case hex.

    A string may use ``:``, ``-`` or ``.`` as separators.
    """
    if isinstance(mac, str):
        raw = bytes.fromhex(mac.replace(":", "").replace("-", "").replace(".", ""))
    else:
        raw = bytes(mac)
    return encode_string(":".join(f"{b:02x}" for b in raw))