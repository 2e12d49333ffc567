"""JSON encoding of timestamps and durations for log lines."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Union

from logenc.json.values import encode_float64

TIME_FORMAT_UNIX = ""
TIME_FORMAT_UNIX_MS = "UNIXMS"
TIME_FORMAT_UNIX_MICRO = "UNIXMICRO"
TIME_FORMAT_UNIX_NANO = "UNIXNANO"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_UNIX_DIVISORS = {
    TIME_FORMAT_UNIX_MS: 1_000_000,
    TIME_FORMAT_UNIX_MICRO: 1_000,
    TIME_FORMAT_UNIX_NANO: 1,
}

DurationLike = Union[timedelta, int]


def _unix_nanos(t: datetime) -> int:
    if t.tzinfo is None:
        t = t.astimezone()
    delta = t - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _nanos(d: DurationLike) -> int:
    if isinstance(d, timedelta):
        return (d.days * 86_400 + d.seconds) * 1_000_000_000 + d.microseconds * 1_000
    return int(d)


def encode_time(t: datetime, fmt: str) -> bytes:
    """Encode a timestamp.

    An empty ``fmt`` gives whole Unix seconds; ``UNIXMS``, ``UNIXMICRO`` and
    ``UNIXNANO`` give integers in those units; anything else is a
    ``strftime`` format whose result is written as a quoted string.
    Naive datetimes are taken as local time.
    """
    if fmt == TIME_FORMAT_UNIX:
        return str(_unix_nanos(t) // 1_000_000_000).encode("ascii")
    divisor = _UNIX_DIVISORS.get(fmt)
    if divisor is not None:
        return str(_trunc_div(_unix_nanos(t), divisor)).encode("ascii")
    return b'"' + t.strftime(fmt).encode("utf-8") + b'"'


def encode_times(vals: Iterable[datetime], fmt: str) -> bytes:
    """Encode timestamps as a JSON array; see :func:`encode_time`."""
    return b"[" + b",".join(encode_time(t, fmt) for t in vals) + b"]"


def encode_duration(
    d: DurationLike, unit: DurationLike, use_int: bool, precision: int = -1
) -> bytes:
    """Encode ``d`` measured in ``unit``.

    Durations may be timedeltas or integer nanoseconds. With ``use_int`` the
    quotient is truncated to an integer; otherwise it is written as a float
    with the given ``precision``. Raises ZeroDivisionError for a zero unit.
    """
    d_ns, unit_ns = _nanos(d), _nanos(unit)
    if unit_ns == 0:
        raise ZeroDivisionError("duration unit is zero")
    if use_int:
        return str(_trunc_div(d_ns, unit_ns)).encode("ascii")
    return encode_float64(d_ns / unit_ns, precision)


def encode_durations(
    vals: Iterable[DurationLike], unit: DurationLike, use_int: bool, precision: int = -1
) -> bytes:
    """Encode durations as a JSON array; see :func:`encode_duration`."""
    return b"[" + b",".join(encode_duration(d, unit, use_int, precision) for d in vals) + b"]"