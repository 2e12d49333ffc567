"""CBOR encoding of timestamps and durations for log lines."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Union

from logenc.cbor.core import (
    ADDITIONAL_MAX,
    ADDITIONAL_TIMESTAMP,
    ARRAY_START,
    BREAK,
    MAJOR_ARRAY,
    MAJOR_NEGATIVE_INT,
    MAJOR_TAGS,
    MAJOR_UNSIGNED_INT,
    type_prefix,
)
from logenc.cbor.values import encode_float64, encode_int

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIMESTAMP_TAG = bytes([MAJOR_TAGS | ADDITIONAL_TIMESTAMP])

DurationLike = Union[timedelta, int]


def _array(items: list[bytes]) -> bytes:
    if not items:
        return ARRAY_START + BREAK
    count = len(items)
    if count <= ADDITIONAL_MAX:
        head = bytes([MAJOR_ARRAY | count])
    else:
        head = type_prefix(MAJOR_ARRAY, count)
    return head + b"".join(items)


def _unix(t: datetime) -> tuple[int, int]:
    """Whole seconds since the epoch (floored) and the nanoseconds past them."""
    if t.tzinfo is None:
        t = t.astimezone()
    delta = t - _EPOCH
    return delta.days * 86_400 + delta.seconds, delta.microseconds * 1_000


def _nanos(d: DurationLike) -> int:
    if isinstance(d, timedelta):
        return (d.days * 86_400 + d.seconds) * 1_000_000_000 + d.microseconds * 1_000
    return int(d)


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def encode_time(t: datetime) -> bytes:
    """Encode a timestamp under the epoch-time tag.

    Whole seconds are written as an integer; otherwise seconds with their
    fraction are written as a double. Naive datetimes are taken as local time.
    """
    secs, nanos = _unix(t)
    if nanos == 0:
        if secs < 0:
            return _TIMESTAMP_TAG + type_prefix(MAJOR_NEGATIVE_INT, -secs - 1)
        return _TIMESTAMP_TAG + type_prefix(MAJOR_UNSIGNED_INT, secs)
    return _TIMESTAMP_TAG + encode_float64(float(secs) * 1.0 + float(nanos) * 1e-9)


def encode_times(vals: Iterable[datetime]) -> bytes:
    """Encode timestamps as an array; an empty one is written indefinite."""
    return _array([encode_time(t) for t in vals])


def encode_duration(d: DurationLike, unit: DurationLike, use_int: bool) -> bytes:
    """Encode ``d`` measured in ``unit``.

    Durations may be timedeltas or integer nanoseconds. With ``use_int`` the
    quotient is truncated to an integer, otherwise it is written as a double.
    Raises ZeroDivisionError for a zero unit.
    """
    d_ns, unit_ns = _nanos(d), _nanos(unit)
    if unit_ns == 0:
        raise ZeroDivisionError("duration unit is zero")
    if use_int:
        return encode_int(_trunc_div(d_ns, unit_ns))
    return encode_float64(d_ns / unit_ns)


def encode_durations(vals: Iterable[DurationLike], unit: DurationLike, use_int: bool) -> bytes:
    """Encode durations as an array; an empty one is written indefinite."""
    return _array([encode_duration(d, unit, use_int) for d in vals])