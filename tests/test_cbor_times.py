import struct
from datetime import datetime, timedelta, timezone

import pytest

from logenc.cbor import times


@pytest.mark.parametrize(
    "text, binary",
    [
        ("2013-02-03T19:54:00-08:00", b"\xc1\x1a\x51\x0f\x30\xd8"),
        ("1950-02-03T19:54:00-08:00", b"\xc1\x3a\x25\x71\x93\xa7"),
    ],
)
def test_encode_time_integer(text, binary):
    assert times.encode_time(datetime.fromisoformat(text)) == binary


@pytest.mark.parametrize(
    "text, binary",
    [
        ("2006-01-02T15:04:05.999999-08:00", b"\xc1\xfb\x41\xd0\xee\x6c\x59\x7f\xff\xfc"),
        ("1956-01-02T15:04:05.999999-08:00", b"\xc1\xfb\xc1\xba\x53\x81\x1a\x00\x00\x11"),
    ],
)
def test_encode_time_float(text, binary):
    assert times.encode_time(datetime.fromisoformat(text)) == binary


def test_encode_time_epoch_uses_one_byte_argument():
    assert times.encode_time(datetime(1970, 1, 1, tzinfo=timezone.utc)) == b"\xc1\x18\x00"


def test_encode_time_fraction_is_close_to_timestamp():
    t = datetime(2021, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
    out = times.encode_time(t)
    assert out[:2] == b"\xc1\xfb"
    (decoded,) = struct.unpack(">d", out[2:])
    assert abs(decoded - t.timestamp()) < 1e-6


def test_encode_times():
    t1 = datetime.fromisoformat("2013-02-03T19:54:00-08:00")
    t2 = datetime.fromisoformat("1950-02-03T19:54:00-08:00")
    assert times.encode_times([t1, t2]) == b"\x82\xc1\x1a\x51\x0f\x30\xd8\xc1\x3a\x25\x71\x93\xa7"
    assert times.encode_times([]) == b"\x9f\xff"


def test_encode_duration_int():
    assert times.encode_duration(timedelta(seconds=90), timedelta(seconds=1), True) == b"\x18\x5a"
    assert times.encode_duration(1500, 1000, True) == b"\x01"
    assert times.encode_duration(-1500, 1000, True) == b"\x20"


def test_encode_duration_float():
    out = times.encode_duration(timedelta(milliseconds=1500), timedelta(seconds=1), False)
    assert out == b"\xfb\x3f\xf8\x00\x00\x00\x00\x00\x00"


def test_encode_duration_zero_unit():
    with pytest.raises(ZeroDivisionError):
        times.encode_duration(10, 0, True)


def test_encode_durations():
    second = timedelta(seconds=1)
    assert times.encode_durations([second, 2 * second], second, True) == b"\x82\x01\x02"
    assert times.encode_durations([], second, True) == b"\x9f\xff"