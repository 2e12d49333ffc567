import ipaddress
import json
import math

import pytest

from logenc.json.values import (
    append_array_delim,
    append_object_data,
    encode_bool,
    encode_bools,
    encode_float32,
    encode_float64,
    encode_floats32,
    encode_floats64,
    encode_int,
    encode_interface,
    encode_ints,
    encode_ip_addr,
    encode_ip_prefix,
    encode_mac_addr,
    encode_nil,
    encode_type,
)

SMALLEST_FLOAT32 = 1.401298464324817e-45
MAX_FLOAT32 = 3.4028234663852886e38


@pytest.mark.parametrize(
    "val, want",
    [
        (127, b"127"),
        (32767, b"32767"),
        (2147483647, b"2147483647"),
        (9223372036854775807, b"9223372036854775807"),
        (255, b"255"),
        (65535, b"65535"),
        (4294967295, b"4294967295"),
        (18446744073709551615, b"18446744073709551615"),
    ],
)
def test_encode_int_limits(val, want):
    assert encode_int(val) == want


def test_encode_nil_and_bools():
    assert encode_nil() == b"null"
    assert encode_bool(True) == b"true"
    assert encode_bool(False) == b"false"
    assert encode_bools([True, False, True]) == b"[true,false,true]"
    assert encode_bools([]) == b"[]"


def test_encode_ints_array():
    assert encode_ints([-1, 0, 200, 20]) == b"[-1,0,200,20]"
    assert encode_ints([]) == b"[]"


@pytest.mark.parametrize(
    "val, want",
    [
        (-math.inf, b'"-Inf"'),
        (math.inf, b'"+Inf"'),
        (math.nan, b'"NaN"'),
        (0.0, b"0"),
        (-1.1, b"-1.1"),
        (1e20, b"100000000000000000000"),
        (1e21, b"1e+21"),
    ],
)
def test_append_type_floats(val, want):
    assert encode_float32(val, -1) == want
    assert encode_float64(val, -1) == want


def test_small_precision():
    assert encode_float32(-1.123, 1) == b"-1.1"
    assert encode_float64(-1.123, 1) == b"-1.1"


@pytest.mark.parametrize(
    "val, want",
    [
        (1234.0, b"1234"),
        (-5678.0, b"-5678"),
        (12.3456, b"12.3456"),
        (-78.9012, b"-78.9012"),
        (123456789.0, b"123456789"),
        (-987654321.0, b"-987654321"),
        (0.0, b"0"),
        (5e-324, b"5e-324"),
        (1.7976931348623157e308, b"1.7976931348623157e+308"),
        (-5e-324, b"-5e-324"),
        (-1.7976931348623157e308, b"-1.7976931348623157e+308"),
        (math.nan, b'"NaN"'),
        (math.inf, b'"+Inf"'),
        (-math.inf, b'"-Inf"'),
        (1e-9, b"1e-9"),
        (-2.236734e-9, b"-2.236734e-9"),
    ],
)
def test_encode_float64(val, want):
    assert encode_float64(val, -1) == want


@pytest.mark.parametrize(
    "val, want",
    [
        (1234.0, b"1234"),
        (-5678.0, b"-5678"),
        (12.3456, b"12.3456"),
        (-78.9012, b"-78.9012"),
        (123456789.0, b"123456790"),
        (-987654321.0, b"-987654340"),
        (0.0, b"0"),
        (SMALLEST_FLOAT32, b"1e-45"),
        (MAX_FLOAT32, b"3.4028235e+38"),
        (-SMALLEST_FLOAT32, b"-1e-45"),
        (-MAX_FLOAT32, b"-3.4028235e+38"),
        (math.nan, b'"NaN"'),
        (math.inf, b'"+Inf"'),
        (-math.inf, b'"-Inf"'),
        (1e-9, b"1e-9"),
        (-2.236734e-9, b"-2.236734e-9"),
    ],
)
def test_encode_float32(val, want):
    assert encode_float32(val, -1) == want


def test_float32_overflow_becomes_infinity():
    assert encode_float32(1e40, -1) == b'"+Inf"'
    assert encode_float32(-1e40, -1) == b'"-Inf"'


@pytest.mark.parametrize(
    "val", [0.1, 1 / 3, 2.5e-7, 123456.789, 1e300, -7.25, 1e-6, 9.99e20, 1e-7]
)
def test_float64_round_trips_through_json(val):
    encoded = encode_float64(val, -1)
    assert json.loads(encoded) == val


def test_float_arrays():
    assert encode_floats64([1234.0, math.nan], -1) == b'[1234,"NaN"]'
    assert encode_floats32([-1.1, 1e21], -1) == b"[-1.1,1e+21]"
    assert encode_floats64([], -1) == b"[]"
    assert encode_floats32([], -1) == b"[]"


def test_encode_interface():
    assert encode_interface({"foo": [1, "bar"]}) == b'{"foo":[1,"bar"]}'
    assert encode_interface(None) == b"null"


def test_encode_interface_error_becomes_string():
    result = encode_interface(object())
    assert result.startswith(b'"marshaling error: ')
    assert result.endswith(b'"')


@pytest.mark.parametrize(
    "obj, want",
    [
        (42, b'"int"'),
        (ipaddress.IPv4Address("192.0.2.1"), b'"ipaddress.IPv4Address"'),
        (2.50, b'"float"'),
        (None, b'"<nil>"'),
        (True, b'"bool"'),
    ],
)
def test_encode_type(obj, want):
    assert encode_type(obj) == want


@pytest.mark.parametrize(
    "dst, obj, want",
    [
        (b"", b'{"foo":"bar"}', b'"foo":"bar"}'),
        (b'{"qux":"quz"', b'{"foo":"bar"}', b'{"qux":"quz","foo":"bar"}'),
        (b"", b'"foo":"bar"', b'"foo":"bar"'),
        (b'{"qux":"quz"', b'"foo":"bar"', b'{"qux":"quz","foo":"bar"'),
    ],
)
def test_append_object_data(dst, obj, want):
    assert append_object_data(dst, obj) == want


def test_append_object_data_empty_object_raises():
    with pytest.raises(IndexError):
        append_object_data(b"{", b"")


def test_append_array_delim():
    assert append_array_delim(b"") == b""
    assert append_array_delim(b"[1") == b"[1,"


@pytest.mark.parametrize(
    "ip, want",
    [
        (bytes([0, 0, 0, 0]), b'"0.0.0.0"'),
        (bytes([192, 0, 2, 200]), b'"192.0.2.200"'),
        (ipaddress.IPv6Address("::"), b'"::"'),
        ("ff02::1", b'"ff02::1"'),
        (
            bytes(
                [0x20, 0x01, 0x0D, 0xB8, 0x85, 0xA3, 0, 0, 0, 0, 0x8A, 0x2E, 0x03, 0x70, 0x73, 0x34]
            ),
            b'"2001:db8:85a3::8a2e:370:7334"',
        ),
    ],
)
def test_encode_ip_addr(ip, want):
    assert encode_ip_addr(ip) == want


def test_ipv4_mapped_address_is_written_as_ipv4():
    assert encode_ip_addr("::ffff:192.0.2.200") == b'"192.0.2.200"'


@pytest.mark.parametrize(
    "prefix, want",
    [
        (ipaddress.IPv4Network("0.0.0.0/0"), b'"0.0.0.0/0"'),
        (ipaddress.ip_interface("192.0.2.200/24"), b'"192.0.2.200/24"'),
        ((bytes([192, 0, 2, 200]), 24), b'"192.0.2.200/24"'),
        (ipaddress.IPv6Network("::/0"), b'"::/0"'),
        ("ff02::1/128", b'"ff02::1/128"'),
        (
            (
                bytes(
                    [0x20, 0x01, 0x0D, 0xB8, 0x85, 0xA3, 0, 0, 0, 0, 0x8A, 0x2E, 0x03, 0x70, 0x73, 0x34]
                ),
                64,
            ),
            b'"2001:db8:85a3::8a2e:370:7334/64"',
        ),
    ],
)
def test_encode_ip_prefix(prefix, want):
    assert encode_ip_prefix(prefix) == want


def test_invalid_ip_raises():
    with pytest.raises(ValueError):
        encode_ip_addr("not-an-address")


@pytest.mark.parametrize(
    "mac, want",
    [
        ("01:23:45:67:89:ab", b'"01:23:45:67:89:ab"'),
        ("cd:ef:11:22:33:44", b'"cd:ef:11:22:33:44"'),
        (bytes([0x12, 0x34, 0x56, 0x78, 0x90, 0xAB]), b'"12:34:56:78:90:ab"'),
        (bytes([0x12, 0x34, 0x00, 0x00, 0x90, 0xAB]), b'"12:34:00:00:90:ab"'),
    ],
)
def test_encode_mac_addr(mac, want):
    assert encode_mac_addr(mac) == want