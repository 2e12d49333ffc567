# logenc

Byte-level encoders for structured log records, in two wire formats:

* **JSON**: compact, escape-correct JSON fragments, with NaN and infinities
  written as the strings `"NaN"`, `"+Inf"` and `"-Inf"` so that a log line is
  never lost to a value JSON cannot hold.
* **CBOR**: a binary encoding (RFC 7049) with tags for timestamps, IP
  addresses, prefixes, MAC addresses, hex strings and embedded JSON/CBOR.

A decoder turns CBOR log records back into JSON text, one line per record,
so binary logs can be read on a console or handed to tools that expect JSON.

The package has no runtime dependencies.

## What it does not do

These are the building blocks of a log record, not a logger. There is no
logger object, no log levels, no hooks and no output writers: the caller
assembles records from the encoded pieces and sends the bytes wherever it
likes.

## Installation

```
pip install logenc
```

## Layout

| Module                 | What it holds                                             |
|------------------------|-----------------------------------------------------------|
| `logenc.json.strings`  | keys, strings, byte strings and hex in JSON               |
| `logenc.json.values`   | null, booleans, integers, floats, objects, network values |
| `logenc.json.times`    | timestamps and durations in JSON                          |
| `logenc.cbor.core`     | type prefixes, keys, strings, embedded JSON/CBOR          |
| `logenc.cbor.values`   | null, booleans, integers, floats, network values, hex     |
| `logenc.cbor.times`    | tagged timestamps and durations in CBOR                   |
| `logenc.cbor.decode`   | `CborDecoder`, `CborDecodeError` and CBOR-to-JSON helpers |

## Building a JSON record

Each `encode_*` function returns the bytes of one value; `append_key`
returns the record built so far with a key (and the comma it needs) added.

```python
from logenc.json.strings import append_key, encode_string
from logenc.json.values import encode_int, encode_float64

record = b"{"
record = append_key(record, "level")
record += encode_string("info")
record = append_key(record, "count")
record += encode_int(3)
record = append_key(record, "ratio")
record += encode_float64(0.25, -1)
record += b"}"
# b'{"level":"info","count":3,"ratio":0.25}'
```

Floats take a precision. With `-1` they are written in the shortest form
that reads back to the same value, switching to exponent form below `1e-6`
and from `1e21` up; a non-negative precision fixes the number of digits
after the point. `encode_float32` rounds to single precision first.

Strings are escaped the way JSON requires: quotes and backslashes are
escaped, control characters become `\b`, `\f`, `\n`, `\r`, `\t` or `\u00XX`,
DEL becomes `\u007f`, and invalid UTF-8 in byte input (`encode_bytes`) is
replaced by `\ufffd`. `encode_hex` writes bytes as a lower-case hex string.

`encode_interface` marshals any JSON-serialisable object; when that fails,
a string `"marshaling error: ..."` is written instead. `encode_ip_addr`,
`encode_ip_prefix` and `encode_mac_addr` write network values in their usual
text forms.

`logenc.json.times.encode_time` writes a `datetime` as Unix seconds when the
format is `""`, as integers for `"UNIXMS"`, `"UNIXMICRO"` and `"UNIXNANO"`,
and otherwise as a quoted `strftime` result. Durations may be `timedelta`
values or integer nanoseconds and are measured in a given unit, either as a
truncated integer or as a float.

## Building a CBOR record

```python
from logenc.cbor.core import append_key, encode_string
from logenc.cbor.values import encode_int, encode_mac_addr

record = b""
record = append_key(record, "event")       # opens an indefinite-length map
record += encode_string("link-up")
record = append_key(record, "port")
record += encode_int(7)
record = append_key(record, "mac")
record += encode_mac_addr("02:00:00:00:00:01")
record += b"\xff"                          # break: end of the map
```

Integers must fit in 64 bits; `type_prefix` raises `ValueError` otherwise,
and `encode_uint` rejects negative values. Timestamps with whole seconds are
written as tagged integers, those with a fractional part as tagged 64-bit
floats.

## Reading CBOR logs as JSON

```python
from logenc.cbor.decode import decode_if_binary_to_string

print(decode_if_binary_to_string(data), end="")
```

Input whose first byte is below `0x80` is taken to be text and passed
through unchanged. `decode_if_binary_to_string` and
`decode_if_binary_to_bytes` decode every CBOR record in binary input,
writing a newline after each one, and stop quietly at the first error,
keeping what was decoded so far. `decode_object_to_str` decodes a single
record. `cbor_to_json` decodes a whole stream and raises `CborDecodeError`
on truncated or malformed input; its `tz` argument chooses the time zone in
which decoded timestamps are rendered (UTC by default).

For finer control, `CborDecoder` reads one item at a time:
`decode_object`, `decode_integer`, `decode_float`, `decode_string`,
`decode_utf8_string`, `decode_simple_float`, `decode_array`, `decode_map`
and `decode_tag`, with `has_more` telling whether input remains.

## Running the tests

```
pip install -e ".[test]"
pytest
```