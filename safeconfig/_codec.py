"""Binary codec for the settings store.

The whole store is written as one blob:
  [4 bytes magic "SCFG"][1 byte format version][4 bytes record count]
  then, per record, a str-tagged key followed by a tagged value.

Every value is a 1-byte tag followed by its payload.  Variable-size
payloads carry a 4-byte big-endian length (or element count) prefix:

  NONE  FALSE  TRUE            no payload
  INT                          [len][two's complement, big-endian]
  FLOAT                        [8 bytes IEEE-754 double, big-endian]
  STR                          [len][UTF-8 bytes]
  BYTES                        [len][raw bytes]
  LIST  TUPLE                  [count] value*
  DICT                         [count] (key value)*

Decoding only ever builds these types.  Anything else in the stream
(unknown tag, bad lengths, truncation, trailing bytes) is rejected with
CorruptDataError.
"""

import struct
from collections.abc import Mapping
from typing import Any

from .exceptions import CorruptDataError, NestingTooDeepError, UnsupportedTypeError

MAGIC = b"SCFG"
FORMAT_VERSION = 1
MAX_DEPTH = 64

_HEADER = struct.Struct(">4sBI")
_LENGTH = struct.Struct(">I")
_DOUBLE = struct.Struct(">d")

# Value tags
TAG_NONE = 0x00
TAG_FALSE = 0x01
TAG_TRUE = 0x02
TAG_INT = 0x03
TAG_FLOAT = 0x04
TAG_STR = 0x05
TAG_BYTES = 0x06
TAG_LIST = 0x07
TAG_TUPLE = 0x08
TAG_DICT = 0x09


# -- Validation --

def check_value(value: Any, key: str = "", _depth: int = 0) -> None:
    """Raise UnsupportedTypeError unless *value* can be encoded."""
    if _depth > MAX_DEPTH:
        raise NestingTooDeepError(type(value), key, MAX_DEPTH)
    if value is None or isinstance(value, (bool, int, float, str, bytes, bytearray)):
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            check_value(item, key, _depth + 1)
        return
    if isinstance(value, dict):
        for k, v in value.items():
            check_value(k, key, _depth + 1)
            check_value(v, key, _depth + 1)
        return
    raise UnsupportedTypeError(type(value), key)


# -- Encoding --

def encode(values: Mapping[str, Any]) -> bytes:
    """Encode a whole settings mapping into a single blob."""
    out = bytearray(_HEADER.pack(MAGIC, FORMAT_VERSION, len(values)))
    for key, value in values.items():
        if not isinstance(key, str):
            raise UnsupportedTypeError(type(key))
        _write_sized(out, TAG_STR, key.encode("utf-8"))
        _write_value(out, value, key, 0)
    return bytes(out)


def _write_sized(out: bytearray, tag: int, payload: bytes) -> None:
    out.append(tag)
    out += _LENGTH.pack(len(payload))
    out += payload


def _write_value(out: bytearray, value: Any, key: str, depth: int) -> None:
    if depth > MAX_DEPTH:
        raise NestingTooDeepError(type(value), key, MAX_DEPTH)

    # bool before int: bool is an int subclass
    if value is None:
        out.append(TAG_NONE)
    elif value is True:
        out.append(TAG_TRUE)
    elif value is False:
        out.append(TAG_FALSE)
    elif isinstance(value, int):
        size = (value.bit_length() + 8) // 8
        _write_sized(out, TAG_INT, int(value).to_bytes(size, "big", signed=True))
    elif isinstance(value, float):
        out.append(TAG_FLOAT)
        out += _DOUBLE.pack(value)
    elif isinstance(value, str):
        _write_sized(out, TAG_STR, value.encode("utf-8"))
    elif isinstance(value, (bytes, bytearray)):
        _write_sized(out, TAG_BYTES, bytes(value))
    elif isinstance(value, (list, tuple)):
        out.append(TAG_TUPLE if isinstance(value, tuple) else TAG_LIST)
        out += _LENGTH.pack(len(value))
        for item in value:
            _write_value(out, item, key, depth + 1)
    elif isinstance(value, dict):
        out.append(TAG_DICT)
        out += _LENGTH.pack(len(value))
        for k, v in value.items():
            _write_value(out, k, key, depth + 1)
            _write_value(out, v, key, depth + 1)
    else:
        raise UnsupportedTypeError(type(value), key)


# -- Decoding --

class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, n: int) -> bytes:
        if n > self.remaining:
            raise CorruptDataError(
                f"Truncated settings data: need {n} bytes at offset {self._pos}, "
                f"have {self.remaining}"
            )
        chunk = self._data[self._pos:self._pos + n].tobytes()
        self._pos += n
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def length(self) -> int:
        return _LENGTH.unpack(self.take(_LENGTH.size))[0]


def decode(data: bytes) -> dict[str, Any]:
    """Decode a blob produced by encode() back into a settings dict."""
    if len(data) < _HEADER.size:
        raise CorruptDataError("Settings data is too short to hold a header")
    magic, version, count = _HEADER.unpack_from(data)
    if magic != MAGIC:
        raise CorruptDataError("Settings data has an unknown format")
    if version != FORMAT_VERSION:
        raise CorruptDataError(f"Unsupported settings format version: {version}")

    reader = _Reader(data)
    reader.take(_HEADER.size)
    values: dict[str, Any] = {}
    for _ in range(count):
        key = _read_value(reader, 0)
        if not isinstance(key, str):
            raise CorruptDataError(f"Setting key has type {type(key).__name__}, expected str")
        values[key] = _read_value(reader, 0)

    if reader.remaining:
        raise CorruptDataError(f"{reader.remaining} unexpected trailing bytes in settings data")
    return values


def _read_value(reader: _Reader, depth: int) -> Any:
    if depth > MAX_DEPTH:
        raise CorruptDataError(f"Settings data nested deeper than {MAX_DEPTH} levels")

    tag = reader.byte()
    if tag == TAG_NONE:
        return None
    if tag == TAG_FALSE:
        return False
    if tag == TAG_TRUE:
        return True
    if tag == TAG_INT:
        payload = reader.take(reader.length())
        if not payload:
            raise CorruptDataError("Empty integer payload")
        return int.from_bytes(payload, "big", signed=True)
    if tag == TAG_FLOAT:
        return _DOUBLE.unpack(reader.take(_DOUBLE.size))[0]
    if tag == TAG_STR:
        payload = reader.take(reader.length())
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptDataError(f"Invalid UTF-8 in string value: {e}") from e
    if tag == TAG_BYTES:
        return reader.take(reader.length())
    if tag in (TAG_LIST, TAG_TUPLE):
        items = [_read_value(reader, depth + 1) for _ in range(reader.length())]
        return tuple(items) if tag == TAG_TUPLE else items
    if tag == TAG_DICT:
        result = {}
        for _ in range(reader.length()):
            k = _read_value(reader, depth + 1)
            v = _read_value(reader, depth + 1)
            try:
                result[k] = v
            except TypeError as e:
                raise CorruptDataError(f"Unhashable dict key in settings data: {e}") from e
        return result
    raise CorruptDataError(f"Unknown value tag 0x{tag:02x}")
