"""Tests for the settings codec."""

import struct
import pytest

from safeconfig._codec import (
    MAGIC,
    FORMAT_VERSION,
    MAX_DEPTH,
    TAG_INT,
    TAG_STR,
    TAG_TRUE,
    check_value,
    encode,
    decode,
)
from safeconfig.exceptions import (
    CorruptDataError,
    NestingTooDeepError,
    UnsupportedTypeError,
)


def _header(count: int) -> bytes:
    return struct.pack(">4sBI", MAGIC, FORMAT_VERSION, count)


def _key(name: str) -> bytes:
    raw = name.encode("utf-8")
    return bytes([TAG_STR]) + struct.pack(">I", len(raw)) + raw


class TestCodecConstants:
    def test_magic(self):
        assert MAGIC == b"SCFG"

    def test_version_is_one(self):
        assert FORMAT_VERSION == 1


class TestEncodeLayout:
    def test_empty_store(self):
        assert encode({}) == b"SCFG\x01\x00\x00\x00\x00"

    def test_single_bool(self):
        assert encode({"a": True}) == _header(1) + _key("a") + bytes([TAG_TRUE])

    def test_int_is_length_prefixed(self):
        encoded = encode({"n": 1})
        assert encoded == _header(1) + _key("n") + bytes([TAG_INT]) + b"\x00\x00\x00\x01\x01"

    def test_non_str_key_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            encode({1: "x"})

    def test_unsupported_value_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="object"):
            encode({"k": object()})


class TestRoundtrip:
    def test_all_supported_types(self):
        values = {
            "none": None,
            "yes": True,
            "no": False,
            "zero": 0,
            "negative": -128,
            "big": 2 ** 100,
            "big_negative": -(2 ** 100) - 1,
            "pi": 3.14159,
            "neg_float": -0.5,
            "text": "hello",
            "unicode": "snow ☃",
            "empty": "",
            "blob": b"\x00\x01\xff",
            "list": [1, "two", 3.0, None],
            "tuple": (1, (2, 3)),
            "dict": {"a": 1, 2: "b", (1, 2): [True, False], None: b"x"},
            "nested": {"servers": [{"host": "a", "ports": [80, 443]}]},
        }
        decoded = decode(encode(values))
        assert decoded == values
        assert isinstance(decoded["tuple"], tuple)
        assert isinstance(decoded["tuple"][1], tuple)
        assert isinstance(decoded["list"], list)
        assert decoded["yes"] is True
        assert type(decoded["zero"]) is int

    def test_bytearray_comes_back_as_bytes(self):
        decoded = decode(encode({"b": bytearray(b"abc")}))
        assert decoded["b"] == b"abc"
        assert type(decoded["b"]) is bytes

    def test_bool_and_int_stay_distinct(self):
        decoded = decode(encode({"flag": True, "one": 1}))
        assert type(decoded["flag"]) is bool
        assert type(decoded["one"]) is int


class TestDecodeRejects:
    @pytest.mark.parametrize("data,match", [
        (b"", "too short"),
        (b"not a settings file", "unknown format"),
        (b"SCFG\x02\x00\x00\x00\x00", "version"),
        (_header(1), "Truncated"),
        (_header(1) + _key("a") + b"\xff", "Unknown value tag"),
        (_header(1) + b"\x03\x00\x00\x00\x01\x01" + b"\x00", "key has type int"),
        (encode({}) + b"\x00", "trailing"),
        (_header(1) + b"\x05\x00\x00\x00\x01\xff" + b"\x00", "UTF-8"),
        (_header(1) + _key("a") + b"\x03\x00\x00\x00\x00", "Empty integer"),
        (_header(1) + _key("a") + b"\x06\xff\xff\xff\xff", "Truncated"),
        (_header(1) + _key("a") + b"\x09\x00\x00\x00\x01" + b"\x07\x00\x00\x00\x00" + b"\x00",
         "Unhashable"),
        (_header(1) + _key("a") + b"\x07\x00\x00\x00\x01" * (MAX_DEPTH + 2) + b"\x00",
         "nested deeper"),
    ])
    def test_corrupt_input(self, data, match):
        with pytest.raises(CorruptDataError, match=match):
            decode(data)

    def test_truncated_valid_encoding(self):
        encoded = encode({"name": "value", "n": 12345})
        for cut in (len(encoded) - 1, len(encoded) // 2, 10):
            with pytest.raises(CorruptDataError):
                decode(encoded[:cut])


class TestCheckValue:
    @pytest.mark.parametrize("value", [
        None, True, 0, 1.5, "s", b"b", bytearray(b"b"), [1], (1,), {"k": [1, {2: 3}]},
    ])
    def test_supported(self, value):
        check_value(value)  # should not raise

    @pytest.mark.parametrize("value", [object(), {1, 2}, [1, object()], {"k": 1j}])
    def test_unsupported(self, value):
        with pytest.raises(UnsupportedTypeError):
            check_value(value, "key")

    def test_self_referencing_list(self):
        loop = []
        loop.append(loop)
        with pytest.raises(NestingTooDeepError, match="nested deeper") as exc_info:
            check_value(loop, "loop")
        assert isinstance(exc_info.value, UnsupportedTypeError)
        assert exc_info.value.key == "loop"
        assert exc_info.value.limit == MAX_DEPTH

    def test_encode_too_deep(self):
        deep = None
        for _ in range(MAX_DEPTH + 2):
            deep = [deep]
        with pytest.raises(UnsupportedTypeError, match="nested deeper"):
            encode({"deep": deep})
