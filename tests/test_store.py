"""Tests for the in-memory settings store."""

import pytest

from safeconfig._store import Store, zero_value
from safeconfig.exceptions import TypeMismatchError, UnsupportedTypeError


class TestZeroValues:
    @pytest.mark.parametrize("type_,expected", [
        (int, 0),
        (float, 0.0),
        (str, ""),
        (bytes, b""),
        (bool, False),
        (list, []),
        (tuple, ()),
        (dict, {}),
        (object, None),
        ((int, float), 0),
    ])
    def test_missing_key_returns_zero_value(self, type_, expected):
        store = Store()
        assert store.get("missing", type_) == expected

    def test_missing_key_without_type(self):
        assert Store().get("missing") is None

    def test_zero_value_containers_are_fresh(self):
        first = zero_value(list)
        first.append(1)
        assert zero_value(list) == []

    def test_explicit_default(self):
        store = Store()
        assert store.get("missing", int, default=7) == 7
        assert store.get("missing", default="x") == "x"


class TestSetGet:
    def test_set_then_get(self):
        store = Store()
        store.set("k", 42)
        assert store.get("k", int) == 42
        assert store.get("k") == 42

    def test_last_set_wins(self):
        store = Store()
        store.set("k", "first")
        store.set("k", "second")
        assert store.get("k", str) == "second"
        assert len(store) == 1

    def test_type_mismatch(self):
        store = Store()
        store.set("k", "text")
        with pytest.raises(TypeMismatchError, match="holds str, not int") as exc_info:
            store.get("k", int)
        assert exc_info.value.key == "k"
        assert exc_info.value.actual is str

    def test_mismatch_is_a_type_error(self):
        store = Store()
        store.set("k", "text")
        with pytest.raises(TypeError):
            store.get("k", bytes)

    def test_bool_is_not_int(self):
        store = Store()
        store.set("flag", True)
        with pytest.raises(TypeMismatchError):
            store.get("flag", int)
        assert store.get("flag", bool) is True

    def test_int_is_not_bool(self):
        store = Store()
        store.set("n", 1)
        with pytest.raises(TypeMismatchError):
            store.get("n", bool)

    def test_int_is_not_float(self):
        store = Store()
        store.set("n", 1)
        with pytest.raises(TypeMismatchError):
            store.get("n", float)

    def test_tuple_of_types(self):
        store = Store()
        store.set("n", 1)
        assert store.get("n", (int, float)) == 1
        with pytest.raises(TypeMismatchError, match="str or bytes"):
            store.get("n", (str, bytes))

    def test_present_zero_value_is_not_missing(self):
        store = Store()
        store.set("n", 0)
        assert store.has("n")
        assert not store.has("other")
        assert store.get("n", int, default=5) == 0

    def test_bytearray_stored_as_bytes(self):
        store = Store()
        store.set("b", bytearray(b"abc"))
        assert store.get("b", bytes) == b"abc"

    def test_unsupported_value(self):
        store = Store()
        with pytest.raises(UnsupportedTypeError, match="key: k"):
            store.set("k", object())
        assert "k" not in store

    def test_too_deep_is_unsupported(self):
        deep = 1
        for _ in range(100):
            deep = [deep]
        store = Store()
        with pytest.raises(UnsupportedTypeError, match="nested deeper"):
            store.set("deep", deep)
        assert "deep" not in store

    def test_non_str_key(self):
        with pytest.raises(UnsupportedTypeError):
            Store().set(1, "x")

    def test_constructor_values(self):
        store = Store({"a": 1, "b": [1, 2]})
        assert store.get("b", list) == [1, 2]


class TestWholeStore:
    def test_remove(self):
        store = Store({"a": 1})
        store.remove("a")
        store.remove("never-set")  # should not raise
        assert len(store) == 0

    def test_keys(self):
        store = Store({"a": 1, "b": 2})
        assert sorted(store.keys()) == ["a", "b"]

    def test_snapshot_is_a_copy(self):
        store = Store({"a": 1})
        snap = store.snapshot()
        snap["b"] = 2
        assert "b" not in store

    def test_replace_swaps_everything(self):
        store = Store({"old": 1})
        store.replace({"new": 2})
        assert store.keys() == ["new"]
        assert store.get("old", int) == 0
