"""In-memory settings store.

Values are restricted to the types the codec can write (see _codec.py).
Reads are type-checked: asking for an int when a str is stored raises
TypeMismatchError instead of coercing, and a missing key yields the
zero value of the requested type.
"""

from collections.abc import Mapping
from typing import Any

from ._codec import check_value
from .exceptions import TypeMismatchError, UnsupportedTypeError

_MISSING = object()

_ZERO_FACTORIES = {
    bool: bool,
    int: int,
    float: float,
    str: str,
    bytes: bytes,
    list: list,
    tuple: tuple,
    dict: dict,
}


def zero_value(type_) -> Any:
    """Return the zero value for *type_*, or None if it has none."""
    if isinstance(type_, tuple):
        type_ = type_[0] if type_ else None
    factory = _ZERO_FACTORIES.get(type_)
    return factory() if factory else None


def _matches(value: Any, type_) -> bool:
    types = type_ if isinstance(type_, tuple) else (type_,)
    if isinstance(value, bool):
        # bool is an int subclass; only an explicit bool (or object) matches
        return bool in types or object in types
    return isinstance(value, types)


class Store:
    """Mapping of setting name to value."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        if values:
            for key, value in values.items():
                self.set(key, value)

    def set(self, key: str, value: Any) -> None:
        """Insert or overwrite a setting."""
        if not isinstance(key, str):
            raise UnsupportedTypeError(type(key))
        check_value(value, key)
        if isinstance(value, bytearray):
            value = bytes(value)
        self._values[key] = value

    def get(self, key: str, type_=None, default: Any = _MISSING) -> Any:
        """Return the value for *key*.

        With *type_* given, a stored value of another type raises
        TypeMismatchError.  A missing key returns *default* if passed,
        otherwise the zero value of *type_* (None without a type).
        """
        if key not in self._values:
            if default is not _MISSING:
                return default
            return zero_value(type_) if type_ is not None else None

        value = self._values[key]
        if type_ is not None and not _matches(value, type_):
            raise TypeMismatchError(key, type_, type(value))
        return value

    def has(self, key: str) -> bool:
        return key in self._values

    def remove(self, key: str) -> None:
        """Delete a setting.  Missing keys are ignored."""
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)

    def replace(self, values: dict[str, Any]) -> None:
        """Swap the whole backing map in one step."""
        self._values = values

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Store(keys={self.keys()!r})"
