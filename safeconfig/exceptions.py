"""SafeConfig exceptions."""


class SafeConfigError(Exception):
    """Base exception for all SafeConfig errors."""
    pass


class FolderError(SafeConfigError):
    """Raised when the settings folder cannot be created or accessed."""
    def __init__(self, folder: str, detail: str = ""):
        self.folder = folder
        msg = f"Cannot set safeconfig folder: {folder}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class LoadError(SafeConfigError):
    """Raised when settings cannot be read, unprotected or decoded."""
    def __init__(self, path: str, detail: str = ""):
        self.path = path
        msg = f"Cannot load config from {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class SaveError(SafeConfigError):
    """Raised when settings cannot be encoded, protected or written."""
    def __init__(self, path: str, detail: str = ""):
        self.path = path
        msg = f"Cannot save config to {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class TypeMismatchError(SafeConfigError, TypeError):
    """Raised when a stored value does not match the requested type."""
    def __init__(self, key: str, expected, actual: type):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Setting '{key}' holds {actual.__name__}, "
            f"not {_type_names(expected)}"
        )


class UnsupportedTypeError(SafeConfigError, TypeError):
    """Raised when a value cannot be stored in the settings file."""
    def __init__(self, value_type: type, key: str = "", message: str = ""):
        self.value_type = value_type
        self.key = key
        if not message:
            message = f"Unsupported setting type: {value_type.__name__}"
            if key:
                message += f" (key: {key})"
        super().__init__(message)


class NestingTooDeepError(UnsupportedTypeError):
    """Raised when a value nests containers deeper than the codec allows."""
    def __init__(self, value_type: type, key: str, limit: int):
        self.limit = limit
        super().__init__(
            value_type, key, f"Setting '{key}' is nested deeper than {limit} levels"
        )


class CorruptDataError(SafeConfigError):
    """Raised when settings bytes are not a valid encoding."""
    pass


class ProtectionError(SafeConfigError):
    """Raised on protect/unprotect failures."""
    pass


class MasterKeyError(ProtectionError):
    """Raised when a key-file master key cannot be accessed."""
    def __init__(self, path: str, detail: str = ""):
        self.path = path
        msg = f"Cannot access master key {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


def _type_names(expected) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__
