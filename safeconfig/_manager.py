"""ConfigManager -- fluent, encrypted settings file.

    manager = (
        ConfigManager()
        .set_folder("~/.myapp")
        .with_local_machine_scope()
        .set_entropy(b"app secret")
        .load()
    )
    manager.set("retries", 3).save()
    retries = manager.get("retries", int)

Lifecycle:
    load()  reads <folder>/settings.saveconfig, unprotects, decodes and
            swaps the result in as the whole store.  No file means first
            run: the store is left as is.
    save()  encodes the whole store, protects it, and atomically
            replaces the settings file.

get()/set() never touch disk.  Scope and entropy changes take effect on
the next load()/save(); data saved under one scope/entropy can only be
loaded under the same pair.

No locking: two managers saving the same file race and the last writer
wins.  Instances are not thread-safe.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from ._codec import decode, encode
from ._files import LocalFileSystem
from ._protection import DataProtector, Scope, default_protector
from ._store import _MISSING, Store
from .exceptions import FolderError, LoadError, SaveError

log = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.saveconfig"

# Settings file permissions; machine-scoped data must be readable by every
# local user
_FILE_MODES = {
    Scope.CURRENT_USER: 0o600,   # rw-------
    Scope.LOCAL_MACHINE: 0o644,  # rw-r--r--
}


def _default_folder() -> Path:
    """Return the folder used when none is given, honouring SAFECONFIG_DIR."""
    override = os.environ.get("SAFECONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return Path(".")


def application_folder() -> Path:
    """Return the running program's base directory.

    Resolution order:
      1. Directory of the frozen executable (PyInstaller and friends)
      2. Directory of the __main__ script
      3. Current working directory (interactive sessions, -c)
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    main_file = getattr(sys.modules.get("__main__"), "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path.cwd()


class ConfigManager:
    """Encrypted key-value settings stored in a single file."""

    def __init__(
        self,
        folder: str | os.PathLike | None = None,
        *,
        scope: Scope | str = Scope.CURRENT_USER,
        entropy: bytes | str | None = None,
        protector: DataProtector | None = None,
        filesystem: LocalFileSystem | None = None,
    ) -> None:
        self._fs = filesystem or LocalFileSystem()
        self._protector = protector
        self._store = Store()
        self._folder = Path(".")
        self._scope = Scope.CURRENT_USER
        self._entropy: bytes | None = None

        self.set_scope(scope)
        self.set_entropy(entropy)
        self.set_folder(folder if folder is not None else _default_folder())

    # -- Configuration --

    @property
    def folder(self) -> Path:
        return self._folder

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def settings_path(self) -> Path:
        return self._folder / SETTINGS_FILE_NAME

    @property
    def store(self) -> Store:
        return self._store

    def set_folder(self, folder: str | os.PathLike) -> "ConfigManager":
        """Use *folder* for the settings file, creating it if missing."""
        try:
            path = Path(folder).expanduser()
            self._fs.create_dir(path)
        except Exception as e:
            raise FolderError(str(folder), str(e)) from e
        self._folder = path
        log.debug("Settings folder set to %s", path)
        return self

    def use_application_folder(self) -> "ConfigManager":
        """Keep the settings file next to the running program."""
        return self.set_folder(application_folder())

    def set_scope(self, scope: Scope | str) -> "ConfigManager":
        self._scope = Scope(scope)
        return self

    def with_current_user_scope(self) -> "ConfigManager":
        return self.set_scope(Scope.CURRENT_USER)

    def with_local_machine_scope(self) -> "ConfigManager":
        return self.set_scope(Scope.LOCAL_MACHINE)

    def set_entropy(self, entropy: bytes | str | None) -> "ConfigManager":
        """Mix an extra secret into protection.  Strings are UTF-8 encoded."""
        if isinstance(entropy, str):
            entropy = entropy.encode("utf-8")
        elif isinstance(entropy, (bytearray, memoryview)):
            entropy = bytes(entropy)
        elif entropy is not None and not isinstance(entropy, bytes):
            raise TypeError(f"entropy must be bytes, str or None, not {type(entropy).__name__}")
        self._entropy = entropy
        return self

    # -- Lifecycle --

    def load(self) -> "ConfigManager":
        """Replace the in-memory settings with the contents of the file."""
        path = self.settings_path
        try:
            if not self._fs.exists(path):
                log.info("No settings file at %s, keeping current settings", path)
                return self
            log.debug("Reading settings from %s", path)
            protected = self._fs.read_all(path)
            log.debug("Unprotecting %d bytes (scope=%s)", len(protected), self._scope.value)
            plain = self._get_protector().unprotect(protected, self._scope, self._entropy)
            values = decode(plain)
        except Exception as e:
            raise LoadError(str(path), str(e)) from e

        self._store.replace(values)
        log.info("Loaded %d settings from %s", len(values), path)
        return self

    def save(self) -> "ConfigManager":
        """Write the whole in-memory settings map to the file."""
        path = self.settings_path
        try:
            values = self._store.snapshot()
            plain = encode(values)
            log.debug("Protecting %d bytes (scope=%s)", len(plain), self._scope.value)
            protected = self._get_protector().protect(plain, self._scope, self._entropy)
            self._fs.write_all(path, protected, mode=_FILE_MODES[self._scope])
        except Exception as e:
            raise SaveError(str(path), str(e)) from e

        log.info("Saved %d settings to %s", len(values), path)
        return self

    # -- Settings --

    def set(self, key: str, value: Any) -> "ConfigManager":
        self._store.set(key, value)
        return self

    def get(self, key: str, type_=None, default: Any = _MISSING) -> Any:
        """Return a setting; see Store.get for the type and default rules."""
        return self._store.get(key, type_, default)

    def has(self, key: str) -> bool:
        return self._store.has(key)

    def remove(self, key: str) -> "ConfigManager":
        self._store.remove(key)
        return self

    def keys(self) -> list[str]:
        return self._store.keys()

    # -- Internal --

    def _get_protector(self) -> DataProtector:
        if self._protector is None:
            self._protector = default_protector()
        return self._protector

    def __repr__(self) -> str:
        return (
            f"ConfigManager(folder={str(self._folder)!r}, "
            f"scope={self._scope.value!r}, settings={len(self._store)})"
        )
