"""SafeConfig - Encrypted local settings for applications.

Usage:
    from safeconfig import ConfigManager

    config = ConfigManager().set_folder("~/.myapp").load()
    config.set("api_url", "https://example.com").set("retries", 3)
    config.save()

    retries = config.get("retries", int)    # 3
    missing = config.get("timeout", float)  # 0.0 -- zero value, not an error

Settings live in <folder>/settings.saveconfig, encrypted as a whole.

Scopes:
    Scope.CURRENT_USER   (default)  only this OS user can decrypt
    Scope.LOCAL_MACHINE             any user on this machine can decrypt

An optional entropy secret (set_entropy) is mixed into encryption and
must be supplied again to load.

Protector selection (SAFECONFIG_PROTECTOR env var):
    unset     ->  Windows DPAPI on Windows, key files elsewhere
    "dpapi"   ->  Windows DPAPI (crypt32)
    "keyfile" ->  Per-scope master key files + AES-256-GCM

Environment:
    SAFECONFIG_DIR              default settings folder (else cwd)
    SAFECONFIG_KEY_DIR          key-file protector: user key directory
    SAFECONFIG_MACHINE_KEY_DIR  key-file protector: machine key directory
"""

import logging

__version__ = "0.1.0"

from .exceptions import (
    SafeConfigError,
    FolderError,
    LoadError,
    SaveError,
    TypeMismatchError,
    UnsupportedTypeError,
    NestingTooDeepError,
    CorruptDataError,
    ProtectionError,
    MasterKeyError,
)
from ._codec import encode, decode
from ._store import Store
from ._files import LocalFileSystem
from ._protection import Scope, DataProtector, default_protector
from ._keyfile import KeyFileProtector
from ._dpapi import DpapiProtector
from ._manager import ConfigManager, SETTINGS_FILE_NAME, application_folder

logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = [
    "ConfigManager",
    "Scope",
    "Store",
    "DataProtector",
    "KeyFileProtector",
    "DpapiProtector",
    "LocalFileSystem",
    "default_protector",
    "application_folder",
    "encode",
    "decode",
    "SETTINGS_FILE_NAME",
    "SafeConfigError",
    "FolderError",
    "LoadError",
    "SaveError",
    "TypeMismatchError",
    "UnsupportedTypeError",
    "NestingTooDeepError",
    "CorruptDataError",
    "ProtectionError",
    "MasterKeyError",
]
