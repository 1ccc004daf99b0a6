"""Data protection capability.

A protector turns plaintext into ciphertext bound to a scope and an
optional entropy secret, and back:

    protect(data, scope, entropy)   -> ciphertext
    unprotect(data, scope, entropy) -> plaintext

Unprotect must fail (ProtectionError) rather than return wrong plaintext
when the scope, entropy or principal differ from those used to protect.

Protector selection (SAFECONFIG_PROTECTOR env var):
    unset    ->  DPAPI on Windows, key file everywhere else
    "dpapi"  ->  Windows Data Protection API (crypt32)
    "keyfile"->  Local master key files + AES-GCM (see _keyfile.py)
"""

import enum
import logging
import os
import sys
from typing import Protocol, runtime_checkable

from .exceptions import SafeConfigError

log = logging.getLogger(__name__)


class Scope(enum.Enum):
    """Which principals may unprotect the data."""

    CURRENT_USER = "current_user"
    LOCAL_MACHINE = "local_machine"


@runtime_checkable
class DataProtector(Protocol):
    def protect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        ...

    def unprotect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        ...


def default_protector() -> DataProtector:
    """Return the protector for this platform, honouring SAFECONFIG_PROTECTOR."""
    choice = os.environ.get("SAFECONFIG_PROTECTOR", "").strip().lower()
    if not choice:
        choice = "dpapi" if sys.platform == "win32" else "keyfile"

    if choice == "dpapi":
        from ._dpapi import DpapiProtector
        log.debug("Using DPAPI protector")
        return DpapiProtector()
    if choice == "keyfile":
        from ._keyfile import KeyFileProtector
        log.debug("Using key-file protector")
        return KeyFileProtector()
    raise SafeConfigError(
        f"Unknown SAFECONFIG_PROTECTOR '{choice}'. Use 'dpapi' or 'keyfile'."
    )
