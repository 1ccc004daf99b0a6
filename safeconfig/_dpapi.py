"""Windows Data Protection API protector.

Calls CryptProtectData / CryptUnprotectData from crypt32.dll through
ctypes.  Windows derives the key from the user's logon credentials
(CURRENT_USER) or the machine account (LOCAL_MACHINE).

CryptUnprotectData reads the scope from the blob itself and ignores the
LOCAL_MACHINE flag, so the scope is also bound into the optional entropy
blob (label + scope + caller entropy).  Unprotecting under the other
scope then fails like a wrong entropy would.

Only importable usefully on Windows; constructing DpapiProtector
elsewhere raises ProtectionError.
"""

import ctypes
import sys

from ._protection import Scope
from .exceptions import ProtectionError

CRYPTPROTECT_UI_FORBIDDEN = 0x01
CRYPTPROTECT_LOCAL_MACHINE = 0x04

_ENTROPY_LABEL = b"safeconfig/dpapi/v1\x00"


class _DataBlob(ctypes.Structure):
    _fields_ = [
        ("cbData", ctypes.c_uint32),
        ("pbData", ctypes.POINTER(ctypes.c_char)),
    ]


def _blob(data: bytes) -> tuple[_DataBlob, ctypes.Array]:
    # The buffer must outlive the call, so it is returned alongside the blob
    buf = ctypes.create_string_buffer(data, len(data))
    return _DataBlob(len(data), ctypes.cast(buf, ctypes.POINTER(ctypes.c_char))), buf


def scoped_entropy(scope: Scope, entropy: bytes | None) -> bytes:
    """Return the entropy blob actually handed to DPAPI for *scope*."""
    return _ENTROPY_LABEL + scope.value.encode("ascii") + b"\x00" + bytes(entropy or b"")


class DpapiProtector:
    """Protect data with the Windows Data Protection API."""

    def __init__(self) -> None:
        if sys.platform != "win32":
            raise ProtectionError("DPAPI is only available on Windows")
        self._crypt32 = ctypes.windll.crypt32
        self._kernel32 = ctypes.windll.kernel32

    def protect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        return self._call(self._crypt32.CryptProtectData, data, scope, entropy, "protect")

    def unprotect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        return self._call(self._crypt32.CryptUnprotectData, data, scope, entropy, "unprotect")

    def _call(self, func, data: bytes, scope: Scope, entropy: bytes | None, action: str) -> bytes:
        flags = CRYPTPROTECT_UI_FORBIDDEN
        if scope is Scope.LOCAL_MACHINE:
            flags |= CRYPTPROTECT_LOCAL_MACHINE

        data_in, _data_buf = _blob(bytes(data))
        entropy_in, _entropy_buf = _blob(scoped_entropy(scope, entropy))
        data_out = _DataBlob()

        ok = func(
            ctypes.byref(data_in),
            None,           # description
            ctypes.byref(entropy_in),
            None,           # reserved
            None,           # prompt struct
            flags,
            ctypes.byref(data_out),
        )
        if not ok:
            code = ctypes.GetLastError()
            raise ProtectionError(f"DPAPI {action} failed: {ctypes.FormatError(code)} ({code})")

        try:
            return ctypes.string_at(data_out.pbData, data_out.cbData)
        finally:
            self._kernel32.LocalFree(data_out.pbData)
