"""Key-file protector -- portable stand-in for an OS data-protection API.

Trust model:
    Each scope has a 256-bit master key held in a local file, and the
    filesystem's access control is what limits who can decrypt.

    CURRENT_USER   ~/.config/safeconfig/user.key        dir 0700, file 0600
                   (override dir with SAFECONFIG_KEY_DIR)
    LOCAL_MACHINE  /var/lib/safeconfig/machine.key      dir 0755, file 0644
                   %PROGRAMDATA%\\safeconfig\\machine.key on Windows
                   (override dir with SAFECONFIG_MACHINE_KEY_DIR)

    Anyone who can read the key file can decrypt, which for the machine
    key is every local user, matching what LOCAL_MACHINE promises.  Root
    (or an administrator) can always read both.  Keys are created on the
    first protect() and never by unprotect().

Envelope:
    [4 bytes magic "SCK1"][1 byte scope][16 bytes salt][12 bytes nonce]
    [AES-256-GCM ciphertext + 16 byte tag]

    The content key is HKDF-SHA256 over the master key with the per-message
    salt, and info binding the scope and the caller's entropy.  The header
    is authenticated as associated data.
"""

import logging
import os
import tempfile
import warnings
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ._protection import Scope
from .exceptions import MasterKeyError, ProtectionError

log = logging.getLogger(__name__)

MAGIC = b"SCK1"
KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
HEADER_SIZE = len(MAGIC) + 1 + SALT_SIZE + NONCE_SIZE

_INFO_LABEL = b"safeconfig/keyfile/v1\x00"

_SCOPE_IDS = {Scope.CURRENT_USER: 1, Scope.LOCAL_MACHINE: 2}

_KEY_NAMES = {Scope.CURRENT_USER: "user.key", Scope.LOCAL_MACHINE: "machine.key"}

# (directory mode, file mode) per scope
_MODES = {
    Scope.CURRENT_USER: (0o700, 0o600),
    Scope.LOCAL_MACHINE: (0o755, 0o644),
}

# Permission bits that must not be set on an existing key file
_FORBIDDEN_BITS = {
    Scope.CURRENT_USER: 0o077,
    Scope.LOCAL_MACHINE: 0o022,
}


# -- Key locations --

def _default_user_dir() -> Path:
    override = os.environ.get("SAFECONFIG_KEY_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "safeconfig"


def _default_machine_dir() -> Path:
    override = os.environ.get("SAFECONFIG_MACHINE_KEY_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        return Path(os.environ.get("PROGRAMDATA", r"C:\ProgramData")) / "safeconfig"
    return Path("/var/lib/safeconfig")


def _ensure_dir(directory: Path, mode: int) -> None:
    """Create the key directory if needed and set its permissions."""
    directory.mkdir(parents=True, exist_ok=True)
    if os.name != "posix":
        return
    try:
        if directory.stat().st_mode & 0o777 != mode:
            directory.chmod(mode)
    except OSError as e:
        log.warning("Could not set permissions on %s: %s", directory, e)


# -- Protector --

class KeyFileProtector:
    """Protect data with AES-GCM under a per-scope master key file.

    Directories default to the locations in the module docstring and are
    resolved at call time, so env var overrides apply to existing
    instances.
    """

    def __init__(
        self,
        user_key_dir: str | os.PathLike | None = None,
        machine_key_dir: str | os.PathLike | None = None,
    ) -> None:
        self._user_key_dir = Path(user_key_dir) if user_key_dir else None
        self._machine_key_dir = Path(machine_key_dir) if machine_key_dir else None

    def key_path(self, scope: Scope) -> Path:
        if scope is Scope.LOCAL_MACHINE:
            directory = self._machine_key_dir or _default_machine_dir()
        else:
            directory = self._user_key_dir or _default_user_dir()
        return directory / _KEY_NAMES[scope]

    def protect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        master = self._load_key(scope, create=True)
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        header = MAGIC + bytes([_SCOPE_IDS[scope]]) + salt + nonce
        key = _derive_key(master, salt, scope, entropy)
        return header + AESGCM(key).encrypt(nonce, bytes(data), header)

    def unprotect(self, data: bytes, scope: Scope, entropy: bytes | None = None) -> bytes:
        data = bytes(data)
        if len(data) < HEADER_SIZE + TAG_SIZE or not data.startswith(MAGIC):
            raise ProtectionError("Data is not a protected key-file envelope")
        if data[len(MAGIC)] != _SCOPE_IDS[scope]:
            raise ProtectionError(
                f"Data was not protected under the {scope.value} scope"
            )

        header = data[:HEADER_SIZE]
        salt_start = len(MAGIC) + 1
        salt = header[salt_start:salt_start + SALT_SIZE]
        nonce = header[salt_start + SALT_SIZE:]

        master = self._load_key(scope, create=False)
        key = _derive_key(master, salt, scope, entropy)
        try:
            return AESGCM(key).decrypt(nonce, data[HEADER_SIZE:], header)
        except InvalidTag as e:
            raise ProtectionError(
                "Decryption failed: wrong key, entropy, or tampered data"
            ) from e

    # -- Internal --

    def _load_key(self, scope: Scope, create: bool) -> bytes:
        path = self.key_path(scope)
        if not path.is_file():
            if not create:
                raise MasterKeyError(str(path), "key file does not exist")
            return self._create_key(scope, path)
        return _read_key(scope, path)

    def _create_key(self, scope: Scope, path: Path) -> bytes:
        dir_mode, file_mode = _MODES[scope]
        try:
            _ensure_dir(path.parent, dir_mode)
            key = os.urandom(KEY_SIZE)

            # Write to a temp file, then hard-link into place so the key
            # appears fully written or not at all, and a racing creator
            # loses to whoever linked first.
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                os.write(fd, key)
                os.close(fd)
                fd = -1
                os.chmod(tmp, file_mode)
                os.link(tmp, path)
            except FileExistsError:
                log.debug("Master key %s appeared concurrently, using it", path)
                return _read_key(scope, path)
            finally:
                if fd >= 0:
                    os.close(fd)
                os.unlink(tmp)
        except OSError as e:
            raise MasterKeyError(str(path), str(e)) from e

        log.warning("Created new %s master key at %s", scope.value, path)
        return key


def _read_key(scope: Scope, path: Path) -> bytes:
    try:
        key = path.read_bytes()
        mode = path.stat().st_mode & 0o777
    except OSError as e:
        raise MasterKeyError(str(path), str(e)) from e

    if len(key) != KEY_SIZE:
        raise MasterKeyError(
            str(path), f"expected {KEY_SIZE} bytes, found {len(key)}"
        )
    if os.name == "posix" and mode & _FORBIDDEN_BITS[scope]:
        warnings.warn(
            f"Master key {path} has permissions {mode:o}; "
            f"expected {_MODES[scope][1]:o}.",
            UserWarning,
            stacklevel=4,
        )
    return key


def _derive_key(master: bytes, salt: bytes, scope: Scope, entropy: bytes | None) -> bytes:
    info = _INFO_LABEL + scope.value.encode("ascii") + b"\x00" + (entropy or b"")
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        info=info,
    ).derive(master)
