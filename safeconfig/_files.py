"""Whole-file blob storage for the settings file.

Writes are atomic (temp file in the target directory + os.replace), so a
crash mid-save leaves either the old file or the new one, never a mix.
Every write sets the file mode explicitly (0600 unless the caller asks
otherwise), since os.replace swaps in a fresh inode.
"""

import os
import tempfile
from pathlib import Path

_FILE_MODE = 0o600  # rw-------


class LocalFileSystem:
    """Blob store backed by the local filesystem."""

    def exists(self, path: str | os.PathLike) -> bool:
        return Path(path).is_file()

    def read_all(self, path: str | os.PathLike) -> bytes:
        return Path(path).read_bytes()

    def write_all(self, path: str | os.PathLike, data: bytes, mode: int = _FILE_MODE) -> None:
        path = Path(path)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".settings-", suffix=".tmp")
        try:
            if hasattr(os, "fchmod"):
                os.fchmod(fd, mode)
            view = memoryview(data)
            while view:
                view = view[os.write(fd, view):]
            os.fsync(fd)
            os.close(fd)
            fd = -1  # closed; the except block must not close it again
            os.replace(tmp, path)
        except BaseException:
            if fd >= 0:
                os.close(fd)
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def create_dir(self, path: str | os.PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
