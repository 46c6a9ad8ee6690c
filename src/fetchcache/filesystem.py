"""Filesystem access for cached file contents.

:class:`CacheDirectory` owns the directory that holds downloaded bytes,
one file per entry key.  It is deliberately thin: the loader decides
whether a write succeeded by probing :meth:`~CacheDirectory.exists`
afterwards rather than trusting :meth:`~CacheDirectory.write`.

:func:`atomic_write` is shared with :mod:`fetchcache.config` for the
global config file.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Optional


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created next to *path* so that ``os.replace``
    is an atomic rename on POSIX systems.  On any failure the temp file
    is removed and the exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


class CacheDirectory:
    """Directory of cached files, created on construction if missing.

    Args:
        root: Directory path.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        return self._root / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def resolve(self, name: str) -> str:
        """Return the absolute path string for *name*."""
        return str(self.path_for(name).resolve())

    def write(self, name: str, data: bytes) -> bool:
        """Store *data* under *name* with :func:`atomic_write`.

        Returns:
            ``True`` once the rename has been issued.  Callers should still
            confirm with :meth:`exists`.
        """
        atomic_write(self.path_for(name), data)
        return True

    def delete(self, name: str) -> None:
        """Remove the file for *name*; missing files are ignored."""
        self.path_for(name).unlink(missing_ok=True)

    @staticmethod
    def hash(data: bytes) -> str:
        """MD5 hex digest of *data*."""
        return hashlib.md5(data).hexdigest()
