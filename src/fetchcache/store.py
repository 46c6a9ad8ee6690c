"""Persistent storage for cache metadata.

:class:`MetadataStore` keeps the whole ``key -> record`` mapping as a
single value in a :class:`diskcache.Cache`, under a namespace key taken
from :attr:`~fetchcache.models.CacheConfig.metadata_key`.  The loader
loads the mapping once at startup and writes it back after every change.

Records are plain ``dict`` values (``last_used_at``, ``md5``) so that the
on-disk format does not depend on the Pydantic model classes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import diskcache


class MetadataStore:
    """Disk-backed key-value store for the metadata mapping.

    Args:
        directory: Directory holding the :mod:`diskcache` database.

    Example::

        store = MetadataStore("/tmp/fetchcache/metadata")
        store.save("file_loader_cache_metadata", {"abc": {"last_used_at": 1, "md5": None}})
        mapping = store.load("file_loader_cache_metadata")
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        return self._directory

    def load(self, namespace: str) -> dict[str, dict[str, Any]]:
        """Return the mapping stored under *namespace* (empty if absent)."""
        if self._cache is None:
            return {}
        mapping = self._cache.get(namespace)
        if not isinstance(mapping, dict):
            return {}
        return mapping

    def save(self, namespace: str, mapping: dict[str, dict[str, Any]]) -> None:
        """Replace the mapping stored under *namespace*."""
        if self._cache is None:
            return
        self._cache.set(namespace, dict(mapping))

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None
