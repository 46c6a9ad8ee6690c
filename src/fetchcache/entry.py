"""Cache entries: one per downloaded URL.

A :class:`CacheEntry` is rebuilt from the loader's metadata on every
lookup.  Its key is the MD5 digest of the URL, which keeps keys unique per
URL and free of path separators, so the key doubles as the file name in
the cache directory.

Only :meth:`CacheEntry.save` marks an entry as cached; only
:meth:`CacheEntry.expunge` removes it.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Optional

from fetchcache.models import EntryRecord

if TYPE_CHECKING:
    from fetchcache.context import LoaderContext


def key_from_url(url: str) -> str:
    """Derive the stable entry key (MD5 hex digest) for *url*."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


class CacheEntry:
    """Residency and freshness record for a single cache key.

    Args:
        key: Entry key, normally from :func:`key_from_url`.
        context: The owning loader's shared state.

    Attributes:
        key: Entry key and file name.
        is_cached: Whether a metadata record exists and the file is on disk.
        last_used_at: Epoch milliseconds of the last request, ``0`` = never.
        md5: Fingerprint of the stored bytes, ``None`` before any write.
        pending: ``True`` while a download for this entry is in flight.
        just_downloaded: ``True`` if this request fetched the file.
    """

    def __init__(self, key: str, context: LoaderContext) -> None:
        self.key = key
        self._context = context
        self.pending = False
        self.just_downloaded = False

        record = context.metadata.get(key)
        if record is not None:
            self.is_cached = self.exists()
            self.last_used_at = record.last_used_at
            self.md5: Optional[str] = record.md5
        else:
            self.is_cached = False
            self.last_used_at = 0
            self.md5 = None

    @classmethod
    def from_url(cls, url: str, context: LoaderContext) -> CacheEntry:
        return cls(key_from_url(url), context)

    @property
    def path(self) -> str:
        """Absolute path of the cached file."""
        return self._context.files.resolve(self.key)

    def exists(self) -> bool:
        return self._context.files.exists(self.key)

    def update_last_used_at(self) -> CacheEntry:
        self.last_used_at = self._context.clock()
        return self

    def save(self) -> CacheEntry:
        """Persist ``last_used_at`` and ``md5`` and mark the entry cached."""
        self._context.metadata[self.key] = EntryRecord(
            last_used_at=self.last_used_at, md5=self.md5
        )
        self._context.persist()
        self.is_cached = True
        return self

    def write(self, data: bytes) -> bool:
        """Store *data*, record its fingerprint and report whether the file exists.

        The return value of the underlying write is ignored on purpose;
        success is judged by probing for the file afterwards.
        """
        files = self._context.files
        files.write(self.key, data)
        self.md5 = files.hash(data)
        return self.exists()

    def expired(self, invalidate: bool = False) -> bool:
        """Return whether the entry is older than the configured expiration.

        Args:
            invalidate: Reset ``last_used_at`` to ``0`` and persist first,
                which forces a download on the next request.
        """
        if invalidate:
            self.last_used_at = 0
            self.save()
        age = self._context.clock() - self.last_used_at
        return age > self._context.config.expiration_ms

    def expunge(self) -> None:
        """Delete the cached file and its metadata record."""
        self._context.files.delete(self.key)
        self._context.metadata.pop(self.key, None)
        self._context.persist()
        self.is_cached = False

    def __str__(self) -> str:
        parts = [f"{self.key}: {'cached' if self.is_cached else 'new'} file"]
        if self.pending:
            parts.append(" (pending)")
        if self.just_downloaded:
            parts.append(" (downloaded)")
        if self.expired():
            parts.append(" (expired)")
        if self.last_used_at:
            parts.append(f", Last used: {self.last_used_at}")
        if self.md5:
            parts.append(f", MD5: {self.md5}")
        parts.append(f" {self.path}")
        return "".join(parts)

    def __repr__(self) -> str:
        return f"<CacheEntry {self.key} cached={self.is_cached} last_used_at={self.last_used_at}>"
