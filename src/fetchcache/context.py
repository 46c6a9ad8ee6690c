"""Shared state owned by one :class:`~fetchcache.loader.FileLoader`.

:class:`LoaderContext` bundles everything the loader, its cache entries
and its dispatch queue share: the in-memory metadata mapping, the table
of in-flight downloads, the dispatch queue and the storage collaborators.
One context per loader replaces module-level globals, so several loaders
(for instance in tests) never see each other's state.

The event loop is single-threaded and none of these structures is touched
across an ``await``, so no locking is needed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from fetchcache.dispatch import DispatchQueue
from fetchcache.filesystem import CacheDirectory
from fetchcache.future import Future
from fetchcache.models import CacheConfig, EntryRecord
from fetchcache.store import MetadataStore


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class LoaderContext:
    """State shared by a loader and the entries it creates.

    Attributes:
        config: Cache settings, read once.
        store: Metadata persistence.
        files: Directory holding cached bytes.
        queue: Admission control for downloads.
        clock: Returns the current time in epoch milliseconds.
        metadata: In-memory copy of the persisted ``key -> record`` mapping.
        pending: In-flight download futures by entry key.
    """

    config: CacheConfig
    store: MetadataStore
    files: CacheDirectory
    queue: DispatchQueue
    clock: Callable[[], int] = epoch_ms
    metadata: dict[str, EntryRecord] = field(default_factory=dict)
    pending: dict[str, Future] = field(default_factory=dict)

    def load(self) -> None:
        """Replace :attr:`metadata` with the persisted mapping."""
        raw = self.store.load(self.config.metadata_key)
        self.metadata = {
            key: EntryRecord.model_validate(value) for key, value in raw.items()
        }

    def persist(self) -> None:
        """Write :attr:`metadata` to the store."""
        self.store.save(
            self.config.metadata_key,
            {key: record.model_dump() for key, record in self.metadata.items()},
        )
