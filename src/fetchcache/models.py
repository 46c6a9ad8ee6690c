"""Canonical Pydantic models shared across fetchcache modules.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`OutputConfig` and :class:`GlobalConfig`.

**Persisted metadata** -- stored in the metadata store:
    :class:`EntryRecord`, one per cached URL, keyed by the entry key.

All models use Pydantic v2.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


# --- Configuration ---


class CacheConfig(BaseModel):
    """Download cache settings stored in :class:`GlobalConfig`.

    Read once when a :class:`~fetchcache.loader.FileLoader` is created;
    later changes on disk are not picked up by a running loader.
    """

    metadata_key: str = Field(
        default="file_loader_cache_metadata",
        description="Key under which the entry metadata mapping is stored",
    )
    directory: str = Field(
        default="cached_files",
        description="Directory (under the cache dir) holding downloaded files",
    )
    expiration_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Time since last use after which an entry is expired",
    )
    max_requests: int = Field(
        default=10, ge=1, description="Maximum simultaneous downloads"
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="Per-download timeout in seconds"
    )

    @property
    def expiration_ms(self) -> int:
        """:attr:`expiration_seconds` in milliseconds."""
        return int(self.expiration_seconds * 1000)


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fetchcache/config.json``.

    Loaded and saved by :func:`~fetchcache.config.load_global_config` and
    :func:`~fetchcache.config.save_global_config`.  See
    :func:`~fetchcache.config.resolve_config` for how project config and
    environment variables are layered on top.
    """

    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Persisted metadata ---


class EntryRecord(BaseModel):
    """Metadata kept for one cached URL.

    Attributes:
        last_used_at: Epoch milliseconds of the last request, ``0`` = never.
        md5: MD5 hex digest of the stored bytes, for diagnostics only.
    """

    last_used_at: int = 0
    md5: Optional[str] = None
