"""Exception hierarchy for fetchcache.

All exceptions inherit from :class:`FetchCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchcache.exit_codes`.
Inside the loader these exceptions never escape as raised errors: they are
delivered as rejection values of a :class:`~fetchcache.future.Future`.
Awaiting such a future re-raises them, and the CLI entry point in
:func:`fetchcache.app.main` turns them into the matching exit code.

Subclass hierarchy::

    FetchCacheError            (exit 1)
    +-- OfflineError           (exit 3)
    +-- TransportError         (exit 6)
    +-- WriteVerificationError (exit 7)
    +-- RejectionError         (exit 1)
    +-- ConfigError            (exit 1)
"""

from __future__ import annotations

from typing import Any

from fetchcache.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_OFFLINE,
    EXIT_WRITE_ERROR,
)


class FetchCacheError(Exception):
    """Base exception for all fetchcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class OfflineError(FetchCacheError):
    """Raised when the network is offline and the URL has no fresh cached copy."""

    exit_code = EXIT_OFFLINE

    def __init__(self, url: str):
        super().__init__(f"Network offline, cannot download {url}")
        self.url = url


class TransportError(FetchCacheError):
    """Raised on network-level failures (timeout, connection refused, HTTP error status).

    The exception reported by the transport is kept on :attr:`error`.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str, error: BaseException | None = None):
        super().__init__(message)
        self.error = error


class WriteVerificationError(FetchCacheError):
    """Raised when downloaded bytes are not found on disk after writing them."""

    exit_code = EXIT_WRITE_ERROR


class RejectionError(FetchCacheError):
    """Raised when awaiting a future that was rejected with a non-exception value.

    ``future.reject("reason")`` is allowed; ``await future`` then raises this
    error with the original value kept on :attr:`reason`.
    """

    def __init__(self, reason: Any):
        super().__init__(f"Future rejected: {reason!r}")
        self.reason = reason


class ConfigError(FetchCacheError):
    """Raised for configuration problems (invalid JSON, failed validation, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
