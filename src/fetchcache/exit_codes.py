"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fetchcache.exceptions.FetchCacheError` subclass.
Shell wrappers can inspect the exit code to tell an offline run apart from
a failed transfer without parsing stderr.

Example::

    $ fetchcache download https://example.com/logo.png
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the transfer failed or timed out
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_OFFLINE = 3
"""The network is offline and no usable cached copy exists."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, HTTP error status)."""

EXIT_WRITE_ERROR = 7
"""Downloaded bytes could not be persisted to the cache directory."""
