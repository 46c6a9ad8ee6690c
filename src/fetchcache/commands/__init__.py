"""Built-in CLI sub-commands for fetchcache.

* :mod:`~fetchcache.commands.cache` -- ``download``, ``list``,
  ``invalidate`` and ``sweep``, registered directly on the root app.
* :mod:`~fetchcache.commands.config` -- the ``config`` sub-application for
  viewing and modifying global settings.
"""
