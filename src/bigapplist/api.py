"""Top-level entry points, wired from :class:`~bigapplist.config.Settings`.

Each function accepts an optional ``settings`` and ``client``. Without a
client, one is created from ``settings.remote`` and closed before returning.

These functions only log; applying ``settings.logging`` is left to the
application, via :func:`bigapplist.log_config.configure_logging`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from bigapplist.bugs import BugLog
from bigapplist.cache import AppListCache
from bigapplist.config import Settings
from bigapplist.fetcher import Fetcher, build_http_client
from bigapplist.local_format import read_local_file, write_local_file
from bigapplist.remote_format import read_remote_file, read_remote_format

if TYPE_CHECKING:
    import os
    from collections.abc import Iterator

    import httpx

    from bigapplist.models.catalog import CatalogSnapshot

__all__ = [
    "load_freshest_within",
    "load_from_json_file",
    "load_from_local_file",
    "load_from_remote",
    "load_latest_cached",
    "open_cache",
    "write_local_file",
]


@contextmanager
def _client_for(settings: Settings, client: httpx.Client | None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with build_http_client(settings.remote) as owned:
        yield owned


def open_cache(settings: Settings, client: httpx.Client) -> AppListCache:
    """Build an :class:`AppListCache` for the configured directory."""
    return AppListCache(
        settings.cache_dir,
        Fetcher(client, settings.remote),
        url=settings.remote.url,
        file_prefix=settings.cache.file_prefix,
        bugs=BugLog(settings.bugs_log_path),
    )


def load_freshest_within(
    max_age_hours: float | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> CatalogSnapshot:
    """Cached snapshot no older than ``max_age_hours``, else a fresh one.

    ``None`` uses ``settings.cache.max_age_hours``.
    """
    settings = settings or Settings()
    if max_age_hours is None:
        max_age_hours = settings.cache.max_age_hours
    with _client_for(settings, client) as http:
        return open_cache(settings, http).load_freshest_within(max_age_hours)


def load_latest_cached(
    *,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> CatalogSnapshot:
    """Newest cached snapshot of any age; fetches only when the cache is empty."""
    settings = settings or Settings()
    with _client_for(settings, client) as http:
        return open_cache(settings, http).load_latest_cached()


def load_from_remote(
    *,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> CatalogSnapshot:
    """Fetch and parse the list without touching the cache directory."""
    settings = settings or Settings()
    url = settings.remote.url
    with _client_for(settings, client) as http:
        with Fetcher(http, settings.remote).stream(url) as chunks:
            return read_remote_format(chunks, source=url, url=url)


def load_from_local_file(path: str | os.PathLike[str]) -> CatalogSnapshot:
    return read_local_file(path)


def load_from_json_file(path: str | os.PathLike[str]) -> CatalogSnapshot:
    """Parse a GetAppList JSON document saved to disk."""
    return read_remote_file(path)
