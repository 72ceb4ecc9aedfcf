"""On-disk snapshot cache with a freshness window.

The cache directory holds zero or more files named ``<prefix>@<unixtime>.txt``
in the local format, plus ``BUGS.log``. A load either reuses the newest file
(if it is recent enough) or fetches the list again and adds a new file.

Unlike a read-through cache, failures here are not swallowed: a corrupt cache
file, an unreachable endpoint or an unwritable directory all reach the
caller. Only "no usable file" (none at all, or the newest one too old) leads
to a fetch, and that is the normal miss path, not error recovery.

A single writer per directory is assumed. Two processes fetching in the same
second would race for the same file name; the loser gets
``WriteFailure(stage="create")`` instead of overwriting.
"""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

import structlog

from bigapplist.errors import CacheIntegrityFailure, ReadFailure, WriteFailure
from bigapplist.local_format import read_local_file, write_local_file
from bigapplist.remote_format import read_remote_format

if TYPE_CHECKING:
    from collections.abc import Callable

    from bigapplist.bugs import BugLog
    from bigapplist.fetcher import Fetcher
    from bigapplist.models.catalog import CatalogSnapshot

log = structlog.get_logger()

# Used by load_latest_cached: 1000 years should be enough.
_FOREVER_HOURS = 24 * 365 * 1000


class CacheFile(NamedTuple):
    timestamp: int  # Unix time embedded in the file name
    path: Path


class AppListCache:
    """Selects, loads and refreshes app list snapshots in one directory."""

    def __init__(
        self,
        cache_dir: Path,
        fetcher: Fetcher,
        *,
        url: str | None = None,
        file_prefix: str = "AppList",
        bugs: BugLog | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self._fetcher = fetcher
        self._url = url or fetcher.url
        self._prefix = file_prefix
        self._name_pattern = re.compile(rf"^{re.escape(file_prefix)}@([0-9]+)\.txt$")
        self._bugs = bugs
        self._clock = clock

    def file_name(self, timestamp: int) -> str:
        return f"{self._prefix}@{timestamp}.txt"

    def ensure_dir(self) -> None:
        """Create the cache directory (and parents) if needed."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteFailure(str(self.cache_dir), stage="create", cause=exc) from exc

    def cache_files(self) -> list[CacheFile]:
        """Snapshot files in the directory, newest first. Other names are ignored."""
        try:
            names = [p.name for p in self.cache_dir.iterdir() if p.is_file()]
        except OSError as exc:
            raise ReadFailure(str(self.cache_dir), is_file=True, cause=exc) from exc

        found = []
        for name in names:
            m = self._name_pattern.match(name)
            if m is not None:
                found.append(CacheFile(int(m.group(1)), self.cache_dir / name))
        found.sort(reverse=True)
        return found

    def newest(self) -> CacheFile | None:
        files = self.cache_files()
        return files[0] if files else None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_freshest_within(self, max_age_hours: float) -> CatalogSnapshot:
        """Return the newest cached snapshot at most ``max_age_hours`` old.

        If there is none, fetch the list, cache it and return it.
        ``max_age_hours=0`` always fetches.
        """
        if max_age_hours < 0:
            raise ValueError(f"max_age_hours must be >= 0, got {max_age_hours!r}")

        self.ensure_dir()
        newest = self.newest()
        if max_age_hours > 0 and newest is not None:
            cutoff = self._clock() - max_age_hours * 3600
            if newest.timestamp >= cutoff:
                log.info(
                    "applist_cache_hit",
                    path=str(newest.path),
                    timestamp=newest.timestamp,
                    max_age_hours=max_age_hours,
                )
                return self.load_cache_file(newest)
            log.info(
                "applist_cache_stale",
                path=str(newest.path),
                timestamp=newest.timestamp,
                cutoff=int(cutoff),
            )
        else:
            log.info("applist_cache_miss", cache_dir=str(self.cache_dir))
        return self.refresh()

    def load_latest_cached(self) -> CatalogSnapshot:
        """Return the newest cached snapshot whatever its age; fetch only if none."""
        return self.load_freshest_within(_FOREVER_HOURS)

    def load_cache_file(self, cache_file: CacheFile) -> CatalogSnapshot:
        """Load one cache file and check its header time against its name."""
        snapshot = read_local_file(cache_file.path)
        if snapshot.unix_time != cache_file.timestamp:
            log.error(
                "applist_cache_corrupted",
                path=str(cache_file.path),
                file_time=cache_file.timestamp,
                content_time=snapshot.unix_time,
            )
            raise CacheIntegrityFailure(
                cache_file.path,
                file_time=cache_file.timestamp,
                content_time=snapshot.unix_time,
            )
        return snapshot

    def refresh(self) -> CatalogSnapshot:
        """Fetch the list now and add it to the cache as a new file."""
        self.ensure_dir()
        with self._fetcher.stream(self._url) as chunks:
            # Unix time of the fetch is both the file name and the header time
            fetched = int(self._clock())
            snapshot = read_remote_format(
                chunks,
                source=self._url,
                url=self._url,
                fetched_at=datetime.fromtimestamp(fetched, UTC),
                bugs=self._bugs,
            )

        path = self.cache_dir / self.file_name(fetched)
        write_local_file(snapshot, path)
        log.info("applist_cache_written", path=str(path), count=len(snapshot.entries))
        return snapshot
