"""In-memory app list index: three sorted views and binary-search lookups.

Each view is a tuple of :class:`AppEntry` ending in one sentinel entry
(``id=0, name=""``) after the last real app. Every ``find_*`` method returns a
position in ``[0, count]``, so ``view[position]`` is always a valid read:
either the match, the first entry sorting after the target, or the sentinel.
A returned name of ``""`` or an ID of ``0`` means "not found", because no real
entry can hold either value.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from bigapplist.models.catalog import MAX_APP_ID, NULL_APP_ID, SENTINEL, AppEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bigapplist.bugs import BugLog

log = structlog.get_logger()


def normalise_case(name: str) -> str:
    """Key for case-insensitive lookups: Python's Unicode ``str.upper``."""
    return name.upper()


def accept_entry(
    app_id: int,
    name: str,
    *,
    source: str = "",
    bugs: BugLog | None = None,
) -> AppEntry | None:
    """Return an ``AppEntry`` for a raw pair, or ``None`` if it must be dropped.

    ID 0 is upstream's "no app" marker and is dropped silently. Out-of-range
    IDs are anomalies: recorded, then dropped.
    """
    if app_id == NULL_APP_ID:
        return None
    if app_id < 0 or app_id > MAX_APP_ID:
        message = f"ignoring surprising appid {app_id} for {name!r}"
        if bugs is not None:
            bugs.record(message, source=source)
        else:
            log.warning("applist_anomaly", detail=message, source=source)
        return None
    if not name:
        log.debug("applist_empty_name_dropped", app_id=app_id, source=source)
        return None
    return AppEntry(id=app_id, name=name)


def _accepted(
    entries: Iterable[AppEntry | tuple[int, str]],
    source: str,
    bugs: BugLog | None,
) -> Iterator[AppEntry]:
    for item in entries:
        if isinstance(item, AppEntry):
            app_id, name = item.id, item.name
        else:
            app_id, name = item
        entry = accept_entry(app_id, name, source=source, bugs=bugs)
        if entry is not None:
            yield entry


@dataclass(frozen=True)
class CatalogIndex:
    """Read-only lookup structure built by :func:`build_index`."""

    count: int = 0

    # sorted by app ID
    by_id: tuple[AppEntry, ...] = (SENTINEL,)

    # sorted by name exactly as published (code point order)
    by_name: tuple[AppEntry, ...] = (SENTINEL,)

    # sorted by normalise_case(name); entries keep their original names
    by_name_upper: tuple[AppEntry, ...] = (SENTINEL,)

    # search keys for the views above, without the sentinel
    _ids: list[int] = field(default_factory=list, repr=False, compare=False)
    _names: list[str] = field(default_factory=list, repr=False, compare=False)
    _upper_names: list[str] = field(default_factory=list, repr=False, compare=False)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, app_id: object) -> bool:
        if not isinstance(app_id, int) or app_id == NULL_APP_ID:
            return False
        return self.find_by_id(app_id)[1] != ""

    def find_by_id(self, target: int) -> tuple[int, str]:
        """Return ``(position, name)`` for the first entry with ID >= target.

        ``name`` is empty unless that entry's ID equals ``target``.
        """
        i = bisect_left(self._ids, target)
        entry = self.by_id[i]
        if entry.id == target and i < self.count:
            return i, entry.name
        return i, ""

    def find_by_name(self, target: str) -> tuple[int, int]:
        """Return ``(position, app_id)`` for the first name >= target.

        ``app_id`` is 0 unless the name at that position equals ``target``.
        """
        i = bisect_left(self._names, target)
        if i < self.count and self._names[i] == target:
            return i, self.by_name[i].id
        return i, NULL_APP_ID

    def find_by_name_case_insensitive(self, target: str) -> tuple[int, int]:
        """Like :meth:`find_by_name`, on the ``by_name_upper`` view."""
        key = normalise_case(target)
        i = bisect_left(self._upper_names, key)
        if i < self.count and self._upper_names[i] == key:
            return i, self.by_name_upper[i].id
        return i, NULL_APP_ID


def build_index(
    entries: Iterable[AppEntry | tuple[int, str]],
    *,
    source: str = "",
    bugs: BugLog | None = None,
) -> CatalogIndex:
    """Build all three views from raw pairs or entries, in a single pass.

    Ties are broken on the remaining fields, so the views do not depend on
    the input order.
    """
    accepted = list(_accepted(entries, source, bugs))

    by_id = sorted(accepted, key=lambda e: (e.id, e.name))
    by_name = sorted(accepted, key=lambda e: (e.name, e.id))
    upper_keyed = sorted(
        ((normalise_case(e.name), e) for e in accepted),
        key=lambda pair: (pair[0], pair[1].name, pair[1].id),
    )

    index = CatalogIndex(
        count=len(accepted),
        by_id=(*by_id, SENTINEL),
        by_name=(*by_name, SENTINEL),
        by_name_upper=(*(e for _, e in upper_keyed), SENTINEL),
        _ids=[e.id for e in by_id],
        _names=[e.name for e in by_name],
        _upper_names=[key for key, _ in upper_keyed],
    )
    log.debug("applist_index_built", count=index.count, source=source)
    return index
