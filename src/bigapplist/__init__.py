"""Steam's big app list (app ID <-> name), cached locally.

Quick start::

    from bigapplist import load_freshest_within

    index = load_freshest_within(72).build_index()
    position, name = index.find_by_id(440)
"""

from __future__ import annotations

from bigapplist.api import (
    load_freshest_within,
    load_from_json_file,
    load_from_local_file,
    load_from_remote,
    load_latest_cached,
    open_cache,
    write_local_file,
)
from bigapplist.cache import AppListCache, CacheFile
from bigapplist.errors import (
    AppListError,
    CacheIntegrityFailure,
    ErrorCode,
    FetchFailure,
    FormatFailure,
    ParseFailure,
    ReadFailure,
    WriteFailure,
)
from bigapplist.index import CatalogIndex, build_index
from bigapplist.models import MAX_APP_ID, NULL_APP_ID, AppEntry, CatalogSnapshot

__all__ = [
    # api
    "load_freshest_within",
    "load_latest_cached",
    "load_from_remote",
    "load_from_local_file",
    "load_from_json_file",
    "write_local_file",
    "open_cache",
    # cache
    "AppListCache",
    "CacheFile",
    # index
    "CatalogIndex",
    "build_index",
    # models
    "AppEntry",
    "CatalogSnapshot",
    "MAX_APP_ID",
    "NULL_APP_ID",
    # errors
    "AppListError",
    "ErrorCode",
    "ReadFailure",
    "ParseFailure",
    "FormatFailure",
    "CacheIntegrityFailure",
    "FetchFailure",
    "WriteFailure",
]
