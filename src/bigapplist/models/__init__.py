from __future__ import annotations

from bigapplist.models.catalog import (
    MAX_APP_ID,
    NULL_APP_ID,
    SENTINEL,
    AppEntry,
    CatalogSnapshot,
)

__all__ = [
    "MAX_APP_ID",
    "NULL_APP_ID",
    "SENTINEL",
    "AppEntry",
    "CatalogSnapshot",
]
