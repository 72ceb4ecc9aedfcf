from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from bigapplist.index import CatalogIndex

MAX_APP_ID = 2**31 - 1
NULL_APP_ID = 0


class AppEntry(BaseModel):
    """One app: its numeric ID and its name as published."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=NULL_APP_ID, le=MAX_APP_ID)
    name: str


# Appended to every index view; never a real app.
SENTINEL = AppEntry(id=NULL_APP_ID, name="")


class CatalogSnapshot(BaseModel):
    """The whole app list as of one fetch. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    fetched_at: datetime  # UTC, whole seconds
    source_url: str
    entries: tuple[AppEntry, ...] = ()

    @field_validator("fetched_at")
    @classmethod
    def normalise_fetched_at(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=UTC)
        return v.astimezone(UTC).replace(microsecond=0)

    @field_validator("source_url")
    @classmethod
    def single_line_url(cls, v: str) -> str:
        # written verbatim into the one-line cache header
        if not v or "\n" in v or "\r" in v:
            raise ValueError(f"source_url must be a non-empty single line, got {v!r}")
        return v

    @field_validator("entries")
    @classmethod
    def real_apps_only(cls, v: tuple[AppEntry, ...]) -> tuple[AppEntry, ...]:
        for entry in v:
            if entry.id == NULL_APP_ID or not entry.name:
                raise ValueError(f"not a real app: {entry!r}")
        return v

    @property
    def unix_time(self) -> int:
        return int(self.fetched_at.timestamp())

    def build_index(self) -> CatalogIndex:
        from bigapplist.index import build_index

        return build_index(self.entries, source=self.source_url)
