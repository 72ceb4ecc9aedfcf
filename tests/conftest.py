"""Shared fixtures: a small app list in every representation."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from bigapplist.models.catalog import AppEntry, CatalogSnapshot

SAMPLE_URL = "https://api.example.com/ISteamApps/GetAppList/v2/"
SAMPLE_FETCHED_AT = datetime(2019, 11, 2, 10, 4, 55, tzinfo=UTC)


def make_json(pairs: list[tuple[int, str]]) -> bytes:
    """GetAppList-shaped JSON, no whitespace, names escaped like upstream."""
    apps = ",".join(
        f'{{"appid":{app_id},"name":{json.dumps(name, ensure_ascii=False)}}}'
        for app_id, name in pairs
    )
    return f'{{"applist":{{"apps":[{apps}]}}}}'.encode()


@pytest.fixture()
def applist_json() -> Callable[[list[tuple[int, str]]], bytes]:
    return make_json


@pytest.fixture()
def sample_entries() -> list[AppEntry]:
    return [
        AppEntry(id=440, name="Team Fortress 2"),
        AppEntry(id=10, name="Counter-Strike"),
        AppEntry(id=570, name="Dota 2"),
        AppEntry(id=1009190, name='The "Quoted" Edition'),
        AppEntry(id=220, name="half-life 2"),
        AppEntry(id=70, name="Half-Life"),
    ]


@pytest.fixture()
def sample_snapshot(sample_entries: list[AppEntry]) -> CatalogSnapshot:
    return CatalogSnapshot(
        fetched_at=SAMPLE_FETCHED_AT,
        source_url=SAMPLE_URL,
        entries=tuple(sample_entries),
    )


@pytest.fixture()
def sample_json(sample_entries: list[AppEntry]) -> bytes:
    return make_json([(e.id, e.name) for e in sample_entries])
