"""End-to-end tests through the public API with a mocked endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
import respx

import bigapplist
from bigapplist import (
    CacheIntegrityFailure,
    FetchFailure,
    load_freshest_within,
    load_from_json_file,
    load_from_local_file,
    load_from_remote,
    load_latest_cached,
    write_local_file,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from bigapplist.config import Settings
    from bigapplist.models import CatalogSnapshot

REMOTE_URL = "https://api.example.com/ISteamApps/GetAppList/v2/"


@pytest.fixture()
def remote(sample_json: bytes) -> Iterator[respx.Route]:
    with respx.mock(assert_all_called=False) as router:
        yield router.get(REMOTE_URL).mock(return_value=httpx.Response(200, content=sample_json))


class TestCacheCycle:
    def test_first_call_fetches_second_call_hits(
        self, settings: Settings, remote: respx.Route
    ) -> None:
        first = load_freshest_within(settings=settings)
        assert remote.call_count == 1
        files = list(settings.cache_dir.glob("AppList@*.txt"))
        assert len(files) == 1

        second = load_freshest_within(settings=settings)
        assert remote.call_count == 1
        assert set(second.entries) == set(first.entries)
        assert second.fetched_at == first.fetched_at

        index = second.build_index()
        assert index.find_by_id(440) == (3, "Team Fortress 2")
        assert index.find_by_name_case_insensitive("team fortress 2")[1] == 440
        assert index.find_by_name("Missing")[1] == 0

    def test_zero_hours_refetches(
        self, settings: Settings, remote: respx.Route, sample_snapshot: CatalogSnapshot
    ) -> None:
        settings.cache_dir.mkdir(parents=True)
        old = settings.cache_dir / f"AppList@{sample_snapshot.unix_time}.txt"
        write_local_file(sample_snapshot, old)

        load_freshest_within(0, settings=settings)
        assert remote.call_count == 1
        assert len(list(settings.cache_dir.glob("AppList@*.txt"))) == 2

    def test_bugs_log_lives_in_cache_dir(self, settings: Settings) -> None:
        data = b'{"applist":{"apps":[{"appid":-3,"name":"odd"},{"appid":1,"name":"ok"}]}}'
        with respx.mock:
            respx.get(REMOTE_URL).mock(return_value=httpx.Response(200, content=data))
            snapshot = load_freshest_within(settings=settings)
        assert len(snapshot.entries) == 1
        assert "surprising appid -3" in settings.bugs_log_path.read_text(encoding="utf-8")

    def test_renamed_file_is_rejected(self, settings: Settings, remote: respx.Route) -> None:
        load_freshest_within(settings=settings)
        (path,) = settings.cache_dir.glob("AppList@*.txt")
        stamp = int(path.stem.split("@")[1])
        path.rename(path.with_name(f"AppList@{stamp + 1}.txt"))
        with pytest.raises(CacheIntegrityFailure):
            load_freshest_within(settings=settings)

    def test_fetch_failure_reaches_caller(self, settings: Settings) -> None:
        with respx.mock:
            respx.get(REMOTE_URL).mock(return_value=httpx.Response(403))
            with pytest.raises(FetchFailure) as exc_info:
                load_freshest_within(settings=settings)
        assert exc_info.value.status_code == 403


class TestOtherEntryPoints:
    def test_load_from_remote_does_not_cache(
        self, settings: Settings, remote: respx.Route
    ) -> None:
        snapshot = load_from_remote(settings=settings)
        assert len(snapshot.entries) == 6
        assert snapshot.source_url == REMOTE_URL
        assert not settings.cache_dir.exists()

    def test_caller_supplied_client_is_left_open(
        self, settings: Settings, remote: respx.Route
    ) -> None:
        with httpx.Client() as client:
            load_from_remote(settings=settings, client=client)
            assert not client.is_closed

    def test_json_file_then_local_file(
        self, tmp_path: Path, sample_json: bytes, sample_snapshot: CatalogSnapshot
    ) -> None:
        json_path = tmp_path / "applist.json"
        json_path.write_bytes(sample_json)
        from_json = load_from_json_file(json_path)

        local_path = tmp_path / "AppList@1.txt"
        write_local_file(from_json, local_path)
        from_local = load_from_local_file(local_path)

        assert set(from_local.entries) == set(sample_snapshot.entries)
        assert from_local.unix_time == from_json.unix_time

    def test_package_exports(self) -> None:
        for name in bigapplist.__all__:
            assert hasattr(bigapplist, name)
