"""Integration fixtures: settings pointing at a temporary cache directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bigapplist.config import Settings

if TYPE_CHECKING:
    from pathlib import Path

REMOTE_URL = "https://api.example.com/ISteamApps/GetAppList/v2/"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        remote={"url": REMOTE_URL, "timeout_seconds": 5},
        cache={"dir": str(tmp_path / "cache"), "max_age_hours": 24},
    )
