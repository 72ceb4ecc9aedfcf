"""Unit tests for bigapplist.bugs."""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING

from bigapplist.bugs import BugLog

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


class TestBugLog:
    def test_appends_timestamped_tagged_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "BUGS.log"
        bugs = BugLog(path)
        bugs.record("first thing", source="unit")
        bugs.record("second thing", source="unit", data=b"\xc2\x85")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        pattern = (
            r"^\d{4}-\d\d-\d\d \d\d:\d\d:\d\dZ "
            rf"\(prog \S+ pid {os.getpid()}\) first thing \[unit\]$"
        )
        assert re.match(pattern, lines[0])
        assert lines[1].endswith("second thing [unit]")
        assert lines[2] == "  b'\\xc2\\x85'"

    def test_none_path_writes_nothing(self, tmp_path: Path) -> None:
        BugLog(None).record("only logged", source="unit")
        assert list(tmp_path.iterdir()) == []

    def test_unwritable_falls_back_to_stderr(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        bugs = BugLog(tmp_path / "missing-dir" / "BUGS.log")
        bugs.record("nowhere to go", source="unit")
        err = capsys.readouterr().err
        assert "could not append to" in err
        assert "nowhere to go" in err
