"""Append-only ``BUGS.log`` for data-quality anomalies.

Anomalies (surprising app IDs, unrecognised legacy-encoding characters, bytes
that stopped a parse) are never fatal on their own, but someone should be able
to see them later. Each one is logged through structlog and appended to a side
file in the cache directory. The file is advisory only: nothing reads it back.
"""

from __future__ import annotations

import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import structlog

log = structlog.get_logger()


class BugLog:
    """Timestamped, process-tagged anomaly recorder.

    ``BugLog(None)`` records through structlog only.
    """

    def __init__(self, path: Path | None) -> None:
        self.path = path

    def format_entry(self, message: str, source: str, data: bytes | None = None) -> str:
        stamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%SZ")
        prog = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "python"
        text = f"{stamp} (prog {prog} pid {os.getpid()}) {message} [{source}]\n"
        if data:
            text += f"  {data!r}\n"
        return text

    def record(self, message: str, *, source: str, data: bytes | None = None) -> None:
        log.warning("applist_anomaly", detail=message, source=source)
        if self.path is None:
            return

        text = self.format_entry(message, source, data)
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            log.warning("bugs_log_write_error", path=str(self.path), error=str(exc))
            sys.stderr.write(f"could not append to {str(self.path)!r}: {text}")
