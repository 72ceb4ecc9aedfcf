"""Error taxonomy for loading, parsing and caching the app list.

Every error is terminal for the call that raised it. The library never retries
and never silently falls back from one format to another; callers decide.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ErrorCode(StrEnum):
    READ_FAILED = "READ_FAILED"
    PARSE_FAILED = "PARSE_FAILED"
    FORMAT_INVALID = "FORMAT_INVALID"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    FETCH_FAILED = "FETCH_FAILED"
    WRITE_FAILED = "WRITE_FAILED"


class AppListError(Exception):
    """Base class for every failure raised by bigapplist."""

    def __init__(self, code: ErrorCode, message: str, *, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable


def _describe(source: str, is_file: bool) -> str:
    return f"file {source!r}" if is_file else source


class ReadFailure(AppListError):
    """Transport or filesystem I/O broke while reading."""

    def __init__(
        self,
        source: str,
        *,
        is_file: bool = False,
        at_start: bool = False,
        is_empty: bool = False,
        cause: BaseException | None = None,
    ) -> None:
        where = _describe(source, is_file)
        if is_empty:
            where = "empty " + where
        elif at_start:
            where = "start of " + where
        detail = str(cause) if cause is not None else "no data"
        super().__init__(ErrorCode.READ_FAILED, f"cannot read {where}: {detail}", recoverable=True)
        self.source = source
        self.is_file = is_file
        self.at_start = at_start
        self.is_empty = is_empty


class ParseFailure(AppListError):
    """Bytes from the remote JSON did not match the expected grammar."""

    def __init__(
        self,
        source: str,
        *,
        offset: int,
        excerpt: bytes,
        is_file: bool = False,
        at_start: bool = False,
    ) -> None:
        where = _describe(source, is_file)
        if at_start:
            where = "start of " + where
        super().__init__(
            ErrorCode.PARSE_FAILED,
            f"cannot parse {where} as GetAppList JSON at byte {offset}: {excerpt!r}",
        )
        self.source = source
        self.is_file = is_file
        self.at_start = at_start
        self.offset = offset
        self.excerpt = excerpt


class FormatFailure(AppListError):
    """A local-format line is well formed text but not a valid entry or header.

    ``line`` holds the offending line itself for callers that want to show it.
    """

    def __init__(
        self,
        source: str,
        *,
        line_num: int,
        line: str,
        is_file: bool = False,
        header_problem: str = "",
    ) -> None:
        where = _describe(source, is_file)
        if header_problem:
            message = f"header line from {where} {header_problem}"
        else:
            message = f"cannot parse line {line_num} from {where}: {line!r}"
        super().__init__(ErrorCode.FORMAT_INVALID, message)
        self.source = source
        self.is_file = is_file
        self.line_num = line_num
        self.line = line
        self.header_problem = header_problem


class CacheIntegrityFailure(AppListError):
    """A cache file's name and contents disagree about when it was fetched."""

    def __init__(self, path: Path, *, file_time: int, content_time: int) -> None:
        super().__init__(
            ErrorCode.CACHE_CORRUPTED,
            f"cache file {str(path)!r} is named for time {file_time} "
            f"but its header says {content_time}",
        )
        self.path = path
        self.file_time = file_time
        self.content_time = content_time


class FetchFailure(AppListError):
    """The HTTP GET for the app list did not produce a 2xx response."""

    def __init__(
        self,
        url: str,
        *,
        status_code: int | None = None,
        reason: str = "",
        cause: BaseException | None = None,
    ) -> None:
        if status_code is not None:
            message = f"cannot GET {url!r}: HTTP status {status_code} ({reason})"
            recoverable = status_code >= 500 or status_code == 429
        else:
            message = f"cannot GET {url!r}: {cause}"
            recoverable = True
        super().__init__(ErrorCode.FETCH_FAILED, message, recoverable=recoverable)
        self.url = url
        self.status_code = status_code
        self.reason = reason


WRITE_STAGES = ("create", "write", "sync", "close")


class WriteFailure(AppListError):
    """Writing a cache file failed; ``stage`` says where."""

    def __init__(self, dest: str, *, stage: str, is_file: bool = True, cause: BaseException) -> None:
        if stage not in WRITE_STAGES:
            raise ValueError(f"unknown write stage: {stage!r}")
        verb = {
            "create": "create",
            "write": "write to",
            "sync": "finish writing",
            "close": "close new",
        }[stage]
        super().__init__(
            ErrorCode.WRITE_FAILED,
            f"cannot {verb} {_describe(dest, is_file)}: {cause}",
            recoverable=True,
        )
        self.dest = dest
        self.stage = stage
        self.is_file = is_file
