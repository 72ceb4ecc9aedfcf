"""The compact line-oriented cache format.

One header line, then one line per app::

    From https://api.steampowered.com/ISteamApps/GetAppList/v2/ as of 2019-11-02 10:04:55Z
    10\tCounter-Strike
    1009190\tSome \"quoted\" name

The header gives the source URL and the UTC fetch time (the ``Z`` is
literal). Entry lines hold the decimal app ID, a tab, and the name as a JSON
string literal without its surrounding double quotes, so ``"`` is written
``\\"``, tabs ``\\t`` and so on. Blank lines and lines starting with ``#`` are
ignored.

The reader pulls one line at a time with ``readline()`` and never reads
ahead, so it can be used on a socket's file object with a terminator line
marking the end of the list.
"""

from __future__ import annotations

import json
import os
import re
from datetime import UTC, datetime
from typing import IO, TYPE_CHECKING

import structlog

from bigapplist.errors import FormatFailure, ReadFailure, WriteFailure
from bigapplist.models.catalog import MAX_APP_ID, AppEntry, CatalogSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()

HEADER_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
HEADER_TEMPLATE = "From {url} as of {stamp}Z"
_HEADER = re.compile(
    r'^(?P<q>"?)From (?P<url>.+?) as of '
    r"(?P<stamp>[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2})Z(?P=q)$"
)
_ENTRY_LINE = re.compile(r"([0-9]+)\t(.*)", re.DOTALL)
# digits in MAX_APP_ID; longer runs are out of range without converting them
_MAX_ID_DIGITS = len(str(MAX_APP_ID))


def quote_name(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)[1:-1]


def unquote_name(text: str) -> str:
    """Inverse of :func:`quote_name`. Raises ``ValueError`` on bad escapes.

    A name can never start with a bare ``"`` once quoted, so text that does is
    taken as a complete string literal, quotes included.
    """
    literal = text if text.startswith('"') else f'"{text}"'
    name = json.loads(literal)
    if not isinstance(name, str):
        raise ValueError(f"not a string literal: {text!r}")
    return name


def format_header(snapshot: CatalogSnapshot) -> str:
    return HEADER_TEMPLATE.format(
        url=snapshot.source_url,
        stamp=snapshot.fetched_at.strftime(HEADER_TIME_FORMAT),
    )


def format_entry_line(entry: AppEntry) -> str:
    return f"{entry.id}\t{quote_name(entry.name)}"


class _LineReader:
    """Pulls single lines from a binary stream, tracking line numbers."""

    def __init__(self, stream: IO[bytes], source: str, is_file: bool) -> None:
        self._stream = stream
        self.source = source
        self.is_file = is_file
        self.line_num = 0

    def readline(self) -> bytes | None:
        """Next line without its ``\\n`` or ``\\r\\n``; ``None`` at end of stream."""
        try:
            line = self._stream.readline()
        except OSError as exc:
            raise ReadFailure(
                self.source, is_file=self.is_file, at_start=self.line_num == 0, cause=exc
            ) from exc
        if not line:
            return None
        self.line_num += 1
        if line.endswith(b"\n"):
            line = line[:-1]
            if line.endswith(b"\r"):
                line = line[:-1]
        return line

    def format_error(self, line: bytes | str, header_problem: str = "") -> FormatFailure:
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        return FormatFailure(
            self.source,
            line_num=self.line_num,
            line=line,
            is_file=self.is_file,
            header_problem=header_problem,
        )


def _parse_header(reader: _LineReader, raw: bytes) -> tuple[str, datetime]:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise reader.format_error(raw, "is not valid UTF-8") from None
    m = _HEADER.match(text)
    if m is None:
        raise reader.format_error(
            text, f"is not like {HEADER_TEMPLATE.format(url='URL', stamp='YYYY-MM-DD HH:MM:SS')!r}"
        )
    try:
        stamp = datetime.strptime(m.group("stamp"), HEADER_TIME_FORMAT).replace(tzinfo=UTC)
    except ValueError as exc:
        raise reader.format_error(
            text, f"has bad timestamp {m.group('stamp')!r}: {exc}"
        ) from exc
    return m.group("url"), stamp


def _parse_entry(reader: _LineReader, raw: bytes) -> AppEntry:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise reader.format_error(raw) from None
    m = _ENTRY_LINE.match(text)
    if m is None:
        raise reader.format_error(text)
    digits = m.group(1)
    if len(digits) > _MAX_ID_DIGITS:
        raise reader.format_error(text)
    app_id = int(digits)
    if app_id <= 0 or app_id > MAX_APP_ID:
        raise reader.format_error(text)
    try:
        name = unquote_name(m.group(2))
    except ValueError:
        raise reader.format_error(text) from None
    if not name:
        raise reader.format_error(text)
    return AppEntry(id=app_id, name=name)


def read_local_format(
    stream: IO[bytes],
    *,
    source: str,
    is_file: bool = False,
    terminator: bytes | None = None,
) -> CatalogSnapshot:
    """Read a whole snapshot in the local format from a binary stream.

    Reading stops at end of stream, or at a line equal to ``terminator`` when
    one is given. Any bad line makes the whole read fail.
    """
    reader = _LineReader(stream, source, is_file)

    header = reader.readline()
    if header is None:
        raise ReadFailure(source, is_file=is_file, is_empty=True)
    url, fetched_at = _parse_header(reader, header)

    entries: list[AppEntry] = []
    while (line := reader.readline()) is not None:
        if not line or line.startswith(b"#"):
            continue
        if terminator is not None and line == terminator:
            break
        entries.append(_parse_entry(reader, line))

    log.debug("applist_local_parsed", source=source, count=len(entries))
    return CatalogSnapshot(fetched_at=fetched_at, source_url=url, entries=tuple(entries))


def read_local_file(path: str | os.PathLike[str]) -> CatalogSnapshot:
    try:
        fh = open(path, "rb")  # noqa: SIM115
    except OSError as exc:
        raise ReadFailure(str(path), is_file=True, at_start=True, cause=exc) from exc
    with fh:
        return read_local_format(fh, source=str(path), is_file=True)


def _sorted_by_id(entries: Iterable[AppEntry]) -> list[AppEntry]:
    return sorted(entries, key=lambda e: (e.id, e.name))


def write_local_format(
    snapshot: CatalogSnapshot,
    stream: IO[bytes],
    *,
    dest: str = "stream",
    is_file: bool = False,
) -> None:
    """Write the header and every entry, in app ID order."""
    try:
        stream.write(format_header(snapshot).encode("utf-8") + b"\n")
        for entry in _sorted_by_id(snapshot.entries):
            stream.write(format_entry_line(entry).encode("utf-8") + b"\n")
        stream.flush()
    except (OSError, UnicodeEncodeError) as exc:
        raise WriteFailure(dest, stage="write", is_file=is_file, cause=exc) from exc


def write_local_file(snapshot: CatalogSnapshot, path: str | os.PathLike[str]) -> None:
    """Write ``snapshot`` to a new file at ``path``.

    Fails with ``WriteFailure(stage="create")`` if the file already exists. A
    file left incomplete by a later failure is removed.
    """
    dest = str(path)
    try:
        fh = open(path, "xb")  # noqa: SIM115
    except OSError as exc:
        raise WriteFailure(dest, stage="create", cause=exc) from exc

    try:
        write_local_format(snapshot, fh, dest=dest, is_file=True)
        try:
            os.fsync(fh.fileno())
        except OSError as exc:
            raise WriteFailure(dest, stage="sync", cause=exc) from exc
    except WriteFailure:
        _abandon(fh, path)
        raise

    try:
        fh.close()
    except OSError as exc:
        _discard_partial(path)
        raise WriteFailure(dest, stage="close", cause=exc) from exc
    log.info("applist_local_written", path=dest, count=len(snapshot.entries))


def _abandon(fh: IO[bytes], path: str | os.PathLike[str]) -> None:
    try:
        fh.close()
    except OSError:
        log.warning("applist_close_after_error_failed", path=str(path), exc_info=True)
    _discard_partial(path)


def _discard_partial(path: str | os.PathLike[str]) -> None:
    try:
        os.unlink(path)
    except OSError:
        log.warning("applist_partial_file_left", path=str(path), exc_info=True)
