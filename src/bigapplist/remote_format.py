"""Streaming reader for the JSON returned by ISteamApps/GetAppList/v2.

The document is several megabytes with no whitespace at all, and has exactly
one shape::

    {"applist":{"apps":[{"appid":N,"name":"S"},{"appid":N,"name":"S"},...]}}

so rather than building a JSON tree we match that fixed shape entry by entry
against a rolling byte buffer fed from any iterable of ``bytes`` chunks (an
httpx body iterator, or a file read in blocks). Only the name strings go
through :func:`json.loads`.

Some names need repair after decoding:

* a trailing tab (seen on one defunct app) is removed;
* U+0092 and U+0099 are C1 control characters, but upstream uses them for the
  CP1252 characters "’" (U+2019) and "™" (U+2122); they are translated. Any
  other C1 control is kept as-is and recorded in ``BUGS.log``.
"""

from __future__ import annotations

import json
import os
import re
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING

import structlog

from bigapplist.config import DEFAULT_URL
from bigapplist.errors import ParseFailure, ReadFailure
from bigapplist.index import accept_entry
from bigapplist.models.catalog import MAX_APP_ID, CatalogSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bigapplist.bugs import BugLog
    from bigapplist.models.catalog import AppEntry

log = structlog.get_logger()

_START = b'{"applist":{"apps":['
_END = b"]}}"
_ENTRY = rb'\{"appid":(-?\d+),"name":("(?:[^"\\]|\\.)*")\}'
_FIRST_ENTRY = re.compile(_ENTRY, re.DOTALL)
_NEXT_ENTRY = re.compile(b"," + _ENTRY, re.DOTALL)

_CHUNK_SIZE = 64 * 1024
_READ_AHEAD = 4 * 1024
# No real entry comes close; the longest name seen is under 300 bytes.
_MAX_ENTRY = 1024 * 1024
# sign plus the digits of MAX_APP_ID; anything longer is out of range
_MAX_ID_CHARS = 1 + len(str(MAX_APP_ID))
_EXCERPT_BEFORE = 16
_EXCERPT_AFTER = 48

_CP1252_FIXES = {
    "\u0092": "’",  # RIGHT SINGLE QUOTATION MARK
    "\u0099": "™",  # TRADE MARK SIGN
}
_C1_CONTROLS = re.compile("[\u0080-\u009f]")


class _ByteScanner:
    """Rolling buffer over a chunk iterator, with absolute byte offsets."""

    def __init__(self, chunks: Iterable[bytes], source: str, is_file: bool) -> None:
        self._chunks = iter(chunks)
        self._source = source
        self._is_file = is_file
        self._buf = bytearray()
        self._pos = 0
        self._base = 0  # absolute offset of _buf[0]
        self._eof = False
        self.bytes_read = 0

    @property
    def offset(self) -> int:
        return self._base + self._pos

    def _fill(self, want: int) -> None:
        """Read until ``want`` bytes are buffered past the cursor, or EOF."""
        while not self._eof and len(self._buf) - self._pos < want:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._eof = True
                break
            except OSError as exc:
                raise ReadFailure(
                    self._source,
                    is_file=self._is_file,
                    at_start=self.bytes_read == 0,
                    cause=exc,
                ) from exc
            self.bytes_read += len(chunk)
            self._buf += chunk

    def _compact(self) -> None:
        keep_from = self._pos - _EXCERPT_BEFORE
        if keep_from > _CHUNK_SIZE:
            del self._buf[:keep_from]
            self._base += keep_from
            self._pos -= keep_from

    def take_literal(self, literal: bytes) -> bool:
        self._fill(len(literal))
        if self._buf.startswith(literal, self._pos):
            self._pos += len(literal)
            return True
        return False

    def match(self, pattern: re.Pattern[bytes]) -> re.Match[bytes] | None:
        # the previous match is done with by now; its groups slice _buf
        self._compact()
        want = _READ_AHEAD
        while True:
            self._fill(want)
            m = pattern.match(self._buf, self._pos)
            if m is not None:
                self._pos = m.end()
                return m
            if self._eof or want >= _MAX_ENTRY:
                return None
            want *= 2

    def excerpt(self) -> bytes:
        self._fill(_EXCERPT_AFTER)
        start = max(0, self._pos - _EXCERPT_BEFORE)
        return bytes(self._buf[start : self._pos + _EXCERPT_AFTER])


def _anomaly(message: str, source: str, bugs: BugLog | None, data: bytes | None = None) -> None:
    if bugs is not None:
        bugs.record(message, source=source, data=data)
    else:
        log.warning("applist_anomaly", detail=message, source=source)


def repair_name(name: str, app_id: int, *, source: str, bugs: BugLog | None = None) -> str:
    """Apply the upstream data fix-ups described in the module docstring."""
    if name.endswith("\t"):
        name = name[:-1]

    if _C1_CONTROLS.search(name) is None:
        return name

    for bad, good in _CP1252_FIXES.items():
        name = name.replace(bad, good)
    for m in _C1_CONTROLS.finditer(name):
        _anomaly(f"name for app {app_id} contains weird char U+{ord(m.group()):04X}", source, bugs)
    return name


def _parse_failure(
    scanner: _ByteScanner,
    source: str,
    is_file: bool,
    at_start: bool,
    bugs: BugLog | None,
    what: str,
) -> ParseFailure:
    excerpt = scanner.excerpt()
    if bugs is not None:
        bugs.record(f"cannot parse {what} at byte {scanner.offset}", source=source, data=excerpt)
    return ParseFailure(
        source, offset=scanner.offset, excerpt=excerpt, is_file=is_file, at_start=at_start
    )


def _decode_entry(
    m: re.Match[bytes],
    scanner: _ByteScanner,
    source: str,
    is_file: bool,
    bugs: BugLog | None,
) -> AppEntry | None:
    digits = m.group(1)
    shown_id = digits.decode("ascii") if len(digits) <= _MAX_ID_CHARS else "<huge>"
    raw_name = m.group(2)

    # A bad byte spoils only this record; bad JSON escapes mean a broken document.
    try:
        text = raw_name.decode("utf-8")
    except UnicodeDecodeError:
        _anomaly(f"dropping app {shown_id}: name is not valid UTF-8", source, bugs, raw_name)
        return None
    try:
        name = json.loads(text, strict=False)
    except ValueError as exc:
        offset = scanner.offset - len(m.group(0))
        excerpt = m.group(0)[: _EXCERPT_AFTER + _EXCERPT_BEFORE]
        if bugs is not None:
            message = f"cannot decode name of app {shown_id} at byte {offset}"
            bugs.record(message, source=source, data=excerpt)
        raise ParseFailure(source, offset=offset, excerpt=excerpt, is_file=is_file) from exc

    if len(digits) > _MAX_ID_CHARS:
        _anomaly(
            f"ignoring surprising appid of {len(digits)} digits for {name!r}",
            source,
            bugs,
            digits[:_EXCERPT_AFTER],
        )
        return None
    app_id = int(digits)

    name = repair_name(name, app_id, source=source, bugs=bugs)
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        _anomaly(f"dropping app {app_id}: name {name!r} is not valid Unicode", source, bugs)
        return None
    return accept_entry(app_id, name, source=source, bugs=bugs)


def iter_remote_entries(
    chunks: Iterable[bytes],
    *,
    source: str,
    is_file: bool = False,
    bugs: BugLog | None = None,
) -> Iterator[AppEntry]:
    """Yield accepted entries as they are parsed from ``chunks``.

    Raises :class:`ParseFailure` or :class:`ReadFailure` part-way through;
    callers that need all-or-nothing should use :func:`read_remote_format`.
    """
    scanner = _ByteScanner(chunks, source, is_file)

    if not scanner.take_literal(_START):
        raise _parse_failure(scanner, source, is_file, True, bugs, "start of app list")
    if scanner.take_literal(_END):
        return

    m = scanner.match(_FIRST_ENTRY)
    if m is None:
        raise _parse_failure(scanner, source, is_file, True, bugs, "first app")
    entry = _decode_entry(m, scanner, source, is_file, bugs)
    if entry is not None:
        yield entry

    while not scanner.take_literal(_END):
        m = scanner.match(_NEXT_ENTRY)
        if m is None:
            raise _parse_failure(scanner, source, is_file, False, bugs, "app")
        entry = _decode_entry(m, scanner, source, is_file, bugs)
        if entry is not None:
            yield entry


def read_remote_format(
    chunks: Iterable[bytes],
    *,
    source: str,
    url: str = DEFAULT_URL,
    fetched_at: datetime | None = None,
    is_file: bool = False,
    bugs: BugLog | None = None,
) -> CatalogSnapshot:
    """Parse a complete GetAppList document into a snapshot.

    ``fetched_at`` defaults to now: the API has no "as of" field.
    """
    if fetched_at is None:
        fetched_at = datetime.now(UTC)
    entries = tuple(iter_remote_entries(chunks, source=source, is_file=is_file, bugs=bugs))
    log.info("applist_json_parsed", source=source, count=len(entries))
    return CatalogSnapshot(fetched_at=fetched_at, source_url=url, entries=entries)


def read_remote_file(
    path: str | os.PathLike[str],
    *,
    url: str = DEFAULT_URL,
    fetched_at: datetime | None = None,
    bugs: BugLog | None = None,
) -> CatalogSnapshot:
    """Parse a saved GetAppList JSON file. ``fetched_at`` defaults to its mtime."""
    try:
        fh = open(path, "rb")  # noqa: SIM115
    except OSError as exc:
        raise ReadFailure(str(path), is_file=True, at_start=True, cause=exc) from exc
    with fh:
        if fetched_at is None:
            fetched_at = datetime.fromtimestamp(os.fstat(fh.fileno()).st_mtime, UTC)
        return read_remote_format(
            iter(partial(fh.read, _CHUNK_SIZE), b""),
            source=str(path),
            url=url,
            fetched_at=fetched_at,
            is_file=True,
            bugs=bugs,
        )
