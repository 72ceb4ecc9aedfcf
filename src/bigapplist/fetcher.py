"""HTTP access to the app list endpoint.

The body is streamed, never buffered whole: callers get an iterator of byte
chunks to feed straight into the remote-format reader. There are no retries
here; every failure goes back to the caller.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

import httpx
import structlog

from bigapplist.config import RemoteSettings
from bigapplist.errors import FetchFailure, ReadFailure

if TYPE_CHECKING:
    from collections.abc import Iterator

log = structlog.get_logger()


def build_http_client(settings: RemoteSettings | None = None) -> httpx.Client:
    """Create the shared httpx client. Redirects are followed by httpx."""
    settings = settings or RemoteSettings()
    return httpx.Client(
        timeout=httpx.Timeout(settings.timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
    )


class Fetcher:
    """Streams GET responses, mapping httpx failures onto bigapplist errors."""

    def __init__(self, client: httpx.Client, settings: RemoteSettings | None = None) -> None:
        self._client = client
        self._settings = settings or RemoteSettings()

    @property
    def url(self) -> str:
        return self._settings.url

    @contextmanager
    def stream(self, url: str | None = None) -> Iterator[Iterator[bytes]]:
        """Open ``url`` (default: the configured endpoint) and yield its body chunks.

        Raises :class:`FetchFailure` for bad URLs, connection problems, redirect
        loops and non-2xx statuses. Request errors while the body is being
        consumed surface as :class:`ReadFailure`.
        """
        url = url or self.url
        try:
            request = self._client.build_request("GET", url)
            response = self._client.send(request, stream=True)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            log.warning("applist_fetch_failed", url=url, error=str(exc))
            raise FetchFailure(url, cause=exc) from exc

        try:
            if not response.is_success:
                log.warning("applist_fetch_failed", url=url, status_code=response.status_code)
                raise FetchFailure(
                    url, status_code=response.status_code, reason=response.reason_phrase
                )
            log.info("applist_fetch_started", url=url)
            yield _body_chunks(response, url)
        finally:
            response.close()


def _body_chunks(response: httpx.Response, url: str) -> Iterator[bytes]:
    received = 0
    try:
        for chunk in response.iter_bytes():
            received += len(chunk)
            yield chunk
    except httpx.RequestError as exc:
        # includes DecodingError for a body that does not match its Content-Encoding
        log.warning("applist_body_read_failed", url=url, received=received, error=str(exc))
        raise ReadFailure(url, at_start=received == 0, cause=exc) from exc
    log.debug("applist_body_complete", url=url, received=received)
