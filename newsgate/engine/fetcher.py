"""Asynchronous page fetching with caller-supplied deadlines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import httpx
import structlog

from ..errors import FetchError
from ..infra import UserAgentPool

BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}
MAX_REDIRECTS = 5


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    headers: dict[str, str] | None = None
    # Seconds the caller can still wait; becomes the transport timeout
    timeout: float | None = None


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    raw: httpx.Response | None = field(repr=False, default=None)


class Fetcher:
    """Issue GET requests on a shared ``httpx.AsyncClient``.

    The timeout of each request is the deadline the caller passes in, so a
    request never outlives the budget its provider was given. Cancelling the
    awaiting task aborts the underlying connection.
    """

    def __init__(
        self,
        ua_pool: UserAgentPool | None = None,
        logger: structlog.BoundLogger | None = None,
        client: httpx.AsyncClient | None = None,
        default_timeout: float = 15.0,
    ) -> None:
        self.ua_pool = ua_pool or UserAgentPool()
        self.logger = logger or structlog.get_logger("newsgate.fetcher")
        self.default_timeout = default_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=default_timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        headers = dict(BROWSER_HEADERS)
        headers["User-Agent"] = self.ua_pool.get()
        if request.headers:
            headers.update(request.headers)
        timeout = request.timeout if request.timeout is not None else self.default_timeout
        if timeout <= 0:
            raise FetchError(request.url, "no time left before deadline")

        try:
            response = await self._client.get(request.url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise FetchError(request.url, f"timed out after {timeout:.2f}s") from exc
        except httpx.HTTPError as exc:
            raise FetchError(request.url, f"{type(exc).__name__}: {exc}") from exc

        if self._is_failure(response):
            raise FetchError(
                request.url,
                f"unexpected status {response.status_code}",
                status_code=response.status_code,
            )
        self.logger.debug(
            "page_fetched",
            url=str(response.url),
            status=response.status_code,
            size=len(response.text),
        )
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            raw=response,
        )

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        return status_code >= 400 or status_code == 0


__all__ = ["BROWSER_HEADERS", "FetchRequest", "FetchResponse", "Fetcher"]
