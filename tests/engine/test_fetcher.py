from __future__ import annotations

import httpx
import pytest

from newsgate.engine import FetchRequest, Fetcher
from newsgate.errors import FetchError
from newsgate.infra import DEFAULT_USER_AGENT, UserAgentPool


def _fetcher(handler) -> Fetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Fetcher(UserAgentPool(), client=client)


@pytest.mark.asyncio
async def test_fetcher_sends_browser_headers_and_returns_text() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["headers"] = dict(request.headers)
        return httpx.Response(200, text="<html>ok</html>")

    fetcher = _fetcher(handler)
    response = await fetcher.fetch(
        FetchRequest(url="https://news.example.com/", headers={"X-Extra": "1"}, timeout=2.0)
    )
    await fetcher._client.aclose()

    assert response.status_code == 200
    assert response.text == "<html>ok</html>"
    assert captured["headers"]["user-agent"] == DEFAULT_USER_AGENT
    assert captured["headers"]["x-extra"] == "1"
    assert "text/html" in captured["headers"]["accept"]


@pytest.mark.asyncio
async def test_fetcher_raises_on_error_status() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(FetchError) as excinfo:
        await fetcher.fetch(FetchRequest(url="https://news.example.com/", timeout=2.0))
    await fetcher._client.aclose()
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_fetcher_maps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    fetcher = _fetcher(handler)
    with pytest.raises(FetchError, match="timed out"):
        await fetcher.fetch(FetchRequest(url="https://news.example.com/", timeout=0.5))
    await fetcher._client.aclose()


@pytest.mark.asyncio
async def test_fetcher_rejects_exhausted_deadline() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(200))
    with pytest.raises(FetchError, match="no time left"):
        await fetcher.fetch(FetchRequest(url="https://news.example.com/", timeout=0))
    await fetcher._client.aclose()


def test_user_agent_pool_reads_file(tmp_path) -> None:
    ua_file = tmp_path / "uas.txt"
    ua_file.write_text("UA-1\n\nUA-2\n", encoding="utf-8")
    pool = UserAgentPool(file_path=ua_file)
    assert len(pool) == 2
    assert pool.get() in {"UA-1", "UA-2"}
    pool.refresh([])
    assert pool.get() == DEFAULT_USER_AGENT
