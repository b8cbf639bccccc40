"""Shared fixtures: isolated home directory, config builders and fake extractors."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from newsgate.config import ConfigLocator, ConfigRepository, ProviderConfig
from newsgate.engine import (
    ExtractorRegistry,
    FallbackStore,
    ProviderResult,
    Record,
    RefreshCoordinator,
)


class FakeExtractor:
    """Scripted extractor.

    Each call consumes the next step of ``script``; the last step repeats.
    Steps are tuples: ``("ok", records)``, ``("fail", message)``,
    ``("raise", exception)`` or ``("hang",)``. ``delay`` is awaited before
    every step.
    """

    def __init__(self, provider: str, script: Iterable[tuple], delay: float = 0.0) -> None:
        self.provider = provider
        self.script = list(script) or [("ok", [])]
        self.delay = delay
        self.calls = 0
        self.started_at: list[float] = []
        self.finished_at: list[float] = []
        self.deadlines: list[float] = []
        self.cancelled = 0

    async def fetch(self, deadline_hint: float) -> ProviderResult:
        loop = asyncio.get_running_loop()
        step = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        self.deadlines.append(deadline_hint)
        self.started_at.append(loop.time())
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            kind = step[0]
            if kind == "hang":
                await asyncio.Event().wait()
            if kind == "raise":
                raise step[1]
            if kind == "fail":
                return ProviderResult.failed(self.provider, step[1])
            return ProviderResult.ok(self.provider, step[1])
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.finished_at.append(loop.time())


class MutableClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 5, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def newsgate_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("NEWSGATE_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def make_record() -> Callable[..., Record]:
    def _builder(provider: str = "A", index: int = 1, **overrides: Any) -> Record:
        base: dict[str, Any] = {
            "provider": provider,
            "title": f"{provider} story {index}",
            "url": f"https://{provider.lower()}.example.com/story/{index}",
        }
        base.update(overrides)
        return Record(**base)

    return _builder


@pytest.fixture
def make_records(make_record) -> Callable[[str, int], list[Record]]:
    def _builder(provider: str, count: int, start: int = 1) -> list[Record]:
        return [make_record(provider, index) for index in range(start, start + count)]

    return _builder


@pytest.fixture
def fake_extractor() -> type[FakeExtractor]:
    return FakeExtractor


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def build_coordinator() -> Callable[..., RefreshCoordinator]:
    def _builder(
        extractors: dict[str, FakeExtractor],
        *,
        fast: Iterable[str] = (),
        slow: Iterable[str] = (),
        fallback: dict[str, list[Record]] | None = None,
        **kwargs: Any,
    ) -> RefreshCoordinator:
        registry = ExtractorRegistry()
        for provider, extractor in extractors.items():
            registry.register(provider, extractor)
        kwargs.setdefault("default_provider_deadline", 1.0)
        kwargs.setdefault("slow_tier_backoff", 0.01)
        return RefreshCoordinator(
            registry,
            FallbackStore(fallback or {}),
            fast_tier=fast,
            slow_tier=slow,
            **kwargs,
        )

    return _builder


@pytest.fixture
def sample_provider_config() -> Callable[..., ProviderConfig]:
    def _builder(**overrides: Any) -> ProviderConfig:
        base: dict[str, Any] = {
            "provider_id": "example",
            "base_url": "https://news.example.com",
            "candidate_urls": ["https://news.example.com/india"],
            "item_selectors": ["article"],
            "title_selectors": ["h2"],
            "link_selectors": ["a"],
            "summary_selectors": ["p"],
        }
        base.update(overrides)
        return ProviderConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
