"""Last-known-good result cache with TTL gating and a single in-flight refresh."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

import structlog

from .config import normalise_provider_id
from .engine.coordinator import RefreshCoordinator, RefreshReport
from .engine.records import Record
from .errors import BoundaryError, RefreshCycleError


class CacheEntry:
    """Per-provider record slots plus the staleness clock.

    Slots are held in an immutable mapping that is swapped wholesale on every
    write, so a reader holding ``by_provider`` never sees a half-applied
    update.
    """

    def __init__(self, providers: Iterable[str]) -> None:
        self.by_provider: Mapping[str, tuple[Record, ...]] = MappingProxyType(
            {provider: () for provider in providers}
        )
        self.last_refreshed_at: datetime | None = None
        self.in_flight: bool = False
        self._live: frozenset[str] = frozenset()

    @property
    def providers(self) -> tuple[str, ...]:
        return tuple(self.by_provider)

    @property
    def live_providers(self) -> frozenset[str]:
        """Providers that have produced at least one usable live result."""

        return self._live

    def get(self, provider: str) -> tuple[Record, ...]:
        return self.by_provider.get(provider, ())

    def has_live(self, provider: str) -> bool:
        return provider in self._live

    def replace(self, provider: str, records: Iterable[Record], *, live: bool) -> None:
        if provider not in self.by_provider:
            raise KeyError(f"Provider {provider!r} is not part of the cache")
        slots = dict(self.by_provider)
        slots[provider] = tuple(records)
        self.by_provider = MappingProxyType(slots)
        if live:
            self._live = self._live | {provider}

    def checkpoint(self) -> tuple[Mapping[str, tuple[Record, ...]], frozenset[str]]:
        return self.by_provider, self._live

    def restore(self, checkpoint: tuple[Mapping[str, tuple[Record, ...]], frozenset[str]]) -> None:
        self.by_provider, self._live = checkpoint


@dataclass(frozen=True)
class CacheSnapshot:
    """Records visible at the moment of a read."""

    records: tuple[Record, ...]
    last_refreshed_at: datetime | None
    provider: str | None = None

    @property
    def source(self) -> str:
        return self.provider or "all"

    def __len__(self) -> int:
        return len(self.records)


class CacheManager:
    """Serve reads from the cache and refresh it when it goes stale.

    At most one refresh cycle runs at a time. Readers that find the cache
    stale while a cycle is running get the current contents straight away,
    or, with ``join_in_flight``, wait for that same cycle to finish.
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        *,
        ttl: float,
        global_deadline: float,
        join_in_flight: bool = False,
        clock: Callable[[], datetime] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.ttl = ttl
        self.global_deadline = global_deadline
        self.join_in_flight = join_in_flight
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logger or structlog.get_logger("newsgate").bind(component="cache")
        self._entry = CacheEntry(coordinator.providers)
        self._refresh_task: asyncio.Task[RefreshReport | None] | None = None
        self._closed = False
        self.refresh_count = 0
        self.last_report: RefreshReport | None = None

    @property
    def entry(self) -> CacheEntry:
        return self._entry

    @property
    def last_refreshed_at(self) -> datetime | None:
        return self._entry.last_refreshed_at

    @property
    def in_flight(self) -> bool:
        return self._entry.in_flight

    def is_fresh(self, now: datetime | None = None) -> bool:
        last = self._entry.last_refreshed_at
        if last is None:
            return False
        now = now or self.clock()
        return (now - last).total_seconds() < self.ttl

    # ------------------------------------------------------------------
    async def read(self, provider: str | None = None) -> CacheSnapshot:
        """Return cached records, refreshing first if the cache is stale."""

        self._ensure_readable()
        if not self.is_fresh():
            if self._entry.in_flight:
                if self.join_in_flight and self._refresh_task is not None:
                    await asyncio.shield(self._refresh_task)
                else:
                    self.logger.debug("read_served_during_refresh", provider=provider)
            else:
                await asyncio.shield(self._start_cycle())
        return self.snapshot(provider)

    async def refresh_now(self, providers: Iterable[str] | None = None) -> RefreshReport | None:
        """Run a cycle regardless of TTL, or join the one already running."""

        self._ensure_readable()
        if self._refresh_task is not None:
            return await asyncio.shield(self._refresh_task)
        return await asyncio.shield(self._start_cycle(providers))

    def snapshot(self, provider: str | None = None) -> CacheSnapshot:
        self._ensure_readable()
        slots = self._entry.by_provider
        last = self._entry.last_refreshed_at
        if provider:
            key = normalise_provider_id(provider)
            return CacheSnapshot(records=slots.get(key, ()), last_refreshed_at=last, provider=key)
        records = tuple(record for provider_records in slots.values() for record in provider_records)
        return CacheSnapshot(records=records, last_refreshed_at=last)

    async def close(self) -> None:
        self._closed = True
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------
    def _ensure_readable(self) -> None:
        if self._closed:
            raise BoundaryError("cache manager is closed")

    def _start_cycle(self, providers: Iterable[str] | None = None) -> asyncio.Task[RefreshReport | None]:
        self._entry.in_flight = True
        task = asyncio.create_task(self._run_cycle(providers), name="newsgate-refresh")
        self._refresh_task = task
        return task

    async def _run_cycle(self, providers: Iterable[str] | None) -> RefreshReport | None:
        entry = self._entry
        checkpoint = entry.checkpoint()
        report: RefreshReport | None = None
        try:
            report = await self.coordinator.refresh(entry, providers, self.global_deadline)
        except RefreshCycleError as exc:
            entry.restore(checkpoint)
            self.logger.error("refresh_cycle_error", error=str(exc), exc_info=exc)
        finally:
            entry.last_refreshed_at = self.clock()
            entry.in_flight = False
            self._refresh_task = None
            self.refresh_count += 1
        self.last_report = report
        return report


__all__ = ["CacheEntry", "CacheManager", "CacheSnapshot"]
