"""Tiered refresh of all providers under one global time budget.

Fast-tier providers run concurrently; slow-tier providers run one after
another with retries. Every provider's result is merged into the cache entry
as soon as it is known, so whatever completed before the budget ran out is
already visible to readers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Mapping

import structlog

from ..config import Tier, normalise_provider_id
from ..errors import ExtractionFailure, ExtractionTimeout, RefreshCycleError, TotalProviderFailure
from .dedup import Deduplicator
from .extractor import ExtractorRegistry
from .fallback import FallbackStore
from .records import ProviderResult, ProviderStatus

if TYPE_CHECKING:
    from ..cache import CacheEntry

# How long cancelled fast-tier tasks get to unwind once the budget is spent
CANCEL_GRACE_SECONDS = 0.1


class MergeAction:
    REPLACED = "replaced"
    KEPT = "kept"
    FALLBACK = "fallback"


@dataclass(slots=True)
class ProviderOutcome:
    """What happened to one provider during a cycle."""

    provider: str
    tier: Tier
    status: ProviderStatus | None = None
    attempts: int = 0
    records: int = 0
    duplicates: int = 0
    action: str = MergeAction.KEPT
    elapsed: float = 0.0
    error: str | None = None


@dataclass(slots=True)
class RefreshReport:
    """Summary of one refresh cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    duration: float = 0.0
    deadline_reached: bool = False
    outcomes: dict[str, ProviderOutcome] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        summary = {"ok": 0, "timed_out": 0, "failed": 0, "skipped": 0, "fallback": 0}
        for outcome in self.outcomes.values():
            if outcome.status is None:
                summary["skipped"] += 1
            else:
                summary[outcome.status.value] += 1
            if outcome.action == MergeAction.FALLBACK:
                summary["fallback"] += 1
        return summary


class RefreshCoordinator:
    """Run extractors under the tiered time-budget policy and merge results."""

    def __init__(
        self,
        registry: ExtractorRegistry,
        fallback: FallbackStore,
        *,
        fast_tier: Iterable[str],
        slow_tier: Iterable[str] = (),
        provider_deadlines: Mapping[str, float] | None = None,
        default_provider_deadline: float = 15.0,
        slow_tier_attempts: int = 3,
        slow_tier_backoff: float = 2.0,
        deduplicator: Deduplicator | None = None,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if slow_tier_attempts < 1:
            raise ValueError("slow_tier_attempts must be >= 1")
        self.registry = registry
        self.fallback = fallback
        self.fast_tier = tuple(dict.fromkeys(normalise_provider_id(p) for p in fast_tier))
        self.slow_tier = tuple(
            p for p in dict.fromkeys(normalise_provider_id(p) for p in slow_tier) if p not in self.fast_tier
        )
        self.provider_deadlines = {
            normalise_provider_id(p): deadline for p, deadline in (provider_deadlines or {}).items()
        }
        self.default_provider_deadline = default_provider_deadline
        self.slow_tier_attempts = slow_tier_attempts
        self.slow_tier_backoff = slow_tier_backoff
        self.deduplicator = deduplicator or Deduplicator()
        self.logger = logger or structlog.get_logger("newsgate").bind(component="coordinator")
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def providers(self) -> tuple[str, ...]:
        return self.fast_tier + self.slow_tier

    def deadline_for(self, provider: str) -> float:
        return self.provider_deadlines.get(provider, self.default_provider_deadline)

    def partition(self, providers: Iterable[str] | None = None) -> tuple[list[str], list[str]]:
        """Split providers into (fast, slow), keeping configured order.

        Ids that are not configured in either tier are dropped.
        """

        if providers is None:
            return list(self.fast_tier), list(self.slow_tier)
        requested = set()
        for provider in providers:
            key = normalise_provider_id(provider)
            if key in self.fast_tier or key in self.slow_tier:
                requested.add(key)
            else:
                self.logger.warning("unknown_provider_ignored", provider=provider)
        fast = [p for p in self.fast_tier if p in requested]
        slow = [p for p in self.slow_tier if p in requested]
        return fast, slow

    # ------------------------------------------------------------------
    async def refresh(
        self,
        entry: "CacheEntry",
        providers: Iterable[str] | None,
        global_deadline: float,
    ) -> RefreshReport:
        """Run one cycle, merging into ``entry`` as results arrive.

        Raises ``RefreshCycleError`` for faults of the coordinator itself;
        provider failures never escape.
        """

        loop = asyncio.get_running_loop()
        started = loop.time()
        cutoff = started + global_deadline
        report = RefreshReport(started_at=self.clock())
        fast, slow = self.partition(providers)
        self.logger.info(
            "refresh_started",
            fast_tier=fast,
            slow_tier=slow,
            global_deadline=global_deadline,
        )
        try:
            await self._run_fast_tier(entry, fast, cutoff, report)
            await self._run_slow_tier(entry, slow, cutoff, report)
        except asyncio.CancelledError:
            raise
        except RefreshCycleError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise RefreshCycleError(f"refresh cycle aborted: {exc}") from exc
        finally:
            report.duration = loop.time() - started
            report.finished_at = self.clock()
        report.deadline_reached = loop.time() >= cutoff
        self.logger.info(
            "refresh_finished",
            duration=round(report.duration, 3),
            deadline_reached=report.deadline_reached,
            **report.counts(),
        )
        return report

    # ------------------------------------------------------------------
    async def _run_fast_tier(
        self,
        entry: "CacheEntry",
        providers: list[str],
        cutoff: float,
        report: RefreshReport,
    ) -> None:
        if not providers:
            return
        loop = asyncio.get_running_loop()
        started = loop.time()
        tasks: dict[asyncio.Task[ProviderResult], str] = {}
        for provider in providers:
            budget = min(self.deadline_for(provider), max(cutoff - started, 0.0))
            task = asyncio.create_task(self._attempt(provider, budget), name=f"fast:{provider}")
            tasks[task] = provider
            report.outcomes[provider] = ProviderOutcome(provider=provider, tier=Tier.FAST, attempts=1)

        pending: set[asyncio.Task[ProviderResult]] = set(tasks)
        try:
            while pending:
                remaining = cutoff - loop.time()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    outcome = report.outcomes[tasks[task]]
                    outcome.elapsed = loop.time() - started
                    self._merge(entry, task.result(), outcome)
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending, timeout=CANCEL_GRACE_SECONDS)

        for task in pending:
            provider = tasks[task]
            outcome = report.outcomes[provider]
            outcome.elapsed = loop.time() - started
            self.logger.warning("provider_abandoned", provider=provider, tier=Tier.FAST.value)
            self._merge(entry, ProviderResult.timed_out(provider, cutoff - started), outcome)

    async def _run_slow_tier(
        self,
        entry: "CacheEntry",
        providers: list[str],
        cutoff: float,
        report: RefreshReport,
    ) -> None:
        loop = asyncio.get_running_loop()
        for provider in providers:
            outcome = ProviderOutcome(provider=provider, tier=Tier.SLOW)
            report.outcomes[provider] = outcome
            started = loop.time()
            result: ProviderResult | None = None
            deadline = self.deadline_for(provider)
            for attempt in range(1, self.slow_tier_attempts + 1):
                if attempt > 1:
                    if loop.time() + self.slow_tier_backoff >= cutoff:
                        break
                    await asyncio.sleep(self.slow_tier_backoff)
                if loop.time() >= cutoff:
                    break
                outcome.attempts = attempt
                result = await self._attempt(provider, deadline)
                if loop.time() > cutoff:
                    # allowed to finish, but too late to count for this cycle
                    self.logger.info(
                        "late_result_discarded", provider=provider, status=result.status.value
                    )
                    result = ProviderResult(
                        provider=provider,
                        status=ProviderStatus.TIMED_OUT,
                        error="result landed after the global deadline",
                    )
                    break
                if result.status is ProviderStatus.OK:
                    break
                self.logger.info(
                    "provider_attempt_failed",
                    provider=provider,
                    attempt=attempt,
                    status=result.status.value,
                    error=result.error,
                )
            outcome.elapsed = loop.time() - started
            if result is None:
                self.logger.info("provider_skipped", provider=provider, reason="global_deadline")
                self._apply_floor(entry, provider, outcome)
                continue
            self._merge(entry, result, outcome)

    async def _attempt(self, provider: str, deadline: float) -> ProviderResult:
        """Run one extractor call, cancelling it when ``deadline`` elapses."""

        if deadline <= 0:
            return ProviderResult.timed_out(provider, deadline)
        try:
            extractor = self.registry.get(provider)
            result = await asyncio.wait_for(extractor.fetch(deadline), timeout=deadline)
        except asyncio.TimeoutError:
            timeout = ExtractionTimeout(provider, deadline)
            self.logger.warning("provider_timeout", provider=provider, error=str(timeout))
            return ProviderResult.timed_out(provider, deadline)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            failure = ExtractionFailure(provider, f"{type(exc).__name__}: {exc}")
            self.logger.warning("provider_failed", provider=provider, error=str(failure))
            return ProviderResult.failed(provider, failure.reason)
        if not isinstance(result, ProviderResult):
            return ProviderResult.failed(provider, f"extractor returned {type(result).__name__}")
        if result.provider != provider:
            result = ProviderResult(
                provider=provider, records=result.records, status=result.status, error=result.error
            )
        return result

    # ------------------------------------------------------------------
    def _merge(self, entry: "CacheEntry", result: ProviderResult, outcome: ProviderOutcome) -> None:
        outcome.status = result.status
        outcome.error = result.error
        if result.usable:
            deduped = self.deduplicator.check(result.records)
            entry.replace(result.provider, deduped.records, live=True)
            outcome.action = MergeAction.REPLACED
            outcome.records = len(deduped.records)
            outcome.duplicates = deduped.dropped
            self.logger.info(
                "provider_merged",
                provider=result.provider,
                records=outcome.records,
                duplicates=deduped.dropped,
            )
            return
        self._apply_floor(entry, result.provider, outcome)

    def _apply_floor(self, entry: "CacheEntry", provider: str, outcome: ProviderOutcome) -> None:
        if entry.has_live(provider):
            outcome.action = MergeAction.KEPT
            outcome.records = len(entry.get(provider))
            self.logger.info(
                "provider_kept_previous",
                provider=provider,
                status=outcome.status.value if outcome.status else "skipped",
            )
            return
        records = self.fallback.get(provider)
        entry.replace(provider, records, live=False)
        outcome.action = MergeAction.FALLBACK
        outcome.records = len(records)
        if outcome.status is not None and outcome.status is not ProviderStatus.OK:
            self.logger.warning(
                "total_provider_failure",
                provider=provider,
                error=str(TotalProviderFailure(provider)),
                status=outcome.status.value,
                fallback_records=len(records),
            )
        else:
            self.logger.info("fallback_applied", provider=provider, fallback_records=len(records))


__all__ = [
    "CANCEL_GRACE_SECONDS",
    "MergeAction",
    "ProviderOutcome",
    "RefreshCoordinator",
    "RefreshReport",
]
