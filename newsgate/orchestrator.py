"""Aggregator wiring configuration, extractors, the coordinator and the cache."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Sequence

import structlog

from .cache import CacheManager, CacheSnapshot
from .config import ConfigRepository, GlobalConfig, ProviderConfig, Tier, normalise_provider_id
from .engine import (
    ConfiguredExtractor,
    ExtractorRegistry,
    FallbackStore,
    Fetcher,
    RefreshCoordinator,
    RefreshReport,
    RelevanceFilter,
)
from .infra import UserAgentPool
from .logging_conf import configure_logging, provider_logger


class Aggregator:
    """Front door of the engine: one cache, one coordinator, many providers.

    Extractors for configured providers are built from their
    ``ProviderConfig`` unless ``registry`` already holds one under the same
    id, which is how tests and embedders plug in custom extractors.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        providers: Sequence[ProviderConfig],
        fallback: FallbackStore,
        *,
        registry: ExtractorRegistry | None = None,
        fetcher: Fetcher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.global_config = global_config
        self.providers = [provider for provider in providers if provider.enabled]
        self.fallback = fallback
        self.logger = configure_logging().bind(component="aggregator")

        user_agents = global_config.user_agent_list if isinstance(global_config.user_agent_list, list) else None
        self.fetcher = fetcher or Fetcher(
            UserAgentPool(user_agents),
            default_timeout=global_config.default_provider_deadline,
        )
        self.relevance = RelevanceFilter.build(
            global_config.keywords,
            global_config.region_terms,
            global_config.topic_terms,
        )
        self.registry = registry or ExtractorRegistry()
        for provider in self.providers:
            if provider.provider_id in self.registry:
                continue
            self.registry.register(
                provider.provider_id,
                ConfiguredExtractor(
                    provider,
                    self.fetcher,
                    self.relevance,
                    logger=provider_logger(provider.provider_id),
                ),
            )

        self.coordinator = RefreshCoordinator(
            self.registry,
            fallback,
            fast_tier=[p.provider_id for p in self.providers if p.tier is Tier.FAST],
            slow_tier=[p.provider_id for p in self.providers if p.tier is Tier.SLOW],
            provider_deadlines={p.provider_id: global_config.provider_deadline(p) for p in self.providers},
            default_provider_deadline=global_config.default_provider_deadline,
            slow_tier_attempts=global_config.slow_tier_attempts,
            slow_tier_backoff=global_config.slow_tier_backoff_seconds,
            logger=self.logger.bind(component="coordinator"),
            clock=clock,
        )
        self.cache = CacheManager(
            self.coordinator,
            ttl=global_config.cache_ttl_seconds,
            global_deadline=global_config.global_deadline_seconds,
            join_in_flight=global_config.join_in_flight,
            clock=clock,
            logger=self.logger.bind(component="cache"),
        )
        self.logger.info(
            "aggregator_ready",
            providers=[p.provider_id for p in self.providers],
            ttl=global_config.cache_ttl_seconds,
            global_deadline=global_config.global_deadline_seconds,
        )

    @classmethod
    def from_repository(cls, repository: ConfigRepository, **kwargs) -> "Aggregator":
        fallback = FallbackStore.from_payload(repository.load_fallback().as_payload())
        return cls(
            repository.load_global_config(),
            repository.list_providers(),
            fallback,
            **kwargs,
        )

    # ------------------------------------------------------------------
    async def get_aggregated_records(self, provider: str | None = None) -> CacheSnapshot:
        """Read through the cache; a stale cache is refreshed first."""

        return await self.cache.read(provider)

    async def refresh_now(self, providers: Iterable[str] | None = None) -> RefreshReport | None:
        selected = None if providers is None else [normalise_provider_id(p) for p in providers]
        return await self.cache.refresh_now(selected)

    def list_providers(self) -> list[ProviderConfig]:
        return list(self.providers)

    async def aclose(self) -> None:
        await self.cache.close()
        await self.fetcher.aclose()
        self.logger.info("aggregator_closed")

    async def __aenter__(self) -> "Aggregator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


__all__ = ["Aggregator"]
