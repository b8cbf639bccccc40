"""Configuration-driven extractor and the provider registry."""

from __future__ import annotations

import asyncio
from typing import Iterator

import structlog

from ..config import ProviderConfig, normalise_provider_id
from ..errors import FetchError
from .fetcher import FetchRequest, Fetcher
from .parser import Parser
from .records import Extractor, ProviderResult, Record
from .relevance import RelevanceFilter


class ConfiguredExtractor:
    """Extract one provider's records from its candidate listing pages.

    Pages are fetched one after another until the deadline hint is used up.
    A page that fails is skipped; the provider only fails when every page
    it tried failed.
    """

    def __init__(
        self,
        config: ProviderConfig,
        fetcher: Fetcher,
        relevance: RelevanceFilter,
        parser: Parser | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.relevance = relevance
        self.parser = parser or Parser()
        self.logger = logger or structlog.get_logger("newsgate.extractor").bind(
            provider=config.provider_id
        )

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    async def fetch(self, deadline_hint: float) -> ProviderResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + deadline_hint
        records: list[Record] = []
        seen: set[str] = set()
        failures: list[str] = []
        attempted = 0

        for page_url in self.config.candidate_urls:
            remaining = deadline - loop.time()
            if remaining <= 0:
                self.logger.info("extract_deadline_reached", pages_attempted=attempted)
                break
            attempted += 1
            try:
                response = await self.fetcher.fetch(
                    FetchRequest(url=page_url, headers=self.config.headers, timeout=remaining)
                )
                items = self.parser.parse_listing(self.config, response.text, response.url)
            except FetchError as exc:
                failures.append(str(exc))
                self.logger.warning("page_fetch_failed", url=page_url, error=exc.reason)
                continue
            except Exception as exc:  # noqa: BLE001
                failures.append(f"{page_url}: {exc}")
                self.logger.warning("page_parse_failed", url=page_url, error=str(exc))
                continue

            region_scoped = self.config.is_region_scoped(page_url)
            kept = 0
            for item in items:
                if item.url in seen:
                    continue
                if not self.relevance.is_relevant(item.text, region_scoped=region_scoped):
                    continue
                seen.add(item.url)
                kept += 1
                records.append(
                    Record(
                        provider=self.provider_id,
                        title=item.title,
                        url=item.url,
                        published_at=item.published_at,
                        summary=item.summary,
                    )
                )
            self.logger.info("page_extracted", url=page_url, candidates=len(items), kept=kept)
            if self.config.max_records and len(records) >= self.config.max_records:
                records = records[: self.config.max_records]
                break

        if attempted == 0:
            return ProviderResult.timed_out(self.provider_id, deadline_hint)
        if len(failures) == attempted:
            return ProviderResult.failed(self.provider_id, "; ".join(failures))
        self.logger.info("provider_extracted", records=len(records), pages_attempted=attempted)
        return ProviderResult.ok(self.provider_id, records)


class ExtractorRegistry:
    """Extractors registered under stable provider identifiers."""

    def __init__(self) -> None:
        self._extractors: dict[str, Extractor] = {}

    def register(self, provider_id: str, extractor: Extractor, *, replace: bool = False) -> None:
        key = normalise_provider_id(provider_id)
        if not key:
            raise ValueError("provider_id cannot be empty")
        if not isinstance(extractor, Extractor):
            raise TypeError(f"{extractor!r} does not implement fetch(deadline_hint)")
        if key in self._extractors and not replace:
            raise ValueError(f"Extractor already registered for provider {key}")
        self._extractors[key] = extractor

    def unregister(self, provider_id: str) -> None:
        self._extractors.pop(normalise_provider_id(provider_id), None)

    def get(self, provider_id: str) -> Extractor:
        key = normalise_provider_id(provider_id)
        try:
            return self._extractors[key]
        except KeyError:
            raise KeyError(f"No extractor registered for provider {key}") from None

    def providers(self) -> list[str]:
        return list(self._extractors)

    def __contains__(self, provider_id: object) -> bool:
        return isinstance(provider_id, str) and normalise_provider_id(provider_id) in self._extractors

    def __iter__(self) -> Iterator[str]:
        return iter(self._extractors)

    def __len__(self) -> int:
        return len(self._extractors)


__all__ = ["ConfiguredExtractor", "ExtractorRegistry"]
