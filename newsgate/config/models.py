"""Pydantic models describing the aggregator, its providers and fallback data."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .defaults import DEFAULT_KEYWORDS, DEFAULT_REGION_TERMS, DEFAULT_TOPIC_TERMS


class Tier(str, Enum):
    """Fetch strategy for a provider."""

    FAST = "fast"
    SLOW = "slow"


def normalise_provider_id(value: str) -> str:
    return " ".join(value.split()).upper()


class ProviderConfig(BaseModel):
    """Declarative description of one provider and how to extract it.

    Selector lists are tried in order; the first selector that yields a
    non-empty value wins.
    """

    provider_id: str
    display_name: str = ""
    base_url: str
    tier: Tier = Tier.FAST
    deadline_seconds: float | None = None
    enabled: bool = True
    candidate_urls: list[str]
    item_selectors: list[str] = Field(default_factory=lambda: ["article"])
    title_selectors: list[str] = Field(default_factory=lambda: ["h2", "h3", "h4"])
    link_selectors: list[str] = Field(default_factory=lambda: ["a"])
    summary_selectors: list[str] = Field(default_factory=lambda: ["p"])
    time_selectors: list[str] = Field(default_factory=lambda: ["time"])
    # Anchors scanned when no item selector matched anything on a page
    link_fallback_selector: str | None = None
    link_must_contain: str | None = None
    region_scoped_urls: list[str] = Field(default_factory=list)
    max_records: int | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("provider_id")
    @classmethod
    def _normalise_id(cls, value: str) -> str:
        normalised = normalise_provider_id(value)
        if not normalised:
            raise ValueError("provider_id cannot be empty")
        return normalised

    @field_validator("deadline_seconds")
    @classmethod
    def _positive_deadline(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("deadline_seconds must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_sources(self) -> "ProviderConfig":
        if not self.candidate_urls:
            raise ValueError("candidate_urls cannot be empty")
        if not self.item_selectors and not self.link_fallback_selector:
            raise ValueError("item_selectors or link_fallback_selector is required")
        if self.max_records is not None and self.max_records < 1:
            raise ValueError("max_records must be >= 1")
        if not self.display_name:
            self.display_name = self.provider_id.title()
        return self

    def is_region_scoped(self, page_url: str) -> bool:
        lowered = page_url.lower()
        return any(fragment.lower() in lowered for fragment in self.region_scoped_urls)


class FallbackRecordConfig(BaseModel):
    """A single pre-baked record for the fallback store."""

    title: str
    url: str
    published_at: str | None = None
    summary: str | None = None


class FallbackConfig(BaseModel):
    """Fallback records per provider."""

    providers: dict[str, list[FallbackRecordConfig]] = Field(default_factory=dict)

    @field_validator("providers", mode="before")
    @classmethod
    def _normalise_keys(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {normalise_provider_id(str(key)): items or [] for key, items in value.items()}
        return value

    def as_payload(self) -> dict[str, list[dict[str, Any]]]:
        return {
            provider: [item.model_dump() for item in items]
            for provider, items in self.providers.items()
        }


class GlobalConfig(BaseModel):
    """Timing budget and shared settings for the aggregator."""

    cache_ttl_seconds: float = 600.0
    global_deadline_seconds: float = 50.0
    default_provider_deadline: float = 15.0
    slow_tier_attempts: int = 3
    slow_tier_backoff_seconds: float = 2.0
    join_in_flight: bool = False
    warmup_interval_seconds: float | None = None
    user_agent_list: list[str] | Path | None = None
    keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    region_terms: list[str] = Field(default_factory=lambda: list(DEFAULT_REGION_TERMS))
    topic_terms: list[str] = Field(default_factory=lambda: list(DEFAULT_TOPIC_TERMS))

    @field_validator(
        "cache_ttl_seconds",
        "global_deadline_seconds",
        "default_provider_deadline",
        mode="after",
    )
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("durations must be > 0")
        return value

    @field_validator("slow_tier_backoff_seconds")
    @classmethod
    def _non_negative_backoff(cls, value: float) -> float:
        if value < 0:
            raise ValueError("slow_tier_backoff_seconds must be >= 0")
        return value

    @field_validator("slow_tier_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("slow_tier_attempts must be >= 1")
        return value

    @field_validator("warmup_interval_seconds")
    @classmethod
    def _positive_interval(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("warmup_interval_seconds must be > 0")
        return value

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "GlobalConfig":
        if isinstance(self.user_agent_list, Path):
            if not self.user_agent_list.exists():
                raise ValueError(f"UA file not found: {self.user_agent_list}")
            content = self.user_agent_list.read_text(encoding="utf-8").splitlines()
            self.user_agent_list = [line.strip() for line in content if line.strip()]
        return self

    def provider_deadline(self, provider: ProviderConfig) -> float:
        return provider.deadline_seconds or self.default_provider_deadline


__all__ = [
    "FallbackConfig",
    "FallbackRecordConfig",
    "GlobalConfig",
    "ProviderConfig",
    "Tier",
    "normalise_provider_id",
]
