"""Keyword relevance predicate shared by every extractor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..config.defaults import DEFAULT_KEYWORDS, DEFAULT_REGION_TERMS, DEFAULT_TOPIC_TERMS


def _normalise(terms: Iterable[str]) -> tuple[str, ...]:
    return tuple(term.strip().lower() for term in terms if term and term.strip())


@dataclass(frozen=True)
class RelevanceFilter:
    """Stateless ``is_relevant(text)`` predicate.

    Text is relevant when it mentions a keyword or topic term and, unless the
    page is already region scoped, one of the region terms. An empty region
    list disables the region requirement.
    """

    keywords: tuple[str, ...] = DEFAULT_KEYWORDS
    region_terms: tuple[str, ...] = DEFAULT_REGION_TERMS
    topic_terms: tuple[str, ...] = DEFAULT_TOPIC_TERMS

    @classmethod
    def build(
        cls,
        keywords: Iterable[str] | None = None,
        region_terms: Iterable[str] | None = None,
        topic_terms: Iterable[str] | None = None,
    ) -> "RelevanceFilter":
        return cls(
            keywords=_normalise(DEFAULT_KEYWORDS if keywords is None else keywords),
            region_terms=_normalise(DEFAULT_REGION_TERMS if region_terms is None else region_terms),
            topic_terms=_normalise(DEFAULT_TOPIC_TERMS if topic_terms is None else topic_terms),
        )

    def is_relevant(self, text: str, *, region_scoped: bool = False) -> bool:
        haystack = text.lower()
        if not self.has_topic(haystack):
            return False
        if region_scoped or not self.region_terms:
            return True
        return any(term in haystack for term in self.region_terms)

    def has_topic(self, text: str) -> bool:
        if not self.keywords and not self.topic_terms:
            return True
        haystack = text.lower()
        return any(term in haystack for term in self.keywords) or any(
            term in haystack for term in self.topic_terms
        )

    __call__ = is_relevant


__all__ = ["RelevanceFilter"]
