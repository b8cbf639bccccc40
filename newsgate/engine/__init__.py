"""Engine components: extract -> filter -> dedupe -> merge into the cache."""

from .coordinator import MergeAction, ProviderOutcome, RefreshCoordinator, RefreshReport
from .dedup import DeduplicationResult, Deduplicator
from .extractor import ConfiguredExtractor, ExtractorRegistry
from .fallback import FallbackStore
from .fetcher import FetchRequest, FetchResponse, Fetcher
from .parser import ParsedItem, Parser
from .records import Extractor, ProviderResult, ProviderStatus, Record
from .relevance import RelevanceFilter

__all__ = [
    "ConfiguredExtractor",
    "DeduplicationResult",
    "Deduplicator",
    "Extractor",
    "ExtractorRegistry",
    "FallbackStore",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "MergeAction",
    "ParsedItem",
    "Parser",
    "ProviderOutcome",
    "ProviderResult",
    "ProviderStatus",
    "Record",
    "RefreshCoordinator",
    "RefreshReport",
    "RelevanceFilter",
]
