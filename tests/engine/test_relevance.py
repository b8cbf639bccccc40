from __future__ import annotations

from newsgate.engine import RelevanceFilter


def test_default_filter_requires_topic_and_region() -> None:
    relevance = RelevanceFilter.build()
    assert relevance.is_relevant("Indian army responds to shelling near the LoC")
    assert not relevance.is_relevant("Army parade held in Paris")
    assert not relevance.is_relevant("Mumbai stock exchange closes higher")


def test_region_scoped_page_skips_region_requirement() -> None:
    relevance = RelevanceFilter.build()
    text = "Drone sightings reported overnight"
    assert not relevance.is_relevant(text)
    assert relevance.is_relevant(text, region_scoped=True)


def test_custom_terms_are_normalised() -> None:
    relevance = RelevanceFilter.build(keywords=["  Flood "], region_terms=[], topic_terms=[])
    assert relevance.keywords == ("flood",)
    assert relevance("FLOOD warning issued")
    assert not relevance("Sunny weekend ahead")


def test_empty_term_lists_accept_everything() -> None:
    relevance = RelevanceFilter.build(keywords=[], region_terms=[], topic_terms=[])
    assert relevance.is_relevant("anything at all")
