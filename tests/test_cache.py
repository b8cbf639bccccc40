from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from newsgate.cache import CacheEntry, CacheManager
from newsgate.errors import BoundaryError, RefreshCycleError


def _manager(coordinator, clock, **kwargs) -> CacheManager:
    kwargs.setdefault("ttl", 600)
    kwargs.setdefault("global_deadline", 1.0)
    return CacheManager(coordinator, clock=clock, **kwargs)


@pytest.mark.asyncio
async def test_fresh_cache_is_served_without_refresh(
    build_coordinator, fake_extractor, make_records, clock
) -> None:
    extractor = fake_extractor("A", [("ok", make_records("A", 2))])
    manager = _manager(build_coordinator({"A": extractor}, fast=["A"]), clock)

    first = await manager.read()
    assert extractor.calls == 1
    assert len(first) == 2
    assert first.last_refreshed_at == clock.now

    clock.advance(300)
    second = await manager.read()
    assert extractor.calls == 1
    assert second.records == first.records

    clock.advance(301)
    await manager.read()
    assert extractor.calls == 2
    assert manager.refresh_count == 2


@pytest.mark.asyncio
async def test_concurrent_stale_reads_start_one_refresh(
    build_coordinator, fake_extractor, make_records, clock
) -> None:
    extractor = fake_extractor("A", [("ok", make_records("A", 1))], delay=0.05)
    manager = _manager(build_coordinator({"A": extractor}, fast=["A"]), clock)

    results = await asyncio.gather(*(manager.read() for _ in range(5)))

    assert extractor.calls == 1
    # the reader that started the cycle waits for it, the others are served at once
    assert len(results[0]) == 1
    assert all(len(result) == 0 for result in results[1:])
    assert not manager.in_flight


@pytest.mark.asyncio
async def test_join_in_flight_readers_see_the_new_state(
    build_coordinator, fake_extractor, make_records, clock
) -> None:
    extractor = fake_extractor("A", [("ok", make_records("A", 1))], delay=0.05)
    manager = _manager(build_coordinator({"A": extractor}, fast=["A"]), clock, join_in_flight=True)

    results = await asyncio.gather(*(manager.read() for _ in range(5)))

    assert extractor.calls == 1
    assert all(len(result) == 1 for result in results)


@pytest.mark.asyncio
async def test_read_single_provider(build_coordinator, fake_extractor, make_records, clock) -> None:
    a_records = make_records("A", 2)
    manager = _manager(
        build_coordinator(
            {
                "A": fake_extractor("A", [("ok", a_records)]),
                "B": fake_extractor("B", [("ok", make_records("B", 3))]),
            },
            fast=["A", "B"],
        ),
        clock,
    )

    snapshot = await manager.read("a")
    assert snapshot.records == tuple(a_records)
    assert snapshot.source == "A"

    combined = await manager.read()
    assert len(combined) == 5
    assert combined.source == "all"
    assert [record.provider for record in combined.records] == ["A", "A", "B", "B", "B"]

    unknown = await manager.read("nobody")
    assert unknown.records == ()


@pytest.mark.asyncio
async def test_refresh_cycle_error_restores_previous_slots(make_records, clock) -> None:
    previous = make_records("A", 1)

    async def refresh(entry, providers, global_deadline):
        entry.replace("A", make_records("A", 4, start=50), live=True)
        raise RefreshCycleError("coordinator bug")

    coordinator = SimpleNamespace(providers=("A",), refresh=refresh)
    manager = _manager(coordinator, clock)
    manager.entry.replace("A", previous, live=True)

    snapshot = await manager.read()

    assert snapshot.records == tuple(previous)
    assert snapshot.last_refreshed_at == clock.now
    assert manager.last_report is None
    assert not manager.in_flight


@pytest.mark.asyncio
async def test_refresh_now_ignores_ttl(build_coordinator, fake_extractor, make_records, clock) -> None:
    extractor = fake_extractor("A", [("ok", make_records("A", 1))])
    manager = _manager(build_coordinator({"A": extractor}, fast=["A"]), clock)

    await manager.read()
    report = await manager.refresh_now()

    assert extractor.calls == 2
    assert report is not None
    assert report.outcomes["A"].records == 1


@pytest.mark.asyncio
async def test_refresh_now_with_unknown_provider_keeps_known_records(
    build_coordinator, fake_extractor, make_records, clock
) -> None:
    a_records = make_records("A", 2)
    manager = _manager(
        build_coordinator({"A": fake_extractor("A", [("ok", a_records)])}, fast=["A"]), clock
    )

    report = await manager.refresh_now(["A", "TYPO"])

    assert report is not None
    assert report.outcomes["A"].records == 2
    assert manager.entry.get("A") == tuple(a_records)
    assert manager.snapshot().records == tuple(a_records)


@pytest.mark.asyncio
async def test_closed_manager_raises_boundary_error(build_coordinator, fake_extractor, clock) -> None:
    manager = _manager(build_coordinator({"A": fake_extractor("A", [])}, fast=["A"]), clock)
    await manager.close()
    with pytest.raises(BoundaryError):
        await manager.read()
    with pytest.raises(BoundaryError):
        await manager.refresh_now()


def test_cache_entry_replaces_slots_copy_on_write(make_records) -> None:
    entry = CacheEntry(["A", "B"])
    before = entry.by_provider
    entry.replace("A", make_records("A", 2), live=False)

    assert before["A"] == ()
    assert len(entry.get("A")) == 2
    assert not entry.has_live("A")
    entry.replace("A", make_records("A", 1), live=True)
    assert entry.live_providers == frozenset({"A"})
    with pytest.raises(KeyError):
        entry.replace("Z", [], live=True)
    with pytest.raises(TypeError):
        entry.by_provider["A"] = ()  # type: ignore[index]
