from __future__ import annotations

import pytest

from tourwise.exceptions import ProviderMalformedResponse
from tourwise.schemas.search import SearchSpecification
from tourwise.services.fanout_coordinator import FanOutCoordinator


@pytest.fixture
def spec():
    return SearchSpecification(destination=["Turkey"])


class FailingStore:
    def __init__(self):
        self.calls = 0

    async def save_offers(self, offers):
        self.calls += 1
        raise RuntimeError("database down")


class RecordingStore:
    def __init__(self):
        self.saved = []

    async def save_offers(self, offers):
        self.saved.extend(offers)


@pytest.mark.asyncio
async def test_slow_and_failing_providers_do_not_affect_siblings(spec, make_offer, fake_provider):
    ok = fake_provider("leveltravel", offers=[make_offer(external_id="1"), make_offer(external_id="2")])
    slow = fake_provider("travelata", offers=[make_offer(provider="travelata")], delay=0.5, timeout=0.05)
    broken = fake_provider("sletat", error=ProviderMalformedResponse("sletat", "bad json"))

    result = await FanOutCoordinator([ok, slow, broken]).fan_out(spec)

    assert len(result.offers) == 2
    statuses = {s.provider_id: s for s in result.statuses}
    assert statuses["leveltravel"].succeeded
    assert statuses["leveltravel"].offer_count == 2
    assert statuses["travelata"].error_kind == "timeout"
    assert statuses["sletat"].error_kind == "malformed_response"
    assert result.any_succeeded


@pytest.mark.asyncio
async def test_unexpected_exception_reported_as_unavailable(spec, fake_provider):
    result = await FanOutCoordinator([fake_provider("x", error=KeyError("boom"))]).fan_out(spec)

    assert result.statuses[0].error_kind == "unavailable"
    assert not result.any_succeeded
    assert result.offers == []


@pytest.mark.asyncio
async def test_statuses_follow_provider_order(spec, fake_provider):
    providers = [fake_provider("b", delay=0.02), fake_provider("a")]
    result = await FanOutCoordinator(providers).fan_out(spec)
    assert [s.provider_id for s in result.statuses] == ["b", "a"]


@pytest.mark.asyncio
async def test_overall_deadline_cancels_stragglers(spec, make_offer, fake_provider):
    fast = fake_provider("fast", offers=[make_offer()])
    straggler = fake_provider("straggler", offers=[make_offer(provider="straggler")], delay=5.0, timeout=10.0)

    result = await FanOutCoordinator([fast, straggler], overall_timeout=0.1).fan_out(spec)

    statuses = {s.provider_id: s for s in result.statuses}
    assert statuses["fast"].succeeded
    assert statuses["straggler"].error_kind == "timeout"
    assert [o.provider for o in result.offers] == ["leveltravel"]


@pytest.mark.asyncio
async def test_each_provider_called_once(spec, fake_provider):
    providers = [fake_provider("a"), fake_provider("b")]
    await FanOutCoordinator(providers).fan_out(spec)
    assert [p.calls for p in providers] == [1, 1]


@pytest.mark.asyncio
async def test_no_providers_gives_empty_result(spec):
    result = await FanOutCoordinator([]).fan_out(spec)
    assert result.offers == []
    assert result.statuses == []


@pytest.mark.asyncio
async def test_offers_are_persisted(spec, make_offer, fake_provider):
    store = RecordingStore()
    offers = [make_offer(external_id="1"), make_offer(external_id="2")]

    await FanOutCoordinator([fake_provider("leveltravel", offers=offers)], offer_store=store).fan_out(spec)
    assert store.saved == offers


@pytest.mark.asyncio
async def test_persistence_failure_does_not_fail_search(spec, make_offer, fake_provider):
    store = FailingStore()
    result = await FanOutCoordinator(
        [fake_provider("leveltravel", offers=[make_offer()])], offer_store=store
    ).fan_out(spec)

    assert store.calls == 1
    assert len(result.offers) == 1
    assert result.any_succeeded
