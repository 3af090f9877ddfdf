from __future__ import annotations

import asyncio
from datetime import date

import pytest

from tourwise.exceptions import LanguageBackendUnavailable, ProviderError
from tourwise.services.llm_client import LLMBackend
from tourwise.services.offer import MealPlan, Offer


def _offer(**overrides) -> Offer:
    values = {
        "provider": "leveltravel",
        "external_id": "1",
        "hotel_name": "Sunrise Resort",
        "country": "turkey",
        "resort": "Antalya",
        "stars": 5,
        "beach_line": 1,
        "meal_plan": MealPlan.ALL_INCLUSIVE,
        "price": 100_000,
        "start_date": date(2026, 7, 1),
        "nights": 7,
        "hotel_rating": 8.5,
    }
    values.update(overrides)
    return Offer(**values)


@pytest.fixture
def make_offer():
    return _offer


class FakeProvider:
    """Stands in for a TourProvider: returns offers, raises, or sleeps."""

    def __init__(self, name: str, offers=None, error: Exception | None = None,
                 delay: float = 0.0, timeout: float = 1.0):
        self.name = name
        self.offers = offers or []
        self.error = error
        self.delay = delay
        self.timeout = timeout
        self.calls = 0

    async def search(self, spec):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.offers)

    async def close(self):
        pass


class FakeBackend(LLMBackend):
    """Scripted language backend: returns a fixed reply, raises, or sleeps past its timeout."""

    def __init__(self, name: str, reply: str | None = None, delay: float = 0.0, timeout: float = 1.0):
        super().__init__(timeout)
        self.name = name
        self.reply = reply
        self.delay = delay
        self.calls = 0

    async def complete(self, system, user, *, json_mode=False, max_tokens=1000, temperature=0) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.reply is None:
            raise LanguageBackendUnavailable(self.name, "scripted failure")
        return self.reply


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def fake_backend():
    return FakeBackend


@pytest.fixture
def provider_error():
    return ProviderError
