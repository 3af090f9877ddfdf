from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tourwise.dependencies import get_search_orchestrator
from tourwise.main import app
from tourwise.services.fanout_coordinator import FanOutCoordinator
from tourwise.services.language_assist import LanguageAssistChain
from tourwise.services.llm_client import LLMClient
from tourwise.services.search_orchestrator import SearchOrchestrator


@pytest.fixture
def client(make_offer, fake_provider):
    orchestrator = SearchOrchestrator(
        coordinator=FanOutCoordinator([
            fake_provider("leveltravel", offers=[make_offer(external_id="1", price=100_000)]),
            fake_provider("travelata", offers=[make_offer(provider="travelata", external_id="2",
                                                          hotel_name="SUNRISE RESORT", price=95_000)]),
        ]),
        language=LanguageAssistChain(LLMClient([])),
    )
    app.dependency_overrides[get_search_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "tourwise"}


def test_search_returns_cards(client):
    resp = client.post("/api/search", json={"destination": "Turkey", "adults": 2, "sort_by": "price"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["pagination"]["total"] == 1
    card = data["results"][0]
    assert card["best_price"]["provider"] == "travelata"
    assert card["providers"] == ["leveltravel", "travelata"]
    assert {p["provider_id"] for p in data["providers"]} == {"leveltravel", "travelata"}


def test_search_accepts_free_text_query(client):
    resp = client.post("/api/search", json={"query": "Turkey for two, all inclusive"})

    assert resp.status_code == 200
    assert resp.json()["parsed"]["destinations"] == ["turkey"]


def test_invalid_search_is_400(client):
    resp = client.post("/api/search", json={"destination": "Turkey", "hotel_stars": 9})

    assert resp.status_code == 400
    body = resp.json()
    assert "hotel_stars" in body["detail"]
    assert body["errors"][0]["loc"] == ["hotel_stars"]


def test_missing_destination_is_400(client):
    assert client.post("/api/search", json={"adults": 2}).status_code == 400


def test_parse_endpoint(client):
    resp = client.post("/api/search/parse", json={"text": "Египет, двое взрослых, из Москвы"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["destinations"] == ["egypt"]
    assert data["adults"] == 2
    assert data["departure_city"] == "Moscow"
    assert data["source"] == "heuristic"


def test_parse_rejects_empty_text(client):
    assert client.post("/api/search/parse", json={"text": ""}).status_code == 422
