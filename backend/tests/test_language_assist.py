from __future__ import annotations

import json

import pytest

from tourwise.services.language_assist import LanguageAssistChain, strip_code_fences
from tourwise.services.llm_client import LLMClient
from tourwise.services.scoring_engine import MatchResult, PriorityWeights

VALID_REPLY = json.dumps({
    "destinations": ["turkey"],
    "departure_city": "Moscow",
    "adults": 2,
    "budget": 150000,
    "meal_type": "AI",
    "suggested_priorities": {"beach_line": 14, "price": 7},
    "confidence": 0.9,
})


def _chain(*backends, min_confidence=0.5):
    return LanguageAssistChain(LLMClient(list(backends)), min_confidence=min_confidence)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


@pytest.mark.asyncio
async def test_first_valid_backend_wins(fake_backend):
    primary = fake_backend("primary", reply=VALID_REPLY)
    secondary = fake_backend("secondary", reply=VALID_REPLY)

    parsed = await _chain(primary, secondary).parse("Turkey for two from Moscow")

    assert parsed.source == "primary"
    assert parsed.destinations == ["turkey"]
    assert parsed.suggested_priorities["beach_line"] == 10
    assert secondary.calls == 0


@pytest.mark.asyncio
async def test_chain_skips_timeout_malformed_and_low_confidence(fake_backend):
    slow = fake_backend("slow", reply=VALID_REPLY, delay=0.5, timeout=0.05)
    garbled = fake_backend("garbled", reply="Sure! Here is your JSON: {destinations")
    unsure = fake_backend("unsure", reply=json.dumps({"destinations": ["egypt"], "confidence": 0.2}))
    good = fake_backend("good", reply=f"```json\n{VALID_REPLY}\n```")

    parsed = await _chain(slow, garbled, unsure, good).parse("Turkey")

    assert parsed.source == "good"
    assert [b.calls for b in (slow, garbled, unsure, good)] == [1, 1, 1, 1]


@pytest.mark.asyncio
async def test_schema_mismatch_is_rejected(fake_backend):
    wrong = fake_backend("wrong", reply=json.dumps({"adults": 50, "confidence": 0.9}))
    listy = fake_backend("listy", reply="[1, 2, 3]")

    parsed = await _chain(wrong, listy).parse("Turkey for two")
    assert parsed.source == "heuristic"


@pytest.mark.asyncio
async def test_all_backends_failing_falls_back_to_heuristic(fake_backend):
    parsed = await _chain(fake_backend("down"), fake_backend("also-down")).parse(
        "Egypt all inclusive 2 adults from Moscow"
    )

    assert parsed.source == "heuristic"
    assert parsed.destinations == ["egypt"]
    assert parsed.confidence <= 0.3


@pytest.mark.asyncio
async def test_no_backends_uses_heuristic():
    parsed = await _chain().parse("Turkey")
    assert parsed.source == "heuristic"


@pytest.mark.asyncio
async def test_heuristic_fallback_survives_numeric_noise():
    parsed = await _chain().parse("budget " + "9" * 400 + "k to turkey")

    assert parsed.source == "heuristic"
    assert parsed.budget is None
    assert parsed.destinations == ["turkey"]


@pytest.mark.asyncio
async def test_explain_uses_backend_text(fake_backend, make_offer):
    chain = _chain(fake_backend("primary", reply="Great beach and all inclusive, a bit above budget."))
    text = await chain.explain(make_offer(), PriorityWeights(), MatchResult(score=82.0, breakdown={"price": 60.0}))
    assert text == "Great beach and all inclusive, a bit above budget."


@pytest.mark.asyncio
async def test_explain_truncates_long_text(fake_backend, make_offer):
    chain = _chain(fake_backend("wordy", reply="word " * 400))
    text = await chain.explain(make_offer(), PriorityWeights(), MatchResult(score=50.0))
    assert len(text) <= 601
    assert text.endswith("…")


@pytest.mark.asyncio
async def test_explain_falls_back_to_template(fake_backend, make_offer):
    chain = _chain(fake_backend("down"), fake_backend("blank", reply="   "))
    text = await chain.explain(make_offer(), PriorityWeights(), MatchResult(score=73.6))
    assert text == "Offer matches 74% of your criteria"
