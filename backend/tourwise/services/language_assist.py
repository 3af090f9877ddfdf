"""Language-assist chain — parses free-text requests and explains match scores.

Language-model backends are tried in order; a backend that times out,
errors, returns unparseable output or reports low confidence is skipped.
After the last backend a deterministic heuristic answers, so neither parse
nor explain ever raises.
"""

import json
import logging
from datetime import date

from pydantic import ValidationError

from tourwise.config import settings
from tourwise.exceptions import LanguageBackendLowConfidence, LanguageBackendMalformedOutput
from tourwise.schemas.search import ParsedRequest
from tourwise.services.llm_client import LLMClient
from tourwise.services.offer import Offer
from tourwise.services.request_heuristics import parse_request
from tourwise.services.scoring_engine import (
    MatchResult,
    PriorityWeights,
    ScoringContext,
    template_explanation,
)

logger = logging.getLogger(__name__)

MAX_EXPLANATION_CHARS = 600

PARSE_SYSTEM_PROMPT = """You are a travel agent assistant. Extract tour search parameters from the
traveler's message. Today's date is {today}.

Rules:
- Extract every parameter that is mentioned; never invent values that are not implied
- date_type: "fixed" for exact dates, "flexible" for a month ("in August"), "anytime" otherwise
- budget_type: "total" for the whole group, "per_person" when the budget is per traveler
- destinations are country names in English, lower-case ("turkey", "egypt", "uae")
- meal_type is one of RO, BB, HB, FB, AI, UAI
- Required parameters: destination, departure city (unless in the profile), number of adults.
  List the ones that are missing in missing_required
- Optional parameters: dates, budget, stars, room_preferences. List missing ones in missing_optional
- Write one short clarification question per missing parameter
- suggested_priorities: importance 0-10 of price, star_rating, beach_line, meal_type, location,
  reviews, family_friendly, activities, quietness, room_quality, inferred from the wording
- confidence: 0.0-1.0, how sure you are of the extraction

Traveler profile: {profile}
Previous conversation context: {previous_context}

Respond ONLY with valid JSON, no markdown, no preamble:
{{
    "destinations": ["turkey"],
    "departure_city": "Moscow",
    "date_type": "flexible",
    "start_date": null,
    "end_date": null,
    "flexible_month": "august",
    "duration": 7,
    "budget": 150000,
    "budget_type": "total",
    "currency": "RUB",
    "adults": 2,
    "children": 1,
    "children_ages": [5],
    "stars": 5,
    "meal_type": "AI",
    "room_preferences": {{"room_type": "family", "view": "sea", "min_area": null, "separate_beds": null}},
    "requirements": ["first_line", "aquapark"],
    "suggested_priorities": {{"price": 7, "beach_line": 9, "meal_type": 9, "family_friendly": 9}},
    "missing_required": [],
    "missing_optional": ["dates"],
    "clarification_questions": ["Which dates in August suit you?"],
    "confidence": 0.85
}}"""

EXPLAIN_SYSTEM_PROMPT = """You explain to a traveler why a tour offer received its match score.
Write 2-3 short sentences in plain language. Mention the strongest and weakest criteria
given the traveler's priorities. Do not invent facts that are not in the data.
Respond with the explanation text only."""


def strip_code_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        lines = [line for line in raw.split("\n") if not line.strip().startswith("```")]
        raw = "\n".join(lines).strip()
    return raw


class LanguageAssistChain:
    """Parse and explain over an LLMClient, with the heuristic as the last link."""

    def __init__(self, llm: LLMClient, min_confidence: float | None = None):
        self.llm = llm
        self.min_confidence = settings.llm_min_confidence if min_confidence is None else min_confidence

    async def parse(
        self,
        text: str,
        profile: dict | None = None,
        previous_context: dict | None = None,
    ) -> ParsedRequest:
        system = PARSE_SYSTEM_PROMPT.format(
            today=date.today().isoformat(),
            profile=json.dumps(profile or {}, ensure_ascii=False, default=str),
            previous_context=json.dumps(previous_context or {}, ensure_ascii=False, default=str),
        )
        parsed = await self.llm.first_valid(
            system, text, self._validate_parsed, json_mode=True, max_tokens=1000, temperature=0,
        )
        if parsed is not None:
            return parsed

        logger.info("All language backends failed for parse, using heuristic")
        return parse_request(text, profile=profile, previous_context=previous_context)

    async def explain(
        self,
        offer: Offer,
        weights: PriorityWeights,
        match: MatchResult,
        context: ScoringContext | None = None,
    ) -> str:
        user = json.dumps({
            "offer": {
                "hotel": offer.hotel_name,
                "country": offer.country,
                "resort": offer.resort,
                "stars": offer.stars,
                "beach_line": offer.beach_line,
                "meal_plan": offer.meal_plan.value if offer.meal_plan else None,
                "price": offer.price,
                "currency": offer.currency,
                "rating": offer.hotel_rating,
            },
            "priorities": weights.as_dict(),
            "score": match.score,
            "breakdown": match.breakdown,
            "budget": context.budget if context else None,
        }, ensure_ascii=False)

        text = await self.llm.first_valid(
            EXPLAIN_SYSTEM_PROMPT, user, self._validate_explanation, max_tokens=300, temperature=0.3,
        )
        return text if text is not None else template_explanation(match.score)

    # --- Validators (raise LanguageBackendError to advance the chain) ---

    def _validate_parsed(self, raw: str, backend: str) -> ParsedRequest:
        cleaned = strip_code_fences(raw)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise LanguageBackendMalformedOutput(backend, f"invalid JSON: {e}; raw: {raw[:200]}") from e
        if not isinstance(data, dict):
            raise LanguageBackendMalformedOutput(backend, "expected a JSON object")

        data["source"] = backend
        try:
            parsed = ParsedRequest.model_validate(data)
        except ValidationError as e:
            raise LanguageBackendMalformedOutput(backend, f"schema mismatch: {e.error_count()} errors") from e

        if parsed.confidence < self.min_confidence:
            raise LanguageBackendLowConfidence(
                backend, f"confidence {parsed.confidence:.2f} below {self.min_confidence:.2f}"
            )
        return parsed

    @staticmethod
    def _validate_explanation(raw: str, backend: str) -> str:
        text = strip_code_fences(raw).strip().strip('"')
        if not text:
            raise LanguageBackendMalformedOutput(backend, "empty explanation")
        if len(text) > MAX_EXPLANATION_CHARS:
            text = text[:MAX_EXPLANATION_CHARS].rsplit(" ", 1)[0] + "…"
        return text
