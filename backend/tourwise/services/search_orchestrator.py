"""Search orchestrator — runs one tour search end to end.

Pipeline: (optional free-text parse) -> validate -> fan-out -> filters ->
scoring -> hotel grouping -> tour cards -> ranking -> page -> (optional
explanations for the visible page).
"""

import asyncio
import logging
import time
import uuid

from tourwise.schemas.search import ParsedRequest, SearchSpecification
from tourwise.services.cache_service import CacheService
from tourwise.services.fanout_coordinator import FanOutCoordinator
from tourwise.services.hotel_identity import group_offers
from tourwise.services.language_assist import LanguageAssistChain
from tourwise.services.offer import Offer
from tourwise.services.offer_store import OfferStore
from tourwise.services.ranking import build_facets, paginate, rank_cards
from tourwise.services.scoring_engine import (
    PriorityWeights,
    ScoringConfig,
    ScoringContext,
    score_offers,
)
from tourwise.services.tour_card_builder import (
    ScoredOption,
    TourCard,
    assign_best_price_badge,
    build_tour_card,
)

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Coordinates providers, scoring, grouping and ranking for one request."""

    def __init__(
        self,
        coordinator: FanOutCoordinator,
        language: LanguageAssistChain,
        offer_store: OfferStore | None = None,
        cache: CacheService | None = None,
        scoring_config: ScoringConfig | None = None,
        high_match_threshold: float | None = None,
    ):
        self.coordinator = coordinator
        self.language = language
        self.offer_store = offer_store
        self.cache = cache
        self.scoring_config = scoring_config or ScoringConfig()
        self.high_match_threshold = high_match_threshold

    async def parse(
        self,
        text: str,
        user_id: str | None = None,
        previous_context: dict | None = None,
    ) -> ParsedRequest:
        profile = await self._profile_dict(user_id)
        return await self.language.parse(text, profile=profile, previous_context=previous_context)

    async def search(
        self,
        fields: dict,
        *,
        query: str | None = None,
        user_id: str | None = None,
        weights: dict | None = None,
        explain: bool = False,
    ) -> dict:
        """
        Execute a search.

        Explicit fields win over values parsed from the free-text query.
        Raises InvalidSearchSpecification when the merged request is unusable;
        provider and language-backend failures only degrade the result.
        """
        start_time = time.monotonic()

        # 1. Merge free text into the structured request, then validate
        parsed = None
        payload = {k: v for k, v in fields.items() if v is not None}
        if query:
            parsed = await self.parse(query, user_id)
            payload = {**parsed.to_search_payload(), **payload}
        spec = SearchSpecification.from_payload(payload)

        # 2. Resolve priority weights
        priority = await self._resolve_weights(weights, user_id, parsed)

        cache_key_spec = {**spec.model_dump(mode="json"), "explain": explain}
        if self.cache is not None:
            cached = await self.cache.get_search(cache_key_spec, priority.as_dict())
            if cached is not None:
                cached["metadata"]["cached"] = True
                return cached

        # 3. Fan out to providers
        fan = await self.coordinator.fan_out(spec)
        offers = self._apply_filters(fan.offers, spec)

        # 4. Score, group, build cards
        context = ScoringContext(
            budget=spec.budget,
            destinations=tuple(spec.destination),
            adults=spec.adults,
            children=spec.children,
        )
        matches = score_offers(offers, priority, context, self.scoring_config)
        cards = [
            build_tour_card(group, matches, self.high_match_threshold)
            for group in group_offers(offers)
        ]
        assign_best_price_badge(cards)

        # 5. Rank and slice
        ranked = rank_cards(cards, spec.sort_by)
        page = paginate(ranked, spec.page, spec.page_size)

        if explain and page.items:
            await self._explain_page(page.items, priority, context)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        search_id = await self._log_search(spec, user_id, query, parsed, len(cards), fan, elapsed_ms)

        response = {
            "search_id": str(search_id or uuid.uuid4()),
            "results": [card.to_dict() for card in page.items],
            "pagination": page.pagination(),
            "facets": build_facets(cards).to_dict(),
            "providers": [s.to_dict() for s in fan.statuses],
            "sort_by": spec.sort_by,
            "weights": priority.as_dict(),
            "parsed": parsed.model_dump(mode="json") if parsed else None,
            "metadata": {
                "total_offers": len(offers),
                "filtered_out": len(fan.offers) - len(offers),
                "search_time_ms": elapsed_ms,
                "cached": False,
            },
        }

        if self.cache is not None and fan.any_succeeded:
            await self.cache.set_search(cache_key_spec, priority.as_dict(), response)
        return response

    # --- Private helpers ---

    @staticmethod
    def _apply_filters(offers: list[Offer], spec: SearchSpecification) -> list[Offer]:
        """Minimum stars and minimum meal plan; offers missing the attribute are dropped."""
        result = offers
        if spec.hotel_stars:
            result = [o for o in result if o.stars and o.stars >= spec.hotel_stars]
        if spec.meal_type:
            min_rank = spec.meal_type.rank
            result = [o for o in result if o.meal_plan and o.meal_plan.rank >= min_rank]
        return result

    async def _resolve_weights(
        self,
        weights: dict | None,
        user_id: str | None,
        parsed: ParsedRequest | None,
    ) -> PriorityWeights:
        """Explicit weights, then the stored profile, then parsed suggestions, then defaults."""
        if weights:
            return PriorityWeights.from_mapping(weights)
        if self.offer_store is not None and user_id:
            stored = await self.offer_store.get_priority_weights(user_id)
            if stored is not None:
                return stored
        if parsed is not None and parsed.suggested_priorities:
            return PriorityWeights.from_mapping(parsed.suggested_priorities)
        return PriorityWeights()

    async def _profile_dict(self, user_id: str | None) -> dict | None:
        if self.offer_store is None or not user_id:
            return None
        profile = await self.offer_store.get_profile(user_id)
        if profile is None:
            return None
        return {
            "departure_city": profile.departure_city,
            "budget": profile.budget,
            "preferred_countries": profile.preferred_countries or [],
            "travel_style": profile.travel_style,
        }

    async def _explain_page(
        self,
        cards: list[TourCard],
        weights: PriorityWeights,
        context: ScoringContext,
    ) -> None:
        targets = [c for c in cards if c.recommended.match is not None]
        texts = await asyncio.gather(*(
            self.language.explain(c.recommended.offer, weights, c.recommended.match, context)
            for c in targets
        ))
        for card, text in zip(targets, texts):
            explained = ScoredOption(card.recommended.offer, card.recommended.match.with_explanation(text))
            card.options = [explained if o is card.recommended else o for o in card.options]
            if card.best_price is card.recommended:
                card.best_price = explained
            if card.best_value is card.recommended:
                card.best_value = explained
            card.recommended = explained

    async def _log_search(self, spec, user_id, query, parsed, result_count, fan, elapsed_ms):
        if self.offer_store is None:
            return None
        if not fan.statuses:
            status = "no_providers"
        elif fan.any_succeeded:
            status = "completed"
        else:
            status = "providers_failed"
        return await self.offer_store.save_search_request(
            spec.model_dump(mode="json"),
            user_id=user_id,
            raw_text=query,
            parsed_params=parsed.model_dump(mode="json") if parsed else None,
            result_count=result_count,
            status=status,
            response_time_ms=elapsed_ms,
        )
