"""Offer store — persistence adapter for offers, traveler profiles and search requests.

Lookups and request logging degrade to None when the database is unavailable.
save_offers raises; the fan-out coordinator absorbs the failure so
persistence never fails a search.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourwise.models.offer import SearchRequestLog, TourOffer
from tourwise.models.profile import TravelProfile
from tourwise.services.hotel_identity import hotel_key
from tourwise.services.offer import Offer
from tourwise.services.scoring_engine import PRIORITY_PROFILES, PriorityWeights

logger = logging.getLogger(__name__)

BATCH_SIZE = 200


class OfferStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save_offers(self, offers: list[Offer]) -> int:
        """Upsert offers on (provider, external_id). Returns the number written."""
        # Last occurrence wins when a batch repeats an offer id
        unique = {o.offer_id: o for o in offers}
        written = 0
        async with self._session_factory() as db:
            items = list(unique.values())
            for i in range(0, len(items), BATCH_SIZE):
                batch = items[i:i + BATCH_SIZE]
                existing = await self._existing(db, batch)
                for offer in batch:
                    row = existing.get(offer.offer_id)
                    if row is None:
                        db.add(TourOffer(provider=offer.provider, external_id=offer.external_id,
                                         **_offer_columns(offer)))
                    else:
                        for column, value in _offer_columns(offer).items():
                            setattr(row, column, value)
                    written += 1
            await db.commit()
        logger.info(f"Saved {written} offers")
        return written

    async def get_profile(self, user_id: str) -> TravelProfile | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(TravelProfile).where(TravelProfile.user_id == user_id))
                return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Profile lookup failed for {user_id}: {e}", exc_info=True)
            return None

    async def get_priority_weights(self, user_id: str | None) -> PriorityWeights | None:
        """Stored weights, else the preset for the profile's travel style, else None."""
        if not user_id:
            return None
        profile = await self.get_profile(user_id)
        if profile is None:
            return None
        if profile.priorities:
            return PriorityWeights.from_mapping(profile.priorities)
        return PRIORITY_PROFILES.get(profile.travel_style or "")

    async def save_search_request(
        self,
        search_params: dict,
        *,
        user_id: str | None = None,
        raw_text: str | None = None,
        parsed_params: dict | None = None,
        result_count: int = 0,
        status: str = "completed",
        response_time_ms: int | None = None,
    ) -> uuid.UUID | None:
        try:
            async with self._session_factory() as db:
                log = SearchRequestLog(
                    user_id=user_id,
                    raw_text=raw_text,
                    parsed_params=parsed_params,
                    search_params=search_params,
                    result_count=result_count,
                    status=status,
                    response_time_ms=response_time_ms,
                )
                db.add(log)
                await db.commit()
                return log.id
        except Exception as e:
            logger.error(f"Failed to save search request: {e}", exc_info=True)
            return None

    # --- Private helpers ---

    @staticmethod
    async def _existing(db: AsyncSession, batch: list[Offer]) -> dict[tuple[str, str], TourOffer]:
        providers = {o.provider for o in batch}
        ids = {o.external_id for o in batch}
        result = await db.execute(
            select(TourOffer).where(TourOffer.provider.in_(providers), TourOffer.external_id.in_(ids))
        )
        return {(row.provider, row.external_id): row for row in result.scalars()}


def _offer_columns(offer: Offer) -> dict:
    return {
        "hotel_key": hotel_key(offer),
        "hotel_name": offer.hotel_name,
        "country": offer.country,
        "resort": offer.resort,
        "stars": offer.stars,
        "beach_line": offer.beach_line,
        "meal_plan": offer.meal_plan.value if offer.meal_plan else None,
        "price": offer.price,
        "price_old": offer.price_old,
        "currency": offer.currency,
        "start_date": offer.start_date,
        "nights": offer.nights,
        "hotel_rating": offer.hotel_rating,
        "booking_url": offer.booking_url,
        "instant_confirm": offer.instant_confirm,
        "data": offer.to_dict(),
    }
