"""Level.Travel adapter — aggregator API with an enqueue / poll / fetch search flow."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable

from tourwise.config import settings
from tourwise.exceptions import ProviderTimeout, ProviderUnavailable
from tourwise.schemas.search import SearchSpecification
from tourwise.services.geo import country_code, departure_city, resolve_country
from tourwise.services.offer import MealPlan, Offer
from tourwise.services.providers.base import TourProvider, to_float, to_int, upgrade_image_url
from tourwise.services.providers.catalog import mock_offers

logger = logging.getLogger(__name__)

# Operator statuses that mean an operator has finished answering
_DONE_STATUSES = {"completed", "cached", "skipped", "no_results", "failed", "all_filtered"}

_FEATURE_FLAGS = ("pool", "kids_club", "fitness", "aquapark", "spa", "animation", "adults_only")


class LevelTravelProvider(TourProvider):
    name = "leveltravel"
    default_timeout = 30.0

    def __init__(self, client=None, *, timeout=None, use_mock=None,
                 poll_attempts: int = 5, poll_interval: float = 2.0):
        self.base_url = settings.leveltravel_base_url
        self.partner_id = settings.leveltravel_partner_id
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        super().__init__(client, timeout=timeout or settings.leveltravel_timeout, use_mock=use_mock)

    def has_credentials(self) -> bool:
        return bool(settings.leveltravel_api_key)

    def _headers(self) -> dict:
        return {
            "Authorization": f'Token token="{settings.leveltravel_api_key}"',
            "Accept": "application/vnd.leveltravel.v3",
            "Content-Type": "application/json",
        }

    async def fetch(self, spec: SearchSpecification) -> Any:
        client = await self._get_client()
        headers = self._headers()

        resp = await client.get("/search/enqueue", params=self._enqueue_params(spec), headers=headers)
        resp.raise_for_status()
        request_id = resp.json().get("request_id")
        if not request_id:
            raise ProviderUnavailable(self.name, "search was not enqueued")

        for attempt in range(self.poll_attempts):
            if attempt > 0:
                await asyncio.sleep(self.poll_interval * attempt)
            status = await client.get(
                "/search/status",
                params={"request_id": request_id, "show_size": "true"},
                headers=headers,
            )
            status.raise_for_status()
            data = status.json()
            operators = data.get("status") or {}
            all_done = all(str(s) in _DONE_STATUSES for s in operators.values())
            partial = (data.get("completeness", 0) > 30 and data.get("size", 0) > 0) or attempt >= 3
            if all_done or partial:
                break
        else:
            raise ProviderTimeout(self.name, f"search {request_id} did not finish polling")

        hotels = await client.get(
            "/search/get_grouped_hotels", params={"request_id": request_id}, headers=headers
        )
        hotels.raise_for_status()
        return hotels.json()

    def _enqueue_params(self, spec: SearchSpecification) -> dict:
        nights = spec.stay_nights
        params = {
            "from_city": departure_city(spec.departure_city),
            "to_country": country_code(spec.destination[0]) or spec.destination[0],
            "adults": spec.adults,
            "nights": f"{nights}..{nights + 2}",
        }
        if spec.start_date:
            params["start_date"] = spec.start_date.strftime("%d.%m.%Y")
        if spec.children:
            params["kids"] = spec.children
            if spec.children_ages:
                params["kids_ages"] = ",".join(str(a) for a in spec.children_ages)
        if spec.budget:
            params["price_max"] = spec.budget
        return params

    # --- Mapping ---

    def extract_items(self, payload: Any) -> Iterable[Any]:
        if not payload.get("success", False):
            raise ValueError("success flag missing or false")
        return payload["hotels"]

    def map_item(self, item: Any, spec: SearchSpecification | None) -> list[Offer]:
        hotel = item["hotel"]
        hotel_id = hotel["id"]
        features = hotel.get("features") or {}
        extras = item.get("extras") or {}

        images = []
        if (hotel.get("image") or {}).get("full_size"):
            images.append(upgrade_image_url(hotel["image"]["full_size"]))
        for img in hotel.get("images") or []:
            if img.get("x500"):
                images.append(upgrade_image_url(img["x500"]))

        flags = {f for f in _FEATURE_FLAGS if features.get(f)}
        if features.get("wi_fi") in ("free", True) or features.get("wifi"):
            flags.add("wifi")

        start = item.get("start_date") or extras.get("start_date")
        start_date = datetime.strptime(start, "%Y-%m-%d").date() if start else (spec.start_date if spec else None)
        nights = to_int(item.get("nights")) or (spec.stay_nights if spec else 0)
        country = (
            resolve_country(hotel.get("country"))
            or (resolve_country(spec.destination[0]) if spec else None)
            or (hotel.get("country") or "").lower()
        )

        # One offer per meal plan price; fall back to min_price when none are listed
        prices = item.get("pansion_prices") or {"": item["min_price"]}
        offers = []
        for meal_code, price in sorted(prices.items()):
            price = to_int(price)
            if not price or price <= 0:
                continue
            offers.append(Offer(
                provider=self.name,
                external_id=f"lt-{hotel_id}-{meal_code.lower()}" if meal_code else f"lt-{hotel_id}",
                hotel_name=hotel.get("name") or "",
                country=country,
                resort=hotel.get("city") or hotel.get("region_name"),
                stars=to_int(hotel.get("stars")) or None,
                beach_line=to_int(features.get("line")),
                beach_distance_m=to_int(features.get("beach_distance")),
                meal_plan=MealPlan.parse(meal_code),
                price=price,
                price_old=to_int(extras.get("previous_price")),
                start_date=start_date,
                end_date=None,
                nights=nights,
                hotel_rating=to_float(hotel.get("rating")),
                review_count=to_int(hotel.get("reviews_count")) or 0,
                images=tuple(images),
                booking_url=f"https://level.travel/hotels/{hotel_id}?partner_id={self.partner_id}",
                room_type=item.get("room_type"),
                features=frozenset(flags),
                instant_confirm=bool(extras.get("instant_confirm")),
                is_hot=bool(extras.get("hot")),
                metadata={"hotel_id": hotel_id, "public_url": hotel.get("public_url", "")},
            ))
        if not offers:
            raise ValueError(f"hotel {hotel_id} has no positive price")
        return offers

    def mock_payload(self, spec: SearchSpecification) -> Any:
        grouped: dict[int, dict] = {}
        for m in mock_offers(self.name, spec.destination, spec.start_date, spec.stay_nights,
                             spec.adults, spec.children):
            h = m.hotel
            entry = grouped.setdefault(h.hotel_id, {
                "hotel": {
                    "id": h.hotel_id,
                    "name": h.name,
                    "country": h.country,
                    "city": h.resort,
                    "stars": h.stars,
                    "rating": h.rating,
                    "reviews_count": h.reviews,
                    "image": {"full_size": f"http://img.level.travel/800x600/{h.hotel_id}.jpg"},
                    "images": [{"x500": f"http://img.level.travel/400x300/{h.hotel_id}-{i}.jpg"} for i in (1, 2)],
                    "features": {"line": h.beach_line, "wi_fi": "free" if "wifi" in h.features else None,
                                 **{f: True for f in h.features if f != "wifi"}},
                },
                "min_price": m.price,
                "pansion_prices": {},
                "start_date": m.start_date.isoformat(),
                "nights": m.nights,
                "room_type": h.room_type,
                "extras": {"instant_confirm": m.instant_confirm, "hot": m.is_hot,
                           "previous_price": m.price_old},
            })
            entry["pansion_prices"][m.meal] = m.price
            entry["min_price"] = min(entry["min_price"], m.price)
        return {"success": True, "hotels": list(grouped.values())}
