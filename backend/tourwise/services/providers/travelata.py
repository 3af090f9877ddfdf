"""Travelata adapter — direct operator API, one GET returning a flat tour list."""

from datetime import datetime, timedelta
from typing import Any, Iterable

from tourwise.config import settings
from tourwise.schemas.search import SearchSpecification
from tourwise.services.geo import country_code, departure_city, resolve_country
from tourwise.services.offer import MealPlan, Offer
from tourwise.services.providers.base import (
    TourProvider,
    positive_price,
    to_float,
    to_int,
    upgrade_image_url,
)
from tourwise.services.providers.catalog import mock_offers


class TravelataProvider(TourProvider):
    name = "travelata"

    def __init__(self, client=None, *, timeout=None, use_mock=None):
        self.base_url = settings.travelata_base_url
        super().__init__(client, timeout=timeout or settings.travelata_timeout, use_mock=use_mock)

    def has_credentials(self) -> bool:
        return bool(settings.travelata_api_key)

    async def fetch(self, spec: SearchSpecification) -> Any:
        client = await self._get_client()
        params = {
            "countries[]": country_code(spec.destination[0]) or spec.destination[0],
            "departureCity": departure_city(spec.departure_city),
            "adults": spec.adults,
            "kids": spec.children,
            "nightRange[from]": spec.stay_nights,
            "nightRange[to]": spec.stay_nights,
        }
        if spec.start_date:
            params["checkInDateRange[from]"] = spec.start_date.isoformat()
            params["checkInDateRange[to]"] = (spec.end_date or spec.start_date).isoformat()
        if spec.hotel_stars:
            params["hotelCategories[]"] = spec.hotel_stars
        resp = await client.get(
            "/statistic/cheapestTours",
            params=params,
            headers={"X-Api-Key": settings.travelata_api_key, "Accept": "application/json"},
        )
        resp.raise_for_status()
        return resp.json()

    # --- Mapping ---

    def extract_items(self, payload: Any) -> Iterable[Any]:
        if payload.get("success") is False:
            raise ValueError(payload.get("message") or "success flag false")
        return payload["data"]["tours"]

    def map_item(self, item: Any, spec: SearchSpecification | None) -> list[Offer]:
        check_in = datetime.strptime(item["checkInDate"], "%Y-%m-%d").date()
        nights = int(item["nights"])
        meal = item.get("meal") or {}
        country = item.get("country") or {}
        resort = item.get("resort") or {}

        return [Offer(
            provider=self.name,
            external_id=f"tr-{item['id']}",
            hotel_name=item.get("hotelName") or "",
            country=resolve_country(country.get("name")) or (country.get("name") or "").lower(),
            resort=resort.get("name"),
            stars=to_int(item.get("hotelCategory")) or None,
            beach_line=to_int(item.get("beachLine")),
            beach_distance_m=to_int(item.get("beachDistance")),
            meal_plan=MealPlan.parse(meal.get("code") or meal.get("name")),
            price=positive_price(item["price"]),
            price_old=to_int(item.get("oldPrice")),
            currency=item.get("currency") or "RUB",
            start_date=check_in,
            end_date=check_in + timedelta(days=nights),
            nights=nights,
            hotel_rating=to_float(item.get("rating")),
            review_count=to_int(item.get("reviewsCount")) or 0,
            images=tuple(upgrade_image_url(u) for u in item.get("photos") or []),
            booking_url=item.get("url") or "",
            room_type=item.get("roomType"),
            features=frozenset(item.get("amenities") or ()),
            instant_confirm=bool(item.get("instantConfirmation")),
            is_hot=bool(item.get("hot")),
        )]

    def mock_payload(self, spec: SearchSpecification) -> Any:
        tours = []
        for m in mock_offers(self.name, spec.destination, spec.start_date, spec.stay_nights,
                             spec.adults, spec.children):
            h = m.hotel
            tours.append({
                "id": f"{h.hotel_id}{m.offer_no}{m.start_date:%m%d}",
                "hotelName": h.name.upper() if h.hotel_id % 2 else f"{h.name} Hotel",
                "hotelCategory": f"{h.stars}",
                "country": {"name": h.country.title()},
                "resort": {"name": h.resort},
                "meal": {"code": m.meal},
                "price": m.price,
                "oldPrice": m.price_old,
                "checkInDate": m.start_date.isoformat(),
                "nights": m.nights,
                "rating": h.rating,
                "reviewsCount": h.reviews // 2,
                "photos": [f"https://static.travelata.ru/hotels/{h.hotel_id}/main.jpg"],
                "beachLine": h.beach_line,
                "amenities": list(h.features),
                "roomType": h.room_type,
                "instantConfirmation": m.instant_confirm,
                "hot": m.is_hot,
                "url": f"https://travelata.ru/hotel/{h.hotel_id}",
            })
        return {"success": True, "data": {"tours": tours}}
