"""Sletat adapter — login/password query auth, rows under GetToursResult.Data.aaData."""

import re
from datetime import datetime, timedelta
from typing import Any, Iterable

from tourwise.config import settings
from tourwise.exceptions import ProviderUnavailable
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

_STARS = re.compile(r"(\d)")


class SletatProvider(TourProvider):
    name = "sletat"

    def __init__(self, client=None, *, timeout=None, use_mock=None):
        self.base_url = settings.sletat_base_url
        super().__init__(client, timeout=timeout or settings.sletat_timeout, use_mock=use_mock)

    def has_credentials(self) -> bool:
        return bool(settings.sletat_login and settings.sletat_password)

    async def fetch(self, spec: SearchSpecification) -> Any:
        client = await self._get_client()
        params = {
            "login": settings.sletat_login,
            "password": settings.sletat_password,
            "countryCode": country_code(spec.destination[0]) or spec.destination[0],
            "cityFrom": departure_city(spec.departure_city),
            "adults": spec.adults,
            "kids": spec.children,
            "nightsMin": spec.stay_nights,
            "nightsMax": spec.stay_nights,
        }
        if spec.start_date:
            params["s_departFrom"] = spec.start_date.strftime("%d/%m/%Y")
            params["s_departTo"] = (spec.end_date or spec.start_date).strftime("%d/%m/%Y")
        if spec.budget:
            params["s_priceMax"] = spec.budget
        resp = await client.get("/Main.svc/GetTours", params=params)
        resp.raise_for_status()
        data = resp.json()
        result = data.get("GetToursResult") or {}
        if result.get("IsError"):
            raise ProviderUnavailable(self.name, result.get("ErrorMessage") or "provider reported an error")
        return data

    # --- Mapping ---

    def extract_items(self, payload: Any) -> Iterable[Any]:
        return payload["GetToursResult"]["Data"]["aaData"]

    def map_item(self, item: Any, spec: SearchSpecification | None) -> list[Offer]:
        check_in = datetime.strptime(item["CheckInDate"], "%d.%m.%Y").date()
        nights = int(item["Nights"])
        stars_match = _STARS.search(item.get("StarName") or "")
        photo = item.get("HotelPhotoUrl")

        return [Offer(
            provider=self.name,
            external_id=f"sl-{item['TourId']}",
            hotel_name=item.get("HotelName") or "",
            country=resolve_country(item.get("CountryName")) or (item.get("CountryName") or "").lower(),
            resort=item.get("ResortName"),
            stars=int(stars_match.group(1)) if stars_match else None,
            meal_plan=MealPlan.parse(item.get("MealName")),
            price=positive_price(item["Price"]),
            currency=item.get("Currency") or "RUB",
            start_date=check_in,
            end_date=check_in + timedelta(days=nights),
            nights=nights,
            hotel_rating=to_float(item.get("HotelRating")),
            review_count=to_int(item.get("ReviewsCount")) or 0,
            images=(upgrade_image_url(photo),) if photo else (),
            booking_url=item.get("TourUrl") or "",
            room_type=item.get("RoomName"),
            instant_confirm=bool(item.get("InstantConfirm")),
        )]

    def mock_payload(self, spec: SearchSpecification) -> Any:
        rows = []
        for m in mock_offers(self.name, spec.destination, spec.start_date, spec.stay_nights,
                             spec.adults, spec.children):
            h = m.hotel
            rows.append({
                "TourId": f"{h.hotel_id}-{m.offer_no}-{m.start_date:%Y%m%d}",
                "HotelName": h.name,
                "StarName": f"{h.stars}*",
                "CountryName": h.country.title(),
                "ResortName": h.resort,
                "MealName": m.meal,
                "Price": m.price,
                "CheckInDate": m.start_date.strftime("%d.%m.%Y"),
                "Nights": m.nights,
                "HotelRating": h.rating,
                "HotelPhotoUrl": f"http://hotels.sletat.ru/i/800x600/{h.hotel_id}.jpg",
                "RoomName": h.room_type,
                "TourUrl": f"https://sletat.ru/tour/{h.hotel_id}",
                "InstantConfirm": m.instant_confirm,
            })
        return {"GetToursResult": {"IsError": False, "ErrorMessage": None, "Data": {"aaData": rows}}}
