"""Demo hotel catalog used by providers running without credentials.

Every provider draws from the same catalog so mock searches overlap across
providers the way real ones do, with each provider spelling hotel names its
own way.
"""

import hashlib
import random
from dataclasses import dataclass
from datetime import date, timedelta

from tourwise.services.geo import resolve_country


@dataclass(frozen=True)
class CatalogHotel:
    hotel_id: int
    name: str
    country: str
    resort: str
    stars: int
    beach_line: int
    rating: float
    reviews: int
    nightly_rate: int  # per adult, RUB
    features: tuple[str, ...]
    room_type: str = "Standard"


CATALOG: list[CatalogHotel] = [
    CatalogHotel(1001, "Sunrise Resort & Spa", "turkey", "Antalya", 5, 1, 8.9, 1240, 9800,
                 ("wifi", "pool", "spa", "kids_club", "aquapark", "animation")),
    CatalogHotel(1002, "Blue Lagoon Hotel", "turkey", "Kemer", 4, 2, 8.1, 640, 6400,
                 ("wifi", "pool", "fitness"), "Superior"),
    CatalogHotel(1003, "Olive Garden Boutique", "turkey", "Side", 3, 3, 7.6, 210, 4100,
                 ("wifi", "adults_only")),
    CatalogHotel(1004, "Grand Palace Belek", "turkey", "Belek", 5, 1, 9.2, 2210, 13500,
                 ("wifi", "pool", "spa", "fitness", "kids_club", "water_sports"), "Deluxe"),
    CatalogHotel(2001, "Coral Bay Resort", "egypt", "Hurghada", 4, 1, 8.3, 980, 5600,
                 ("wifi", "pool", "diving", "animation")),
    CatalogHotel(2002, "Desert Rose", "egypt", "Sharm El Sheikh", 5, 1, 8.7, 1530, 8200,
                 ("wifi", "pool", "aquapark", "kids_club", "spa"), "Family"),
    CatalogHotel(2003, "Nile Star Hotel", "egypt", "Hurghada", 3, 2, 7.2, 330, 3300,
                 ("pool",)),
    CatalogHotel(3001, "Palm Jumeirah Suites", "uae", "Dubai", 5, 1, 9.0, 1870, 16800,
                 ("wifi", "pool", "spa", "fitness"), "Suite"),
    CatalogHotel(3002, "Marina View Hotel", "uae", "Dubai", 4, 3, 8.0, 760, 9100,
                 ("wifi", "pool", "fitness")),
    CatalogHotel(4001, "Kata Beach Resort", "thailand", "Phuket", 4, 1, 8.4, 1120, 5200,
                 ("wifi", "pool", "spa", "water_sports")),
    CatalogHotel(4002, "Pattaya Garden Hotel", "thailand", "Pattaya", 3, 2, 7.4, 450, 2900,
                 ("wifi", "pool", "nightclub")),
]

_MEAL_CHOICES = {
    3: ["BB", "HB", "AI"],
    4: ["HB", "AI", "UAI"],
    5: ["AI", "UAI"],
}


@dataclass(frozen=True)
class MockOffer:
    hotel: CatalogHotel
    offer_no: int
    meal: str
    start_date: date
    nights: int
    price: int
    price_old: int | None
    instant_confirm: bool
    is_hot: bool


def mock_offers(provider: str, destinations: list[str], start_date: date | None,
                nights: int, adults: int, children: int = 0) -> list[MockOffer]:
    """Deterministic demo offers for one provider.

    Seeded on provider + search parameters, so repeated searches return the
    same offers while different providers price the same hotels differently.
    """
    countries = {resolve_country(d) or d.strip().lower() for d in destinations}
    start = start_date or (date.today() + timedelta(days=30))
    seed_str = f"{provider}{','.join(sorted(countries))}{start.isoformat()}{nights}{adults}{children}"
    seed = int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16)
    rng = random.Random(seed)

    offers = []
    for hotel in CATALOG:
        if hotel.country not in countries:
            continue
        if rng.random() < 0.2:
            continue  # not every provider sells every hotel
        meals = _MEAL_CHOICES.get(hotel.stars, ["AI"])
        for offer_no, meal in enumerate(rng.sample(meals, k=rng.randint(1, min(2, len(meals))))):
            factor = rng.uniform(0.9, 1.2) * (1.0 + 0.15 * meals.index(meal))
            people = adults + 0.5 * children
            price = int(round(hotel.nightly_rate * nights * people * factor, -2))
            discounted = rng.random() < 0.3
            offers.append(MockOffer(
                hotel=hotel,
                offer_no=offer_no,
                meal=meal,
                start_date=start + timedelta(days=rng.randint(0, 2)),
                nights=nights,
                price=price,
                price_old=int(round(price * rng.uniform(1.1, 1.35), -2)) if discounted else None,
                instant_confirm=rng.random() < 0.6,
                is_hot=discounted and rng.random() < 0.5,
            ))
    return offers
