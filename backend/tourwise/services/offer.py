"""Canonical offer record produced by every provider adapter."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class MealPlan(str, Enum):
    NONE = "RO"
    BREAKFAST = "BB"
    HALF_BOARD = "HB"
    FULL_BOARD = "FB"
    ALL_INCLUSIVE = "AI"
    ULTRA_ALL_INCLUSIVE = "UAI"

    @property
    def rank(self) -> int:
        """Ordinal position, 0 (room only) .. 5 (ultra all inclusive)."""
        return _MEAL_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | None) -> "MealPlan | None":
        """Map provider meal codes and names (English or Russian) to a plan."""
        if not value:
            return None
        text = value.strip().lower()
        if text in _MEAL_ALIASES:
            return _MEAL_ALIASES[text]
        # Longest alias first so "ultra all inclusive" beats "all inclusive"
        for alias in sorted(_MEAL_ALIASES, key=len, reverse=True):
            if len(alias) > 3 and alias in text:
                return _MEAL_ALIASES[alias]
        return None


_MEAL_ORDER = [
    MealPlan.NONE,
    MealPlan.BREAKFAST,
    MealPlan.HALF_BOARD,
    MealPlan.FULL_BOARD,
    MealPlan.ALL_INCLUSIVE,
    MealPlan.ULTRA_ALL_INCLUSIVE,
]

_MEAL_ALIASES: dict[str, MealPlan] = {
    "ro": MealPlan.NONE,
    "non": MealPlan.NONE,
    "none": MealPlan.NONE,
    "no_meals": MealPlan.NONE,
    "room only": MealPlan.NONE,
    "без питания": MealPlan.NONE,
    "bb": MealPlan.BREAKFAST,
    "breakfast": MealPlan.BREAKFAST,
    "breakfasts": MealPlan.BREAKFAST,
    "bed_and_breakfast": MealPlan.BREAKFAST,
    "завтрак": MealPlan.BREAKFAST,
    "hb": MealPlan.HALF_BOARD,
    "half": MealPlan.HALF_BOARD,
    "half_board": MealPlan.HALF_BOARD,
    "half board": MealPlan.HALF_BOARD,
    "полупансион": MealPlan.HALF_BOARD,
    "fb": MealPlan.FULL_BOARD,
    "full": MealPlan.FULL_BOARD,
    "full_board": MealPlan.FULL_BOARD,
    "full board": MealPlan.FULL_BOARD,
    "полный пансион": MealPlan.FULL_BOARD,
    "ai": MealPlan.ALL_INCLUSIVE,
    "all": MealPlan.ALL_INCLUSIVE,
    "all_incl": MealPlan.ALL_INCLUSIVE,
    "all_inclusive": MealPlan.ALL_INCLUSIVE,
    "all inclusive": MealPlan.ALL_INCLUSIVE,
    "все включено": MealPlan.ALL_INCLUSIVE,
    "всё включено": MealPlan.ALL_INCLUSIVE,
    "uai": MealPlan.ULTRA_ALL_INCLUSIVE,
    "ultra_all": MealPlan.ULTRA_ALL_INCLUSIVE,
    "ultra_all_inclusive": MealPlan.ULTRA_ALL_INCLUSIVE,
    "ultra all inclusive": MealPlan.ULTRA_ALL_INCLUSIVE,
    "ультра все включено": MealPlan.ULTRA_ALL_INCLUSIVE,
    "ультра всё включено": MealPlan.ULTRA_ALL_INCLUSIVE,
}


@dataclass(frozen=True)
class Offer:
    """One provider's bookable package for a hotel/date/room/meal combination.

    Prices are integers in minor currency units. Offers are never mutated
    after an adapter builds them.
    """

    provider: str
    external_id: str
    hotel_name: str
    country: str
    price: int
    resort: str | None = None
    stars: int | None = None
    beach_line: int | None = None
    meal_plan: MealPlan | None = None
    price_old: int | None = None
    currency: str = "RUB"
    start_date: date | None = None
    end_date: date | None = None
    nights: int = 0
    hotel_rating: float | None = None
    review_count: int = 0
    images: tuple[str, ...] = ()
    booking_url: str = ""
    room_type: str | None = None
    features: frozenset[str] = frozenset()
    beach_distance_m: int | None = None
    instant_confirm: bool = False
    is_hot: bool = False
    metadata: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False
    )

    def __post_init__(self):
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        if not isinstance(self.images, tuple):
            object.__setattr__(self, "images", tuple(self.images))
        if not isinstance(self.features, frozenset):
            object.__setattr__(self, "features", frozenset(self.features))

    @property
    def offer_id(self) -> tuple[str, str]:
        return (self.provider, self.external_id)

    @property
    def discount_percent(self) -> int:
        if not self.price_old or self.price_old <= self.price:
            return 0
        return round((1 - self.price / self.price_old) * 100)

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "external_id": self.external_id,
            "hotel_name": self.hotel_name,
            "country": self.country,
            "resort": self.resort,
            "stars": self.stars,
            "beach_line": self.beach_line,
            "meal_plan": self.meal_plan.value if self.meal_plan else None,
            "price": self.price,
            "price_old": self.price_old,
            "currency": self.currency,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "nights": self.nights,
            "hotel_rating": self.hotel_rating,
            "review_count": self.review_count,
            "images": list(self.images),
            "booking_url": self.booking_url,
            "room_type": self.room_type,
            "features": sorted(self.features),
            "beach_distance_m": self.beach_distance_m,
            "instant_confirm": self.instant_confirm,
            "is_hot": self.is_hot,
        }
