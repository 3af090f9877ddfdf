"""Ranking, pagination and facet counts over built tour cards."""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from tourwise.exceptions import InvalidSearchSpecification
from tourwise.services.tour_card_builder import TourCard

T = TypeVar("T")

# match/stars/rating descending, price ascending; missing values sort last
_SORT_KEYS = {
    "match": lambda c: -(c.recommended.score if c.recommended.score is not None else -1),
    "price": lambda c: c.price_range.min,
    "stars": lambda c: -(c.hotel.stars or 0),
    "rating": lambda c: -(c.hotel.rating or 0),
}
SORT_KEYS = tuple(_SORT_KEYS)


def rank_cards(cards: list[TourCard], sort_by: str = "match") -> list[TourCard]:
    """Stable sort: cards equal on the criterion keep their incoming order."""
    key = _SORT_KEYS.get(sort_by)
    if key is None:
        raise InvalidSearchSpecification(
            f"Unknown sort key '{sort_by}', expected one of {', '.join(SORT_KEYS)}",
            [{"loc": ["sort_by"], "msg": "unknown sort key", "type": "value_error"}],
        )
    return sorted(cards, key=key)


@dataclass
class Page(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int
    total_pages: int

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def paginate(items: list[T], page: int = 1, page_size: int = 20) -> Page[T]:
    """Slice one page. A page past the end is empty, not an error."""
    if page < 1:
        raise InvalidSearchSpecification(f"page must be >= 1, got {page}",
                                         [{"loc": ["page"], "msg": "must be >= 1", "type": "value_error"}])
    if page_size < 1:
        raise InvalidSearchSpecification(f"page_size must be >= 1, got {page_size}",
                                         [{"loc": ["page_size"], "msg": "must be >= 1", "type": "value_error"}])
    total = len(items)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )


@dataclass
class Facets:
    price_min: int | None = None
    price_max: int | None = None
    stars: list[dict] = field(default_factory=list)
    meals: list[dict] = field(default_factory=list)
    providers: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "price_range": {"min": self.price_min, "max": self.price_max},
            "stars": self.stars,
            "meals": self.meals,
            "providers": self.providers,
        }


def build_facets(cards: list[TourCard]) -> Facets:
    """Filter counts over the whole result set. Stars count cards; meals and providers count options."""
    if not cards:
        return Facets()

    stars = Counter(c.hotel.stars for c in cards if c.hotel.stars)
    meals = Counter(
        o.offer.meal_plan for c in cards for o in c.options if o.offer.meal_plan is not None
    )
    providers = Counter(o.offer.provider for c in cards for o in c.options)

    return Facets(
        price_min=min(c.price_range.min for c in cards),
        price_max=max(c.price_range.max for c in cards),
        stars=[{"value": s, "count": n} for s, n in sorted(stars.items(), reverse=True)],
        meals=[{"value": m.value, "count": n} for m, n in sorted(meals.items(), key=lambda kv: kv[0].rank)],
        providers=[{"value": p, "count": n} for p, n in sorted(providers.items())],
    )
