"""Tour card builder — turns a group of same-hotel offers into one presentable card."""

from dataclasses import dataclass, field

from tourwise.config import settings
from tourwise.services.hotel_identity import OfferGroup, offer_sort_key
from tourwise.services.offer import MealPlan, Offer
from tourwise.services.scoring_engine import MatchResult

MAX_CARD_IMAGES = 10

# Feature flag -> human-readable highlight, in display order
_HIGHLIGHT_FEATURES = [
    ("wifi", "Free Wi-Fi"),
    ("pool", "Pool"),
    ("kids_club", "Kids club"),
    ("aquapark", "Aquapark"),
    ("fitness", "Fitness center"),
]


@dataclass(frozen=True)
class PriceRange:
    min: int
    max: int
    currency: str = "RUB"


@dataclass(frozen=True)
class HotelDescriptor:
    name: str
    country: str
    resort: str | None = None
    stars: int | None = None
    rating: float | None = None
    review_count: int = 0
    beach_line: int | None = None
    features: frozenset[str] = frozenset()
    images: tuple[str, ...] = ()
    highlights: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredOption:
    offer: Offer
    match: MatchResult | None = None

    @property
    def score(self) -> float | None:
        return self.match.score if self.match else None


@dataclass(frozen=True)
class Badge:
    kind: str
    label: str
    value: int | None = None


@dataclass
class TourCard:
    hotel_key: str
    hotel: HotelDescriptor
    price_range: PriceRange
    options: list[ScoredOption]
    best_price: ScoredOption
    recommended: ScoredOption
    best_value: ScoredOption
    badges: list[Badge] = field(default_factory=list)

    @property
    def providers(self) -> list[str]:
        return sorted({o.offer.provider for o in self.options})

    @property
    def match_score(self) -> float | None:
        return self.recommended.score

    def has_badge(self, kind: str) -> bool:
        return any(b.kind == kind for b in self.badges)

    def add_badge(self, badge: Badge) -> None:
        if not self.has_badge(badge.kind):
            self.badges.insert(0, badge)

    def to_dict(self) -> dict:
        return {
            "hotel_key": self.hotel_key,
            "hotel": {
                "name": self.hotel.name,
                "country": self.hotel.country,
                "resort": self.hotel.resort,
                "stars": self.hotel.stars,
                "rating": self.hotel.rating,
                "review_count": self.hotel.review_count,
                "beach_line": self.hotel.beach_line,
                "features": sorted(self.hotel.features),
                "images": list(self.hotel.images),
                "highlights": list(self.hotel.highlights),
            },
            "price_range": {
                "min": self.price_range.min,
                "max": self.price_range.max,
                "currency": self.price_range.currency,
            },
            "options": [_option_dict(o) for o in self.options],
            "best_price": _option_dict(self.best_price),
            "recommended": _option_dict(self.recommended),
            "best_value": _option_dict(self.best_value),
            "badges": [{"kind": b.kind, "label": b.label, "value": b.value} for b in self.badges],
            "providers": self.providers,
            "match_score": self.match_score,
        }


def build_tour_card(
    group: OfferGroup,
    matches: dict[tuple[str, str], MatchResult] | None = None,
    high_match_threshold: float | None = None,
) -> TourCard:
    """
    Build a card for one hotel group.

    Reads precomputed match results only; never scores offers itself. The
    global best_price badge is not assigned here because it depends on the
    whole result set.
    """
    if not group.offers:
        raise ValueError(f"Cannot build a card for empty group {group.key}")

    if high_match_threshold is None:
        high_match_threshold = settings.high_match_threshold

    ordered = sorted(group.offers, key=offer_sort_key)
    options = [ScoredOption(offer=o, match=(matches or {}).get(o.offer_id)) for o in ordered]

    best_price = options[0]
    recommended = _pick_recommended(options) or best_price
    best_value = max(options, key=lambda o: (_value_score(o.offer), -options.index(o)))

    card = TourCard(
        hotel_key=group.key,
        hotel=_merge_hotel(ordered),
        price_range=PriceRange(
            min=ordered[0].price,
            max=max(o.price for o in ordered),
            currency=ordered[0].currency,
        ),
        options=options,
        best_price=best_price,
        recommended=recommended,
        best_value=best_value,
    )
    card.badges = _compute_badges(card, high_match_threshold)
    return card


# --- Private helpers ---

def _option_dict(option: ScoredOption) -> dict:
    data = option.offer.to_dict()
    data["match"] = option.match.to_dict() if option.match else None
    return data


def _pick_recommended(options: list[ScoredOption]) -> ScoredOption | None:
    """Highest score; ties go to the earlier (cheaper) option."""
    best = None
    for option in options:
        if option.match is None:
            continue
        if best is None or option.match.score > best.match.score:
            best = option
    return best


def _value_score(offer: Offer) -> float:
    """Price/quality value: cheaper is better, plus meal and confirmation bonuses."""
    score = 100 / max(offer.price / 10000, 0.01)
    if offer.meal_plan in (MealPlan.ALL_INCLUSIVE, MealPlan.ULTRA_ALL_INCLUSIVE):
        score += 20
    if offer.instant_confirm:
        score += 10
    return score


def _merge_hotel(offers: list[Offer]) -> HotelDescriptor:
    # Richest record supplies the display fields
    richest = max(
        offers,
        key=lambda o: (len(o.images) + len(o.features) + (1 if o.resort else 0), -offers.index(o)),
    )

    images: list[str] = []
    for offer in offers:
        for url in offer.images:
            if url not in images:
                images.append(url)

    features: frozenset[str] = frozenset().union(*(o.features for o in offers))
    ratings = [o.hotel_rating for o in offers if o.hotel_rating is not None]
    lines = [o.beach_line for o in offers if o.beach_line]
    stars = [o.stars for o in offers if o.stars]
    beach_line = min(lines) if lines else None

    highlights = []
    if beach_line == 1:
        highlights.append("First beach line")
    for flag, label in _HIGHLIGHT_FEATURES:
        if flag in features:
            highlights.append(label)

    return HotelDescriptor(
        name=richest.hotel_name or offers[0].hotel_name,
        country=richest.country,
        resort=richest.resort,
        stars=max(stars) if stars else None,
        rating=max(ratings) if ratings else None,
        review_count=sum(o.review_count for o in offers),
        beach_line=beach_line,
        features=features,
        images=tuple(images[:MAX_CARD_IMAGES]),
        highlights=tuple(highlights),
    )


def _compute_badges(card: TourCard, high_match_threshold: float) -> list[Badge]:
    badges: list[Badge] = []
    offers = [o.offer for o in card.options]

    if card.recommended.score is not None and card.recommended.score >= high_match_threshold:
        badges.append(Badge("high_match", f"{round(card.recommended.score)}% match",
                            round(card.recommended.score)))

    discount = max((o.discount_percent for o in offers), default=0)
    if discount > 0:
        badges.append(Badge("discount", f"-{discount}%", discount))

    if any(o.is_hot for o in offers):
        badges.append(Badge("hot", "Hot deal"))

    if all(o.instant_confirm for o in offers):
        badges.append(Badge("instant_confirm", "Instant confirmation"))

    provider_count = len({o.provider for o in offers})
    if provider_count >= 2:
        badges.append(Badge("multi_provider", f"{provider_count} providers", provider_count))

    return badges


def assign_best_price_badge(cards: list[TourCard]) -> None:
    """Mark the card(s) holding the lowest price in the whole result set."""
    if not cards:
        return
    lowest = min(c.price_range.min for c in cards)
    for card in cards:
        if card.price_range.min == lowest:
            card.add_badge(Badge("best_price", "Best price"))
