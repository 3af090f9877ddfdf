"""Scoring engine — rates tour offers 0-100 against a traveler's priority weights."""

from dataclasses import dataclass, field, fields

from tourwise.config import settings
from tourwise.services.geo import resolve_country
from tourwise.services.offer import MealPlan, Offer

NEUTRAL_SCORE = 50.0

CRITERIA = (
    "price",
    "star_rating",
    "beach_line",
    "meal_type",
    "location",
    "reviews",
    "family_friendly",
    "activities",
    "quietness",
    "room_quality",
)

# camelCase keys used by stored profiles and model output
_CAMEL_KEYS = {
    "starRating": "star_rating",
    "beachLine": "beach_line",
    "mealType": "meal_type",
    "familyFriendly": "family_friendly",
    "roomQuality": "room_quality",
    "hotelRating": "reviews",
    "priceValue": "price",
}


@dataclass(frozen=True)
class PriorityWeights:
    """Importance 0-10 per criterion."""
    price: int = 5
    star_rating: int = 5
    beach_line: int = 5
    meal_type: int = 5
    location: int = 5
    reviews: int = 5
    family_friendly: int = 5
    activities: int = 5
    quietness: int = 5
    room_quality: int = 5

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            object.__setattr__(self, f.name, max(0, min(10, int(round(value or 0)))))

    @classmethod
    def from_mapping(cls, data: dict | None, default: int = 5) -> "PriorityWeights":
        """Build weights from snake_case or camelCase keys; unknown keys are ignored."""
        values = {name: default for name in CRITERIA}
        for key, value in (data or {}).items():
            name = _CAMEL_KEYS.get(key, key)
            if name in values and value is not None:
                try:
                    values[name] = int(round(float(value)))
                except (TypeError, ValueError):
                    continue
        return cls(**values)

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in CRITERIA}


def zero_weights(**overrides: int) -> PriorityWeights:
    """All-zero weights with selected criteria switched on."""
    values = {name: 0 for name in CRITERIA}
    values.update(overrides)
    return PriorityWeights(**values)


# Preset profiles seeded for new travelers
PRIORITY_PROFILES: dict[str, PriorityWeights] = {
    "beach": PriorityWeights(price=7, star_rating=6, beach_line=10, meal_type=8, location=5,
                             reviews=7, family_friendly=5, activities=4, quietness=6, room_quality=6),
    "family": PriorityWeights(price=6, star_rating=8, beach_line=7, meal_type=9, location=7,
                              reviews=8, family_friendly=10, activities=9, quietness=4, room_quality=7),
    "active": PriorityWeights(price=5, star_rating=7, beach_line=5, meal_type=6, location=9,
                              reviews=7, family_friendly=3, activities=10, quietness=2, room_quality=5),
    "relaxing": PriorityWeights(price=6, star_rating=8, beach_line=8, meal_type=7, location=4,
                                reviews=8, family_friendly=2, activities=2, quietness=10, room_quality=8),
    "budget": PriorityWeights(price=10, star_rating=4, beach_line=6, meal_type=7, location=5,
                              reviews=8, family_friendly=5, activities=5, quietness=5, room_quality=3),
}


@dataclass(frozen=True)
class ScoringConfig:
    """Tunable normalization constants."""
    beach_line_step: int = 30
    location_mismatch_score: float = 30.0
    over_budget_zero_ratio: float = 1.5
    under_budget_span: float = 30.0  # score drop from free (100) to exactly on budget (70)

    @classmethod
    def from_settings(cls) -> "ScoringConfig":
        return cls(
            beach_line_step=settings.beach_line_step,
            location_mismatch_score=float(settings.location_mismatch_score),
            over_budget_zero_ratio=settings.over_budget_zero_ratio,
        )


@dataclass(frozen=True)
class ScoringContext:
    """Traveler-side inputs that some criteria are judged against."""
    budget: int | None = None
    destinations: tuple[str, ...] = ()
    adults: int = 2
    children: int = 0


@dataclass(frozen=True)
class MatchResult:
    score: float
    breakdown: dict[str, float] = field(default_factory=dict)
    explanation: str | None = None

    def with_explanation(self, explanation: str) -> "MatchResult":
        return MatchResult(score=self.score, breakdown=self.breakdown, explanation=explanation)

    def to_dict(self) -> dict:
        return {"score": self.score, "breakdown": self.breakdown, "explanation": self.explanation}


def template_explanation(score: float) -> str:
    return f"Offer matches {round(score)}% of your criteria"


def score_offer(
    offer: Offer,
    weights: PriorityWeights,
    context: ScoringContext | None = None,
    config: ScoringConfig | None = None,
) -> MatchResult:
    """
    Score one offer.

    Each criterion is normalized to 0-100, then combined as
    sum(weight * subscore) / sum(weight). All-zero weights fall back to the
    plain mean. Missing offer data scores a neutral 50.
    """
    context = context or ScoringContext()
    config = config or ScoringConfig()

    breakdown = {
        "price": _price_score(offer.price, context.budget, config),
        "star_rating": _stars_score(offer.stars),
        "beach_line": _beach_score(offer.beach_line, config),
        "meal_type": _meal_score(offer.meal_plan),
        "location": _location_score(offer, context.destinations, config),
        "reviews": _reviews_score(offer.hotel_rating),
        "family_friendly": _family_score(offer.features, context.children),
        "activities": _activities_score(offer.features),
        "quietness": _quietness_score(offer.features),
        "room_quality": _room_score(offer.room_type),
    }
    breakdown = {k: round(_clamp(v), 1) for k, v in breakdown.items()}

    weight_map = weights.as_dict()
    total_weight = sum(weight_map.values())
    if total_weight > 0:
        overall = sum(weight_map[k] * breakdown[k] for k in CRITERIA) / total_weight
    else:
        overall = sum(breakdown.values()) / len(breakdown)

    return MatchResult(score=round(_clamp(overall), 1), breakdown=breakdown)


def score_offers(
    offers: list[Offer],
    weights: PriorityWeights,
    context: ScoringContext | None = None,
    config: ScoringConfig | None = None,
) -> dict[tuple[str, str], MatchResult]:
    """Score every offer; results keyed by (provider, external_id)."""
    return {offer.offer_id: score_offer(offer, weights, context, config) for offer in offers}


# --- Per-criterion normalization ---

def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _price_score(price: int, budget: int | None, config: ScoringConfig) -> float:
    """At or under budget: 100 (free) down to 70 (on budget). Over: linear to 0."""
    if not budget or budget <= 0 or price is None:
        return NEUTRAL_SCORE
    ratio = price / budget
    on_budget = 100.0 - config.under_budget_span
    if ratio <= 1.0:
        return 100.0 - config.under_budget_span * ratio
    overshoot = (ratio - 1.0) / max(config.over_budget_zero_ratio - 1.0, 1e-9)
    return on_budget * (1.0 - overshoot)


def _stars_score(stars: int | None) -> float:
    if stars is None or stars <= 0:
        return NEUTRAL_SCORE
    return stars / 5 * 100


def _beach_score(line: int | None, config: ScoringConfig) -> float:
    if line is None or line < 1:
        return NEUTRAL_SCORE
    return max(0.0, 100.0 - (line - 1) * config.beach_line_step)


def _meal_score(meal: MealPlan | None) -> float:
    if meal is None:
        return NEUTRAL_SCORE
    return meal.rank / 5 * 100


def _location_score(offer: Offer, destinations: tuple[str, ...], config: ScoringConfig) -> float:
    if not destinations or not offer.country:
        return NEUTRAL_SCORE
    country = resolve_country(offer.country) or offer.country.strip().lower()
    resort = (offer.resort or "").strip().lower()
    for dest in destinations:
        raw = dest.strip().lower()
        if not raw:
            continue
        # Whole-value comparison; "us" must not match "russia"
        if (resolve_country(raw) or raw) == country or (resort and raw == resort):
            return 100.0
    return config.location_mismatch_score


def _reviews_score(rating: float | None) -> float:
    if rating is None or rating <= 0:
        return NEUTRAL_SCORE
    return rating / 10 * 100


_FAMILY_FEATURES = {"kids_club": 40, "aquapark": 30, "family_rooms": 20, "kids_pool": 20, "animation": 10}
_ACTIVITY_FEATURES = {"animation": 30, "aquapark": 25, "fitness": 15, "spa": 15, "water_sports": 20, "diving": 20}
_ROOM_TYPES = {"standard": 50, "superior": 65, "family": 70, "deluxe": 75, "junior_suite": 80,
               "studio": 60, "apartment": 70, "suite": 90, "villa": 90, "bungalow": 85}


def _family_score(features: frozenset[str], children: int) -> float:
    if not features:
        return NEUTRAL_SCORE
    points = sum(v for k, v in _FAMILY_FEATURES.items() if k in features)
    if points == 0:
        return 20.0 if children > 0 else NEUTRAL_SCORE
    return min(100.0, 40.0 + points)


def _activities_score(features: frozenset[str]) -> float:
    if not features:
        return NEUTRAL_SCORE
    points = sum(v for k, v in _ACTIVITY_FEATURES.items() if k in features)
    return min(100.0, 30.0 + points)


def _quietness_score(features: frozenset[str]) -> float:
    if not features:
        return NEUTRAL_SCORE
    if "adults_only" in features:
        return 100.0
    score = 70.0
    if "animation" in features:
        score -= 30
    if "aquapark" in features:
        score -= 15
    if "nightclub" in features:
        score -= 20
    return score


def _room_score(room_type: str | None) -> float:
    if not room_type:
        return NEUTRAL_SCORE
    text = room_type.lower().replace(" ", "_")
    best = None
    for key, value in _ROOM_TYPES.items():
        if key in text:
            best = value if best is None else max(best, value)
    return float(best) if best is not None else NEUTRAL_SCORE
