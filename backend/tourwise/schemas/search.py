from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tourwise.exceptions import InvalidSearchSpecification
from tourwise.services.offer import MealPlan

SortKey = Literal["match", "price", "stars", "rating"]

MAX_PAGE_SIZE = 50


class SearchSpecification(BaseModel):
    """Validated search request handed to the orchestrator and every provider."""

    destination: list[str] = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    flexible_month: str | None = None
    nights: int | None = Field(default=None, ge=1, le=30)
    budget: int | None = Field(default=None, gt=0)
    adults: int = Field(default=2, ge=1, le=10)
    children: int = Field(default=0, ge=0, le=10)
    children_ages: list[int] = Field(default_factory=list)
    meal_type: MealPlan | None = None
    hotel_stars: int | None = Field(default=None, ge=1, le=5)
    sort_by: SortKey = "match"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE)
    departure_city: str | None = None

    @field_validator("destination", mode="before")
    @classmethod
    def _split_destination(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return value

    @field_validator("meal_type", mode="before")
    @classmethod
    def _parse_meal(cls, value: Any) -> Any:
        if value is None or value == "" or isinstance(value, MealPlan):
            return value or None
        meal = MealPlan.parse(str(value))
        if meal is None:
            raise ValueError(f"Unknown meal type: {value}")
        return meal

    @field_validator("children_ages")
    @classmethod
    def _check_ages(cls, ages: list[int]) -> list[int]:
        for age in ages:
            if age < 0 or age > 17:
                raise ValueError("Child ages must be between 0 and 17")
        return ages

    @model_validator(mode="after")
    def _check_consistency(self) -> "SearchSpecification":
        if self.children_ages and len(self.children_ages) != self.children:
            raise ValueError("children_ages must list one age per child")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SearchSpecification":
        """Validate a raw payload, raising InvalidSearchSpecification on failure."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            fields = ", ".join(".".join(str(p) for p in err["loc"]) or "request" for err in errors)
            raise InvalidSearchSpecification(f"Invalid search request: {fields}", errors) from e

    @property
    def stay_nights(self) -> int:
        if self.nights:
            return self.nights
        if self.start_date and self.end_date and self.end_date > self.start_date:
            return (self.end_date - self.start_date).days
        return 7


class RoomPreferences(BaseModel):
    room_type: str | None = None
    view: str | None = None
    min_area: int | None = None
    separate_beds: bool | None = None


class ParsedRequest(BaseModel):
    """Structured reading of a free-text travel request."""

    destinations: list[str] = Field(default_factory=list)
    departure_city: str | None = None
    date_type: Literal["fixed", "flexible", "anytime"] = "anytime"
    start_date: date | None = None
    end_date: date | None = None
    flexible_month: str | None = None
    duration: int | None = Field(default=None, ge=1, le=60)
    budget: int | None = Field(default=None, gt=0)
    budget_type: Literal["total", "per_person"] = "total"
    currency: str = "RUB"
    adults: int | None = Field(default=None, ge=1, le=10)
    children: int = Field(default=0, ge=0, le=10)
    children_ages: list[int] = Field(default_factory=list)
    stars: int | None = Field(default=None, ge=1, le=5)
    meal_type: str | None = None
    room_preferences: RoomPreferences = Field(default_factory=RoomPreferences)
    requirements: list[str] = Field(default_factory=list)
    suggested_priorities: dict[str, int] = Field(default_factory=dict)
    missing_required: list[str] = Field(default_factory=list)
    missing_optional: list[str] = Field(default_factory=list)
    clarification_questions: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: str = "heuristic"

    @field_validator("suggested_priorities", mode="before")
    @classmethod
    def _clamp_priorities(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        clamped = {}
        for key, weight in value.items():
            try:
                clamped[str(key)] = max(0, min(10, int(round(float(weight)))))
            except (TypeError, ValueError):
                continue
        return clamped

    def to_search_payload(self) -> dict[str, Any]:
        """Search-specification fields this reading can fill in."""
        payload: dict[str, Any] = {}
        if self.destinations:
            payload["destination"] = list(self.destinations)
        if self.departure_city:
            payload["departure_city"] = self.departure_city
        if self.start_date:
            payload["start_date"] = self.start_date
        if self.end_date:
            payload["end_date"] = self.end_date
        if self.flexible_month:
            payload["flexible_month"] = self.flexible_month
        if self.duration:
            payload["nights"] = min(self.duration, 30)
        if self.budget:
            total = self.budget
            if self.budget_type == "per_person":
                total = self.budget * ((self.adults or 2) + self.children)
            payload["budget"] = total
        if self.adults:
            payload["adults"] = self.adults
        if self.children:
            payload["children"] = self.children
            if len(self.children_ages) == self.children:
                payload["children_ages"] = list(self.children_ages)
        if self.stars:
            payload["hotel_stars"] = self.stars
        if self.meal_type and MealPlan.parse(self.meal_type):
            payload["meal_type"] = MealPlan.parse(self.meal_type)
        return payload


class SearchRequest(BaseModel):
    """POST /api/search body: search fields plus engine options."""

    query: str | None = None
    user_id: str | None = None
    weights: dict[str, int] | None = None
    explain: bool = False

    model_config = {"extra": "allow"}

    @property
    def search_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ParseRequest(BaseModel):
    text: str = Field(min_length=1, max_length=2000)
    user_id: str | None = None
    previous_context: dict[str, Any] | None = None
