from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import (
    BaseModel,
    Field,
    ConfigDict,
    field_validator,
    model_validator,
    conint,
    confloat,
    AliasChoices,
)

MAX_TRIP_DAYS = 21

# -----------------------------
# Request
# -----------------------------

class TripRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    destination: str
    budget: confloat(gt=0) = Field(description="Total trip budget; treated as a guideline by the planner.")
    day_count: conint(ge=1, le=MAX_TRIP_DAYS) = Field(
        validation_alias=AliasChoices("day_count", "dayCount", "days"),
    )

    @field_validator("destination")
    @classmethod
    def _validate_destination(cls, v):
        from security import validate_destination
        return validate_destination(v)

def daily_budget(budget: float, day_count: int) -> int:
    return round(budget / max(day_count, 1))

# -----------------------------
# Itinerary
# -----------------------------

def _display_str(v: Any) -> Any:
    # Models sometimes return ratings/prices as bare numbers
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v

class Location(BaseModel):
    model_config = ConfigDict(extra="ignore")
    lat: confloat(ge=-90, le=90)
    lng: confloat(ge=-180, le=180)
    label: Optional[str] = None

    @field_validator("label", mode="before")
    @classmethod
    def _label_to_str(cls, v):
        return _display_str(v)

def _records_only(v):
    # Display lists: drop anything that is not a record instead of failing the day
    if not isinstance(v, list):
        return []
    return [item for item in v if isinstance(item, (dict, BaseModel))]

class _Recommendation(BaseModel):
    """Display-only record; values are shown as-is."""
    model_config = ConfigDict(extra="ignore")
    name: Optional[str] = None
    rating: Optional[str] = None
    price: Optional[str] = None
    distance: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name", "rating", "price", "distance", "description", mode="before")
    @classmethod
    def _numbers_to_str(cls, v):
        return _display_str(v)

class FoodRec(_Recommendation):
    pass

class HotelRec(_Recommendation):
    pass

class Stop(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    description: str
    location: Location
    nearby_food: List[FoodRec] = Field(
        default_factory=list,
        validation_alias=AliasChoices("nearby_food", "nearbyFood"),
    )
    nearby_hotels: List[HotelRec] = Field(
        default_factory=list,
        validation_alias=AliasChoices("nearby_hotels", "nearbyHotels"),
    )

    @field_validator("nearby_food", "nearby_hotels", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return _records_only(v)

    @model_validator(mode="after")
    def _default_label(self) -> "Stop":
        if not self.location.label:
            self.location.label = self.name
        return self

    @property
    def label(self) -> str:
        return self.location.label or self.name

class DayPlan(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str
    stops: List[Stop] = Field(
        default_factory=list,
        validation_alias=AliasChoices("stops", "itinerary"),
    )

    @field_validator("stops", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return [] if v is None else v

# -----------------------------
# Generation result
# -----------------------------

FailureKind = Literal["backend", "parse", "schema"]

class GenerationFailure(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: FailureKind
    message: str
    window: Optional[str] = Field(default=None, description="Day range being generated when it failed, e.g. '8-10'.")
    # Days from windows that validated before the failure; not part of the rendered result
    completed_days: List[DayPlan] = Field(default_factory=list)

class ItineraryResult(BaseModel):
    """Either a validated itinerary or a typed failure plus a renderable fallback."""
    model_config = ConfigDict(extra="forbid")

    status: Literal["ok", "error"]
    destination: str
    budget: float
    requested_days: conint(ge=1)
    days: List[DayPlan] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    failure: Optional[GenerationFailure] = None
    generated_at_iso: Optional[str] = None

    @model_validator(mode="after")
    def _failure_matches_status(self) -> "ItineraryResult":
        if (self.status == "error") != (self.failure is not None):
            raise ValueError("failure must be set exactly when status is 'error'.")
        return self

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def day(self, day_number: int) -> Optional[DayPlan]:
        """Day N lives at position N-1."""
        if 1 <= day_number <= len(self.days):
            return self.days[day_number - 1]
        return None

# -----------------------------
# Images / sessions
# -----------------------------

class ImageResolveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    key: str = Field(min_length=1, max_length=200)
    query: str = Field(min_length=1, max_length=200)

    @field_validator("key")
    @classmethod
    def _lower_key(cls, v: str) -> str:
        return v.strip().lower()

class ImageResolveResponse(BaseModel):
    key: str
    url: str

class StopCard(BaseModel):
    name: str
    time_of_day: str
    duration: str
    image_url: str
    food: FoodRec

class DaySelection(BaseModel):
    day_number: int
    day: DayPlan
    images: Dict[str, str] = Field(default_factory=dict)
    cards: List[StopCard] = Field(default_factory=list)
    applied: bool = Field(description="False when another view replaced this one before its images arrived.")

class MapPoint(BaseModel):
    name: str
    label: str
    lat: float
    lng: float
    day_number: int
    day_index: int
    place_index: int
    is_first_place_of_day: bool

class MapView(BaseModel):
    points: List[MapPoint] = Field(default_factory=list)
    route: List[List[float]] = Field(default_factory=list)
    focus: Optional[MapPoint] = None

class SessionSummary(BaseModel):
    id: str
    created_at: str
    updated_at: str
    selected_day: int
    request: Optional[TripRequest] = None
    result: Optional[ItineraryResult] = None
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    cached_images: int = 0
