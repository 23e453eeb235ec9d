# services/map_view.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from models import DayPlan, FoodRec, MapPoint, MapView, Stop, StopCard
from services.image_resolver import place_key, place_query, placeholder_url

_TIMES_OF_DAY = ("Morning", "Afternoon", "Evening")
_VISIT_DURATIONS = ("2 hours", "2 hours", "2 hours", "3 hours", "4 hours", "3 hours")

DEFAULT_FOOD = FoodRec(
    name="Local Restaurant",
    rating="4.0/5",
    distance="500m away",
    description="Popular local restaurant with authentic cuisine.",
)

def map_points(days: Sequence[DayPlan]) -> List[MapPoint]:
    """Flatten the itinerary into markers. Days without stops get no day number."""
    points: List[MapPoint] = []
    day_number = 1
    for day_index, day in enumerate(days):
        if not day.stops:
            continue
        for place_index, stop in enumerate(day.stops):
            points.append(MapPoint(
                name=stop.name,
                label=stop.label,
                lat=stop.location.lat,
                lng=stop.location.lng,
                day_number=day_number,
                day_index=day_index,
                place_index=place_index,
                is_first_place_of_day=place_index == 0,
            ))
        day_number += 1
    return points

def route_positions(points: Sequence[MapPoint]) -> List[List[float]]:
    return [[p.lat, p.lng] for p in points]

def day_focus(points: Sequence[MapPoint], day_number: int) -> Optional[MapPoint]:
    return next((p for p in points if p.day_number == day_number), None)

def build_map_view(days: Sequence[DayPlan], selected_day: int = 1) -> MapView:
    points = map_points(days)
    return MapView(points=points, route=route_positions(points), focus=day_focus(points, selected_day))

def time_of_day(index: int) -> str:
    return _TIMES_OF_DAY[index % len(_TIMES_OF_DAY)]

def visit_duration(index: int) -> str:
    return _VISIT_DURATIONS[index % len(_VISIT_DURATIONS)]

def food_recommendation(stop: Stop) -> FoodRec:
    return stop.nearby_food[0] if stop.nearby_food else DEFAULT_FOOD

def stop_cards(day: DayPlan, images: Dict[str, str]) -> List[StopCard]:
    """Card data for one day; stops without a prefetched image get the placeholder."""
    cards: List[StopCard] = []
    for index, stop in enumerate(day.stops):
        cards.append(StopCard(
            name=stop.name,
            time_of_day=time_of_day(index),
            duration=visit_duration(index),
            image_url=images.get(place_key(stop)) or placeholder_url(place_query(stop)),
            food=food_recommendation(stop),
        ))
    return cards
