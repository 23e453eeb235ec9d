from models import DayPlan
from services.map_view import (
    DEFAULT_FOOD,
    build_map_view,
    day_focus,
    food_recommendation,
    map_points,
    route_positions,
    stop_cards,
    time_of_day,
    visit_duration,
)
from tests.conftest import make_day

def _days():
    return [
        DayPlan.model_validate(make_day(1)),
        DayPlan(title="Day 2: Rest day"),
        DayPlan.model_validate(make_day(3, stops=3)),
    ]

def test_map_points_number_only_days_with_stops():
    points = map_points(_days())

    assert len(points) == 5
    assert [p.day_number for p in points] == [1, 1, 2, 2, 2]
    assert [p.day_index for p in points] == [0, 0, 2, 2, 2]
    assert [p.is_first_place_of_day for p in points] == [True, False, True, False, False]
    assert points[2].place_index == 0

def test_route_and_focus():
    points = map_points(_days())
    route = route_positions(points)
    assert route[0] == [points[0].lat, points[0].lng]
    assert len(route) == len(points)

    assert day_focus(points, 2) is points[2]
    assert day_focus(points, 9) is None

def test_build_map_view_focuses_selected_day():
    view = build_map_view(_days(), selected_day=2)
    assert view.focus.day_index == 2
    assert len(view.route) == 5

def test_schedule_hints_cycle():
    assert [time_of_day(i) for i in range(4)] == ["Morning", "Afternoon", "Evening", "Morning"]
    assert visit_duration(4) == "4 hours"
    assert visit_duration(6) == "2 hours"

def test_food_recommendation_defaults():
    day = DayPlan.model_validate(make_day(1))
    assert food_recommendation(day.stops[0]).name == "Izuju"

    day.stops[0].nearby_food = []
    assert food_recommendation(day.stops[0]) is DEFAULT_FOOD

def test_stop_cards_use_images_then_placeholder():
    day = DayPlan.model_validate(make_day(1))
    first, second = day.stops
    cards = stop_cards(day, {first.name.lower(): "https://images.unsplash.com/x"})

    assert cards[0].image_url == "https://images.unsplash.com/x"
    assert cards[1].image_url.startswith("https://source.unsplash.com/600x400/?")
    assert cards[1].time_of_day == "Afternoon"
    assert cards[0].food.name == "Izuju"
