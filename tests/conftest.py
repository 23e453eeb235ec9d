import json
import re
from typing import Callable, Dict, List, Optional

import pytest

KYOTO_PLACES = [
    ("Fushimi Inari Taisha", 34.9671, 135.7727),
    ("Kinkaku-ji", 35.0394, 135.7292),
    ("Kiyomizu-dera", 34.9949, 135.7850),
    ("Arashiyama Bamboo Grove", 35.0170, 135.6713),
    ("Nishiki Market", 35.0050, 135.7649),
]

_WINDOW_RE = re.compile(r"days (\d+) to (\d+)")

def make_day(day_number: int, stops: int = 2) -> Dict:
    itinerary = []
    for i in range(stops):
        name, lat, lng = KYOTO_PLACES[(day_number + i) % len(KYOTO_PLACES)]
        itinerary.append({
            "name": name,
            "description": f"{name} is one of the most visited sites in Kyoto.",
            "location": {"lat": lat, "lng": lng, "label": name},
            "nearbyFood": [{"name": "Izuju", "rating": 4.4, "distance": "200m away", "description": "Inari sushi"}],
            "nearbyHotels": [{"name": "Hotel Kanra", "rating": "4.6/5", "price": "$180/night", "distance": "1km away"}],
        })
    return {"title": f"Day {day_number}: Exploring Kyoto", "itinerary": itinerary}

def make_window(start: int, end: int) -> List[Dict]:
    return [make_day(n) for n in range(start, end + 1)]

def window_of(prompt: str):
    m = _WINDOW_RE.search(prompt)
    assert m, "prompt should name its day range"
    return int(m.group(1)), int(m.group(2))

class FakeTextBackend:
    """Answers each prompt with `reply(start, end)`; records the windows asked for."""

    def __init__(self, reply: Optional[Callable[[int, int], str]] = None):
        self.reply = reply or (lambda s, e: json.dumps(make_window(s, e)))
        self.prompts: List[str] = []
        self.windows: List[tuple] = []

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        start, end = window_of(prompt)
        self.windows.append((start, end))
        return self.reply(start, end)

class FakePhotoSearch:
    def __init__(self, results: Optional[Dict[str, List[Dict]]] = None, error: Optional[Exception] = None):
        self.results = results
        self.error = error
        self.calls: List[str] = []

    async def search_photos(self, query, *, orientation="landscape", per_page=1):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        if self.results is None:
            slug = query.lower().replace(" ", "-")
            return [{"id": slug, "urls": {"regular": f"https://images.unsplash.com/{slug}"}}]
        return self.results.get(query, [])

@pytest.fixture
def text_backend():
    return FakeTextBackend()

@pytest.fixture
def photo_search():
    return FakePhotoSearch()
