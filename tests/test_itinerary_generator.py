import asyncio
import json

import pytest

from services.itinerary_generator import (
    FALLBACK_TITLE,
    ItineraryGenerator,
    MissingAPIKeyError,
    build_window_prompt,
)
from services.itinerary_parser import Window
from tests.conftest import FakeTextBackend, make_window

def _generator(backend, **kw):
    return ItineraryGenerator(backend, api_key="sk-test", **kw)

def test_kyoto_five_days_single_window(text_backend):
    result = asyncio.run(_generator(text_backend).generate("Kyoto", 900, 5))

    assert result.ok
    assert result.status == "ok"
    assert result.failure is None
    assert len(result.days) == 5
    assert result.days[0].title.startswith("Day 1")
    assert text_backend.windows == [(1, 5)]
    for day in result.days:
        assert day.stops
        for stop in day.stops:
            assert -90 <= stop.location.lat <= 90
            assert -180 <= stop.location.lng <= 180

def test_ten_days_use_two_sequential_windows(text_backend):
    result = asyncio.run(_generator(text_backend, chunk_size=7).generate("Kyoto", 2000, 10))

    assert text_backend.windows == [(1, 7), (8, 10)]
    assert len(result.days) == 10
    assert result.days[7].title.startswith("Day 8")
    assert result.warnings == []

def test_prompt_fixes_contract():
    prompt = build_window_prompt("Lisbon", 1200, Window(8, 10))
    assert "Lisbon" in prompt
    assert "1200" in prompt
    assert "days 8 to 10" in prompt
    assert '"title": "Day 8: Short Title"' in prompt
    assert "nearbyFood" in prompt and "nearbyHotels" in prompt
    assert "Start with [ and end with ]" in prompt

def test_fenced_reply_with_prose_is_accepted():
    backend = FakeTextBackend(lambda s, e: "Here you go!\n```json\n" + json.dumps(make_window(s, e)) + "\n```")
    result = asyncio.run(_generator(backend).generate("Kyoto", 900, 3))
    assert result.ok
    assert len(result.days) == 3

def test_truncated_reply_returns_fallback():
    backend = FakeTextBackend(lambda s, e: json.dumps(make_window(s, e))[:-25])
    result = asyncio.run(_generator(backend).generate("Kyoto", 900, 3))

    assert result.status == "error"
    assert result.failure.kind == "parse"
    assert result.failure.window == "1-3"
    assert len(result.days) == 1
    fallback = result.days[0]
    assert fallback.title == FALLBACK_TITLE
    assert len(fallback.stops) == 1
    assert "days 1-3" in fallback.stops[0].description
    assert fallback.stops[0].description.strip()

def test_later_window_failure_discards_earlier_days():
    def reply(s, e):
        if s == 8:
            return "[{\"title\": \"Day 8\", \"itinerary\": [{\"name\": \"Gion\"}]}]"
        return json.dumps(make_window(s, e))

    backend = FakeTextBackend(reply)
    result = asyncio.run(_generator(backend).generate("Kyoto", 900, 10))

    assert backend.windows == [(1, 7), (8, 10)]
    assert result.status == "error"
    assert result.days[0].title == FALLBACK_TITLE
    assert result.failure.kind == "schema"
    assert result.failure.window == "8-10"
    assert len(result.failure.completed_days) == 7

def test_backend_exception_becomes_fallback():
    class Boom:
        async def generate_text(self, prompt):
            raise ConnectionError("upstream unavailable")

    result = asyncio.run(_generator(Boom()).generate("Kyoto", 900, 2))
    assert result.status == "error"
    assert result.failure.kind == "backend"
    assert "upstream unavailable" in result.days[0].stops[0].description

def test_day_count_mismatch_is_a_warning():
    backend = FakeTextBackend(lambda s, e: json.dumps(make_window(s, e - 1)))
    result = asyncio.run(_generator(backend).generate("Kyoto", 900, 4))

    assert result.ok
    assert len(result.days) == 3
    assert result.warnings == ["Expected 4 days but got 3 days"]

def test_missing_api_key_raises(text_backend):
    generator = ItineraryGenerator(text_backend, api_key="")
    with pytest.raises(MissingAPIKeyError, match="OPENAI_API_KEY"):
        asyncio.run(generator.generate("Kyoto", 900, 2))
    assert text_backend.prompts == []

def test_progress_reports_each_window(text_backend):
    steps = []
    asyncio.run(_generator(text_backend, chunk_size=2).generate("Kyoto", 900, 3, progress=steps.append))
    assert steps == [
        "Requesting days 1-2",
        "Validated days 1-2 (2 day(s))",
        "Requesting days 3-3",
        "Validated days 3-3 (1 day(s))",
        "Itinerary ready",
    ]

def test_failing_progress_callback_is_ignored(text_backend):
    def progress(msg):
        raise RuntimeError("ui gone")

    result = asyncio.run(_generator(text_backend).generate("Kyoto", 900, 2, progress=progress))
    assert result.ok

def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        ItineraryGenerator(None, api_key="sk-test", chunk_size=0)

def test_prompt_carries_daily_budget(text_backend):
    asyncio.run(_generator(text_backend).generate("Kyoto", 900, 4))
    assert "(about 225 per day)" in text_backend.prompts[0]

def test_unnamed_restaurant_keeps_the_itinerary():
    def reply(s, e):
        payload = make_window(s, e)
        payload[0]["itinerary"][0]["nearbyFood"] = [{"rating": "4.5/5", "distance": "300m away"}]
        return json.dumps(payload)

    result = asyncio.run(_generator(FakeTextBackend(reply)).generate("Kyoto", 900, 2))
    assert result.ok
    assert len(result.days) == 2

@pytest.mark.parametrize("day_count", [0, -3])
def test_non_positive_day_count_raises_before_any_call(text_backend, day_count):
    with pytest.raises(ValueError, match="day_count"):
        asyncio.run(_generator(text_backend).generate("Kyoto", 900, day_count))
    assert text_backend.prompts == []
