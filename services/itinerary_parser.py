# services/itinerary_parser.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List

from pydantic import ValidationError

from models import DayPlan

log = logging.getLogger("llm")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

@dataclass(frozen=True)
class Window:
    """Inclusive, 1-based range of days generated by one model call."""
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"

def plan_windows(day_count: int, chunk_size: int) -> List[Window]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [Window(start, min(start + chunk_size - 1, day_count)) for start in range(1, day_count + 1, chunk_size)]

class WindowError(ValueError):
    kind = "parse"

    def __init__(self, message: str, window: Window) -> None:
        super().__init__(message)
        self.window = window

class WindowParseError(WindowError):
    kind = "parse"

class WindowSchemaError(WindowError):
    kind = "schema"

def _preview(text: str, limit: int = 300) -> str:
    return text if len(text) <= limit else text[:limit] + "..."

def extract_json_array(text: str | None, window: Window) -> Any:
    """Pull the JSON array out of a model reply that may carry fences or prose."""
    cleaned = _FENCE_RE.sub("", (text or "").strip())

    first = cleaned.find("[")
    last = cleaned.rfind("]")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        log.warning("JSON parse failed for days %s: %s", window, exc, extra={"preview": _preview(cleaned)})
        match = _ARRAY_RE.search(cleaned)
        if not match:
            raise WindowParseError(f"No valid JSON array found in response for days {window}", window) from exc
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            raise WindowParseError(f"JSON parsing failed for days {window}: {exc}", window) from exc
        log.info("Recovered JSON array with regex scan for days %s", window)
        return payload

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def _non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip())

def validate_window(payload: Any, window: Window) -> List[DayPlan]:
    """Check the raw structure, then build DayPlan models.

    Errors name the offending day (and stop) index within the window.
    """
    if not isinstance(payload, list):
        raise WindowSchemaError(f"Expected array but got {type(payload).__name__} for days {window}", window)

    for index, day in enumerate(payload):
        if not isinstance(day, dict) or not _non_empty_str(day.get("title")) or not isinstance(day.get("itinerary"), list):
            raise WindowSchemaError(f"Invalid day structure at index {index} in chunk {window}", window)

        for place_index, place in enumerate(day["itinerary"]):
            location = place.get("location") if isinstance(place, dict) else None
            if (
                not isinstance(place, dict)
                or not _non_empty_str(place.get("name"))
                or not _non_empty_str(place.get("description"))
                or not isinstance(location, dict)
                or not _is_number(location.get("lat"))
                or not _is_number(location.get("lng"))
            ):
                raise WindowSchemaError(
                    f"Invalid place structure at place {place_index} in day {index} of chunk {window}", window
                )

    days: List[DayPlan] = []
    for index, day in enumerate(payload):
        try:
            days.append(DayPlan.model_validate(day))
        except ValidationError as exc:
            raise WindowSchemaError(
                f"Invalid day at index {index} in chunk {window}: {exc.error_count()} validation error(s), "
                f"first: {exc.errors()[0]['msg']}",
                window,
            ) from exc
    return days
