# services/itinerary_generator.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from models import DayPlan, GenerationFailure, ItineraryResult, Location, Stop, daily_budget
from request_context import get_request_id
from services.itinerary_parser import Window, WindowError, extract_json_array, plan_windows, validate_window
from services.llm_client import OpenAITextBackend, TextBackend

log = logging.getLogger("llm")

DEFAULT_CHUNK_SIZE = 7

FALLBACK_TITLE = "Day 1: Default Plan (API Error)"
FALLBACK_STOP_NAME = "Fallback Spot"
FALLBACK_LAT, FALLBACK_LNG = 28.6139, 77.2090

class MissingAPIKeyError(RuntimeError):
    """Raised when itinerary generation is attempted without a model API key."""

def _fmt_budget(budget: float) -> str:
    return str(int(budget)) if float(budget).is_integer() else f"{budget:.2f}"

def build_window_prompt(destination: str, budget: float, window: Window, per_day: Optional[int] = None) -> str:
    per_day_line = f" (about {per_day} per day)" if per_day is not None else ""
    return f"""Generate a detailed day-by-day travel itinerary for {destination} with a total budget of {_fmt_budget(budget)}{per_day_line}.

Create plans ONLY for days {window.start} to {window.end}.

Each place must include a long detailed description (history, cultural significance, architecture, interesting facts, and visitor tips).

IMPORTANT: Use REAL and ACCURATE coordinates (latitude and longitude) for each location in {destination}.

ALSO IMPORTANT: For each place, include 2-3 nearby restaurants or food shops and 1-2 nearby hotels with real names, ratings, and prices.

CRITICAL: Return ONLY valid JSON in this exact structure, with NO additional text, explanations, or markdown formatting:

[
  {{
    "title": "Day {window.start}: Short Title",
    "itinerary": [
      {{
        "name": "Place 1",
        "description": "A long, detailed description of the place.",
        "location": {{ "lat": 35.0116, "lng": 135.7681, "label": "Place 1 Label" }},
        "nearbyFood": [
          {{ "name": "Restaurant Name", "rating": "4.5/5", "distance": "300m away", "description": "Cuisine and atmosphere" }}
        ],
        "nearbyHotels": [
          {{ "name": "Hotel Name", "rating": "4.3/5", "price": "$120/night", "distance": "500m away", "description": "Brief description" }}
        ]
      }}
    ]
  }}
]

Return exactly {window.size} day object(s), titled "Day {window.start}: ..." through "Day {window.end}: ...".
Do not include any text before or after the JSON array. Start with [ and end with ]."""

def fallback_days(reason: str) -> List[DayPlan]:
    """Single synthetic day the UI can render when generation fails."""
    return [
        DayPlan(
            title=FALLBACK_TITLE,
            stops=[
                Stop(
                    name=FALLBACK_STOP_NAME,
                    description=f"Default location because itinerary generation failed. Error: {reason}",
                    location=Location(lat=FALLBACK_LAT, lng=FALLBACK_LNG, label=FALLBACK_STOP_NAME),
                )
            ],
        )
    ]

class ItineraryGenerator:
    """Chunked itinerary generation against a size-limited text model."""

    def __init__(self, backend: Optional[TextBackend], *, api_key: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.backend = backend
        self.chunk_size = chunk_size
        self._api_key = api_key

    @classmethod
    def from_settings(cls, settings) -> "ItineraryGenerator":
        key = settings.OPENAI_API_KEY if settings.has_openai_key else ""
        backend = None
        if key:
            backend = OpenAITextBackend(key, settings.OPENAI_MODEL, timeout_s=settings.OPENAI_TIMEOUT_S)
        return cls(backend, api_key=key, chunk_size=settings.ITINERARY_CHUNK_SIZE)

    async def generate(
        self,
        destination: str,
        budget: float,
        day_count: int,
        progress: Optional[Callable[[str], None]] = None,
    ) -> ItineraryResult:
        """Generate `day_count` days window by window.

        Model, parse and schema failures come back as a status="error" result.
        Raises MissingAPIKeyError without a key and ValueError when day_count < 1,
        both before any model call.
        """
        if day_count < 1:
            raise ValueError(f"day_count must be >= 1, got {day_count}")
        if not self._api_key:
            log.error("No generative model API key configured")
            raise MissingAPIKeyError("OpenAI API key is missing. Set OPENAI_API_KEY in the environment or .env file.")

        rid = get_request_id()

        def p(msg: str) -> None:
            try:
                if progress:
                    progress(msg)
            except Exception:
                log.debug("Progress callback failed", exc_info=True)

        windows = plan_windows(day_count, self.chunk_size)
        per_day = daily_budget(budget, day_count)
        log.info("Generating itinerary", extra={
            "request_id": rid,
            "destination": destination,
            "days": day_count,
            "budget": budget,
            "windows": [str(w) for w in windows],
        })

        days: List[DayPlan] = []
        window: Optional[Window] = None
        try:
            for window in windows:
                p(f"Requesting days {window}")
                text = await self.backend.generate_text(build_window_prompt(destination, budget, window, per_day))
                payload = extract_json_array(text, window)
                chunk = validate_window(payload, window)
                days.extend(chunk)
                p(f"Validated days {window} ({len(chunk)} day(s))")
                log.info("Window validated", extra={"request_id": rid, "window": str(window), "days": len(chunk)})
        except Exception as e:
            kind = e.kind if isinstance(e, WindowError) else "backend"
            log.warning(
                "Itinerary generation failed for days %s", window,
                extra={"request_id": rid, "kind": kind, "completed_days": len(days)},
                exc_info=True,
            )
            p(f"Error: {e}")
            return ItineraryResult(
                status="error",
                destination=destination,
                budget=budget,
                requested_days=day_count,
                days=fallback_days(str(e)),
                failure=GenerationFailure(
                    kind=kind,
                    message=str(e),
                    window=str(window) if window else None,
                    completed_days=days,
                ),
                generated_at_iso=datetime.now(timezone.utc).isoformat(),
            )

        warnings: List[str] = []
        if len(days) != day_count:
            msg = f"Expected {day_count} days but got {len(days)} days"
            log.warning(msg, extra={"request_id": rid, "destination": destination})
            warnings.append(msg)

        log.info("Itinerary generation completed", extra={"request_id": rid, "destination": destination, "days": len(days)})
        p("Itinerary ready")
        return ItineraryResult(
            status="ok",
            destination=destination,
            budget=budget,
            requested_days=day_count,
            days=days,
            warnings=warnings,
            generated_at_iso=datetime.now(timezone.utc).isoformat(),
        )
