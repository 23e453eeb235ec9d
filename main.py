# main.py
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from logging_config import setup_logging
from models import (
    DayPlan,
    DaySelection,
    ImageResolveRequest,
    ImageResolveResponse,
    ItineraryResult,
    MapView,
    SessionSummary,
    TripRequest,
)
from request_context import new_request_id, get_request_id
from security import check_request_size, security_headers_middleware
from services.image_resolver import ImageResolver, build_photo_search, place_key
from services.itinerary_generator import ItineraryGenerator, MissingAPIKeyError
from services.map_view import build_map_view, stop_cards
from sessions import SessionManager, TripSession

# Initialize logging BEFORE creating the app
setup_logging(settings.log_level)
log = logging.getLogger("app")

app = FastAPI(
    title="AI Trip Planner",
    version="1.0.0",
    description="Day-by-day itineraries with photos and map data for a destination, budget and trip length.",
)

photo_search = build_photo_search(settings)

@app.on_event("startup")
async def on_startup():
    log.info("App starting", extra={
        "env": settings.APP_ENV,
        "model": settings.OPENAI_MODEL,
        "openai_key_loaded": settings.has_openai_key,
        "unsplash_key_loaded": settings.has_unsplash_key,
        "chunk_size": settings.ITINERARY_CHUNK_SIZE,
    })

@app.on_event("shutdown")
async def on_shutdown():
    if photo_search is not None:
        await photo_search.aclose()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
    expose_headers=settings.CORS_EXPOSE_HEADERS,
    max_age=settings.CORS_MAX_AGE,
)

app.middleware("http")(security_headers_middleware())

@app.middleware("http")
async def request_logging_mw(request: Request, call_next):
    rid = new_request_id(request.headers.get("x-request-id"))
    start = time.perf_counter()
    response: Response | None = None
    try:
        if request.method in ("POST", "PUT", "PATCH"):
            try:
                check_request_size(request)
            except HTTPException as e:
                response = JSONResponse(status_code=e.status_code, content={"detail": e.detail})
                return response
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.perf_counter() - start) * 1000)
        if response is not None:
            response.headers["X-Request-Id"] = rid
        log.info(
            f"{request.method} {request.url.path} -> {getattr(response, 'status_code', '?')} in {dur_ms}ms",
            extra={
                "request_id": rid,
                "path": request.url.path,
                "method": request.method,
                "status": getattr(response, "status_code", None),
                "duration_ms": dur_ms,
            },
        )

# --- dependencies ---

@lru_cache(maxsize=1)
def get_generator() -> ItineraryGenerator:
    return ItineraryGenerator.from_settings(settings)

_sessions = SessionManager(
    resolver_factory=lambda: ImageResolver(photo_search, pause_s=settings.prefetch_pause_s),
    ttl_s=settings.SESSION_TTL_S,
)

def get_sessions() -> SessionManager:
    return _sessions

def get_session(session_id: str, sessions: SessionManager = Depends(get_sessions)) -> TripSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return session

def _require_day(session: TripSession, day_number: int) -> DayPlan:
    if session.result is None:
        raise HTTPException(status_code=404, detail="no itinerary generated for this session yet")
    day = session.result.day(day_number)
    if day is None:
        raise HTTPException(status_code=404, detail=f"day {day_number} not in itinerary")
    return day

async def _generate(
    generator: ItineraryGenerator,
    req: TripRequest,
    progress: Optional[Callable[[str], None]] = None,
) -> ItineraryResult:
    log.info("Itinerary request received", extra={
        "destination": req.destination,
        "budget": req.budget,
        "day_count": req.day_count,
    })
    try:
        return await generator.generate(req.destination, req.budget, req.day_count, progress=progress)
    except MissingAPIKeyError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

# --- endpoints ---

@app.get("/health")
def health(sessions: SessionManager = Depends(get_sessions)):
    return {
        "status": "ok",
        "openai_key_loaded": settings.has_openai_key,
        "unsplash_key_loaded": settings.has_unsplash_key,
        "model": settings.OPENAI_MODEL,
        "open_sessions": len(sessions),
    }

@app.post("/itinerary", response_model=ItineraryResult)
async def create_itinerary(req: TripRequest, generator: ItineraryGenerator = Depends(get_generator)) -> ItineraryResult:
    return await _generate(generator, req)

@app.post("/sessions", status_code=201)
def create_session(sessions: SessionManager = Depends(get_sessions)):
    sessions.prune()
    session = sessions.create()
    return {"session_id": session.id}

@app.get("/sessions/{session_id}")
def get_session_summary(session: TripSession = Depends(get_session)):
    # Returned without response_model so the stored TripRequest is not validated twice
    return SessionSummary(
        id=session.id,
        created_at=session.created_at,
        updated_at=session.updated_at,
        selected_day=session.selected_day,
        request=session.request,
        result=session.result,
        steps=session.steps,
        cached_images=len(session.images),
    )

@app.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str, sessions: SessionManager = Depends(get_sessions)):
    if not sessions.close(session_id):
        raise HTTPException(status_code=404, detail="session not found")
    return Response(status_code=204)

@app.post("/sessions/{session_id}/itinerary", response_model=ItineraryResult)
async def create_session_itinerary(
    req: TripRequest,
    session: TripSession = Depends(get_session),
    generator: ItineraryGenerator = Depends(get_generator),
) -> ItineraryResult:
    is_alive = session.start_trip(req)
    result = await _generate(generator, req, progress=session.progress)
    if is_alive():
        session.result = result
        session.touch()
    else:
        log.info("Discarding itinerary for replaced or closed view", extra={"session_id": session.id})
    return result

@app.post("/sessions/{session_id}/days/{day_number}/select", response_model=DaySelection)
async def select_day(day_number: int, session: TripSession = Depends(get_session)) -> DaySelection:
    day = _require_day(session, day_number)
    is_alive = session.select_day(day_number)

    images = await session.images.prefetch_day(day, is_alive)
    applied = images is not None
    if applied:
        session.day_images = images
    else:
        # Stale view: answer from whatever reached the cache, leave session state alone
        images = {}
        for stop in day.stops:
            key = place_key(stop)
            url = session.images.get(key)
            if url:
                images[key] = url

    return DaySelection(
        day_number=day_number,
        day=day,
        images=images,
        cards=stop_cards(day, images),
        applied=applied,
    )

@app.get("/sessions/{session_id}/map", response_model=MapView)
def session_map(session: TripSession = Depends(get_session)) -> MapView:
    if session.result is None:
        raise HTTPException(status_code=404, detail="no itinerary generated for this session yet")
    return build_map_view(session.result.days, session.selected_day)

@app.post("/sessions/{session_id}/images/resolve", response_model=ImageResolveResponse)
async def resolve_image(body: ImageResolveRequest, session: TripSession = Depends(get_session)) -> ImageResolveResponse:
    url = await session.images.resolve(body.key, body.query)
    return ImageResolveResponse(key=body.key, url=url)

# Production entry point
if __name__ == "__main__":
    import uvicorn

    log.info(f"Starting server on {settings.HOST}:{settings.PORT}", extra={"request_id": get_request_id()})
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=1,
        access_log=True,
        log_level="info" if settings.APP_ENV == "production" else "debug",
    )
