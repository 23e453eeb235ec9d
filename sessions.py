# sessions.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging, time, uuid

from models import ItineraryResult, TripRequest
from services.image_resolver import ImageResolver

log = logging.getLogger("sessions")

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

@dataclass
class TripSession:
    """Server-side copy of one browser session's planner state."""
    id: str
    images: ImageResolver
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    request: Optional[TripRequest] = None
    result: Optional[ItineraryResult] = None
    selected_day: int = 1
    day_images: Dict[str, str] = field(default_factory=dict)
    steps: List[Dict[str, Any]] = field(default_factory=list)  # {'seq', 'ts', 'msg'}
    closed: bool = False
    _view_token: int = 0

    def touch(self) -> None:
        self.updated_at = _now_iso()

    def progress(self, msg: str) -> None:
        self.steps.append({"seq": len(self.steps) + 1, "ts": _now_iso(), "msg": msg})
        self.touch()

    def begin_view(self) -> Callable[[], bool]:
        """Start a new view; every earlier view's liveness check turns false."""
        self._view_token += 1
        token = self._view_token

        def is_alive() -> bool:
            return not self.closed and self._view_token == token
        return is_alive

    def start_trip(self, request: TripRequest) -> Callable[[], bool]:
        self.request = request
        self.result = None
        self.selected_day = 1
        self.day_images = {}
        self.steps = []
        self.touch()
        return self.begin_view()

    def select_day(self, day_number: int) -> Callable[[], bool]:
        self.selected_day = day_number
        self.day_images = {}
        self.touch()
        return self.begin_view()

    def close(self) -> None:
        self.closed = True
        self.touch()

class SessionManager:
    def __init__(self, resolver_factory: Callable[[], ImageResolver], ttl_s: int = 3600):
        self._sessions: Dict[str, TripSession] = {}
        self._resolver_factory = resolver_factory
        self.ttl_s = ttl_s

    def create(self) -> TripSession:
        session = TripSession(id=uuid.uuid4().hex[:12], images=self._resolver_factory())
        self._sessions[session.id] = session
        log.info("Session created", extra={"session_id": session.id, "open_sessions": len(self._sessions)})
        return session

    def get(self, session_id: str) -> Optional[TripSession]:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        log.info("Session closed", extra={"session_id": session_id, "cached_images": len(session.images)})
        return True

    def prune(self, older_than_seconds: Optional[int] = None) -> int:
        cutoff = time.time() - (self.ttl_s if older_than_seconds is None else older_than_seconds)
        stale = [
            sid for sid, s in self._sessions.items()
            if datetime.fromisoformat(s.updated_at).timestamp() < cutoff
        ]
        for sid in stale:
            self.close(sid)
        if stale:
            log.info("Pruned idle sessions", extra={"count": len(stale)})
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
