"""In-memory session registry."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

import structlog

from swip.models import Session, SessionState

logger = structlog.get_logger(__name__)


class SessionManager:
    """Thread-safe keyed store of :class:`Session` records."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def start_session(
        self,
        session_id: str,
        app_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """Register *session_id* as active, replacing any previous record."""
        session = Session(
            id=session_id,
            app_id=app_id,
            metadata=metadata or {},
            start_time=datetime.now(UTC),
            state=SessionState.ACTIVE,
        )
        with self._lock:
            self._sessions[session_id] = session
        logger.debug("session_manager.started", session_id=session_id, app_id=app_id)
        return session

    def end_session(self, session_id: str) -> Session | None:
        """Mark a session ended.  Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            ended = session.model_copy(
                update={"state": SessionState.ENDED, "end_time": datetime.now(UTC)}
            )
            self._sessions[session_id] = ended
        logger.debug("session_manager.ended", session_id=session_id)
        return ended

    def get_session(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_active_sessions(self) -> list[Session]:
        with self._lock:
            return [s for s in self._sessions.values() if s.state.is_active]

    def list_sessions(self) -> list[Session]:
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.start_time)

    def purge_all_data(self) -> None:
        with self._lock:
            self._sessions.clear()
