"""Tests for the session registry."""

from __future__ import annotations

from swip.models import SessionState
from swip.session import SessionManager


class TestSessionManager:
    def test_start_and_get(self):
        manager = SessionManager()
        session = manager.start_session("s1", "app", {"k": "v"})
        assert session.state == SessionState.ACTIVE
        assert manager.get_session("s1") == session
        assert session.metadata == {"k": "v"}

    def test_end_session(self):
        manager = SessionManager()
        manager.start_session("s1", "app")
        ended = manager.end_session("s1")
        assert ended is not None
        assert ended.state == SessionState.ENDED
        assert ended.end_time is not None and ended.end_time >= ended.start_time
        assert manager.get_active_sessions() == []

    def test_end_unknown_is_noop(self):
        assert SessionManager().end_session("missing") is None

    def test_active_and_listing(self):
        manager = SessionManager()
        manager.start_session("a", "app")
        manager.start_session("b", "app")
        manager.end_session("a")
        assert [s.id for s in manager.get_active_sessions()] == ["b"]
        assert [s.id for s in manager.list_sessions()] == ["a", "b"]

    def test_purge(self):
        manager = SessionManager()
        manager.start_session("a", "app")
        manager.purge_all_data()
        assert manager.list_sessions() == []
