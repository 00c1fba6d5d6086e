"""SDK orchestrator — wires a biosignal source, the emotion engine, scoring,
sessions, consent and persistence into one object a host application drives.

A session runs a background :mod:`asyncio` task that calls :meth:`tick`
every ``processing_interval_seconds``.  Each tick reads the newest HR/HRV
pair from the source, feeds it to the :class:`EmotionEngine`, and, when a
gated emotion result is ready, turns it into a :class:`ScoreResult` that
is recorded and handed to listeners.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from datetime import UTC, datetime, timedelta
from typing import Any, Awaitable, Callable

import structlog
from pydantic import ValidationError

from swip.affect.classifier import LinearClassifier
from swip.affect.models import EmotionResult, ScoreResult
from swip.affect.scoring import ScoreEngine
from swip.config import SdkConfig
from swip.consent import ConsentManager, InMemoryConsentStore, validate_consent
from swip.consent.store import ConsentStore
from swip.errors import (
    InitializationError,
    InvalidConfigurationError,
    PermissionDeniedError,
    SessionError,
    SessionNotFoundError,
    SwipError,
)
from swip.models import ConsentLevel, Session, SessionResults
from swip.session import SessionManager
from swip.sources import BiosignalSource, ManualSource
from swip.storage.database import init_db
from swip.storage.repository import ConsentRepository, SessionResultRepository
from swip.streaming.pipeline import EmotionEngine

logger = structlog.get_logger(__name__)

ScoreListener = Callable[[ScoreResult], Awaitable[None]]
EmotionListener = Callable[[EmotionResult], Awaitable[None]]


def _check_config(config: SdkConfig) -> None:
    """Re-validate *config*, which may have been mutated after construction."""
    try:
        SdkConfig.model_validate(config.model_dump())
    except ValidationError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


class SwipSdkManager:
    """Main entry point for host applications.

    Parameters
    ----------
    config : SdkConfig | None
        Engine and orchestration settings.
    source : BiosignalSource | None
        Where samples come from.  Defaults to a :class:`ManualSource`.
    consent_store : ConsentStore | None
        Overrides the consent backend.  By default consent is kept in the
        database when local storage is enabled, in memory otherwise.
    result_repository : SessionResultRepository | None
        Overrides where finished sessions are persisted.
    classifier : LinearClassifier | None
        Shared by the emotion engine and stateless callers.
    """

    def __init__(
        self,
        config: SdkConfig | None = None,
        *,
        source: BiosignalSource | None = None,
        consent_store: ConsentStore | None = None,
        result_repository: SessionResultRepository | None = None,
        classifier: LinearClassifier | None = None,
    ) -> None:
        self._config = config or SdkConfig()
        _check_config(self._config)
        self._source = source or ManualSource()

        self._classifier = classifier or LinearClassifier(
            model_path=self._config.emotion.model_path
        )
        self._score_engine = ScoreEngine(self._config.score)
        self._emotion_engine = EmotionEngine(
            self._config.emotion, classifier=self._classifier
        )

        local = self._config.enable_local_storage
        if consent_store is None:
            consent_store = ConsentRepository() if local else InMemoryConsentStore()
        self._consent = ConsentManager(consent_store)
        self._results_repo = result_repository or (SessionResultRepository() if local else None)
        self._sessions = SessionManager()

        self._initialized = False
        self._session_id: str | None = None
        self._session_started_at: datetime | None = None
        self._scores: list[ScoreResult] = []
        self._emotions: list[EmotionResult] = []
        self._current_score: ScoreResult | None = None
        self._current_emotion: EmotionResult | None = None
        self._finished: dict[str, SessionResults] = {}

        self._score_listeners: list[ScoreListener] = []
        self._emotion_listeners: list[EmotionListener] = []
        self._loop_task: asyncio.Task | None = None

    # ── Lifecycle ─────────────────────────────────────────────

    async def initialize(self) -> None:
        """Prepare storage and consent.  Safe to call more than once."""
        if self._initialized:
            return
        if not self._source.is_available():
            raise InitializationError(
                f"Biosignal source {self._source.source_type.value} is not available"
            )
        if self._config.enable_local_storage:
            await init_db()
        await self._consent.load()
        self._initialized = True
        self._info(
            "sdk.initialized",
            source=self._source.source_type.value,
            local_storage=self._config.enable_local_storage,
            consent=self._consent.current_level.name,
        )

    async def request_permissions(self) -> None:
        self._require_initialized()
        try:
            await self._source.request_authorization()
        except SwipError:
            raise
        except Exception as exc:
            raise PermissionDeniedError(str(exc)) from exc

    async def shutdown(self) -> None:
        """Stop any running session and release the source."""
        if self._session_id is not None:
            try:
                await self.stop_session()
            except SwipError as exc:
                logger.error("sdk.shutdown_stop_failed", error=str(exc))
        await self._source.close()

    # ── Sessions ──────────────────────────────────────────────

    async def start_session(
        self,
        app_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Open a session and start the processing loop.  Returns its id."""
        self._require_initialized()
        if self._session_id is not None:
            raise SessionError(f"Session {self._session_id} is already active")

        session_id = f"{int(time.time() * 1000)}_{app_id}"
        session = self._sessions.start_session(session_id, app_id, metadata)
        self._session_id = session_id
        self._session_started_at = session.start_time
        self._scores = []
        self._emotions = []
        self._current_score = None
        self._current_emotion = None
        self._emotion_engine.clear()

        self._loop_task = asyncio.create_task(self._run_loop())
        self._info("sdk.session_started", session_id=session_id, app_id=app_id)
        return session_id

    async def stop_session(self) -> SessionResults:
        """Stop the loop, close the session and return what it produced."""
        if self._session_id is None:
            raise SessionError("No active session")

        await self._stop_loop()
        session_id = self._session_id
        session = self._sessions.end_session(session_id)
        self._session_id = None
        self._session_started_at = None

        end_time = datetime.now(UTC)
        results = SessionResults(
            session_id=session_id,
            scores=list(self._scores),
            emotions=list(self._emotions),
            start_time=session.start_time if session else end_time,
            end_time=session.end_time if session and session.end_time else end_time,
        )
        self._finished[session_id] = results

        if self._results_repo is not None:
            try:
                await self._results_repo.save(results)
            except SwipError as exc:
                logger.error("sdk.results_save_failed", session_id=session_id, error=str(exc))

        self._info(
            "sdk.session_stopped",
            session_id=session_id,
            scores=len(results.scores),
            emotions=len(results.emotions),
        )
        return results

    @property
    def current_session_id(self) -> str | None:
        return self._session_id

    @property
    def is_session_active(self) -> bool:
        return self._session_id is not None

    def list_sessions(self) -> list[Session]:
        return self._sessions.list_sessions()

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get_session(session_id)

    async def get_session_results(self, session_id: str) -> SessionResults | None:
        """Results of *session_id*: live for the active session, else stored."""
        if session_id == self._session_id:
            session = self._sessions.get_session(session_id)
            return SessionResults(
                session_id=session_id,
                scores=list(self._scores),
                emotions=list(self._emotions),
                start_time=session.start_time if session else datetime.now(UTC),
                end_time=datetime.now(UTC),
            )
        if session_id in self._finished:
            return self._finished[session_id]
        if self._results_repo is not None:
            return await self._results_repo.get(session_id)
        return None

    async def list_stored_results(self, limit: int = 20) -> list[dict[str, Any]]:
        """Summaries of persisted sessions, newest first."""
        if self._results_repo is None:
            return []
        return list(await self._results_repo.list_recent(limit))

    async def export_session(self, session_id: str) -> dict[str, Any]:
        """Full export of a session.  Requires ``LOCAL_EXPORT`` consent."""
        validate_consent(
            ConsentLevel.LOCAL_EXPORT, self._consent.current_level, "export_session"
        )
        results = await self.get_session_results(session_id)
        if results is None:
            raise SessionNotFoundError(session_id)
        return {
            "summary": results.summary(),
            "scores": [s.model_dump(mode="json") for s in results.scores],
            "emotions": [e.model_dump(mode="json") for e in results.emotions],
        }

    # ── Processing ────────────────────────────────────────────

    async def tick(self) -> ScoreResult | None:
        """Run one processing step.  Returns the new score, if any.

        Does nothing outside a session.
        """
        if self._session_id is None:
            return None
        end = datetime.now(UTC)
        start = end - timedelta(seconds=self._config.sample_lookback_seconds)
        try:
            reading = await self._source.read_latest(start, end)
        except Exception as exc:
            logger.error(
                "sdk.source_error",
                source=self._source.source_type.value,
                error=str(exc),
            )
            return None
        if reading is None:
            return None
        started = self._session_started_at
        if started is not None and reading.timestamp < started:
            # Recorded before the session began
            return None

        self._emotion_engine.push(reading.hr, reading.hrv, reading.timestamp, motion=0.0)
        ready = self._emotion_engine.consume_ready()
        if not ready:
            return None

        emotion = ready[-1]
        self._emotions.append(emotion)
        self._current_emotion = emotion
        await self._notify(self._emotion_listeners, emotion)

        score = self._score_engine.compute_score(
            reading.hr, reading.hrv, 0.0, emotion.probabilities
        )
        self._scores.append(score)
        self._current_score = score
        await self._notify(self._score_listeners, score)
        return score

    async def _run_loop(self) -> None:
        interval = self._config.processing_interval_seconds
        logger.debug("sdk.loop_started", interval=interval)
        while True:
            try:
                await self.tick()
            except Exception as exc:
                logger.error("sdk.tick_error", error=str(exc))
            await asyncio.sleep(interval)

    async def _stop_loop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("sdk.loop_stopped")

    async def _notify(self, listeners: list, payload: Any) -> None:
        for listener in listeners:
            try:
                await listener(payload)
            except Exception as exc:
                logger.error(
                    "sdk.listener_error",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(exc),
                )

    # ── Current values & listeners ────────────────────────────

    def get_current_score(self) -> ScoreResult | None:
        return self._current_score

    def get_current_emotion(self) -> EmotionResult | None:
        return self._current_emotion

    def add_score_listener(self, fn: ScoreListener) -> None:
        """Register an async callback that receives every new score."""
        self._score_listeners.append(fn)

    def add_emotion_listener(self, fn: EmotionListener) -> None:
        """Register an async callback that receives every recorded emotion."""
        self._emotion_listeners.append(fn)

    # ── Consent & privacy ─────────────────────────────────────

    async def set_user_consent(self, level: ConsentLevel, reason: str) -> None:
        await self._consent.grant_consent(level, reason)

    def get_user_consent(self) -> ConsentLevel:
        return self._consent.current_level

    async def purge_all_data(self) -> None:
        """Delete everything the SDK holds: sessions, results and consent."""
        if self._session_id is not None:
            try:
                await self.stop_session()
            except SwipError as exc:
                logger.error("sdk.purge_stop_failed", error=str(exc))

        self._scores = []
        self._emotions = []
        self._current_score = None
        self._current_emotion = None
        self._finished.clear()
        self._emotion_engine.clear()
        self._sessions.purge_all_data()
        await self._consent.purge_all_data()
        if self._results_repo is not None:
            await self._results_repo.purge()
        self._info("sdk.data_purged")

    # ── Accessors ─────────────────────────────────────────────

    @property
    def config(self) -> SdkConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def source(self) -> BiosignalSource:
        return self._source

    @property
    def consent(self) -> ConsentManager:
        return self._consent

    @property
    def classifier(self) -> LinearClassifier:
        return self._classifier

    @property
    def score_engine(self) -> ScoreEngine:
        return self._score_engine

    @property
    def emotion_engine(self) -> EmotionEngine:
        return self._emotion_engine

    def _info(self, event: str, **kw: Any) -> None:
        if self._config.enable_logging:
            logger.info(event, **kw)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise InitializationError("SDK not initialized. Call initialize() first.")
