"""Data-access layer — thin async wrappers around SQLAlchemy queries."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import AsyncIterator, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from swip.affect.models import EmotionLabel, EmotionResult, ScoreResult
from swip.consent.store import ConsentSnapshot, ConsentStore
from swip.errors import StorageError
from swip.models import ConsentLevel, ConsentRecord, SessionResults
from swip.storage.database import (
    ConsentGrantRow,
    ConsentStateRow,
    EmotionResultRow,
    ScoreResultRow,
    SessionResultRow,
    get_session_factory,
)

_CONSENT_STATE_ID = 1


def _as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; everything we store is UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def _probabilities_to_json(probs: dict[EmotionLabel, float]) -> str:
    return json.dumps({label.value: p for label, p in probs.items()})


def _probabilities_from_json(raw: str) -> dict[EmotionLabel, float]:
    return {EmotionLabel(k): float(v) for k, v in json.loads(raw or "{}").items()}


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._external_session = session

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._external_session is not None:
            yield self._external_session
            return
        async with get_session_factory()() as session:
            yield session


class ConsentRepository(BaseRepository, ConsentStore):
    """SQL-backed :class:`ConsentStore`."""

    async def load(self) -> ConsentSnapshot | None:
        try:
            async with self._session() as session:
                state = await session.get(ConsentStateRow, _CONSENT_STATE_ID)
                grants = (await session.execute(select(ConsentGrantRow))).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load consent: {exc}") from exc

        if state is None and not grants:
            return None

        history = {
            ConsentLevel(g.level): ConsentRecord(
                level=ConsentLevel(g.level),
                granted_at=_as_utc(g.granted_at),
                reason=g.reason,
            )
            for g in grants
        }
        level = ConsentLevel(state.level) if state is not None else ConsentLevel.ON_DEVICE
        return ConsentSnapshot(level=level, history=history)

    async def save(self, snapshot: ConsentSnapshot) -> None:
        try:
            async with self._session() as session:
                await session.execute(delete(ConsentGrantRow))
                await session.merge(
                    ConsentStateRow(
                        id=_CONSENT_STATE_ID,
                        level=int(snapshot.level),
                        updated_at=datetime.now(UTC),
                    )
                )
                session.add_all(
                    ConsentGrantRow(
                        level=int(record.level),
                        granted_at=record.granted_at,
                        reason=record.reason,
                    )
                    for record in snapshot.history.values()
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to save consent: {exc}") from exc

    async def clear(self) -> None:
        try:
            async with self._session() as session:
                await session.execute(delete(ConsentGrantRow))
                await session.execute(delete(ConsentStateRow))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to clear consent: {exc}") from exc


class SessionResultRepository(BaseRepository):
    """Persist and query :class:`SessionResults`."""

    # ── Write ─────────────────────────────────────────────────

    async def save(self, results: SessionResults) -> None:
        summary = results.summary()
        row = SessionResultRow(
            session_id=results.session_id,
            start_time=results.start_time,
            end_time=results.end_time,
            average_score=results.average_score,
            dominant_emotion=summary["dominant_emotion"],
            score_count=len(results.scores),
            emotion_count=len(results.emotions),
            summary_json=json.dumps(summary),
        )
        scores = [
            ScoreResultRow(
                session_id=results.session_id,
                score=s.score,
                dominant_emotion=s.dominant_emotion.value,
                confidence=s.confidence,
                data_quality=s.data_quality,
                hr=s.hr,
                hrv=s.hrv,
                probabilities_json=_probabilities_to_json(s.emotion_probabilities),
                timestamp=s.timestamp,
            )
            for s in results.scores
        ]
        emotions = [
            EmotionResultRow(
                session_id=results.session_id,
                label=e.label.value,
                confidence=e.confidence,
                probabilities_json=_probabilities_to_json(e.probabilities),
                timestamp=e.timestamp,
            )
            for e in results.emotions
        ]
        try:
            async with self._session() as session:
                await self._delete(session, results.session_id)
                session.add(row)
                await session.flush()
                session.add_all(scores)
                session.add_all(emotions)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to save session {results.session_id}: {exc}"
            ) from exc

    async def purge(self) -> None:
        """Delete every stored session result."""
        try:
            async with self._session() as session:
                await session.execute(delete(ScoreResultRow))
                await session.execute(delete(EmotionResultRow))
                await session.execute(delete(SessionResultRow))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to purge session results: {exc}") from exc

    @staticmethod
    async def _delete(session: AsyncSession, session_id: str) -> None:
        await session.execute(delete(ScoreResultRow).where(ScoreResultRow.session_id == session_id))
        await session.execute(
            delete(EmotionResultRow).where(EmotionResultRow.session_id == session_id)
        )
        await session.execute(
            delete(SessionResultRow).where(SessionResultRow.session_id == session_id)
        )

    # ── Read ──────────────────────────────────────────────────

    async def get(self, session_id: str) -> SessionResults | None:
        """Rebuild a full :class:`SessionResults`, or ``None`` if unknown."""
        async with self._session() as session:
            row = await session.get(SessionResultRow, session_id)
            if row is None:
                return None
            score_rows = (
                await session.execute(
                    select(ScoreResultRow)
                    .where(ScoreResultRow.session_id == session_id)
                    .order_by(ScoreResultRow.id)
                )
            ).scalars().all()
            emotion_rows = (
                await session.execute(
                    select(EmotionResultRow)
                    .where(EmotionResultRow.session_id == session_id)
                    .order_by(EmotionResultRow.id)
                )
            ).scalars().all()

        return SessionResults(
            session_id=row.session_id,
            start_time=_as_utc(row.start_time),
            end_time=_as_utc(row.end_time),
            scores=[_row_to_score(r) for r in score_rows],
            emotions=[_row_to_emotion(r) for r in emotion_rows],
        )

    async def list_recent(self, limit: int = 20) -> Sequence[dict]:
        """Summaries of the most recently started sessions, newest first."""
        async with self._session() as session:
            stmt = (
                select(SessionResultRow)
                .order_by(SessionResultRow.start_time.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [
            {
                "session_id": r.session_id,
                "start_time": _as_utc(r.start_time).isoformat(),
                "end_time": _as_utc(r.end_time).isoformat(),
                "average_score": r.average_score,
                "dominant_emotion": r.dominant_emotion,
                "score_count": r.score_count,
                "emotion_count": r.emotion_count,
            }
            for r in rows
        ]


def _row_to_score(row: ScoreResultRow) -> ScoreResult:
    return ScoreResult(
        score=row.score,
        dominant_emotion=EmotionLabel(row.dominant_emotion),
        emotion_probabilities=_probabilities_from_json(row.probabilities_json),
        hr=row.hr,
        hrv=row.hrv,
        timestamp=_as_utc(row.timestamp),
        confidence=row.confidence,
        data_quality=row.data_quality,
    )


def _row_to_emotion(row: EmotionResultRow) -> EmotionResult:
    return EmotionResult(
        label=EmotionLabel(row.label),
        confidence=row.confidence,
        probabilities=_probabilities_from_json(row.probabilities_json),
        timestamp=_as_utc(row.timestamp),
    )


SqlConsentStore = ConsentRepository
