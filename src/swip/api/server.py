"""FastAPI application — session control, sample ingestion, scoring and consent.

This module wires one :class:`SwipSdkManager` into HTTP:
- CORS + API key auth middleware
- Session start / stop / history / export
- Manual sample ingestion
- Current score and emotion
- Stateless prediction and scoring
- Consent management and data purge
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Query

from swip import __version__
from swip.affect.models import EmotionLabel
from swip.api.middleware import setup_middleware
from swip.api.schemas import (
    ConsentRequest,
    PredictRequest,
    SampleRequest,
    ScoreRequest,
    StartSessionRequest,
)
from swip.config import Settings, get_settings
from swip.errors import SessionNotFoundError
from swip.models import ConsentLevel
from swip.sdk import SwipSdkManager
from swip.sources import ManualSource, SourceType, get_source
from swip.storage.database import dispose_engine

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_sdk: SwipSdkManager | None = None


def build_sdk(settings: Settings) -> SwipSdkManager:
    """Create an SDK manager with the source selected in *settings*."""
    kwargs: dict[str, Any] = {}
    if settings.source_type == SourceType.SIMULATED.value:
        kwargs["seed"] = settings.simulated_seed
    source = get_source(settings.source_type, **kwargs)
    return SwipSdkManager(settings.to_sdk_config(), source=source)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _sdk

    settings = get_settings()
    _sdk = build_sdk(settings)
    await _sdk.initialize()
    logger.info("server.started", port=settings.api_port, source=settings.source_type)

    yield  # ← application runs

    await _sdk.shutdown()
    _sdk = None
    await dispose_engine()
    logger.info("server.stopped")


app = FastAPI(
    title="SWIP API",
    description="On-device emotion inference and wellness-impact scoring.",
    version=__version__,
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────
setup_middleware(app)


def _get_sdk() -> SwipSdkManager:
    if _sdk is None:
        raise HTTPException(503, "SDK not ready.")
    return _sdk


# ── Health ────────────────────────────────────────────────────

@app.get("/health", tags=["system"])
async def health():
    return {
        "status": "ok",
        "session_active": _sdk.is_session_active if _sdk else False,
    }


@app.get("/system/info", tags=["system"])
async def system_info():
    """Detailed system status for operational monitoring."""
    sdk = _get_sdk()
    model = sdk.classifier.model
    return {
        "version": __version__,
        "initialized": sdk.is_initialized,
        "source": sdk.source.source_type.value,
        "session": {
            "active": sdk.is_session_active,
            "id": sdk.current_session_id,
        },
        "model": {
            "type": model.type,
            "version": model.version,
            "model_hash": model.model_hash,
            "classes": [c.value for c in model.classes],
            "feature_order": list(model.feature_order),
        },
        "emotion_engine": sdk.emotion_engine.stats(),
        "consent": sdk.get_user_consent().name,
        "config": sdk.config.model_dump(mode="json"),
    }


# ── Sessions ──────────────────────────────────────────────────

@app.post("/sessions", status_code=201, tags=["sessions"])
async def start_session(req: StartSessionRequest):
    session_id = await _get_sdk().start_session(req.app_id, req.metadata)
    return {"session_id": session_id}


@app.post("/sessions/stop", tags=["sessions"])
async def stop_session():
    results = await _get_sdk().stop_session()
    return results.summary() | {"session_id": results.session_id}


@app.get("/sessions", tags=["sessions"])
async def list_sessions():
    return [s.model_dump(mode="json") for s in _get_sdk().list_sessions()]


@app.get("/sessions/history", tags=["sessions"])
async def session_history(limit: int = Query(20, ge=1, le=500)):
    """Stored session summaries, newest first."""
    return await _get_sdk().list_stored_results(limit)


@app.get("/sessions/{session_id}", tags=["sessions"])
async def get_session(session_id: str):
    sdk = _get_sdk()
    session = sdk.get_session(session_id)
    results = await sdk.get_session_results(session_id)
    if session is None and results is None:
        raise SessionNotFoundError(session_id)
    return {
        "session": session.model_dump(mode="json") if session else None,
        "summary": results.summary() if results else None,
    }


@app.get("/sessions/{session_id}/export", tags=["sessions"])
async def export_session(session_id: str):
    """Full score and emotion history.  Requires LOCAL_EXPORT consent."""
    return await _get_sdk().export_session(session_id)


# ── Data ingestion ────────────────────────────────────────────

@app.post("/samples", status_code=201, tags=["data"])
async def submit_sample(req: SampleRequest):
    """Submit one HR/HRV reading to the manual source."""
    sdk = _get_sdk()
    if not isinstance(sdk.source, ManualSource):
        raise HTTPException(
            409,
            f"Samples can only be submitted to the manual source, "
            f"not {sdk.source.source_type.value}.",
        )
    reading = sdk.source.submit(req.hr, req.hrv, motion=req.motion, timestamp=req.timestamp)
    score = await sdk.tick() if req.process else None
    return {
        "accepted": True,
        "timestamp": reading.timestamp.isoformat(),
        "score": score.model_dump(mode="json") if score else None,
    }


# ── Current results ───────────────────────────────────────────

@app.get("/score/current", tags=["results"])
async def current_score():
    score = _get_sdk().get_current_score()
    if score is None:
        raise HTTPException(404, "No score available yet.")
    return score.model_dump(mode="json") | {"score_range": score.score_range.value}


@app.get("/emotion/current", tags=["results"])
async def current_emotion():
    emotion = _get_sdk().get_current_emotion()
    if emotion is None:
        raise HTTPException(404, "No emotion available yet.")
    return emotion.model_dump(mode="json")


# ── Stateless inference ───────────────────────────────────────

@app.post("/predict", tags=["inference"])
async def predict(req: PredictRequest):
    """Classify a raw feature vector."""
    prediction = _get_sdk().classifier.predict(req.features)
    return prediction.model_dump(mode="json")


@app.post("/score", tags=["inference"])
async def compute_score(req: ScoreRequest):
    """Score an HR/HRV pair against a given emotion distribution."""
    known = {label.value for label in EmotionLabel}
    unknown = [k for k in req.emotion_probabilities if k not in known]
    result = _get_sdk().score_engine.compute_score(
        req.hr, req.hrv, req.motion, req.emotion_probabilities
    )
    return result.model_dump(mode="json") | {
        "score_range": result.score_range.value,
        "ignored_emotions": unknown,
    }


# ── Consent & privacy ─────────────────────────────────────────

def _consent_payload(sdk: SwipSdkManager) -> dict[str, Any]:
    level = sdk.get_user_consent()
    return {
        "level": int(level),
        "level_name": level.name.lower(),
        "description": level.description,
        "status": {lvl.name.lower(): s.value for lvl, s in sdk.consent.get_consent_status().items()},
        "history": [r.to_json() for r in sdk.consent.get_consent_history().values()],
    }


@app.get("/consent", tags=["consent"])
async def get_consent():
    return _consent_payload(_get_sdk())


@app.put("/consent", tags=["consent"])
async def set_consent(req: ConsentRequest):
    sdk = _get_sdk()
    await sdk.set_user_consent(req.level, req.reason)
    return _consent_payload(sdk)


@app.delete("/consent", tags=["consent"])
async def revoke_consent():
    sdk = _get_sdk()
    await sdk.consent.revoke_consent()
    return _consent_payload(sdk)


@app.post("/purge", tags=["consent"])
async def purge():
    """Delete all sessions, results and consent state."""
    sdk = _get_sdk()
    await sdk.purge_all_data()
    return {"purged": True, "consent": ConsentLevel.ON_DEVICE.name.lower()}
