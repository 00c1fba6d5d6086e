"""Linear one-vs-rest classifier with softmax calibration.

Each class has an independent linear discriminant over z-scored features.
The raw discriminant scores are turned into a probability distribution
with a softmax.  The model is not probabilistic: the softmax is a
calibration heuristic that makes scores comparable and bounded, and the
resulting "probabilities" should be read as relative confidence rather
than likelihoods.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping, Sequence

import structlog
from pydantic import ValidationError

from swip.affect.model_loader import DEFAULT_SVM_MODEL, SvmModel, load_svm_model
from swip.affect.models import EmotionLabel, EmotionPrediction
from swip.errors import ModelError

logger = structlog.get_logger(__name__)


def softmax(scores: Sequence[float]) -> list[float]:
    """Numerically stable softmax.

    Non-finite input degrades to a uniform distribution.
    """
    if not scores:
        return []
    if not all(math.isfinite(s) for s in scores):
        return [1.0 / len(scores)] * len(scores)
    peak = max(scores)
    exps = [math.exp(s - peak) for s in scores]
    total = sum(exps)  # >= 1.0, the peak contributes exp(0)
    return [e / total for e in exps]


def _resolve_model(
    model: SvmModel | Mapping[str, Any] | None,
    model_path: str | Path | None,
) -> SvmModel:
    """Return a usable model, substituting the built-in default on any problem."""
    if model is None:
        loaded = load_svm_model(model_path)
        if loaded is not None:
            return loaded
        logger.warning("classifier.default_model", reason="artifact_unavailable")
        return DEFAULT_SVM_MODEL

    if isinstance(model, SvmModel):
        try:
            model.check_dimensions()
        except ModelError as exc:
            logger.warning("classifier.default_model", reason="invalid_model", error=str(exc))
            return DEFAULT_SVM_MODEL
        return model

    try:
        return SvmModel.model_validate(model)
    except ValidationError as exc:
        logger.warning(
            "classifier.default_model",
            reason="invalid_model",
            error=str(exc).splitlines()[0],
        )
        return DEFAULT_SVM_MODEL


class LinearClassifier:
    """Predict a discrete emotion from a feature vector.

    Parameters
    ----------
    model : SvmModel | Mapping | None
        Model parameters.  A mapping is validated as an :class:`SvmModel`.
        ``None`` loads *model_path* or the packaged artifact.  Any
        malformed model is replaced by the built-in default set.
    model_path : str | Path | None
        Artifact to load when *model* is ``None``.
    """

    def __init__(
        self,
        model: SvmModel | Mapping[str, Any] | None = None,
        *,
        model_path: str | Path | None = None,
    ) -> None:
        self._model = _resolve_model(model, model_path)
        self._labels: tuple[EmotionLabel, ...] = tuple(self._model.classes)
        self._weights = tuple(tuple(row) for row in self._model.weights)
        self._bias = tuple(self._model.bias)
        self._means = tuple(self._model.scaler_mean)
        self._scales = tuple(self._model.scaler_scale)

    @property
    def model(self) -> SvmModel:
        return self._model

    @property
    def labels(self) -> tuple[EmotionLabel, ...]:
        return self._labels

    @property
    def feature_count(self) -> int:
        return len(self._means)

    # ── Inference ─────────────────────────────────────────────

    def normalize(self, features: Sequence[float]) -> list[float]:
        """Z-score *features* against the model scaler.

        A zero scale or a non-finite input marks the feature inactive
        (z = 0).  Missing trailing features count as inactive; extra ones
        are ignored.
        """
        if len(features) != self.feature_count:
            logger.warning(
                "classifier.feature_length_mismatch",
                expected=self.feature_count,
                got=len(features),
            )

        z: list[float] = []
        for i, (mean, scale) in enumerate(zip(self._means, self._scales)):
            if i >= len(features) or scale == 0:
                z.append(0.0)
                continue
            value = (features[i] - mean) / scale
            z.append(value if math.isfinite(value) else 0.0)
        return z

    def decision_scores(self, features: Sequence[float]) -> list[float]:
        """Raw per-class linear scores ``dot(z, w[c]) + b[c]``."""
        z = self.normalize(features)
        return [
            math.fsum(zi * wi for zi, wi in zip(z, row)) + bias
            for row, bias in zip(self._weights, self._bias)
        ]

    def predict(self, features: Sequence[float]) -> EmotionPrediction:
        """Classify *features*; never raises."""
        scores = self.decision_scores(features)
        probs = softmax(scores)

        # First class in model order wins ties
        best = max(range(len(scores)), key=lambda i: (probs[i], scores[i], -i))
        probabilities = dict(zip(self._labels, probs))

        return EmotionPrediction(
            label=self._labels[best],
            confidence=probs[best],
            probabilities=probabilities,
        )
