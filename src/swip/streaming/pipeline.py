"""Bounded streaming pipeline connecting a sample producer → classifier → consumer.

The :class:`EmotionEngine` owns a capped FIFO of samples and an uncapped
queue of gated results.  A single lock guards both so that ``push``,
``consume_ready`` and ``clear`` never observe each other half-done, no
matter which thread or event-loop task the producer and consumer run on.
"""

from __future__ import annotations

import itertools
import threading
from collections import deque
from datetime import UTC, datetime

import structlog

from swip.affect.classifier import LinearClassifier
from swip.affect.features import FeatureExtractor
from swip.affect.models import EmotionResult, Sample
from swip.config import EmotionConfig

logger = structlog.get_logger(__name__)


class EmotionEngine:
    """Turn pushed HR/HRV samples into confidence-gated emotion results.

    Every :meth:`push` appends to the buffer; once the buffer holds at
    least ``min_buffer_size`` samples each push also runs one processing
    pass over the most recent ``window_size`` samples.  Results below
    ``confidence_threshold`` are dropped.  After processing the buffer is
    trimmed from the head to ``max_buffer_size``.

    The result queue is not capped: a consumer draining slower than the
    producer receives several results per :meth:`consume_ready` call.
    """

    def __init__(
        self,
        config: EmotionConfig | None = None,
        *,
        classifier: LinearClassifier | None = None,
        extractor: FeatureExtractor | None = None,
    ) -> None:
        self._config = config or EmotionConfig()
        self._extractor = extractor or FeatureExtractor()
        self._classifier = classifier or LinearClassifier(model_path=self._config.model_path)

        self._buffer: deque[Sample] = deque()
        self._results: list[EmotionResult] = []
        self._lock = threading.Lock()

        self._processed_total = 0
        self._dropped_total = 0

    # ── Configuration ─────────────────────────────────────────

    @property
    def config(self) -> EmotionConfig:
        return self._config

    @property
    def classifier(self) -> LinearClassifier:
        return self._classifier

    # ── Producer side ─────────────────────────────────────────

    def push(self, hr: float, hrv: float, timestamp: datetime, motion: float = 0.0) -> None:
        """Append a sample and, if enough data has accumulated, process it."""
        sample = Sample(hr=hr, hrv=hrv, timestamp=timestamp, motion=motion)
        with self._lock:
            self._buffer.append(sample)
            if len(self._buffer) >= self._config.min_buffer_size:
                self._process_locked()

    # ── Consumer side ─────────────────────────────────────────

    def consume_ready(self) -> list[EmotionResult]:
        """Return and clear every pending result."""
        with self._lock:
            ready = self._results
            self._results = []
        return ready

    def clear(self) -> None:
        """Drop all buffered samples and pending results."""
        with self._lock:
            self._buffer.clear()
            self._results = []

    # ── Processing ────────────────────────────────────────────

    def _process_locked(self) -> None:
        size = len(self._buffer)
        start = max(0, size - self._config.window_size)
        window = list(itertools.islice(self._buffer, start, size))

        features = self._extractor.extract(window)
        prediction = self._classifier.predict(features)
        self._processed_total += 1

        if prediction.confidence >= self._config.confidence_threshold:
            self._results.append(
                EmotionResult(
                    label=prediction.label,
                    confidence=prediction.confidence,
                    probabilities=prediction.probabilities,
                    timestamp=datetime.now(UTC),
                )
            )
        else:
            self._dropped_total += 1
            logger.debug(
                "emotion_engine.result_dropped",
                label=prediction.label.value,
                confidence=round(prediction.confidence, 3),
                threshold=self._config.confidence_threshold,
            )

        while len(self._buffer) > self._config.max_buffer_size:
            self._buffer.popleft()

    # ── Introspection ─────────────────────────────────────────

    @property
    def buffer_size(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._results)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "buffered": len(self._buffer),
                "pending": len(self._results),
                "processed_total": self._processed_total,
                "dropped_total": self._dropped_total,
            }
