"""Tests for the streaming emotion engine."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from swip.affect.classifier import LinearClassifier
from swip.affect.model_loader import DEFAULT_SVM_MODEL
from swip.config import EmotionConfig
from swip.streaming.pipeline import EmotionEngine

T0 = datetime(2025, 1, 1, tzinfo=UTC)


def _push(engine: EmotionEngine, n: int, hr: float = 70.0, hrv: float = 60.0) -> None:
    for i in range(n):
        engine.push(hr, hrv, T0 + timedelta(seconds=i))


class TestBuffering:
    def test_no_result_before_min_buffer(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 9)
        assert engine.consume_ready() == []
        assert engine.buffer_size == 9

    def test_result_at_min_buffer(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 10)
        results = engine.consume_ready()
        assert len(results) == 1
        assert sum(results[0].probabilities.values()) == pytest.approx(1.0)
        assert results[0].confidence == max(results[0].probabilities.values())

    def test_every_push_after_min_buffer_processes(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 15)
        assert len(engine.consume_ready()) == 6

    def test_consume_drains(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 10)
        assert len(engine.consume_ready()) == 1
        assert engine.consume_ready() == []
        assert engine.pending == 0

    def test_buffer_is_capped(self):
        config = EmotionConfig(confidence_threshold=0.0, max_buffer_size=20, window_size=5)
        engine = EmotionEngine(config)
        _push(engine, 50)
        assert engine.buffer_size == 20

    def test_default_cap(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 310)
        assert engine.buffer_size == 300

    def test_clear(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 12)
        engine.clear()
        assert engine.buffer_size == 0
        assert engine.consume_ready() == []
        _push(engine, 9)
        assert engine.consume_ready() == []


class TestGating:
    def test_low_confidence_dropped(self):
        engine = EmotionEngine(EmotionConfig(confidence_threshold=0.99))
        _push(engine, 20)
        assert engine.consume_ready() == []
        stats = engine.stats()
        assert stats["processed_total"] == 11
        assert stats["dropped_total"] == 11

    def test_default_threshold_drops_flat_signal(self):
        # A flat signal yields a confidence well below 0.6
        engine = EmotionEngine()
        _push(engine, 10)
        assert engine.consume_ready() == []

    def test_high_confidence_kept_at_default_threshold(self):
        engine = EmotionEngine(classifier=LinearClassifier(DEFAULT_SVM_MODEL))
        for i in range(10):
            # Large HRV swings drive rmssd and sdnn far above the scaler mean
            engine.push(70.0, 160.0 if i % 2 else 80.0, T0 + timedelta(seconds=i))
        results = engine.consume_ready()
        assert len(results) == 1
        assert results[0].confidence >= 0.6


class TestWindow:
    def test_only_recent_window_is_classified(self):
        config = EmotionConfig(confidence_threshold=0.0, window_size=10)
        engine = EmotionEngine(config)
        _push(engine, 10, hr=150.0, hrv=20.0)
        engine.consume_ready()
        _push(engine, 10, hr=70.0, hrv=60.0)
        latest = engine.consume_ready()[-1]

        fresh = EmotionEngine(config)
        _push(fresh, 10, hr=70.0, hrv=60.0)
        assert latest.probabilities == pytest.approx(fresh.consume_ready()[-1].probabilities)


class TestConcurrency:
    def test_producer_and_consumer_threads(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        collected = []
        done = threading.Event()

        def producer():
            _push(engine, 500)
            done.set()

        def consumer():
            while not done.is_set():
                collected.extend(engine.consume_ready())
            collected.extend(engine.consume_ready())

        threads = [threading.Thread(target=producer), threading.Thread(target=consumer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(collected) == 491
        assert engine.buffer_size == 300

    def test_clear_while_pushing(self):
        config = EmotionConfig(confidence_threshold=0.0, max_buffer_size=50, window_size=20)
        engine = EmotionEngine(config)
        done = threading.Event()
        observed = []

        def producer():
            _push(engine, 2000)
            done.set()

        def clearer():
            while not done.is_set():
                engine.clear()
                observed.append(engine.buffer_size)

        threads = [threading.Thread(target=producer), threading.Thread(target=clearer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert all(0 <= size <= 50 for size in observed)
        stats = engine.stats()
        assert 0 <= stats["buffered"] <= 50
        assert stats["pending"] == len(engine.consume_ready())

        # The engine keeps working normally afterwards
        engine.clear()
        _push(engine, 10)
        assert len(engine.consume_ready()) == 1


class TestExtremeInputs:
    def test_huge_heart_rate_does_not_raise(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        _push(engine, 10, hr=1.7e308)
        results = engine.consume_ready()
        assert len(results) == 1
        assert 0.0 <= results[0].confidence <= 1.0

    def test_huge_hrv_swings_do_not_raise(self, ungated_config: EmotionConfig):
        engine = EmotionEngine(ungated_config)
        for i in range(10):
            engine.push(70.0, 1e200 if i % 2 else 0.0, T0 + timedelta(seconds=i))
        results = engine.consume_ready()
        assert len(results) == 1
        assert sum(results[0].probabilities.values()) == pytest.approx(1.0)


class TestConfigValidation:
    def test_min_buffer_above_cap_rejected(self):
        with pytest.raises(ValidationError):
            EmotionConfig(min_buffer_size=400)

    def test_min_buffer_equal_to_cap_allowed(self):
        config = EmotionConfig(confidence_threshold=0.0, min_buffer_size=20, max_buffer_size=20)
        engine = EmotionEngine(config)
        _push(engine, 25)
        assert len(engine.consume_ready()) == 6

    @pytest.mark.parametrize("threshold", [-0.1, 1.01])
    def test_threshold_outside_unit_interval_rejected(self, threshold: float):
        with pytest.raises(ValidationError):
            EmotionConfig(confidence_threshold=threshold)
