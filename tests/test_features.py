"""Tests for window feature extraction."""

from __future__ import annotations

import math

import pytest

from swip.affect.features import FEATURE_COUNT, FEATURE_ORDER, FeatureExtractor, extract_features
from conftest import make_samples


class TestExtractFeatures:
    def test_order_matches_model(self):
        assert FEATURE_ORDER == ("mean_hr", "std_hr", "min_hr", "max_hr", "sdnn", "rmssd")

    def test_empty_window_is_all_zero(self):
        assert extract_features([]) == [0.0] * FEATURE_COUNT

    def test_single_sample(self):
        features = extract_features(make_samples(1, hr=72, hrv=50))
        assert features == [72.0, 0.0, 72.0, 72.0, 50.0, 0.0]

    def test_constant_window(self):
        features = extract_features(make_samples(10, hr=70, hrv=60))
        assert features == [70.0, 0.0, 70.0, 70.0, 60.0, 0.0]

    def test_known_values(self):
        samples = make_samples(1, hr=60, hrv=40) + make_samples(1, hr=80, hrv=50)
        samples += make_samples(1, hr=70, hrv=30)
        mean_hr, std_hr, min_hr, max_hr, sdnn, rmssd = extract_features(samples)

        assert mean_hr == pytest.approx(70.0)
        # population std: sqrt(((-10)^2 + 10^2 + 0) / 3)
        assert std_hr == pytest.approx(math.sqrt(200 / 3))
        assert min_hr == 60.0
        assert max_hr == 80.0
        assert sdnn == pytest.approx(40.0)
        # successive diffs +10, -20 → sqrt((100 + 400) / 2)
        assert rmssd == pytest.approx(math.sqrt(250))

    def test_always_fixed_length(self):
        for n in (0, 1, 2, 59, 60):
            assert len(extract_features(make_samples(n))) == FEATURE_COUNT

    def test_non_finite_hr_does_not_raise(self):
        samples = make_samples(3, hr=70)
        samples.append(make_samples(1, hr=float("inf"))[0])
        features = extract_features(samples)
        assert math.isnan(features[1])


class TestFeatureExtractor:
    def test_wraps_function(self):
        window = make_samples(5, hr=65, hrv=45)
        assert FeatureExtractor().extract(window) == extract_features(window)
        assert FeatureExtractor.feature_order == FEATURE_ORDER


class TestExtremeValues:
    def test_huge_hr_sum_yields_nan_mean(self):
        features = extract_features(make_samples(10, hr=1.7e308, hrv=60))
        assert len(features) == FEATURE_COUNT
        assert math.isnan(features[0])
        assert features[2] == features[3] == 1.7e308

    def test_huge_hrv_swings_do_not_raise(self):
        samples = []
        for i in range(10):
            samples += make_samples(1, hr=70, hrv=1e200 if i % 2 else 0.0)
        features = extract_features(samples)
        assert features[0] == pytest.approx(70.0)
        assert features[4] == pytest.approx(5e199)
        # squared differences saturate to inf rather than raising
        assert math.isinf(features[5])

    def test_opposite_infinities_in_hrv(self):
        samples = make_samples(1, hrv=float("inf")) + make_samples(1, hrv=float("-inf"))
        features = extract_features(samples)
        assert math.isnan(features[4])
