"""Tests for the linear classifier and model artifact loading."""

from __future__ import annotations

import json
import math

import pytest
from pydantic import ValidationError

from swip.affect.classifier import LinearClassifier, softmax
from swip.affect.model_loader import DEFAULT_SVM_MODEL, SvmModel, load_svm_model
from swip.affect.models import EmotionLabel
from swip.errors import ModelError

MEANS = [72.5, 8.2, 65.0, 85.0, 45.3, 32.1]


def _model_dict(**overrides) -> dict:
    data = DEFAULT_SVM_MODEL.model_dump(mode="json")
    data.update(overrides)
    return data


# ── Softmax ──────────────────────────────────────────────────


class TestSoftmax:
    def test_sums_to_one(self):
        probs = softmax([1.0, 2.0, 3.0])
        assert sum(probs) == pytest.approx(1.0)
        assert probs[2] > probs[1] > probs[0]

    def test_large_scores_are_stable(self):
        probs = softmax([1000.0, 1000.0])
        assert probs == pytest.approx([0.5, 0.5])

    def test_empty(self):
        assert softmax([]) == []

    def test_non_finite_is_uniform(self):
        assert softmax([math.nan, 1.0, 2.0]) == pytest.approx([1 / 3] * 3)


# ── Model loading ────────────────────────────────────────────


class TestModelLoader:
    def test_packaged_artifact(self):
        model = load_svm_model()
        assert model is not None
        assert model.classes == [EmotionLabel.AMUSED, EmotionLabel.CALM, EmotionLabel.STRESSED]
        assert model.feature_order == list(DEFAULT_SVM_MODEL.feature_order)
        assert model.model_hash.startswith("sha256:")

    def test_missing_file(self, tmp_path):
        assert load_svm_model(tmp_path / "nope.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_svm_model(path) is None

    def test_shape_mismatch(self, tmp_path):
        path = tmp_path / "bad_shape.json"
        path.write_text(json.dumps(_model_dict(bias=[0.0, 0.0])), encoding="utf-8")
        assert load_svm_model(path) is None

    def test_valid_file(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps(_model_dict(version="2.0")), encoding="utf-8")
        model = load_svm_model(path)
        assert model is not None and model.version == "2.0"

    def test_unknown_class_rejected(self):
        with pytest.raises(ValidationError):
            SvmModel.model_validate(
                _model_dict(classes=["Amused", "Calm", "Unknown"])
            )

    def test_check_dimensions(self):
        DEFAULT_SVM_MODEL.check_dimensions()
        broken = DEFAULT_SVM_MODEL.model_construct(
            **(DEFAULT_SVM_MODEL.model_dump() | {"scaler_scale": [1.0]})
        )
        with pytest.raises(ModelError):
            broken.check_dimensions()


# ── Classifier ───────────────────────────────────────────────


class TestLinearClassifier:
    def test_default_construction_uses_artifact(self):
        clf = LinearClassifier()
        assert clf.labels == (EmotionLabel.AMUSED, EmotionLabel.CALM, EmotionLabel.STRESSED)
        assert clf.feature_count == 6

    def test_missing_path_falls_back_to_builtin(self, tmp_path):
        clf = LinearClassifier(model_path=tmp_path / "missing.json")
        assert clf.model is DEFAULT_SVM_MODEL

    def test_invalid_mapping_falls_back_to_builtin(self):
        clf = LinearClassifier({"type": "linear_svm_ovr"})
        assert clf.model is DEFAULT_SVM_MODEL

    def test_features_at_mean_follow_bias(self):
        # z = 0 everywhere → scores are the biases [-0.2, 0.3, 0.1]
        prediction = LinearClassifier(DEFAULT_SVM_MODEL).predict(MEANS)
        expected = softmax([-0.2, 0.3, 0.1])

        assert prediction.label == EmotionLabel.CALM
        assert prediction.confidence == pytest.approx(expected[1])
        assert prediction.probabilities[EmotionLabel.AMUSED] == pytest.approx(expected[0])
        assert sum(prediction.probabilities.values()) == pytest.approx(1.0)

    def test_normalize(self):
        clf = LinearClassifier(DEFAULT_SVM_MODEL)
        z = clf.normalize([84.5, 8.2, 65.0, 85.0, 45.3, 32.1])
        assert z[0] == pytest.approx(1.0)
        assert z[1:] == pytest.approx([0.0] * 5)

    def test_zero_scale_marks_feature_inactive(self):
        model = _model_dict(scaler_scale=[0.0, 5.5, 8.0, 15.0, 18.7, 12.4])
        clf = LinearClassifier(model)
        assert clf.normalize([1000.0, *MEANS[1:]])[0] == 0.0

    def test_short_vector_pads_with_inactive_features(self):
        clf = LinearClassifier(DEFAULT_SVM_MODEL)
        assert clf.predict([]).label == clf.predict(MEANS).label
        assert clf.normalize(MEANS[:3]) == pytest.approx([0.0] * 6)

    def test_long_vector_ignores_extras(self):
        clf = LinearClassifier(DEFAULT_SVM_MODEL)
        assert clf.decision_scores(MEANS + [99.0]) == pytest.approx(clf.decision_scores(MEANS))

    def test_non_finite_features_do_not_raise(self):
        prediction = LinearClassifier(DEFAULT_SVM_MODEL).predict([math.nan] * 6)
        assert 0.0 <= prediction.confidence <= 1.0

    def test_tie_picks_first_class(self):
        model = _model_dict(weights=[[0.0] * 6] * 3, bias=[0.0, 0.0, 0.0])
        prediction = LinearClassifier(model).predict(MEANS)
        assert prediction.label == EmotionLabel.AMUSED
        assert prediction.confidence == pytest.approx(1 / 3)

    def test_strong_evidence_dominates(self):
        # High HRV statistics push the Amused discriminant up
        features = [72.5, 8.2, 65.0, 85.0, 45.3 + 18.7 * 6, 32.1 + 12.4 * 6]
        prediction = LinearClassifier(DEFAULT_SVM_MODEL).predict(features)
        assert prediction.label == EmotionLabel.AMUSED
        assert prediction.confidence > 0.6

    def test_repeated_predictions_are_identical(self):
        clf = LinearClassifier()
        features = [88.0, 12.5, 70.0, 110.0, 30.0, 18.0]
        first = clf.predict(features)
        for _ in range(20):
            again = clf.predict(features)
            assert again.label == first.label
            assert again.confidence == pytest.approx(first.confidence, abs=1e-4)
            for label, p in first.probabilities.items():
                assert again.probabilities[label] == pytest.approx(p, abs=1e-4)

    def test_typical_resting_window(self):
        prediction = LinearClassifier().predict([70.0, 5.0, 65.0, 75.0, 50.0, 40.0])
        assert prediction.label in (EmotionLabel.AMUSED, EmotionLabel.CALM, EmotionLabel.STRESSED)
        assert 0.0 < prediction.confidence <= 1.0
        assert sum(prediction.probabilities.values()) == pytest.approx(1.0)

    def test_extreme_finite_features(self):
        clf = LinearClassifier(DEFAULT_SVM_MODEL)
        for value in (1.7e308, -1.7e308):
            prediction = clf.predict([value] * 6)
            assert 0.0 <= prediction.confidence <= 1.0
