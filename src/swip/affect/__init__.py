"""Affect inference — discrete emotion classification and wellness scoring from HR/HRV.

Architecture
------------
1. **Feature engineering** (`features.py`)
   - Six window statistics over heart rate and pre-aggregated HRV
   - Simplified SDNN / RMSSD proxies matching the trained weights

2. **Classifier** (`classifier.py`, `model_loader.py`)
   - One-vs-rest linear SVM over z-scored features
   - Softmax calibration of the decision scores
   - Packaged JSON artifact with a built-in fallback parameter set

3. **Scoring** (`scoring.py`)
   - Wellness-impact score fusing normalised HRV with emotional coherence
   - Heart-rate plausibility as a data-quality flag

Limitations
-----------
The softmax outputs are calibrated relative confidences, not
likelihoods.  Scores are wellness indicators, never diagnoses.
"""

from swip.affect.classifier import LinearClassifier, softmax
from swip.affect.features import FEATURE_ORDER, FeatureExtractor, extract_features
from swip.affect.model_loader import DEFAULT_SVM_MODEL, SvmModel, load_svm_model
from swip.affect.models import (
    DataQualityLevel,
    EmotionLabel,
    EmotionPrediction,
    EmotionResult,
    Sample,
    ScoreRange,
    ScoreResult,
)
from swip.affect.scoring import ScoreEngine, dominant_emotion

__all__ = [
    "DEFAULT_SVM_MODEL",
    "DataQualityLevel",
    "EmotionLabel",
    "EmotionPrediction",
    "EmotionResult",
    "FEATURE_ORDER",
    "FeatureExtractor",
    "LinearClassifier",
    "Sample",
    "ScoreEngine",
    "ScoreRange",
    "ScoreResult",
    "SvmModel",
    "dominant_emotion",
    "extract_features",
    "load_svm_model",
    "softmax",
]
