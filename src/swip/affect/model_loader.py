"""Linear SVM artifact schema, packaged-resource loading and the built-in fallback."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from swip.affect.features import FEATURE_ORDER
from swip.affect.models import EmotionLabel
from swip.errors import ModelError

logger = structlog.get_logger(__name__)

DEFAULT_MODEL_NAME = "svm_linear_v1_0"


class SvmModel(BaseModel):
    """One-vs-rest linear SVM exported from the training pipeline.

    ``weights`` is indexed ``[class][feature]``.  The provenance fields are
    carried through unchanged and play no part in inference.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, protected_namespaces=())

    type: str
    version: str
    feature_order: list[str]
    scaler_mean: list[float]
    scaler_scale: list[float]
    classes: list[EmotionLabel]
    weights: list[list[float]]
    bias: list[float]

    # ── Provenance
    model_hash: str
    export_time_utc: str
    training_commit: str
    data_manifest_id: str

    def dimension_problems(self) -> list[str]:
        """Return a description of every shape inconsistency (empty if valid)."""
        problems: list[str] = []
        n_features = len(self.feature_order)
        n_classes = len(self.classes)

        if n_features == 0:
            problems.append("feature_order is empty")
        if n_classes == 0:
            problems.append("classes is empty")
        if EmotionLabel.UNKNOWN in self.classes:
            problems.append("'Unknown' is not a valid model class")
        if len(set(self.classes)) != n_classes:
            problems.append("classes contains duplicates")
        if len(self.scaler_mean) != n_features:
            problems.append(f"scaler_mean has {len(self.scaler_mean)} values, expected {n_features}")
        if len(self.scaler_scale) != n_features:
            problems.append(f"scaler_scale has {len(self.scaler_scale)} values, expected {n_features}")
        if len(self.weights) != n_classes:
            problems.append(f"weights has {len(self.weights)} rows, expected {n_classes}")
        if len(self.bias) != n_classes:
            problems.append(f"bias has {len(self.bias)} values, expected {n_classes}")
        for label, row in zip(self.classes, self.weights):
            if len(row) != n_features:
                problems.append(f"weights[{label.value}] has {len(row)} values, expected {n_features}")
        return problems

    def check_dimensions(self) -> None:
        """Raise :class:`ModelError` if the artifact is internally inconsistent."""
        problems = self.dimension_problems()
        if problems:
            raise ModelError("; ".join(problems))

    @model_validator(mode="after")
    def _validate_dimensions(self) -> SvmModel:
        problems = self.dimension_problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self


# Last-resort parameters used when no valid artifact can be loaded.
DEFAULT_SVM_MODEL = SvmModel(
    type="linear_svm_ovr",
    version="1.0-builtin",
    feature_order=list(FEATURE_ORDER),
    scaler_mean=[72.5, 8.2, 65.0, 85.0, 45.3, 32.1],
    scaler_scale=[12.0, 5.5, 8.0, 15.0, 18.7, 12.4],
    classes=[EmotionLabel.AMUSED, EmotionLabel.CALM, EmotionLabel.STRESSED],
    weights=[
        [0.12, -0.33, 0.08, -0.19, 0.5, 0.3],
        [-0.21, 0.55, -0.07, 0.1, -0.4, -0.3],
        [0.02, -0.12, 0.1, 0.05, 0.2, 0.1],
    ],
    bias=[-0.2, 0.3, 0.1],
    model_hash="builtin",
    export_time_utc="",
    training_commit="",
    data_manifest_id="",
)


def _read_artifact(path: str | Path | None, model_name: str) -> str:
    if path is not None:
        return Path(path).read_text(encoding="utf-8")
    resource = resources.files("swip").joinpath("resources", f"{model_name}.json")
    return resource.read_text(encoding="utf-8")


def load_svm_model(
    path: str | Path | None = None,
    *,
    model_name: str = DEFAULT_MODEL_NAME,
) -> SvmModel | None:
    """Load and validate an SVM artifact.

    Reads *path* when given, otherwise the packaged ``<model_name>.json``
    resource.  Returns ``None`` (never raises) when the file is missing,
    is not valid JSON, or fails schema/shape validation.
    """
    source = str(path) if path is not None else f"package:{model_name}.json"
    try:
        raw = _read_artifact(path, model_name)
    except FileNotFoundError:
        logger.warning("model_loader.not_found", source=source)
        return None
    except OSError as exc:
        logger.warning("model_loader.read_failed", source=source, error=str(exc))
        return None

    try:
        model = SvmModel.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "model_loader.invalid",
            source=source,
            errors=exc.error_count(),
            error=str(exc).splitlines()[0],
        )
        return None

    logger.debug(
        "model_loader.loaded",
        source=source,
        version=model.version,
        classes=[c.value for c in model.classes],
        model_hash=model.model_hash,
    )
    return model
