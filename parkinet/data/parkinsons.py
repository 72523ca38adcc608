"""UCI Parkinson's voice datasets.

Two CSV files feed the two tasks:

* ``parkinsons.data`` (diagnosis): one row per voice recording, a binary
  ``status`` column (1 = Parkinson's) and 22 acoustic measures.
* ``parkinsons_updrs.data`` (telemonitoring): subject metadata, the
  ``motor_UPDRS``/``total_UPDRS`` scores and 16 voice measures.

Small fixture copies ship with the package so every preset runs offline.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .registry import DatasetSpec, TaskData, register_dataset
from .utils import class_distribution, minmax_normalize

FIXTURE_DIR = Path(__file__).resolve().parent / "_fixtures"

CLASSIFICATION_TARGET = "status"
CLASSIFICATION_EXCLUDED = ("name", CLASSIFICATION_TARGET)
REGRESSION_TARGET = "motor_UPDRS"
# subject#, age, sex, test_time, motor_UPDRS, total_UPDRS
REGRESSION_METADATA_COLUMNS = 6
UPDRS_SCALE = 100.0

# Voice measures recorded in both files: (diagnosis column, telemonitoring column).
SHARED_VOICE_FEATURES: Tuple[Tuple[str, str], ...] = (
    ("MDVP:Jitter(%)", "Jitter(%)"),
    ("MDVP:Jitter(Abs)", "Jitter(Abs)"),
    ("MDVP:RAP", "Jitter:RAP"),
    ("MDVP:PPQ", "Jitter:PPQ5"),
    ("Jitter:DDP", "Jitter:DDP"),
    ("MDVP:Shimmer", "Shimmer"),
    ("MDVP:Shimmer(dB)", "Shimmer(dB)"),
    ("Shimmer:APQ3", "Shimmer:APQ3"),
    ("Shimmer:APQ5", "Shimmer:APQ5"),
    ("MDVP:APQ", "Shimmer:APQ11"),
    ("Shimmer:DDA", "Shimmer:DDA"),
    ("NHR", "NHR"),
    ("HNR", "HNR"),
    ("RPDE", "RPDE"),
    ("DFA", "DFA"),
    ("PPE", "PPE"),
)


def _read_numeric(path: Path, columns: Sequence[str]) -> pd.DataFrame:
    df = pd.read_csv(path)
    df.columns = [str(col).strip() for col in df.columns]
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise KeyError(f"{path} is missing columns: {', '.join(missing)}")
    numeric = df[list(columns)].apply(pd.to_numeric, errors="coerce")
    bad_rows = numeric.isna().any(axis=1)
    if bad_rows.any():
        warnings.warn(
            f"Dropped {int(bad_rows.sum())} row(s) with unparsable values from {path}",
            RuntimeWarning,
            stacklevel=3,
        )
        numeric = numeric.loc[~bad_rows]
    return numeric


def load_classification(
    path: str | Path | None = None, *, shared_features: bool = False
) -> TaskData:
    """Load the diagnosis task: normalised voice measures and the ``status`` label."""

    csv_path = Path(path) if path else FIXTURE_DIR / "parkinsons_fixture.data"
    header = pd.read_csv(csv_path, nrows=0).columns
    if shared_features:
        features: List[str] = [cls_col for cls_col, _ in SHARED_VOICE_FEATURES]
        names = [reg_col for _, reg_col in SHARED_VOICE_FEATURES]
    else:
        features = [
            str(col).strip()
            for col in header
            if str(col).strip() not in CLASSIFICATION_EXCLUDED
        ]
        names = list(features)
    frame = _read_numeric(csv_path, [*features, CLASSIFICATION_TARGET])
    inputs, _, _ = minmax_normalize(frame[features].to_numpy(dtype=np.float64))
    targets = frame[CLASSIFICATION_TARGET].to_numpy(dtype=np.float64).reshape(-1, 1)
    return TaskData(inputs=inputs, targets=targets, task_type="binary", feature_names=names)


def load_regression(
    path: str | Path | None = None,
    *,
    shared_features: bool = False,
    target_scale: float = UPDRS_SCALE,
) -> TaskData:
    """Load the telemonitoring task: voice measures and ``motor_UPDRS / target_scale``."""

    if target_scale <= 0:
        raise ValueError("target_scale must be positive")
    csv_path = Path(path) if path else FIXTURE_DIR / "parkinsons_updrs_fixture.data"
    header = [str(col).strip() for col in pd.read_csv(csv_path, nrows=0).columns]
    if shared_features:
        features = [reg_col for _, reg_col in SHARED_VOICE_FEATURES]
    else:
        features = header[REGRESSION_METADATA_COLUMNS:]
    frame = _read_numeric(csv_path, [*features, REGRESSION_TARGET])
    inputs, _, _ = minmax_normalize(frame[features].to_numpy(dtype=np.float64))
    targets = frame[REGRESSION_TARGET].to_numpy(dtype=np.float64).reshape(-1, 1) / target_scale
    return TaskData(
        inputs=inputs,
        targets=targets,
        task_type="regression",
        feature_names=list(features),
        target_scale=float(target_scale),
    )


@register_dataset("parkinsons")
def load_parkinsons(
    *,
    classification_csv: str | Path | None = None,
    regression_csv: str | Path | None = None,
    shared_features: bool = False,
    target_scale: float = UPDRS_SCALE,
    **_: object,
) -> DatasetSpec:
    classification = load_classification(classification_csv, shared_features=shared_features)
    regression = load_regression(
        regression_csv, shared_features=shared_features, target_scale=target_scale
    )
    dist = class_distribution(classification.targets)
    provenance = {
        "classification_csv": str(classification_csv or FIXTURE_DIR / "parkinsons_fixture.data"),
        "regression_csv": str(regression_csv or FIXTURE_DIR / "parkinsons_updrs_fixture.data"),
        "fixture": classification_csv is None or regression_csv is None,
        "shared_features": shared_features,
        "target_scale": float(target_scale),
        "classification_samples": len(classification),
        "regression_samples": len(regression),
        "positives": dist.positive,
        "negatives": dist.negative,
    }
    return DatasetSpec(
        name="parkinsons",
        tasks={"classification": classification, "regression": regression},
        provenance=provenance,
    )


__all__ = [
    "SHARED_VOICE_FEATURES",
    "load_classification",
    "load_parkinsons",
    "load_regression",
]
