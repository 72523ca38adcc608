"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import DatasetSpec, TaskData, register_dataset
from .utils import minmax_normalize


def _make_classification(
    n_samples: int, n_features: int, positive_ratio: float, rng: np.random.Generator
) -> TaskData:
    labels = (rng.random(n_samples) < positive_ratio).astype(np.float64)
    # Positives sit higher on a random subset of features.
    shift = rng.uniform(0.5, 1.5, size=n_features) * (rng.random(n_features) < 0.6)
    raw = rng.standard_normal((n_samples, n_features)) + labels[:, None] * shift
    inputs, _, _ = minmax_normalize(raw)
    return TaskData(inputs=inputs, targets=labels.reshape(-1, 1), task_type="binary")


def _make_regression(n_samples: int, n_features: int, rng: np.random.Generator) -> TaskData:
    inputs = rng.random((n_samples, n_features))
    weights = rng.normal(0.0, 1.0, size=n_features)
    signal = (inputs - 0.5) @ weights
    noise = 0.02 * rng.standard_normal(n_samples)
    targets = np.clip(1.0 / (1.0 + np.exp(-signal)) + noise, 0.0, 1.0)
    return TaskData(inputs=inputs, targets=targets.reshape(-1, 1), task_type="regression")


@register_dataset("synthetic")
def load_synthetic(
    *,
    seed: int = 0,
    classification_samples: int = 195,
    regression_samples: int = 400,
    classification_features: int = 22,
    regression_features: int = 16,
    positive_ratio: float = 0.75,
    shared_features: bool = False,
    **_: object,
) -> DatasetSpec:
    """Generate a Parkinson's-shaped binary task and a bounded regression task."""

    if not 0.0 < positive_ratio < 1.0:
        raise ValueError("positive_ratio must be in (0, 1)")
    rng = np.random.default_rng(seed)
    if shared_features:
        classification_features = regression_features
    classification = _make_classification(
        classification_samples, classification_features, positive_ratio, rng
    )
    regression = _make_regression(regression_samples, regression_features, rng)
    provenance = {
        "type": "synthetic",
        "seed": seed,
        "classification_samples": classification_samples,
        "regression_samples": regression_samples,
        "classification_features": classification_features,
        "regression_features": regression_features,
        "positive_ratio": positive_ratio,
        "shared_features": shared_features,
    }
    return DatasetSpec(
        name="synthetic",
        tasks={"classification": classification, "regression": regression},
        provenance=provenance,
    )


@register_dataset("xor")
def load_xor(**_: object) -> DatasetSpec:
    inputs = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    targets = np.array([[0.0], [1.0], [1.0], [0.0]])
    task = TaskData(
        inputs=inputs, targets=targets, task_type="binary", feature_names=["a", "b"]
    )
    return DatasetSpec(name="xor", tasks={"classification": task}, provenance={"type": "xor"})


__all__ = ["load_synthetic", "load_xor"]
