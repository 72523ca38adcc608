"""Evaluation metrics for binary classification and scalar regression."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.network import POSITIVE_THRESHOLD
from ..core.types import Array, TrainingMetrics
from .losses import binary_cross_entropy


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


@dataclass(frozen=True)
class ConfusionCounts:
    true_positives: int
    true_negatives: int
    false_positives: int
    false_negatives: int

    @property
    def total(self) -> int:
        return self.true_positives + self.true_negatives + self.false_positives + self.false_negatives

    def as_dict(self) -> Dict[str, int]:
        return {
            "tp": self.true_positives,
            "tn": self.true_negatives,
            "fp": self.false_positives,
            "fn": self.false_negatives,
        }


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mse", "mae", "rmse", "r2"]
    if task_type == "binary":
        return ["accuracy", "precision", "recall", "f1", "bce"]
    raise ValueError(f"Unknown task type: {task_type}")


def _first_column(values: Array) -> Array:
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim == 1:
        return arr
    return arr.reshape(arr.shape[0], -1)[:, 0]


def confusion_counts(
    predictions: Array, targets: Array, threshold: float = POSITIVE_THRESHOLD
) -> ConfusionCounts:
    pred = _first_column(predictions) > threshold
    true = _first_column(targets) > threshold
    return ConfusionCounts(
        true_positives=int(np.sum(pred & true)),
        true_negatives=int(np.sum(~pred & ~true)),
        false_positives=int(np.sum(pred & ~true)),
        false_negatives=int(np.sum(~pred & true)),
    )


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator > 0 else 0.0


def compute_metric(
    name: str,
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> MetricResult:
    key = name.lower()
    preds = np.asarray(predictions, dtype=np.float64)
    targs = np.asarray(targets, dtype=np.float64)
    if preds.shape[0] == 0:
        return MetricResult(name=key, value=0.0)
    if key == "mse":
        value = float(np.mean((preds - targs) ** 2))
    elif key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "r2":
        mean = np.mean(targs, axis=0, keepdims=True)
        ss_res = float(np.sum((targs - preds) ** 2))
        ss_tot = float(np.sum((targs - mean) ** 2))
        value = 1.0 if ss_tot == 0 else float(1 - ss_res / ss_tot)
    elif key == "bce":
        value = binary_cross_entropy(_first_column(preds), _first_column(targs))
    elif key in {"accuracy", "precision", "recall", "f1"}:
        if task_type != "binary":
            raise ValueError(f"Metric {name!r} requires a binary task")
        counts = confusion_counts(preds, targs)
        precision = _ratio(counts.true_positives, counts.true_positives + counts.false_positives)
        recall = _ratio(counts.true_positives, counts.true_positives + counts.false_negatives)
        if key == "accuracy":
            value = _ratio(counts.true_positives + counts.true_negatives, counts.total)
        elif key == "precision":
            value = precision
        elif key == "recall":
            value = recall
        else:
            value = _ratio(2 * precision * recall, precision + recall)
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str],
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets, task_type=task_type)
        results[metric.name] = metric.value
    return results


__all__ = [
    "ConfusionCounts",
    "MetricResult",
    "TrainingMetrics",
    "compute_metric",
    "compute_metrics",
    "confusion_counts",
    "default_metrics",
]
