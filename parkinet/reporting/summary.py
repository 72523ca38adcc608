"""Run summaries built from the trainers' in-memory metrics."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Mapping, Sequence

import numpy as np

from ..core.types import TrainingMetrics

if TYPE_CHECKING:  # pragma: no cover
    from ..training.alternating import AlternatingMetrics

SUMMARY_VERSION = 2


def _area(y: np.ndarray, x: np.ndarray) -> float:
    trapezoid = getattr(np, "trapezoid", None)
    if callable(trapezoid):
        return float(trapezoid(y, x))
    return float(np.trapz(y, x))


def compute_auc(points: Sequence[float]) -> float:
    """Return the area under ``points`` along an implicit epoch axis."""

    if len(points) == 0:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    x = np.arange(len(y), dtype=np.float64)
    return _area(y, x)


def _tail(values: Sequence[float], tail: int) -> list:
    window = min(max(int(tail), 0), len(values))
    return list(values[len(values) - window :])


def _loss_curve(losses: Sequence[float], tail: int) -> Dict[str, object]:
    best_epoch = int(np.argmin(losses))
    return {
        "final": float(losses[-1]),
        "best": float(losses[best_epoch]),
        "best_epoch": best_epoch,
        "tail_auc": compute_auc(_tail(losses, tail)),
    }


def summarize_training(metrics: TrainingMetrics, *, tail: int = 32) -> Dict[str, object]:
    """Summarise a single-task run.

    ``best_epoch`` and ``stopped_epoch`` are zero-based; ``stopped_epoch``
    stays ``None`` when the run used its whole epoch budget.
    """

    summary: Dict[str, object] = {
        "version": SUMMARY_VERSION,
        "mode": "single",
        "epochs_run": metrics.epochs_run,
        "stopped_epoch": metrics.stopped_epoch,
        "early_stopped": metrics.stopped_epoch is not None,
    }
    if not metrics.losses:
        return summary
    norms = np.asarray(metrics.gradient_norms, dtype=np.float64)
    summary.update(
        {
            "best_loss": float(metrics.best_loss),
            "best_epoch": metrics.best_epoch,
            "final_loss": float(metrics.losses[-1]),
            "improvement_percent": float(metrics.improvement()),
            "initial_lr": float(metrics.learning_rates[0]),
            "final_lr": float(metrics.learning_rates[-1]),
            "tail_window": len(_tail(metrics.losses, tail)),
            "loss_tail_auc": compute_auc(_tail(metrics.losses, tail)),
            "grad_norm": {"mean": float(norms.mean()), "max": float(norms.max())},
        }
    )
    return summary


def summarize_alternating(metrics: AlternatingMetrics, *, tail: int = 32) -> Dict[str, object]:
    """Summarise an alternating run: each task's curve plus their sum."""

    summary: Dict[str, object] = {
        "version": SUMMARY_VERSION,
        "mode": "alternating",
        "epochs_run": metrics.epochs_run,
    }
    if not metrics.epochs_run:
        return summary
    combined = _loss_curve(metrics.combined_losses, tail)
    final_mix = metrics.mixes[-1]
    summary.update(
        {
            "tail_window": len(_tail(metrics.combined_losses, tail)),
            "classification": _loss_curve(metrics.classification_losses, tail),
            "regression": _loss_curve(metrics.regression_losses, tail),
            "combined": combined,
            "best_combined_loss": float(metrics.best_combined_loss),
            "final_lr": float(metrics.learning_rates[-1]),
            "final_mix": {
                "classification": final_mix.classification_ratio,
                "regression": final_mix.regression_ratio,
            },
        }
    )
    return summary


def write_summary(summary: Mapping[str, object], out_summary_json: str | Path) -> str:
    """Write ``summary`` as sorted, indented JSON so reruns compare byte for byte."""

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = [
    "SUMMARY_VERSION",
    "compute_auc",
    "summarize_alternating",
    "summarize_training",
    "write_summary",
]
