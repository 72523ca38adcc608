"""Human-readable run output printed to stdout."""

from __future__ import annotations

from typing import Mapping, Sequence

from ..core.types import TrainingMetrics
from ..data.utils import ClassDistribution


def print_startup_summary(
    *,
    dataset_name: str,
    task: str,
    dims: Sequence[int],
    activations: Sequence[str],
    policy: str,
    learning_rate: float,
    epochs: int,
    batch_size: int,
    param_count: int,
) -> None:
    print("=== parkinet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Task          : {task}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Activations   : {', '.join(activations)}")
    print(f"Policy        : {policy}")
    print(f"Learning rate : {learning_rate}")
    print(f"Epochs        : {epochs} (batch {batch_size})")
    print(f"Parameters    : {param_count}")
    print("====================")


class ProgressPrinter:
    """Epoch callback printing every ``every`` epochs, on improvement and at the end."""

    def __init__(self, total_epochs: int, every: int = 10, label: str = "") -> None:
        self.total_epochs = int(total_epochs)
        self.every = max(1, int(every))
        self.label = label

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        last = epoch == self.total_epochs - 1
        improved = bool(metrics.get("improved", 0.0))
        if epoch % self.every and not improved and not last:
            return
        prefix = f"[{self.label}] " if self.label else ""
        parts = [f"{prefix}epoch {epoch + 1:>4}/{self.total_epochs}"]
        for key in ("loss", "classification_loss", "regression_loss", "grad_norm", "lr"):
            if key in metrics:
                parts.append(f"{key}={metrics[key]:.6f}")
        if improved:
            parts.append("*")
        print("  ".join(parts))

    __call__ = on_epoch


def print_class_distribution(dist: ClassDistribution, label: str = "classification") -> None:
    print(f"Class distribution ({label}):")
    print(f"  positive: {dist.positive} ({dist.positive_ratio * 100:.1f}%)")
    print(f"  negative: {dist.negative} ({dist.negative_ratio * 100:.1f}%)")
    if dist.is_imbalanced:
        print("  warning: classes are imbalanced; consider the 'balanced' policy")


def print_evaluation(evaluation: Mapping[str, object], label: str = "test") -> None:
    print(f"Evaluation ({label}):")
    for key in sorted(evaluation):
        value = evaluation[key]
        if isinstance(value, Mapping):
            inner = ", ".join(f"{k}={v}" for k, v in value.items())
            print(f"  {key:<12}: {inner}")
        elif isinstance(value, float):
            print(f"  {key:<12}: {value:.6f}")
        else:
            print(f"  {key:<12}: {value}")


def print_training_report(metrics: TrainingMetrics) -> None:
    if not metrics.losses:
        print("Training report: no epochs run")
        return
    print("Training report:")
    print(f"  epochs run  : {metrics.epochs_run}")
    print(f"  best loss   : {metrics.best_loss:.6f} (epoch {metrics.best_epoch + 1})")
    print(f"  final loss  : {metrics.losses[-1]:.6f}")
    print(f"  improvement : {metrics.improvement():.2f}%")
    if metrics.stopped_epoch is not None:
        print(f"  early stop  : epoch {metrics.stopped_epoch + 1}")


__all__ = [
    "ProgressPrinter",
    "print_class_distribution",
    "print_evaluation",
    "print_startup_summary",
    "print_training_report",
]
