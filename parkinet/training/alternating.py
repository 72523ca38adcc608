"""Alternating classification/regression training of one shared network."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

import numpy as np

from ..core.errors import ShapeMismatchError
from ..core.network import Network
from ..core.optimizers import SGD
from ..core.types import Array
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss
from .schedules import ALTERNATING, LearningRateSchedule, get_schedule
from .trainer import as_matrix, emit_epoch, run_batch

TaskSamples = Tuple[Union[Sequence[Array], Array], Union[Sequence[Array], Array]]


@dataclass(frozen=True)
class TaskMix:
    """Share of the epoch given to each task."""

    classification_ratio: float
    regression_ratio: float


def task_mix(epoch: int, total_epochs: int) -> TaskMix:
    """Regression-heavy early, balanced mid-run, classification-heavy late."""

    progress = epoch / total_epochs if total_epochs > 0 else 0.0
    if progress < 0.3:
        return TaskMix(0.3, 0.7)
    if progress < 0.7:
        return TaskMix(0.5, 0.5)
    return TaskMix(0.7, 0.3)


@dataclass
class AlternatingMetrics:
    classification_losses: List[float] = field(default_factory=list)
    regression_losses: List[float] = field(default_factory=list)
    learning_rates: List[float] = field(default_factory=list)
    mixes: List[TaskMix] = field(default_factory=list)
    best_combined_loss: float = math.inf

    def update(
        self, classification_loss: float, regression_loss: float, lr: float, mix: TaskMix
    ) -> bool:
        self.classification_losses.append(float(classification_loss))
        self.regression_losses.append(float(regression_loss))
        self.learning_rates.append(float(lr))
        self.mixes.append(mix)
        combined = classification_loss + regression_loss
        improved = combined < self.best_combined_loss
        if improved:
            self.best_combined_loss = float(combined)
        return improved

    @property
    def combined_losses(self) -> List[float]:
        return [c + r for c, r in zip(self.classification_losses, self.regression_losses)]

    @property
    def epochs_run(self) -> int:
        return len(self.classification_losses)

    def as_dict(self) -> dict:
        return {
            "classification_losses": list(self.classification_losses),
            "regression_losses": list(self.regression_losses),
            "learning_rates": list(self.learning_rates),
            "best_combined_loss": self.best_combined_loss,
        }


def batches_for(n_samples: int, ratio: float, batch_size: int) -> int:
    return max(1, int(n_samples * ratio) // batch_size)


class AlternatingTrainer:
    """Train one network on two tasks with a progress-dependent task mix.

    Each batch is drawn with replacement from its task's samples. The
    learning rate follows ``schedule`` regardless of the task losses and the
    run never stops early.
    """

    def __init__(
        self,
        network: Network,
        rng: np.random.Generator | None = None,
        schedule: str | LearningRateSchedule = ALTERNATING,
        loss: str | Loss = "mse",
        clip_norm: float | None = 3.0,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.rng = rng if rng is not None else np.random.default_rng()
        self.schedule = get_schedule(schedule)
        self.loss = LOSS_REGISTRY.get(loss)
        self.clip_norm = clip_norm
        self.callbacks = list(callbacks or [])

    def _prepare(self, task: TaskSamples, label: str) -> Tuple[Array, Array]:
        inputs, targets = task
        if len(inputs) != len(targets):
            raise ValueError(
                f"{label} task has {len(inputs)} inputs but {len(targets)} targets"
            )
        if len(inputs) == 0:
            width = self.network.input_size
            return np.zeros((0, width)), np.zeros((0, self.network.output_size))
        x = as_matrix(inputs)
        if x.shape[1] != self.network.input_size:
            raise ShapeMismatchError(
                f"{label} inputs have {x.shape[1]} features but the shared network "
                f"expects {self.network.input_size}"
            )
        return x, as_matrix(targets)

    def _phase(
        self, optimizer: SGD, x: Array, y: Array, num_batches: int, batch_size: int
    ) -> float:
        n_samples = x.shape[0]
        if n_samples == 0:
            return 0.0
        losses: List[float] = []
        for _ in range(num_batches):
            indices = self.rng.integers(0, n_samples, size=batch_size)
            batch_loss, _ = run_batch(
                self.network, optimizer, x, y, indices, self.loss, self.clip_norm
            )
            losses.append(batch_loss)
        return float(np.mean(losses)) if losses else 0.0

    def run(
        self,
        classification: TaskSamples,
        regression: TaskSamples,
        epochs: int,
        batch_size: int,
    ) -> AlternatingMetrics:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {epochs}")
        self.network.validate()
        cls_x, cls_y = self._prepare(classification, "classification")
        reg_x, reg_y = self._prepare(regression, "regression")
        self.network.freeze()

        metrics = AlternatingMetrics()
        optimizer = SGD(self.network.learning_rate)
        for epoch in range(epochs):
            mix = task_mix(epoch, epochs)
            cls_loss = 0.0
            reg_loss = 0.0
            if mix.classification_ratio > 0:
                cls_loss = self._phase(
                    optimizer,
                    cls_x,
                    cls_y,
                    batches_for(cls_x.shape[0], mix.classification_ratio, batch_size),
                    batch_size,
                )
            if mix.regression_ratio > 0:
                reg_loss = self._phase(
                    optimizer,
                    reg_x,
                    reg_y,
                    batches_for(reg_x.shape[0], mix.regression_ratio, batch_size),
                    batch_size,
                )
            if not (math.isfinite(cls_loss) and math.isfinite(reg_loss)):
                raise FloatingPointError(
                    f"Non-finite loss at epoch {epoch}: classification={cls_loss}, "
                    f"regression={reg_loss}"
                )

            rate = optimizer.learning_rate
            improved = metrics.update(cls_loss, reg_loss, rate, mix)
            optimizer.learning_rate = self.schedule.next_rate(epoch, rate, cls_loss + reg_loss)
            emit_epoch(
                self.callbacks,
                epoch,
                {
                    "loss": cls_loss + reg_loss,
                    "classification_loss": cls_loss,
                    "regression_loss": reg_loss,
                    "lr": rate,
                    "classification_ratio": mix.classification_ratio,
                    "best_loss": metrics.best_combined_loss,
                    "improved": float(improved),
                },
            )
        return metrics


def train_alternating(
    network: Network,
    classification: TaskSamples,
    regression: TaskSamples,
    epochs: int,
    batch_size: int,
    rng: np.random.Generator | None = None,
    callbacks: Sequence[object] | None = None,
) -> AlternatingMetrics:
    trainer = AlternatingTrainer(
        network, rng=rng if rng is not None else network.rng, callbacks=callbacks
    )
    return trainer.run(classification, regression, epochs, batch_size)


__all__ = [
    "AlternatingMetrics",
    "AlternatingTrainer",
    "TaskMix",
    "batches_for",
    "task_mix",
    "train_alternating",
]
