"""Shuffle-and-partition training loop with pluggable policies."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.network import Network
from ..core.optimizers import SGD
from ..core.types import Array, LayerGradient, TrainingMetrics
from .clipping import clip_gradients
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss
from .schedules import (
    AGGRESSIVE,
    CONSERVATIVE,
    CONSTANT,
    OPTIMAL,
    STANDARD,
    LearningRateSchedule,
    get_schedule,
)


@dataclass(frozen=True)
class TrainingPolicy:
    """Learning-rate schedule, loss weighting and clipping bound used together."""

    name: str
    schedule: LearningRateSchedule
    loss: Loss
    clip_norm: Optional[float] = None

    @property
    def patience(self) -> Optional[int]:
        return self.schedule.patience


POLICIES: Dict[str, TrainingPolicy] = {
    "standard": TrainingPolicy("standard", STANDARD, LOSS_REGISTRY.get("mse"), clip_norm=3.0),
    "fast": TrainingPolicy("fast", AGGRESSIVE, LOSS_REGISTRY.get("mse")),
    "balanced": TrainingPolicy(
        "balanced", CONSERVATIVE, LOSS_REGISTRY.get("balanced"), clip_norm=2.0
    ),
    "optimal": TrainingPolicy("optimal", OPTIMAL, LOSS_REGISTRY.get("mse"), clip_norm=2.5),
    "constant": TrainingPolicy("constant", CONSTANT, LOSS_REGISTRY.get("mse")),
}


def get_policy(name: str | TrainingPolicy) -> TrainingPolicy:
    if isinstance(name, TrainingPolicy):
        return name
    try:
        return POLICIES[name]
    except KeyError as exc:
        available = ", ".join(sorted(POLICIES))
        raise KeyError(f"Unknown policy {name!r}. Available policies: {available}") from exc


def make_policy(
    name: str,
    *,
    schedule: str | LearningRateSchedule,
    loss: str | Loss = "mse",
    clip_norm: float | None = None,
) -> TrainingPolicy:
    """Assemble a custom policy from registered parts."""

    return TrainingPolicy(name, get_schedule(schedule), LOSS_REGISTRY.get(loss), clip_norm)


def as_matrix(values: Sequence[Array] | Array) -> Array:
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    return arr


def emit_epoch(callbacks: Sequence[object], epoch: int, metrics: Mapping[str, float]) -> None:
    for callback in callbacks:
        if hasattr(callback, "on_epoch"):
            callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
        elif callable(callback):
            callback(epoch, metrics)


def run_batch(
    network: Network,
    optimizer: SGD,
    inputs: Array,
    targets: Array,
    indices: Sequence[int],
    loss: Loss,
    clip_norm: float | None,
) -> Tuple[float, float]:
    """Forward, backward and update over one batch.

    Returns the mean sample loss and the global gradient norm of the
    batch-averaged gradients measured before clipping.
    """

    count = len(indices)
    if count == 0:
        return 0.0, 0.0
    summed: List[Tuple[Array, Array]] = [
        (np.zeros_like(layer.weights), np.zeros_like(layer.biases)) for layer in network.layers
    ]
    total_loss = 0.0
    for idx in indices:
        output, cache = network.forward_with_cache(inputs[idx])
        total_loss += loss(output, targets[idx])
        grads = network.backward(output, targets[idx], cache, positive_boost=loss.positive_boost)
        for slot, grad in zip(summed, grads):
            slot[0][...] += grad.weights
            slot[1][...] += grad.biases

    averaged = [LayerGradient(weights=w / count, biases=b / count) for w, b in summed]
    clipped, norm = clip_gradients(averaged, clip_norm)
    optimizer.step(network.layers, clipped)
    return total_loss / count, norm


class Trainer:
    """Drive one task's training to the epoch budget or an early stop."""

    def __init__(
        self,
        network: Network,
        policy: str | TrainingPolicy = "standard",
        rng: np.random.Generator | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.policy = get_policy(policy)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.callbacks = list(callbacks or [])

    def run(
        self,
        inputs: Sequence[Array] | Array,
        targets: Sequence[Array] | Array,
        epochs: int,
        batch_size: int,
    ) -> TrainingMetrics:
        if len(inputs) != len(targets):
            raise ValueError(f"Got {len(inputs)} inputs but {len(targets)} targets")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {epochs}")

        metrics = TrainingMetrics()
        self.network.metrics = metrics
        n_samples = len(inputs)
        if n_samples == 0:
            return metrics

        x = as_matrix(inputs)
        y = as_matrix(targets)
        self.network.validate(x.shape[1])
        self.network.freeze()

        schedule = self.policy.schedule
        patience = schedule.patience
        optimizer = SGD(self.network.learning_rate)

        for epoch in range(epochs):
            order = self.rng.permutation(n_samples)
            batch_losses: List[float] = []
            batch_norms: List[float] = []
            for start in range(0, n_samples, batch_size):
                batch_loss, norm = run_batch(
                    self.network,
                    optimizer,
                    x,
                    y,
                    order[start : start + batch_size],
                    self.policy.loss,
                    self.policy.clip_norm,
                )
                batch_losses.append(batch_loss)
                batch_norms.append(norm)

            epoch_loss = float(np.mean(batch_losses))
            if not math.isfinite(epoch_loss):
                raise FloatingPointError(f"Non-finite loss {epoch_loss} at epoch {epoch}")
            rate = optimizer.learning_rate
            improved = metrics.update(epoch_loss, float(np.mean(batch_norms)), rate)
            optimizer.learning_rate = schedule.next_rate(epoch, rate, epoch_loss)

            emit_epoch(
                self.callbacks,
                epoch,
                {
                    "loss": epoch_loss,
                    "grad_norm": metrics.gradient_norms[-1],
                    "lr": rate,
                    "best_loss": metrics.best_loss,
                    "improved": float(improved),
                },
            )

            if patience is not None and metrics.patience_counter > patience:
                metrics.stopped_epoch = epoch
                break

        return metrics


__all__ = [
    "POLICIES",
    "Trainer",
    "TrainingPolicy",
    "emit_epoch",
    "get_policy",
    "make_policy",
    "run_batch",
]
