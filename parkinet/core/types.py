"""Core typing contracts for parkinet."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class LayerCache:
    """Values recorded for one layer during a cached forward pass.

    Attributes
    ----------
    inputs:
        The activation that fed into the layer.
    pre_activation:
        ``z = W @ inputs + b``, the argument later handed to the activation
        derivative during the backward pass.
    """

    inputs: Array
    pre_activation: Array


@dataclass(frozen=True)
class LayerGradient:
    """Weight and bias gradients of a single layer."""

    weights: Array
    biases: Array

    def scaled(self, factor: float) -> "LayerGradient":
        return LayerGradient(weights=self.weights * factor, biases=self.biases * factor)


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_dims: List[int]
    activations: List[str]


@dataclass
class TrainingMetrics:
    """Append-only log of a single training run.

    ``patience_counter`` counts the epochs since ``best_loss`` last improved.
    A fresh instance is created for every run.
    """

    losses: List[float] = field(default_factory=list)
    gradient_norms: List[float] = field(default_factory=list)
    learning_rates: List[float] = field(default_factory=list)
    best_loss: float = math.inf
    patience_counter: int = 0
    stopped_epoch: Optional[int] = None

    def update(self, loss: float, grad_norm: float, lr: float) -> bool:
        """Record one epoch and return whether ``loss`` beat the best so far."""

        self.losses.append(float(loss))
        self.gradient_norms.append(float(grad_norm))
        self.learning_rates.append(float(lr))
        improved = loss < self.best_loss
        if improved:
            self.best_loss = float(loss)
            self.patience_counter = 0
        else:
            self.patience_counter += 1
        return improved

    @property
    def epochs_run(self) -> int:
        return len(self.losses)

    @property
    def best_epoch(self) -> Optional[int]:
        if not self.losses:
            return None
        return int(np.argmin(self.losses))

    def improvement(self) -> float:
        """Relative drop from the first epoch loss to ``best_loss``, in percent."""

        if not self.losses or self.losses[0] == 0.0:
            return 0.0
        return (self.losses[0] - self.best_loss) / self.losses[0] * 100.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "losses": list(self.losses),
            "gradient_norms": list(self.gradient_norms),
            "learning_rates": list(self.learning_rates),
            "best_loss": self.best_loss,
            "best_epoch": self.best_epoch,
            "patience_counter": self.patience_counter,
            "stopped_epoch": self.stopped_epoch,
        }


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`parkinet.training.pipelines.run_pipeline`."""

    epochs: int
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    model_path: str = ""
    evaluation: Dict[str, float] = field(default_factory=dict)
