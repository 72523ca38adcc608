"""Loss registry used by the training loops."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.network import POSITIVE_GRADIENT_BOOST, Network
from ..core.types import Array

LossFn = Callable[[Array, Array], float]

# Predictions are clamped this far away from 0 and 1 before taking logarithms.
BCE_EPSILON = 1e-7


@dataclass(frozen=True)
class Loss:
    """Scalar loss paired with the error-signal boost of its backward pass."""

    name: str
    fn: LossFn
    positive_boost: float = 1.0

    def __call__(self, output: Array, target: Array) -> float:
        return self.fn(output, target)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn, *, positive_boost: float = 1.0) -> None:
        self._registry[name] = Loss(name, fn, positive_boost)

    def get(self, name: str | Loss) -> Loss:
        if isinstance(name, Loss):
            return name
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}") from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


def binary_cross_entropy(output: Array, target: Array, eps: float = BCE_EPSILON) -> float:
    """Mean binary cross-entropy with predictions clamped into ``[eps, 1 - eps]``."""

    output = np.asarray(output, dtype=np.float64).reshape(-1)
    target = np.asarray(target, dtype=np.float64).reshape(-1)
    if output.size == 0:
        return 0.0
    probs = np.clip(output, eps, 1.0 - eps)
    values = -(target * np.log(probs) + (1.0 - target) * np.log(1.0 - probs))
    return float(np.mean(values))


REGISTRY = LossRegistry()
REGISTRY.register("mse", Network.mse_loss)
REGISTRY.register("balanced", Network.balanced_loss, positive_boost=POSITIVE_GRADIENT_BOOST)

__all__ = ["Loss", "LossRegistry", "REGISTRY", "binary_cross_entropy", "BCE_EPSILON"]
