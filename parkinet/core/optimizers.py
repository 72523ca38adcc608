"""Parameter update rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .layers import Layer
from .types import Array, LayerGradient


@dataclass
class SGD:
    """Plain stochastic gradient descent.

    ``learning_rate`` is the only state; schedules adjust it from the outside
    between epochs.
    """

    learning_rate: float

    def update_weights(self, weights: Array, gradients: Array) -> Array:
        return weights - self.learning_rate * gradients

    def update_biases(self, biases: Array, gradients: Array) -> Array:
        return biases - self.learning_rate * gradients

    def step(self, layers: Sequence[Layer], gradients: Sequence[LayerGradient]) -> None:
        if len(layers) != len(gradients):
            raise ValueError(
                f"Got {len(gradients)} gradients for a network of {len(layers)} layers"
            )
        for layer, grad in zip(layers, gradients):
            layer.weights = self.update_weights(layer.weights, grad.weights)
            layer.biases = self.update_biases(layer.biases, grad.biases)


__all__ = ["SGD"]
