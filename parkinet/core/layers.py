"""Fully connected layer with He-style uniform initialisation."""

from __future__ import annotations

from typing import Any, Dict, Mapping

import numpy as np

from .activations import Activation
from .errors import ShapeMismatchError
from .types import Array


class Layer:
    """Affine transform followed by an :class:`Activation`.

    ``weights`` has shape ``(output_size, input_size)`` and ``biases`` has shape
    ``(output_size,)``. Each weight is drawn from ``U[-s, s]`` with
    ``s = sqrt(2 / input_size)``; biases start at zero.
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        activation: Activation | str = Activation.RELU,
        rng: np.random.Generator | None = None,
    ) -> None:
        input_size = int(input_size)
        output_size = int(output_size)
        if input_size < 1 or output_size < 1:
            raise ValueError(
                f"Layer sizes must be >= 1, got input_size={input_size}, "
                f"output_size={output_size}"
            )
        rng = rng if rng is not None else np.random.default_rng()
        scale = np.sqrt(2.0 / input_size)
        self.input_size = input_size
        self.output_size = output_size
        self.activation = Activation.get(activation)
        self.weights: Array = rng.uniform(-scale, scale, size=(output_size, input_size))
        self.biases: Array = np.zeros(output_size, dtype=np.float64)

    def __repr__(self) -> str:
        return (
            f"Layer(input_size={self.input_size}, output_size={self.output_size}, "
            f"activation={self.activation.value!r})"
        )

    def pre_activation(self, inputs: Array) -> Array:
        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.shape != (self.input_size,):
            raise ShapeMismatchError(
                f"Layer expects input of shape ({self.input_size},), got {inputs.shape}"
            )
        return self.weights @ inputs + self.biases

    def forward(self, inputs: Array) -> Array:
        return self.activation.activate(self.pre_activation(inputs))

    def parameter_count(self) -> int:
        return int(self.weights.size + self.biases.size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_size": self.input_size,
            "output_size": self.output_size,
            "activation": self.activation.value,
            "weights": self.weights.tolist(),
            "biases": self.biases.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Layer":
        layer = cls(int(data["input_size"]), int(data["output_size"]), data["activation"])
        weights = np.asarray(data["weights"], dtype=np.float64)
        biases = np.asarray(data["biases"], dtype=np.float64).reshape(-1)
        if weights.shape != (layer.output_size, layer.input_size):
            raise ShapeMismatchError(
                f"Stored weights have shape {weights.shape}, expected "
                f"{(layer.output_size, layer.input_size)}"
            )
        if biases.shape != (layer.output_size,):
            raise ShapeMismatchError(
                f"Stored biases have shape {biases.shape}, expected ({layer.output_size},)"
            )
        layer.weights = weights
        layer.biases = biases
        return layer


__all__ = ["Layer"]
