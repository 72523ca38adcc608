"""Activation functions and their analytic derivatives."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict

import numpy as np

from .types import Array


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_derivative(x: Array) -> Array:
    # Sub-gradient is 0 at exactly 0.
    return (x > 0.0).astype(np.float64)


def sigmoid(x: Array) -> Array:
    """Logistic function evaluated without overflow for large ``|x|``."""

    x = np.asarray(x, dtype=np.float64)
    e = np.exp(-np.abs(x))
    return np.where(x >= 0.0, 1.0 / (1.0 + e), e / (1.0 + e))


def sigmoid_derivative(x: Array) -> Array:
    s = sigmoid(x)
    return s * (1.0 - s)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def tanh_derivative(x: Array) -> Array:
    t = np.tanh(x)
    return 1.0 - t**2


def linear(x: Array) -> Array:
    return np.asarray(x, dtype=np.float64).copy()


def linear_derivative(x: Array) -> Array:
    return np.ones_like(x, dtype=np.float64)


def softmax(x: Array) -> Array:
    """Softmax over the last axis, stabilised by subtracting the maximum."""

    x = np.asarray(x, dtype=np.float64)
    shifted = x - np.max(x, axis=-1, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=-1, keepdims=True)


def softmax_derivative(x: Array) -> Array:
    """Diagonal of the softmax Jacobian.

    Off-diagonal terms are ignored, so this is only exact when each output is
    trained against an independent target.
    """

    s = softmax(x)
    return s * (1.0 - s)


class Activation(str, Enum):
    """Closed set of activation functions supported by :class:`Layer`."""

    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    LINEAR = "linear"
    SOFTMAX = "softmax"

    def activate(self, x: Array) -> Array:
        return _FORWARD[self](np.asarray(x, dtype=np.float64))

    def derivative(self, x: Array) -> Array:
        """Derivative evaluated at the pre-activation ``x``."""

        return _DERIVATIVE[self](np.asarray(x, dtype=np.float64))

    @classmethod
    def get(cls, value: "Activation | str") -> "Activation":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            available = ", ".join(member.value for member in cls)
            raise KeyError(
                f"Unknown activation {value!r}. Available activations: {available}"
            ) from exc


_ALIASES = {"identity": "linear"}

_FORWARD: Dict[Activation, Callable[[Array], Array]] = {
    Activation.RELU: relu,
    Activation.SIGMOID: sigmoid,
    Activation.TANH: tanh,
    Activation.LINEAR: linear,
    Activation.SOFTMAX: softmax,
}

_DERIVATIVE: Dict[Activation, Callable[[Array], Array]] = {
    Activation.RELU: relu_derivative,
    Activation.SIGMOID: sigmoid_derivative,
    Activation.TANH: tanh_derivative,
    Activation.LINEAR: linear_derivative,
    Activation.SOFTMAX: softmax_derivative,
}

__all__ = [
    "Activation",
    "relu",
    "relu_derivative",
    "sigmoid",
    "sigmoid_derivative",
    "tanh",
    "tanh_derivative",
    "linear",
    "linear_derivative",
    "softmax",
    "softmax_derivative",
]
