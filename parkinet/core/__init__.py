"""Core numerical primitives for parkinet."""

from . import activations, errors, layers, network, optimizers, serialization, types

__all__ = ["activations", "errors", "layers", "network", "optimizers", "serialization", "types"]
