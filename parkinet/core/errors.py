"""Exceptions raised by the training engine."""

from __future__ import annotations


class ShapeMismatchError(ValueError):
    """An input or a chained layer disagrees with the expected dimensionality."""


class EmptyNetworkError(ValueError):
    """A forward or backward pass was requested on a network without layers."""


__all__ = ["ShapeMismatchError", "EmptyNetworkError"]
