"""Global-norm gradient clipping."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from ..core.types import LayerGradient


def global_norm(gradients: Sequence[LayerGradient]) -> float:
    """Combined L2 norm over every weight and bias gradient."""

    total = 0.0
    for grad in gradients:
        total += float(np.sum(np.square(grad.weights)))
        total += float(np.sum(np.square(grad.biases)))
    return math.sqrt(total)


def clip_gradients(
    gradients: Sequence[LayerGradient], max_norm: float | None
) -> Tuple[List[LayerGradient], float]:
    """Rescale ``gradients`` so their global norm does not exceed ``max_norm``.

    Returns the (possibly rescaled) gradients and the norm measured before
    clipping. Gradients already within bound are returned untouched.
    """

    norm = global_norm(gradients)
    if max_norm is None:
        return list(gradients), norm
    if max_norm <= 0:
        raise ValueError(f"max_norm must be > 0, got {max_norm}")
    if norm <= max_norm:
        return list(gradients), norm
    scale = max_norm / norm
    return [grad.scaled(scale) for grad in gradients], norm


__all__ = ["global_norm", "clip_gradients"]
