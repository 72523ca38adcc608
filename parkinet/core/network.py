"""Feed-forward network with hand-derived backpropagation."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .activations import Activation
from .errors import EmptyNetworkError, ShapeMismatchError
from .layers import Layer
from .types import Array, LayerCache, LayerGradient, ModelDescription, TrainingMetrics

# Targets above this value denote the positive (minority) class.
POSITIVE_THRESHOLD = 0.5
# A positive sample predicted below this value counts as a missed positive.
UNDERSHOOT_THRESHOLD = 0.3
MISSED_POSITIVE_PENALTY = 2.0
POSITIVE_GRADIENT_BOOST = 1.5


def _as_vector(values: Array | Sequence[float]) -> Array:
    return np.asarray(values, dtype=np.float64).reshape(-1)


class Network:
    """Ordered stack of :class:`Layer` objects.

    Layers are appended during a build phase with :meth:`add_layer`. The first
    training call closes the build phase; the layer sequence is fixed from
    then on.
    """

    def __init__(self, learning_rate: float, rng: np.random.Generator | None = None) -> None:
        if learning_rate < 0:
            raise ValueError(f"learning_rate must be >= 0, got {learning_rate}")
        self.learning_rate = float(learning_rate)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.layers: List[Layer] = []
        self.metrics = TrainingMetrics()
        self._frozen = False

    def __repr__(self) -> str:
        dims = self.describe().layer_dims if self.layers else []
        return f"Network(learning_rate={self.learning_rate}, dims={dims})"

    # ------------------------------------------------------------------
    # Construction

    def add_layer(
        self, input_size: int, output_size: int, activation: Activation | str
    ) -> "Network":
        if self._frozen:
            raise RuntimeError("Cannot add layers once training has started")
        self.layers.append(Layer(input_size, output_size, activation, rng=self.rng))
        return self

    def freeze(self) -> None:
        """Close the build phase."""

        self.validate()
        self._frozen = True

    @property
    def input_size(self) -> int:
        if not self.layers:
            raise EmptyNetworkError("Network has no layers")
        return self.layers[0].input_size

    @property
    def output_size(self) -> int:
        if not self.layers:
            raise EmptyNetworkError("Network has no layers")
        return self.layers[-1].output_size

    def validate(self, input_size: int | None = None) -> None:
        """Fail fast on an empty or inconsistently chained network."""

        if not self.layers:
            raise EmptyNetworkError("Network has no layers")
        for idx in range(1, len(self.layers)):
            prev, layer = self.layers[idx - 1], self.layers[idx]
            if layer.input_size != prev.output_size:
                raise ShapeMismatchError(
                    f"Layer {idx} expects {layer.input_size} inputs but layer {idx - 1} "
                    f"produces {prev.output_size}"
                )
        if input_size is not None and input_size != self.layers[0].input_size:
            raise ShapeMismatchError(
                f"Network expects inputs of size {self.layers[0].input_size}, got {input_size}"
            )

    def describe(self) -> ModelDescription:
        dims = [self.layers[0].input_size] if self.layers else []
        dims.extend(layer.output_size for layer in self.layers)
        return ModelDescription(
            layer_dims=dims,
            activations=[layer.activation.value for layer in self.layers],
        )

    def parameter_count(self) -> int:
        return int(sum(layer.parameter_count() for layer in self.layers))

    # ------------------------------------------------------------------
    # Forward

    def forward(self, inputs: Array | Sequence[float]) -> Array:
        x = _as_vector(inputs)
        self.validate(x.shape[0])
        for layer in self.layers:
            x = layer.forward(x)
        return x

    def forward_with_cache(
        self, inputs: Array | Sequence[float]
    ) -> Tuple[Array, List[LayerCache]]:
        x = _as_vector(inputs)
        self.validate(x.shape[0])
        cache: List[LayerCache] = []
        for layer in self.layers:
            z = layer.pre_activation(x)
            cache.append(LayerCache(inputs=x, pre_activation=z))
            x = layer.activation.activate(z)
        return x, cache

    def predict(self, inputs: Iterable[Array | Sequence[float]]) -> Array:
        outputs = [self.forward(x) for x in inputs]
        if not outputs:
            return np.zeros((0, self.output_size), dtype=np.float64)
        return np.vstack(outputs)

    # ------------------------------------------------------------------
    # Losses

    @staticmethod
    def mse_loss(output: Array, target: Array) -> float:
        output = _as_vector(output)
        target = _as_vector(target)
        if output.shape != target.shape:
            raise ShapeMismatchError(
                f"Output shape {output.shape} does not match target shape {target.shape}"
            )
        if output.size == 0:
            return 0.0
        return float(np.mean((output - target) ** 2))

    @staticmethod
    def balanced_loss(output: Array, target: Array) -> float:
        """MSE doubled for positive targets whose prediction falls below 0.3."""

        output = _as_vector(output)
        target = _as_vector(target)
        base = Network.mse_loss(output, target)
        if target.size and target[0] > POSITIVE_THRESHOLD and output[0] < UNDERSHOOT_THRESHOLD:
            return base * MISSED_POSITIVE_PENALTY
        return base

    # ------------------------------------------------------------------
    # Backward

    def backward(
        self,
        output: Array,
        target: Array,
        cache: Sequence[LayerCache],
        *,
        positive_boost: float = 1.0,
    ) -> List[LayerGradient]:
        """Backpropagate ``output - target`` through every layer.

        The error signal is the MSE gradient without its ``2 / n`` factor.
        ``positive_boost`` scales it for positive targets. Gradients are
        returned in forward order.
        """

        output = _as_vector(output)
        target = _as_vector(target)
        if not self.layers:
            raise EmptyNetworkError("Network has no layers")
        if len(cache) != len(self.layers):
            raise ShapeMismatchError(
                f"Cache holds {len(cache)} entries for a network of {len(self.layers)} layers"
            )
        if output.shape != (self.output_size,) or target.shape != output.shape:
            raise ShapeMismatchError(
                f"Expected output and target of shape ({self.output_size},), got "
                f"{output.shape} and {target.shape}"
            )

        delta = output - target
        if positive_boost != 1.0 and target[0] > POSITIVE_THRESHOLD:
            delta = delta * positive_boost

        gradients: List[LayerGradient] = []
        for idx in reversed(range(len(self.layers))):
            layer = self.layers[idx]
            entry = cache[idx]
            delta = delta * layer.activation.derivative(entry.pre_activation)
            gradients.append(
                LayerGradient(weights=np.outer(delta, entry.inputs), biases=delta.copy())
            )
            if idx > 0:
                delta = layer.weights.T @ delta
        gradients.reverse()
        return gradients

    def backward_balanced(
        self, output: Array, target: Array, cache: Sequence[LayerCache]
    ) -> List[LayerGradient]:
        return self.backward(output, target, cache, positive_boost=POSITIVE_GRADIENT_BOOST)

    # ------------------------------------------------------------------
    # Evaluation and training entry points

    def evaluate(
        self,
        inputs: Sequence[Array],
        targets: Sequence[Array],
        max_samples: int | None = None,
    ) -> float:
        """Mean MSE over the samples, ``0.0`` when there are none."""

        if len(inputs) != len(targets):
            raise ValueError(f"Got {len(inputs)} inputs but {len(targets)} targets")
        count = len(inputs) if max_samples is None else min(len(inputs), int(max_samples))
        if count <= 0:
            return 0.0
        total = 0.0
        for idx in range(count):
            total += self.mse_loss(self.forward(inputs[idx]), targets[idx])
        return total / count

    def train(
        self,
        inputs: Sequence[Array],
        targets: Sequence[Array],
        epochs: int,
        batch_size: int,
        *,
        policy: str = "standard",
        rng: np.random.Generator | None = None,
        callbacks: Sequence[object] = (),
    ) -> TrainingMetrics:
        from ..training.trainer import Trainer

        trainer = Trainer(self, policy, rng=rng if rng is not None else self.rng, callbacks=callbacks)
        return trainer.run(inputs, targets, epochs, batch_size)

    def train_fast(self, inputs, targets, epochs: int, batch_size: int, **kwargs) -> TrainingMetrics:
        return self.train(inputs, targets, epochs, batch_size, policy="fast", **kwargs)

    def train_balanced(self, inputs, targets, epochs: int, batch_size: int, **kwargs) -> TrainingMetrics:
        return self.train(inputs, targets, epochs, batch_size, policy="balanced", **kwargs)

    def train_optimal(self, inputs, targets, epochs: int, batch_size: int, **kwargs) -> TrainingMetrics:
        return self.train(inputs, targets, epochs, batch_size, policy="optimal", **kwargs)


__all__ = [
    "Network",
    "POSITIVE_THRESHOLD",
    "UNDERSHOOT_THRESHOLD",
    "MISSED_POSITIVE_PENALTY",
    "POSITIVE_GRADIENT_BOOST",
]
