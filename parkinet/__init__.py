"""parkinet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import Activation
from .core.errors import EmptyNetworkError, ShapeMismatchError
from .core.network import Network
from .core.serialization import load_network, save_network
from .core.types import TrainingMetrics
from .training.alternating import train_alternating
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "Activation",
    "EmptyNetworkError",
    "Network",
    "ShapeMismatchError",
    "Trainer",
    "TrainingMetrics",
    "activations",
    "load_network",
    "load_preset",
    "presets",
    "run_pipeline",
    "save_network",
    "train_alternating",
    "types",
]
