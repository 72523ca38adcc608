"""Model persistence: per-layer weights, biases, activation tags and sizes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np

from .layers import Layer
from .network import Network


def network_to_dict(network: Network) -> Dict[str, Any]:
    return {
        "version": 1,
        "learning_rate": network.learning_rate,
        "layers": [layer.to_dict() for layer in network.layers],
    }


def network_from_dict(
    data: Mapping[str, Any], learning_rate: float | None = None
) -> Network:
    lr = float(data.get("learning_rate", 0.0)) if learning_rate is None else learning_rate
    network = Network(lr)
    network.layers = [Layer.from_dict(entry) for entry in data.get("layers", [])]
    network.validate()
    return network


def save_network(network: Network, path: str | Path) -> str:
    """Write ``network`` to a compressed ``.npz`` archive in layer order."""

    network.validate()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    architecture = {
        "version": 1,
        "learning_rate": network.learning_rate,
        "layers": [
            {
                "input_size": layer.input_size,
                "output_size": layer.output_size,
                "activation": layer.activation.value,
            }
            for layer in network.layers
        ],
    }
    payload: Dict[str, np.ndarray] = {"architecture": np.array(json.dumps(architecture))}
    for idx, layer in enumerate(network.layers):
        payload[f"W{idx}"] = layer.weights
        payload[f"b{idx}"] = layer.biases
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    return str(path)


def load_network(path: str | Path, learning_rate: float | None = None) -> Network:
    with np.load(Path(path), allow_pickle=False) as archive:
        architecture = json.loads(str(archive["architecture"]))
        layers = []
        for idx, spec in enumerate(architecture["layers"]):
            key_w, key_b = f"W{idx}", f"b{idx}"
            if key_w not in archive or key_b not in archive:
                raise KeyError(f"Missing parameters for layer {idx} in {path}")
            layers.append(
                {
                    **spec,
                    "weights": archive[key_w],
                    "biases": archive[key_b],
                }
            )
    return network_from_dict(
        {"learning_rate": architecture.get("learning_rate", 0.0), "layers": layers},
        learning_rate=learning_rate,
    )


__all__ = ["network_to_dict", "network_from_dict", "save_network", "load_network"]
