import json

import numpy as np
import pytest

from parkinet.core.errors import EmptyNetworkError, ShapeMismatchError
from parkinet.core.layers import Layer
from parkinet.core.network import Network
from parkinet.core.serialization import (
    load_network,
    network_from_dict,
    network_to_dict,
    save_network,
)


def _network():
    net = Network(0.02, rng=np.random.default_rng(8))
    net.add_layer(4, 3, "relu").add_layer(3, 1, "linear")
    return net


def test_save_and_load_preserves_predictions(tmp_path):
    net = _network()
    path = save_network(net, tmp_path / "model.npz")
    restored = load_network(path)
    x = np.random.default_rng(0).random((5, 4))
    assert np.array_equal(net.predict(x), restored.predict(x))
    assert restored.describe() == net.describe()
    assert restored.learning_rate == pytest.approx(0.02)
    assert load_network(path, learning_rate=0.5).learning_rate == 0.5


def test_dict_form_is_json_friendly():
    data = network_to_dict(_network())
    decoded = json.loads(json.dumps(data))
    restored = network_from_dict(decoded)
    assert [layer.activation.value for layer in restored.layers] == ["relu", "linear"]


def test_from_dict_rejects_bad_shapes():
    data = network_to_dict(_network())
    data["layers"][0]["weights"] = [[0.0] * 4]
    with pytest.raises(ShapeMismatchError):
        network_from_dict(data)
    with pytest.raises(EmptyNetworkError):
        network_from_dict({"layers": []})


def test_layer_dict_roundtrip():
    layer = Layer(2, 2, "tanh", rng=np.random.default_rng(0))
    clone = Layer.from_dict(layer.to_dict())
    assert np.array_equal(clone.weights, layer.weights)
    assert clone.activation is layer.activation
