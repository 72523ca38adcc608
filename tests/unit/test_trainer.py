import numpy as np
import pytest

from parkinet.core.network import Network
from parkinet.training.schedules import CONSERVATIVE, OPTIMAL, trace
from parkinet.training.trainer import POLICIES, Trainer, get_policy, make_policy


XOR_INPUTS = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
XOR_TARGETS = np.array([[0.0], [1.0], [1.0], [0.0]])


def _small_network(lr=0.1, seed=0, n_in=4):
    net = Network(lr, rng=np.random.default_rng(seed))
    net.add_layer(n_in, 8, "relu").add_layer(8, 1, "sigmoid")
    return net


def test_xor_converges():
    net = Network(1.0, rng=np.random.default_rng(0))
    net.add_layer(2, 4, "relu").add_layer(4, 1, "sigmoid")
    # Fixed symmetry-breaking start so the run does not depend on the generator stream.
    net.layers[0].weights = np.array([[1.0, -1.0], [-1.0, 1.0], [0.5, 0.5], [-0.5, -0.5]])
    net.layers[1].weights = np.array([[0.1, 0.1, -0.1, 0.1]])
    net.train(XOR_INPUTS, XOR_TARGETS, epochs=2000, batch_size=4, policy="constant")
    assert net.evaluate(XOR_INPUTS, XOR_TARGETS) < 0.05
    predictions = net.predict(XOR_INPUTS)
    assert np.array_equal(predictions > 0.5, XOR_TARGETS > 0.5)


def test_early_stopping_after_patience():
    net = _small_network(lr=0.0)
    inputs = np.tile([0.2, 0.4, 0.6, 0.8], (5, 1))
    targets = np.ones((5, 1))
    metrics = net.train(inputs, targets, epochs=200, batch_size=2, policy="fast")
    patience = POLICIES["fast"].patience
    assert len(metrics.losses) == patience + 2
    assert metrics.stopped_epoch == patience + 1
    assert metrics.best_loss == metrics.losses[0]
    assert metrics.best_epoch == 0


def test_empty_dataset_is_a_noop():
    net = _small_network()
    before = [layer.weights.copy() for layer in net.layers]
    metrics = net.train([], [], epochs=10, batch_size=4)
    assert metrics.losses == []
    assert metrics.epochs_run == 0
    for layer, weights in zip(net.layers, before):
        assert np.array_equal(layer.weights, weights)


def test_invalid_arguments():
    net = _small_network()
    x = np.zeros((3, 4))
    with pytest.raises(ValueError):
        net.train(x, np.zeros((2, 1)), epochs=1, batch_size=1)
    with pytest.raises(ValueError):
        net.train(x, np.zeros((3, 1)), epochs=1, batch_size=0)
    with pytest.raises(ValueError):
        net.train(x, np.zeros((3, 1)), epochs=-1, batch_size=1)
    with pytest.raises(KeyError):
        net.train(x, np.zeros((3, 1)), epochs=1, batch_size=1, policy="warp")


def test_training_is_deterministic_for_a_seed():
    data_rng = np.random.default_rng(11)
    x = data_rng.random((20, 4))
    y = (x.sum(axis=1, keepdims=True) > 2.0).astype(float)
    runs = []
    for _ in range(2):
        net = _small_network(seed=3)
        metrics = Trainer(net, "balanced", rng=np.random.default_rng(9)).run(x, y, 15, 4)
        runs.append((metrics.losses, [layer.weights.copy() for layer in net.layers]))
    assert runs[0][0] == runs[1][0]
    for a, b in zip(runs[0][1], runs[1][1]):
        assert np.array_equal(a, b)


def test_metrics_record_rate_used_each_epoch():
    x = np.random.default_rng(0).random((8, 4))
    y = np.ones((8, 1))
    net = _small_network(lr=0.1)
    metrics = net.train_fast(x, y, epochs=12, batch_size=4)
    assert metrics.learning_rates[:11] == [0.1] * 11
    assert metrics.learning_rates[11] == pytest.approx(0.095)
    assert len(metrics.gradient_norms) == len(metrics.losses) == 12
    assert net.metrics is metrics


def test_callbacks_receive_epoch_metrics():
    seen = []

    class Recorder:
        def on_epoch(self, epoch, metrics):
            seen.append((epoch, dict(metrics)))

    plain = []
    x = np.random.default_rng(0).random((6, 4))
    y = np.zeros((6, 1))
    net = _small_network()
    net.train(
        x,
        y,
        epochs=3,
        batch_size=3,
        policy="optimal",
        callbacks=[Recorder(), lambda epoch, metrics: plain.append(epoch)],
    )
    assert [epoch for epoch, _ in seen] == [0, 1, 2]
    assert plain == [0, 1, 2]
    assert {"loss", "grad_norm", "lr", "best_loss", "improved"} <= set(seen[0][1])


def test_policy_registry():
    assert get_policy("balanced").loss.name == "balanced"
    assert get_policy("balanced").clip_norm == 2.0
    assert get_policy("optimal").clip_norm == 2.5
    assert get_policy("fast").clip_norm is None
    custom = make_policy("custom", schedule="standard", loss="balanced", clip_norm=1.0)
    assert custom.patience == 100
    assert get_policy(custom) is custom


@pytest.mark.parametrize(
    "method, schedule, epochs",
    [("train_balanced", CONSERVATIVE, 32), ("train_optimal", OPTIMAL, 23)],
)
def test_train_conveniences_follow_policy_schedule(method, schedule, epochs):
    x = np.random.default_rng(1).random((4, 4))
    y = np.array([[1.0], [0.0], [1.0], [1.0]])
    net = _small_network(lr=0.05)
    metrics = getattr(net, method)(x, y, epochs=epochs, batch_size=4)
    assert metrics.learning_rates == trace(schedule, 0.05, epochs)
    assert metrics.learning_rates[-1] < 0.05
    assert net.metrics is metrics
