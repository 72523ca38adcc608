import numpy as np
import pytest

from parkinet.core.errors import ShapeMismatchError
from parkinet.core.network import Network
from parkinet.training.alternating import (
    AlternatingTrainer,
    batches_for,
    task_mix,
    train_alternating,
)


def _network(n_in=6, seed=0):
    net = Network(0.05, rng=np.random.default_rng(seed))
    net.add_layer(n_in, 8, "relu").add_layer(8, 1, "sigmoid")
    return net


def _tasks(n_in=6, seed=0):
    rng = np.random.default_rng(seed)
    cls_x = rng.random((30, n_in))
    cls_y = (cls_x[:, :1] > 0.5).astype(float)
    reg_x = rng.random((40, n_in))
    reg_y = reg_x.mean(axis=1, keepdims=True)
    return (cls_x, cls_y), (reg_x, reg_y)


@pytest.mark.parametrize("total", [1, 7, 10, 100, 333])
def test_task_mix_ratios_sum_to_one(total):
    for epoch in range(total):
        mix = task_mix(epoch, total)
        assert mix.classification_ratio + mix.regression_ratio == pytest.approx(1.0)


def test_task_mix_phases():
    assert task_mix(0, 100).regression_ratio == 0.7
    assert task_mix(29, 100).regression_ratio == 0.7
    assert task_mix(30, 100).classification_ratio == 0.5
    assert task_mix(70, 100).classification_ratio == 0.7
    assert task_mix(0, 0).classification_ratio == 0.3


def test_batches_for_never_zero():
    assert batches_for(5, 0.3, 16) == 1
    assert batches_for(100, 0.5, 10) == 5


def test_alternating_run_records_both_tasks():
    classification, regression = _tasks()
    net = _network()
    epochs_seen = []
    metrics = train_alternating(
        net,
        classification,
        regression,
        epochs=10,
        batch_size=4,
        rng=np.random.default_rng(1),
        callbacks=[lambda epoch, m: epochs_seen.append(epoch)],
    )
    assert metrics.epochs_run == 10
    assert len(metrics.regression_losses) == 10
    assert epochs_seen == list(range(10))
    assert metrics.best_combined_loss == pytest.approx(min(metrics.combined_losses))
    assert metrics.mixes[0].regression_ratio == 0.7
    assert metrics.mixes[-1].classification_ratio == 0.7


def test_alternating_learning_rate_decay():
    classification, regression = _tasks()
    trainer = AlternatingTrainer(_network(), rng=np.random.default_rng(0))
    metrics = trainer.run(classification, regression, epochs=52, batch_size=8)
    assert metrics.learning_rates[50] == pytest.approx(0.05)
    assert metrics.learning_rates[51] == pytest.approx(0.045)


def test_alternating_is_deterministic():
    classification, regression = _tasks()
    results = []
    for _ in range(2):
        metrics = train_alternating(
            _network(seed=5), classification, regression, 5, 4, rng=np.random.default_rng(2)
        )
        results.append(metrics.combined_losses)
    assert results[0] == results[1]


def test_alternating_rejects_mismatched_widths():
    classification, _ = _tasks(n_in=6)
    _, regression = _tasks(n_in=4)
    with pytest.raises(ShapeMismatchError):
        train_alternating(_network(), classification, regression, 2, 4)


def test_alternating_empty_task_scores_zero():
    classification, regression = _tasks()
    empty = (np.zeros((0, 6)), np.zeros((0, 1)))
    metrics = train_alternating(_network(), classification, empty, 3, 4, rng=np.random.default_rng(0))
    assert metrics.regression_losses == [0.0, 0.0, 0.0]
