import numpy as np
import pytest

from parkinet.data.parkinsons import SHARED_VOICE_FEATURES
from parkinet.data.registry import TaskData, available_datasets, get_dataset
from parkinet.data.utils import class_distribution, minmax_normalize, shuffle_pairs, split_task


def test_minmax_leaves_constant_columns():
    data = np.array([[1.0, 5.0, 2.0], [3.0, 5.0, 4.0], [2.0, 5.0, 3.0]])
    scaled, mins, maxs = minmax_normalize(data)
    assert np.allclose(scaled[:, 0], [0.0, 1.0, 0.5])
    assert np.array_equal(scaled[:, 1], data[:, 1])
    assert np.array_equal(mins, [1.0, 5.0, 2.0])
    assert np.array_equal(maxs, [3.0, 5.0, 4.0])


def test_shuffle_pairs_keeps_alignment():
    x = np.arange(10, dtype=float).reshape(-1, 1)
    y = x * 2
    sx, sy = shuffle_pairs(x, y, np.random.default_rng(0))
    assert np.array_equal(sy, sx * 2)
    assert sorted(sx.ravel()) == list(x.ravel())


def test_class_distribution_flags_imbalance():
    dist = class_distribution(np.array([[1.0]] * 9 + [[0.0]] * 3))
    assert (dist.positive, dist.negative) == (9, 3)
    assert dist.positive_ratio == pytest.approx(0.75)
    assert dist.is_imbalanced
    balanced = class_distribution(np.array([[1.0]] * 20 + [[0.0]] * 20))
    assert not balanced.is_imbalanced
    assert class_distribution(np.zeros((0, 1))).total == 0


def test_split_task_is_stratified_and_deterministic():
    targets = np.array([[1.0]] * 15 + [[0.0]] * 5)
    task = TaskData(inputs=np.arange(20.0).reshape(-1, 1), targets=targets, task_type="binary")
    train_a, test_a = split_task(task, 0.2, seed=3)
    train_b, test_b = split_task(task, 0.2, seed=3)
    assert len(train_a) == 16 and len(test_a) == 4
    assert np.array_equal(test_a.inputs, test_b.inputs)
    assert class_distribution(test_a.targets).negative == 1
    full, empty = split_task(task, 0.0, seed=0)
    assert len(full) == 20 and len(empty) == 0


def test_task_data_validation():
    with pytest.raises(ValueError):
        TaskData(inputs=np.zeros((3, 2)), targets=np.zeros((2, 1)), task_type="binary")
    with pytest.raises(ValueError):
        TaskData(inputs=np.zeros((3, 2)), targets=np.zeros((3, 1)), task_type="ranking")


def test_registry_lists_builtin_datasets():
    assert {"parkinsons", "synthetic", "xor"} <= set(available_datasets())
    with pytest.raises(KeyError):
        get_dataset("iris")


def test_parkinsons_fixture_tasks():
    spec = get_dataset("parkinsons")
    cls = spec.task("classification")
    reg = spec.task("regression")
    assert cls.n_features == 22
    assert "status" not in cls.feature_names and "name" not in cls.feature_names
    assert set(np.unique(cls.targets)) == {0.0, 1.0}
    assert reg.n_features == 16
    assert reg.feature_names[0] == "Jitter(%)"
    assert reg.target_scale == 100.0
    assert np.all((reg.targets > 0) & (reg.targets < 1))
    for task in (cls, reg):
        assert task.inputs.min() >= 0.0 and task.inputs.max() <= 1.0


def test_parkinsons_shared_features_align_widths():
    spec = get_dataset("parkinsons", shared_features=True)
    cls = spec.task("classification")
    reg = spec.task("regression")
    assert cls.n_features == reg.n_features == len(SHARED_VOICE_FEATURES)
    assert cls.feature_names == reg.feature_names


def test_parkinsons_drops_unparsable_rows(tmp_path):
    header = "subject#,age,sex,test_time,motor_UPDRS,total_UPDRS," + ",".join(
        reg for _, reg in SHARED_VOICE_FEATURES
    )
    rows = [
        "1,70,0,1.0,20.0,30.0," + ",".join(["0.5"] * 16),
        "1,70,0,2.0,25.0,31.0," + ",".join(["0.7"] * 16),
        "1,70,0,3.0,oops,31.0," + ",".join(["0.6"] * 16),
    ]
    path = tmp_path / "updrs.csv"
    path.write_text("\n".join([header, *rows]) + "\n")
    with pytest.warns(RuntimeWarning, match="Dropped 1 row"):
        spec = get_dataset("parkinsons", regression_csv=path)
    reg = spec.task("regression")
    assert len(reg) == 2
    assert np.allclose(reg.targets.ravel(), [0.20, 0.25])


def test_synthetic_dataset_shapes_and_determinism():
    spec = get_dataset("synthetic", seed=4)
    again = get_dataset("synthetic", seed=4)
    cls = spec.task("classification")
    assert cls.inputs.shape == (195, 22)
    assert 0.6 < float(cls.targets.mean()) < 0.9
    assert spec.task("regression").inputs.shape == (400, 16)
    assert np.array_equal(cls.inputs, again.task("classification").inputs)
    shared = get_dataset("synthetic", shared_features=True)
    assert shared.task("classification").n_features == 16


def test_xor_dataset():
    task = get_dataset("xor").task("classification")
    assert task.targets.ravel().tolist() == [0.0, 1.0, 1.0, 0.0]
    with pytest.raises(KeyError):
        get_dataset("xor").task("regression")
