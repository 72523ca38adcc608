import json
from pathlib import Path

import numpy as np
import pytest

from parkinet.core.serialization import load_network
from parkinet.training import pipelines


def _config(run_dir, **train):
    config = {
        "data": {"name": "synthetic", "options": {"seed": 0, "classification_samples": 40}},
        "model": {"hidden": [6], "activation": "relu", "output_activation": "sigmoid", "lr": 0.05},
        "train": {
            "mode": "single",
            "task": "classification",
            "policy": "balanced",
            "epochs": 3,
            "batch_size": 8,
            "seed": 11,
            "test_split": 0.25,
            "run_dir": str(run_dir),
            "enable_plots": False,
        },
    }
    config["train"].update(train)
    return config


def test_pipeline_produces_artifacts(tmp_path):
    config = _config(tmp_path / "run")
    result = pipelines.run_pipeline(config)
    run_dir = tmp_path / "run"
    for name in (
        "metrics_train.jsonl",
        "metrics_train.csv",
        "summary.json",
        "manifest.json",
        "config.json",
        "evaluation.json",
        "model.npz",
    ):
        assert (run_dir / name).exists(), name
    assert result.epochs == 3
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 11
    assert manifest["dataset"]["type"] == "synthetic"
    assert manifest["model"]["layer_dims"] == [22, 6, 1]
    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert [r["epoch"] for r in records] == [0, 1, 2]
    assert all(r["mode"] == "single" and r["task"] == "classification" for r in records)
    assert all("loss" in r and "lr" in r and isinstance(r["improved"], bool) for r in records)
    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["mode"] == "single"
    assert summary["epochs_run"] == 3
    assert summary["best_loss"] == min(r["loss"] for r in records)
    assert summary["best_epoch"] == [r["loss"] for r in records].index(summary["best_loss"])
    assert summary["stopped_epoch"] is None
    assert summary["final_lr"] == records[-1]["lr"]
    evaluation = json.loads((run_dir / "evaluation.json").read_text())
    assert evaluation["samples"] == 10.0
    assert {"accuracy", "precision", "recall", "f1", "bce", "tp", "tn", "fp", "fn"} <= set(evaluation)
    model = load_network(result.model_path)
    assert model.describe().layer_dims == [22, 6, 1]


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "a"))
    second = pipelines.run_pipeline(_config(tmp_path / "b"))
    assert Path(first.metrics_path).read_bytes() == Path(second.metrics_path).read_bytes()
    assert Path(first.summary_path).read_bytes() == Path(second.summary_path).read_bytes()
    assert first.evaluation == second.evaluation


def test_regression_pipeline_reports_original_units(tmp_path):
    config = _config(tmp_path / "reg", task="regression", policy="optimal", target_scale=100.0)
    config["model"]["output_activation"] = "linear"
    result = pipelines.run_pipeline(config)
    assert result.evaluation["mae_original_units"] == pytest.approx(
        result.evaluation["mae"] * 100.0
    )
    assert "r2" in result.evaluation


def test_alternating_pipeline(tmp_path):
    config = _config(tmp_path / "alt", mode="alternating")
    config["data"]["options"]["shared_features"] = True
    result = pipelines.run_pipeline(config)
    assert result.epochs == 3
    assert "classification/accuracy" in result.evaluation
    assert "regression/mae" in result.evaluation
    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert {"classification_loss", "regression_loss"} <= set(records[0])
    assert records[0]["mode"] == "alternating" and records[0]["task"] == "both"
    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["mode"] == "alternating"
    assert summary["classification"]["final"] == records[-1]["classification_loss"]
    assert summary["regression"]["final"] == records[-1]["regression_loss"]
    assert summary["best_combined_loss"] == pytest.approx(min(r["loss"] for r in records))
    final_ratio = records[-1]["classification_ratio"]
    assert summary["final_mix"]["classification"] == pytest.approx(final_ratio)


def test_explicit_layers_must_match_dataset(tmp_path):
    config = _config(tmp_path / "bad")
    config["model"] = {"layers": [[10, 4, "relu"], [4, 1, "sigmoid"]], "lr": 0.1}
    with pytest.raises(ValueError, match="22 features"):
        pipelines.run_pipeline(config)


def test_build_network_from_layers():
    net = pipelines.build_network(
        {"layers": [[3, 5, "tanh"], [5, 1, "sigmoid"]], "lr": 0.2, "seed": 1}, input_size=3
    )
    assert net.describe().activations == ["tanh", "sigmoid"]
    assert net.learning_rate == 0.2
    again = pipelines.build_network(
        {"layers": [[3, 5, "tanh"], [5, 1, "sigmoid"]], "lr": 0.2, "seed": 1}, input_size=3
    )
    assert np.array_equal(net.layers[0].weights, again.layers[0].weights)


def test_config_hash_is_stable():
    a = {"train": {"seed": 1, "epochs": 2}, "data": {"name": "xor"}}
    b = {"data": {"name": "xor"}, "train": {"epochs": 2, "seed": 1}}
    assert pipelines.config_hash(a) == pipelines.config_hash(b)
    assert len(pipelines.config_hash(a)) == 12
    assert pipelines.config_hash(a) != pipelines.config_hash({"data": {"name": "synthetic"}})


def test_presets_include_builtin_and_file_presets():
    names = set(pipelines.presets())
    assert {
        "xor",
        "synthetic-classification",
        "synthetic-regression",
        "synthetic-alternating",
        "parkinsons-classification",
        "parkinsons-regression",
        "parkinsons-alternating",
        "parkinsons-optimal",
    } <= names
    preset = pipelines.load_preset("parkinsons-optimal")
    assert preset["train"]["policy"] == "optimal"
    with pytest.raises(KeyError):
        pipelines.load_preset("missing")


def test_merge_config_is_deep():
    merged = pipelines.merge_config({"train": {"epochs": 5, "seed": 1}}, {"train": {"epochs": 2}})
    assert merged == {"train": {"epochs": 2, "seed": 1}}


def test_xor_preset_uses_relu_hidden_layer():
    preset = pipelines.load_preset("xor")
    assert preset["model"]["hidden"] == [4]
    assert preset["model"]["activation"] == "relu"
    assert preset["model"]["output_activation"] == "sigmoid"
    assert preset["train"]["epochs"] == 2000
    assert preset["train"]["batch_size"] == 4
