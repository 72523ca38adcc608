"""Pipeline assembly: dataset, network, training loop and run artifacts."""

from __future__ import annotations

import hashlib
import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.network import Network
from ..core.serialization import save_network
from ..core.types import RunResult, TrainingMetrics
from ..data import registry
from ..data.registry import TaskData
from ..data.utils import class_distribution, split_task
from ..reporting.artifacts import write_manifest
from ..reporting.console import (
    ProgressPrinter,
    print_class_distribution,
    print_evaluation,
    print_startup_summary,
    print_training_report,
)
from ..reporting.metrics import CsvSink, JsonlSink, RunContext
from ..reporting.plots import PlotAdapter
from ..reporting.summary import summarize_alternating, summarize_training, write_summary
from .alternating import AlternatingMetrics, AlternatingTrainer
from .metrics import compute_metrics, confusion_counts, default_metrics
from .trainer import Trainer

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor": {
        "data": {"name": "xor", "options": {}},
        "model": {
            "hidden": [4],
            "activation": "relu",
            "output_activation": "sigmoid",
            "lr": 1.0,
            "seed": 1,
        },
        "train": {
            "mode": "single",
            "task": "classification",
            "policy": "constant",
            "epochs": 2000,
            "batch_size": 4,
            "seed": 0,
            "test_split": 0.0,
            "run_dir": "runs/xor",
            "progress_every": 500,
            "enable_plots": False,
        },
    },
    "synthetic-classification": {
        "data": {"name": "synthetic", "options": {"seed": 0}},
        "model": {
            "hidden": [64, 32, 16],
            "activation": "relu",
            "output_activation": "sigmoid",
            "lr": 0.015,
        },
        "train": {
            "mode": "single",
            "task": "classification",
            "policy": "balanced",
            "epochs": 60,
            "batch_size": 16,
            "seed": 42,
            "test_split": 0.2,
            "run_dir": "runs/synthetic-classification",
            "progress_every": 10,
            "enable_plots": False,
        },
    },
    "synthetic-regression": {
        "data": {"name": "synthetic", "options": {"seed": 0}},
        "model": {
            "hidden": [128, 64, 32],
            "activation": "relu",
            "output_activation": "linear",
            "lr": 0.008,
        },
        "train": {
            "mode": "single",
            "task": "regression",
            "policy": "optimal",
            "epochs": 40,
            "batch_size": 64,
            "seed": 42,
            "test_split": 0.2,
            "run_dir": "runs/synthetic-regression",
            "progress_every": 10,
            "enable_plots": False,
        },
    },
    "synthetic-alternating": {
        "data": {"name": "synthetic", "options": {"seed": 0, "shared_features": True}},
        "model": {
            "hidden": [32, 16],
            "activation": "relu",
            "output_activation": "sigmoid",
            "lr": 0.01,
        },
        "train": {
            "mode": "alternating",
            "epochs": 60,
            "batch_size": 16,
            "seed": 7,
            "test_split": 0.2,
            "run_dir": "runs/synthetic-alternating",
            "progress_every": 10,
            "enable_plots": False,
        },
    },
    "parkinsons-classification": {
        "data": {"name": "parkinsons", "options": {}},
        "model": {
            "hidden": [64, 32, 16],
            "activation": "relu",
            "output_activation": "sigmoid",
            "lr": 0.015,
        },
        "train": {
            "mode": "single",
            "task": "classification",
            "policy": "balanced",
            "epochs": 200,
            "batch_size": 16,
            "seed": 42,
            "test_split": 0.2,
            "run_dir": "runs/parkinsons-classification",
            "progress_every": 20,
            "enable_plots": False,
        },
    },
    "parkinsons-regression": {
        "data": {"name": "parkinsons", "options": {"target_scale": 100.0}},
        "model": {
            "hidden": [128, 64, 32],
            "activation": "relu",
            "output_activation": "linear",
            "lr": 0.008,
        },
        "train": {
            "mode": "single",
            "task": "regression",
            "policy": "balanced",
            "epochs": 150,
            "batch_size": 64,
            "seed": 42,
            "test_split": 0.2,
            "run_dir": "runs/parkinsons-regression",
            "progress_every": 15,
            "eval_max_samples": 1000,
            "enable_plots": False,
        },
    },
    "parkinsons-alternating": {
        "data": {"name": "parkinsons", "options": {"shared_features": True}},
        "model": {
            "hidden": [64, 32, 16],
            "activation": "relu",
            "output_activation": "sigmoid",
            "lr": 0.01,
        },
        "train": {
            "mode": "alternating",
            "epochs": 150,
            "batch_size": 16,
            "seed": 42,
            "test_split": 0.2,
            "run_dir": "runs/parkinsons-alternating",
            "progress_every": 15,
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = {"data", "model", "train"}


def _normalise(value):
    if isinstance(value, Mapping):
        return {str(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value


def config_hash(config: Mapping[str, object]) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(_normalise(config), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_presets = _file_presets()
    if name in file_presets:
        return file_presets[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def merge_config(base: Mapping[str, object], override: Mapping[str, object]) -> dict:
    """Deep-merge ``override`` into a copy of ``base``."""

    merged = dict(deepcopy(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = deepcopy(value)
    return merged


# ----------------------------------------------------------------------
# Model construction


def _layer_plan(
    model_cfg: Mapping[str, object], input_size: int, output_size: int
) -> List[Tuple[int, int, str]]:
    if "d_in" in model_cfg and int(model_cfg["d_in"]) != input_size:
        raise ValueError(
            f"Configured d_in={model_cfg['d_in']} but the dataset has {input_size} features"
        )
    if "layers" in model_cfg:
        plan = [(int(i), int(o), str(act)) for i, o, act in model_cfg["layers"]]  # type: ignore[misc]
        if not plan:
            raise ValueError("model.layers must not be empty")
        if plan[0][0] != input_size:
            raise ValueError(
                f"First layer expects {plan[0][0]} inputs but the dataset has {input_size} features"
            )
        if plan[-1][1] != output_size:
            raise ValueError(
                f"Last layer produces {plan[-1][1]} outputs but targets have {output_size}"
            )
        return plan

    hidden = [int(h) for h in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
    activation = str(model_cfg.get("activation", "relu"))
    output_activation = str(model_cfg.get("output_activation", "sigmoid"))
    dims = [input_size, *hidden, output_size]
    acts = [activation] * len(hidden) + [output_activation]
    return [(dims[i], dims[i + 1], acts[i]) for i in range(len(dims) - 1)]


def build_network(
    model_cfg: Mapping[str, object], input_size: int, output_size: int = 1, seed: int = 0
) -> Network:
    """Create a :class:`Network` from the ``model`` section of a config."""

    model_seed = int(model_cfg.get("seed", seed))  # type: ignore[arg-type]
    network = Network(
        float(model_cfg.get("lr", 0.01)),  # type: ignore[arg-type]
        rng=np.random.default_rng(model_seed),
    )
    for in_size, out_size, activation in _layer_plan(model_cfg, input_size, output_size):
        network.add_layer(in_size, out_size, activation)
    network.validate(input_size)
    return network


# ----------------------------------------------------------------------
# Evaluation


def evaluate_task(
    network: Network,
    task: TaskData,
    *,
    target_scale: float | None = None,
    max_samples: int | None = None,
) -> Dict[str, float]:
    """Score ``network`` on ``task`` with the task type's default metrics."""

    data = task
    if max_samples is not None and len(task) > max_samples:
        data = task.subset(np.arange(int(max_samples)))
    predictions = network.predict(data.inputs)
    targets = data.targets
    results: Dict[str, float] = {"samples": float(len(data))}
    results.update(
        compute_metrics(
            default_metrics(data.task_type), predictions, targets, task_type=data.task_type
        )
    )
    if data.task_type == "binary":
        counts = confusion_counts(predictions, targets).as_dict()
        results.update({key: float(value) for key, value in counts.items()})
    else:
        scale = float(target_scale if target_scale is not None else data.target_scale)
        results["mae_original_units"] = results["mae"] * scale
    return results


# ----------------------------------------------------------------------
# Runs


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    mode = str(train_cfg.get("mode", "single"))
    if mode not in {"single", "alternating"}:
        raise ValueError(f"Unknown training mode: {mode}")

    seed = int(train_cfg.get("seed", 0))
    epochs = int(train_cfg.get("epochs", 1))
    batch_size = int(train_cfg.get("batch_size", 16))
    test_split = float(train_cfg.get("test_split", 0.2))
    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))

    run_dir = _resolve_run_dir(train_cfg, dataset.name, mode)
    run_dir.mkdir(parents=True, exist_ok=True)

    task_label = str(train_cfg.get("task", "classification")) if mode == "single" else "both"
    context = RunContext(mode=mode, task=task_label, seed=seed)
    jsonl = JsonlSink(run_dir / "metrics_train.jsonl", context)
    csv_sink = CsvSink(run_dir / "metrics_train.csv", context)
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    callbacks: List[object] = [jsonl, csv_sink, plots]
    progress_every = int(train_cfg.get("progress_every", 0))
    if progress_every > 0:
        callbacks.append(ProgressPrinter(epochs, every=progress_every, label=mode))

    rng = np.random.default_rng(seed)
    if mode == "single":
        network, metrics, evaluation = _train_single(
            dataset, model_cfg, train_cfg, callbacks, rng, seed, epochs, batch_size, test_split
        )
    else:
        network, metrics, evaluation = _train_alternating(
            dataset, model_cfg, train_cfg, callbacks, rng, seed, epochs, batch_size, test_split
        )
    plots.close()
    print_evaluation(evaluation)

    description = network.describe()
    safe_config = json.loads(json.dumps(_normalise(config)))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        model={
            "layer_dims": description.layer_dims,
            "activations": description.activations,
            "parameters": network.parameter_count(),
            "config_hash": config_hash(safe_config),
        },
    )
    tail = int(train_cfg.get("summary_tail", 32))
    if isinstance(metrics, TrainingMetrics):
        summary = summarize_training(metrics, tail=tail)
    else:
        summary = summarize_alternating(metrics, tail=tail)
    summary_path = write_summary(summary, run_dir / "summary.json")
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    (run_dir / "evaluation.json").write_text(json.dumps(evaluation, indent=2, sort_keys=True))
    model_path = save_network(network, run_dir / "model.npz")

    return RunResult(
        epochs=metrics.epochs_run,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=str(summary_path),
        model_path=model_path,
        evaluation=evaluation,
    )


def _train_single(
    dataset: registry.DatasetSpec,
    model_cfg: Mapping[str, object],
    train_cfg: Mapping[str, object],
    callbacks: Sequence[object],
    rng: np.random.Generator,
    seed: int,
    epochs: int,
    batch_size: int,
    test_split: float,
) -> Tuple[Network, TrainingMetrics, Dict[str, float]]:
    task_name = str(train_cfg.get("task", "classification"))
    task = dataset.task(task_name)
    train_part, test_part = split_task(task, test_split, seed)
    network = build_network(model_cfg, task.n_features, task.n_outputs, seed)
    policy = str(train_cfg.get("policy", "standard"))

    description = network.describe()
    print_startup_summary(
        dataset_name=dataset.name,
        task=task_name,
        dims=description.layer_dims,
        activations=description.activations,
        policy=policy,
        learning_rate=network.learning_rate,
        epochs=epochs,
        batch_size=batch_size,
        param_count=network.parameter_count(),
    )
    if task.task_type == "binary":
        print_class_distribution(class_distribution(train_part.targets), label=task_name)

    trainer = Trainer(network, policy, rng=rng, callbacks=callbacks)
    metrics: TrainingMetrics = trainer.run(
        train_part.inputs, train_part.targets, epochs, batch_size
    )
    print_training_report(metrics)

    eval_part = test_part if len(test_part) else train_part
    max_samples = train_cfg.get("eval_max_samples")
    evaluation = evaluate_task(
        network,
        eval_part,
        target_scale=_target_scale(train_cfg),
        max_samples=int(max_samples) if max_samples is not None else None,  # type: ignore[arg-type]
    )
    evaluation["best_loss"] = float(metrics.best_loss) if metrics.losses else 0.0
    return network, metrics, evaluation


def _train_alternating(
    dataset: registry.DatasetSpec,
    model_cfg: Mapping[str, object],
    train_cfg: Mapping[str, object],
    callbacks: Sequence[object],
    rng: np.random.Generator,
    seed: int,
    epochs: int,
    batch_size: int,
    test_split: float,
) -> Tuple[Network, AlternatingMetrics, Dict[str, float]]:
    classification = dataset.task("classification")
    regression = dataset.task("regression")
    cls_train, cls_test = split_task(classification, test_split, seed)
    reg_train, reg_test = split_task(regression, test_split, seed)
    network = build_network(model_cfg, classification.n_features, 1, seed)

    description = network.describe()
    print_startup_summary(
        dataset_name=dataset.name,
        task="classification + regression",
        dims=description.layer_dims,
        activations=description.activations,
        policy="alternating",
        learning_rate=network.learning_rate,
        epochs=epochs,
        batch_size=batch_size,
        param_count=network.parameter_count(),
    )
    print_class_distribution(class_distribution(cls_train.targets))

    trainer = AlternatingTrainer(
        network,
        rng=rng,
        schedule=str(train_cfg.get("schedule", "alternating")),
        clip_norm=train_cfg.get("clip_norm", 3.0),  # type: ignore[arg-type]
        callbacks=callbacks,
    )
    metrics: AlternatingMetrics = trainer.run(
        (cls_train.inputs, cls_train.targets),
        (reg_train.inputs, reg_train.targets),
        epochs,
        batch_size,
    )

    evaluation: Dict[str, float] = {}
    for prefix, train_part, test_part in (
        ("classification", cls_train, cls_test),
        ("regression", reg_train, reg_test),
    ):
        scores = evaluate_task(
            network,
            test_part if len(test_part) else train_part,
            target_scale=_target_scale(train_cfg) if prefix == "regression" else None,
        )
        evaluation.update({f"{prefix}/{key}": value for key, value in scores.items()})
    evaluation["best_combined_loss"] = (
        float(metrics.best_combined_loss) if metrics.epochs_run else 0.0
    )
    return network, metrics, evaluation


def _target_scale(train_cfg: Mapping[str, object]) -> float | None:
    value = train_cfg.get("target_scale")
    return float(value) if value is not None else None  # type: ignore[arg-type]


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, mode: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / mode


__all__ = [
    "build_network",
    "config_hash",
    "evaluate_task",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
]
