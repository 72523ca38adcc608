"""Command line entry point for parkinet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from parkinet.training import pipelines


def _format_result(result, run_id: str | None = None) -> str:
    payload = {
        "epochs": result.epochs,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "model": result.model_path,
        "evaluation": result.evaluation,
    }
    if result.summary_path:
        payload["summary"] = result.summary_path
    if run_id is not None:
        payload["run_id"] = run_id
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="parkinsons-classification",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--enable-plots", action="store_true", help="Write loss.png")
    parser.add_argument("--seed", type=int, help="Seed used for splits, init and training")
    parser.add_argument("--epochs", type=int, help="Override the epoch budget")
    parser.add_argument("--run-dir", type=Path, help="Directory receiving run artifacts")
    parser.add_argument(
        "--classification-csv", help="Path to parkinsons.data (diagnosis task)"
    )
    parser.add_argument(
        "--regression-csv", help="Path to parkinsons_updrs.data (telemonitoring task)"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))
    config_source = "preset"

    if args.config:
        override = pipelines.read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
            config_source = "config"
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)

    if args.classification_csv or args.regression_csv:
        data_cfg = config.setdefault("data", {})
        if data_cfg.get("name") != "parkinsons":
            raise SystemExit("--classification-csv/--regression-csv require a parkinsons preset")
        opts = data_cfg.setdefault("options", {})
        if args.classification_csv:
            opts["classification_csv"] = args.classification_csv
        if args.regression_csv:
            opts["regression_csv"] = args.regression_csv

    run_id: str | None = None
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    elif config_source == "config":
        run_id = pipelines.config_hash(config)
        train_cfg["run_dir"] = str(Path(".artifacts") / run_id)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result, run_id=run_id))


if __name__ == "__main__":
    main()
