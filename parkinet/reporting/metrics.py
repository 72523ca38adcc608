"""Per-epoch metric sinks for training runs.

Both sinks receive the payload the trainers pass to their epoch callbacks
and tag every row with the :class:`RunContext` of the run, so rows from the
single-task and the alternating loop can be told apart after the fact.
"""

from __future__ import annotations

import csv
import json
import subprocess
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


@dataclass(frozen=True)
class RunContext:
    """Fields stamped onto every epoch row."""

    mode: str = "single"
    task: str = "classification"
    seed: Optional[int] = None
    sha: str = ""

    def fields(self) -> Dict[str, object]:
        return {
            "mode": self.mode,
            "task": self.task,
            "seed": self.seed,
            "sha": self.sha,
        }


def epoch_record(
    epoch: int, metrics: Mapping[str, object], context: RunContext
) -> Dict[str, object]:
    """Flatten one epoch callback payload into a row.

    Non-numeric values are dropped and the ``improved`` flag becomes a bool.
    Metric keys keep the order the trainer emitted them in.
    """

    record: Dict[str, object] = {"epoch": int(epoch)}
    record.update(context.fields())
    for key, value in metrics.items():
        if key == "improved":
            record[key] = bool(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            record[key] = float(value)
    return record


class JsonlSink:
    """One JSON object per epoch; the file is truncated on construction."""

    def __init__(self, path: str | Path, context: RunContext | None = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.context = context or RunContext()
        if not self.context.sha:
            self.context = replace(self.context, sha=git_sha())

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        record = epoch_record(epoch, metrics, self.context)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Epoch rows as CSV.

    The columns are fixed by the first row; metrics that only appear later
    are not written. The commit sha is left out to keep rows short.
    """

    def __init__(self, path: str | Path, context: RunContext | None = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.context = context or RunContext()
        self.columns: List[str] | None = None

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        row = epoch_record(epoch, metrics, self.context)
        row.pop("sha", None)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            if self.columns is None:
                self.columns = list(row)
                csv.writer(handle).writerow(self.columns)
            csv.writer(handle).writerow([row.get(column, "") for column in self.columns])

    __call__ = on_epoch


__all__ = ["CsvSink", "JsonlSink", "RunContext", "epoch_record", "git_sha"]
