"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, MutableMapping

import numpy as np

from ..core.types import Array

TASK_TYPES = ("binary", "regression")


@dataclass(frozen=True)
class TaskData:
    """Aligned sample pairs for one task.

    Attributes
    ----------
    inputs:
        ``(n_samples, n_features)`` matrix of normalised features.
    targets:
        ``(n_samples, 1)`` matrix of binary labels or scaled regression
        targets.
    task_type:
        ``"binary"`` or ``"regression"``.
    feature_names:
        Column names of ``inputs``; may be empty for generated data.
    target_scale:
        Factor that maps a target back to its original unit (for example
        100 for motor UPDRS scores stored divided by 100).
    """

    inputs: Array
    targets: Array
    task_type: str
    feature_names: List[str] = field(default_factory=list)
    target_scale: float = 1.0

    def __post_init__(self) -> None:
        if self.task_type not in TASK_TYPES:
            raise ValueError(f"Invalid task type: {self.task_type}")
        if self.inputs.ndim != 2 or self.targets.ndim != 2:
            raise ValueError("TaskData inputs and targets must be 2-D")
        if self.inputs.shape[0] != self.targets.shape[0]:
            raise ValueError(
                f"{self.inputs.shape[0]} inputs but {self.targets.shape[0]} targets"
            )

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def n_outputs(self) -> int:
        return int(self.targets.shape[1])

    def subset(self, indices: Array) -> "TaskData":
        idx = np.asarray(indices, dtype=int)
        return TaskData(
            inputs=self.inputs[idx],
            targets=self.targets[idx],
            task_type=self.task_type,
            feature_names=list(self.feature_names),
            target_scale=self.target_scale,
        )


@dataclass(frozen=True)
class DatasetSpec:
    """Description of a dataset registered in the system."""

    name: str
    tasks: Dict[str, TaskData]
    provenance: Dict[str, Any]

    def task(self, name: str) -> TaskData:
        try:
            return self.tasks[name]
        except KeyError as exc:
            available = ", ".join(sorted(self.tasks))
            raise KeyError(
                f"Dataset {self.name!r} has no task {name!r}. Available tasks: {available}"
            ) from exc


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory, as a decorator or directly."""

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(name: str, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset: {name}. Available datasets: {available}")
    spec = _REGISTRY[name](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if not spec.tasks:
        raise ValueError(f"Dataset {spec.name!r} defines no tasks")
    for task_name, task in spec.tasks.items():
        if task.n_outputs != 1:
            raise ValueError(
                f"Task {task_name!r} must have single-element targets, got {task.n_outputs}"
            )


__all__ = [
    "DatasetSpec",
    "TaskData",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
