"""Utility helpers for dataset loaders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from sklearn.model_selection import train_test_split

from ..core.types import Array
from .registry import TaskData


def minmax_normalize(inputs: Array) -> Tuple[Array, Array, Array]:
    """Scale every column into ``[0, 1]``.

    Columns with zero range are left unchanged. Returns the scaled matrix and
    the per-column minima and maxima.
    """

    inputs = np.asarray(inputs, dtype=np.float64)
    if inputs.shape[0] == 0:
        empty = np.zeros(inputs.shape[1:], dtype=np.float64)
        return inputs.copy(), empty, empty
    mins = inputs.min(axis=0)
    maxs = inputs.max(axis=0)
    span = maxs - mins
    scaled = inputs.copy()
    varying = span > 0
    scaled[:, varying] = (inputs[:, varying] - mins[varying]) / span[varying]
    return scaled, mins, maxs


def shuffle_pairs(
    inputs: Array, targets: Array, rng: np.random.Generator
) -> Tuple[Array, Array]:
    """Apply one random permutation to both arrays."""

    if len(inputs) != len(targets):
        raise ValueError(f"Got {len(inputs)} inputs but {len(targets)} targets")
    order = rng.permutation(len(inputs))
    return np.asarray(inputs)[order], np.asarray(targets)[order]


@dataclass(frozen=True)
class ClassDistribution:
    positive: int
    negative: int

    @property
    def total(self) -> int:
        return self.positive + self.negative

    @property
    def positive_ratio(self) -> float:
        return self.positive / self.total if self.total else 0.0

    @property
    def negative_ratio(self) -> float:
        return self.negative / self.total if self.total else 0.0

    @property
    def is_imbalanced(self) -> bool:
        if self.total == 0:
            return False
        return self.positive < 10 or min(self.positive_ratio, self.negative_ratio) < 0.25


def class_distribution(targets: Array, threshold: float = 0.5) -> ClassDistribution:
    labels = np.asarray(targets, dtype=np.float64).reshape(len(targets), -1)
    if labels.shape[0] == 0:
        return ClassDistribution(positive=0, negative=0)
    positive = int(np.sum(labels[:, 0] > threshold))
    return ClassDistribution(positive=positive, negative=int(labels.shape[0]) - positive)


def split_task(task: TaskData, test_split: float, seed: int) -> Tuple[TaskData, TaskData]:
    """Hold out ``test_split`` of ``task``; binary tasks are stratified when possible."""

    if not 0.0 <= test_split < 1.0:
        raise ValueError("test_split must be in [0, 1)")
    indices = np.arange(len(task))
    if test_split == 0.0 or len(task) < 2:
        return task, task.subset(indices[:0])

    stratify = None
    if task.task_type == "binary":
        labels = (task.targets[:, 0] > 0.5).astype(int)
        counts = np.bincount(labels, minlength=2)
        if counts.min() >= 2:
            stratify = labels
    train_idx, test_idx = train_test_split(
        indices, test_size=test_split, random_state=seed, stratify=stratify
    )
    return task.subset(np.sort(train_idx)), task.subset(np.sort(test_idx))


__all__ = [
    "ClassDistribution",
    "class_distribution",
    "minmax_normalize",
    "shuffle_pairs",
    "split_task",
]
