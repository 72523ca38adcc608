"""Learning-rate schedules with their early-stopping patience."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple


class LearningRateSchedule(Protocol):
    """Protocol implemented by learning-rate schedules.

    ``patience`` is the number of non-improving epochs tolerated before the
    trainer stops early; ``None`` disables early stopping.
    """

    name: str
    floor: float
    patience: Optional[int]

    def next_rate(self, epoch: int, rate: float, loss: float | None = None) -> float:
        """Return the rate to use after ``epoch`` finished at ``rate``."""


def _clamp(candidate: float, rate: float, floor: float) -> float:
    # Never raise the rate, even when it already sits below the floor.
    return min(rate, max(candidate, floor))


def trace(schedule: LearningRateSchedule, initial: float, epochs: int) -> List[float]:
    """Rates in effect for each of ``epochs`` epochs starting from ``initial``."""

    rates: List[float] = []
    rate = float(initial)
    for epoch in range(epochs):
        rates.append(rate)
        rate = schedule.next_rate(epoch, rate)
    return rates


@dataclass(frozen=True)
class StagedDecay:
    """Multiply the rate by a per-stage factor after every epoch.

    ``stages`` holds ``(first_epoch, factor)`` pairs in ascending order; the
    last stage whose ``first_epoch`` is not after the current epoch applies.
    """

    name: str
    stages: Tuple[Tuple[int, float], ...]
    floor: float
    patience: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("StagedDecay requires at least one stage")
        starts = [start for start, _ in self.stages]
        if starts != sorted(starts):
            raise ValueError("Stages must be sorted by first epoch")
        for _, factor in self.stages:
            if not 0.0 < factor <= 1.0:
                raise ValueError(f"Stage factors must be in (0, 1], got {factor}")

    def factor(self, epoch: int) -> float:
        current = 1.0
        for start, factor in self.stages:
            if epoch >= start:
                current = factor
        return current

    def next_rate(self, epoch: int, rate: float, loss: float | None = None) -> float:
        return _clamp(rate * self.factor(epoch), rate, self.floor)


@dataclass(frozen=True)
class PeriodicDecay:
    """Multiply the rate by ``factor`` at every positive multiple of ``every``."""

    name: str
    every: int
    factor: float
    floor: float
    patience: Optional[int] = None

    def __post_init__(self) -> None:
        if self.every < 1:
            raise ValueError(f"every must be >= 1, got {self.every}")
        if not 0.0 < self.factor <= 1.0:
            raise ValueError(f"factor must be in (0, 1], got {self.factor}")

    def next_rate(self, epoch: int, rate: float, loss: float | None = None) -> float:
        if epoch > 0 and epoch % self.every == 0:
            return _clamp(rate * self.factor, rate, self.floor)
        return _clamp(rate, rate, self.floor)


@dataclass(frozen=True)
class ConstantRate:
    """Keep the learning rate fixed for the whole run."""

    name: str = "constant"
    floor: float = 0.0
    patience: Optional[int] = None

    def next_rate(self, epoch: int, rate: float, loss: float | None = None) -> float:
        return rate


AGGRESSIVE = StagedDecay(
    "aggressive", stages=((0, 1.0), (10, 0.95), (30, 0.9)), floor=1e-4, patience=30
)
CONSERVATIVE = StagedDecay(
    "conservative", stages=((0, 1.0), (30, 0.98), (100, 0.95)), floor=1e-6, patience=50
)
OPTIMAL = StagedDecay(
    "optimal",
    stages=((0, 1.0), (21, 0.97), (61, 0.95), (91, 0.92)),
    floor=1e-5,
    patience=35,
)
STANDARD = PeriodicDecay("standard", every=50, factor=0.95, floor=1e-6, patience=100)
ALTERNATING = PeriodicDecay("alternating", every=50, factor=0.9, floor=1e-6, patience=None)
CONSTANT = ConstantRate()

_SCHEDULES: Dict[str, LearningRateSchedule] = {
    schedule.name: schedule
    for schedule in (AGGRESSIVE, CONSERVATIVE, OPTIMAL, STANDARD, ALTERNATING, CONSTANT)
}


def get_schedule(name: str | LearningRateSchedule) -> LearningRateSchedule:
    if not isinstance(name, str):
        return name
    try:
        return _SCHEDULES[name]
    except KeyError as exc:
        available = ", ".join(sorted(_SCHEDULES))
        raise KeyError(f"Unknown schedule {name!r}. Available schedules: {available}") from exc


def available_schedules() -> Sequence[str]:
    return sorted(_SCHEDULES)


__all__ = [
    "LearningRateSchedule",
    "StagedDecay",
    "PeriodicDecay",
    "ConstantRate",
    "AGGRESSIVE",
    "CONSERVATIVE",
    "OPTIMAL",
    "STANDARD",
    "ALTERNATING",
    "CONSTANT",
    "available_schedules",
    "get_schedule",
    "trace",
]
