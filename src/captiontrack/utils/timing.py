from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List


Clock = Callable[[], float]


@dataclass(frozen=True)
class StepTiming:
    name: str
    started_at: float
    finished_at: float

    @property
    def duration_ms(self) -> int:
        return int(round((self.finished_at - self.started_at) * 1000))


class StepTimer:
    """Records wall time of named pipeline steps (monotonic seconds)."""

    def __init__(self, *, clock: Clock = time.perf_counter) -> None:
        self._clock = clock
        self.steps: List[StepTiming] = []

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        started_at = self._clock()
        try:
            yield
        finally:
            self.steps.append(
                StepTiming(name=name, started_at=started_at, finished_at=self._clock())
            )

    def summary(self) -> str:
        return ", ".join(f"{s.name}={s.duration_ms}ms" for s in self.steps)
