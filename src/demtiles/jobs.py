"""Worker count normalization and job fan-out helpers."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class JobOutcome(Generic[T, R]):
    """Result or failure message for one job item."""

    item: T
    result: R | None
    error: str | None


def coerce_jobs(jobs: int, item_count: int) -> int:
    """Normalize a requested worker count; 0 means one per CPU."""
    jobs = int(jobs)
    if item_count <= 0:
        return 1
    if jobs < 0:
        raise ValueError("jobs must be >= 0")
    if jobs == 0:
        cpu_count = os.cpu_count() or 1
        return max(1, min(cpu_count, item_count))
    return min(jobs, item_count)


def run_jobs(
    items: Sequence[T],
    jobs: int,
    worker: Callable[[T], R],
    *,
    continue_on_error: bool,
) -> list[JobOutcome[T, R]]:
    """Run workers serially or via a thread pool, preserving item order."""
    outcomes: list[JobOutcome[T, R]] = []
    if jobs == 1 or len(items) <= 1:
        for item in items:
            try:
                outcomes.append(JobOutcome(item, worker(item), None))
            except Exception as exc:
                if not continue_on_error:
                    raise
                outcomes.append(JobOutcome(item, None, str(exc)))
        return outcomes
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [executor.submit(worker, item) for item in items]
        for item, future in zip(items, futures):
            try:
                outcomes.append(JobOutcome(item, future.result(), None))
            except Exception as exc:
                if not continue_on_error:
                    raise
                outcomes.append(JobOutcome(item, None, str(exc)))
    return outcomes
