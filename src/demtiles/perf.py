"""Timing spans for per-raster processing stages."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Iterator


@dataclass(frozen=True)
class PerfSpan:
    """Timing span captured by the performance tracker."""

    name: str
    seconds: float


class PerfTracker:
    """Capture named timing spans; a disabled tracker records nothing."""

    def __init__(self, *, enabled: bool) -> None:
        self.enabled = enabled
        self._spans: list[PerfSpan] = []

    @contextmanager
    def span(self, name: str) -> Iterator[None]:
        """Measure a named span of work."""
        if not self.enabled:
            yield
            return
        start = perf_counter()
        try:
            yield
        finally:
            self._spans.append(PerfSpan(name=name, seconds=perf_counter() - start))

    def summary(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of captured spans."""
        if not self.enabled:
            return {}
        spans: dict[str, float] = {}
        for span in self._spans:
            spans[span.name] = spans.get(span.name, 0.0) + span.seconds
        return {
            "total_seconds": round(sum(spans.values()), 6),
            "spans": {name: round(seconds, 6) for name, seconds in spans.items()},
        }
