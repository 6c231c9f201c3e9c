# src/pagetree_kit/observability/base.py

from collections import defaultdict
from typing import Protocol


class MetricsHook(Protocol):
    """Sink for engine metrics. Durations are in milliseconds."""

    def record_latency(
        self,
        name: str,
        value_ms: float,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def increment(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def record_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None: ...


class NoOpMetricsHook:
    def record_latency(
        self, name: str, value_ms: float, labels: dict[str, str] | None = None
    ) -> None:
        pass

    def increment(
        self, name: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        pass

    def record_gauge(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        pass


class InMemoryMetricsHook:
    """Keeps every recorded value in memory.

    Counters are summed per (name, labels); latencies and gauges keep the
    full history. Meant for tests and local debugging.
    """

    def __init__(self) -> None:
        self.counters: dict[tuple[str, tuple], int] = defaultdict(int)
        self.latencies: dict[str, list[float]] = defaultdict(list)
        self.gauges: dict[str, list[float]] = defaultdict(list)

    @staticmethod
    def _key(name: str, labels: dict[str, str] | None) -> tuple[str, tuple]:
        return name, tuple(sorted((labels or {}).items()))

    def record_latency(
        self, name: str, value_ms: float, labels: dict[str, str] | None = None
    ) -> None:
        self.latencies[name].append(value_ms)

    def increment(
        self, name: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        self.counters[self._key(name, labels)] += value

    def record_gauge(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        self.gauges[name].append(value)

    def count(self, name: str, labels: dict[str, str] | None = None) -> int:
        if labels is not None:
            return self.counters.get(self._key(name, labels), 0)
        return sum(v for (n, _), v in self.counters.items() if n == name)
