"""miner.core.metrics

A tiny metrics surface.

No Prometheus dependency here. Counters are what the workers flush into;
gauges are what the progress reporter writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock


@dataclass
class Counter:
    name: str
    _value: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += int(amount)

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        # int reads are atomic under the GIL; the lock only orders us after in-flight flushes.
        with self._lock:
            return self._value


@dataclass
class Gauge:
    name: str
    _value: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    @property
    def value(self) -> float:
        with self._lock:
            return float(self._value)


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}

    def counter(self, name: str) -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name)
            return self._counters[name]

    def gauge(self, name: str) -> Gauge:
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name=name)
            return self._gauges[name]

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            counters = list(self._counters.items())
            gauges = list(self._gauges.items())
        data: dict[str, float] = {}
        data.update({f"counter.{k}": float(v.value) for k, v in counters})
        data.update({f"gauge.{k}": v.value for k, v in gauges})
        return data


REGISTRY = MetricsRegistry()
