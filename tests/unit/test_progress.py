from __future__ import annotations

import logging
import time

import pytest

from miner.core.metrics import MetricsRegistry
from miner.core.types import ProgressSnapshot
from miner.search.progress import ProgressReporter, format_rate


class FakeStatus:
    def __init__(self) -> None:
        self.attempts = 0
        self.found = False

    def current_attempts(self) -> int:
        return self.attempts

    def is_found(self) -> bool:
        return self.found


class FakeClock:
    def __init__(self) -> None:
        self.t = 100.0

    def __call__(self) -> float:
        return self.t


def test_sample_computes_interval_and_average_rate() -> None:
    status, clock = FakeStatus(), FakeClock()
    metrics = MetricsRegistry()
    rep = ProgressReporter(status, interval_s=1.0, sink=lambda s: None, metrics=metrics, clock=clock)

    clock.t += 2.0
    status.attempts = 1_000
    s1 = rep.sample()
    assert s1.rate == pytest.approx(500.0)
    assert s1.average_rate == pytest.approx(500.0)

    clock.t += 1.0
    status.attempts = 4_000
    s2 = rep.sample()
    assert s2.rate == pytest.approx(3_000.0)
    assert s2.average_rate == pytest.approx(4_000 / 3.0)
    assert s2.elapsed_s == pytest.approx(3.0)

    snap = metrics.snapshot()
    assert snap["gauge.search.rate"] == pytest.approx(3_000.0)
    assert snap["gauge.search.elapsed_s"] == pytest.approx(3.0)


def test_zero_interval_sample_does_not_divide_by_zero() -> None:
    rep = ProgressReporter(FakeStatus(), sink=lambda s: None, clock=FakeClock())
    snap = rep.sample()
    assert snap.rate == 0.0
    assert snap.average_rate == 0.0


def test_sink_failures_are_swallowed_and_counted(caplog: pytest.LogCaptureFixture) -> None:
    def bad_sink(snap: ProgressSnapshot) -> None:
        raise RuntimeError("terminal went away")

    rep = ProgressReporter(FakeStatus(), sink=bad_sink, clock=FakeClock())
    with caplog.at_level(logging.WARNING, logger="miner.search.progress"):
        assert rep.tick() is None
        assert rep.tick() is None
    assert rep.failures == 2
    assert "progress_report_failed" in caplog.text


def test_status_read_failures_are_swallowed() -> None:
    class Broken(FakeStatus):
        def current_attempts(self) -> int:
            raise ValueError("nope")

    rep = ProgressReporter(Broken(), sink=lambda s: None)
    assert rep.tick() is None
    assert rep.failures == 1


def test_background_thread_reports_then_stops_on_found() -> None:
    status = FakeStatus()
    seen: list[ProgressSnapshot] = []
    rep = ProgressReporter(status, interval_s=0.01, sink=seen.append)

    rep.start()
    deadline = time.monotonic() + 5
    while not seen and time.monotonic() < deadline:
        status.attempts += 10
        time.sleep(0.005)
    assert seen

    status.found = True
    deadline = time.monotonic() + 5
    while rep.is_alive() and time.monotonic() < deadline:
        time.sleep(0.005)
    assert not rep.is_alive()
    rep.stop()


def test_default_sink_logs_event(caplog: pytest.LogCaptureFixture) -> None:
    status, clock = FakeStatus(), FakeClock()
    rep = ProgressReporter(status, clock=clock)
    clock.t += 1
    status.attempts = 2_500_000
    with caplog.at_level(logging.INFO, logger="miner.search.progress"):
        rep.tick()
    rec = next(r for r in caplog.records if r.getMessage() == "search_progress")
    assert rec.attempts == 2_500_000
    assert rec.rate == "2.50 MH/s"


def test_format_rate_units() -> None:
    assert format_rate(12) == "12 H/s"
    assert format_rate(12_345) == "12.3 kH/s"
    assert format_rate(3_400_000) == "3.40 MH/s"


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ProgressReporter(FakeStatus(), interval_s=0)
