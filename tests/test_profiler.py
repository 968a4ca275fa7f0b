"""Tests for timers and first-row duration estimates."""

import pytest

from raster2vector.utils import profiler
from raster2vector.utils.profiler import RowEstimateTimer


def _clock(*values):
    return iter(values).__next__


def test_timer_sink_receives_elapsed():
    times = []
    with profiler.timer("op", sink=lambda name, t: times.append((name, t))):
        sum(range(1000))
    assert len(times) == 1
    assert times[0][0] == "op" and times[0][1] >= 0


def test_timer_prints_without_sink(capsys):
    with profiler.timer("decode"):
        pass
    assert capsys.readouterr().out.startswith("decode: ")


def test_fast_scan():
    est = RowEstimateTimer(total_rows=10, clock=_clock(0.0, 0.1, 0.75))
    est.start()
    assert est.row_done(0) is None
    assert est.row_done(1) is None
    assert est.estimate_s == pytest.approx(1.0)
    assert not est.slow
    assert est.finish() == "Path construction time: 750 ms"


def test_threshold_is_exclusive():
    est = RowEstimateTimer(total_rows=2, clock=_clock(0.0, 1.0, 2.0))
    est.start()
    assert est.row_done(0) is None
    assert not est.slow


def test_slow_scan_messages():
    est = RowEstimateTimer(total_rows=100, clock=_clock(0.0, 0.05, 4.0))
    est.start()
    assert est.row_done(0) == "Estimated path construction time: 5 seconds"
    assert est.slow
    assert est.row_done(1) is None
    assert est.finish() == (
        "Actual path construction time:    4 seconds (-25.0% difference from estimate)"
    )
    assert est.percent_off() == pytest.approx(-25.0)


def test_calls_before_start_raise():
    est = RowEstimateTimer(total_rows=1)
    with pytest.raises(RuntimeError):
        est.row_done(0)
    with pytest.raises(RuntimeError):
        est.finish()
