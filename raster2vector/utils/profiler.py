"""Lightweight profiling: wall-clock timers and first-row duration estimates.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink
    - RowEstimateTimer: Extrapolates total scan time from the first row

Used to measure:
    - Image decode
    - Path construction (per-pixel polygon scan)
    - SVG serialization and save

Timings are reported through sinks (callables) so callers decide whether they
land on stdout, in the log, or nowhere. Nothing here affects conversion output.
"""

import time
from contextlib import contextmanager
from typing import Callable, Optional

# Estimated scans longer than this (seconds) get an up-front estimate message
SLOW_THRESHOLD_S = 2.0


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds)
        If None, prints to stdout

    Examples
    --------
    >>> with timer("decode"):
    ...     buf = RasterBuffer.from_file("sprite.png")
    decode: 0.004 s

    >>> with timer("save", sink=lambda n, t: logger.debug("%s took %.3f s", n, t)):
    ...     doc.save()
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            print(f"{name}: {elapsed:.3f} s")


class RowEstimateTimer:
    """Estimate a row-by-row scan's total duration from its first row.

    After row 0 the total is extrapolated as ``total_rows * row0_duration``.
    If that exceeds ``threshold_s`` the scan counts as slow: one estimate
    message is produced immediately, and the final message compares the actual
    duration against it. Fast scans only get the final duration in ms.

    Attributes
    ----------
    total_rows : int
        Number of rows the scan will visit
    threshold_s : float
        Estimate above which the scan is reported as slow
    estimate_s : Optional[float]
        Extrapolated total, set after row 0
    slow : bool
        True once the estimate exceeded the threshold

    Examples
    --------
    >>> est = RowEstimateTimer(total_rows=height)
    >>> est.start()
    >>> for row in range(height):
    ...     scan_row(row)
    ...     msg = est.row_done(row)
    ...     if msg:
    ...         print(msg)
    >>> print(est.finish())
    Path construction time: 12 ms
    """

    def __init__(
        self,
        total_rows: int,
        threshold_s: float = SLOW_THRESHOLD_S,
        clock: Callable[[], float] = time.perf_counter
    ):
        self.total_rows = total_rows
        self.threshold_s = threshold_s
        self.clock = clock
        self.estimate_s: Optional[float] = None
        self.elapsed_s: Optional[float] = None
        self.slow = False
        self._start: Optional[float] = None

    def start(self) -> None:
        """Mark the beginning of the scan."""
        self._start = self.clock()

    def row_done(self, row: int) -> Optional[str]:
        """Record a finished row; returns the estimate message once, if slow."""
        if row != 0:
            return None
        if self._start is None:
            raise RuntimeError("RowEstimateTimer.row_done() called before start()")

        one_row_s = self.clock() - self._start
        self.estimate_s = self.total_rows * one_row_s
        if self.estimate_s > self.threshold_s:
            self.slow = True
            return f"Estimated path construction time: {int(self.estimate_s)} seconds"
        return None

    def finish(self) -> str:
        """Stop the clock and return the closing duration message."""
        if self._start is None:
            raise RuntimeError("RowEstimateTimer.finish() called before start()")
        self.elapsed_s = self.clock() - self._start

        if self.slow:
            return (
                f"Actual path construction time:    {int(self.elapsed_s)} seconds "
                f"({self.percent_off():.1f}% difference from estimate)"
            )
        return f"Path construction time: {int(self.elapsed_s * 1000)} ms"

    def percent_off(self) -> float:
        """Deviation of the actual duration from the estimate, relative to actual."""
        if not self.elapsed_s or self.estimate_s is None:
            return 0.0
        return 100.0 * (self.elapsed_s - self.estimate_s) / self.elapsed_s

    def __repr__(self) -> str:
        return (
            f"RowEstimateTimer(rows={self.total_rows}, estimate={self.estimate_s}, "
            f"elapsed={self.elapsed_s}, slow={self.slow})"
        )
