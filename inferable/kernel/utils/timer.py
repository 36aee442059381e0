"""Wall-clock timing for handler executions."""

import time
from collections.abc import Generator
from contextlib import contextmanager


class Timer:
    """Lightweight timer that tracks elapsed milliseconds.

    Examples
    --------
    >>> with execution_timer() as t:
    ...     pass  # do work
    >>> assert t.duration_ms >= 0
    """

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        """Elapsed time in milliseconds since the timer started."""
        return (time.perf_counter() - self._start) * 1000

    @property
    def elapsed_ms(self) -> int:
        """Elapsed time in whole milliseconds, as reported to the control plane."""
        return int(self.duration_ms)


@contextmanager
def execution_timer() -> Generator[Timer, None, None]:
    """Time an operation and provide elapsed milliseconds.

    Yields a ``Timer`` whose ``duration_ms`` property returns the
    elapsed time at any point during (or after) the block.
    """
    yield Timer()
