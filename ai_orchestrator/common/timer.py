"""
Timer Module

Measures request latency: live elapsed time for partial streaming emissions,
time to first chunk, and total time.
"""

import time
from typing import Optional


class Timer:
    """
    Monotonic Timer

    Example:
        timer = Timer().start()
        # ... call provider ...
        timer.mark_first_byte()
        # ... consume response ...
        timer.stop()
        print(timer.total_time_ms)
    """

    def __init__(self):
        self._start_time: Optional[float] = None
        self._first_byte_time: Optional[float] = None
        self._end_time: Optional[float] = None

    def start(self) -> "Timer":
        self._start_time = time.perf_counter()
        self._first_byte_time = None
        self._end_time = None
        return self

    def mark_first_byte(self) -> "Timer":
        """Subsequent calls are ignored once marked"""
        if self._first_byte_time is None:
            self._first_byte_time = time.perf_counter()
        return self

    def stop(self) -> "Timer":
        self._end_time = time.perf_counter()
        return self

    @property
    def elapsed_ms(self) -> int:
        """Time since start, up to stop if stopped"""
        if self._start_time is None:
            return 0
        end = self._end_time if self._end_time is not None else time.perf_counter()
        return int((end - self._start_time) * 1000)

    @property
    def first_byte_delay_ms(self) -> Optional[int]:
        if self._start_time is None or self._first_byte_time is None:
            return None
        return int((self._first_byte_time - self._start_time) * 1000)

    @property
    def total_time_ms(self) -> Optional[int]:
        if self._start_time is None or self._end_time is None:
            return None
        return int((self._end_time - self._start_time) * 1000)
