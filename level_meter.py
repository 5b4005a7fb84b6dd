"""Amplitude metering that feeds the live waveform."""

from __future__ import annotations

import logging
import math
import threading
from collections import deque
from typing import Callable, Optional

logger = logging.getLogger(__name__)

WAVEFORM_SIZE = 40
FLOOR_DB = -80.0
SILENCE_DB = -160.0


def normalized_power(decibels: float) -> float:
    """Map a dB reading to 0..1: -80 dB and below is 0, 0 dB is 1."""
    if decibels <= FLOOR_DB:
        return 0.0
    linear = 10.0 ** (decibels / 20.0)
    return min(max(linear, 0.0), 1.0)


def power_to_db(rms: float) -> float:
    if rms <= 0.0:
        return SILENCE_DB
    return max(20.0 * math.log10(rms), SILENCE_DB)


class WaveformBuffer:
    """Fixed-size FIFO of normalized samples, always exactly ``size`` long."""

    def __init__(self, size: int = WAVEFORM_SIZE) -> None:
        self._samples: deque[float] = deque([0.0] * size, maxlen=size)

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, value: float) -> None:
        self._samples.append(value)

    def reset(self) -> None:
        self._samples.extend([0.0] * self._samples.maxlen)

    def snapshot(self) -> tuple[float, ...]:
        return tuple(self._samples)


class LevelMeter:
    """Polls ``read_level`` every ``interval_s`` on a daemon thread.

    ``stop()`` joins the thread, so nothing is delivered once it returns.
    ``stop(wait=False)`` only signals it: a tick already past its stop check
    can still hand one late sample to ``on_sample``, which has to filter it.
    """

    def __init__(
        self,
        read_level: Callable[[], float],
        on_sample: Callable[[float], None],
        interval_s: float = 0.05,
    ) -> None:
        self._read_level = read_level
        self._on_sample = on_sample
        self._interval_s = interval_s
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), daemon=True
            )
            self._thread.start()

    def stop(self, wait: bool = True) -> None:
        """Stop ticking; safe to call when already stopped.

        With ``wait=False`` the call never blocks on the tick thread, so it is
        safe while holding a lock that ``on_sample`` also takes. No delivery
        guarantee is made in that mode; the consumer drops late samples.
        """
        with self._lock:
            self._stop_event.set()
            thread = self._thread
            self._thread = None
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_s):
            try:
                value = self._read_level()
            except Exception:
                logger.exception("Level read failed")
                continue
            if stop_event.is_set():
                return
            self._on_sample(value)
