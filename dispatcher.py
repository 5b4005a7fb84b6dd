"""Delivers finished transcripts to text sinks."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

TextSink = Callable[[str], None]
Scheduler = Callable[[Callable[[], None]], None]


def call_now(fn: Callable[[], None]) -> None:
    fn()


class ResultDispatcher:
    """Publish/subscribe hub injected into the controller.

    ``schedule`` marshals each delivery onto the UI thread; the desktop app
    passes a Qt signal emitter, tests keep the inline default.
    """

    def __init__(self, sinks: Iterable[TextSink] = (), schedule: Optional[Scheduler] = None) -> None:
        self._sinks: list[TextSink] = list(sinks)
        self._schedule = schedule or call_now
        self._lock = threading.Lock()

    def subscribe(self, sink: TextSink) -> Callable[[], None]:
        with self._lock:
            self._sinks.append(sink)

        def unsubscribe() -> None:
            with self._lock:
                if sink in self._sinks:
                    self._sinks.remove(sink)

        return unsubscribe

    def publish(self, text: str) -> None:
        with self._lock:
            sinks = list(self._sinks)
        if not sinks:
            logger.warning("Transcript ready but no text sink is subscribed")
        for sink in sinks:
            self._schedule(lambda sink=sink: self._deliver(sink, text))

    @staticmethod
    def _deliver(sink: TextSink, text: str) -> None:
        try:
            sink(text)
        except Exception:
            logger.exception("Text sink %r failed", sink)
