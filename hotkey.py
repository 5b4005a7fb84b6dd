"""Push-to-talk trigger based on a global pynput key listener."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class PushToTalkHotkey:
    """Calls ``on_press_start`` on key down and ``on_press_end`` on key up.

    OS key auto-repeat sends repeated presses while held; only the first one
    is forwarded.
    """

    def __init__(self, hotkey_name: str = "Key.alt_l") -> None:
        self._hotkey_name = hotkey_name
        self._listener: Optional[object] = None
        self._held = False
        self._lock = threading.Lock()

    @property
    def hotkey_name(self) -> str:
        return self._hotkey_name

    def start(self, on_press_start: Callable[[], None], on_press_end: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")

        def _on_press(key: object) -> None:
            if str(key) != self._hotkey_name:
                return
            with self._lock:
                if self._held:
                    return
                self._held = True
            on_press_start()

        def _on_release(key: object) -> None:
            if str(key) != self._hotkey_name:
                return
            with self._lock:
                if not self._held:
                    return
                self._held = False
            on_press_end()

        self._listener = keyboard.Listener(on_press=_on_press, on_release=_on_release)
        self._listener.start()
        logger.info("Listening for push-to-talk key %s", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
