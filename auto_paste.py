"""Text sink: inserts a transcript into the focused field via the clipboard."""

from __future__ import annotations

import logging
import sys
import time

from errors import NO_ACTIVE_TARGET
from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardPasteService:
    """Dispatcher sink that swaps the transcript onto the clipboard and pastes it.

    The user's clipboard is put back after ``restore_delay_s`` whether or not
    the paste chord went through.
    """

    def __init__(self, restore_delay_s: float = 0.1) -> None:
        self._restore_delay_s = restore_delay_s

    def __call__(self, text: str) -> PasteResult:
        result = self.paste_text(text)
        if not result.success:
            logger.warning("Transcript not inserted: %s", result.reason)
        return result

    def paste_text(self, text: str) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return PasteResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        try:
            saved = pyperclip.paste()
        except Exception as exc:
            return PasteResult(
                success=False, reason=f"{NO_ACTIVE_TARGET}: {exc}", clipboard_restored=False
            )

        error: Exception | None = None
        try:
            pyperclip.copy(text)
            self._send_paste_chord()
            time.sleep(self._restore_delay_s)
        except Exception as exc:
            error = exc
        restored = self._restore_clipboard(saved)

        if error is not None:
            return PasteResult(
                success=False, reason=f"{NO_ACTIVE_TARGET}: {error}", clipboard_restored=restored
            )
        return PasteResult(success=True, reason="ok", clipboard_restored=restored)

    @staticmethod
    def _send_paste_chord() -> None:
        modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        keyboard = Controller()
        with keyboard.pressed(modifier):
            keyboard.press("v")
            keyboard.release("v")

    @staticmethod
    def _restore_clipboard(saved: str) -> bool:
        try:
            pyperclip.copy(saved)
        except Exception:
            logger.debug("Clipboard restore failed", exc_info=True)
            return False
        return True
