"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
from typing import Callable

from auto_paste import ClipboardPasteService
from config import JsonConfigStore, Settings
from dispatcher import ResultDispatcher
from hotkey import PushToTalkHotkey
from logsetup import configure_logging
from models import Feedback, SessionState
from overlay import OverlayWindow
from recorder import build_capture_backend
from session_controller import SessionController
from transcriber import HttpTranscriber

try:
    from PySide6.QtCore import QObject, QSize, QTimer, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


STATE_ICONS = {
    SessionState.IDLE: "#888888",
    SessionState.RECORDING: "#FF4444",
    SessionState.PROCESSING: "#4A90E2",
    SessionState.COMPLETE: "#44BB66",
    SessionState.ERROR: "#FF8800",
}


class UIBridge(QObject):
    """Queued signals that hop from worker threads onto the Qt main thread."""

    call_signal = Signal(object)
    state_signal = Signal(str, str)
    feedback_signal = Signal(str)


def _build_transcriber(settings: Settings) -> HttpTranscriber:
    return HttpTranscriber(
        endpoint=settings.endpoint,
        auth_token=settings.auth_token,
        model=settings.model,
        language=settings.language,
        timeout_s=settings.request_timeout_s,
    )


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.settings = self.config_store.load_settings()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.call_signal.connect(self._run_on_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.feedback_signal.connect(self._on_feedback_ui)

        self.paste_service = ClipboardPasteService()
        self.dispatcher = ResultDispatcher(
            sinks=[self.paste_service],
            schedule=self._schedule_on_ui,
        )
        self.transcriber = _build_transcriber(self.settings)
        self.controller = SessionController(
            capture=build_capture_backend(self.settings),
            transcriber=self.transcriber,
            dispatcher=self.dispatcher,
            on_state_change=self._on_state_change,
            on_feedback=self._on_feedback,
        )
        self.hotkey = PushToTalkHotkey(hotkey_name=self.settings.hotkey)

        self.waveform_timer = QTimer()
        self.waveform_timer.setInterval(50)
        self.waveform_timer.timeout.connect(self._refresh_waveform)

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(STATE_ICONS[SessionState.IDLE]))
        self.tray.setToolTip(f"hold2type: {self.controller.status_message}")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        token_action = QAction("Set API Token", menu)
        token_action.triggered.connect(self._set_auth_token)
        menu.addAction(token_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_auth_token(self) -> None:
        value, ok = QInputDialog.getText(None, "API Token", "Transcription API token")
        if not ok:
            return
        self.config_store.set_auth_token(value)
        self.settings = self.config_store.load_settings()
        old = self.transcriber
        self.transcriber = _build_transcriber(self.settings)
        self.controller.replace_transcriber(self.transcriber)
        old.close()
        QMessageBox.information(None, "Saved", "API token saved and applied.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Use pynput key format, e.g. Key.alt_l"
        )
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # Called from worker threads; only emit signals here.

    def _schedule_on_ui(self, fn: Callable[[], None]) -> None:
        self.ui.call_signal.emit(fn)

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_feedback(self, feedback: Feedback) -> None:
        self.ui.feedback_signal.emit(feedback.value)

    # Qt main thread.

    def _run_on_ui(self, fn: Callable[[], None]) -> None:
        fn()

    def _refresh_waveform(self) -> None:
        state = self.controller.state
        self.overlay.set_waveform(self.controller.waveform, active=state == SessionState.RECORDING)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        state = SessionState(to_state)
        message = self.controller.status_message
        self.tray.setIcon(_create_icon(STATE_ICONS[state]))
        self.tray.setToolTip(f"hold2type: {message}")
        if state == SessionState.RECORDING:
            self.waveform_timer.start()
            self.overlay.show_status(message)
        elif state == SessionState.PROCESSING:
            self.waveform_timer.stop()
            self._refresh_waveform()
            self.overlay.show_status(message)
        else:
            self.waveform_timer.stop()
            self.overlay.hide_waveform()
            self.overlay.show_status(message, is_error=state == SessionState.ERROR)
            self.overlay.hide_with_delay(2000 if state == SessionState.ERROR else 400)

    def _on_feedback_ui(self, feedback: str) -> None:
        if feedback == Feedback.NEGATIVE.value:
            QApplication.beep()

    def _on_hotkey_press(self) -> None:
        self.controller.on_press_start()

    def _on_hotkey_release(self) -> None:
        self.controller.on_press_end()

    def run(self) -> int:
        try:
            self.hotkey.start(
                on_press_start=self._on_hotkey_press,
                on_press_end=self._on_hotkey_release,
            )
        except Exception as exc:
            logger.error("Hotkey disabled: %s", exc)
            self.overlay.show_status(f"Hotkey disabled: {exc}", is_error=True)
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.cancel_session("app quit")
        self.transcriber.close()
        self.app.quit()


def main() -> int:
    configure_logging()
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
