"""Overlay window showing the session status and live waveform."""

from __future__ import annotations

from typing import Sequence

try:
    from PySide6.QtCore import Qt, QRectF, QTimer
    from PySide6.QtGui import QColor, QPainter
    from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QRectF = None  # type: ignore
    QTimer = None  # type: ignore
    QColor = None  # type: ignore
    QPainter = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

LABEL_STYLE = (
    "color: {color}; font-size: 16px; padding: 8px 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)


class WaveformBars(QWidget):
    """Draws one rounded bar per sample, height scaled to the widget."""

    def __init__(self) -> None:
        super().__init__()
        self._samples: tuple[float, ...] = ()
        self._color = QColor("#4A90E2")
        self.setFixedHeight(60)

    def set_samples(self, samples: Sequence[float], active: bool = True) -> None:
        self._samples = tuple(samples)
        self._color = QColor("#4A90E2" if active else "#888888")
        self.update()

    def paintEvent(self, event: object) -> None:  # noqa: N802
        if not self._samples:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        painter.setPen(Qt.NoPen)
        painter.setBrush(self._color)
        spacing = 2.0
        count = len(self._samples)
        width = max(2.0, (self.width() - spacing * (count - 1)) / count)
        for i, sample in enumerate(self._samples):
            height = max(6.0, sample * self.height())
            x = i * (width + spacing)
            y = (self.height() - height) / 2
            painter.drawRoundedRect(QRectF(x, y, width, height), width / 2, width / 2)
        painter.end()


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(420)

        self._bars = WaveformBars()
        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setAlignment(Qt.AlignCenter)
        self._label.setStyleSheet(LABEL_STYLE.format(color="white"))

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._bars)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def show_status(self, text: str, is_error: bool = False) -> None:
        self._cancel_hide_timer()
        color = "#FF6B6B" if is_error else "white"
        self._label.setStyleSheet(LABEL_STYLE.format(color=color))
        self._label.setText(text)
        self._center_top()
        self.show()

    def set_waveform(self, samples: Sequence[float], active: bool) -> None:
        self._bars.setVisible(True)
        self._bars.set_samples(samples, active)

    def hide_waveform(self) -> None:
        self._bars.setVisible(False)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
