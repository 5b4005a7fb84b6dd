"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


STATUS_MESSAGES = {
    SessionState.IDLE: "Press and hold to speak",
    SessionState.RECORDING: "Recording...",
    SessionState.PROCESSING: "Processing...",
    SessionState.COMPLETE: "Inserted text",
}


class Feedback(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class AudioAsset:
    """Captured audio on disk, immutable once capture has stopped."""

    path: Path
    extension: str = "wav"
    disposable: bool = True

    @property
    def upload_name(self) -> str:
        return f"recorded.{self.extension}"

    @property
    def content_type(self) -> str:
        return f"audio/{self.extension}"

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def discard(self) -> None:
        """Delete the file unless it is a shared fixture."""
        if not self.disposable:
            return
        self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class TranscriptResult:
    text: str = ""
    request_id: Optional[str] = None
    code: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return not self.code

    @classmethod
    def success(cls, text: str, request_id: Optional[str] = None) -> "TranscriptResult":
        return cls(text=text, request_id=request_id)

    @classmethod
    def failure(cls, code: str, message: str) -> "TranscriptResult":
        return cls(code=code, message=message)


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool
