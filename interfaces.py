"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Callable, Protocol

from models import AudioAsset, TranscriptResult

ErrorHandler = Callable[[str, str], None]


class CaptureBackend(Protocol):
    def begin(self, on_error: ErrorHandler) -> None: ...

    def end(self) -> AudioAsset: ...

    def release(self) -> None: ...

    def sample_level(self) -> float: ...


class Transcriber(Protocol):
    def transcribe(self, asset: AudioAsset) -> TranscriptResult: ...
