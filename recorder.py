"""Microphone capture backends: a real device recorder and a fixture stand-in."""

from __future__ import annotations

import logging
import os
import random
import tempfile
import threading
import wave
from pathlib import Path
from typing import Any, Optional

import numpy as np

from errors import (
    DEVICE_CONFIGURATION_FAILED,
    EMPTY_RECORDING,
    ENCODING_ERROR,
    FIXTURE_NOT_FOUND,
    PERMISSION_DENIED,
    CaptureError,
)
from interfaces import CaptureBackend, ErrorHandler
from level_meter import SILENCE_DB, normalized_power, power_to_db
from models import AudioAsset

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE = Path(__file__).resolve().parent / "assets" / "sample.wav"


def input_device_available() -> bool:
    if sd is None:
        return False
    try:
        sd.query_devices(kind="input")
    except Exception:
        return False
    return True


class SoundDeviceCapture:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 50,
        temp_dir: Optional[Path] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._temp_dir = temp_dir
        self._stream: Any = None
        self._writer: Optional[wave.Wave_write] = None
        self._path: Optional[Path] = None
        self._running = False
        self._lock = threading.Lock()
        self._frames_written = 0
        self._power_db = SILENCE_DB
        self._on_error: Optional[ErrorHandler] = None
        self._failed = False

    def begin(self, on_error: ErrorHandler) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise CaptureError(DEVICE_CONFIGURATION_FAILED, "sounddevice is not installed")
            try:
                sd.query_devices(kind="input")
            except Exception as exc:
                raise CaptureError(PERMISSION_DENIED, f"no accessible input device: {exc}") from exc
            try:
                sd.check_input_settings(
                    samplerate=self.sample_rate, channels=self.channels, dtype="int16"
                )
            except Exception as exc:
                raise CaptureError(DEVICE_CONFIGURATION_FAILED, str(exc)) from exc

            self._on_error = on_error
            self._failed = False
            self._frames_written = 0
            self._power_db = SILENCE_DB
            self._open_writer()
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                self._running = True
                self._stream.start()
            except Exception as exc:
                self._running = False
                self._close_stream()
                self._discard_writer()
                raise CaptureError(DEVICE_CONFIGURATION_FAILED, str(exc)) from exc
            logger.debug("Capture started at %s Hz into %s", self.sample_rate, self._path)

    def end(self) -> AudioAsset:
        with self._lock:
            if self._path is None:
                raise CaptureError(EMPTY_RECORDING, "capture was never started")
            self._running = False
            self._close_stream()
            path = self._path
            frames = self._frames_written
            try:
                self._close_writer()
            except (OSError, wave.Error) as exc:
                self._discard_file(path)
                raise CaptureError(ENCODING_ERROR, str(exc)) from exc
            self._path = None
        if frames == 0:
            self._discard_file(path)
            raise CaptureError(EMPTY_RECORDING)
        logger.debug("Capture finished: %d frames in %s", frames, path)
        return AudioAsset(path=path, extension="wav", disposable=True)

    def release(self) -> None:
        with self._lock:
            self._running = False
            self._close_stream()
            self._discard_writer()

    def sample_level(self) -> float:
        return normalized_power(self._power_db)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        writer = self._writer
        if not self._running or writer is None or self._failed:
            return
        if status:
            logger.warning("Input stream status: %s", status)
        samples = np.asarray(indata, dtype=np.int16)
        try:
            writer.writeframes(samples.tobytes())
        except (OSError, wave.Error) as exc:
            self._failed = True
            logger.error("Writing captured audio failed: %s", exc)
            if self._on_error is not None:
                # The handler releases the stream, which PortAudio forbids from its own callback.
                threading.Thread(
                    target=self._on_error, args=(ENCODING_ERROR, str(exc)), daemon=True
                ).start()
            return
        self._frames_written += len(samples)
        if samples.size:
            scaled = samples.astype(np.float32) / 32768.0
            rms = float(np.sqrt(np.mean(scaled * scaled)))
            self._power_db = power_to_db(rms)

    def _open_writer(self) -> None:
        try:
            fd, name = tempfile.mkstemp(prefix="recorded-", suffix=".wav", dir=self._temp_dir)
            os.close(fd)
            writer = wave.open(name, "wb")
            writer.setnchannels(self.channels)
            writer.setsampwidth(2)
            writer.setframerate(self.sample_rate)
        except (OSError, wave.Error) as exc:
            raise CaptureError(DEVICE_CONFIGURATION_FAILED, f"cannot create audio file: {exc}") from exc
        self._path = Path(name)
        self._writer = writer

    def _close_writer(self) -> None:
        writer = self._writer
        self._writer = None
        if writer is not None:
            writer.close()

    def _discard_writer(self) -> None:
        path = self._path
        self._path = None
        try:
            self._close_writer()
        except (OSError, wave.Error):
            logger.debug("Ignoring close failure on discarded capture", exc_info=True)
        if path is not None:
            self._discard_file(path)

    def _close_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception:
            logger.warning("Closing the input stream failed", exc_info=True)

    @staticmethod
    def _discard_file(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove %s", path)


class FixtureCapture:
    """Offline stand-in: serves a bundled clip and synthetic levels."""

    def __init__(self, fixture_path: Path = DEFAULT_FIXTURE, seed: Optional[int] = None) -> None:
        self.fixture_path = Path(fixture_path)
        self._rng = random.Random(seed)
        self._active = False

    def begin(self, on_error: ErrorHandler) -> None:
        if not self.fixture_path.is_file():
            raise CaptureError(FIXTURE_NOT_FOUND, f"missing fixture {self.fixture_path}")
        self._active = True

    def end(self) -> AudioAsset:
        self._active = False
        if not self.fixture_path.is_file():
            raise CaptureError(FIXTURE_NOT_FOUND, f"missing fixture {self.fixture_path}")
        suffix = self.fixture_path.suffix.lstrip(".") or "wav"
        return AudioAsset(path=self.fixture_path, extension=suffix, disposable=False)

    def release(self) -> None:
        self._active = False

    def sample_level(self) -> float:
        return self._rng.random()


def build_capture_backend(settings: Any) -> CaptureBackend:
    """Pick the device recorder, or the fixture when forced or no mic exists."""
    if settings.use_fixture_capture or not input_device_available():
        logger.info("Using fixture capture from %s", settings.fixture_path)
        return FixtureCapture(Path(settings.fixture_path))
    return SoundDeviceCapture(sample_rate=settings.sample_rate_hz)
