"""State-machine based session orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from dispatcher import ResultDispatcher
from errors import DEVICE_CONFIGURATION_FAILED, ENCODING_ERROR, NETWORK_ERROR, CaptureError, describe
from interfaces import CaptureBackend, Transcriber
from level_meter import LevelMeter, WaveformBuffer
from models import STATUS_MESSAGES, AudioAsset, Feedback, SessionState, TranscriptResult

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
FeedbackCallback = Callable[[Feedback], None]
WaveformCallback = Callable[[tuple], None]


class SessionController:
    """Sole owner of the capture session.

    Every mutation happens under ``_lock``.  Work that runs elsewhere (meter
    ticks, device callbacks, the transcription request) reports back through
    ``_handle_*`` methods tagged with the session id it belongs to, and is
    dropped once that session has been superseded.
    """

    def __init__(
        self,
        capture: CaptureBackend,
        transcriber: Transcriber,
        dispatcher: ResultDispatcher,
        meter_interval_s: float = 0.05,
        on_state_change: Optional[StateCallback] = None,
        on_feedback: Optional[FeedbackCallback] = None,
        on_waveform: Optional[WaveformCallback] = None,
    ) -> None:
        self._capture = capture
        self._transcriber = transcriber
        self._dispatcher = dispatcher
        self._meter_interval_s = meter_interval_s
        self._on_state_change = on_state_change
        self._on_feedback = on_feedback
        self._on_waveform = on_waveform

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._status_message = STATUS_MESSAGES[SessionState.IDLE]
        self._session_id = 0
        self._waveform = WaveformBuffer()
        self._meter: Optional[LevelMeter] = None
        self._asset: Optional[AudioAsset] = None
        self._last_error: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def waveform(self) -> tuple[float, ...]:
        with self._lock:
            return self._waveform.snapshot()

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def session_id(self) -> int:
        return self._session_id

    def start_session(self) -> None:
        with self._lock:
            if self._state == SessionState.RECORDING:
                return
            self._session_id += 1
            session_id = self._session_id
            self._asset = None
            self._last_error = None
            self._waveform.reset()
            try:
                self._capture.begin(
                    lambda code, message: self._handle_capture_error(session_id, code, message)
                )
            except CaptureError as exc:
                self._fail(exc.code, exc.message)
                return
            except Exception as exc:
                self._fail(DEVICE_CONFIGURATION_FAILED, str(exc))
                return
            self._transition(SessionState.RECORDING)
            self._meter = LevelMeter(
                self._capture.sample_level,
                lambda value: self._handle_level(session_id, value),
                interval_s=self._meter_interval_s,
            )
            self._meter.start()

    def stop_session(self) -> None:
        with self._lock:
            if self._state != SessionState.RECORDING:
                return
            session_id = self._session_id
            self._stop_meter()
            # Finalize runs on the caller thread under the lock; only the upload is offloaded.
            try:
                asset = self._capture.end()
            except CaptureError as exc:
                self._fail(exc.code, exc.message)
                return
            except Exception as exc:
                self._fail(ENCODING_ERROR, str(exc))
                return
            self._asset = asset
            self._transition(SessionState.PROCESSING)
            worker = threading.Thread(
                target=self._run_transcription,
                args=(session_id, self._transcriber, asset),
                name=f"transcribe-{session_id}",
                daemon=True,
            )
            worker.start()

    # Trigger interface for the push-to-talk button.
    on_press_start = start_session
    on_press_end = stop_session

    def cancel_session(self, reason: str) -> None:
        with self._lock:
            if self._state == SessionState.IDLE:
                return
            logger.info("Cancelling session %d: %s", self._session_id, reason)
            self._session_id += 1
            self._stop_meter()
            self._release_capture()
            self._transition(SessionState.IDLE)

    def replace_transcriber(self, transcriber: Transcriber) -> None:
        with self._lock:
            self._transcriber = transcriber

    def _run_transcription(
        self, session_id: int, transcriber: Transcriber, asset: AudioAsset
    ) -> None:
        try:
            result = transcriber.transcribe(asset)
        except Exception as exc:
            logger.exception("Transcriber raised for session %d", session_id)
            result = TranscriptResult.failure(NETWORK_ERROR, str(exc))
        finally:
            try:
                asset.discard()
            except OSError:
                logger.warning("Could not discard %s", asset.path)
        self._handle_transcript(session_id, result)

    def _handle_transcript(self, session_id: int, result: TranscriptResult) -> None:
        with self._lock:
            if session_id != self._session_id or self._state != SessionState.PROCESSING:
                logger.info("Dropping late transcript for superseded session %d", session_id)
                return
            if not result.ok:
                self._fail(result.code, result.message)
                return
            logger.info(
                "Session %d transcribed %d characters (request %s)",
                session_id,
                len(result.text),
                result.request_id or "-",
            )
            self._transition(SessionState.COMPLETE)
            self._dispatcher.publish(result.text)
            self._emit_feedback(Feedback.POSITIVE)

    def _handle_capture_error(self, session_id: int, code: str, message: str) -> None:
        with self._lock:
            if session_id != self._session_id or self._state != SessionState.RECORDING:
                return
            self._fail(code, message)

    def _handle_level(self, session_id: int, value: float) -> None:
        with self._lock:
            if session_id != self._session_id or self._state != SessionState.RECORDING:
                return
            self._waveform.push(value)
            snapshot = self._waveform.snapshot()
            if self._on_waveform:
                self._on_waveform(snapshot)

    def _fail(self, code: str, detail: str) -> None:
        logger.error("Session %d failed with %s: %s", self._session_id, code, detail)
        self._stop_meter()
        self._release_capture()
        self._last_error = code
        self._transition(SessionState.ERROR, describe(code, detail))
        self._emit_feedback(Feedback.NEGATIVE)

    def _emit_feedback(self, feedback: Feedback) -> None:
        if self._on_feedback:
            self._on_feedback(feedback)

    def _stop_meter(self) -> None:
        meter = self._meter
        self._meter = None
        if meter is not None:
            # The tick thread may be waiting on _lock; late samples are dropped by state.
            meter.stop(wait=False)

    def _release_capture(self) -> None:
        try:
            self._capture.release()
        except Exception:
            logger.warning("Releasing the capture device failed", exc_info=True)

    def _transition(self, to_state: SessionState, message: Optional[str] = None) -> None:
        from_state = self._state
        self._status_message = message or STATUS_MESSAGES.get(to_state, "")
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("Session %d: %s -> %s", self._session_id, from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
