"""Shared error codes and user-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_CONFIGURATION_FAILED = "DEVICE_CONFIGURATION_FAILED"
EMPTY_RECORDING = "EMPTY_RECORDING"
ENCODING_ERROR = "ENCODING_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
DECODE_ERROR = "DECODE_ERROR"
FIXTURE_NOT_FOUND = "FIXTURE_NOT_FOUND"
NO_ACTIVE_TARGET = "NO_ACTIVE_TARGET"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission denied.",
    DEVICE_CONFIGURATION_FAILED: "Audio session configuration failed.",
    EMPTY_RECORDING: "Audio file is empty.",
    ENCODING_ERROR: "Recording encoding error.",
    NETWORK_ERROR: "Network error, please retry.",
    DECODE_ERROR: "Transcription failed.",
    FIXTURE_NOT_FOUND: "Recording file not found.",
    NO_ACTIVE_TARGET: "No active input target, result kept in clipboard.",
}


def describe(code: str, detail: str = "") -> str:
    """Build the status line shown to the user for an error code."""
    base = ERROR_MESSAGES.get(code, "Something went wrong.")
    if code == NETWORK_ERROR and detail:
        return f"Network error: {detail}"
    return base


class CaptureError(Exception):
    """Raised by capture backends; ``code`` is one of the constants above."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(f"{code}: {self.message}")
