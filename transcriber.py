"""HTTP transcription client.

Uploads a captured clip as ``multipart/form-data`` to an OpenAI-compatible
``/audio/transcriptions`` endpoint and turns the JSON reply into a
:class:`TranscriptResult`.  The client never raises: every failure comes back
as a result carrying one of the codes from :mod:`errors`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from errors import DECODE_ERROR, EMPTY_RECORDING, NETWORK_ERROR
from models import AudioAsset, TranscriptResult

logger = logging.getLogger(__name__)


class HttpTranscriber:
    def __init__(
        self,
        endpoint: str,
        auth_token: str,
        model: str = "whisper-large-v3",
        language: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._endpoint = endpoint
        self._auth_token = auth_token
        self._model = model
        self._language = language
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_s)

    def transcribe(self, asset: AudioAsset) -> TranscriptResult:
        try:
            audio = asset.read_bytes()
        except OSError as exc:
            logger.warning("Audio file missing at %s: %s", asset.path, exc)
            return TranscriptResult.failure(EMPTY_RECORDING, str(exc))
        if not audio:
            logger.warning("Audio file empty at %s", asset.path)
            return TranscriptResult.failure(EMPTY_RECORDING, "audio file is empty")

        try:
            response = self._client.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {self._auth_token}"},
                files=self._build_parts(asset, audio),
            )
        except httpx.HTTPError as exc:
            logger.error("Transcription request failed: %s", exc)
            return TranscriptResult.failure(NETWORK_ERROR, str(exc) or type(exc).__name__)

        logger.debug("Raw transcription response (%s): %s", response.status_code, response.text)
        if response.is_error:
            # The server answered; only transport failures count as network errors.
            return TranscriptResult.failure(
                DECODE_ERROR, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        return self._parse(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _build_parts(self, asset: AudioAsset, audio: bytes) -> list[tuple[str, Any]]:
        # Passed as ``files`` so the parts keep this order on the wire.
        parts: list[tuple[str, Any]] = [
            ("file", (asset.upload_name, audio, asset.content_type)),
            ("model", (None, self._model.encode("utf-8"))),
        ]
        if self._language:
            parts.append(("language", (None, self._language.encode("utf-8"))))
        return parts

    def _parse(self, response: httpx.Response) -> TranscriptResult:
        if not response.content:
            return TranscriptResult.failure(DECODE_ERROR, "empty response body")
        try:
            payload = response.json()
        except ValueError as exc:
            return TranscriptResult.failure(DECODE_ERROR, f"response is not JSON: {exc}")
        if not isinstance(payload, dict):
            return TranscriptResult.failure(DECODE_ERROR, "response is not a JSON object")
        text = payload.get("text")
        if not isinstance(text, str):
            return TranscriptResult.failure(DECODE_ERROR, "response has no text field")
        return TranscriptResult.success(text, _extract_request_id(payload))


def _extract_request_id(payload: dict) -> Optional[str]:
    """Find a request id in a nested metadata object such as ``x_groq``."""
    for value in payload.values():
        if isinstance(value, dict) and isinstance(value.get("id"), str):
            return value["id"]
    return None
