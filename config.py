"""Simple JSON-based config store with environment overrides."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

from recorder import DEFAULT_FIXTURE

DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_MODEL = "whisper-large-v3"
DEFAULT_HOTKEY = "Key.alt_l"

ENV_OVERRIDES = {
    "endpoint": "TRANSCRIBE_ENDPOINT",
    "auth_token": "TRANSCRIBE_API_KEY",
    "model": "TRANSCRIBE_MODEL",
    "language": "TRANSCRIBE_LANGUAGE",
    "use_fixture_capture": "HOLD2TYPE_FIXTURE_CAPTURE",
}


@dataclass
class Settings:
    endpoint: str = DEFAULT_ENDPOINT
    auth_token: str = ""
    model: str = DEFAULT_MODEL
    language: Optional[str] = None
    sample_rate_hz: int = 16000
    use_fixture_capture: bool = False
    fixture_path: Path = DEFAULT_FIXTURE
    request_timeout_s: float = 30.0
    hotkey: str = DEFAULT_HOTKEY


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "hold2type" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_auth_token(self) -> str:
        data = self._read_all()
        return str(data.get("auth_token", ""))

    def set_auth_token(self, token: str) -> None:
        data = self._read_all()
        data["auth_token"] = token
        self._write_all(data)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def load_settings(self) -> Settings:
        """Merge defaults, the JSON file and environment variables, in that order."""
        data = self._read_all()
        for key, env_name in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                data[key] = value

        settings = Settings()
        for field in fields(Settings):
            if field.name not in data or data[field.name] is None:
                continue
            value = data[field.name]
            try:
                if field.name == "sample_rate_hz":
                    value = int(value)
                elif field.name == "request_timeout_s":
                    value = float(value)
                elif field.name == "use_fixture_capture":
                    value = _as_bool(value)
                elif field.name == "fixture_path":
                    value = Path(value).expanduser()
                else:
                    value = str(value)
            except (TypeError, ValueError):
                continue
            setattr(settings, field.name, value)
        if not settings.language:
            settings.language = None
        return settings

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
