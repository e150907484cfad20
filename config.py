"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from models import RecordingPolicy

DEFAULTS: dict[str, Any] = {
    "api_key": "",
    "hotkey": "Key.alt_l",
    "model": "paraformer-realtime-v2",
    "recording_policy": RecordingPolicy.SINGLE_UTTERANCE.value,
    "sample_rate": 16000,
    "buffer_size_frames": 1024,
    "log_level": "INFO",
    "log_json": False,
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voicetap" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def config_dir(self) -> Path:
        return self._path.parent

    def get_api_key(self) -> str:
        key = str(self._get("api_key"))
        return key or os.getenv("DASHSCOPE_API_KEY", "")

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._get("hotkey"))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_model(self) -> str:
        return str(self._get("model"))

    def get_recording_policy(self) -> RecordingPolicy:
        try:
            return RecordingPolicy(self._get("recording_policy"))
        except ValueError:
            return RecordingPolicy.SINGLE_UTTERANCE

    def set_recording_policy(self, policy: RecordingPolicy) -> None:
        self._set("recording_policy", policy.value)

    def get_sample_rate(self) -> int:
        return self._get_int("sample_rate")

    def get_buffer_size_frames(self) -> int:
        return self._get_int("buffer_size_frames")

    def get_log_level(self) -> str:
        return str(self._get("log_level")).upper()

    def get_log_json(self) -> bool:
        value = self._get("log_json")
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def _get(self, key: str) -> Any:
        return self._read_all().get(key, DEFAULTS[key])

    def _get_int(self, key: str) -> int:
        try:
            return int(self._get(key))
        except (TypeError, ValueError):
            return int(DEFAULTS[key])

    def _set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

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
