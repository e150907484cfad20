from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from config import JsonConfigStore
from models import RecordingPolicy


def test_config_defaults(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")

    with patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False):
        assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_l"
    assert store.get_model() == "paraformer-realtime-v2"
    assert store.get_recording_policy() == RecordingPolicy.SINGLE_UTTERANCE
    assert store.get_sample_rate() == 16000
    assert store.get_buffer_size_frames() == 1024
    assert store.get_log_level() == "INFO"
    assert store.get_log_json() is False
    assert store.config_dir == tmp_path


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    store.set_api_key("abc")
    store.set_hotkey("Key.alt_r")
    store.set_recording_policy(RecordingPolicy.CONTINUOUS)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.alt_r"
    assert reloaded.get_recording_policy() == RecordingPolicy.CONTINUOUS


def test_api_key_falls_back_to_environment(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")

    with patch.dict("os.environ", {"DASHSCOPE_API_KEY": "env-key"}, clear=False):
        assert store.get_api_key() == "env-key"
        store.set_api_key("file-key")
        assert store.get_api_key() == "file-key"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_hotkey() == "Key.alt_l"
    assert store.get_recording_policy() == RecordingPolicy.SINGLE_UTTERANCE


def test_log_json_accepts_bool_and_string(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"log_json": true}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_log_json() is True

    path.write_text('{"log_json": "off"}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_log_json() is False

    path.write_text('{"log_json": "yes"}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_log_json() is True

def test_config_bad_values_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        '{"recording_policy": "forever", "sample_rate": "fast", "log_level": "debug"}',
        encoding="utf-8",
    )

    store = JsonConfigStore(path=path)
    assert store.get_recording_policy() == RecordingPolicy.SINGLE_UTTERANCE
    assert store.get_sample_rate() == 16000
    assert store.get_log_level() == "DEBUG"
