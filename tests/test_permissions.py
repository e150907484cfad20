"""Tests for PermissionGate and SoundDevicePermissionProvider."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

from models import AuthorizationStatus
from permissions import PermissionGate, SoundDevicePermissionProvider


class CountingProvider:
    def __init__(self) -> None:
        self.calls = 0
        self.on_status = None

    def request_authorization(self, on_status) -> None:  # noqa: ANN001
        self.calls += 1
        self.on_status = on_status


def test_gate_starts_undetermined_and_caches_answer() -> None:
    provider = CountingProvider()
    gate = PermissionGate(provider)
    answers: list[AuthorizationStatus] = []

    assert gate.status == AuthorizationStatus.UNDETERMINED
    gate.request_authorization(answers.append)
    assert gate.status == AuthorizationStatus.UNDETERMINED

    provider.on_status(AuthorizationStatus.DENIED)

    assert gate.status == AuthorizationStatus.DENIED
    assert answers == [AuthorizationStatus.DENIED]


def test_gate_requests_once_and_delivers_once() -> None:
    provider = CountingProvider()
    gate = PermissionGate(provider)
    answers: list[AuthorizationStatus] = []

    gate.request_authorization(answers.append)
    gate.request_authorization(answers.append)
    provider.on_status(AuthorizationStatus.AUTHORIZED)
    provider.on_status(AuthorizationStatus.RESTRICTED)

    assert provider.calls == 1
    assert answers == [AuthorizationStatus.AUTHORIZED]
    assert gate.status == AuthorizationStatus.AUTHORIZED


def test_gate_without_answer_stays_undetermined() -> None:
    gate = PermissionGate(CountingProvider())
    gate.request_authorization()

    assert gate.status == AuthorizationStatus.UNDETERMINED


@patch("permissions.sd")
def test_probe_authorized_when_stream_opens(mock_sd: MagicMock) -> None:
    provider = SoundDevicePermissionProvider()

    assert provider.probe() == AuthorizationStatus.AUTHORIZED
    mock_sd.InputStream.return_value.close.assert_called_once()


@patch("permissions.sd")
def test_probe_restricted_without_input_device(mock_sd: MagicMock) -> None:
    mock_sd.query_devices.side_effect = ValueError("No input device matching ''")

    assert SoundDevicePermissionProvider().probe() == AuthorizationStatus.RESTRICTED
    mock_sd.InputStream.assert_not_called()


@patch("permissions.sd")
def test_probe_denied_when_stream_fails(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.side_effect = Exception("Error opening InputStream: Internal PortAudio error")

    assert SoundDevicePermissionProvider().probe() == AuthorizationStatus.DENIED


def test_probe_restricted_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import permissions as perm_mod
    monkeypatch.setattr(perm_mod, "sd", None)

    assert SoundDevicePermissionProvider().probe() == AuthorizationStatus.RESTRICTED


@patch("permissions.sd")
def test_provider_answers_from_background_thread(mock_sd: MagicMock) -> None:
    provider = SoundDevicePermissionProvider()
    done = threading.Event()
    answers: list[tuple[AuthorizationStatus, str]] = []

    def _on_status(status: AuthorizationStatus) -> None:
        answers.append((status, threading.current_thread().name))
        done.set()

    provider.request_authorization(_on_status)

    assert done.wait(timeout=2.0)
    assert answers == [(AuthorizationStatus.AUTHORIZED, "voicetap-permission")]
