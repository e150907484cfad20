"""Microphone permission gate and the sounddevice-backed provider."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from interfaces import AuthorizationProvider
from logging_setup import get_logger
from models import AuthorizationStatus

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = get_logger("permissions")

StatusCallback = Callable[[AuthorizationStatus], None]


class PermissionGate:
    """Caches the single answer of an AuthorizationProvider.

    There is no timeout: if the provider never answers, ``status`` stays
    UNDETERMINED for the life of the gate.
    """

    def __init__(self, provider: AuthorizationProvider) -> None:
        self._provider = provider
        self._lock = threading.Lock()
        self._status = AuthorizationStatus.UNDETERMINED
        self._requested = False
        self._answered = False

    @property
    def status(self) -> AuthorizationStatus:
        return self._status

    def request_authorization(self, on_status: Optional[StatusCallback] = None) -> None:
        with self._lock:
            if self._requested:
                logger.debug("Authorization already requested; ignoring")
                return
            self._requested = True

        def _deliver(status: AuthorizationStatus) -> None:
            with self._lock:
                if self._answered:
                    logger.warning("Duplicate authorization answer %s dropped", status.value)
                    return
                self._answered = True
                self._status = status
            logger.info("Authorization status: %s", status.value)
            if on_status:
                on_status(status)

        self._provider.request_authorization(_deliver)


class SoundDevicePermissionProvider:
    """Answers by probing the input device from a background thread."""

    def __init__(self, device: Any = None, sample_rate: int = 16000) -> None:
        self._device = device
        self._sample_rate = sample_rate

    def request_authorization(self, on_status: StatusCallback) -> None:
        threading.Thread(
            target=lambda: on_status(self.probe()),
            name="voicetap-permission",
            daemon=True,
        ).start()

    def probe(self) -> AuthorizationStatus:
        if sd is None:
            logger.error("sounddevice is not installed")
            return AuthorizationStatus.RESTRICTED
        try:
            sd.query_devices(self._device, kind="input")
        except Exception as exc:
            logger.warning("No input device: %s", exc)
            return AuthorizationStatus.RESTRICTED
        try:
            stream = sd.InputStream(
                device=self._device,
                samplerate=self._sample_rate,
                channels=1,
                dtype="int16",
                blocksize=512,
            )
            stream.close()
        except Exception as exc:
            logger.warning("Microphone access test failed: %s", exc)
            return AuthorizationStatus.DENIED
        return AuthorizationStatus.AUTHORIZED
