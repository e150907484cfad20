"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

DENIED = "DENIED"
NOT_DETERMINED = "NOT_DETERMINED"
RESTRICTED = "RESTRICTED"
AUDIO_SESSION_UNAVAILABLE = "AUDIO_SESSION_UNAVAILABLE"
INPUT_NODE_UNAVAILABLE = "INPUT_NODE_UNAVAILABLE"
INVALID_RECOGNITION_REQUEST = "INVALID_RECOGNITION_REQUEST"
AUDIO_ENGINE_UNAVAILABLE = "AUDIO_ENGINE_UNAVAILABLE"

ERROR_MESSAGES = {
    DENIED: "Microphone access was denied. Allow it in system settings.",
    NOT_DETERMINED: "Still waiting for microphone permission.",
    RESTRICTED: "Microphone access is restricted on this device.",
    AUDIO_SESSION_UNAVAILABLE: "Audio input could not be configured for recording.",
    INPUT_NODE_UNAVAILABLE: "No audio input device is available.",
    INVALID_RECOGNITION_REQUEST: "Speech recognition request could not be created.",
    AUDIO_ENGINE_UNAVAILABLE: "Audio capture could not be started.",
}


class SpeechRecognitionError(Exception):
    """Raised by start()/toggle() when a session cannot be started."""

    def __init__(self, code: str, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        message = ERROR_MESSAGES.get(code, code)
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class HardwareUnavailable(Exception):
    """Capture device or audio session could not be used."""


class RecognitionEngineError(Exception):
    """Recognition engine refused a request or reported a failure."""
