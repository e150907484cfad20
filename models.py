"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RecordingPolicy(str, Enum):
    SINGLE_UTTERANCE = "single_utterance"
    CONTINUOUS = "continuous"


class AuthorizationStatus(str, Enum):
    UNDETERMINED = "UNDETERMINED"
    AUTHORIZED = "AUTHORIZED"
    DENIED = "DENIED"
    RESTRICTED = "RESTRICTED"


class ManagerState(str, Enum):
    IDLE = "IDLE"
    AWAITING_PERMISSION = "AWAITING_PERMISSION"
    CAPTURING = "CAPTURING"
    STOPPING = "STOPPING"


class StateUpdateKind(str, Enum):
    AUTHORIZED = "authorized"
    AUDIO_ENGINE_START = "audio_engine_start"
    AUDIO_ENGINE_STOP = "audio_engine_stop"
    TASK_CANCELLED = "task_cancelled"
    SPEECH_RECOGNIZED = "speech_recognized"
    SPEECH_NOT_RECOGNIZED = "speech_not_recognized"
    AVAILABILITY_CHANGED = "availability_changed"
    SESSION_STOPPED = "session_stopped"


@dataclass(frozen=True)
class StateUpdate:
    kind: StateUpdateKind
    text: str = ""
    available: Optional[bool] = None


@dataclass(frozen=True)
class AudioFormat:
    sample_rate: int = 16000
    channels: int = 1
    dtype: str = "int16"


@dataclass
class AudioBuffer:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    frame_count: int = 0
    timestamp_ms: int = 0


@dataclass
class TranscriptionResult:
    best_transcription: str = ""
    is_final: bool = False
