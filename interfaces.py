"""Protocol interfaces used by RecognitionSessionManager."""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Protocol

from models import AudioBuffer, AudioFormat, AuthorizationStatus, TranscriptionResult
from streaming_request import StreamingRecognitionRequest

ResultHandler = Callable[[Optional[TranscriptionResult], Optional[Exception]], None]
AvailabilityListener = Callable[[bool], None]


class AuthorizationProvider(Protocol):
    def request_authorization(self, on_status: Callable[[AuthorizationStatus], None]) -> None: ...


class AudioSession(Protocol):
    def configure_for_recording(self, audio_format: AudioFormat) -> None: ...


class AudioCapture(Protocol):
    def input_format(self) -> Optional[AudioFormat]: ...

    def arm(self, buffer_size_frames: int, audio_format: AudioFormat) -> Iterator[AudioBuffer]: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def disarm(self) -> None: ...

    def is_running(self) -> bool: ...


class RecognitionTask(Protocol):
    def cancel(self) -> None: ...


class RecognitionEngine(Protocol):
    @property
    def is_available(self) -> bool: ...

    def set_availability_listener(self, listener: Optional[AvailabilityListener]) -> None: ...

    def create_request(self) -> StreamingRecognitionRequest: ...

    def recognition_task(
        self,
        request: StreamingRecognitionRequest,
        result_handler: ResultHandler,
    ) -> RecognitionTask: ...


class Dispatcher(Protocol):
    def post(self, fn: Callable[[], None]) -> None: ...
