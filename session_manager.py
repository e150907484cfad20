"""State-machine based recognition session orchestration."""

from __future__ import annotations

import threading
from typing import Callable, Iterator, Optional

from dispatch import SerialDispatcher
from errors import (
    AUDIO_ENGINE_UNAVAILABLE,
    AUDIO_SESSION_UNAVAILABLE,
    DENIED,
    INPUT_NODE_UNAVAILABLE,
    INVALID_RECOGNITION_REQUEST,
    NOT_DETERMINED,
    RESTRICTED,
    HardwareUnavailable,
    RecognitionEngineError,
    SpeechRecognitionError,
)
from interfaces import AudioCapture, AudioSession, Dispatcher, RecognitionEngine, RecognitionTask
from logging_setup import get_logger
from models import (
    AudioBuffer,
    AudioFormat,
    AuthorizationStatus,
    ManagerState,
    RecordingPolicy,
    StateUpdate,
    StateUpdateKind,
    TranscriptionResult,
)
from permissions import PermissionGate
from streaming_request import StreamingRecognitionRequest

logger = get_logger("session_manager")

AuthorizedCallback = Callable[[], None]
StateUpdateCallback = Callable[[StateUpdate], None]

DEFAULT_BUFFER_SIZE_FRAMES = 1024

_STATUS_ERRORS = {
    AuthorizationStatus.DENIED: DENIED,
    AuthorizationStatus.UNDETERMINED: NOT_DETERMINED,
    AuthorizationStatus.RESTRICTED: RESTRICTED,
}


class RecognitionSessionManager:
    """Runs the authorize, start, stream, finalize lifecycle.

    All session state is mutated under ``self._lock``; authorization answers
    and recognition results arrive on collaborator threads and enter through
    the same lock. Notifications for the caller are posted to ``dispatcher``
    in the order they are emitted.

    There is no timeout on the authorization request or on the engine. If
    either never answers, the manager stays in its current state.
    """

    def __init__(
        self,
        permission_gate: PermissionGate,
        capture: AudioCapture,
        audio_session: AudioSession,
        engine: RecognitionEngine,
        on_authorized: Optional[AuthorizedCallback] = None,
        on_state_update: Optional[StateUpdateCallback] = None,
        recording_policy: RecordingPolicy = RecordingPolicy.SINGLE_UTTERANCE,
        dispatcher: Optional[Dispatcher] = None,
        buffer_size_frames: int = DEFAULT_BUFFER_SIZE_FRAMES,
        audio_format: Optional[AudioFormat] = None,
    ) -> None:
        self._gate = permission_gate
        self._capture = capture
        self._audio_session = audio_session
        self._engine = engine
        self._on_authorized = on_authorized
        self._on_state_update = on_state_update
        self._recording_policy = recording_policy
        # a worker started here is closed by close(); an injected dispatcher belongs to the caller
        self._owned_dispatcher: Optional[SerialDispatcher] = SerialDispatcher() if dispatcher is None else None
        self._dispatcher: Dispatcher = dispatcher if dispatcher is not None else self._owned_dispatcher
        self._buffer_size_frames = buffer_size_frames
        self._audio_format = audio_format or AudioFormat()

        self._lock = threading.RLock()
        self._state = ManagerState.AWAITING_PERMISSION
        self._session_id = 0
        self._request: Optional[StreamingRecognitionRequest] = None
        self._task: Optional[RecognitionTask] = None
        self._tap_thread: Optional[threading.Thread] = None
        self._recognized_text = ""

        self._engine.set_availability_listener(self._handle_availability)
        self._gate.request_authorization(self._handle_authorization)

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._capture.is_running()

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._gate.status

    @property
    def last_recognized_text(self) -> str:
        return self._recognized_text

    @property
    def recording_policy(self) -> RecordingPolicy:
        return self._recording_policy

    def start(self) -> None:
        """Start a session, or finish the audio of the running one."""
        with self._lock:
            self._require_authorization()
            if self._capture.is_running():
                self._finish_audio()
                return
            self._run()

    def toggle(self) -> None:
        """Fully stop a running session, or start a new one."""
        with self._lock:
            if self._capture.is_running():
                self._stop()
                return
            self._require_authorization()
            self._run()

    def stop(self) -> None:
        """Tear the session down. Emits nothing when already idle."""
        with self._lock:
            self._stop()

    def close(self) -> None:
        """Stop the session and shut down the notification worker, if this manager started one."""
        with self._lock:
            self._stop()
        if self._owned_dispatcher is not None:
            self._owned_dispatcher.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_authorization(self) -> None:
        status = self._gate.status
        if status == AuthorizationStatus.AUTHORIZED:
            return
        raise SpeechRecognitionError(_STATUS_ERRORS[status])

    def _run(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._emit(StateUpdate(StateUpdateKind.TASK_CANCELLED))
            self._task = None

        self._session_id += 1
        session_id = self._session_id
        try:
            try:
                self._audio_session.configure_for_recording(self._audio_format)
            except HardwareUnavailable as exc:
                raise SpeechRecognitionError(AUDIO_SESSION_UNAVAILABLE, str(exc)) from exc

            try:
                self._request = self._engine.create_request()
            except RecognitionEngineError as exc:
                raise SpeechRecognitionError(INVALID_RECOGNITION_REQUEST, str(exc)) from exc
            request = self._request
            request.report_partial_results = True

            input_format = self._capture.input_format()
            if input_format is None:
                raise SpeechRecognitionError(INPUT_NODE_UNAVAILABLE)

            def _on_result(
                result: Optional[TranscriptionResult],
                error: Optional[Exception],
            ) -> None:
                self._handle_result(session_id, result, error)

            try:
                self._task = self._engine.recognition_task(request, _on_result)
            except RecognitionEngineError as exc:
                raise SpeechRecognitionError(INVALID_RECOGNITION_REQUEST, str(exc)) from exc

            self._remove_tap()
            try:
                buffers = self._capture.arm(self._buffer_size_frames, input_format)
                self._install_tap(buffers, request)
                self._capture.start()
            except HardwareUnavailable as exc:
                raise SpeechRecognitionError(AUDIO_ENGINE_UNAVAILABLE, str(exc)) from exc
        except SpeechRecognitionError as exc:
            logger.warning("Session %s failed to start: %s", session_id, exc.code)
            self._stop()
            raise
        except Exception:
            logger.exception("Session %s failed to start", session_id)
            self._stop()
            raise

        self._transition(ManagerState.CAPTURING)
        self._emit(StateUpdate(StateUpdateKind.AUDIO_ENGINE_START))

    def _install_tap(self, buffers: Iterator[AudioBuffer], request: StreamingRecognitionRequest) -> None:
        def _pump() -> None:
            for buffer in buffers:
                request.append(buffer)

        self._tap_thread = threading.Thread(target=_pump, name="voicetap-tap", daemon=True)
        self._tap_thread.start()

    def _remove_tap(self) -> None:
        if self._tap_thread is None:
            return
        self._capture.disarm()
        self._tap_thread.join(timeout=0.5)
        self._tap_thread = None

    def _finish_audio(self) -> None:
        self._capture.stop()
        self._remove_tap()
        if self._request is not None:
            self._request.end_audio()
            self._request = None
        self._emit(StateUpdate(StateUpdateKind.AUDIO_ENGINE_STOP))
        self._transition(ManagerState.STOPPING)

    def _stop(self) -> None:
        if self._capture.is_running():
            self._capture.stop()
            if self._request is not None:
                self._request.end_audio()
            self._emit(StateUpdate(StateUpdateKind.AUDIO_ENGINE_STOP))
            self._emit(StateUpdate(StateUpdateKind.SESSION_STOPPED, text=self._recognized_text))
        self._remove_tap()

        if self._request is not None:
            self._request.end_audio()
            self._request = None

        if self._task is not None:
            self._task.cancel()
            self._emit(StateUpdate(StateUpdateKind.TASK_CANCELLED))
            self._task = None

        if self._state != ManagerState.AWAITING_PERMISSION:
            self._transition(ManagerState.IDLE)

    def _handle_result(
        self,
        session_id: int,
        result: Optional[TranscriptionResult],
        error: Optional[Exception],
    ) -> None:
        with self._lock:
            if session_id != self._session_id or self._task is None:
                logger.debug("Discarding result from finished session %s", session_id)
                return

            is_final = False
            if result is not None:
                if result.best_transcription:
                    self._recognized_text = result.best_transcription
                    self._emit(StateUpdate(StateUpdateKind.SPEECH_RECOGNIZED, text=result.best_transcription))
                    is_final = True
                else:
                    self._emit(StateUpdate(StateUpdateKind.SPEECH_NOT_RECOGNIZED))
                    is_final = result.is_final

            if error is not None:
                logger.warning("Recognition failed in session %s: %s", session_id, error)
            engine_done = error is not None or (result is not None and result.is_final)

            if self._recording_policy == RecordingPolicy.SINGLE_UTTERANCE:
                if error is not None or is_final:
                    self._stop()
            elif self._state == ManagerState.STOPPING and engine_done:
                # audio already ended; nothing more will arrive for this session
                self._task = None
                self._transition(ManagerState.IDLE)

    def _handle_authorization(self, status: AuthorizationStatus) -> None:
        with self._lock:
            if self._state == ManagerState.AWAITING_PERMISSION:
                self._transition(ManagerState.IDLE)
            if status != AuthorizationStatus.AUTHORIZED:
                return
            if self._on_authorized:
                self._dispatcher.post(self._on_authorized)
            self._emit(StateUpdate(StateUpdateKind.AUTHORIZED))

    def _handle_availability(self, available: bool) -> None:
        self._emit(StateUpdate(StateUpdateKind.AVAILABILITY_CHANGED, available=available))

    def _emit(self, update: StateUpdate) -> None:
        logger.debug("State update: %s %s", update.kind.value, update.text)
        callback = self._on_state_update
        if callback:
            self._dispatcher.post(lambda: callback(update))

    def _transition(self, to_state: ManagerState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("Session state %s -> %s", from_state.value, to_state.value)
