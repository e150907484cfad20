"""Recognition engine adapter using DashScope realtime ASR.

Each recognition task owns one ``dashscope.audio.asr.Recognition`` stream.
A worker thread drains the streaming request and forwards PCM frames with
``send_audio_frame``; when the request's audio ends it calls ``stop()`` so
the service flushes its final sentence.  Sentences come back on the SDK's
callback thread and are handed to the result handler as they arrive.
"""

from __future__ import annotations

import os
import threading
from queue import Empty
from typing import Any, Callable, Optional

from errors import RecognitionEngineError
from interfaces import AvailabilityListener, ResultHandler
from logging_setup import get_logger
from models import TranscriptionResult
from streaming_request import StreamingRecognitionRequest

try:
    import dashscope
    from dashscope.audio.asr import Recognition, RecognitionResult
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    Recognition = None  # type: ignore
    RecognitionResult = None  # type: ignore

logger = get_logger("recognizer")

_CONNECTIVITY_MARKERS = ("timeout", "network", "connection", "websocket")


def _is_connectivity_error(message: str) -> bool:
    low = message.lower()
    return any(marker in low for marker in _CONNECTIVITY_MARKERS)


class _CallbackBridge:
    """Receives DashScope ``RecognitionCallback`` calls for one task."""

    def __init__(self, task: DashscopeRecognitionTask) -> None:
        self._task = task

    def on_open(self) -> None:
        self._task.engine._set_available(True)

    def on_complete(self) -> None:
        logger.debug("Recognition stream complete")

    def on_close(self) -> None:
        logger.debug("Recognition stream closed")

    def on_error(self, result: Any) -> None:
        message = str(getattr(result, "message", "") or result)
        if _is_connectivity_error(message):
            self._task.engine._set_available(False)
        self._task.deliver(None, RecognitionEngineError(message))

    def on_event(self, result: Any) -> None:
        sentence = result.get_sentence()
        if not isinstance(sentence, dict):
            return
        text = str(sentence.get("text", "")).strip()
        is_final = bool(RecognitionResult.is_sentence_end(sentence))
        if not text and not is_final:
            return
        self._task.deliver(TranscriptionResult(best_transcription=text, is_final=is_final), None)


class DashscopeRecognitionTask:
    def __init__(
        self,
        engine: DashscopeRecognitionEngine,
        request: StreamingRecognitionRequest,
        result_handler: ResultHandler,
    ) -> None:
        self.engine = engine
        self._request = request
        self._result_handler = result_handler
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._worker, name="voicetap-recognition", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Ask the worker to stop. Does not wait for it."""
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def deliver(
        self,
        result: Optional[TranscriptionResult],
        error: Optional[Exception],
    ) -> None:
        if self._cancelled.is_set():
            return
        self._result_handler(result, error)

    def _worker(self) -> None:
        try:
            recognition = Recognition(
                model=self.engine.model,
                format="pcm",
                sample_rate=self.engine.sample_rate,
                callback=_CallbackBridge(self),
            )
            recognition.start()
        except Exception as exc:
            logger.warning("Recognition stream failed to open: %s", exc)
            if _is_connectivity_error(str(exc)):
                self.engine._set_available(False)
            self.deliver(None, RecognitionEngineError(str(exc)))
            return

        try:
            while not self._cancelled.is_set():
                try:
                    buffer = self._request.read(timeout=0.2)
                except Empty:
                    continue
                if buffer is None:
                    break
                recognition.send_audio_frame(buffer.pcm16_bytes)
        except Exception as exc:
            self.deliver(None, RecognitionEngineError(str(exc)))
        finally:
            try:
                recognition.stop()
            except Exception as exc:
                logger.debug("Recognition stop failed: %s", exc)


class DashscopeRecognitionEngine:
    def __init__(
        self,
        api_key: str = "",
        model: str = "paraformer-realtime-v2",
        sample_rate: int = 16000,
        request_queue_size: int = 256,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self.sample_rate = sample_rate
        self._request_queue_size = request_queue_size
        self._lock = threading.Lock()
        self._available = dashscope is not None
        self._availability_listener: Optional[AvailabilityListener] = None

    @property
    def is_available(self) -> bool:
        return self._available

    def set_availability_listener(self, listener: Optional[AvailabilityListener]) -> None:
        self._availability_listener = listener

    def create_request(self) -> StreamingRecognitionRequest:
        if dashscope is None:
            raise RecognitionEngineError("dashscope is not installed")
        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise RecognitionEngineError("No API key configured")
        dashscope.api_key = api_key
        return StreamingRecognitionRequest(maxsize=self._request_queue_size, report_partial_results=True)

    def recognition_task(
        self,
        request: StreamingRecognitionRequest,
        result_handler: ResultHandler,
    ) -> DashscopeRecognitionTask:
        if Recognition is None:
            raise RecognitionEngineError("dashscope is not installed")
        task = DashscopeRecognitionTask(self, request, result_handler)
        task.start()
        return task

    def _set_available(self, available: bool) -> None:
        with self._lock:
            if self._available == available:
                return
            self._available = available
            listener: Optional[Callable[[bool], None]] = self._availability_listener
        logger.info("Recognition availability changed: %s", available)
        if listener:
            listener(available)
