"""Microphone capture adapter."""

from __future__ import annotations

import threading
import time
from queue import Empty, Full, Queue
from typing import Any, Iterator, Optional

from errors import HardwareUnavailable
from logging_setup import get_logger
from models import AudioBuffer, AudioFormat

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = get_logger("recorder")


class SoundDeviceAudioSession:
    """Validates the input settings and makes them the sounddevice defaults."""

    def __init__(self, device: Any = None) -> None:
        self._device = device

    def configure_for_recording(self, audio_format: AudioFormat) -> None:
        if sd is None:
            raise HardwareUnavailable("sounddevice is not installed")
        try:
            sd.check_input_settings(
                device=self._device,
                channels=audio_format.channels,
                dtype=audio_format.dtype,
                samplerate=audio_format.sample_rate,
            )
        except Exception as exc:
            raise HardwareUnavailable(str(exc)) from exc
        sd.default.samplerate = audio_format.sample_rate
        sd.default.channels = audio_format.channels
        sd.default.dtype = audio_format.dtype


class SoundDeviceCapture:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Any = None,
        queue_maxsize: int = 100,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self.dropped_buffers = 0
        self._queue_maxsize = queue_maxsize
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._format = AudioFormat(sample_rate=sample_rate, channels=channels)
        self._buffer_queue: Optional[Queue[AudioBuffer | None]] = None

    def input_format(self) -> Optional[AudioFormat]:
        if sd is None:
            return None
        try:
            sd.query_devices(self.device, kind="input")
        except Exception as exc:
            logger.warning("Input device unavailable: %s", exc)
            return None
        return self._format

    def arm(self, buffer_size_frames: int, audio_format: AudioFormat) -> Iterator[AudioBuffer]:
        """Open the input stream and return the buffers it will produce."""
        self.disarm()
        with self._lock:
            if sd is None:
                raise HardwareUnavailable("sounddevice is not installed")
            self._format = audio_format
            buffer_queue: Queue[AudioBuffer | None] = Queue(maxsize=self._queue_maxsize)
            try:
                self._stream = sd.InputStream(
                    device=self.device,
                    samplerate=audio_format.sample_rate,
                    channels=audio_format.channels,
                    dtype=audio_format.dtype,
                    blocksize=buffer_size_frames,
                    callback=self._on_audio,
                )
            except Exception as exc:
                raise HardwareUnavailable(str(exc)) from exc
            self._buffer_queue = buffer_queue
        return self._iter_buffers(buffer_queue)

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            if self._stream is None:
                raise HardwareUnavailable("capture is not armed")
            try:
                self._stream.start()
            except Exception as exc:
                raise HardwareUnavailable(str(exc)) from exc
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            if self._stream is not None:
                self._stream.stop()

    def disarm(self) -> None:
        with self._lock:
            was_running = self._running
            self._running = False
            if self._stream is not None:
                if was_running:
                    self._stream.stop()
                self._stream.close()
                self._stream = None
            self._emit_sentinel_if_needed()
            self._buffer_queue = None

    def is_running(self) -> bool:
        return self._running

    def _iter_buffers(self, buffer_queue: Queue[AudioBuffer | None]) -> Iterator[AudioBuffer]:
        while True:
            buffer = buffer_queue.get()
            if buffer is None:
                return
            yield buffer

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("sounddevice status: %s", status)
        buffer_queue = self._buffer_queue
        if not self._running or buffer_queue is None:
            return
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        buffer = AudioBuffer(
            pcm16_bytes=payload,
            sample_rate=self._format.sample_rate,
            channels=self._format.channels,
            frame_count=frames,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            buffer_queue.put_nowait(buffer)
        except Full:
            self.dropped_buffers += 1
            logger.debug("Capture queue full; dropped %s frames", frames)

    def _emit_sentinel_if_needed(self) -> None:
        if self._buffer_queue is None:
            return
        try:
            self._buffer_queue.put_nowait(None)
        except Full:
            # consumer is stalled; make room so the iterator still terminates
            try:
                self._buffer_queue.get_nowait()
            except Empty:
                pass
            self._buffer_queue.put_nowait(None)
