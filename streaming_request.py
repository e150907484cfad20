"""Buffer-accumulating request fed by the capture tap and drained by the engine."""

from __future__ import annotations

import threading
from queue import Empty, Full, Queue
from typing import Optional

from models import AudioBuffer


class StreamingRecognitionRequest:
    def __init__(self, maxsize: int = 256, report_partial_results: bool = True) -> None:
        self.report_partial_results = report_partial_results
        self.dropped_buffers = 0
        self._queue: Queue[AudioBuffer | None] = Queue(maxsize=maxsize)
        self._ended = threading.Event()

    @property
    def is_ended(self) -> bool:
        return self._ended.is_set()

    def append(self, buffer: AudioBuffer) -> None:
        """Queue a buffer without blocking the capture thread."""
        if self._ended.is_set():
            return
        try:
            self._queue.put_nowait(buffer)
        except Full:
            self.dropped_buffers += 1

    def end_audio(self) -> None:
        """Signal that no more audio will arrive. Safe to call repeatedly."""
        if self._ended.is_set():
            return
        self._ended.set()
        try:
            self._queue.put_nowait(None)
        except Full:
            # read() notices the ended flag once the queue drains
            pass

    def read(self, timeout: float = 0.2) -> Optional[AudioBuffer]:
        """Return the next buffer, or None once audio has ended and drained.

        Raises queue.Empty when nothing arrived within ``timeout`` and audio
        has not ended yet.
        """
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            if self._ended.is_set():
                return None
            raise
