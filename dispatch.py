"""Notification contexts for caller-visible callbacks."""

from __future__ import annotations

import threading
from queue import Queue
from typing import Callable, Optional

from logging_setup import get_logger

logger = get_logger("dispatch")


class ImmediateDispatcher:
    """Runs callbacks inline on the posting thread."""

    def post(self, fn: Callable[[], None]) -> None:
        fn()


class SerialDispatcher:
    """Runs callbacks one at a time, in posting order, on a single worker thread."""

    def __init__(self, name: str = "voicetap-notify") -> None:
        self._queue: Queue[Callable[[], None] | None] = Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._worker, name=name, daemon=True)
        self._thread.start()

    def post(self, fn: Callable[[], None]) -> None:
        with self._lock:
            if self._closed:
                logger.debug("Dropping notification posted after close")
                return
            self._queue.put(fn)

    def close(self, timeout: Optional[float] = 1.0) -> None:
        """Deliver what is already queued, then stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=timeout)

    def _worker(self) -> None:
        while True:
            fn = self._queue.get()
            if fn is None:
                return
            try:
                fn()
            except Exception:
                logger.exception("Notification callback failed")
