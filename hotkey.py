"""Global toggle hotkey based on pynput."""

from __future__ import annotations

import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore


class GlobalHotkeyAdapter:
    """Calls ``on_trigger`` once for each fresh press of a single key.

    Key repeat while the key is held does not trigger again. Keys are
    matched by their pynput string form, e.g. ``Key.alt_l`` or ``'v'``.
    """

    def __init__(self, hotkey_name: str = "Key.alt_l") -> None:
        self._hotkey_name = hotkey_name
        self._listener: Optional[object] = None
        self._held = threading.Event()

    @property
    def hotkey_name(self) -> str:
        return self._hotkey_name

    def start(self, on_trigger: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self.stop()

        # pynput delivers both callbacks on its listener thread
        def _on_press(key: object) -> None:
            if str(key) == self._hotkey_name and not self._held.is_set():
                self._held.set()
                on_trigger()

        def _on_release(key: object) -> None:
            if str(key) == self._hotkey_name:
                self._held.clear()

        self._listener = keyboard.Listener(on_press=_on_press, on_release=_on_release)
        self._listener.start()

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
        self._held.clear()
