"""Application entrypoint."""

from __future__ import annotations

import sys
from typing import Callable, Optional

from config import JsonConfigStore
from errors import SpeechRecognitionError
from hotkey import GlobalHotkeyAdapter
from logging_setup import get_logger, setup_logging
from models import AudioFormat, RecordingPolicy, StateUpdate, StateUpdateKind
from overlay import OverlayWindow
from permissions import PermissionGate, SoundDevicePermissionProvider
from recognizer import DashscopeRecognitionEngine
from recorder import SoundDeviceAudioSession, SoundDeviceCapture
from session_manager import RecognitionSessionManager

try:
    from PySide6.QtCore import QObject, Qt, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = get_logger("app")


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_DISABLED = "#FF8800"  # orange


class QtDispatcher(QObject):
    """Delivers manager notifications on the Qt GUI thread."""

    call_signal = Signal(object)

    def __init__(self) -> None:
        super().__init__()
        # always queued; callbacks run in posting order
        self.call_signal.connect(self._run, Qt.QueuedConnection)

    def post(self, fn: Callable[[], None]) -> None:
        self.call_signal.emit(fn)

    def _run(self, fn: Callable[[], None]) -> None:
        fn()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        setup_logging(
            level=self.config_store.get_log_level(),
            log_dir=self.config_store.config_dir / "logs",
            json_output=self.config_store.get_log_json(),
        )

        self.overlay = OverlayWindow()
        self.dispatcher = QtDispatcher()
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())
        self.manager: Optional[RecognitionSessionManager] = None

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_DISABLED))
        self.tray.setToolTip("Voicetap — Waiting for microphone permission")
        self._setup_menu()
        self.tray.show()

        self._build_manager(self.config_store.get_recording_policy())

    def _build_manager(self, policy: RecordingPolicy) -> None:
        sample_rate = self.config_store.get_sample_rate()
        self.manager = RecognitionSessionManager(
            permission_gate=PermissionGate(SoundDevicePermissionProvider(sample_rate=sample_rate)),
            capture=SoundDeviceCapture(sample_rate=sample_rate),
            audio_session=SoundDeviceAudioSession(),
            engine=DashscopeRecognitionEngine(
                api_key=self.config_store.get_api_key(),
                model=self.config_store.get_model(),
                sample_rate=sample_rate,
            ),
            on_authorized=self._on_authorized,
            on_state_update=self._on_state_update,
            recording_policy=policy,
            dispatcher=self.dispatcher,
            buffer_size_frames=self.config_store.get_buffer_size_frames(),
            audio_format=AudioFormat(sample_rate=sample_rate),
        )

    def _setup_menu(self) -> None:
        menu = QMenu()

        self.toggle_action = QAction("Start / Stop", menu)
        self.toggle_action.triggered.connect(self._toggle)
        menu.addAction(self.toggle_action)

        self.continuous_action = QAction("Continuous Mode", menu)
        self.continuous_action.setCheckable(True)
        self.continuous_action.setChecked(
            self.config_store.get_recording_policy() == RecordingPolicy.CONTINUOUS
        )
        self.continuous_action.toggled.connect(self._set_continuous)
        menu.addAction(self.continuous_action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self._rebuild_manager(self.config_store.get_recording_policy())
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_continuous(self, checked: bool) -> None:
        policy = RecordingPolicy.CONTINUOUS if checked else RecordingPolicy.SINGLE_UTTERANCE
        self.config_store.set_recording_policy(policy)
        self._rebuild_manager(policy)

    def _rebuild_manager(self, policy: RecordingPolicy) -> None:
        if self.manager is not None:
            self.manager.close()
        self._build_manager(policy)

    # ------------------------------------------------------------------
    # Manager notifications (already on the GUI thread)
    # ------------------------------------------------------------------

    def _on_authorized(self) -> None:
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Voicetap — Ready")

    def _on_state_update(self, update: StateUpdate) -> None:
        kind = update.kind
        if kind == StateUpdateKind.AUDIO_ENGINE_START:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Voicetap — Listening...")
            self.overlay.set_text("🎙️ Listening...")
        elif kind == StateUpdateKind.SPEECH_RECOGNIZED:
            self.overlay.set_text(update.text)
        elif kind == StateUpdateKind.AUDIO_ENGINE_STOP:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Voicetap — Ready")
        elif kind == StateUpdateKind.SESSION_STOPPED:
            self.overlay.show_final(update.text)
        elif kind == StateUpdateKind.AVAILABILITY_CHANGED and not update.available:
            self.tray.setIcon(_create_icon(ICON_DISABLED))
            self.overlay.show_error("Speech recognition is unavailable")
        elif kind == StateUpdateKind.AVAILABILITY_CHANGED:
            self.tray.setIcon(_create_icon(ICON_IDLE))

    # ------------------------------------------------------------------
    # Hotkey / menu handlers
    # ------------------------------------------------------------------

    def _on_hotkey(self) -> None:
        # pynput thread; hop to the GUI thread so errors reach the overlay
        self.dispatcher.post(self._toggle)

    def _toggle(self) -> None:
        if self.manager is None:
            return
        try:
            self.manager.toggle()
        except SpeechRecognitionError as exc:
            logger.warning("Toggle failed: %s", exc)
            self.overlay.show_error(str(exc))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_trigger=self._on_hotkey)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        if self.manager is not None:
            self.manager.close()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
