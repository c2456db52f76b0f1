from __future__ import annotations
import logging
import os
import time
import traceback
from typing import Optional

from PySide6.QtWidgets import QApplication, QMessageBox, QErrorMessage
from PySide6.QtCore import QObject, QTimer, Qt

from mview.app.app_settings_manager import AppSettingsManager


logger = logging.getLogger(__name__)


class ErrorNotifier(QObject):
    """
    Logs errors and shows them to the user.

    error/critical -> message box (with details), warning -> QErrorMessage,
    anything else -> status bar of the active window. The same message is
    shown at most once per dedup_seconds. Singleton.

    Usage:
    >>> ErrorNotifier.instance().notify("Load failed", "diamond.glb not found")
    >>> ErrorNotifier.instance().notify("Environment", "No HDR map", severity="warning")
    """
    _instance: Optional[ErrorNotifier] = None

    def __init__(self):
        super().__init__()
        self.dev_mode = str(os.getenv("MVIEW_DEV", "")).lower() in ("1", "true", "yes")
        self._last_shown: dict[str, float] = {}  # key -> timestamp
        self._suppress_window: QErrorMessage | None = None

    @classmethod
    def instance(cls) -> ErrorNotifier:
        if cls._instance is None:
            cls._instance = ErrorNotifier()
        return cls._instance

    @classmethod
    def configure(cls, settings: AppSettingsManager) -> ErrorNotifier:
        """Show selectable details in development run mode."""
        notifier = cls.instance()
        notifier.dev_mode = notifier.dev_mode or settings.dev_mode
        return notifier

    def notify(self,
               title: str,
               msg: str,
               *,
               detail: Optional[str] = None,
               exc_info: Optional[tuple] = None,
               severity: str = "error",
               dedup_seconds: float = 2.0,
               ) -> None:
        if exc_info and exc_info[0] is not None:
            logger.error("%s: %s", title, msg, exc_info=exc_info)
        elif severity in ("error", "critical"):
            logger.error("%s: %s", title, msg)
        elif severity == "warning":
            logger.warning("%s: %s", title, msg)
        else:
            logger.info("%s: %s", title, msg)

        now = time.monotonic()
        key = f"{severity}:{title}:{msg}"
        if now - self._last_shown.get(key, float("-inf")) < dedup_seconds:
            return
        self._last_shown[key] = now

        if detail is None and exc_info and exc_info[0] is not None:
            detail = "".join(traceback.format_exception(*exc_info))

        # execute on GUI thread
        QTimer.singleShot(0, lambda: self._show(title, msg, detail, severity))

    def _show(self, title: str, msg: str, detail: Optional[str], severity: str) -> None:
        if severity in ("error", "critical"):
            box = QMessageBox()
            box.setIcon(QMessageBox.Critical if severity == "critical" else QMessageBox.Warning)
            box.setWindowTitle(title)
            box.setText(msg)
            if detail:
                box.setDetailedText(detail)
                if self.dev_mode:
                    box.setTextInteractionFlags(Qt.TextSelectableByMouse)
            box.exec()
        elif severity == "warning":
            if self._suppress_window is None:
                self._suppress_window = QErrorMessage()
            self._suppress_window.showMessage(f"{title}: {msg}")
        else:
            app = QApplication.instance()
            w = app.activeWindow() if app else None
            if w is not None and hasattr(w, "statusBar"):
                w.statusBar().showMessage(f"{title}: {msg}", 5000)
