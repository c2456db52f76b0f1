import sys
import json
import logging

from pathlib import Path
from typing import Callable, Optional
from PySide6.QtWidgets import QWidget
from PySide6.QtGui import QKeySequence, QAction
from PySide6.QtCore import QSettings

from mview.ui.error_notifier import ErrorNotifier
from mview.app.app_settings_manager import AppSettingsManager


logger = logging.getLogger(__name__)


class ShortcutManager:
    """
    Manage keyboard shortcuts.
    --------------------------
    Default key sequences come from `shortcuts.json` in config_path;
    user overrides are stored in QSettings under `shortcuts/*`.

    add_callback: Add a callback function for a command.
    update_shortcut: Update the shortcut for a command.
    reset_to_default: Reset all shortcuts to default.
    actions: Return all registered actions.
    --------------------------
    Only commands listed in the settings file can get a callback.
    """
    def __init__(self, parent: QWidget, config_path: Path,
                 settings_manager: Optional[AppSettingsManager] = None,
                 org_domain: str = "MView.org", app_name: str = "MView"):
        self.parent = parent
        self.config_path = config_path
        self._shortcut_settings = QSettings(org_domain, app_name)
        self._settings_manager: AppSettingsManager = settings_manager or AppSettingsManager()

        self._actions: dict[str, QAction] = {}
        self._callbacks: dict[str, Callable] = {}
        self._file_shortcuts = self._load_default_shortcut()
        self._default_shortcuts = dict(self._file_shortcuts)
        self._load_user_overrides()
        self._register_actions()

        logger.debug(
            "ShortcutManager initialized (%d commands), run mode: %s",
            len(self._actions), self._settings_manager.run_mode.value,
        )

    def _load_default_shortcut(self) -> dict[str, str]:
        """
        Load the default config from `shortcuts.json`.
        File format example:
        {
            "reset_view": "R",
            "reload_model": "F5"
        }
        :return: dict[str, str]
        """
        path = self.config_path / "shortcuts.json"
        logger.debug(f"Loading default shortcuts: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top-level value is not an object")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _load_user_overrides(self):
        """Override default shortcuts with user-defined shortcuts."""
        for cmd, default_seq in self._default_shortcuts.items():
            user_seq = self._shortcut_settings.value(f"shortcuts/{cmd}", default_seq)
            if user_seq:
                self._default_shortcuts[cmd] = user_seq

    def _register_actions(self):
        """Register an action for each command."""
        for cmd, seq in self._default_shortcuts.items():
            action = QAction(cmd.replace("_", " ").title(), self.parent)
            action.setShortcut(QKeySequence(seq))
            action.triggered.connect(lambda checked=False, c=cmd: self._on_action_triggered(c))
            self.parent.addAction(action)
            self._actions[cmd] = action

    def _on_action_triggered(self, cmd: str):
        """
        Run the callback for the given command.
        Errors are reported; in development run mode they are re-raised.
        :param cmd: Command name.(e.g., "reset_view")
        """
        cb = self._callbacks.get(cmd)
        if cb is None:
            ErrorNotifier.instance().notify(
                title="Unregistered Shortcut",
                msg=f"Command '{cmd}' is not registered.",
                severity="error",
                dedup_seconds=1.0,
            )
            return

        func_name = getattr(cb, "__qualname__", repr(cb))
        func_module = getattr(cb, "__module__", "")
        logger.info("Shortcut triggered: %s -> %s.%s", cmd, func_module, func_name)
        try:
            cb()
        except Exception:
            ErrorNotifier.instance().notify(
                title="Shortcut Error",
                msg=f"Error in shortcut callback for '{cmd}'",
                exc_info=sys.exc_info(),
                severity="error",
                dedup_seconds=1.0,
            )
            if self._settings_manager.dev_mode:
                raise

    def add_callback(self, command_name: str, callback: Callable):
        """
        Add a callback function for a shortcut.
        :param command_name: Command name (e.g., "reset_view").
        :param callback: Callback function. (e.g., viewer.reset_view)
        """
        if command_name not in self._actions:
            raise KeyError(f"Command '{command_name}' not found in registered actions.")
        self._callbacks[command_name] = callback

    def update_shortcut(self, cmd: str, new_seq: str) -> bool:
        """Assign new_seq to cmd unless another command already uses it."""
        normalized = QKeySequence(new_seq).toString()
        if normalized in [a.shortcut().toString() for a in self._actions.values()]:
            return False
        action = self._actions.get(cmd)
        if not action:
            return False
        action.setShortcut(QKeySequence(new_seq))
        self._shortcut_settings.setValue(f"shortcuts/{cmd}", new_seq)
        return True

    def reset_to_default(self):
        self._shortcut_settings.remove("shortcuts")
        self._default_shortcuts = dict(self._file_shortcuts)
        for cmd, action in self._actions.items():
            action.setShortcut(QKeySequence(self._default_shortcuts[cmd]))

    def actions(self):
        return self._actions.values()
