"""
Logging for the viewer process.

Two stages:
- setup_startup_logging(): plain handlers installed before QApplication exists,
  so crashes during Qt/VTK initialisation are still recorded.
- LogSystem: the long-running configuration; records go through a queue and a
  QueueListener writes them to a rotating file, so render/loader threads never
  block on disk I/O.
"""
from __future__ import annotations

import faulthandler
import logging
import logging.config
import os
import platform
import queue
import sys
import traceback
from dataclasses import dataclass
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

from mview.app.app_settings_manager import AppSettingsManager, RunMode
from mview.utils.log_util import level_from_name
from mview.utils.resource_paths import app_base_dir, app_install_dir

STARTUP_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s.%(msecs)03dZ %(levelname)s %(process)d %(threadName)s %(name)s %(message)s"
FILE_DATEFMT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class LogPaths:
    log_dir: Path
    log_file: Path
    crash_file: Path
    vtk_file: Path


def _find_writable_log_dir(app_name: str) -> Path:
    """<install dir>/logs, then ~/.<app>/logs, then ./logs."""
    candidates = [
        app_install_dir() / "logs",
        Path.home() / f".{app_name.lower()}" / "logs",
    ]
    for d in candidates:
        probe = d / ".write_test"
        try:
            d.mkdir(parents=True, exist_ok=True)
            probe.write_text("ok", encoding="utf-8")
            probe.unlink(missing_ok=True)
            return d
        except OSError:
            continue
    d = Path.cwd() / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def default_log_dir(app_name: str) -> Path:
    return _find_writable_log_dir(app_name)


def _enable_crash_log(crash_file: Path) -> None:
    try:
        f = open(crash_file, "w", encoding="utf-8")
    except OSError:
        logging.warning("Crash log not available: %s", crash_file)
        return
    faulthandler.enable(file=f)
    # faulthandler only keeps the descriptor.
    logging.getLogger()._mview_crash_fh = f


def _install_excepthook() -> None:
    def _excepthook(exc_type, exc, tb):
        logging.critical("Uncaught exception:\n%s",
                         "".join(traceback.format_exception(exc_type, exc, tb)))

    sys.excepthook = _excepthook


def route_vtk_output(vtk_file: Path) -> None:
    """Send VTK warnings/errors to a file instead of a popup window (Windows) or stderr."""
    try:
        import vtk
    except ImportError:
        logging.getLogger(__name__).exception("VTK not importable; VTK output not redirected.")
        return
    window = vtk.vtkFileOutputWindow()
    window.SetFileName(str(vtk_file))
    window.SetFlush(True)
    vtk.vtkOutputWindow.SetInstance(window)


def _log_environment(app_name: str, paths: LogPaths) -> None:
    log = logging.getLogger(app_name)
    log.info("==== %s starting ====", app_name)
    log.info("python=%s (%s)", platform.python_version(), sys.executable)
    log.info("platform=%s frozen=%s", platform.platform(), getattr(sys, "frozen", False))
    log.info("cwd=%s resources=%s", os.getcwd(), app_base_dir())
    log.info("logs=%s crash=%s vtk=%s", paths.log_file, paths.crash_file, paths.vtk_file)
    try:
        import PySide6
        import vtk
        log.info("PySide6=%s VTK=%s", PySide6.__version__, vtk.vtkVersion.GetVTKVersion())
    except ImportError as e:
        log.warning("Library version check failed: %s", e)


def setup_startup_logging(
        app_name: str,
        *,
        level_file: int = logging.DEBUG,
        level_console: int = logging.INFO,
        max_bytes: int = 2_000_000,
        backup_count: int = 5,
) -> LogPaths:
    """
    Install startup handlers on the root logger.

    - <app>.startup.log (rotating) and stdout
    - <app>.crash.log via faulthandler
    - uncaught exceptions logged as CRITICAL
    - VTK output to <app>.vtk.log
    """
    log_dir = _find_writable_log_dir(app_name)
    paths = LogPaths(
        log_dir=log_dir,
        log_file=log_dir / f"{app_name}.startup.log",
        crash_file=log_dir / f"{app_name}.crash.log",
        vtk_file=log_dir / f"{app_name}.vtk.log",
    )

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    formatter = logging.Formatter(STARTUP_FORMAT)

    file_handler = RotatingFileHandler(paths.log_file, maxBytes=max_bytes,
                                       backupCount=backup_count, encoding="utf-8")
    file_handler.setLevel(level_file)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level_console)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    _enable_crash_log(paths.crash_file)
    _install_excepthook()
    route_vtk_output(paths.vtk_file)
    _log_environment(app_name, paths)
    return paths


def build_config(app_name: str,
                 level: str | int | None = None,
                 console_level: str | int = "INFO",
                 log_dir: Path | None = None) -> dict:
    """
    dictConfig for the queued setup.

    "_file_settings" is not a dictConfig key: LogSystem pops it and builds the
    listener's RotatingFileHandler from it.
    """
    root_level = level_from_name(level or os.getenv("MVIEW_LOG_LEVEL", "INFO"))
    console_level = level_from_name(console_level)
    log_dir = log_dir or default_log_dir(app_name)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": FILE_FORMAT, "datefmt": FILE_DATEFMT},
        },
        "handlers": {
            "queue": {"class": "logging.handlers.QueueHandler", "queue": queue.Queue(-1)},
            "console": {"class": "logging.StreamHandler", "formatter": "standard",
                        "level": logging.getLevelName(console_level)},
        },
        "root": {"level": logging.getLevelName(root_level), "handlers": ["queue", "console"]},
        "_file_settings": {
            "filename": str(log_dir / f"{app_name}.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": int(os.getenv("MVIEW_LOG_BACKUP_COUNT", 5)),
            "encoding": "utf-8",
        },
    }


class LogSystem:
    """Owns the queue listener and the handlers whose levels change at runtime."""

    def __init__(self, app_name: str, level: str | int | None = None,
                 console_level: str | int = "INFO"):
        cfg = build_config(app_name, level, console_level)
        file_settings = cfg.pop("_file_settings")
        logging.config.dictConfig(cfg)

        root = logging.getLogger()
        queue_handler = next((h for h in root.handlers if isinstance(h, QueueHandler)), None)
        if queue_handler is None:
            raise RuntimeError("QueueHandler not found after dictConfig.")
        self._console_handler: logging.Handler | None = next(
            (h for h in root.handlers if type(h) is logging.StreamHandler), None)

        self.log_file = Path(file_settings["filename"])
        self._file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=file_settings["maxBytes"],
            backupCount=file_settings["backupCount"],
            encoding=file_settings["encoding"],
        )
        self._file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATEFMT))

        self.listener = QueueListener(queue_handler.queue, self._file_handler,
                                      respect_handler_level=True)
        self.listener.start()
        self._stopped = False

    @classmethod
    def from_levels(cls, app_name: str, root_level: int = logging.INFO,
                    console_level: int = logging.INFO) -> LogSystem:
        return cls(app_name, level=root_level, console_level=console_level)

    def apply_levels(self, root_level: int, console_level: int | None = None,
                     file_level: int | None = None) -> None:
        logging.getLogger().setLevel(root_level)
        if self._console_handler is not None and console_level is not None:
            self._console_handler.setLevel(console_level)
        if file_level is not None:
            self._file_handler.setLevel(file_level)

    def stop(self) -> None:
        """Flush queued records and close the file. Safe to call twice (aboutToQuit + finally)."""
        if self._stopped:
            return
        self._stopped = True
        self.listener.stop()
        self._file_handler.close()


def apply_logging_policy(logs: LogSystem, settings: AppSettingsManager) -> None:
    """Everything goes to the file; the console follows the run mode."""
    mode = getattr(settings, "run_mode", None) or RunMode.PRODUCTION
    if mode in (RunMode.DEVELOPMENT, RunMode.VERBOSE):
        console = logging.DEBUG
    else:
        console = level_from_name(getattr(settings, "logging_level", "INFO"))
    logs.apply_levels(root_level=logging.DEBUG, console_level=console, file_level=logging.DEBUG)


def install_qt_message_handler() -> None:
    """Forward qDebug/qWarning/... into the "Qt" logger at the matching level."""
    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler
    except ImportError:
        logging.getLogger(__name__).exception("Failed to install Qt message handler.")
        return

    qt_logger = logging.getLogger("Qt")
    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def handler(msg_type, context, message):
        qt_logger.log(levels.get(msg_type, logging.WARNING), message)

    qInstallMessageHandler(handler)
    qt_logger.debug("Qt message handler installed.")
