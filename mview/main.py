# NOTE:
# Startup diagnostics (logging / Qt message handler) must be executed
#  before creating QApplication instance.

from mview.app.logging_setup import setup_startup_logging, install_qt_message_handler

setup_startup_logging(app_name="mview")
install_qt_message_handler()

import argparse
import logging
import sys

from PySide6 import QtWidgets

from mview.app.app_settings_manager import AppSettingsManager
from mview.app.logging_setup import apply_logging_policy, LogSystem
from mview.ui.error_notifier import ErrorNotifier
from mview.ui.mainwindow import MainWindow

logger = logging.getLogger(__name__)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mview", description="Interactive PBR material viewer")
    parser.add_argument("model", nargs="?", default=None,
                        help="model file to show first (.glb, .gltf, .obj, .stl, .ply)")
    args, _ = parser.parse_known_args(argv)
    return args


def main():
    args = parse_args(sys.argv[1:])
    logs = LogSystem("mview")

    # Reuse an existing QApplication instance if there is one.
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication(sys.argv)

    logger.info("App start")
    settings_mgr = AppSettingsManager()
    apply_logging_policy(logs, settings_mgr)
    ErrorNotifier.configure(settings_mgr)

    main_window = MainWindow(settings_mgr, initial_model=args.model)

    # Stop logging when Qt quits.
    app.aboutToQuit.connect(logs.stop)
    try:
        rc = app.exec()
        logger.info("App exit (rc=%s)", rc)
        sys.exit(rc)
    finally:
        logs.stop()


if __name__ == "__main__":
    main()
