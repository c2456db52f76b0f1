import copy
import logging
from pathlib import Path

from PySide6 import QtCore
from PySide6.QtWidgets import QFileDialog, QLabel, QMainWindow, QSplitter

from mview.app.app_settings_manager import AppSettingsManager
from mview.app.shortcut_manager import ShortcutManager
from mview.core.material import MaterialState
from mview.core.model_catalog import ModelCatalog
from mview.status import STATUS_FIELDS, StatusField
from mview.ui.error_notifier import ErrorNotifier
from mview.ui.material_panel import MaterialPanel
from mview.utils import vtk_helpers
from mview.utils.log_util import log_io
from mview.utils.resource_paths import models_dir, settings_dir
from mview.viewers.camera.camera_state import CameraPose
from mview.viewers.material_viewer import MaterialViewer

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Main application window: viewer, material panel, menus and status bar."""

    def __init__(self,
                 settings_mgr: AppSettingsManager | None = None,
                 catalog: ModelCatalog | None = None,
                 initial_model: str | None = None):
        """
        Initialize the main window.

        :param settings_mgr: Application settings manager.
        :param catalog: Selectable models; loaded from settings when omitted.
        :param initial_model: Model to show first instead of the catalog default.
        """
        super().__init__()

        self.setting = settings_mgr or AppSettingsManager()
        self.catalog = catalog or ModelCatalog.load()
        self.material = MaterialState()

        self.shortcut_mgr = ShortcutManager(
            parent=self,
            config_path=settings_dir(),
            settings_manager=self.setting,
        )

        self.status_fields: dict[str, StatusField] = {
            k: copy.deepcopy(v) for k, v in STATUS_FIELDS.items()
        }
        self._status_label: dict[str, QLabel | None] = {}

        self.setWindowTitle("MView - Material Viewer")
        self._setup_ui()
        self._setup_menus()
        self._setup_status_bar()
        self._register_shortcuts()

        for warning in self.catalog.warnings:
            ErrorNotifier.instance().notify("Model catalog", warning, severity="warning")

        initial = initial_model or self._initial_identifier()
        self.panel.set_current_model(initial)
        self.viewer.load_model(initial)
        self.show()

    def _initial_identifier(self) -> str:
        preferred = self.setting.default_model
        if self.catalog.label_for(preferred) is not None:
            return preferred
        return self.catalog.default_identifier

    def _setup_ui(self) -> None:
        """Setup the main UI layout"""
        splitter = QSplitter(QtCore.Qt.Horizontal, self)

        self.viewer = MaterialViewer(settings_manager=self.setting, material=self.material,
                                     parent=splitter)
        self.panel = MaterialPanel(self.material, self.catalog, parent=splitter)

        splitter.addWidget(self.viewer)
        splitter.addWidget(self.panel)
        splitter.setStretchFactor(0, 4)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)
        self.setGeometry(100, 100, 1280, 800)

        self.viewer.poseChanged.connect(self._on_pose_changed)
        self.viewer.modelLoaded.connect(self._on_model_loaded)
        self.viewer.modelLoadFailed.connect(self._on_model_load_failed)
        self.panel.modelSelected.connect(self.viewer.load_model)

    def _setup_menus(self) -> None:
        """Create the menus for the main window."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        file_menu.addAction("&Open Model...", self.open_file)
        file_menu.addAction("&Reload Model", self.viewer.reload_model)
        file_menu.addSeparator()
        file_menu.addAction("&Quit", self.close)

        view_menu = menubar.addMenu("&View")
        view_menu.addAction("&Reset View", self.viewer.reset_view)
        view_menu.addAction("&Next Model", self.panel.select_next_model)

        material_menu = menubar.addMenu("&Material")
        material_menu.addAction("&Reset Material", self.material.reset)

    def _setup_status_bar(self) -> None:
        """Setup the status bar."""
        status_bar = self.statusBar()
        for key, field in self.status_fields.items():
            if not field.visible:
                self._status_label[key] = None
                continue
            label = QLabel(field.text(), self)
            status_bar.addPermanentWidget(label)
            self._status_label[key] = label
        self._on_pose_changed(self.viewer.camera_controller.current)

    def _register_shortcuts(self) -> None:
        """Register keyboard shortcuts."""
        callbacks = {
            "reset_view": self.viewer.reset_view,
            "reload_model": self.viewer.reload_model,
            "next_model": self.panel.select_next_model,
            "reset_material": self.material.reset,
            "open_file": self.open_file,
        }
        for command, callback in callbacks.items():
            try:
                self.shortcut_mgr.add_callback(command, callback)
            except KeyError:
                logger.warning("No shortcut configured for command: %s", command)

    # =====================================================
    # Menu Actions
    # =====================================================

    @log_io(level=logging.INFO)
    def open_file(self) -> None:
        patterns = " ".join(f"*{s}" for s in vtk_helpers.MESH_SUFFIXES)
        path, _ = QFileDialog.getOpenFileName(self, "Open Model", str(models_dir()),
                                              f"Meshes ({patterns})")
        if path:
            self.viewer.load_model(str(Path(path).resolve()))

    # =====================================================
    # Signal Handlers
    # =====================================================

    def _on_pose_changed(self, pose: CameraPose) -> None:
        self.update_status(radius=pose.radius, azimuth=pose.theta, polar=pose.phi)

    def _on_model_loaded(self, identifier: str) -> None:
        self.panel.set_current_model(identifier)
        self.update_status(model=self.catalog.label_for(identifier) or Path(identifier).name)
        self.statusBar().showMessage(f"Loaded {identifier}", 3000)

    def _on_model_load_failed(self, identifier: str, reason: str) -> None:
        ErrorNotifier.instance().notify(
            title="Model Load Error",
            msg=f"Could not load '{identifier}'.",
            detail=reason,
            severity="error",
        )

    def update_status(self, **kwargs) -> None:
        """Update status fields and their labels."""
        for key, value in kwargs.items():
            field = self.status_fields.get(key)
            if field is None:
                continue
            field.value = value
            label = self._status_label.get(key)
            if label is not None:
                label.setText(field.text())

    def closeEvent(self, event) -> None:
        self.viewer.close()
        super().closeEvent(event)
