"""Base class for the VTK render widgets."""
from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod

import vtk
from PySide6 import QtCore, QtWidgets
from vtkmodules.qt.QVTKRenderWindowInteractor import QVTKRenderWindowInteractor

from mview.app.app_settings_manager import AppSettingsManager

logger = logging.getLogger(__name__)


class ABCQtMeta(ABCMeta, type(QtWidgets.QWidget)):
    """Lets a QWidget subclass declare abstract methods."""


class BaseViewer(QtWidgets.QWidget, metaclass=ABCQtMeta):
    """
    A QVTKRenderWindowInteractor plus a frame loop.

    VTK's interactor style is replaced by vtkInteractorStyleUser, which does
    nothing: subclasses handle input themselves (usually with an event filter
    on vtk_widget). A QTimer calls advance_frame() every frame_interval_ms
    while the widget is shown.

    Subclasses implement:
    - load_data(): start showing a data set
    - advance_frame(): update and render one frame
    """

    dataLoaded = QtCore.Signal()

    def __init__(
            self,
            settings_manager: AppSettingsManager | None = None,
            parent: QtWidgets.QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setting = settings_manager or AppSettingsManager()

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.vtk_widget = QVTKRenderWindowInteractor(self)
        self.vtk_widget.setMouseTracking(True)
        layout.addWidget(self.vtk_widget)

        render_window = self.vtk_widget.GetRenderWindow()
        self.renderer = vtk.vtkRenderer()
        render_window.AddRenderer(self.renderer)
        self.interactor = render_window.GetInteractor()
        self.interactor.SetInteractorStyle(vtk.vtkInteractorStyleUser())
        self.interactor.Initialize()

        self._frame_timer = QtCore.QTimer(self)
        self._frame_timer.setTimerType(QtCore.Qt.PreciseTimer)
        self._frame_timer.setInterval(self.setting.frame_interval_ms)
        self._frame_timer.timeout.connect(self.advance_frame)
        self._paused_while_hidden = False

        logger.debug("Viewer created (frame interval %d ms).", self.setting.frame_interval_ms)

    @abstractmethod
    def load_data(self, *args, **kwargs):
        """Start loading data; emit dataLoaded once it is shown."""

    @abstractmethod
    def advance_frame(self) -> None:
        """Called by the frame timer."""

    # =====================================================
    # Frame loop
    # =====================================================

    def start_rendering(self) -> None:
        if not self._frame_timer.isActive():
            self._frame_timer.start()

    def stop_rendering(self) -> None:
        self._frame_timer.stop()

    @property
    def is_rendering(self) -> bool:
        return self._frame_timer.isActive()

    # =====================================================
    # Qt events
    # =====================================================

    def hideEvent(self, event) -> None:
        # No point ticking a hidden (e.g. minimized) window.
        if self.is_rendering:
            self._paused_while_hidden = True
            self.stop_rendering()
        super().hideEvent(event)

    def showEvent(self, event) -> None:
        if self._paused_while_hidden:
            self._paused_while_hidden = False
            self.start_rendering()
        super().showEvent(event)

    def closeEvent(self, event) -> None:
        self._paused_while_hidden = False
        self.stop_rendering()
        if self.interactor is not None:
            self.interactor.TerminateApp()
        super().closeEvent(event)
