"""Material viewer: orbit camera, swappable model and live material editing."""
from __future__ import annotations

import logging

from PySide6 import QtCore, QtWidgets

from mview.app.app_settings_manager import AppSettingsManager
from mview.core.material import MaterialParams, MaterialState
from mview.core.resource_swap import LoadError, ResourceSwapCoordinator, SwapRequest
from mview.engine.vtk_engine import MeshResource, VtkSceneEngine
from mview.utils.resource_paths import hdri_dir
from mview.viewers.base_viewer import BaseViewer
from mview.viewers.camera.camera_controller import HOME_POSITION, OrbitCameraController
from mview.viewers.camera.camera_state import CameraPose
from mview.viewers.load_scheduler import QtLoadScheduler

logger = logging.getLogger(__name__)

# Qt reports 120 per wheel notch, the controller's zoom speed assumes 100.
WHEEL_UNITS_PER_ANGLE = 100.0 / 120.0


class MaterialViewer(BaseViewer):
    """
    Renders the live model under an environment map.

    Pointer and wheel events on the render widget are forwarded to the
    OrbitCameraController; model changes go through the
    ResourceSwapCoordinator so that only the latest selection is shown.
    """

    poseChanged = QtCore.Signal(object)
    modelLoaded = QtCore.Signal(str)
    modelLoadFailed = QtCore.Signal(str, str)

    def __init__(self,
                 settings_manager: AppSettingsManager | None = None,
                 material: MaterialState | None = None,
                 parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(settings_manager, parent)

        self.material = material or MaterialState()
        self.engine = VtkSceneEngine(self.renderer)
        self.engine.add_floor()
        self.engine.load_environment(hdri_dir() / self.setting.environment_map)

        self.camera_controller = OrbitCameraController(
            initial_position=HOME_POSITION,
            viewport_height=max(1, self.vtk_widget.height()),
            rotation_speed=self.setting.rotation_speed,
            zoom_speed=self.setting.zoom_speed,
            damping_factor=self.setting.damping_factor,
        )
        self.camera_controller.add_pose_changed_callback(self._on_pose_changed)

        self.scheduler = QtLoadScheduler(parent=self)
        self.coordinator: ResourceSwapCoordinator[MeshResource] = ResourceSwapCoordinator(
            self.engine, self.scheduler, prepare=self._apply_material)
        self.coordinator.add_swap_completed_callback(self._on_swap_completed)
        self.coordinator.add_load_failed_callback(self._on_load_failed)

        self.material.add_changed_callback(self._on_material_changed)

        self.vtk_widget.installEventFilter(self)
        self.advance_frame()
        self.start_rendering()

        logger.debug("[MaterialViewer] Initialized.")

    @property
    def current_model(self) -> str | None:
        return self.coordinator.live_identifier

    # =====================================================
    # Data
    # =====================================================

    def load_data(self, identifier: str) -> SwapRequest:
        return self.load_model(identifier)

    def load_model(self, identifier: str) -> SwapRequest:
        """Start loading identifier in the background; returns immediately."""
        return self.coordinator.request_swap(identifier)

    def reload_model(self) -> SwapRequest | None:
        if self.current_model is None:
            return None
        return self.load_model(self.current_model)

    def reset_view(self) -> None:
        self.camera_controller.sync_to_position(HOME_POSITION)

    def _apply_material(self, resource: MeshResource) -> None:
        self.engine.apply_material(resource, self.material.params)

    def _on_material_changed(self, params: MaterialParams) -> None:
        live = self.coordinator.live_resource
        if live is not None:
            self.engine.apply_material(live, params)

    def _on_swap_completed(self, request: SwapRequest, resource: MeshResource) -> None:
        self.modelLoaded.emit(request.identifier)
        self.dataLoaded.emit()

    def _on_load_failed(self, request: SwapRequest, error: LoadError) -> None:
        self.modelLoadFailed.emit(request.identifier, error.reason)

    # =====================================================
    # Frame
    # =====================================================

    def advance_frame(self) -> None:
        pose = self.camera_controller.tick()
        self.engine.set_camera_pose(pose.position, pose.focal_point, pose.view_up)
        if self.isVisible():
            self.engine.render_frame()

    def _on_pose_changed(self, pose: CameraPose) -> None:
        self.poseChanged.emit(pose)

    # =====================================================
    # Input
    # =====================================================

    def eventFilter(self, obj: QtCore.QObject, event: QtCore.QEvent) -> bool:
        if obj is not self.vtk_widget:
            return super().eventFilter(obj, event)

        etype = event.type()
        if etype == QtCore.QEvent.MouseButtonPress:
            if event.button() == QtCore.Qt.LeftButton:
                pos = event.position()
                self.camera_controller.on_drag_start(pos.x(), pos.y())
            return True
        if etype == QtCore.QEvent.MouseMove:
            pos = event.position()
            self.camera_controller.on_drag_move(pos.x(), pos.y())
            return True
        if etype == QtCore.QEvent.MouseButtonRelease:
            if event.button() == QtCore.Qt.LeftButton:
                self.camera_controller.on_drag_end()
            return True
        if etype == QtCore.QEvent.Leave:
            self.camera_controller.on_drag_end()
            return False
        if etype == QtCore.QEvent.Wheel:
            self.camera_controller.on_wheel(-event.angleDelta().y() * WHEEL_UNITS_PER_ANGLE)
            return True
        if etype == QtCore.QEvent.Resize:
            self.camera_controller.set_viewport_height(event.size().height())
            return False
        return super().eventFilter(obj, event)

    # =====================================================
    # Lifecycle
    # =====================================================

    def closeEvent(self, event) -> None:
        self.stop_rendering()
        self.scheduler.wait_for_done(2000)
        self.coordinator.clear()
        super().closeEvent(event)
