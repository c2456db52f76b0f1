from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable

from mview.core import geometry_utils
from mview.core.geometry_utils import Vector3
from mview.viewers.camera.camera_state import (
    CameraLimits,
    CameraPose,
    DampedPoseState,
    LookAtPose,
    PointerDragState,
)

logger = logging.getLogger(__name__)

HOME_POSITION: Vector3 = (0.0, 2.0, 5.0)

# Remaining distance below which a component snaps onto its target.
_SNAP_EPSILON = 1e-9


class OrbitCameraController:
    """
    Damped orbit camera around the origin.

    Input handlers only move the target pose (clamped immediately);
    tick() moves the current pose a fixed fraction toward the target and
    returns the transform to render with.
    """

    def __init__(self,
                 initial_position: Vector3 = HOME_POSITION,
                 viewport_height: float = 600.0,
                 rotation_speed: float = 2.0,
                 zoom_speed: float = 0.02,
                 damping_factor: float = 0.10,
                 limits: CameraLimits | None = None) -> None:
        if not 0 < damping_factor <= 1:
            raise ValueError(f"damping_factor must be in (0, 1]: {damping_factor}")
        self.rotation_speed = rotation_speed
        self.zoom_speed = zoom_speed
        self.damping_factor = damping_factor
        self._viewport_height = 1.0
        self.set_viewport_height(viewport_height)

        self.state = DampedPoseState(CameraPose.from_position(initial_position), limits)
        self.drag = PointerDragState()

    @property
    def limits(self) -> CameraLimits:
        return self.state.limits

    @property
    def current(self) -> CameraPose:
        return self.state.current

    @property
    def target(self) -> CameraPose:
        return self.state.target

    @property
    def is_settled(self) -> bool:
        return self.state.is_settled

    @property
    def viewport_height(self) -> float:
        return self._viewport_height

    def set_viewport_height(self, height: float) -> None:
        self._viewport_height = max(1.0, float(height))

    def add_pose_changed_callback(self, callback: Callable[[CameraPose], None]) -> None:
        """Add a callback invoked when tick() moves the current pose."""
        self.state.add_pose_changed_callback(callback)

    # =====================================================
    # Input
    # =====================================================

    def on_drag_start(self, x: float, y: float) -> None:
        if self.drag.active:
            return
        self.drag.active = True
        self.drag.last_x = x
        self.drag.last_y = y

    def on_drag_move(self, x: float, y: float) -> None:
        """
        Orbit by the pointer movement since the last event.

        The angle per pixel is scaled by the viewport height so the
        rotation speed doesn't depend on the window size.
        """
        if not self.drag.active:
            return
        dx = x - self.drag.last_x
        dy = y - self.drag.last_y
        self.drag.last_x = x
        self.drag.last_y = y

        angle_per_pixel = self.rotation_speed * (math.pi / self._viewport_height)
        target = self.state.target
        self.state.set_target(replace(
            target,
            theta=target.theta - dx * angle_per_pixel,
            phi=target.phi - dy * angle_per_pixel,
        ))

    def on_drag_end(self) -> None:
        self.drag.active = False

    def on_wheel(self, delta_y: float) -> None:
        """Positive delta (scroll down) moves the camera away."""
        target = self.state.target
        self.state.set_target(replace(target, radius=target.radius + delta_y * self.zoom_speed))
        logger.debug("Zoom target radius: %.3f", self.state.target.radius)

    # =====================================================
    # Frame
    # =====================================================

    def tick(self) -> LookAtPose:
        """Advance the current pose toward the target and return the camera transform."""
        current = self.state.current
        target = self.state.target
        self.state.set_current(CameraPose(
            radius=self._approach(current.radius, target.radius),
            theta=self._approach(current.theta, target.theta),
            phi=self._approach(current.phi, target.phi),
        ))
        return self.look_at()

    def look_at(self) -> LookAtPose:
        current = self.state.current
        position = geometry_utils.spherical_to_cartesian(current.radius, current.theta, current.phi)
        return LookAtPose(position=position)

    def sync_to_position(self, position: Vector3) -> None:
        """
        Re-derive current and target from a Cartesian camera position.

        The controller never reads the renderer's camera back; callers that
        move the camera externally must report it here.
        """
        pose = CameraPose.from_position(position)
        self.state.reset(pose)
        self.drag.active = False
        logger.info(f"Camera synced to position {position}: {self.state.current}")

    def _approach(self, value: float, target: float) -> float:
        new_value = geometry_utils.lerp(value, target, self.damping_factor)
        if abs(target - new_value) < _SNAP_EPSILON:
            return target
        return new_value
