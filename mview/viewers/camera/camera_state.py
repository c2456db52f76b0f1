"""Camera state management separated from UI concerns."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable

from mview.core.geometry_utils import Vector3, cartesian_to_spherical, clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraPose:
    """Immutable camera position in spherical coordinates (radians)."""
    radius: float
    theta: float
    phi: float

    @classmethod
    def from_position(cls, position: Vector3) -> CameraPose:
        radius, theta, phi = cartesian_to_spherical(position)
        return cls(radius, theta, phi)

    def __str__(self) -> str:
        return (f"Radius: {self.radius:.2f}, Azimuth: {math.degrees(self.theta):.1f}, "
                f"Polar: {math.degrees(self.phi):.1f}")


@dataclass(frozen=True)
class CameraLimits:
    """Allowed range of the orbit. Poles are excluded by polar_margin."""
    min_radius: float = 1.0
    max_radius: float = 20.0
    polar_margin: float = 0.05

    def __post_init__(self):
        if not 0 < self.min_radius <= self.max_radius:
            raise ValueError(f"Invalid radius range: {self.min_radius}..{self.max_radius}")
        if not 0 < self.polar_margin < math.pi / 2:
            raise ValueError(f"Invalid polar margin: {self.polar_margin}")

    @property
    def min_polar(self) -> float:
        return self.polar_margin

    @property
    def max_polar(self) -> float:
        return math.pi - self.polar_margin

    def clamp_radius(self, radius: float) -> float:
        return clamp(radius, self.min_radius, self.max_radius)

    def clamp_polar(self, phi: float) -> float:
        return clamp(phi, self.min_polar, self.max_polar)

    def clamp(self, pose: CameraPose) -> CameraPose:
        return replace(pose, radius=self.clamp_radius(pose.radius), phi=self.clamp_polar(pose.phi))


@dataclass(frozen=True)
class LookAtPose:
    """Camera transform handed to the renderer once per frame."""
    position: Vector3
    focal_point: Vector3 = (0.0, 0.0, 0.0)
    view_up: Vector3 = (0.0, 1.0, 0.0)


@dataclass
class PointerDragState:
    active: bool = False
    last_x: float = 0.0
    last_y: float = 0.0


class DampedPoseState:
    """
    Holds the smoothed (current) and requested (target) camera poses.

    Responsible for:
    - Keeping both poses within the limits.
    - Callbacks when the current pose changes.
    - Don't have concerns about input or rendering.
    """

    def __init__(self, pose: CameraPose, limits: CameraLimits | None = None):
        self.limits = limits or CameraLimits()
        pose = self.limits.clamp(pose)
        self._current: CameraPose = pose
        self._target: CameraPose = pose
        self._on_pose_changed_callbacks: list[Callable[[CameraPose], None]] = []

    @property
    def current(self) -> CameraPose:
        return self._current

    @property
    def target(self) -> CameraPose:
        return self._target

    @property
    def is_settled(self) -> bool:
        return self._current == self._target

    def set_target(self, pose: CameraPose) -> None:
        self._target = self.limits.clamp(pose)

    def set_current(self, pose: CameraPose) -> None:
        new_pose = self.limits.clamp(pose)
        if new_pose != self._current:
            self._current = new_pose
            self._notify_pose_changed()

    def reset(self, pose: CameraPose) -> None:
        """Move both poses at once, skipping the damping."""
        self.set_target(pose)
        self.set_current(self._target)

    def add_pose_changed_callback(self, callback: Callable[[CameraPose], None]) -> None:
        """
        Add a callback for current pose changes.

        Callback signature: callback(pose: CameraPose) -> None
        """
        self._on_pose_changed_callbacks.append(callback)

    def remove_pose_changed_callback(self, callback: Callable[[CameraPose], None]) -> None:
        self._on_pose_changed_callbacks.remove(callback)

    def _notify_pose_changed(self) -> None:
        for callback in self._on_pose_changed_callbacks:
            try:
                callback(self._current)
            except Exception as e:
                logger.exception(f"Error in pose changed callback: {e}")
