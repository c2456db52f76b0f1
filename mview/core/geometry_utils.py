"""Geometry utility functions for vector and spherical coordinate operations."""
from __future__ import annotations

import math
from typing import Tuple

Vector3 = Tuple[float, float, float]


def calculate_norm(vector: Vector3) -> float:
    """
    Calculate the norm of a vector.

    :param vector: Vector (x, y, z)
    :return: Magnitude of the vector
    """
    return math.sqrt(vector[0] ** 2 + vector[1] ** 2 + vector[2] ** 2)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def lerp(start: float, end: float, alpha: float) -> float:
    """Linear interpolation from start toward end by alpha."""
    return start + (end - start) * alpha


def spherical_to_cartesian(radius: float, theta: float, phi: float) -> Vector3:
    """
    Convert spherical coordinates to a Cartesian position.

    Y is the up axis. phi is the polar angle measured from +Y,
    theta is the azimuth around +Y measured from +Z.

    :param radius: Distance from the origin
    :param theta: Azimuth angle in radians
    :param phi: Polar angle in radians
    :return: Position (x, y, z)
    """
    sin_phi_radius = math.sin(phi) * radius
    return (
        sin_phi_radius * math.sin(theta),
        math.cos(phi) * radius,
        sin_phi_radius * math.cos(theta),
    )


def cartesian_to_spherical(position: Vector3) -> tuple[float, float, float]:
    """
    Convert a Cartesian position to (radius, theta, phi).

    A zero-length position yields (0, 0, 0).
    """
    radius = calculate_norm(position)
    if radius == 0:
        return 0.0, 0.0, 0.0
    theta = math.atan2(position[0], position[2])
    phi = math.acos(clamp(position[1] / radius, -1.0, 1.0))
    return radius, theta, phi
