"""Core components layer - shared, view-independent functionality."""

from mview.core.geometry_utils import (
    calculate_norm,
    cartesian_to_spherical,
    spherical_to_cartesian,
)
from mview.core.material import MaterialParams, MaterialState
from mview.core.resource_swap import (
    LoadError,
    ResourceSwapCoordinator,
    SwapRequest,
    SwapState,
)

__all__ = [
    "calculate_norm",
    "cartesian_to_spherical",
    "spherical_to_cartesian",
    "MaterialParams",
    "MaterialState",
    "LoadError",
    "ResourceSwapCoordinator",
    "SwapRequest",
    "SwapState",
]
