"""
Shared physically based material parameters.

The parameter set mirrors a clear-coated, transmissive gem material.
Values are clamped into their ranges instead of being rejected.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Callable

from mview.core.geometry_utils import clamp

logger = logging.getLogger(__name__)

Color = tuple[float, float, float]

# name -> (min, max) for the scalar parameters.
PARAM_RANGES: dict[str, tuple[float, float]] = {
    "roughness": (0.0, 1.0),
    "metalness": (0.0, 1.0),
    "transmission": (0.0, 1.0),
    "ior": (1.0, 3.0),
    "thickness": (0.0, 10.0),
    "dispersion": (0.0, 10.0),
    "iridescence": (0.0, 10.0),
    "iridescence_ior": (1.0, 2.33),
    "clearcoat": (0.0, 1.0),
    "clearcoat_roughness": (0.0, 1.0),
    "attenuation_distance": (0.0, 100.0),
}

IRIDESCENCE_THICKNESS_RANGE = (0.0, 1000.0)


def color_from_hex(value: str | int) -> Color:
    """Convert '#rrggbb' or 0xrrggbb to an RGB tuple in [0, 1]."""
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) != 6:
            raise ValueError(f"Invalid color: {value!r}")
        value = int(text, 16)
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )


def color_to_hex(color: Color) -> str:
    return "#" + "".join(f"{round(clamp(c, 0.0, 1.0) * 255):02x}" for c in color)


def _validate_color(value: Any) -> Color:
    if isinstance(value, (str, int)):
        return color_from_hex(value)
    r, g, b = value
    return clamp(float(r), 0.0, 1.0), clamp(float(g), 0.0, 1.0), clamp(float(b), 0.0, 1.0)


def _validate_thickness_range(value: Any) -> tuple[float, float]:
    lo, hi = (clamp(float(v), *IRIDESCENCE_THICKNESS_RANGE) for v in value)
    return (lo, hi) if lo <= hi else (hi, lo)


@dataclass(frozen=True)
class MaterialParams:
    color: Color = (1.0, 1.0, 0.0)
    attenuation_color: Color = (1.0, 1.0, 0.0)
    roughness: float = 0.01
    metalness: float = 0.01
    transmission: float = 1.0
    ior: float = 2.7
    thickness: float = 1.5
    dispersion: float = 4.0
    iridescence: float = 6.0
    iridescence_ior: float = 1.2
    iridescence_thickness_range: tuple[float, float] = (100.0, 400.0)
    clearcoat: float = 1.0
    clearcoat_roughness: float = 0.2
    attenuation_distance: float = 1.0

    def validated(self) -> MaterialParams:
        """Return a copy with every value clamped into its range."""
        values = asdict(self)
        for name, (lo, hi) in PARAM_RANGES.items():
            values[name] = clamp(float(values[name]), lo, hi)
        values["color"] = _validate_color(values["color"])
        values["attenuation_color"] = _validate_color(values["attenuation_color"])
        values["iridescence_thickness_range"] = _validate_thickness_range(
            values["iridescence_thickness_range"])
        return MaterialParams(**values)

    @property
    def opacity(self) -> float:
        """Surface opacity for renderers without a transmission model."""
        return clamp(1.0 - 0.85 * self.transmission, 0.05, 1.0)


PARAM_NAMES = frozenset(f.name for f in fields(MaterialParams))


class MaterialState:
    """
    Holds the material shared by every drawable node of the live model.

    update() keeps the attenuation color in step with the base color.
    """

    def __init__(self, params: MaterialParams | None = None) -> None:
        self._params = (params or MaterialParams()).validated()
        self._on_changed_callbacks: list[Callable[[MaterialParams], None]] = []

    @property
    def params(self) -> MaterialParams:
        return self._params

    def update(self, **changes: Any) -> MaterialParams:
        """
        Change one or more parameters.

        :raises KeyError: for an unknown parameter name
        :return: the new parameters
        """
        unknown = set(changes) - PARAM_NAMES
        if unknown:
            raise KeyError(f"Unknown material parameter(s): {', '.join(sorted(unknown))}")
        if "color" in changes and "attenuation_color" not in changes:
            changes["attenuation_color"] = changes["color"]

        new_params = replace(self._params, **changes).validated()
        if new_params != self._params:
            self._params = new_params
            logger.debug("Material updated: %s", changes)
            self._notify_changed()
        return self._params

    def reset(self) -> None:
        defaults = MaterialParams().validated()
        if defaults != self._params:
            self._params = defaults
            self._notify_changed()

    def add_changed_callback(self, callback: Callable[[MaterialParams], None]) -> None:
        """
        Add a callback for material changes.

        Callback signature: callback(params: MaterialParams) -> None
        """
        self._on_changed_callbacks.append(callback)

    def _notify_changed(self) -> None:
        for callback in self._on_changed_callbacks:
            try:
                callback(self._params)
            except Exception as e:
                logger.exception(f"Error in material changed callback: {e}")
