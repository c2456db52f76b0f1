import math
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class StatusField:
    """
    A status bar entry: label, format and current value.

    :ivar label: The label/name of the status field.
    :ivar fmt: The format string used for formatting the field's value.
    :ivar formatter: Callable formatting the value. Defaults to `fmt.format`.
    :ivar value: The value shown for the field.
    :ivar visible: Whether the field gets a label in the status bar.
    """
    label: str
    fmt: str = "{}"
    formatter: Callable[[Any], str] = None
    value: Any = 0.0
    visible: bool = True

    def __post_init__(self):
        if self.formatter is None:
            self.formatter = lambda v, fmt=self.fmt: fmt.format(v)

    def text(self) -> str:
        return f"{self.label}: {self.formatter(self.value)}"


def format_angle(radians: float) -> str:
    """Format an angle given in radians as degrees, wrapped to (-180, 180]."""
    degrees = math.degrees(radians) % 360.0
    if degrees > 180.0:
        degrees -= 360.0
    return f"{degrees:.1f}°"


def format_model(identifier: str | None) -> str:
    return identifier if identifier else "-"


# If you add a field here, update it from MainWindow.update_status().
STATUS_FIELDS = {
    "radius": StatusField(label="Distance", fmt="{:.2f}"),
    "azimuth": StatusField(label="Azimuth", formatter=format_angle),
    "polar": StatusField(label="Polar", formatter=format_angle),
    "model": StatusField(label="Model", formatter=format_model, value=None),
}
