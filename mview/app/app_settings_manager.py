from __future__ import annotations
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Callable, Dict
from PySide6.QtCore import QSettings
import logging

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    VERBOSE = "verbose"

    def __str__(self):
        return self.value
    def __repr__(self):
        return self.value


# ----------------------
# Defaults
# ----------------------
DEFAULTS: Dict[str, Any] = {
    "general": {
        "run_mode": RunMode.PRODUCTION.value,
        "logging_level": "INFO",  # "DEBUG", "INFO", "WARNING", "ERROR"
    },
    "view": {
        "rotation_speed": 2.0,
        "zoom_speed": 0.02,
        "damping_factor": 0.10,
        "frame_interval_ms": 16,
    },
    "assets": {
        "default_model": "diamond.glb",
        "environment_map": "photo_studio_loft_hall_1k.hdr",
    },
}

SECTIONS = tuple(DEFAULTS)

# ---------------------
# Data model
# ---------------------
@dataclass
class GeneralConfig:
    run_mode: RunMode = RunMode.PRODUCTION
    logging_level: str = "INFO"

@dataclass
class ViewConfig:
    rotation_speed: float = 2.0
    zoom_speed: float = 0.02
    damping_factor: float = 0.10
    frame_interval_ms: int = 16

@dataclass
class AssetsConfig:
    default_model: str = "diamond.glb"
    environment_map: str = "photo_studio_loft_hall_1k.hdr"

@dataclass
class AppSettingsData:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    assets: AssetsConfig = field(default_factory=AssetsConfig)

# ----------------------
# Utility
# ----------------------
def _validate_run_mode(v: Any) -> RunMode:
    if isinstance(v, RunMode):
        return v
    mode = str(v).strip().lower()
    try:
        return RunMode(mode)
    except ValueError:
        return RunMode(DEFAULTS["general"]["run_mode"])

def _validate_logging_level(v: Any) -> str:
    v = str(v).upper()
    return v if v in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"

def _float_in_range(name: str, lo: float, hi: float) -> Callable[[Any], float]:
    """Validator accepting lo < value <= hi, falling back to the default."""
    def validate(v: Any) -> float:
        default = DEFAULTS["view"][name]
        try:
            f = float(v)
        except (TypeError, ValueError):
            return default
        return f if (lo < f <= hi) else default
    return validate

def _validate_frame_interval(v: Any) -> int:
    try:
        i = int(float(v))
    except (TypeError, ValueError):
        return DEFAULTS["view"]["frame_interval_ms"]
    return i if 1 <= i <= 1000 else DEFAULTS["view"]["frame_interval_ms"]

def _non_empty_text(name: str) -> Callable[[Any], str]:
    def validate(v: Any) -> str:
        s = str(v).strip() if v is not None else ""
        return s or DEFAULTS["assets"][name]
    return validate


_validate_rotation_speed = _float_in_range("rotation_speed", 0.0, 20.0)
_validate_zoom_speed = _float_in_range("zoom_speed", 0.0, 1.0)
_validate_damping_factor = _float_in_range("damping_factor", 0.0, 1.0)

# key -> validator, per section
VALIDATORS: Dict[str, Dict[str, Callable[[Any], Any]]] = {
    "general": {
        "run_mode": lambda v: _validate_run_mode(v).value,
        "logging_level": _validate_logging_level,
    },
    "view": {
        "rotation_speed": _validate_rotation_speed,
        "zoom_speed": _validate_zoom_speed,
        "damping_factor": _validate_damping_factor,
        "frame_interval_ms": _validate_frame_interval,
    },
    "assets": {
        "default_model": _non_empty_text("default_model"),
        "environment_map": _non_empty_text("environment_map"),
    },
}


# ---------------------
# AppSettingManager
# ---------------------
class AppSettingsManager:
    """
    Manages the general application settings.
    Starts from DEFAULTS in code, applies QSettings overrides and
    validates them on load; out-of-range values fall back to defaults.
    set_* writes to QSettings immediately.
    """
    def __init__(self, org_domain: str = "MView.org", app_name: str = "MView"):
        self._settings = QSettings(org_domain, app_name)
        self._data = self._load_effective()

    # read
    @property
    def data(self) -> AppSettingsData:
        return self._data

    @property
    def run_mode(self) -> RunMode:
        return self._data.general.run_mode

    @property
    def dev_mode(self) -> bool:
        return self.run_mode is RunMode.DEVELOPMENT

    @property
    def logging_level(self) -> str:
        return self._data.general.logging_level

    @property
    def rotation_speed(self) -> float:
        return self._data.view.rotation_speed

    @property
    def zoom_speed(self) -> float:
        return self._data.view.zoom_speed

    @property
    def damping_factor(self) -> float:
        return self._data.view.damping_factor

    @property
    def frame_interval_ms(self) -> int:
        return self._data.view.frame_interval_ms

    @property
    def default_model(self) -> str:
        return self._data.assets.default_model

    @property
    def environment_map(self) -> str:
        return self._data.assets.environment_map

    # write
    def set_run_mode(self, v: str | RunMode) -> None:
        mode = _validate_run_mode(v)
        self._settings.setValue("general/run_mode", mode.value)
        self._data.general.run_mode = mode

    def set_logging_level(self, v: str) -> None:
        self._set("general", "logging_level", v)

    def set_rotation_speed(self, v: float) -> None:
        self._set("view", "rotation_speed", v)

    def set_zoom_speed(self, v: float) -> None:
        self._set("view", "zoom_speed", v)

    def set_damping_factor(self, v: float) -> None:
        self._set("view", "damping_factor", v)

    def set_frame_interval_ms(self, v: int) -> None:
        self._set("view", "frame_interval_ms", v)

    def set_default_model(self, v: str) -> None:
        self._set("assets", "default_model", v)

    def set_environment_map(self, v: str) -> None:
        self._set("assets", "environment_map", v)

    # Reset
    def reset_all_to_default(self) -> None:
        """Remove every user setting (shortcuts are managed separately)."""
        for section in SECTIONS:
            self._settings.remove(section)
        self._data = self._load_effective()

    def reset_section(self, section: str) -> None:
        """Restore a single section to its defaults."""
        if section not in SECTIONS:
            raise ValueError(f"Invalid section: {section}")
        self._settings.remove(section)
        self._data = self._load_effective()

    def to_dict(self) -> dict[str, Any]:
        data = {
            "general": asdict(self._data.general),
            "view": asdict(self._data.view),
            "assets": asdict(self._data.assets),
        }
        data["general"]["run_mode"] = self._data.general.run_mode.value
        return data

    # ---------- internals ---------------
    def _set(self, section: str, key: str, v: Any) -> None:
        value = VALIDATORS[section][key](v)
        self._settings.setValue(f"{section}/{key}", value)
        setattr(getattr(self._data, section), key, value)
        logger.debug("Setting changed: %s/%s = %r", section, key, value)

    def _load_effective(self) -> AppSettingsData:
        """Apply QSettings overrides on top of DEFAULTS, validate, build the model."""
        merged = self._apply_qsettings_overrides(DEFAULTS)
        return self._make_model_from(merged)

    def _apply_qsettings_overrides(self, base: dict[str, Any]) -> dict[str, Any]:
        """
        Read the dict based settings and apply QSettings overrides.
        :param base:
        :return: apply QSettings overrides
        """
        merged: dict[str, Any] = {}
        for section, validators in VALIDATORS.items():
            values = dict(base.get(section, {}))
            for key, validate in validators.items():
                v = self._settings.value(f"{section}/{key}", None)
                if v is not None:
                    values[key] = validate(v)
            merged[section] = values
        return merged

    def _make_model_from(self, merged: dict[str, Any]) -> AppSettingsData:
        """
        making model from merged dict and returning merged AppSettingsData
        :param merged:
        :return: merged AppSettingsData
        """
        g = merged.get("general", {})
        vw = merged.get("view", {})
        a = merged.get("assets", {})

        def pick(section: dict[str, Any], name: str, key: str) -> Any:
            return VALIDATORS[name][key](section.get(key, DEFAULTS[name][key]))

        return AppSettingsData(
            general=GeneralConfig(
                run_mode=_validate_run_mode(g.get("run_mode", DEFAULTS["general"]["run_mode"])),
                logging_level=pick(g, "general", "logging_level"),
            ),
            view=ViewConfig(
                rotation_speed=pick(vw, "view", "rotation_speed"),
                zoom_speed=pick(vw, "view", "zoom_speed"),
                damping_factor=pick(vw, "view", "damping_factor"),
                frame_interval_ms=pick(vw, "view", "frame_interval_ms"),
            ),
            assets=AssetsConfig(
                default_model=pick(a, "assets", "default_model"),
                environment_map=pick(a, "assets", "environment_map"),
            ),
        )
