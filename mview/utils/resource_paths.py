from __future__ import annotations

import sys
from pathlib import Path

# mview/utils/resource_paths.py -> parents[2] is the source checkout.
_SOURCE_ROOT = Path(__file__).resolve().parents[2]


def _is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False))


def app_base_dir() -> Path:
    """
    Directory holding the bundled resources (settings/, models/, hdri/).

    A PyInstaller build unpacks them to sys._MEIPASS; from source it is the checkout root.
    """
    if _is_frozen() and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS)  # type: ignore[attr-defined]
    return _SOURCE_ROOT


def app_install_dir() -> Path:
    """Directory next to the executable (frozen) or the checkout root. Used for logs."""
    if _is_frozen():
        return Path(sys.executable).resolve().parent
    return _SOURCE_ROOT


def settings_dir() -> Path:
    """shortcuts.json and models.json live here."""
    return app_base_dir() / "settings"


def models_json_path() -> Path:
    return settings_dir() / "models.json"


def models_dir() -> Path:
    """Relative model identifiers are resolved against this directory."""
    return app_base_dir() / "models"


def hdri_dir() -> Path:
    return app_base_dir() / "hdri"
