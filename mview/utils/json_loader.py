"""
Lenient loading of the JSON files under settings/.

The app must start with a missing or hand-edited broken file, so by default
problems become warnings and the caller falls back to built-in defaults.
With strict=True (development, CI) the same problems raise SettingsError.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

_TRUTHY = ("1", "true", "yes", "on")


class SettingsError(RuntimeError):
    """A settings file is missing or invalid and strict loading was requested."""


def truthy_env(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def quarantine(path: Path) -> Path:
    """Move a broken file aside as <stem>.broken-YYYYmmdd-HHMMSS so the next start is clean."""
    target = path.with_suffix(f".broken-{datetime.now():%Y%m%d-%H%M%S}")
    path.rename(target)
    return target


def read_json_dict(
        path: Path,
        *,
        strict: bool,
        quarantine_broken: bool,
        warnings: list[str],
        logger: Optional[logging.Logger] = None,
) -> Optional[dict[str, Any]]:
    """
    Return the top-level JSON object of path.

    In non-strict mode every problem is appended to warnings (and logged) and
    None is returned. A file that is not valid JSON is quarantined first when
    quarantine_broken is set.
    """
    log = logger or logging.getLogger(__name__)

    def problem(msg: str, cause: Exception | None = None) -> None:
        if strict:
            raise SettingsError(msg) from cause
        warnings.append(msg)
        log.warning(msg)
        return None

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        return problem(f"Settings file missing: {path}", e)
    except OSError as e:
        return problem(f"Cannot read {path}: {e}", e)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in {path}: {e}"
        if quarantine_broken and not strict:
            try:
                msg += f" (moved to {quarantine(path).name})"
            except OSError as qe:
                msg += f" (quarantine failed: {qe})"
        return problem(msg, e)

    if not isinstance(data, dict):
        return problem(f"Top-level JSON value must be an object: {path}")
    return data
