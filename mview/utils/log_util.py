from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import Any, Callable

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _short_repr(value: Any, limit: int = 120) -> str:
    try:
        text = repr(value)
    except Exception:
        text = f"<{type(value).__name__}: repr failed>"
    return text if len(text) <= limit else text[:limit] + "..."


def log_io(level: int = logging.DEBUG, mask: tuple[str, ...] = ()):
    """
    Log call arguments, result and duration of the decorated function.

    Records go to the decorated function's module logger, so they can be
    filtered per module. Arguments named in mask are logged as ***.
    Exceptions are logged at the same level and re-raised.
    """
    def deco(func: Callable):
        log = logging.getLogger(func.__module__)
        name = func.__qualname__
        signature = inspect.signature(func)

        def describe(args, kwargs) -> str:
            try:
                bound = signature.bind(*args, **kwargs)
            except TypeError:
                return "<unbound>"
            return ", ".join(
                f"{k}={'***' if k in mask else _short_repr(v)}"
                for k, v in bound.arguments.items() if k not in ("self", "cls")
            )

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            enabled = log.isEnabledFor(level)
            if enabled:
                log.log(level, "-> %s(%s)", name, describe(args, kwargs))
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log.log(level, "<- %s raised %s after %.1f ms: %s", name, type(e).__name__,
                        (time.perf_counter() - start) * 1000.0, e)
                raise
            if enabled:
                log.log(level, "<- %s [%.1f ms] = %s", name,
                        (time.perf_counter() - start) * 1000.0, _short_repr(result))
            return result
        return wrapper
    return deco


def level_from_name(value: Any, default: int = logging.INFO) -> int:
    """Accept an int, a numeric string or a level name; anything else gives default."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().upper()
        if text.isdigit():
            return int(text)
        if text in _LEVEL_NAMES:
            return getattr(logging, text)
    return default
