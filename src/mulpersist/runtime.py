# -----------------------------------------------------------------------------
#  runtime.py
#  Settings of the profile in effect for this run
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any

_active: ContextVar[Mapping[str, Any] | None] = ContextVar("mulpersist_settings", default=None)


def APPLY(settings: Any) -> None:
    """Make a loaded profile (Settings, or a plain nested dict) the active one."""
    data = settings.as_dict() if hasattr(settings, "as_dict") else settings
    _active.set(dict(data or {}))


def CFG(key: str, default: Any = None) -> Any:
    """Dotted lookup in the active profile, e.g. CFG('SEARCH.MAX_DIGITS', 100)."""
    cur: Any = _active.get() or {}
    for part in key.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def reset() -> None:
    _active.set(None)
