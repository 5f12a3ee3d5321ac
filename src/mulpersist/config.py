from __future__ import annotations

import os
import tomllib as toml
from dataclasses import dataclass
from importlib.resources.abc import Traversable
from typing import Any

from mulpersist.arith import BACKENDS
from mulpersist.runtime import CFG
from mulpersist.utility import UserInputError
from mulpersist.workspace import is_workspace_file, profile_files


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [_PROFILE_] section).
    .as_dict() feeds runtime.APPLY().

    Added fields:
      - name:        resolved profile name (FILE.stem if not provided in [_PROFILE_])
      - description: one-line description from [_PROFILE_] or "(no description)"
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Traversable | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


@dataclass(frozen=True)
class SearchConfig:
    max_digits: int = 100
    parallel: bool = True
    workers: int = 0                 # 0 = one per CPU
    block_size: int = 100
    min_persistence: int = 2         # records must beat this
    backend: str = "gmpy2"
    debug: bool = False              # per-digit timings on stderr

    @property
    def effective_workers(self) -> int:
        if not self.parallel:
            return 1
        return self.workers if self.workers > 0 else (os.cpu_count() or 1)


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Traversable) -> dict[str, object]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except (OSError, toml.TOMLDecodeError) as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


# --- Metadata handling -----------------------------------------------------


def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [_PROFILE_] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("_PROFILE_") or {}
    raw = {k: v for k, v in raw.items() if k != "_PROFILE_"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return raw, name, description


# --- Public API ------------------------------------------------------------


def list_profiles_with_descriptions() -> list[tuple[str, str, bool]]:
    """
    Return [(name, description, from_workspace), ...] for all profiles.
    Profiles lacking [_PROFILE_] get "(no description)".
    """
    items: list[tuple[str, str, bool]] = []
    for stem, p in profile_files().items():
        try:
            raw = _load_toml(p)
            _, nm, desc = _split_profile_data(raw, stem)
        except UserInputError:
            # Best-effort listing; fall back to filename
            nm, desc = stem, "(unreadable)"
        items.append((nm, desc, is_workspace_file(p)))
    return sorted(items, key=lambda t: t[0].lower())


def list_all_profiles() -> list[str]:
    """Return the available profile *names* (filename stems)."""
    return sorted(profile_files())


def has_profile(name: str) -> bool:
    return name in profile_files()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [_PROFILE_] metadata
    and return Settings(data=..., name=..., description=..., _source=file).
    """
    if not name:
        name = "default"

    path = profile_files().get(name)
    if path is None:
        raise UserInputError(f"Profile '{name}' not found. Available profiles: {', '.join(list_all_profiles())}")

    raw = _load_toml(path)
    data, resolved_name, description = _split_profile_data(raw, name)

    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        _source=path,
    )


# --- Search configuration ----------------------------------------------------


def _as_int(key: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise UserInputError(f"{key} must be an integer, got {value!r}.")
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise UserInputError(f"{key} must be an integer, got {value!r}.") from None
    if v < minimum:
        raise UserInputError(f"{key} must be >= {minimum}, got {v}.")
    return v


def search_config(**overrides: Any) -> SearchConfig:
    """
    Build the SearchConfig from the active runtime profile.
    Keyword overrides (e.g. from CLI flags) win when not None.
    """
    defaults = SearchConfig()
    raw = {
        "max_digits": CFG("SEARCH.MAX_DIGITS", defaults.max_digits),
        "parallel": CFG("SEARCH.PARALLEL", defaults.parallel),
        "workers": CFG("SEARCH.WORKERS", defaults.workers),
        "block_size": CFG("SEARCH.BLOCK_SIZE", defaults.block_size),
        "min_persistence": CFG("SEARCH.MIN_PERSISTENCE", defaults.min_persistence),
        "backend": CFG("BEHAVIOUR.BACKEND", defaults.backend),
        "debug": CFG("BEHAVIOUR.DEBUG", defaults.debug),
    }
    for k, v in overrides.items():
        if k not in raw:
            raise TypeError(f"unknown search setting: {k}")
        if v is not None:
            raw[k] = v

    backend = str(raw["backend"]).strip().lower()
    if backend not in BACKENDS:
        raise UserInputError(f"BEHAVIOUR.BACKEND must be one of {', '.join(sorted(BACKENDS))}, got {raw['backend']!r}.")

    return SearchConfig(
        max_digits=_as_int("SEARCH.MAX_DIGITS", raw["max_digits"], minimum=2),
        parallel=bool(raw["parallel"]),
        workers=_as_int("SEARCH.WORKERS", raw["workers"], minimum=0),
        block_size=_as_int("SEARCH.BLOCK_SIZE", raw["block_size"], minimum=1),
        min_persistence=_as_int("SEARCH.MIN_PERSISTENCE", raw["min_persistence"], minimum=0),
        backend=backend,
        debug=bool(raw["debug"]),
    )
