# -----------------------------------------------------------------------------
#  workspace.py
#  Where profiles come from: the packaged set and an optional user workspace
# -----------------------------------------------------------------------------
"""
Profiles ship inside the package and are read from there directly. A user
workspace ($MULPERSIST_HOME, default ~/Documents/Mulpersist) only exists after
`mulpersist init`; its profiles/ directory then shadows packaged profiles of the
same name and may add new ones. A search never writes to the workspace.
"""

from __future__ import annotations

import os
from importlib.resources import files as pkg_files
from importlib.resources.abc import Traversable
from pathlib import Path

PROFILE_SUFFIX = ".toml"


def workspace_dir() -> Path:
    env = os.environ.get("MULPERSIST_HOME")
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / "Documents" / "Mulpersist").resolve()


def packaged_profiles() -> Traversable:
    return pkg_files("mulpersist") / "profiles"


def workspace_profiles() -> Path:
    return workspace_dir() / "profiles"


def _profile_files_in(folder: Traversable) -> dict[str, Traversable]:
    if not folder.is_dir():
        return {}
    return {
        p.name[: -len(PROFILE_SUFFIX)]: p
        for p in folder.iterdir()
        if p.is_file() and p.name.endswith(PROFILE_SUFFIX) and not p.name.startswith(".")
    }


def profile_files() -> dict[str, Traversable]:
    """{name: file} for every known profile; workspace files win over packaged ones."""
    found = _profile_files_in(packaged_profiles())
    found.update(_profile_files_in(workspace_profiles()))
    return found


def is_workspace_file(p: Traversable) -> bool:
    return isinstance(p, Path) and p.parent == workspace_profiles()


def init_workspace(*, overwrite: bool = False) -> tuple[Path, int]:
    """
    Create the workspace and copy the packaged profiles into it.

    overwrite=False → copy-if-missing, profiles the user edited are kept
    overwrite=True  → force replace (dev use, guarded in CLI)

    Returns: (workspace_path, profiles_copied)
    """
    target = workspace_profiles()
    target.mkdir(parents=True, exist_ok=True)
    copied = 0
    for src in _profile_files_in(packaged_profiles()).values():
        dst = target / src.name
        if overwrite or not dst.exists():
            dst.write_bytes(src.read_bytes())
            copied += 1
    return workspace_dir(), copied
