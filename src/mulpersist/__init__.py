from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("mulpersist")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .arith import BACKENDS, get_backend
from .config import SearchConfig, load_settings, search_config
from .prefixes import PREFIXES, Prefix
from .reduce import canonical_form, persistence, persistence_sequence, reduce_digits
from .runtime import APPLY, CFG
from .search import candidates, run_search

__all__ = [
    "APPLY",
    "BACKENDS",
    "CFG",
    "PREFIXES",
    "Prefix",
    "SearchConfig",
    "__version__",
    "canonical_form",
    "candidates",
    "get_backend",
    "load_settings",
    "persistence",
    "persistence_sequence",
    "reduce_digits",
    "run_search",
    "search_config",
]
