# -----------------------------------------------------------------------------
#  arith.py
#  Arbitrary-precision arithmetic backends
# -----------------------------------------------------------------------------
"""
The search core only needs a handful of big-integer capabilities:

    make(v)              build a big integer from a Python int or digit string
    pow_small(b, e)      b**e for a small base and a small exponent
    decimal(x)           base-10 string, read to build the digit histogram

Multiplication and comparison with small ints are plain operators, which both
backends support. Values never leave the process that made them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import gmpy2


@dataclass(frozen=True)
class Backend:
    name: str
    make: Callable[[Any], Any]
    decimal: Callable[[Any], str]

    def pow_small(self, base: int, exp: int) -> Any:
        return self.make(base) ** exp


GMPY2 = Backend(name="gmpy2", make=gmpy2.mpz, decimal=lambda x: x.digits(10))
PYINT = Backend(name="int", make=int, decimal=str)

BACKENDS: dict[str, Backend] = {b.name: b for b in (GMPY2, PYINT)}
DEFAULT_BACKEND = GMPY2


def get_backend(name: str | Backend | None) -> Backend:
    if name is None:
        return DEFAULT_BACKEND
    if isinstance(name, Backend):
        return name
    try:
        return BACKENDS[str(name).strip().lower()]
    except KeyError:
        raise ValueError(f"unknown arithmetic backend: {name!r}") from None
