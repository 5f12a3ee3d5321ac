# -----------------------------------------------------------------------------
#  reduce.py
#  Digit-product reduction, persistence and canonical forms
# -----------------------------------------------------------------------------

from __future__ import annotations

from itertools import combinations_with_replacement
from typing import Any

from mulpersist.arith import Backend, get_backend

_ONE_DIGIT = 9
_DIGITS = "0123456789"


# --- Helpers ---


def _histogram(text: str) -> list[int]:
    return [text.count(d) for d in _DIGITS]


def _fold(hist: list[int]) -> tuple[int, int, int, int]:
    """Exponents of 2, 3, 5, 7 in the product of the digits counted in hist."""
    twos = hist[2] + 2 * hist[4] + hist[6] + 3 * hist[8]
    threes = hist[3] + hist[6] + 2 * hist[9]
    return twos, threes, hist[5], hist[7]


def _check_non_negative(b: Backend, n: Any) -> Any:
    x = b.make(n)
    if x < 0:
        raise ValueError(f"digit products are defined for n >= 0, got {n}")
    return x


def _reduce(x: Any, b: Backend) -> Any:
    hist = _histogram(b.decimal(x))
    if hist[0]:
        return b.make(0)

    twos, threes, fives, sevens = _fold(hist)
    out = b.pow_small(2, twos)
    if threes:
        out *= b.pow_small(3, threes)
    if fives:
        out *= b.pow_small(5, fives)
    if sevens:
        out *= b.pow_small(7, sevens)
    return out


# --- Public API ---


def digit_histogram(n: int, backend: str | Backend | None = None) -> list[int]:
    """Occurrences of each decimal digit 0-9 in n."""
    b = get_backend(backend)
    return _histogram(b.decimal(_check_non_negative(b, n)))


def digit_product_exponents(n: int, backend: str | Backend | None = None) -> dict[int, int] | None:
    """
    Prime factorization {2: a, 3: b, 5: c, 7: d} of the digit product of n,
    omitting zero exponents. None when n contains the digit 0.
    """
    hist = digit_histogram(n, backend)
    if hist[0]:
        return None
    return {p: e for p, e in zip((2, 3, 5, 7), _fold(hist), strict=True) if e}


def reduce_digits(n: int, backend: str | Backend | None = None) -> Any:
    """
    Product of the decimal digits of n, rebuilt as 2^a · 3^b · 5^c · 7^d from
    the digit histogram (4 = 2², 6 = 2·3, 8 = 2³, 9 = 3²). Zero if any digit is 0.
    """
    b = get_backend(backend)
    return _reduce(_check_non_negative(b, n), b)


def persistence(n: int, backend: str | Backend | None = None) -> int:
    """Number of digit-product steps needed to bring n down to a single digit."""
    b = get_backend(backend)
    x = _check_non_negative(b, n)
    count = 0
    while x > _ONE_DIGIT:
        x = _reduce(x, b)
        count += 1
    return count


def persistence_sequence(n: int, backend: str | Backend | None = None) -> list[Any]:
    """
    Return the multiplicative persistence sequence for n.
    Example: 39 → [39, 27, 14, 4] (persistence = 3)
    """
    b = get_backend(backend)
    x = _check_non_negative(b, n)
    seq = [x]
    while x > _ONE_DIGIT:
        x = _reduce(x, b)
        seq.append(x)
    return seq


def small_prefix(twos: int, threes: int) -> str:
    """
    Smallest digit string over {2, 3, 4, 6} whose digits multiply to 2^twos · 3^threes.
    Only meaningful for the residues left after taking out 8s and 9s (twos < 3, threes < 2).
    """
    target = 2 ** twos * 3 ** threes
    for length in range(3):
        # combinations come out sorted, so the first hit is the smallest number
        for combo in combinations_with_replacement((2, 3, 4, 6), length):
            prod = 1
            for d in combo:
                prod *= d
            if prod == target:
                return "".join(map(str, combo))
    raise ValueError(f"no short prefix for 2^{twos} · 3^{threes}")


def canonical_digits(n: int, backend: str | Backend | None = None) -> str:
    """
    Digits of the smallest number whose digit product equals that of n:
    a short prefix followed by 5s, 7s, 8s and 9s in ascending order.
    Example: 7236 → "479"
    """
    exps = digit_product_exponents(n, backend)
    if exps is None:
        return "0"

    eights, twos = divmod(exps.get(2, 0), 3)
    nines, threes = divmod(exps.get(3, 0), 2)
    text = (
        small_prefix(twos, threes)
        + "5" * exps.get(5, 0)
        + "7" * exps.get(7, 0)
        + "8" * eights
        + "9" * nines
    )
    return text or "1"


def canonical_form(n: int, backend: str | Backend | None = None) -> Any:
    b = get_backend(backend)
    return b.make(canonical_digits(n, b))
