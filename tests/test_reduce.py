# tests/test_reduce.py
"""
Digit-product reduction, persistence and canonical forms.

Run: pytest -v
"""

from __future__ import annotations

import pytest

from mulpersist.arith import BACKENDS, get_backend
from mulpersist.prefixes import PREFIXES, derive_prefixes
from mulpersist.reduce import (
    canonical_digits,
    canonical_form,
    digit_histogram,
    digit_product_exponents,
    persistence,
    persistence_sequence,
    reduce_digits,
    small_prefix,
)

# ---------- helpers -----------------------------------------------------------


def _naive_product(n: int) -> int:
    prod = 1
    for ch in str(n):
        prod *= int(ch)
    return prod


BACKEND_NAMES = sorted(BACKENDS)


# ---------- reduction ---------------------------------------------------------


@pytest.mark.parametrize("backend", BACKEND_NAMES)
@pytest.mark.parametrize("n", [2, 39, 77, 679, 7236, 6788, 123456789, 98765432, 2**64 + 3])
def test_reduce_matches_digit_product(backend, n):
    assert int(reduce_digits(n, backend)) == _naive_product(n)


@pytest.mark.parametrize("n", [10, 105, 2000, 9990, 10**40 + 7])
def test_reduce_is_zero_when_a_digit_is_zero(n):
    assert reduce_digits(n) == 0


def test_reduce_shrinks_every_multi_digit_number():
    for n in range(10, 5000):
        assert reduce_digits(n) < n, n


def test_reduce_of_famous_number():
    r = reduce_digits(277777788888899)
    assert r == 2**19 * 3**4 * 7**6 == 4996238671872
    assert digit_product_exponents(277777788888899) == {2: 19, 3: 4, 7: 6}


def test_reduce_returns_backend_values():
    assert type(reduce_digits(39, "int")) is int
    assert type(reduce_digits(39, "gmpy2")) is type(get_backend("gmpy2").make(1))


@pytest.mark.parametrize("backend", BACKEND_NAMES)
def test_backend_decimal_and_power(backend):
    b = get_backend(backend)
    assert b.decimal(b.make(1207)) == "1207"
    assert b.decimal(b.pow_small(7, 3)) == "343"


def test_histogram():
    assert digit_histogram(7236) == [0, 0, 1, 1, 0, 0, 1, 1, 0, 0]
    assert digit_histogram(0) == [1, 0, 0, 0, 0, 0, 0, 0, 0, 0]


def test_negative_input_is_rejected():
    with pytest.raises(ValueError):
        reduce_digits(-12)


def test_unknown_backend():
    with pytest.raises(ValueError):
        get_backend("decimal")


# ---------- persistence -------------------------------------------------------

# smallest number with each persistence
KNOWN = [
    (10, 1),
    (25, 2),
    (39, 3),
    (77, 4),
    (679, 5),
    (6788, 6),
    (68889, 7),
    (2677889, 8),
    (26888999, 9),
    (3778888999, 10),
    (277777788888899, 11),
]

KNOWN_IDS = [f"{n}_p{p}" for n, p in KNOWN]


@pytest.mark.parametrize("backend", BACKEND_NAMES)
@pytest.mark.parametrize("n,expected", KNOWN, ids=KNOWN_IDS)
def test_known_persistence(backend, n, expected):
    assert persistence(n, backend) == expected


@pytest.mark.parametrize("n", range(10))
def test_single_digits_have_no_steps(n):
    assert persistence(n) == 0


def test_famous_number_chain_after_first_step():
    assert persistence(reduce_digits(277777788888899)) == 10


def test_sequence():
    assert [int(x) for x in persistence_sequence(39)] == [39, 27, 14, 4]
    assert [int(x) for x in persistence_sequence(7)] == [7]
    seq = persistence_sequence(277777788888899)
    assert len(seq) == 12
    assert int(seq[-1]) == 0


# ---------- canonical form ----------------------------------------------------

CANONICAL = [
    (0, "0"),
    (1, "1"),
    (111, "1"),
    (7236, "479"),
    (52, "25"),
    (36, "29"),
    (66, "49"),
    (2222, "28"),
    (34, "26"),
    (6788, "6788"),
    (277777788888899, "277777788888899"),
    (987654321, "2578899"),
]


@pytest.mark.parametrize("n,expected", CANONICAL, ids=[str(n) for n, _ in CANONICAL])
def test_canonical_digits(n, expected):
    assert canonical_digits(n) == expected


@pytest.mark.parametrize("n", [7236, 987654321, 2**50, 3**40, 123456789123, 55577799])
def test_canonical_form_keeps_digit_product(n):
    assert reduce_digits(canonical_form(n)) == reduce_digits(n)


def test_canonical_form_is_idempotent():
    for n in range(1, 3000):
        c = canonical_digits(n)
        assert canonical_digits(int(c)) == c, n


def test_canonical_form_is_never_longer():
    for n in range(1, 3000):
        if "0" in str(n):
            continue
        assert len(canonical_digits(n)) <= len(str(n)), n


def test_canonical_form_has_no_zero_or_one_digits():
    for n in range(2, 3000):
        c = canonical_digits(n)
        if c in ("0", "1"):
            continue
        assert "0" not in c and "1" not in c, n


# ---------- prefixes ----------------------------------------------------------


def test_prefix_table_is_derivable():
    assert derive_prefixes() == PREFIXES


def test_prefix_products_match_their_digits():
    for p in PREFIXES:
        assert len(p.text) == p.digits
        assert (_naive_product(int(p.text)) if p.text else 1) == p.product
        assert not set(p.text) & set("01789")


@pytest.mark.parametrize("twos,threes,expected", [
    (0, 0, ""), (1, 0, "2"), (2, 0, "4"), (0, 1, "3"), (1, 1, "6"), (2, 1, "26"),
])
def test_small_prefix(twos, threes, expected):
    assert small_prefix(twos, threes) == expected


def test_small_prefix_out_of_range():
    with pytest.raises(ValueError):
        small_prefix(5, 0)
