# tests/test_search.py
"""
Candidate enumeration, shared record state and the search driver.

Run: pytest -v
"""

from __future__ import annotations

import multiprocessing as mp
import random
import threading

import pytest

from mulpersist.config import SearchConfig
from mulpersist.output_manager import OutputManager
from mulpersist.prefixes import PREFIXES
from mulpersist.reduce import persistence, reduce_digits
from mulpersist.search import (
    BlockCountdown,
    Candidate,
    SharedMaximum,
    candidates,
    count_candidates,
    run_search,
    search_digit_count,
)

# ---------- helpers -----------------------------------------------------------


def _texts(digit_count: int) -> list[str]:
    return [c.text for c in candidates(digit_count)]


def _config(**kw) -> SearchConfig:
    base = {"max_digits": 3, "parallel": False, "workers": 1, "block_size": 100,
            "min_persistence": 2, "backend": "gmpy2"}
    base.update(kw)
    return SearchConfig(**base)


EMPTY_PREFIX = PREFIXES[-1]

# ---------- enumeration -------------------------------------------------------


def test_two_digit_candidates_in_search_order():
    assert _texts(2) == [
        "26",
        "27", "28", "29",
        "35", "37", "38", "39",
        "47", "48", "49",
        "67", "68", "69",
        "55", "57", "59", "77", "78", "79", "88", "89", "99",
    ]


@pytest.mark.parametrize("digit_count", [2, 3, 5, 10, 40])
def test_closed_form_count(digit_count):
    assert count_candidates(digit_count) == sum(1 for _ in candidates(digit_count))


@pytest.mark.parametrize("digit_count", range(2, 8))
def test_candidates_are_canonical_numbers(digit_count):
    seen = set()
    for cand in candidates(digit_count):
        text = cand.text
        assert len(text) == cand.digits == digit_count
        assert "0" not in text and "1" not in text
        assert list(text[cand.prefix.digits:]) == sorted(text[cand.prefix.digits:])
        # 5s never share a number with an even digit
        if "5" in text:
            assert not set(text) & set("2468")
        assert cand.product() == reduce_digits(int(text))
        seen.add(text)
    assert len(seen) == count_candidates(digit_count)


@pytest.mark.parametrize("digit_count", range(2, 7))
def test_candidate_persistence_is_true_persistence(digit_count):
    for cand in candidates(digit_count):
        assert cand.persistence() == persistence(int(cand.text))


def test_scenario_prefix_empty_seven_nine():
    cand = Candidate(EMPTY_PREFIX, ((7, 1), (8, 0), (9, 1)))
    assert cand in set(candidates(2))
    assert cand.text == "79"
    assert cand.product() == 63
    assert persistence(63) == 2
    assert cand.persistence() == 3


def test_product_with_int_backend():
    cand = Candidate(PREFIXES[0], ((7, 2), (8, 2), (9, 1)))
    assert cand.text == "2677889"
    assert cand.product("int") == 12 * 49 * 64 * 9
    assert cand.persistence("int") == 8


# ---------- shared maximum ----------------------------------------------------


def test_offer_requires_strictly_greater():
    best = SharedMaximum(floor=2)
    emitted = []
    cand = Candidate(EMPTY_PREFIX, ((7, 2), (8, 0), (9, 0)))

    def emit(p, text):
        emitted.append((p, text))

    assert not best.offer(2, cand, emit)
    assert best.offer(4, cand, emit)
    assert not best.offer(4, cand, emit)
    assert not best.offer(3, cand, emit)
    assert best.value == 4
    assert emitted == [(4, "77")] == best.accepted


def test_offer_from_many_threads():
    best = SharedMaximum(floor=0)
    cand = Candidate(EMPTY_PREFIX, ((7, 1), (8, 0), (9, 0)))
    emitted = []
    values = list(range(1, 500))
    random.Random(7).shuffle(values)

    def worker(chunk):
        for v in chunk:
            best.offer(v, cand, lambda p, _t: emitted.append(p))

    threads = [threading.Thread(target=worker, args=(values[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert best.value == 499
    assert emitted == sorted(set(emitted))
    assert emitted[-1] == 499


# ---------- shared memory ---------------------------------------------------


def test_shared_memory_maximum_keeps_the_double_check():
    best = SharedMaximum(floor=3, ctx=mp.get_context("spawn"))
    cand = Candidate(EMPTY_PREFIX, ((7, 2), (8, 0), (9, 0)))
    emitted = []
    assert not best.offer(3, cand, lambda p, t: emitted.append((p, t)))
    assert best.offer(4, cand, lambda p, t: emitted.append((p, t)))
    assert not best.offer(4, cand, lambda p, t: emitted.append((p, t)))
    assert best.value == 4
    assert emitted == [(4, "77")]


def test_shared_memory_blocks_count_down():
    blocks = BlockCountdown(250, 100, ctx=mp.get_context("spawn"))
    assert [blocks.remaining(i) for i in range(3)] == [99, 100, 50]
    reported = [b for b in (blocks.tick(d) for d in range(2, 251)) if b is not None]
    assert reported == [100, 200, 250]


# ---------- block countdown ---------------------------------------------------


def test_single_block_reports_once():
    blocks = BlockCountdown(3, 100)
    assert blocks.remaining(0) == 2
    assert blocks.tick(2) is None
    assert blocks.tick(3) == 3


def test_blocks_report_their_bounds_once_in_any_order():
    blocks = BlockCountdown(250, 100)
    assert [blocks.remaining(i) for i in range(3)] == [99, 100, 50]
    order = list(range(2, 251))
    random.Random(1).shuffle(order)
    reported = [b for b in (blocks.tick(d) for d in order) if b is not None]
    assert sorted(reported) == [100, 200, 250]


def test_exact_multiple_has_no_empty_trailing_block():
    blocks = BlockCountdown(100, 100)
    reported = [b for b in (blocks.tick(d) for d in range(2, 101)) if b is not None]
    assert reported == [100]


# ---------- driver ------------------------------------------------------------


def test_search_digit_count_counts_candidates():
    best = SharedMaximum(2)
    om = OutputManager(quiet=True)
    assert search_digit_count(2, best, om.record) == count_candidates(2)
    assert best.value == 4
    assert om.getvalue() == "03:  39\n04:  77\n"


def test_search_up_to_three_digits(capsys):
    result = run_search(_config(), OutputManager())
    out, err = capsys.readouterr()
    assert out == "03:  39\n04:  77\n05:  679\n"
    assert err.count("Finished searching at 3 digits\n") == 1
    assert result.best == 5
    assert result.records == [(3, "39"), (4, "77"), (5, "679")]
    assert result.evaluated == count_candidates(2) + count_candidates(3)


@pytest.mark.parametrize("backend", ["gmpy2", "int"])
def test_search_up_to_ten_digits(backend, capsys):
    result = run_search(_config(max_digits=10, block_size=5, backend=backend), OutputManager())
    out, err = capsys.readouterr()
    assert [p for p, _ in result.records] == [3, 4, 5, 6, 7, 8, 9, 10]
    assert out.splitlines()[:3] == ["03:  39", "04:  77", "05:  679"]
    assert err.splitlines() == ["Finished searching at 5 digits", "Finished searching at 10 digits"]
    for p, text in result.records:
        assert persistence(int(text)) == p


def test_min_persistence_raises_the_floor(capsys):
    result = run_search(_config(max_digits=4, min_persistence=4), OutputManager())
    out, _ = capsys.readouterr()
    assert out == "05:  679\n06:  6788\n"
    assert result.best == 6


def test_parallel_matches_sequential(capsys):
    seq = run_search(_config(max_digits=14), OutputManager(quiet=True))
    par = run_search(_config(max_digits=14, parallel=True, workers=4), OutputManager(quiet=True))
    capsys.readouterr()

    assert par.best == seq.best == 10
    assert par.evaluated == seq.evaluated
    values = [p for p, _ in par.records]
    assert values == sorted(set(values))
    for p, text in par.records:
        assert persistence(int(text)) == p


def test_parallel_records_reach_the_screen(capsys):
    result = run_search(_config(max_digits=8, block_size=4, parallel=True, workers=2), OutputManager())
    out, err = capsys.readouterr()
    assert out == "".join(f"{p:02d}:  {text}\n" for p, text in result.records)
    assert result.best == 9
    assert sorted(err.splitlines()) == ["Finished searching at 4 digits", "Finished searching at 8 digits"]
