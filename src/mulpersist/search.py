# -----------------------------------------------------------------------------
#  search.py
#  Canonical candidate enumeration and the record search driver
# -----------------------------------------------------------------------------

from __future__ import annotations

import multiprocessing as mp
import queue
import sys
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from dataclasses import dataclass, field
from time import perf_counter
from types import SimpleNamespace
from typing import Any

from mulpersist.arith import Backend, get_backend
from mulpersist.config import SearchConfig
from mulpersist.fmt import format_duration
from mulpersist.output_manager import OutputManager
from mulpersist.prefixes import PREFIXES, Prefix
from mulpersist.reduce import persistence

MIN_DIGITS = 2


@dataclass(frozen=True)
class Candidate:
    prefix: Prefix
    trailing: tuple[tuple[int, int], ...]   # (digit, count), digits ascending

    @property
    def digits(self) -> int:
        return self.prefix.digits + sum(c for _, c in self.trailing)

    @property
    def text(self) -> str:
        return self.prefix.text + "".join(str(d) * c for d, c in self.trailing)

    def product(self, backend: str | Backend | None = None) -> Any:
        """Digit product of the candidate, i.e. its first persistence step."""
        b = get_backend(backend)
        out = b.make(self.prefix.product)
        for d, c in self.trailing:
            if c:
                out *= b.pow_small(d, c)
        return out

    def persistence(self, backend: str | Backend | None = None) -> int:
        return 1 + persistence(self.product(backend), backend)


def candidates(digit_count: int, prefixes: Iterable[Prefix] = PREFIXES) -> Iterator[Candidate]:
    """
    Every canonical candidate with exactly digit_count digits, in search order:
    per prefix, the 5/7/9 family (odd prefixes only) and then the 7/8/9 family.
    """
    for prefix in prefixes:
        if digit_count < prefix.digits:
            continue
        rest = digit_count - prefix.digits

        if prefix.is_odd:
            # No 8s next to a 5: 8 × 5 puts a 0 in the product.
            # Strict bound keeps at least one 5; the 5-free cases come below.
            for num79 in range(rest):
                num5 = rest - num79
                for num9 in range(num79 + 1):
                    yield Candidate(prefix, ((5, num5), (7, num79 - num9), (9, num9)))

        for num89 in range(rest + 1):
            num7 = rest - num89
            for num9 in range(num89 + 1):
                yield Candidate(prefix, ((7, num7), (8, num89 - num9), (9, num9)))


def count_candidates(digit_count: int, prefixes: Iterable[Prefix] = PREFIXES) -> int:
    """Closed-form size of candidates(digit_count)."""
    total = 0
    for prefix in prefixes:
        rest = digit_count - prefix.digits
        if rest < 0:
            continue
        if prefix.is_odd:
            total += rest * (rest + 1) // 2
        total += (rest + 1) * (rest + 2) // 2
    return total


class SharedMaximum:
    """
    Best persistence found so far, shared by all workers of one search.

    `value` may be read without the lock; a stale read only lets a candidate
    through to the locked re-check, it never drops a true record.

    Given a multiprocessing context, the value lives in shared memory and the
    lock is a process lock, so every worker process sees the same maximum.
    """

    def __init__(self, floor: int = 2, ctx: Any = None):
        if ctx is None:
            self._cell = SimpleNamespace(value=floor)
            self._lock = threading.Lock()
        else:
            self._cell = ctx.Value("i", floor, lock=False)
            self._lock = ctx.Lock()
        self.accepted: list[tuple[int, str]] = []

    @property
    def value(self) -> int:
        return self._cell.value

    def offer(self, persistence: int, candidate: Candidate, emit: Callable[[int, str], None]) -> bool:
        if persistence <= self._cell.value:
            return False
        with self._lock:
            if persistence <= self._cell.value:
                return False
            text = candidate.text
            emit(persistence, text)
            self._cell.value = persistence
            self.accepted.append((persistence, text))
        return True


class BlockCountdown:
    """
    Per-block count of digit counts still to search. Block i covers the digit
    counts (i·size, (i+1)·size]; the tick that empties a block returns its bound.
    With a multiprocessing context the counters are a shared-memory array.
    """

    def __init__(self, max_digits: int, block_size: int = 100, first: int = MIN_DIGITS, ctx: Any = None):
        self.max_digits = max_digits
        self.block_size = block_size
        nblocks = -(-max_digits // block_size)
        left: list[int] = []
        for i in range(nblocks):
            lo = max(i * block_size + 1, first)
            hi = min((i + 1) * block_size, max_digits)
            left.append(max(hi - lo + 1, 0))
        if ctx is None:
            self._left = left
            self._lock = threading.Lock()
        else:
            self._left = ctx.Array("i", left, lock=False)
            self._lock = ctx.Lock()

    def bound(self, block: int) -> int:
        return min((block + 1) * self.block_size, self.max_digits)

    def remaining(self, block: int) -> int:
        return self._left[block]

    def tick(self, digit_count: int) -> int | None:
        block = (digit_count - 1) // self.block_size
        with self._lock:
            self._left[block] -= 1
            left = self._left[block]
        return self.bound(block) if left == 0 else None


@dataclass
class SearchResult:
    config: SearchConfig
    best: int
    records: list[tuple[int, str]] = field(default_factory=list)
    evaluated: int = 0
    elapsed: float = 0.0


def search_digit_count(digit_count: int, best: SharedMaximum, emit: Callable[[int, str], None],
                       backend: str | Backend | None = None) -> int:
    """Evaluate every candidate of one digit count; returns how many were evaluated."""
    b = get_backend(backend)
    n = 0
    for cand in candidates(digit_count):
        best.offer(cand.persistence(b), cand, emit)
        n += 1
    return n


def _search_unit(digit_count: int, best: SharedMaximum, blocks: BlockCountdown, backend: Backend,
                 emit: Callable[[int, str], None], note: Callable[[str, Any], None], debug: bool) -> int:
    t0 = perf_counter()
    n = search_digit_count(digit_count, best, emit, backend)
    bound = blocks.tick(digit_count)
    if bound is not None:
        note("progress", bound)
    if debug:
        note("debug", f"[debug] {digit_count} digits: {n} candidates in {format_duration(perf_counter() - t0)}")
    return n


def _deliver(om: OutputManager, records: list[tuple[int, str]], kind: str, payload: Any) -> None:
    if kind == "record":
        p, text = payload
        records.append((p, text))
        om.record(p, text)
    elif kind == "progress":
        om.progress(payload)
    else:
        print(payload, file=sys.stderr)


# ---- worker processes ----

_worker: dict[str, Any] = {}


def _init_worker(best: SharedMaximum, blocks: BlockCountdown, events: Any, backend: str, debug: bool) -> None:
    _worker.update(best=best, blocks=blocks, events=events, backend=get_backend(backend), debug=debug)


def _worker_unit(digit_count: int) -> int:
    events = _worker["events"]
    return _search_unit(
        digit_count, _worker["best"], _worker["blocks"], _worker["backend"],
        emit=lambda p, text: events.put(("record", (p, text))),
        note=lambda kind, payload: events.put((kind, payload)),
        debug=_worker["debug"],
    )


def _search_processes(config: SearchConfig, om: OutputManager, workers: int,
                      records: list[tuple[int, str]]) -> tuple[int, int]:
    """One task per digit count on a process pool; idle workers pick up the next one."""
    ctx = mp.get_context("spawn")
    best = SharedMaximum(config.min_persistence, ctx)
    blocks = BlockCountdown(config.max_digits, config.block_size, ctx=ctx)
    evaluated = 0

    with ctx.Manager() as manager:
        # records are queued while the worker holds the maximum's lock, so they arrive in order
        events = manager.Queue()

        def drain() -> None:
            while True:
                try:
                    kind, payload = events.get_nowait()
                except queue.Empty:
                    return
                _deliver(om, records, kind, payload)

        with ProcessPoolExecutor(max_workers=workers, mp_context=ctx, initializer=_init_worker,
                                 initargs=(best, blocks, events, config.backend, config.debug)) as pool:
            pending = {pool.submit(_worker_unit, d) for d in range(MIN_DIGITS, config.max_digits + 1)}
            while pending:
                done, pending = wait(pending, timeout=0.05, return_when=FIRST_COMPLETED)
                drain()
                evaluated += sum(f.result() for f in done)
        drain()

    return best.value, evaluated


def run_search(config: SearchConfig, om: OutputManager) -> SearchResult:
    """
    Search digit counts 2..config.max_digits, printing each new record as it is found
    and one progress line per completed block of digit counts.
    """
    records: list[tuple[int, str]] = []
    workers = config.effective_workers

    t_start = perf_counter()
    if workers <= 1:
        backend = get_backend(config.backend)
        best = SharedMaximum(config.min_persistence)
        blocks = BlockCountdown(config.max_digits, config.block_size)

        def deliver(kind: str, payload: Any) -> None:
            _deliver(om, records, kind, payload)

        evaluated = sum(
            _search_unit(d, best, blocks, backend,
                         emit=lambda p, text: deliver("record", (p, text)),
                         note=deliver, debug=config.debug)
            for d in range(MIN_DIGITS, config.max_digits + 1)
        )
        best_value = best.value
    else:
        best_value, evaluated = _search_processes(config, om, workers, records)
    elapsed = perf_counter() - t_start

    return SearchResult(
        config=config,
        best=best_value,
        records=records,
        evaluated=evaluated,
        elapsed=elapsed,
    )
