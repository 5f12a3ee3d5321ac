# src/mulpersist/display.py
from __future__ import annotations

import sys
from dataclasses import asdict

from colorama import Fore, Style

from mulpersist.arith import get_backend
from mulpersist.config import SearchConfig, list_profiles_with_descriptions
from mulpersist.fmt import abbr_int_fast, format_duration, format_factorization
from mulpersist.output_manager import OutputManager
from mulpersist.reduce import canonical_digits, digit_product_exponents, persistence_sequence
from mulpersist.runtime import CFG
from mulpersist.search import SearchResult
from mulpersist.utility import dec_digits


def _abbr(x) -> str:
    return abbr_int_fast(
        int(x),
        int(CFG("FORMATTING.NUM_ABBR_HEAD", 10)),
        int(CFG("FORMATTING.NUM_ABBR_TAIL", 10)),
        int(CFG("FORMATTING.NUM_ABBR_THRESHOLD", 35)),
        CFG("FORMATTING.ELLIPSIS", "…"),
    )


def print_persistence_report(n: int, *, backend: str, om: OutputManager) -> None:
    """Persistence, chain, digit-product factorization and canonical form of one number."""
    seq = persistence_sequence(n, backend)
    steps = len(seq) - 1

    om.write(f"{Fore.YELLOW}{Style.BRIGHT}n = {_abbr(n)}{Style.RESET_ALL} "
             f"{Style.DIM}({dec_digits(n)} digits){Style.RESET_ALL}")

    label = "  Mult. persistence:    "
    if CFG("DISPLAY.SHOW_SEQUENCE", True):
        chain = " → ".join(_abbr(x) for x in seq)
        om.write(f"{label}{steps} {Style.DIM}(sequence: {chain}){Style.RESET_ALL}")
    else:
        om.write(f"{label}{steps}")

    if CFG("DISPLAY.SHOW_FACTORIZATION", True):
        om.write(f"  Digit product:        {format_factorization(digit_product_exponents(n, backend))}")

    b = get_backend(backend)
    canon = canonical_digits(n, b)
    same = f" {Style.DIM}(already canonical){Style.RESET_ALL}" if canon == b.decimal(b.make(n)) else ""
    om.write(f"  Canonical form:       {_abbr(int(canon))}{same}")


def print_search_summary(result: SearchResult) -> None:
    """Debug summary of a finished search (stderr)."""
    cfg = result.config
    mode = f"{cfg.effective_workers} processes" if cfg.effective_workers > 1 else "sequential"
    print(f"[debug] searched 2..{cfg.max_digits} digits ({mode}, backend {cfg.backend})", file=sys.stderr)
    print(f"[debug] {result.evaluated} candidates in {format_duration(result.elapsed)}", file=sys.stderr)
    print(f"[debug] best persistence: {result.best} ({len(result.records)} record(s))", file=sys.stderr)


def print_search_config(cfg: SearchConfig, profile: str) -> None:
    print(f"[debug] active profile: {profile}", file=sys.stderr)
    for k, v in asdict(cfg).items():
        print(f"        {k:.<30} {v!r}", file=sys.stderr)


def print_profiles_with_descriptions() -> None:
    for name, desc, own in list_profiles_with_descriptions():
        mark = f"{Fore.GREEN}*{Style.RESET_ALL}" if own else " "
        print(f" {mark} {Fore.CYAN}{name:<16}{Style.RESET_ALL} {desc}")
