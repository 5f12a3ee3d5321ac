"""
Canonical prefixes.

Any number can be shrunk, without changing the product of its digits, by
splitting its digits into primes and recombining them into as many 9s (3²) and
8s (2³) as possible, keeping 5s and 7s as they are. What is left over is at
most two 2s and one 3, which is written as one of six short prefixes. Every
distinct digit product is therefore reached by some

    <prefix> 5…5 7…7 8…8 9…9

and 7236 shrinks to 479, for example. The idea is Matt Parker's
(https://www.youtube.com/watch?v=Wim9WJeDTHQ).

The table is ordered longest prefix first, then by value, with the empty prefix
last. "26" leads because any other two-digit prefix would already contain a
7, 8 or 9.
"""

from __future__ import annotations

from dataclasses import dataclass

from mulpersist.reduce import small_prefix


@dataclass(frozen=True)
class Prefix:
    text: str
    digits: int
    product: int

    @property
    def is_odd(self) -> bool:
        """True when the prefix can sit in front of a 5 without forcing a factor 10."""
        return bool(self.product & 1)


PREFIXES: tuple[Prefix, ...] = (
    Prefix("26", 2, 12),
    Prefix("2", 1, 2),
    Prefix("3", 1, 3),
    Prefix("4", 1, 4),
    Prefix("6", 1, 6),
    Prefix("", 0, 1),
)


def derive_prefixes() -> tuple[Prefix, ...]:
    """Rebuild the prefix table from every residue 2^a · 3^b left after taking out 8s and 9s."""
    out: list[Prefix] = []
    for twos in range(3):
        for threes in range(2):
            text = small_prefix(twos, threes)
            out.append(Prefix(text, len(text), 2 ** twos * 3 ** threes))
    out.sort(key=lambda p: (-p.digits, p.text))
    return tuple(out)
