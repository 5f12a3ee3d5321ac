# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import re
import sys

_INT_RE = re.compile(r"^[+-]?\d+(?:_\d+)*$")
_POW_RE = re.compile(r"^(\d+)\s*(?:\^|\*\*)\s*(\d+)$")


class UserInputError(Exception):
    pass


def dec_digits(n: int) -> int:
    """Exact decimal digit count without str(); handles n >= 0."""
    n = abs(int(n))
    if n == 0:
        return 1
    # floor(log10(n)) ~= floor(bitlen*log10(2))
    bl = n.bit_length()
    est = int((bl * 30103) // 100000)
    # bring into correct decade with at most a couple of steps
    p10 = 10 ** est
    if n < p10:
        while n < p10:
            est -= 1
            p10 //= 10
    else:
        p10 *= 10
        while n >= p10:
            est += 1
            p10 *= 10
    return est + 1


def parse_integer(text: str) -> int | None:
    """
    Parse '12345', '1_000', '7^40' or '7**40' into an int.
    Returns None when the text does not look numeric at all (e.g. a profile name).
    Raises UserInputError for numeric-looking input that is not allowed.
    """
    s = (text or "").strip()
    if not s:
        return None

    m = _POW_RE.match(s)
    if m:
        base, exp = int(m.group(1)), int(m.group(2))
        _MAX_EXP = 100_000
        if exp > _MAX_EXP:
            raise UserInputError(f"Invalid input: exponent {exp} is too large (max {_MAX_EXP}).")
        return base ** exp

    if not _INT_RE.match(s):
        return None
    apply_int_str_limit(len(s))
    n = int(s)
    if n < 0:
        raise UserInputError(f"Invalid input: {s} is negative; persistence is defined for n >= 0.")
    return n


def validate_output_setting(output_file: str | None) -> str | None:
    """
    Validate output setting.
    - None / "" => ok (screen only)
    - path/to/file => must not be a directory or a source/document file
    Returns the (possibly normalized) output_file, or raises ValueError.
    """
    FORBIDDEN_EXTENSIONS = {".py", ".md", ".toml"}

    if not output_file:
        return output_file  # screen only

    path = os.path.expanduser(output_file)
    if path.endswith(("/", os.sep)) or os.path.isdir(path):
        raise ValueError(f"'{output_file}' is a directory; records need a file path.")
    _, ext = os.path.splitext(path)
    if ext.lower() in FORBIDDEN_EXTENSIONS:
        raise ValueError(f"refusing to write records to a '{ext}' file.")
    return path


def apply_int_str_limit(max_digits: int) -> None:
    """Raise Python's int<->str guard so numbers of max_digits digits can be converted."""
    if os.environ.get("PYTHONINTMAXSTRDIGITS"):
        return
    try:
        current = sys.get_int_max_str_digits()
    except AttributeError:
        return
    # headroom for a sign and '_' separators
    wanted = max(int(max_digits) * 2, 4300)
    if current and current < wanted:
        sys.set_int_max_str_digits(wanted)


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
