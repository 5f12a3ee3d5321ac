# src/mulpersist/cli.py

"""
Multiplicative Persistence Search

Description:
    Searches the canonical numbers <prefix>5..7..8..9.. up to a maximum digit
    count for record multiplicative persistence, printing every new record as
    it is found. Given an integer instead, shows its persistence chain and the
    smallest number with the same digit product.

usage: see mulpersist -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import platform
import sys
import textwrap
import threading
import traceback

from colorama import Fore, Style, just_fix_windows_console

from mulpersist import __version__ as _ver
from mulpersist import config as CONFIG
from mulpersist.display import (
    print_persistence_report,
    print_profiles_with_descriptions,
    print_search_config,
    print_search_summary,
)
from mulpersist.output_manager import OutputManager
from mulpersist.runtime import APPLY, CFG
from mulpersist.search import MIN_DIGITS, count_candidates, run_search
from mulpersist.utility import (
    UserInputError,
    apply_int_str_limit,
    dec_digits,
    flatten_dotted,
    parse_integer,
    typename,
    validate_output_setting,
)
from mulpersist.workspace import init_workspace, packaged_profiles, workspace_dir, workspace_profiles

COMMANDS = ("init", "where", "profiles")


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    # Always show full Python tracebacks
    try:
        faulthandler.enable()
    except (AttributeError, OSError, ValueError):
        pass  # stderr without a file descriptor (captured or replaced)

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    # Also catch exceptions in threads
    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


def _configure_text_streams() -> None:
    # Respect explicit user choice
    if os.environ.get("PYTHONIOENCODING"):
        return
    # Only touch redirected output (pipes/files), leave TTY as-is
    if sys.stdout.isatty() or not hasattr(sys.stdout, "reconfigure"):
        return
    enc = (sys.stdout.encoding or "").lower()
    if platform.system() == "Windows" or enc in ("", "ascii", "us-ascii"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def _resolve_inputs(items: list[str]) -> tuple[str | None, int | None]:
    """Return (profile_or_command, number) based on the first two positionals.

    Rules:
      - If one item parses as an integer -> number; else -> profile/command
      - If two items: first is the profile, second must be the integer
    """
    if not items:
        return None, None

    if len(items) == 1:
        n = parse_integer(items[0])
        return (None, n) if n is not None else (items[0], None)

    _TWO_ARGS = 2
    if len(items) > _TWO_ARGS:
        raise UserInputError(f"Invalid input: expected at most a profile and an integer, got {len(items)} items.")

    a, b = items
    nb = parse_integer(b)
    if nb is None:
        raise UserInputError(f"Invalid input: '{b}' is not a non-negative integer.")
    return a, nb


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      init
          Create the workspace and copy the packaged profiles if missing.
          Profiles in the workspace replace packaged ones of the same name.

      init overwrite
          Meant for developers. Requires environment variable MULPERSIST_DEV=1.
          Replaces the workspace profiles with the packaged ones.

      profiles
          List the available profiles (* = from the workspace).

      where
          Show the workspace and package paths.
    """)

    p = argparse.ArgumentParser(
        prog="mulpersist",
        description="Multiplicative persistence record search",
        usage=(
            "mulpersist [profile] [--max-digits N] [--sequential] [--workers N] [--debug]\n"
            "       mulpersist [profile] <integer>\n"
            "       mulpersist init | where | profiles\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[profile] [integer]",
                   help="optional profile name, optionally followed by an integer to inspect")
    p.add_argument("--profile", default=None, help="Profile to load (same as the positional)")
    p.add_argument("--max-digits", type=int, default=None, help="Largest digit count to search")
    p.add_argument("--sequential", action="store_true", help="Search one digit count after another")
    p.add_argument("--workers", type=int, default=None, help="Worker processes (0 = one per CPU)")
    p.add_argument("--block-size", type=int, default=None, help="Digit counts per progress line")
    p.add_argument("--min-persistence", type=int, default=None, help="Only report persistences above this")
    p.add_argument("--backend", default=None, help="Big-integer arithmetic: gmpy2 or int")
    p.add_argument("--output", default=None, help="Append records to a file (also prints unless --quiet)")
    p.add_argument("--quiet", action="store_true", help="Do not print records on screen")
    p.add_argument("--debug", action="store_true", help="Show settings, per-digit timings and tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")

    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = ("--debug" in (argv if argv is not None else sys.argv)) or CFG("BEHAVIOUR.DEBUG") is True
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _run_command(command: str, items: list[str]) -> int:
    _TWO_ARGS = 2
    if command == "init":
        if len(items) == _TWO_ARGS and items[1] == "overwrite":
            if os.environ.get("MULPERSIST_DEV") != "1":
                print("Refusing to overwrite: set MULPERSIST_DEV=1 to enable developer overwrite.")
                return 2
            ws, copied = init_workspace(overwrite=True)
            print(f"Workspace ready at: {ws} (overwrote existing files)")
        else:
            ws, copied = init_workspace()
            print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied}")
        return 0

    if command == "where":
        ws = workspace_dir()
        ready = workspace_profiles().is_dir()
        print(f"Workspace: {ws}{'' if ready else ' (not created; run: mulpersist init)'}")
        print(f"Package:   {packaged_profiles()}")
        return 0

    print_profiles_with_descriptions()
    return 0


def _debug_dump_profile(selected: CONFIG.Settings) -> None:
    src_path = getattr(selected, "_source", None)
    if src_path:
        print(f"[debug] profile file: {src_path}", file=sys.stderr)
    print("[debug] profile keys (runtime value/type):", file=sys.stderr)
    flat = flatten_dotted(selected.as_dict())
    for k in sorted(flat.keys(), key=str.lower):
        runtime_val = CFG(k, None)
        print(f"        {k:.<40} {runtime_val!r} ({typename(runtime_val)})", file=sys.stderr)


# ---- main ----
def _main_impl(argv=None) -> int:

    just_fix_windows_console()
    _configure_text_streams()

    parser = _build_parser()
    args = parser.parse_args(argv)

    _install_loud_error_handlers(args.debug)

    if args.items and args.items[0] in COMMANDS:
        return _run_command(args.items[0], args.items)

    first, n = _resolve_inputs(args.items)

    explicit = args.profile or first
    if explicit and not CONFIG.has_profile(explicit):
        available = ", ".join(CONFIG.list_all_profiles())
        raise UserInputError(f"Unknown profile: '{explicit}'. Available profiles: {available}")

    profile_name = explicit or "default"
    selected = CONFIG.load_settings(profile_name)
    APPLY(selected)

    cfg = CONFIG.search_config(
        max_digits=args.max_digits,
        parallel=False if args.sequential else None,
        workers=args.workers,
        block_size=args.block_size,
        min_persistence=args.min_persistence,
        backend=args.backend,
        debug=True if args.debug else None,
    )
    apply_int_str_limit(cfg.max_digits if n is None else max(cfg.max_digits, dec_digits(n)))

    if cfg.debug:
        _debug_dump_profile(selected)

    # --- output routing (CLI --output overrides profile OUTPUT_FILE) ---
    try:
        target = validate_output_setting(args.output if args.output is not None else CFG("OUTPUT.OUTPUT_FILE", None))
    except ValueError as e:
        raise UserInputError(f"--output: {e}") from None

    om = OutputManager(output_file=target, quiet=args.quiet)
    try:
        # --- one-shot number path ---
        if n is not None:
            print_persistence_report(n, backend=cfg.backend, om=om)
            return 0

        if cfg.debug:
            print_search_config(cfg, profile_name)
            total = sum(count_candidates(d) for d in range(MIN_DIGITS, cfg.max_digits + 1))
            print(f"[debug] {total} candidates to evaluate", file=sys.stderr)

        result = run_search(cfg, om)

        if cfg.debug:
            print_search_summary(result)
    finally:
        om.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
