# output_manager.py
from __future__ import annotations

import os
import sys

from mulpersist.fmt import format_progress, format_record, strip_ansi
from mulpersist.workspace import workspace_dir


def resolve_output_path(path: str, workspace_root: str) -> str:
    """
    Resolve user-provided output path.

    Rules:
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to workspace_root
    """
    if not path:
        raise ValueError("Output path is empty")

    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(workspace_root, path))


class OutputManager:
    """
    Handles all printing/output: record lines on stdout, progress lines on
    stderr, and optionally a plain-text copy of records appended to a file.

    Usage:
        om = OutputManager(output_file="runs/records.txt")
        om.record(7, "26555")   # prints '07:  26555' and appends it to the file
        om.progress(100)        # 'Finished searching at 100 digits' on stderr
        om.close()

    Only the searching process writes here; worker processes hand their
    records and progress lines back to it.
    """

    def __init__(self, output_file: str | None = None, quiet: bool = False):
        """
        Parameters:
            output_file:
                None or ""       => screen only
                path/to/file.txt => append all records to this file
            quiet: if True, no records on screen (only to file)
        """
        self.quiet = quiet
        self.output_file = output_file or ""
        self.records: list[str] = []
        self._path: str | None = None

        if self.output_file:
            path = resolve_output_path(self.output_file, str(workspace_dir()))
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._path = path

    def _append(self, text: str) -> None:
        if self._path:
            with open(self._path, "a", encoding="utf-8") as fh:
                fh.write(strip_ansi(text))

    def record(self, persistence: int, text: str) -> None:
        line = format_record(persistence, text) + "\n"
        self.records.append(line)
        if not self.quiet:
            sys.stdout.write(line)
            sys.stdout.flush()
        self._append(line)

    def progress(self, bound: int) -> None:
        sys.stderr.write(format_progress(bound) + "\n")
        sys.stderr.flush()

    def write(self, *args, sep: str = " ", end: str = "\n") -> None:
        """Write to screen and file (if configured)."""
        text = sep.join(str(a) for a in args) + end
        if not self.quiet:
            print(text, end="")
        self._append(text)

    def getvalue(self) -> str:
        """Returns every record line written so far."""
        return "".join(self.records)

    def close(self) -> None:
        """Add an empty line between runs in the output file."""
        if self._path and self.records:
            self._append("\n")
