"""Generator-based reading of one or more log files, with glob expansion."""

import glob
import gzip
import io
import os
import sys
from typing import Generator, TextIO


def _open(filepath: str) -> TextIO:
    if filepath.endswith(".gz"):
        return gzip.open(filepath, "rt", encoding="utf-8", errors="replace")
    return open(filepath, "r", encoding="utf-8", errors="replace")


def read_lines(filepath: str) -> Generator[str, None, None]:
    """Yield each line of a single file. ``-`` reads standard input."""
    if filepath == "-":
        stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
        try:
            yield from stream
        finally:
            stream.detach()  # leave sys.stdin open
        return
    with _open(filepath) as f:
        yield from f


def read_multiple(paths: list[str]) -> Generator[str, None, None]:
    """Yield lines from multiple files, sequentially."""
    for path in paths:
        yield from read_lines(path)


def expand_paths(raw_paths: list[str]) -> list[str]:
    """Expand globs, deduplicate, and validate that files exist.

    Raises FileNotFoundError if a non-glob path doesn't exist.
    Raises FileNotFoundError if expansion produces zero files.
    """
    expanded = []
    seen = set()

    for raw in raw_paths:
        if raw == "-":
            candidates = [raw]
        elif any(c in raw for c in ("*", "?", "[")):
            candidates = sorted(glob.glob(raw))
        else:
            if not os.path.isfile(raw):
                raise FileNotFoundError(f"File not found: {raw}")
            candidates = [raw]

        for path in candidates:
            if path not in seen:
                seen.add(path)
                expanded.append(path)

    if not expanded:
        raise FileNotFoundError("No log files found matching the given paths")

    return expanded
