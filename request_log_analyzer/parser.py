"""Regex line definitions that turn raw text lines into typed LineEntries."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Generator, Iterable

from request_log_analyzer.models import LineEntry

logger = logging.getLogger(__name__)

CONVERTERS: dict[str, Callable[[str], object]] = {
    "str": str,
    "int": int,
    "float": float,
}


@dataclass(frozen=True)
class LineDefinition:
    name: str
    pattern: re.Pattern
    converters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def compile(cls, name: str, regex: str, converters: dict[str, str] | None = None) -> "LineDefinition":
        converters = dict(converters or {})
        for field_name, kind in converters.items():
            if kind not in CONVERTERS:
                raise ValueError(f"Unknown converter {kind!r} for field {field_name!r} in line {name!r}")
        return cls(name=name, pattern=re.compile(regex), converters=converters)

    def match(self, line: str) -> dict | None:
        """Return the converted captures for *line*, or None if it does not match."""
        m = self.pattern.search(line)
        if not m:
            return None
        captures = {}
        for key, value in m.groupdict().items():
            if value is not None and key in self.converters:
                value = CONVERTERS[self.converters[key]](value)
            captures[key] = value
        return captures


class LineParser:
    """Tries each line definition in order; the first match wins."""

    def __init__(self, definitions: Iterable[LineDefinition]):
        self._definitions = list(definitions)
        self.unmatched = 0
        self.parse_errors = 0

    @property
    def line_types(self) -> list[str]:
        return [d.name for d in self._definitions]

    def parse(self, line: str, lineno: int = 0) -> LineEntry | None:
        """Parse a single line. Returns None for blank, unmatched or unconvertible lines."""
        stripped = line.rstrip("\n")
        if not stripped.strip():
            return None

        for definition in self._definitions:
            try:
                captures = definition.match(stripped)
            except ValueError as e:
                self.parse_errors += 1
                logger.debug("Line %d matched %s but failed conversion: %s", lineno, definition.name, e)
                return None
            if captures is not None:
                return LineEntry(
                    line_type=definition.name,
                    fields=captures,
                    lineno=lineno,
                    raw=stripped,
                )

        self.unmatched += 1
        logger.debug("Line %d matched no line definition", lineno)
        return None

    def parse_lines(self, lines: Iterable[str]) -> Generator[LineEntry, None, None]:
        """Yield a LineEntry for every parseable line, numbering lines from 1."""
        for lineno, line in enumerate(lines, start=1):
            entry = self.parse(line, lineno)
            if entry is not None:
                yield entry
