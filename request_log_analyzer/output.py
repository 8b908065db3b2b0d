"""Report renderers: fixed-width text and JSON sinks for tracker reports."""

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Sequence, TextIO

ALIGNMENTS = ("left", "right")
COLUMN_TYPES = ("plain", "ratio")


@dataclass(frozen=True)
class Column:
    align: str = "left"
    type: str = "plain"
    width: int | str | None = None  # fixed width, "rest" or None for content width

    def __post_init__(self):
        if self.align not in ALIGNMENTS:
            raise ValueError(f"Unknown column alignment: {self.align}")
        if self.type not in COLUMN_TYPES:
            raise ValueError(f"Unknown column type: {self.type}")
        if self.width is not None and self.width != "rest" and not isinstance(self.width, int):
            raise ValueError(f"Column width must be an int, 'rest' or None, got {self.width!r}")


class ReportRenderer(ABC):
    """Sink that trackers write their reports to.

    ``options`` carries display settings such as ``amount`` (maximum number
    of table rows, an int or ``"all"``).
    """

    def __init__(self, **options):
        self.options: dict[str, Any] = {"amount": 20, **options}

    @abstractmethod
    def title(self, text: str) -> None:
        ...

    @abstractmethod
    def line(self, text: str = "") -> None:
        ...

    @abstractmethod
    def table(self, columns: Sequence[Column], rows: Sequence[Sequence[Any]]) -> None:
        ...

    def section(self) -> None:
        """Start a new report section. Called before each tracker reports."""


class FixedWidthRenderer(ReportRenderer):
    """Plain text tables, columns separated by ``|`` with ``=`` ratio bars."""

    BAR_CHAR = "="
    SEPARATOR = " | "

    def __init__(self, stream: TextIO, width: int = 80, **options):
        super().__init__(**options)
        self.stream = stream
        self.width = width

    def title(self, text: str) -> None:
        self.stream.write("\n" + text + "\n")
        self.stream.write("-" * self.width + "\n")

    def line(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    def table(self, columns: Sequence[Column], rows: Sequence[Sequence[Any]]) -> None:
        widths = self._column_widths(columns, rows)
        for row in rows:
            cells = []
            for column, width, value in zip(columns, widths, row):
                if column.type == "ratio":
                    cells.append(self._bar(value, width))
                elif column.align == "right":
                    cells.append(str(value).rjust(width))
                else:
                    cells.append(str(value).ljust(width))
            self.stream.write(self.SEPARATOR.join(cells).rstrip() + "\n")

    def _column_widths(self, columns: Sequence[Column], rows: Sequence[Sequence[Any]]) -> list[int]:
        widths: list[int | None] = []
        for i, column in enumerate(columns):
            if isinstance(column.width, int):
                widths.append(column.width)
            elif column.width == "rest":
                widths.append(None)
            else:
                widths.append(max((len(str(row[i])) for row in rows), default=0))

        fixed = sum(w for w in widths if w is not None) + len(self.SEPARATOR) * (len(columns) - 1)
        rest = max(0, self.width - fixed)
        return [rest if w is None else w for w in widths]

    def _bar(self, ratio: float, width: int) -> str:
        ratio = min(1.0, max(0.0, float(ratio)))
        return self.BAR_CHAR * int(round(ratio * width))


class JsonRenderer(ReportRenderer):
    """Collects report sections into a document written out by ``dump()``."""

    def __init__(self, stream: TextIO, **options):
        super().__init__(**options)
        self.stream = stream
        self.sections: list[dict] = []
        self._current: dict | None = None

    def _section(self) -> dict:
        if self._current is None:
            self._current = {"title": None, "lines": [], "tables": []}
            self.sections.append(self._current)
        return self._current

    def section(self) -> None:
        self._current = None

    def title(self, text: str) -> None:
        self._current = None
        self._section()["title"] = text

    def line(self, text: str = "") -> None:
        if text:
            self._section()["lines"].append(text)

    def table(self, columns: Sequence[Column], rows: Sequence[Sequence[Any]]) -> None:
        self._section()["tables"].append({
            "columns": [asdict(c) for c in columns],
            "rows": [list(row) for row in rows],
        })

    def dump(self) -> None:
        json.dump({"sections": self.sections}, self.stream, indent=2, default=str)
        self.stream.write("\n")


def get_renderer(output_format: str, stream: TextIO, **options) -> ReportRenderer:
    """Factory that returns the right renderer for an output format."""
    if output_format == "json":
        return JsonRenderer(stream, **options)
    if output_format == "text":
        return FixedWidthRenderer(stream, **options)
    raise ValueError(f"Unknown output format: {output_format}")
