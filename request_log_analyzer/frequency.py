"""Frequency tracker: counts requests per category.

Example text report:

    HTTP methods
    --------------------------------------------------------------
    GET    | 22248 hits | 46.2% | =================
    PUT    | 13685 hits | 28.4% | ===========
    POST   | 11662 hits | 24.2% | =========
    DELETE |   512 hits |  1.1% |
"""

from dataclasses import dataclass
from typing import Any

from request_log_analyzer.models import Request
from request_log_analyzer.output import Column
from request_log_analyzer.tracker import ConfigurationError, Tracker, build_categorizer

NONE_FOUND = "None found."

REPORT_COLUMNS = (
    Column(align="left"),
    Column(align="right"),
    Column(align="right"),
    Column(type="ratio", width="rest"),
)


@dataclass(frozen=True)
class ReportRow:
    category: Any
    count: int
    percentage: float
    ratio: float

    @property
    def count_text(self) -> str:
        return f"{self.count} hits"

    @property
    def percentage_text(self) -> str:
        return "%0.1f%%" % self.percentage

    def as_cells(self) -> tuple:
        return (self.category, self.count_text, self.percentage_text, self.ratio)


def _display_amount(output) -> int | None:
    amount = getattr(output, "options", {}).get("amount")
    if amount is None or amount == "all":
        return None
    return int(amount)


class FrequencyTracker(Tracker):
    default_title = "Request frequency"

    def prepare(self) -> None:
        if self.options.category is None:
            raise ConfigurationError(f"No categorizer set up for frequency tracker {self!r}")
        self._categorizer = build_categorizer(self.options.category)
        super().prepare()

        self._categories: dict[Any, int] = {}
        for category in self.options.all_categories or ():
            self._categories[category] = 0

    def update(self, request: Request) -> None:
        self._ensure_prepared()
        category = self._categorizer.categorize(request)
        if category is None and not self.options.nils:
            return
        self._categories[category] = self._categories.get(category, 0) + 1

    @property
    def categories(self) -> dict[Any, int]:
        self._ensure_prepared()
        return dict(self._categories)

    def frequency(self, category: Any) -> int:
        """Count for *category*; 0 for a category never seen."""
        self._ensure_prepared()
        return self._categories.get(category, 0)

    def overall_frequency(self) -> int:
        self._ensure_prepared()
        return sum(self._categories.values())

    def sorted_by_frequency(self) -> list[tuple[Any, int]]:
        """Categories by descending count. Ties keep first-observed order."""
        self._ensure_prepared()
        # sorted() is stable, so equal counts stay in insertion order
        return sorted(self._categories.items(), key=lambda item: item[1], reverse=True)

    def report_rows(self, amount: int | None = None) -> list[ReportRow]:
        """Rows for the report table.

        Percentages are taken against the total of all categories, before
        the rows are cut down to *amount*.
        """
        ranked = self.sorted_by_frequency()
        total_hits = sum(count for _, count in ranked)
        if amount is not None:
            ranked = ranked[:amount]

        rows = []
        for category, count in ranked:
            ratio = count / total_hits if total_hits else 0.0
            rows.append(ReportRow(category, count, ratio * 100.0, ratio))
        return rows

    def report(self, output) -> None:
        self._ensure_prepared()
        if self.options.title:
            output.title(self.options.title)

        if not self._categories:
            output.line(NONE_FOUND)
            return

        rows = self.report_rows(_display_amount(output))
        output.table(REPORT_COLUMNS, [row.as_cells() for row in rows])

    def exportable(self) -> dict[Any, int] | None:
        self._ensure_prepared()
        if not self._categories:
            return None
        return dict(self._categories)
