"""Controller: runs parsed lines through the correlator and the trackers."""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from request_log_analyzer.correlator import RequestCorrelator
from request_log_analyzer.parser import LineParser
from request_log_analyzer.registry import TrackerRegistry

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    lines_read: int = 0
    entries_parsed: int = 0
    unmatched_lines: int = 0
    parse_errors: int = 0
    requests_dispatched: int = 0
    correlator: dict[str, int] = field(default_factory=dict)


class Controller:
    def __init__(self, parser: LineParser, correlator: RequestCorrelator, registry: TrackerRegistry):
        self.parser = parser
        self.correlator = correlator
        self.registry = registry
        self.summary = RunSummary()

    def _count_lines(self, lines: Iterable[str]) -> Iterable[str]:
        for line in lines:
            self.summary.lines_read += 1
            yield line

    def run(self, lines: Iterable[str]) -> RunSummary:
        """Process a whole input stream. Trackers are prepared before the first line is read.

        The returned summary covers this run only, even when the parser,
        correlator and registry have been used before.
        """
        self.registry.prepare()
        self.summary = RunSummary()
        unmatched, parse_errors = self.parser.unmatched, self.parser.parse_errors
        dispatched = self.registry.requests_dispatched
        stats_before = self.correlator.stats.as_dict()

        entries = self.parser.parse_lines(self._count_lines(lines))
        for request in self.correlator.correlate(self._count_entries(entries)):
            self.registry.dispatch(request)

        self.summary.unmatched_lines = self.parser.unmatched - unmatched
        self.summary.parse_errors = self.parser.parse_errors - parse_errors
        self.summary.requests_dispatched = self.registry.requests_dispatched - dispatched
        self.summary.correlator = {
            name: value - stats_before[name] for name, value in self.correlator.stats.as_dict().items()
        }

        logger.info(
            "Processed %d lines: %d entries, %d requests, %d unmatched, %d dropped, %d evicted",
            self.summary.lines_read, self.summary.entries_parsed,
            self.summary.requests_dispatched, self.summary.unmatched_lines,
            self.summary.correlator["dropped"], self.summary.correlator["evicted"],
        )
        return self.summary

    def _count_entries(self, entries):
        for entry in entries:
            self.summary.entries_parsed += 1
            yield entry

    def report(self, output) -> None:
        """Write the run summary followed by every tracker report."""
        stats = self.summary.correlator
        incomplete = stats.get("evicted", 0) + stats.get("superseded", 0)
        skipped = self.summary.unmatched_lines + self.summary.parse_errors + stats.get("dropped", 0)
        output.title("Request summary")
        output.line(f"Lines processed:     {self.summary.lines_read}")
        output.line(f"Parsed requests:     {self.summary.requests_dispatched}")
        output.line(f"Incomplete requests: {incomplete}")
        output.line(f"Skipped lines:       {skipped}")
        self.registry.report(output)
