"""Groups LineEntries into Requests by a correlation key.

A request opens on its first entry and completes when the terminal line
type is seen, or when the stream ends and the correlator is flushed.
Memory is bounded by ``max_open`` (least-recently-touched eviction) and
optionally by ``max_idle_lines``.
"""

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Generator, Iterable

from request_log_analyzer.models import LineEntry, Request

logger = logging.getLogger(__name__)

# Identity shared by every entry when no key field is configured
SINGLE_STREAM = object()


@dataclass(frozen=True)
class CorrelationSettings:
    key_field: str | None
    terminal_line_type: str
    start_line_types: tuple[str, ...] = ()
    max_open: int = 1000
    max_idle_lines: int | None = None

    def __post_init__(self):
        if self.max_open < 1:
            raise ValueError("max_open must be at least 1")
        if self.max_idle_lines is not None and self.max_idle_lines < 1:
            raise ValueError("max_idle_lines must be at least 1")


@dataclass
class CorrelatorStats:
    entries: int = 0
    opened: int = 0
    completed: int = 0
    flushed: int = 0
    dropped: int = 0
    evicted: int = 0
    superseded: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class _OpenRequest:
    request: Request
    last_touched: int = 0
    opened_at: int = 0


class RequestCorrelator:
    def __init__(self, settings: CorrelationSettings):
        self.settings = settings
        self.stats = CorrelatorStats()
        # LRU order: least recently touched first
        self._open: "OrderedDict[Any, _OpenRequest]" = OrderedDict()
        self._clock = 0

    @property
    def open_count(self) -> int:
        return len(self._open)

    def _key_for(self, entry: LineEntry) -> Any:
        if self.settings.key_field is None:
            return SINGLE_STREAM
        return entry.get(self.settings.key_field)

    def _may_open(self, entry: LineEntry) -> bool:
        starts = self.settings.start_line_types
        return not starts or entry.line_type in starts

    def feed(self, entry: LineEntry) -> list[Request]:
        """Process one entry. Returns the requests it completed (zero or one)."""
        self._clock += 1
        self.stats.entries += 1
        self._evict_idle()

        key = self._key_for(entry)
        if key is None:
            self.stats.dropped += 1
            logger.debug(
                "Dropping line %d (%s): no %r field to correlate on",
                entry.lineno, entry.line_type, self.settings.key_field,
            )
            return []

        slot = self._open.get(key)
        if slot is not None and self._may_open(entry) and self.settings.start_line_types:
            # A fresh start line for an identity that never completed
            self._discard(key, "superseded by a new request starting at line %d" % entry.lineno)
            self.stats.superseded += 1
            slot = None

        if slot is None:
            if not self._may_open(entry):
                self.stats.dropped += 1
                logger.debug(
                    "Dropping line %d (%s): no open request for key %r",
                    entry.lineno, entry.line_type, key,
                )
                return []
            slot = self._open_request(key, entry)
        else:
            slot.request.add(entry)
            slot.last_touched = self._clock
            self._open.move_to_end(key)

        if entry.line_type == self.settings.terminal_line_type:
            del self._open[key]
            slot.request.complete()
            self.stats.completed += 1
            return [slot.request]
        return []

    def _open_request(self, key: Any, entry: LineEntry) -> _OpenRequest:
        while len(self._open) >= self.settings.max_open:
            oldest = next(iter(self._open))
            self._discard(oldest, "evicted, open request limit %d reached" % self.settings.max_open)
            self.stats.evicted += 1

        request = Request(entry, key=None if key is SINGLE_STREAM else key)
        slot = _OpenRequest(request, last_touched=self._clock, opened_at=self._clock)
        self._open[key] = slot
        self.stats.opened += 1
        return slot

    def _evict_idle(self) -> None:
        limit = self.settings.max_idle_lines
        if limit is None:
            return
        while self._open:
            key, slot = next(iter(self._open.items()))
            if self._clock - slot.last_touched <= limit:
                break
            self._discard(key, "evicted after %d idle lines" % (self._clock - slot.last_touched))
            self.stats.evicted += 1

    def _discard(self, key: Any, reason: str) -> None:
        slot = self._open.pop(key)
        slot.request.discard()
        logger.warning(
            "Discarding incomplete request %r (lines %d-%d): %s",
            slot.request.key, slot.request.first_lineno, slot.request.last_lineno, reason,
        )

    def flush(self) -> list[Request]:
        """Complete every open request, oldest first. Called at end of input."""
        slots = sorted(self._open.values(), key=lambda s: s.opened_at)
        requests = [slot.request for slot in slots]
        self._open.clear()
        for request in requests:
            request.complete()
        self.stats.flushed += len(requests)
        if requests:
            logger.debug("Flushed %d open request(s) at end of input", len(requests))
        return requests

    def correlate(self, entries: Iterable[LineEntry]) -> Generator[Request, None, None]:
        """Yield completed requests for a whole entry stream, flushing at the end."""
        for entry in entries:
            yield from self.feed(entry)
        yield from self.flush()
