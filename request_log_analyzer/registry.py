"""TrackerRegistry: owns the configured trackers of one analysis run."""

import logging
from typing import Any, Iterable, Mapping

from request_log_analyzer.frequency import FrequencyTracker
from request_log_analyzer.models import Request
from request_log_analyzer.tracker import ConfigurationError, Tracker, TrackerOptions

logger = logging.getLogger(__name__)

TRACKER_TYPES: dict[str, type[Tracker]] = {
    "frequency": FrequencyTracker,
}


def create_tracker(tracker_type: str, options: Mapping[str, Any] | TrackerOptions) -> Tracker:
    """Instantiate a tracker by its configured type name."""
    try:
        cls = TRACKER_TYPES[tracker_type]
    except KeyError:
        raise ConfigurationError(
            f"Unknown tracker type {tracker_type!r} (known: {', '.join(sorted(TRACKER_TYPES))})"
        ) from None
    return cls(options)


class TrackerRegistry:
    def __init__(self, trackers: Iterable[Tracker] = ()):
        self._trackers: list[Tracker] = list(trackers)
        self.requests_dispatched = 0

    @classmethod
    def from_config(cls, tracker_specs: Iterable[Mapping[str, Any]]) -> "TrackerRegistry":
        """Build a registry from dicts like ``{"type": "frequency", "category": "method"}``."""
        registry = cls()
        for spec in tracker_specs:
            options = dict(spec)
            tracker_type = options.pop("type", "frequency")
            registry.register(create_tracker(tracker_type, options))
        return registry

    @property
    def trackers(self) -> list[Tracker]:
        return list(self._trackers)

    def register(self, tracker: Tracker) -> Tracker:
        self._trackers.append(tracker)
        return tracker

    def prepare(self) -> None:
        """Prepare every tracker. Configuration errors surface here, before any input is read."""
        for tracker in self._trackers:
            tracker.prepare()
        logger.debug("Prepared %d tracker(s)", len(self._trackers))

    def dispatch(self, request: Request) -> None:
        """Hand a completed request to every tracker whose filters accept it."""
        request.mark_dispatched()
        for tracker in self._trackers:
            if tracker.should_update(request):
                tracker.update(request)
        self.requests_dispatched += 1
        request.discard()

    def report(self, output) -> None:
        for tracker in self._trackers:
            output.section()
            tracker.report(output)

    def export(self) -> dict[str, Any]:
        """Exportable state per tracker title, leaving out trackers without data."""
        exported = {}
        for tracker in self._trackers:
            data = tracker.exportable()
            if not data:
                continue
            title, n = tracker.title, 2
            while title in exported:
                title = f"{tracker.title} ({n})"
                n += 1
            exported[title] = data
        return exported

    def __len__(self) -> int:
        return len(self._trackers)
