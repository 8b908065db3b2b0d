"""Parsed line entries and the correlated requests built from them."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class RequestClosedError(Exception):
    """Raised when a request is changed after it left the open state."""


@dataclass(frozen=True)
class LineEntry:
    line_type: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    lineno: int = 0
    raw: str = ""

    def __post_init__(self):
        # Read-only view so the entry stays immutable after creation
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


class RequestState(Enum):
    OPEN = "open"
    COMPLETED = "completed"
    DISPATCHED = "dispatched"
    DISCARDED = "discarded"


_NEXT_STATE = {
    RequestState.OPEN: (RequestState.COMPLETED, RequestState.DISCARDED),
    RequestState.COMPLETED: (RequestState.DISPATCHED, RequestState.DISCARDED),
    RequestState.DISPATCHED: (RequestState.DISCARDED,),
    RequestState.DISCARDED: (),
}


class Request:
    """An ordered group of line entries sharing one correlation identity.

    Field lookups see the union of all entry fields. When two entries carry
    the same field name, the later entry's value wins.
    """

    def __init__(self, first_entry: LineEntry, key: Any = None):
        self.key = key
        self._entries: list[LineEntry] = [first_entry]
        self._fields: dict[str, Any] = dict(first_entry.fields)
        self._state = RequestState.OPEN

    @classmethod
    def create(cls, *lines: dict, key: Any = None) -> "Request":
        """Build a completed request from plain dicts carrying a ``line_type`` key."""
        if not lines:
            raise ValueError("A request needs at least one line")
        entries = []
        for lineno, line in enumerate(lines, start=1):
            data = dict(line)
            line_type = data.pop("line_type")
            entries.append(LineEntry(line_type=line_type, fields=data, lineno=lineno))

        request = cls(entries[0], key=key)
        for entry in entries[1:]:
            request.add(entry)
        request.complete()
        return request

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is RequestState.OPEN

    def add(self, entry: LineEntry) -> None:
        if not self.is_open:
            raise RequestClosedError(
                f"Cannot add line {entry.lineno} to a {self._state.value} request"
            )
        self._entries.append(entry)
        self._fields.update(entry.fields)

    def _move_to(self, state: RequestState) -> None:
        if state not in _NEXT_STATE[self._state]:
            raise RequestClosedError(
                f"Request cannot move from {self._state.value} to {state.value}"
            )
        self._state = state

    def complete(self) -> None:
        self._move_to(RequestState.COMPLETED)

    def mark_dispatched(self) -> None:
        self._move_to(RequestState.DISPATCHED)

    def discard(self) -> None:
        self._move_to(RequestState.DISCARDED)

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def get(self, name: str, default: Any = None) -> Any:
        return self._fields.get(name, default)

    def every(self, name: str) -> list[Any]:
        """All values of a field across entries, in arrival order."""
        return [e.fields[name] for e in self._entries if name in e.fields]

    def has_line_type(self, line_type: str) -> bool:
        return any(e.line_type == line_type for e in self._entries)

    @property
    def line_types(self) -> list[str]:
        return [e.line_type for e in self._entries]

    @property
    def entries(self) -> tuple[LineEntry, ...]:
        return tuple(self._entries)

    @property
    def first_lineno(self) -> int:
        return self._entries[0].lineno

    @property
    def last_lineno(self) -> int:
        return self._entries[-1].lineno

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LineEntry]:
        return iter(tuple(self._entries))

    def __repr__(self) -> str:
        return (
            f"Request(key={self.key!r}, lines={self.first_lineno}-{self.last_lineno}, "
            f"types={self.line_types}, state={self._state.value})"
        )
