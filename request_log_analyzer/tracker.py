"""Tracker contract, tracker options and the categorizer/predicate strategies."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Callable, Iterable, Mapping

from request_log_analyzer.models import Request


class ConfigurationError(Exception):
    """Raised when a tracker or run is configured incorrectly."""


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class Categorizer(ABC):
    @abstractmethod
    def categorize(self, request: Request) -> Any:
        """Return the category key for *request*, or None."""


class Predicate(ABC):
    @abstractmethod
    def predicate(self, request: Request) -> bool:
        """True if *request* should be passed to the tracker."""


class FieldCategorizer(Categorizer):
    """Uses the value of a request field as the category."""

    def __init__(self, field_name: str):
        self.field_name = field_name

    def categorize(self, request: Request) -> Any:
        return request.get(self.field_name)

    def __repr__(self):
        return f"FieldCategorizer({self.field_name!r})"


class CallableCategorizer(Categorizer):
    def __init__(self, func: Callable[[Request], Any]):
        self.func = func

    def categorize(self, request: Request) -> Any:
        return self.func(request)


class FieldPredicate(Predicate):
    """True when the request carries a field with a non-empty value."""

    def __init__(self, field_name: str):
        self.field_name = field_name

    def predicate(self, request: Request) -> bool:
        return bool(request.get(self.field_name))

    def __repr__(self):
        return f"FieldPredicate({self.field_name!r})"


class CallablePredicate(Predicate):
    def __init__(self, func: Callable[[Request], Any]):
        self.func = func

    def predicate(self, request: Request) -> bool:
        return bool(self.func(request))


def build_categorizer(spec: Any) -> Categorizer:
    """Build a categorizer from a strategy object, a field name or a callable."""
    if isinstance(spec, Categorizer):
        return spec
    if isinstance(spec, str):
        return FieldCategorizer(spec)
    if callable(spec):
        return CallableCategorizer(spec)
    raise ConfigurationError(f"Cannot build a categorizer from {spec!r}")


def build_predicate(spec: Any) -> Predicate:
    """Build a predicate from a strategy object, a field name or a callable."""
    if isinstance(spec, Predicate):
        return spec
    if isinstance(spec, str):
        return FieldPredicate(spec)
    if callable(spec):
        return CallablePredicate(spec)
    raise ConfigurationError(f"Cannot build a predicate from {spec!r}")


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

# Option keys as written in configuration files, mapped to attribute names
_OPTION_ALIASES = {"if": "if_"}


@dataclass(frozen=True)
class TrackerOptions:
    category: Any = None
    if_: Any = None
    unless: Any = None
    line_type: str | None = None
    nils: bool = False
    title: str | None = None
    all_categories: tuple | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrackerOptions":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown tracker option {key!r}")
            kwargs[name] = value

        all_categories = kwargs.get("all_categories")
        if all_categories is not None:
            if isinstance(all_categories, (str, bytes)) or not isinstance(all_categories, Iterable):
                raise ConfigurationError("all_categories must be a list of category keys")
            kwargs["all_categories"] = tuple(all_categories)
        if "nils" in kwargs:
            kwargs["nils"] = bool(kwargs["nils"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Tracker base
# ---------------------------------------------------------------------------


class Tracker(ABC):
    """Consumes completed requests and keeps aggregate state.

    ``should_update`` applies the ``line_type``, ``if`` and ``unless``
    options; subclasses implement the aggregation itself. Errors raised by
    user supplied strategies propagate to the caller.
    """

    default_title = "Tracker"

    def __init__(self, options: TrackerOptions | Mapping[str, Any] | None = None, **kwargs):
        if options is None:
            options = TrackerOptions.from_dict(kwargs)
        elif not isinstance(options, TrackerOptions):
            options = TrackerOptions.from_dict({**options, **kwargs})
        elif kwargs:
            raise TypeError("Pass either a TrackerOptions instance or keyword options, not both")
        self.options = options
        self._prepared = False
        self._if: Predicate | None = None
        self._unless: Predicate | None = None

    @property
    def title(self) -> str:
        return self.options.title or self.default_title

    def prepare(self) -> None:
        """Validate options and reset aggregate state."""
        if self.options.if_ is not None:
            self._if = build_predicate(self.options.if_)
        if self.options.unless is not None:
            self._unless = build_predicate(self.options.unless)
        self._prepared = True

    def should_update(self, request: Request) -> bool:
        if self.options.line_type and not request.has_line_type(self.options.line_type):
            return False
        if self._if is not None and not self._if.predicate(request):
            return False
        if self._unless is not None and self._unless.predicate(request):
            return False
        return True

    def _ensure_prepared(self) -> None:
        if not self._prepared:
            raise ConfigurationError(f"{type(self).__name__} used before prepare()")

    @abstractmethod
    def update(self, request: Request) -> None:
        ...

    @abstractmethod
    def report(self, output) -> None:
        ...

    @abstractmethod
    def exportable(self) -> Any:
        ...

    def __repr__(self):
        return f"{type(self).__name__}(title={self.title!r})"
