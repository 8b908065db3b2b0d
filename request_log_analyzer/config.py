"""Configuration loading from a YAML file, env vars and CLI args.

Example file::

    correlation:
      key_field: request_no          # null = one request at a time
      terminal_line_type: completed
      start_line_types: [started]
      max_open: 1000
      max_idle_lines: 5000
    lines:
      started:
        regex: 'Started (?P<method>[A-Z]+) "(?P<path>[^"]+)" #(?P<request_no>\\d+)'
        converters: {request_no: int}
      completed:
        regex: 'Completed (?P<status>\\d{3}) #(?P<request_no>\\d+)'
        converters: {request_no: int, status: int}
    trackers:
      - type: frequency
        title: HTTP methods
        category: method
        all_categories: [GET, POST, PUT, DELETE]
    report:
      amount: 20
      width: 80
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

from request_log_analyzer.correlator import CorrelationSettings
from request_log_analyzer.parser import LineDefinition
from request_log_analyzer.registry import TRACKER_TYPES
from request_log_analyzer.tracker import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
OUTPUT_FORMATS = ("text", "json")


@dataclass(frozen=True)
class Config:
    correlation: CorrelationSettings
    line_definitions: list[LineDefinition] = field(default_factory=list)
    tracker_specs: list[dict] = field(default_factory=list)
    report_amount: int | str = 20
    report_width: int = 80
    output_format: str = "text"
    log_level: str = "INFO"


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML config file. Returns empty dict if no path or the file is missing."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _parse_amount(value: Any) -> int | str:
    if value is None or value == "all":
        return "all"
    try:
        amount = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Report amount must be a number or 'all', got {value!r}") from None
    if amount < 1:
        raise ConfigurationError("Report amount must be at least 1")
    return amount


def _parse_width(value: Any) -> int:
    try:
        width = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Report width must be a number, got {value!r}") from None
    if width < 1:
        raise ConfigurationError("Report width must be at least 1")
    return width


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def load_correlation(data: dict) -> CorrelationSettings:
    if not data:
        raise ConfigurationError("Missing 'correlation' section")
    if "key_field" not in data:
        raise ConfigurationError("correlation.key_field must be set (use null for a single request stream)")
    if not data.get("terminal_line_type"):
        raise ConfigurationError("correlation.terminal_line_type must be set")

    try:
        return CorrelationSettings(
            key_field=data["key_field"],
            terminal_line_type=data["terminal_line_type"],
            start_line_types=tuple(data.get("start_line_types") or ()),
            max_open=int(os.environ.get("RLA_MAX_OPEN", data.get("max_open", 1000))),
            max_idle_lines=_optional_int(os.environ.get("RLA_MAX_IDLE_LINES", data.get("max_idle_lines"))),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid correlation settings: {e}") from e


def load_line_definitions(data: dict) -> list[LineDefinition]:
    if not data:
        raise ConfigurationError("Missing 'lines' section: at least one line definition is required")
    definitions = []
    for name, spec in data.items():
        if not isinstance(spec, dict) or "regex" not in spec:
            raise ConfigurationError(f"Line definition {name!r} needs a 'regex'")
        try:
            definitions.append(LineDefinition.compile(name, spec["regex"], spec.get("converters")))
        except (re.error, ValueError) as e:
            raise ConfigurationError(f"Invalid line definition {name!r}: {e}") from e
    return definitions


def load_tracker_specs(data: list | None) -> list[dict]:
    specs = []
    for i, spec in enumerate(data or []):
        if not isinstance(spec, dict):
            raise ConfigurationError(f"Tracker #{i + 1} must be a mapping")
        tracker_type = spec.get("type", "frequency")
        if tracker_type not in TRACKER_TYPES:
            raise ConfigurationError(f"Tracker #{i + 1} has unknown type {tracker_type!r}")
        specs.append(dict(spec))
    return specs


def load_config(yaml_data: dict, cli_args=None) -> Config:
    """Build Config from parsed YAML, then env vars, then CLI args (highest priority)."""
    report = yaml_data.get("report") or {}
    logging_section = yaml_data.get("logging") or {}

    amount = os.environ.get("RLA_REPORT_AMOUNT", report.get("amount", 20))
    width = os.environ.get("RLA_REPORT_WIDTH", report.get("width", 80))
    output_format = report.get("format", "text")
    log_level = os.environ.get("RLA_LOG_LEVEL", logging_section.get("level", "INFO"))

    if cli_args is not None:
        if getattr(cli_args, "amount", None) is not None:
            amount = cli_args.amount
        if getattr(cli_args, "output", None):
            output_format = cli_args.output
        if getattr(cli_args, "log_level", None):
            log_level = cli_args.log_level

    log_level = str(log_level).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level {log_level!r}")
    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(f"Unknown output format {output_format!r}")

    return Config(
        correlation=load_correlation(yaml_data.get("correlation") or {}),
        line_definitions=load_line_definitions(yaml_data.get("lines") or {}),
        tracker_specs=load_tracker_specs(yaml_data.get("trackers")),
        report_amount=_parse_amount(amount),
        report_width=_parse_width(width),
        output_format=output_format,
        log_level=log_level,
    )
