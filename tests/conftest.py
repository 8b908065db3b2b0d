"""Shared pytest fixtures for the request-log-analyzer test suite."""

from __future__ import annotations

import copy

import pytest
import yaml

from request_log_analyzer.correlator import CorrelationSettings
from request_log_analyzer.models import LineEntry, Request

SAMPLE_CONFIG = {
    "correlation": {
        "key_field": "request_no",
        "terminal_line_type": "completed",
        "start_line_types": ["started"],
    },
    "lines": {
        "started": {
            "regex": r'Started (?P<method>[A-Z]+) "(?P<path>[^"]+)" #(?P<request_no>\d+)',
            "converters": {"request_no": "int"},
        },
        "completed": {
            "regex": r"Completed (?P<status>\d{3}) #(?P<request_no>\d+)",
            "converters": {"request_no": "int", "status": "int"},
        },
    },
    "trackers": [
        {"type": "frequency", "title": "HTTP methods", "category": "method"},
        {"type": "frequency", "title": "Status codes", "category": "status", "line_type": "completed"},
    ],
}

SAMPLE_LOG = """\
Started GET "/users" #1
Started POST "/users" #2
Completed 200 #1
garbage line that matches nothing
Completed 201 #2
Started GET "/users/1" #3
Completed 404 #3
Started DELETE "/users/1" #4
"""


def make_request(**fields) -> Request:
    """A completed single-line request carrying *fields*."""
    return Request.create({"line_type": "started", **fields})


def entry(line_type: str, lineno: int = 0, **fields) -> LineEntry:
    return LineEntry(line_type=line_type, fields=fields, lineno=lineno, raw=f"{line_type} {fields}")


@pytest.fixture()
def sample_config() -> dict:
    """Return a fresh copy of the sample YAML config as a dict."""
    return copy.deepcopy(SAMPLE_CONFIG)


@pytest.fixture()
def settings() -> CorrelationSettings:
    return CorrelationSettings(
        key_field="request_no",
        terminal_line_type="completed",
        start_line_types=("started",),
    )


@pytest.fixture()
def config_file(tmp_path, sample_config):
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump(sample_config))
    return str(path)


@pytest.fixture()
def log_file(tmp_path):
    path = tmp_path / "production.log"
    path.write_text(SAMPLE_LOG)
    return str(path)
