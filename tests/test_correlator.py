"""Tests for request_log_analyzer/correlator.py"""

import logging

import pytest

from conftest import entry
from request_log_analyzer.correlator import CorrelationSettings, RequestCorrelator
from request_log_analyzer.models import RequestState


class TestCorrelationSettings:
    def test_defaults(self, settings):
        assert settings.max_open == 1000
        assert settings.max_idle_lines is None

    def test_invalid_max_open(self):
        with pytest.raises(ValueError):
            CorrelationSettings(key_field="id", terminal_line_type="end", max_open=0)

    def test_invalid_idle(self):
        with pytest.raises(ValueError):
            CorrelationSettings(key_field="id", terminal_line_type="end", max_idle_lines=0)


class TestFeed:
    def test_interleaved_requests(self, settings):
        c = RequestCorrelator(settings)
        assert c.feed(entry("started", 1, request_no=1, method="GET")) == []
        assert c.feed(entry("started", 2, request_no=2, method="POST")) == []
        done = c.feed(entry("completed", 3, request_no=1, status=200))
        assert len(done) == 1
        assert done[0]["method"] == "GET"
        assert done[0]["status"] == 200
        assert done[0].key == 1
        assert c.open_count == 1

    def test_completed_request_leaves_open_set(self, settings):
        c = RequestCorrelator(settings)
        c.feed(entry("started", 1, request_no=1))
        (request,) = c.feed(entry("completed", 2, request_no=1))
        assert request.state is RequestState.COMPLETED
        assert c.open_count == 0
        # A late line for the same key is not attached to the emitted request
        c.feed(entry("detail", 3, request_no=1))
        assert len(request) == 2

    def test_arrival_order_kept(self, settings):
        c = RequestCorrelator(settings)
        c.feed(entry("started", 1, request_no=5))
        c.feed(entry("detail", 2, request_no=5))
        (request,) = c.feed(entry("completed", 3, request_no=5))
        assert request.line_types == ["started", "detail", "completed"]

    def test_missing_key_dropped(self, settings, caplog):
        c = RequestCorrelator(settings)
        with caplog.at_level(logging.DEBUG):
            assert c.feed(entry("started", 1, method="GET")) == []
        assert c.stats.dropped == 1
        assert c.open_count == 0
        assert "no 'request_no' field" in caplog.text

    def test_non_start_line_without_open_request_dropped(self, settings):
        c = RequestCorrelator(settings)
        assert c.feed(entry("completed", 1, request_no=9)) == []
        assert c.stats.dropped == 1
        assert c.stats.opened == 0

    def test_any_line_opens_without_start_types(self):
        c = RequestCorrelator(CorrelationSettings(key_field="id", terminal_line_type="end"))
        c.feed(entry("middle", 1, id="a"))
        (request,) = c.feed(entry("end", 2, id="a"))
        assert request.line_types == ["middle", "end"]

    def test_single_line_request(self, settings):
        s = CorrelationSettings(key_field="id", terminal_line_type="hit")
        c = RequestCorrelator(s)
        (request,) = c.feed(entry("hit", 1, id=1))
        assert len(request) == 1
        assert c.open_count == 0

    def test_restart_supersedes_open_request(self, settings, caplog):
        c = RequestCorrelator(settings)
        c.feed(entry("started", 1, request_no=1, method="GET"))
        with caplog.at_level(logging.WARNING):
            c.feed(entry("started", 2, request_no=1, method="PUT"))
        (request,) = c.feed(entry("completed", 3, request_no=1))
        assert request["method"] == "PUT"
        assert request.first_lineno == 2
        assert c.stats.superseded == 1
        assert "superseded" in caplog.text


class TestSingleStream:
    def test_requests_follow_each_other(self):
        c = RequestCorrelator(CorrelationSettings(
            key_field=None, terminal_line_type="completed", start_line_types=("started",),
        ))
        out = []
        for e in [
            entry("started", 1, method="GET"),
            entry("completed", 2, status=200),
            entry("started", 3, method="POST"),
            entry("completed", 4, status=500),
        ]:
            out.extend(c.feed(e))
        assert [(r["method"], r["status"]) for r in out] == [("GET", 200), ("POST", 500)]
        assert all(r.key is None for r in out)


class TestEviction:
    def test_lru_eviction_at_capacity(self, caplog):
        c = RequestCorrelator(CorrelationSettings(
            key_field="id", terminal_line_type="end", max_open=2,
        ))
        c.feed(entry("start", 1, id="a"))
        c.feed(entry("start", 2, id="b"))
        c.feed(entry("more", 3, id="a"))  # b is now least recently touched
        with caplog.at_level(logging.WARNING):
            c.feed(entry("start", 4, id="c"))
        assert c.open_count == 2
        assert c.stats.evicted == 1
        assert "evicted" in caplog.text
        assert [r.key for r in c.flush()] == ["a", "c"]

    def test_idle_eviction(self):
        c = RequestCorrelator(CorrelationSettings(
            key_field="id", terminal_line_type="end", max_idle_lines=2,
        ))
        c.feed(entry("start", 1, id="idle"))
        c.feed(entry("start", 2, id="busy"))
        c.feed(entry("more", 3, id="busy"))
        c.feed(entry("more", 4, id="busy"))
        assert c.stats.evicted == 1
        assert [r.key for r in c.flush()] == ["busy"]

    def test_never_exceeds_cap(self):
        c = RequestCorrelator(CorrelationSettings(
            key_field="id", terminal_line_type="end", max_open=3,
        ))
        for i in range(50):
            c.feed(entry("start", i + 1, id=i))
            assert c.open_count <= 3
        assert c.stats.evicted == 47


class TestFlush:
    def test_flush_completes_in_open_order(self, settings):
        c = RequestCorrelator(settings)
        c.feed(entry("started", 1, request_no=2))
        c.feed(entry("started", 2, request_no=1))
        c.feed(entry("detail", 3, request_no=2))
        flushed = c.flush()
        assert [r.key for r in flushed] == [2, 1]
        assert all(r.state is RequestState.COMPLETED for r in flushed)
        assert c.open_count == 0
        assert c.stats.flushed == 2

    def test_flush_empty(self, settings):
        assert RequestCorrelator(settings).flush() == []

    def test_correlate_stream(self, settings):
        c = RequestCorrelator(settings)
        stream = [
            entry("started", 1, request_no=1),
            entry("started", 2, request_no=2),
            entry("completed", 3, request_no=2),
        ]
        keys = [r.key for r in c.correlate(stream)]
        assert keys == [2, 1]
        assert c.stats.as_dict() == {
            "entries": 3, "opened": 2, "completed": 1, "flushed": 1,
            "dropped": 0, "evicted": 0, "superseded": 0,
        }
