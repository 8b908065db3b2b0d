"""Tests for request_log_analyzer/output.py"""

import io
import json

import pytest

from request_log_analyzer.output import (
    Column,
    FixedWidthRenderer,
    JsonRenderer,
    get_renderer,
)


class TestColumn:
    def test_defaults(self):
        c = Column()
        assert (c.align, c.type, c.width) == ("left", "plain", None)

    def test_invalid_alignment(self):
        with pytest.raises(ValueError):
            Column(align="center")

    def test_invalid_type(self):
        with pytest.raises(ValueError):
            Column(type="sparkline")

    def test_invalid_width(self):
        with pytest.raises(ValueError):
            Column(width="half")


class TestFixedWidthRenderer:
    def test_title_underlined(self):
        buf = io.StringIO()
        FixedWidthRenderer(buf, width=10).title("Methods")
        assert buf.getvalue() == "\nMethods\n" + "-" * 10 + "\n"

    def test_alignment(self):
        buf = io.StringIO()
        out = FixedWidthRenderer(buf, width=40)
        out.table([Column(align="left"), Column(align="right")], [("a", "1"), ("bbb", "22")])
        assert buf.getvalue().splitlines() == ["a   |  1", "bbb | 22"]

    def test_ratio_bar_fills_remaining_width(self):
        buf = io.StringIO()
        out = FixedWidthRenderer(buf, width=20)
        out.table(
            [Column(align="left"), Column(type="ratio", width="rest")],
            [("x", 1.0), ("y", 0.5), ("z", 0.0)],
        )
        # 20 - 1 (label) - 3 (separator) = 16 characters of bar
        assert buf.getvalue().splitlines() == ["x | " + "=" * 16, "y | " + "=" * 8, "z |"]

    def test_default_amount_option(self):
        assert FixedWidthRenderer(io.StringIO()).options["amount"] == 20
        assert FixedWidthRenderer(io.StringIO(), amount="all").options["amount"] == "all"


class TestJsonRenderer:
    def test_sections(self):
        buf = io.StringIO()
        out = JsonRenderer(buf)
        out.title("HTTP methods")
        out.table([Column(), Column(align="right")], [("GET", "2 hits")])
        out.title("Empty")
        out.line("None found.")
        out.dump()
        doc = json.loads(buf.getvalue())
        assert [s["title"] for s in doc["sections"]] == ["HTTP methods", "Empty"]
        assert doc["sections"][0]["tables"][0]["rows"] == [["GET", "2 hits"]]
        assert doc["sections"][0]["tables"][0]["columns"][1]["align"] == "right"
        assert doc["sections"][1]["lines"] == ["None found."]

    def test_lines_without_title(self):
        out = JsonRenderer(io.StringIO())
        out.line("hello")
        assert out.sections == [{"title": None, "lines": ["hello"], "tables": []}]

    def test_section_splits_untitled_output(self):
        out = JsonRenderer(io.StringIO())
        out.title("Methods")
        out.line("first")
        out.section()
        out.line("second")
        assert [s["title"] for s in out.sections] == ["Methods", None]
        assert out.sections[1]["lines"] == ["second"]

    def test_section_without_output_adds_nothing(self):
        out = JsonRenderer(io.StringIO())
        out.section()
        out.section()
        out.title("Methods")
        assert len(out.sections) == 1

    def test_fixed_width_section_writes_nothing(self):
        buf = io.StringIO()
        FixedWidthRenderer(buf).section()
        assert buf.getvalue() == ""


class TestGetRenderer:
    def test_text(self):
        assert isinstance(get_renderer("text", io.StringIO(), width=60), FixedWidthRenderer)

    def test_json(self):
        assert isinstance(get_renderer("json", io.StringIO()), JsonRenderer)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_renderer("html", io.StringIO())
