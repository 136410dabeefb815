"""Tests for output format resolution and the Output Aggregator."""

import io
import json

import pytest

from urlsweep.discovery import DiscoveryRecord
from urlsweep.errors import OutputError
from urlsweep.output_manager import (
    OutputAggregator,
    OutputFormat,
    render_json,
    render_text,
    resolve_output_format,
)


def _record(url: str) -> DiscoveryRecord:
    return DiscoveryRecord.from_url(url, timestamp="2024-05-01T12:00:00+00:00")


class TestResolveOutputFormat:
    """Tests for flag and extension agreement."""

    @pytest.mark.parametrize("path,json_flag,expected", [
        ("out.json", False, OutputFormat.JSON),
        ("out.txt", False, OutputFormat.TEXT),
        ("OUT.TXT", False, OutputFormat.TEXT),
        ("out.json", True, OutputFormat.JSON),
        ("out.csv", True, OutputFormat.JSON),
        ("out", True, OutputFormat.JSON),
    ])
    def test_resolution(self, path, json_flag, expected):
        assert resolve_output_format(path, json_flag) == expected

    def test_json_flag_with_text_file(self):
        with pytest.raises(OutputError):
            resolve_output_format("out.txt", json_flag=True)

    @pytest.mark.parametrize("path", ["out.csv", "out"])
    def test_unknown_extension_without_flag(self, path):
        with pytest.raises(OutputError):
            resolve_output_format(path)


class TestRendering:
    """Tests for the two encodings."""

    def test_text_is_sorted_and_unique(self):
        records = [
            _record("http://example.com/b"),
            _record("http://example.com/a"),
            _record("http://example.com/b"),
        ]
        assert render_text(records) == "http://example.com/a\nhttp://example.com/b"

    def test_json_keeps_acceptance_order(self):
        records = [_record("http://example.com/b"), _record("http://example.com/a")]
        data = json.loads(render_json(records))

        assert [item["url"] for item in data] == ["http://example.com/b", "http://example.com/a"]
        assert data[0] == {
            "timestamp": "2024-05-01T12:00:00+00:00",
            "url": "http://example.com/b",
            "path": "/b",
            "host": "example.com",
            "port": 80,
        }

    def test_json_is_indented(self):
        assert render_json([_record("http://example.com/")]).startswith("[\n  {")

    def test_empty(self):
        assert render_text([]) == ""
        assert render_json([]) == "[]"


class TestOutputAggregator:
    """Tests for accumulation and flushing."""

    def test_add_deduplicates_and_echoes(self):
        stream = io.StringIO()
        aggregator = OutputAggregator(stream=stream)

        assert aggregator.add(_record("http://example.com/a")) is True
        assert aggregator.add(_record("http://example.com/a")) is False
        assert aggregator.add(_record("http://example.com/b")) is True

        assert stream.getvalue() == "http://example.com/a\nhttp://example.com/b\n"
        assert aggregator.urls == ["http://example.com/a", "http://example.com/b"]
        assert len(aggregator) == 2

    def test_echo_disabled(self, capsys):
        aggregator = OutputAggregator(echo=False)
        aggregator.add(_record("http://example.com/a"))

        assert capsys.readouterr().out == ""

    def test_flush_without_output_path(self):
        aggregator = OutputAggregator(echo=False)
        aggregator.add(_record("http://example.com/a"))

        assert aggregator.flush() is None

    def test_flush_text(self, tmp_path):
        output = tmp_path / "urls.txt"
        aggregator = OutputAggregator(str(output), echo=False)
        for url in ["http://example.com/c", "http://example.com/a", "http://example.com/b"]:
            aggregator.add(_record(url))

        assert aggregator.flush() == output
        assert output.read_text() == "http://example.com/a\nhttp://example.com/b\nhttp://example.com/c\n"
        assert list(tmp_path.iterdir()) == [output]

    def test_flush_json(self, tmp_path):
        output = tmp_path / "urls.json"
        aggregator = OutputAggregator(str(output), echo=False)
        aggregator.add(_record("https://example.com:8443/x"))

        aggregator.flush()

        data = json.loads(output.read_text())
        assert data == [{
            "timestamp": "2024-05-01T12:00:00+00:00",
            "url": "https://example.com:8443/x",
            "path": "/x",
            "host": "example.com",
            "port": 8443,
        }]

    def test_flush_json_flag_overrides_extension(self, tmp_path):
        output = tmp_path / "urls.out"
        aggregator = OutputAggregator(str(output), json_output=True, echo=False)
        aggregator.add(_record("http://example.com/"))

        aggregator.flush()

        assert json.loads(output.read_text())[0]["url"] == "http://example.com/"

    def test_flush_replaces_existing_file(self, tmp_path):
        output = tmp_path / "urls.txt"
        output.write_text("stale\n")
        aggregator = OutputAggregator(str(output), echo=False)
        aggregator.add(_record("http://example.com/"))

        aggregator.flush()

        assert output.read_text() == "http://example.com/\n"

    def test_flush_creates_parent_directories(self, tmp_path):
        output = tmp_path / "nested" / "dir" / "urls.txt"
        aggregator = OutputAggregator(str(output), echo=False)

        aggregator.flush()

        assert output.read_text() == ""

    def test_format_disagreement_writes_nothing(self, tmp_path):
        output = tmp_path / "urls.txt"
        aggregator = OutputAggregator(str(output), json_output=True, echo=False)
        aggregator.add(_record("http://example.com/"))

        with pytest.raises(OutputError):
            aggregator.flush()
        assert not output.exists()

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        aggregator = OutputAggregator(str(blocker / "urls.txt"), echo=False)

        with pytest.raises(OutputError):
            aggregator.flush()
