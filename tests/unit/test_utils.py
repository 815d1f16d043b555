"""
Unit tests for CLI helpers
"""

import pytest

from kube_multitail.exceptions import InvalidSinceError
from kube_multitail.models import (
    App, Pod, Topology, StreamMode, StreamStatus, StreamTask,
    DiscoveryWarning, WarningKind
)
from kube_multitail.utils import (
    parse_since, format_size, format_topology_summary, format_stream_report, format_warnings
)


class TestParseSince:

    @pytest.mark.parametrize("value,expected", [
        ("10m", "10m"),
        ("30s", "30s"),
        ("1h30m", "1h30m"),
        ("1.5h", "1.5h"),
        ("1d", "24h"),
        ("2d3h", "48h3h"),
        (" 5m ", "5m"),
    ])
    def test_valid_durations(self, value, expected):
        """Test valid durations are accepted and normalized"""
        assert parse_since(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10x", "m10", "1.5d", "-5m"])
    def test_invalid_durations(self, value):
        """Test malformed durations are rejected"""
        with pytest.raises(InvalidSinceError) as exc_info:
            parse_since(value)
        assert exc_info.value.exit_code == 1

    def test_absent_means_follow(self):
        """Test no --since means follow mode"""
        assert parse_since(None) is None


class TestFormatting:

    def test_topology_summary_lists_apps_and_unique_containers(self):
        """Test the summary lists each app and its unique containers"""
        topology = Topology((
            App("svc-b", (Pod("svc-b-1", "svc-b", ("web",)),)),
            App("svc-a", (
                Pod("svc-a-1", "svc-a", ("app", "sidecar")),
                Pod("svc-a-2", "svc-a", ("app", "sidecar")),
            )),
        ))

        summary = format_topology_summary(topology)

        assert summary.splitlines() == [
            "App: svc-a",
            "  - app",
            "  - sidecar",
            "App: svc-b",
            "  - web",
        ]

    def test_stream_report_has_one_row_per_stream(self):
        """Test the stream report has one row per stream"""
        ok = StreamTask("p1", "app", StreamMode.historical("10m"), status=StreamStatus.STOPPED,
                        line_count=3, byte_count=2048)
        failed = StreamTask("p2", "app", StreamMode.historical("10m"), status=StreamStatus.FAILED,
                            error="container not found")

        report = format_stream_report([ok.get_info(), failed.get_info()])

        assert "POD" in report and "STATUS" in report
        assert "stopped" in report
        assert "container not found" in report
        assert "since 10m" in report
        assert "2.0KB" in report

    def test_stream_report_without_streams(self):
        """Test the stream report without streams"""
        assert format_stream_report([]) == "No log streams were started"

    def test_warnings_table(self):
        """Test the warnings table lists kind and subject"""
        table = format_warnings([DiscoveryWarning(WarningKind.APP, "svc-x", "No pods found for app 'svc-x'")])
        assert "svc-x" in table
        assert "app" in table

    @pytest.mark.parametrize("size,expected", [
        (0, "0.0B"),
        (1536, "1.5KB"),
        (3 * 1024 * 1024, "3.0MB"),
    ])
    def test_format_size(self, size, expected):
        """Test byte counts are rendered human-readable"""
        assert format_size(size) == expected
