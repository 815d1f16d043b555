"""
Unit tests for TailRunner
"""

import asyncio
import io
import pytest

from kube_multitail.exceptions import MissingAppsError, TotalDiscoveryFailure
from kube_multitail.runner import RunOptions, TailRunner


def make_runner(cluster, **kwargs):
    options = RunOptions(**kwargs)
    return TailRunner(options, cluster, stdout=io.StringIO(), stderr=io.StringIO())


class TestTailRunner:
    """Test cases for TailRunner"""

    @pytest.mark.asyncio
    async def test_historical_run(self, svc_a_cluster, tmp_path):
        """Test a historical run from discovery to completion message"""
        output = tmp_path / "out.log"
        runner = make_runner(svc_a_cluster, apps=("svc-a",), since="10m", output_file=output)

        exit_code = await asyncio.wait_for(runner.run(), timeout=5)

        assert exit_code == 0
        stdout = runner.stdout.getvalue()
        assert "Showing historical logs from 10m to now for 2 pods and their containers." in stdout
        assert "App: svc-a\n  - app\n  - sidecar\n" in stdout
        assert f"Historical logs collection completed. Logs saved to: {output}" in stdout
        assert "[svc-a-1:sidecar] svc-a-1 sidecar line 2" in stdout

        lines = output.read_text().splitlines()
        assert len(lines) == 8
        assert {line.split(" ", 1)[0] for line in lines} == {
            "[svc-a-1:app]", "[svc-a-1:sidecar]", "[svc-a-2:app]", "[svc-a-2:sidecar]"
        }

    @pytest.mark.asyncio
    async def test_quiet_mode_writes_file_only(self, svc_a_cluster, tmp_path):
        """Test quiet mode writes lines only to the file"""
        output = tmp_path / "out.log"
        runner = make_runner(svc_a_cluster, apps=("svc-a",), since="10m",
                             output_file=output, console=False)

        assert await runner.run() == 0

        stdout = runner.stdout.getvalue()
        assert f"Logs are being saved to: {output}" in stdout
        assert "line 1" not in stdout
        assert len(output.read_text().splitlines()) == 8

    @pytest.mark.asyncio
    async def test_error_filter_scenario(self, make_cluster, tmp_path):
        """Test -g ERROR keeps only the error line"""
        cluster = make_cluster(
            pods={"svc-a": ["a-1"]},
            containers={"a-1": ["app"]},
            logs={("a-1", "app"): ["2024 INFO ok", "2024 error: boom"]},
        )
        output = tmp_path / "out.log"
        runner = make_runner(cluster, apps=("svc-a",), since="10m", grep=("ERROR",), output_file=output)

        assert await runner.run() == 0
        assert output.read_text() == "[a-1:app] 2024 error: boom\n"

    @pytest.mark.asyncio
    async def test_total_discovery_failure_creates_no_file(self, make_cluster, tmp_path):
        """Test total discovery failure creates no output file"""
        output = tmp_path / "out.log"
        runner = make_runner(make_cluster(), apps=("svc-x",), since="10m", output_file=output)

        with pytest.raises(TotalDiscoveryFailure):
            await runner.run()

        assert not output.exists()

    @pytest.mark.asyncio
    async def test_existing_file_untouched_on_failure(self, make_cluster, tmp_path):
        """Test total discovery failure leaves an existing file untouched"""
        output = tmp_path / "out.log"
        output.write_text("previous run\n")
        runner = make_runner(make_cluster(), apps=("svc-x",), output_file=output)

        with pytest.raises(TotalDiscoveryFailure):
            await runner.run()

        assert output.read_text() == "previous run\n"

    @pytest.mark.asyncio
    async def test_warnings_are_reported_at_end(self, svc_a_cluster):
        """Test warnings are summarized after the run"""
        runner = make_runner(svc_a_cluster, apps=("svc-x", "svc-a"), since="10m")

        assert await runner.run() == 0

        stdout = runner.stdout.getvalue()
        assert "1 warning(s) during this run:" in stdout
        assert "No pods found for app 'svc-x'" in stdout

    @pytest.mark.asyncio
    async def test_verbose_prints_stream_report(self, svc_a_cluster):
        """Test verbose runs print the per-stream report"""
        runner = make_runner(svc_a_cluster, apps=("svc-a",), since="10m", verbose=True)

        assert await runner.run() == 0
        report = runner.stdout.getvalue()
        assert "CONTAINER" in report
        assert "since 10m" in report
        assert "BYTES" in report

    @pytest.mark.asyncio
    async def test_follow_run_stops_on_cancel(self, svc_a_cluster, tmp_path):
        """Test a follow run stops cleanly on cancel"""
        output = tmp_path / "out.log"
        runner = make_runner(svc_a_cluster, apps=("svc-a",), output_file=output, grace_period=1.0)

        asyncio.get_running_loop().call_later(0.1, runner.controller.request_cancel)
        exit_code = await asyncio.wait_for(runner.run(), timeout=5)

        assert exit_code == 0
        stdout = runner.stdout.getvalue()
        assert "Starting log tailing for 2 pods and their containers." in stdout
        assert "Stopping all log streams..." in stdout
        assert "Historical logs collection completed" not in stdout
        assert svc_a_cluster.open_streams == set()
        assert len(output.read_text().splitlines()) == 8

    def test_apps_are_required(self, make_cluster):
        """Test a runner needs at least one app"""
        with pytest.raises(MissingAppsError):
            make_runner(make_cluster(), apps=())
