"""
Unit tests for the topology and stream task model
"""

from kube_multitail.models import (
    App, Pod, Topology, StreamMode, StreamStatus, StreamTask, ProgressCounter
)


def test_targets_are_unique_pairs():
    """Test targets yields each (pod, container) once"""
    topology = Topology((
        App("svc-a", (Pod("p1", "svc-a", ("app", "sidecar")),)),
        App("svc-b", (Pod("p2", "svc-b", ("app",)),)),
    ))

    assert list(topology.targets()) == [("p1", "app"), ("p1", "sidecar"), ("p2", "app")]
    assert topology.pod_count == 2


def test_containers_by_app_includes_empty_apps():
    """Test apps without containers still appear in the mapping"""
    topology = Topology((App("svc-a", ()),))
    assert topology.containers_by_app() == {"svc-a": []}


def test_stream_mode():
    """Test follow and historical modes"""
    assert StreamMode.follow().is_follow
    assert str(StreamMode.follow()) == "follow"
    historical = StreamMode.historical("10m")
    assert not historical.is_follow
    assert str(historical) == "since 10m"


def test_stream_task_counters():
    """Test line, match and byte counters of a stream task"""
    task = StreamTask("p1", "app", StreamMode.follow())

    task.record_line("kept", matched=True)
    task.record_line("dropped", matched=False)

    assert task.prefix == "[p1:app]"
    assert task.line_count == 2
    assert task.matched_count == 1
    assert task.byte_count == len("kept") + len("dropped")
    assert task.is_active
    task.status = StreamStatus.STOPPED
    assert not task.is_active
    assert task.get_info()["status"] == "stopped"


def test_progress_counter():
    """Test the progress counter increments"""
    counter = ProgressCounter(total=3, label="Finding pods...")
    counter.increment()
    counter.increment(2)
    assert counter.value == 3
    assert counter.total == 3
