"""Tests for the task store and snapshot tail."""

import json
import os
import threading
from pathlib import Path

import pytest

from clide.config import validate_dashboard_config
from clide.store import TaskStore
from clide.tailer import SnapshotTail


@pytest.fixture
def store(tmp_path: Path) -> TaskStore:
    data = tmp_path / "data"
    data.mkdir()
    (data / "tasks.json").write_text(json.dumps({
        "tasks": [
            {"id": 3, "title": "Add login", "status": "in_progress", "repo": "web"},
            {"id": 11, "title": "Fix tests", "status": "in_progress"},
            {"id": 5, "title": "Docs", "status": "completed"},
            {"id": 7, "title": "Mystery", "status": "archived"},
            "not a task",
        ],
        "config": {"max_parallel_tasks": 2},
    }))
    return TaskStore(base_dir=tmp_path)


class TestTaskStore:
    """Tests for TaskStore."""

    def test_load_tasks(self, store: TaskStore):
        listing = store.load_tasks()
        assert len(listing["tasks"]) == 4
        assert listing["config"]["max_parallel_tasks"] == 2

    def test_missing_tasks_file(self, tmp_path: Path):
        listing = TaskStore(base_dir=tmp_path).load_tasks()
        assert listing == {"tasks": [], "config": {"max_parallel_tasks": 3}}

    def test_corrupt_tasks_file(self, tmp_path: Path):
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "tasks.json").write_text("{oops")
        assert TaskStore(base_dir=tmp_path).load_tasks()["tasks"] == []

    def test_get_task_compares_as_text(self, store: TaskStore):
        assert store.get_task("11")["title"] == "Fix tests"
        assert store.get_task(5)["title"] == "Docs"
        assert store.get_task("99") is None

    def test_group_by_status_newest_first(self, store: TaskStore):
        grouped = store.group_by_status()
        assert [task["id"] for task in grouped["in_progress"]] == [11, 3]
        assert grouped["todo"] == []
        assert "archived" not in grouped

    def test_paths_follow_patterns(self, tmp_path: Path):
        config = validate_dashboard_config({
            "log_pattern": "runs/{task_id}/agent.jsonl",
            "config_dir": str(tmp_path),
        })
        store = TaskStore.from_config(config)
        assert store.log_path(4) == tmp_path / "runs" / "4" / "agent.jsonl"
        assert store.spec_path("4") == tmp_path / "specs" / "4.md"

    def test_missing_spec_and_log_read_empty(self, store: TaskStore):
        assert store.read_spec(3) == ""
        assert store.read_log(3) == ""

    def test_read_spec(self, store: TaskStore, tmp_path: Path):
        (tmp_path / "specs").mkdir()
        (tmp_path / "specs" / "3.md").write_text("# Login\n")
        assert store.read_spec(3) == "# Login\n"

    def test_worktrees(self, store: TaskStore):
        with pytest.raises(OSError):
            store.load_worktrees()
        store.worktrees_file.write_text(json.dumps({"worktrees": [{"path": "/tmp/wt"}]}))
        assert store.load_worktrees() == [{"path": "/tmp/wt"}]


class TestSnapshotTail:
    """Tests for SnapshotTail."""

    def test_first_poll_reports_missing_file_as_empty(self, tmp_path: Path):
        tail = SnapshotTail(tmp_path / "11.log")
        assert tail.poll() == ""
        assert tail.poll() is None

    def test_reports_full_content_on_change(self, tmp_path: Path):
        path = tmp_path / "11.log"
        path.write_text("one\n")
        tail = SnapshotTail(path)
        assert tail.poll() == "one\n"
        assert tail.poll() is None

        with open(path, "a") as f:
            f.write("two\n")
        assert tail.poll() == "one\ntwo\n"

    def test_detects_same_size_rewrite(self, tmp_path: Path):
        path = tmp_path / "11.log"
        path.write_text("aaaa")
        tail = SnapshotTail(path)
        tail.poll()
        path.write_text("bbbb")
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        assert tail.poll() == "bbbb"

    def test_invalid_utf8_is_replaced(self, tmp_path: Path):
        path = tmp_path / "11.log"
        path.write_bytes(b"ok \xff\n")
        assert SnapshotTail(path).read() == "ok \ufffd\n"

    def test_follow_stops_on_event(self, tmp_path: Path):
        stop = threading.Event()
        path = tmp_path / "11.log"
        path.write_text("x")
        snapshots = []
        for snapshot in SnapshotTail(path).follow(interval=0.01, stop=stop):
            snapshots.append(snapshot)
            stop.set()
        assert snapshots == ["x"]

    def test_follow_heartbeat(self, tmp_path: Path):
        events = SnapshotTail(tmp_path / "11.log").follow(interval=0.01, heartbeat=0.02)
        assert next(events) == ""
        assert next(events) is None
