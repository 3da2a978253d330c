"""Tests for the dashboard web server."""

import json
import os
from pathlib import Path

import pytest

from clide.config import validate_dashboard_config
from clide.detector import StreamFormat
from clide.logger import ClideLogger
from clide.store import TaskStore
from clide.web import ClideWebServer, sse_event


def decode_event(chunk) -> dict:
    if isinstance(chunk, bytes):
        chunk = chunk.decode("utf-8")
    assert chunk.startswith("data: ")
    assert chunk.endswith("\n\n")
    return json.loads(chunk[len("data: "):])


def touch_forward(path: Path) -> None:
    """Move the mtime forward so the change is seen on coarse clocks."""
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "data").mkdir()
    (tmp_path / "logs").mkdir()
    (tmp_path / "specs").mkdir()
    (tmp_path / "data" / "tasks.json").write_text(json.dumps({
        "tasks": [{"id": 11, "title": "Fix tests", "status": "in_progress"}],
        "config": {"max_parallel_tasks": 3},
    }))
    return tmp_path


@pytest.fixture
def server(workspace: Path) -> ClideWebServer:
    config = validate_dashboard_config({
        "config_dir": str(workspace),
        "server": {"poll_interval": 0.01},
    })
    return ClideWebServer(config=config, store=TaskStore.from_config(config), logger=ClideLogger("clide.test"))


@pytest.fixture
def client(server: ClideWebServer):
    server.app.config["TESTING"] = True
    return server.app.test_client()


class TestRoutes:
    """Tests for the JSON and text routes."""

    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Agent Logs" in page
        assert "Specification" in page
        assert "/api/logs/" in page

    def test_tasks(self, client):
        data = client.get("/api/tasks").get_json()
        assert data["tasks"][0]["id"] == 11
        assert data["config"]["max_parallel_tasks"] == 3

    def test_task_detail_and_unknown_task(self, client):
        assert client.get("/api/tasks/11").get_json()["title"] == "Fix tests"
        response = client.get("/api/tasks/99")
        assert response.status_code == 404
        assert "error" in response.get_json()

    def test_worktrees_unreadable(self, client):
        response = client.get("/api/worktrees")
        assert response.status_code == 500
        assert response.get_json() == {"worktrees": []}

    def test_worktrees(self, client, workspace: Path):
        (workspace / "data" / "worktrees.json").write_text(json.dumps({"worktrees": [{"branch": "task-11"}]}))
        assert client.get("/api/worktrees").get_json() == {"worktrees": [{"branch": "task-11"}]}

    def test_spec_text(self, client, workspace: Path):
        (workspace / "specs" / "11.md").write_text("# Fix tests\n- [ ] run them\n")
        response = client.get("/api/tasks/11/spec")
        assert response.status_code == 200
        assert response.mimetype == "text/plain"
        assert response.get_data(as_text=True) == "# Fix tests\n- [ ] run them\n"

    def test_missing_spec_is_empty(self, client):
        response = client.get("/api/tasks/11/spec")
        assert response.status_code == 200
        assert response.get_data(as_text=True) == ""

    def test_spec_html(self, client, workspace: Path):
        (workspace / "specs" / "11.md").write_text("# Fix <tests>\n")
        html = client.get("/api/tasks/11/spec/html").get_data(as_text=True)
        assert "<h1>Fix &lt;tests&gt;</h1>" in html

    def test_missing_spec_html(self, client):
        html = client.get("/api/tasks/11/spec/html").get_data(as_text=True)
        assert "No specification available" in html

    def test_log_stream_route(self, client, workspace: Path):
        (workspace / "logs" / "11.log").write_text("hello\n")
        response = client.get("/api/logs/11/stream")
        assert response.status_code == 200
        assert response.mimetype == "text/event-stream"
        assert decode_event(next(iter(response.response))) == {"content": "hello\n"}
        response.close()


class TestEventStreams:
    """Tests for the push generators."""

    def test_sse_event(self):
        assert sse_event({"content": "a"}) == 'data: {"content": "a"}\n\n'

    def test_missing_log_pushes_empty_snapshot(self, server: ClideWebServer):
        events = server.log_events("11")
        assert decode_event(next(events)) == {"content": ""}
        events.close()

    def test_log_events_push_full_snapshots(self, server: ClideWebServer, workspace: Path):
        log = workspace / "logs" / "11.log"
        log.write_text("one\n")
        events = server.log_events("11")
        assert decode_event(next(events)) == {"content": "one\n"}

        with open(log, "a") as f:
            f.write("two\n")
        touch_forward(log)
        assert decode_event(next(events)) == {"content": "one\ntwo\n"}
        events.close()

    def test_task_events(self, server: ClideWebServer):
        events = server.task_events()
        payload = decode_event(next(events))
        assert payload["tasks"][0]["title"] == "Fix tests"
        events.close()

    def test_view_events_structured(self, server: ClideWebServer, workspace: Path):
        log = workspace / "logs" / "11.log"
        log.write_text(json.dumps({"type": "user", "message": {"role": "user", "content": "**hi**"}}) + "\n")
        events = server.view_events("11")
        payload = decode_event(next(events))
        events.close()

        assert payload["phase"] == "displaying_structured"
        assert payload["format"] == "structured"
        assert "<strong>hi</strong>" in payload["html"]["conversation"]
        assert 'class="raw-log"' in payload["html"]["raw"]
        assert payload["content"].startswith("{")

    def test_view_events_narrative_and_sticky(self, server: ClideWebServer, workspace: Path):
        log = workspace / "logs" / "11.log"
        log.write_text("## Plan\n")
        events = server.view_events("11")
        first = decode_event(next(events))
        assert first["phase"] == "displaying_narrative"
        assert "conversation" not in first["html"]
        assert "<h2>Plan</h2>" in first["html"]["raw"]

        with open(log, "a") as f:
            f.write('{"type": "user"}\n')
        touch_forward(log)
        second = decode_event(next(events))
        events.close()
        assert second["phase"] == "displaying_narrative"

    def test_reconnect_keeps_committed_format(self, server: ClideWebServer, workspace: Path):
        log = workspace / "logs" / "11.log"
        log.write_text('{"type":\n')
        events = server.view_events("11")
        first = decode_event(next(events))
        events.close()
        assert first["format"] == "narrative"

        log.write_text(json.dumps({"type": "user", "message": "hi"}) + "\n")
        events = server.view_events("11", StreamFormat(first["format"]))
        second = decode_event(next(events))
        events.close()
        assert second["phase"] == "displaying_narrative"
        assert second["format"] == "narrative"
        assert "conversation" not in second["html"]

    def test_view_route_format_parameter(self, client, workspace: Path):
        (workspace / "logs" / "11.log").write_text("plain words\n")
        response = client.get("/api/logs/11/view?format=structured")
        payload = decode_event(next(iter(response.response)))
        response.close()
        assert payload["phase"] == "displaying_structured"

        assert client.get("/api/logs/11/view?format=yaml").status_code == 400

    def test_view_events_waiting_for_content(self, server: ClideWebServer):
        events = server.view_events("11")
        payload = decode_event(next(events))
        events.close()
        assert payload["phase"] == "loading_format"
        assert payload["format"] == "unknown"
        assert "No logs yet..." in payload["html"]["raw"]
