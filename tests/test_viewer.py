"""Tests for the task log viewer session."""

import json
import time

import httpx

from clide.composer import ConversationDocument
from clide.retry import ReconnectPolicy, RetryStrategy
from clide.view import NarrativeDocument, Placeholder, ViewPhase
from clide.viewer import EMPTY_SPEC_MESSAGE, LogViewer, Tab, log_stream_url, spec_url

BASE_URL = "http://dashboard.test"
LOG = json.dumps({"type": "assistant", "message": {"role": "assistant", "content": "working"}}) + "\n"


def make_client(spec_status: int = 200, spec: str = "# Task\n") -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/spec"):
            return httpx.Response(spec_status, text=spec)
        body = f"data: {json.dumps({'content': LOG})}\n\n".encode()
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    return httpx.Client(transport=httpx.MockTransport(handler))


def no_retry() -> ReconnectPolicy:
    return ReconnectPolicy(max_retries=0, strategy=RetryStrategy.IMMEDIATE)


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestUrls:
    """Tests for endpoint URLs."""

    def test_urls(self):
        assert log_stream_url("http://h:5000/", 11) == "http://h:5000/api/logs/11/stream"
        assert spec_url("http://h:5000", "11") == "http://h:5000/api/tasks/11/spec"


class TestLogViewer:
    """Tests for LogViewer."""

    def test_open_loads_spec_and_streams_logs(self):
        updates = []
        viewer = LogViewer(BASE_URL, 11, policy=no_retry(), client=make_client(), on_update=updates.append)
        with viewer:
            assert viewer.spec == "# Task\n"
            assert wait_for(lambda: viewer.view.phase == ViewPhase.DISPLAYING_STRUCTURED)

            assert viewer.tab == Tab.SPEC
            assert isinstance(viewer.document(), NarrativeDocument)
            assert viewer.copy_text() == "# Task\n"

            viewer.select_tab(Tab.LOGS)
            assert isinstance(viewer.document(), ConversationDocument)
            assert viewer.copy_text() == LOG
        assert viewer.transport.closed
        assert updates

    def test_missing_spec_is_a_placeholder(self):
        viewer = LogViewer(BASE_URL, 11, policy=no_retry(), client=make_client(spec_status=404, spec="missing"))
        viewer.load_spec()
        assert viewer.spec == ""
        assert viewer.spec_document() == Placeholder(EMPTY_SPEC_MESSAGE)
        assert viewer.copy_text() == ""

    def test_spec_loading_placeholder(self):
        viewer = LogViewer(BASE_URL, 11, client=make_client())
        assert viewer.spec_document().loading

    def test_select_tab_by_value(self):
        viewer = LogViewer(BASE_URL, 11, client=make_client())
        viewer.select_tab("logs")
        assert viewer.tab == Tab.LOGS
        assert viewer.document().loading
