"""
Web server and Kanban dashboard for supervising agent tasks.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional
from flask import Flask, Response, render_template_string, jsonify, request

try:
    from flask_cors import CORS
    HAS_CORS = True
except ImportError:
    HAS_CORS = False

from clide.config import validate_dashboard_config
from clide.detector import StreamFormat
from clide.html_render import render_document
from clide.logger import ClideLogger
from clide.markdown import render_blocks
from clide.store import TaskStore
from clide.tailer import SnapshotTail
from clide.view import DisplayMode, NarrativeDocument, Placeholder, ViewState
from clide.viewer import EMPTY_SPEC_MESSAGE


HEARTBEAT_SECONDS = 15.0


def sse_event(payload: Dict[str, Any]) -> str:
    """Encode one Server-Sent-Event carrying a JSON payload."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def spec_document(spec: str):
    if not spec:
        return Placeholder(EMPTY_SPEC_MESSAGE)
    return NarrativeDocument(render_blocks(spec))


def view_payload(view: ViewState) -> Dict[str, Any]:
    """
    Build the rendered-view event for the current state of a viewer.

    Structured streams carry both renderings so the page can switch
    between them without asking the server again.

    Args:
        view: The connection's view state

    Returns:
        Event payload
    """
    html: Dict[str, str] = {}
    if view.structured:
        html["conversation"] = str(render_document(view.document(DisplayMode.CONVERSATION)))
        html["raw"] = str(render_document(view.document(DisplayMode.RAW)))
    else:
        html["raw"] = str(render_document(view.document()))

    return {
        "content": view.snapshot,
        "phase": view.phase.value,
        "format": view.state.format.value,
        "html": html,
    }


class ClideWebServer:
    """
    Web server for the Clide Kanban dashboard.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        store: Optional[TaskStore] = None,
        logger: Optional[ClideLogger] = None,
    ):
        """
        Initialize web server.

        Args:
            config: Validated dashboard configuration (defaults when omitted)
            store: Task store (built from config when omitted)
            logger: Logger
        """
        self.config = config or validate_dashboard_config({})
        self.host = self.config["server"]["host"]
        self.port = self.config["server"]["port"]
        self.poll_interval = self.config["server"]["poll_interval"]
        self.store = store or TaskStore.from_config(self.config)
        self.logger = logger or ClideLogger("clide.web")

        self.app = Flask(__name__)
        if HAS_CORS:
            CORS(self.app)

        self._setup_routes()

    def _follow(self, path: Path, to_event: Callable[[str], str]) -> Iterator[str]:
        """
        Stream events for a watched file until the client goes away.

        Each connection gets its own tail, so viewers never share state.
        """
        tail = SnapshotTail(path)
        for snapshot in tail.follow(self.poll_interval, heartbeat=HEARTBEAT_SECONDS):
            if snapshot is None:
                # Comment frame; lets the server notice a closed connection
                yield ": keep-alive\n\n"
            else:
                yield to_event(snapshot)

    def task_events(self) -> Iterator[str]:
        """Push the task listing whenever tasks.json changes."""
        return self._follow(
            self.store.tasks_file,
            lambda _snapshot: sse_event(self.store.load_tasks()),
        )

    def log_events(self, task_id: str) -> Iterator[str]:
        """Push ``{"content": ...}`` with the full log whenever it changes."""
        return self._follow(
            self.store.log_path(task_id),
            lambda snapshot: sse_event({"content": snapshot}),
        )

    def view_events(self, task_id: str, stream_format: Optional[StreamFormat] = None) -> Iterator[str]:
        """
        Push server-rendered views, with one ViewState per connection.

        Args:
            task_id: Task identifier
            stream_format: Format the viewer already committed to on an
                earlier connection; detection is skipped when given
        """
        view = ViewState(logger=self.logger, source=f"task {task_id}")
        view.request()
        if stream_format is not None:
            view.commit_format(stream_format)

        def _render(snapshot: str) -> str:
            view.accept(snapshot)
            return sse_event(view_payload(view))

        return self._follow(self.store.log_path(task_id), _render)

    def _stream(self, events: Iterator[str]) -> Response:
        response = Response(events, mimetype='text/event-stream')
        response.headers['Cache-Control'] = 'no-cache'
        response.headers['X-Accel-Buffering'] = 'no'
        return response

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/')
        def index():
            """Serve the Kanban board HTML."""
            return render_template_string(DASHBOARD_HTML)

        @self.app.route('/api/tasks')
        def get_tasks():
            """Get the task listing."""
            return jsonify(self.store.load_tasks())

        @self.app.route('/api/tasks/<task_id>')
        def get_task(task_id: str):
            """Get a single task."""
            task = self.store.get_task(task_id)
            if not task:
                return jsonify({"error": f"Task not found: {task_id}"}), 404
            return jsonify(task)

        @self.app.route('/api/stream')
        def stream_tasks():
            """SSE stream of task listing updates."""
            return self._stream(self.task_events())

        @self.app.route('/api/worktrees')
        def get_worktrees():
            """Get the worktree listing."""
            try:
                return jsonify({"worktrees": self.store.load_worktrees()})
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to read worktrees: {e}")
                return jsonify({"worktrees": []}), 500

        @self.app.route('/api/tasks/<task_id>/spec')
        def get_spec(task_id: str):
            """Get the task specification as plain text."""
            return Response(self.store.read_spec(task_id), mimetype='text/plain')

        @self.app.route('/api/tasks/<task_id>/spec/html')
        def get_spec_html(task_id: str):
            """Get the task specification rendered to HTML."""
            html = render_document(spec_document(self.store.read_spec(task_id)))
            return Response(str(html), mimetype='text/html')

        @self.app.route('/api/logs/<task_id>/stream')
        def stream_logs(task_id: str):
            """SSE stream of full log snapshots."""
            return self._stream(self.log_events(task_id))

        @self.app.route('/api/logs/<task_id>/view')
        def stream_log_view(task_id: str):
            """SSE stream of server-rendered log views."""
            stream_format = None
            requested = request.args.get('format')
            if requested:
                try:
                    stream_format = StreamFormat(requested)
                except ValueError:
                    return jsonify({"error": f"Unknown log format: {requested}"}), 400
            return self._stream(self.view_events(task_id, stream_format))

    def run(self, debug: bool = False):
        """
        Run the web server.

        Args:
            debug: Enable debug mode
        """
        self.logger.server_start(self.host, self.port)
        print(f"📊 Open your browser to view the task board\n")
        self.app.run(host=self.host, port=self.port, debug=debug, use_reloader=False, threaded=True)


# Dark-themed Kanban board with the task log viewer panel
DASHBOARD_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Clide - Agent Task Board</title>
    <style>
        * {
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }

        :root {
            --bg-primary: #0f172a;
            --bg-secondary: #1e293b;
            --bg-tertiary: #334155;
            --bg-card: #1e293b;
            --bg-hover: #334155;
            --bg-code: #020617;
            --text-primary: #f1f5f9;
            --text-secondary: #cbd5e1;
            --text-muted: #94a3b8;
            --border-color: #334155;
            --accent-blue: #3b82f6;
            --accent-green: #10b981;
            --accent-yellow: #f59e0b;
            --accent-red: #ef4444;
            --accent-purple: #8b5cf6;
            --accent-gray: #64748b;
        }

        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Inter', sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            min-height: 100vh;
            overflow-x: hidden;
        }

        .top-bar {
            background: var(--bg-secondary);
            border-bottom: 1px solid var(--border-color);
            padding: 12px 24px;
            display: flex;
            justify-content: space-between;
            align-items: center;
            position: sticky;
            top: 0;
            z-index: 100;
            box-shadow: 0 2px 8px rgba(0, 0, 0, 0.3);
        }

        .brand {
            font-size: 22px;
            font-weight: 700;
            color: var(--text-secondary);
        }

        .project-stats {
            display: flex;
            gap: 20px;
            align-items: center;
        }

        .stat-item {
            display: flex;
            flex-direction: column;
            gap: 2px;
        }

        .stat-label {
            font-size: 11px;
            color: var(--text-muted);
            text-transform: uppercase;
            letter-spacing: 0.5px;
        }

        .stat-value {
            font-size: 18px;
            font-weight: 700;
        }

        .kanban-board {
            display: grid;
            grid-template-columns: repeat(5, minmax(220px, 1fr));
            gap: 20px;
            padding: 24px;
        }

        .kanban-column {
            background: var(--bg-secondary);
            border: 1px solid var(--border-color);
            border-radius: 12px;
            padding: 16px;
            min-height: 400px;
        }

        .column-header {
            font-size: 14px;
            font-weight: 700;
            margin-bottom: 16px;
            padding-bottom: 12px;
            border-bottom: 1px solid var(--border-color);
            display: flex;
            justify-content: space-between;
            text-transform: uppercase;
            letter-spacing: 0.5px;
        }

        .column-count {
            background: var(--bg-tertiary);
            color: var(--text-secondary);
            padding: 2px 10px;
            border-radius: 12px;
            font-size: 12px;
        }

        .task-card {
            background: var(--bg-card);
            border: 1px solid var(--border-color);
            border-radius: 8px;
            padding: 14px;
            margin-bottom: 10px;
            cursor: pointer;
            transition: all 0.2s;
        }

        .task-card:hover {
            background: var(--bg-hover);
            border-color: var(--accent-blue);
            transform: translateY(-2px);
        }

        .task-card.todo { border-left: 3px solid var(--accent-gray); }
        .task-card.in_progress { border-left: 3px solid var(--accent-blue); }
        .task-card.staging { border-left: 3px solid var(--accent-purple); }
        .task-card.completed { border-left: 3px solid var(--accent-green); }
        .task-card.failed { border-left: 3px solid var(--accent-red); }

        .task-title {
            font-size: 15px;
            font-weight: 600;
            margin-bottom: 6px;
        }

        .task-repo {
            font-size: 11px;
            color: var(--text-muted);
            font-family: 'Monaco', 'Menlo', monospace;
        }

        .empty-state, .loading-state {
            text-align: center;
            padding: 32px 16px;
            color: var(--text-muted);
            font-style: italic;
            font-size: 13px;
        }

        .panel {
            position: fixed;
            top: 0;
            right: 0;
            width: 900px;
            max-width: 100vw;
            height: 100vh;
            background: var(--bg-secondary);
            border-left: 1px solid var(--border-color);
            box-shadow: -8px 0 24px rgba(0, 0, 0, 0.4);
            display: none;
            flex-direction: column;
            z-index: 200;
        }

        .panel.open { display: flex; }

        .panel-header {
            padding: 16px 24px;
            border-bottom: 1px solid var(--border-color);
        }

        .panel-title-row {
            display: flex;
            justify-content: space-between;
            align-items: center;
            gap: 12px;
        }

        .panel-title { font-size: 17px; font-weight: 600; }
        .panel-sub { font-size: 12px; color: var(--text-muted); margin-top: 4px; }

        .btn {
            background: transparent;
            border: 1px solid var(--border-color);
            color: var(--text-secondary);
            padding: 6px 12px;
            border-radius: 6px;
            cursor: pointer;
            font-size: 13px;
        }

        .btn.active, .btn:hover {
            background: var(--bg-tertiary);
            color: var(--text-primary);
        }

        .btn:disabled { opacity: 0.5; cursor: not-allowed; }

        .tabs { display: flex; gap: 4px; margin-top: 14px; }
        .mode-toggle { display: none; gap: 0; }
        .mode-toggle.visible { display: flex; }

        .status-badge {
            font-size: 11px;
            padding: 3px 8px;
            border-radius: 4px;
            background: var(--bg-tertiary);
            text-transform: uppercase;
        }

        .connection { font-size: 11px; color: var(--accent-yellow); }

        .panel-body {
            flex: 1;
            overflow-y: auto;
            padding: 24px;
        }

        .prose h1 { font-size: 24px; margin: 20px 0 10px; }
        .prose h2 { font-size: 20px; margin: 18px 0 8px; }
        .prose h3 { font-size: 17px; margin: 14px 0 6px; }
        .prose h4 { font-size: 15px; margin: 10px 0 4px; }
        .prose p { margin-bottom: 6px; line-height: 1.6; color: var(--text-secondary); }
        .prose hr { border: none; border-top: 1px solid var(--border-color); margin: 20px 0; }
        .prose li { margin-left: 24px; margin-bottom: 4px; color: var(--text-secondary); }
        .prose li.list-disc { list-style: disc; }
        .prose li.list-decimal { list-style: decimal; }
        .prose .depth-1 { margin-left: 44px; }
        .prose .depth-2 { margin-left: 64px; }
        .prose .checkbox { margin-left: 24px; margin-bottom: 4px; }
        .prose .spacer { height: 8px; }

        .inline-code, .code-block pre, .collapsible pre, .raw-log {
            font-family: 'Monaco', 'Menlo', monospace;
        }

        .inline-code {
            background: var(--bg-tertiary);
            padding: 1px 5px;
            border-radius: 4px;
            font-size: 12px;
        }

        .code-block { margin: 12px 0; }
        .code-lang {
            background: var(--bg-tertiary);
            font-size: 11px;
            padding: 3px 10px;
            border-radius: 6px 6px 0 0;
            display: inline-block;
        }
        .code-block pre, .collapsible pre {
            background: var(--bg-code);
            border: 1px solid var(--border-color);
            border-radius: 6px;
            padding: 12px;
            font-size: 12px;
            overflow-x: auto;
        }
        .collapsible pre { max-height: 380px; overflow-y: auto; }
        .raw-log { white-space: pre-wrap; font-size: 12px; color: var(--text-secondary); }

        .entry {
            padding-bottom: 16px;
            margin-bottom: 16px;
            border-bottom: 1px solid var(--border-color);
        }

        .role-badge {
            display: inline-block;
            padding: 2px 8px;
            border-radius: 4px;
            font-size: 10px;
            font-weight: 600;
            text-transform: uppercase;
            margin-bottom: 10px;
            background: var(--bg-tertiary);
            color: var(--text-muted);
        }
        .role-badge.role-user { background: rgba(59, 130, 246, 0.2); color: #93c5fd; }
        .role-badge.role-assistant { background: rgba(139, 92, 246, 0.2); color: #c4b5fd; }

        .collapsible { margin-top: 8px; }
        .collapsible summary {
            cursor: pointer;
            font-family: 'Monaco', 'Menlo', monospace;
            font-size: 12px;
            padding: 6px 12px;
            background: var(--bg-primary);
            border: 1px solid var(--border-color);
            border-radius: 6px;
        }
        .collapsible .title { color: var(--accent-yellow); font-weight: 600; }
        .collapsible.tool_result .title { color: var(--accent-green); }
        .collapsible.metadata summary { background: transparent; border: none; color: var(--text-muted); }
        .collapsible.metadata .title { color: var(--text-muted); font-weight: normal; }
        .short-id { color: var(--text-muted); margin-left: 8px; }
        .error-flag { color: var(--accent-red); margin-left: 8px; font-size: 10px; }
    </style>
</head>
<body>
    <div class="top-bar">
        <div class="brand">Clide</div>
        <div class="project-stats">
            <div class="stat-item">
                <div class="stat-label">Total</div>
                <div class="stat-value" id="statTotal">0</div>
            </div>
            <div class="stat-item">
                <div class="stat-label">In Progress</div>
                <div class="stat-value" id="statActive">0</div>
            </div>
            <div class="stat-item">
                <div class="stat-label">Slots Available</div>
                <div class="stat-value" id="statSlots">0</div>
            </div>
        </div>
    </div>

    <div class="kanban-board" id="kanbanBoard" data-testid="kanban-board">
        <div class="loading-state">Loading tasks...</div>
    </div>

    <div class="panel" id="panel" role="dialog">
        <div class="panel-header">
            <div class="panel-title-row">
                <div class="panel-title" id="panelTitle"></div>
                <div style="display: flex; gap: 8px; align-items: center;">
                    <span class="connection" id="connection"></span>
                    <span class="status-badge" id="panelStatus"></span>
                    <div class="mode-toggle" id="modeToggle">
                        <button class="btn" data-mode="conversation">Conversation</button>
                        <button class="btn" data-mode="raw">Raw</button>
                    </div>
                    <button class="btn" id="copyBtn">Copy</button>
                    <button class="btn" id="closeBtn">✕</button>
                </div>
            </div>
            <div class="panel-sub" id="panelSub"></div>
            <div class="tabs">
                <button class="btn active" data-tab="spec">Specification</button>
                <button class="btn" data-tab="logs">Agent Logs</button>
            </div>
        </div>
        <div class="panel-body" id="panelBody"></div>
    </div>

    <script>
        const COLUMNS = [
            ['todo', 'To Do'],
            ['in_progress', 'In Progress'],
            ['staging', 'Staging'],
            ['completed', 'Completed'],
            ['failed', 'Failed']
        ];
        const MAX_RECONNECTS = 5;

        const kanbanBoard = document.getElementById('kanbanBoard');
        const panel = document.getElementById('panel');
        const panelBody = document.getElementById('panelBody');
        const modeToggle = document.getElementById('modeToggle');
        const copyBtn = document.getElementById('copyBtn');
        const connection = document.getElementById('connection');

        // One viewer at a time; everything below is reset when it closes
        let viewer = null;

        function escapeHtml(text) {
            const div = document.createElement('div');
            div.textContent = text == null ? '' : String(text);
            return div.innerHTML;
        }

        function renderBoard(data) {
            const tasks = data.tasks || [];
            const config = data.config || {};
            const active = tasks.filter(t => t.status === 'in_progress').length;
            document.getElementById('statTotal').textContent = tasks.length;
            document.getElementById('statActive').textContent = active;
            document.getElementById('statSlots').textContent =
                Math.max(0, (config.max_parallel_tasks || 0) - active);

            kanbanBoard.innerHTML = COLUMNS.map(([key, title]) => {
                const column = tasks
                    .filter(t => t.status === key)
                    .sort((a, b) => (b.id > a.id ? 1 : -1));
                return `
                    <div class="kanban-column">
                        <div class="column-header">
                            <span>${title}</span>
                            <span class="column-count">${column.length}</span>
                        </div>
                        ${column.length === 0 ?
                            '<div class="empty-state">No tasks</div>' :
                            column.map(renderTaskCard).join('')}
                    </div>`;
            }).join('');

            kanbanBoard.querySelectorAll('.task-card').forEach(card => {
                card.addEventListener('click', () => {
                    const task = tasks.find(t => String(t.id) === card.dataset.taskId);
                    if (task) openViewer(task);
                });
            });
        }

        function renderTaskCard(task) {
            return `
                <div class="task-card ${escapeHtml(task.status)}" data-task-id="${escapeHtml(task.id)}">
                    <div class="task-title">#${escapeHtml(task.id)} ${escapeHtml(task.title || '')}</div>
                    ${task.repo ? `<div class="task-repo">${escapeHtml(task.repo)}</div>` : ''}
                </div>`;
        }

        function connectBoard() {
            const source = new EventSource('/api/stream');
            source.onmessage = (event) => renderBoard(JSON.parse(event.data));
            source.onerror = () => {
                source.close();
                setTimeout(connectBoard, 2000);
            };
        }

        function openViewer(task) {
            closeViewer();
            viewer = {
                task: task,
                tab: 'spec',
                mode: 'conversation',
                spec: '',
                specHtml: null,
                logs: null,
                format: null,
                source: null,
                timer: null,
                attempts: 0
            };
            document.getElementById('panelTitle').textContent = `Task #${task.id} - ${task.title || ''}`;
            document.getElementById('panelSub').textContent =
                `${task.repo || ''} • ${task.branch || 'No branch'}`;
            document.getElementById('panelStatus').textContent = (task.status || '').replace('_', ' ');
            panel.classList.add('open');

            const current = viewer;
            Promise.all([
                fetch(`/api/tasks/${task.id}/spec`).then(r => r.ok ? r.text() : ''),
                fetch(`/api/tasks/${task.id}/spec/html`).then(r => r.text())
            ]).then(([text, html]) => {
                if (viewer !== current) return;
                current.spec = text;
                current.specHtml = html;
                render();
            }).catch(() => {
                if (viewer !== current) return;
                current.spec = '';
                current.specHtml = '<div class="empty-state">No specification available</div>';
                render();
            });

            connectLogs(current);
            render();
        }

        function connectLogs(current) {
            if (viewer !== current) return;
            current.timer = null;
            // Format is decided once per viewer, so reconnects keep it
            const query = current.format ? `?format=${current.format}` : '';
            const source = new EventSource(`/api/logs/${current.task.id}/view${query}`);
            current.source = source;
            source.onmessage = (event) => {
                if (viewer !== current) return;
                current.attempts = 0;
                current.logs = JSON.parse(event.data);
                if (current.logs.format !== 'unknown') current.format = current.logs.format;
                connection.textContent = '';
                render();
            };
            source.onerror = () => {
                source.close();
                if (viewer !== current) return;
                connection.textContent = 'disconnected';
                if (current.attempts < MAX_RECONNECTS) {
                    const delay = 1000 * Math.pow(2, current.attempts);
                    current.attempts += 1;
                    current.timer = setTimeout(() => connectLogs(current), delay);
                }
            };
        }

        function closeViewer() {
            if (!viewer) return;
            if (viewer.timer) clearTimeout(viewer.timer);
            if (viewer.source) viewer.source.close();
            viewer = null;
            connection.textContent = '';
            panel.classList.remove('open');
        }

        function activeText() {
            if (!viewer) return '';
            if (viewer.tab === 'spec') return viewer.spec;
            return viewer.logs ? viewer.logs.content : '';
        }

        function render() {
            if (!viewer) return;
            document.querySelectorAll('[data-tab]').forEach(btn =>
                btn.classList.toggle('active', btn.dataset.tab === viewer.tab));

            const logs = viewer.logs;
            const structured = logs && logs.format === 'structured';
            modeToggle.classList.toggle('visible', viewer.tab === 'logs' && structured);
            modeToggle.querySelectorAll('[data-mode]').forEach(btn =>
                btn.classList.toggle('active', btn.dataset.mode === viewer.mode));
            copyBtn.disabled = !activeText();

            if (viewer.tab === 'spec') {
                panelBody.innerHTML = viewer.specHtml === null ?
                    '<div class="loading-state">Loading specification...</div>' : viewer.specHtml;
                return;
            }
            if (!logs) {
                panelBody.innerHTML = '<div class="loading-state">Loading agent logs...</div>';
                return;
            }
            const mode = structured ? viewer.mode : 'raw';
            panelBody.innerHTML = logs.html[mode] || logs.html.raw;
            panelBody.scrollTop = panelBody.scrollHeight;
        }

        document.querySelectorAll('[data-tab]').forEach(btn => {
            btn.addEventListener('click', () => {
                if (!viewer) return;
                viewer.tab = btn.dataset.tab;
                render();
            });
        });

        modeToggle.querySelectorAll('[data-mode]').forEach(btn => {
            btn.addEventListener('click', () => {
                if (!viewer) return;
                viewer.mode = btn.dataset.mode;
                render();
            });
        });

        copyBtn.addEventListener('click', async () => {
            const text = activeText();
            if (!text) return;
            await navigator.clipboard.writeText(text);
            copyBtn.textContent = 'Copied!';
            setTimeout(() => { copyBtn.textContent = 'Copy'; }, 2000);
        });

        document.getElementById('closeBtn').addEventListener('click', closeViewer);
        document.addEventListener('keydown', (e) => {
            if (e.key === 'Escape') closeViewer();
        });

        fetch('/api/tasks').then(r => r.json()).then(renderBoard);
        connectBoard();
    </script>
</body>
</html>
"""
