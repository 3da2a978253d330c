"""
CLI utility tools for Clide.
"""

import threading
from pathlib import Path
from typing import Optional, Union
from colorama import Fore, Style

import httpx

from clide.detector import looks_like_markdown
from clide.logger import ClideLogger
from clide.markdown import render_blocks
from clide.retry import ReconnectPolicy
from clide.store import TASK_STATUSES, TaskStore
from clide.tailer import SnapshotTail
from clide.terminal import CLEAR_SCREEN, format_document
from clide.utils import status_label
from clide.view import DisplayMode, NarrativeDocument, ViewPhase, ViewState
from clide.viewer import EMPTY_SPEC_MESSAGE, LogViewer, Tab


STATUS_COLORS = {
    "todo": Fore.WHITE,
    "in_progress": Fore.BLUE,
    "staging": Fore.MAGENTA,
    "completed": Fore.GREEN,
    "failed": Fore.RED,
}


def list_tasks(store: TaskStore) -> None:
    """
    List tasks grouped by kanban column.

    Args:
        store: Task store
    """
    listing = store.load_tasks()
    tasks = listing["tasks"]

    if not tasks:
        print(f"{Fore.YELLOW}No tasks found in {store.tasks_file}{Style.RESET_ALL}")
        return

    grouped = store.group_by_status(tasks)
    active = len(grouped["in_progress"])
    slots = max(0, listing["config"].get("max_parallel_tasks", 0) - active)

    print(f"\n{Fore.CYAN}{Style.BRIGHT}📋 Tasks{Style.RESET_ALL} "
          f"({len(tasks)} total, {active} in progress, {slots} slots available)\n")

    for status in TASK_STATUSES:
        column = grouped[status]
        color = STATUS_COLORS[status]
        print(f"{color}{Style.BRIGHT}{status_label(status)}{Style.RESET_ALL} ({len(column)})")
        for task in column:
            print(f"  {color}•{Style.RESET_ALL} #{task.get('id')} {task.get('title', '')}")
            if task.get("repo"):
                print(f"    {Fore.CYAN}Repo:{Style.RESET_ALL} {task['repo']}")
        print()


def show_spec(store: TaskStore, task_id: str) -> None:
    """
    Print a task specification rendered for the terminal.

    Args:
        store: Task store
        task_id: Task identifier
    """
    spec = store.read_spec(task_id)
    if not spec:
        print(f"{Fore.YELLOW}{EMPTY_SPEC_MESSAGE}{Style.RESET_ALL}")
        return
    print(format_document(NarrativeDocument(render_blocks(spec))))


def render_file(path: Path, raw: bool = False, expanded: bool = False) -> bool:
    """
    Render a log file the same way the viewer would.

    Args:
        path: Log file
        raw: Show structured logs verbatim instead of as a conversation
        expanded: Show the bodies of tool calls and results

    Returns:
        True if the file was rendered, False if it does not exist
    """
    path = Path(path)
    if not path.exists():
        print(f"{Fore.RED}❌ Log file not found: {path}{Style.RESET_ALL}")
        return False

    view = ViewState(source=str(path))
    view.request()
    view.accept(SnapshotTail(path).read())
    mode = DisplayMode.RAW if raw and view.structured else None
    print(format_document(view.document(mode), expanded=expanded))
    return True


def _format_label(viewer: LogViewer) -> str:
    label = viewer.state.format.value
    if viewer.view.phase == ViewPhase.DISPLAYING_NARRATIVE and looks_like_markdown(viewer.view.snapshot):
        label += " (markdown)"
    return label


def _redraw(viewer: LogViewer, raw: bool) -> None:
    state = viewer.state
    connection = f"{Fore.GREEN}connected" if state.connected else f"{Fore.YELLOW}disconnected"
    header = (f"{Fore.CYAN}{Style.BRIGHT}Task #{viewer.task_id}{Style.RESET_ALL} • "
              f"{connection}{Style.RESET_ALL} • {_format_label(viewer)}")

    mode = DisplayMode.RAW if raw and viewer.view.structured else None
    print(CLEAR_SCREEN + header + "\n", flush=True)
    print(format_document(viewer.view.document(mode)), flush=True)


def watch_logs(
    base_url: str,
    task_id: Union[int, str],
    policy: Optional[ReconnectPolicy] = None,
    raw: bool = False,
    logger: Optional[ClideLogger] = None,
    client: Optional[httpx.Client] = None,
) -> bool:
    """
    Follow a task's agent logs from a running dashboard server.

    The screen is redrawn after every snapshot or connection change until
    the user interrupts or reconnect attempts run out.

    Args:
        base_url: Dashboard server URL
        task_id: Task identifier
        policy: Reconnect policy
        raw: Show structured logs verbatim
        logger: Logger
        client: httpx client (created when omitted)

    Returns:
        False if the stream gave up reconnecting, True otherwise
    """
    updated = threading.Event()
    logger = logger or ClideLogger("clide.watch")
    viewer = LogViewer(
        base_url,
        task_id,
        policy=policy,
        client=client,
        logger=logger,
        on_update=lambda _viewer: updated.set(),
    )
    viewer.select_tab(Tab.LOGS)

    # Log records go to the log file only while the screen is redrawn
    with logger.quiet_console():
        try:
            viewer.open()
            _redraw(viewer, raw)
            while not viewer.transport.exhausted:
                if updated.wait(0.5):
                    updated.clear()
                    _redraw(viewer, raw)
            if updated.is_set():
                _redraw(viewer, raw)
        except KeyboardInterrupt:
            print(f"\n{Fore.YELLOW}⚠️  Stopped watching task {task_id}{Style.RESET_ALL}")
        finally:
            viewer.close()

    if viewer.transport.exhausted:
        print(f"{Fore.RED}❌ Lost connection to {base_url}{Style.RESET_ALL}")
        return False
    return True
