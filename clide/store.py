"""
Read-only access to the task files supervised by the dashboard.

Another process owns ``tasks.json``, ``worktrees.json`` and the per-task
log and specification files; the dashboard only reads them.
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, List, Union


TASK_STATUSES = ["todo", "in_progress", "staging", "completed", "failed"]

DEFAULT_TASKS_FILE: Dict[str, Any] = {
    "tasks": [],
    "config": {"max_parallel_tasks": 3},
}


class TaskStore:
    """
    Locates and reads task, worktree, log and specification files.
    """

    def __init__(
        self,
        data_dir: Path = Path("data"),
        log_pattern: str = "logs/{task_id}.log",
        spec_pattern: str = "specs/{task_id}.md",
        base_dir: Path = Path("."),
    ):
        """
        Initialize task store.

        Args:
            data_dir: Directory holding tasks.json and worktrees.json
            log_pattern: Log file path relative to base_dir, with {task_id}
            spec_pattern: Spec file path relative to base_dir, with {task_id}
            base_dir: Directory the relative paths are resolved against
        """
        self.base_dir = Path(base_dir)
        self.data_dir = self.base_dir / data_dir
        self.log_pattern = log_pattern
        self.spec_pattern = spec_pattern

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TaskStore":
        """
        Build a store from a validated dashboard configuration.

        Args:
            config: Output of load_dashboard_config()

        Returns:
            Task store
        """
        return cls(
            data_dir=Path(config["data_dir"]),
            log_pattern=config["log_pattern"],
            spec_pattern=config["spec_pattern"],
            base_dir=Path(config.get("config_dir", ".")),
        )

    @property
    def tasks_file(self) -> Path:
        return self.data_dir / "tasks.json"

    @property
    def worktrees_file(self) -> Path:
        return self.data_dir / "worktrees.json"

    def load_tasks(self) -> Dict[str, Any]:
        """
        Load the task listing.

        Returns:
            ``{"tasks": [...], "config": {...}}``; defaults when the file is
            missing or unreadable
        """
        data = self._read_json(self.tasks_file)
        if not isinstance(data, dict):
            return {"tasks": [], "config": dict(DEFAULT_TASKS_FILE["config"])}

        tasks = data.get("tasks", [])
        config = dict(DEFAULT_TASKS_FILE["config"])
        if isinstance(data.get("config"), dict):
            config.update(data["config"])

        return {
            "tasks": [task for task in tasks if isinstance(task, dict)] if isinstance(tasks, list) else [],
            "config": config,
        }

    def load_worktrees(self) -> List[Dict[str, Any]]:
        """
        Load the worktree listing.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not valid JSON
        """
        with open(self.worktrees_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        worktrees = data.get("worktrees", []) if isinstance(data, dict) else data
        return worktrees if isinstance(worktrees, list) else []

    def get_task(self, task_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """
        Find a task by id.

        Args:
            task_id: Task identifier (compared as text)

        Returns:
            Task dictionary or None if not found
        """
        for task in self.load_tasks()["tasks"]:
            if str(task.get("id")) == str(task_id):
                return task
        return None

    def group_by_status(self, tasks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Group tasks into kanban columns, newest (highest id) first.

        Tasks with an unknown status are left out.
        """
        if tasks is None:
            tasks = self.load_tasks()["tasks"]

        grouped: Dict[str, List[Dict[str, Any]]] = {status: [] for status in TASK_STATUSES}
        for task in tasks:
            status = task.get("status")
            if status in grouped:
                grouped[status].append(task)

        for column in grouped.values():
            column.sort(key=_task_sort_key, reverse=True)
        return grouped

    def log_path(self, task_id: Union[int, str]) -> Path:
        return self.base_dir / self.log_pattern.format(task_id=task_id)

    def spec_path(self, task_id: Union[int, str]) -> Path:
        return self.base_dir / self.spec_pattern.format(task_id=task_id)

    def read_spec(self, task_id: Union[int, str]) -> str:
        """Specification text, or the empty string when there is none."""
        return self._read_text(self.spec_path(task_id))

    def read_log(self, task_id: Union[int, str]) -> str:
        """Current log text, or the empty string when there is none."""
        return self._read_text(self.log_path(task_id))

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_bytes().decode("utf-8", errors="replace")
        except OSError:
            return ""

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError):
            return None


def _task_sort_key(task: Dict[str, Any]) -> Any:
    task_id = task.get("id")
    if isinstance(task_id, int):
        return (1, task_id, "")
    return (0, 0, str(task_id))
