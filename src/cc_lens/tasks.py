"""Task identity and status across TaskCreate/TaskUpdate calls."""

import json
import re
from typing import Any

from .models import Task, TaskStatus, ToolCallUnit, ToolOutcome

TASK_CREATE = "TaskCreate"
TASK_UPDATE = "TaskUpdate"
TASK_TOOL_NAMES = (TASK_CREATE, TASK_UPDATE)

TASK_ID_PATTERN = re.compile(r"Task #(\d+)")


def tool_input(call: ToolCallUnit) -> dict[str, Any]:
    """Tool input as a mapping; JSON strings are decoded, anything else is empty."""
    value = call.input
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return {}
    if isinstance(value, dict):
        return value
    return {}


def _as_id(value: Any) -> str | None:
    # bool is an int subclass but never a task id
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)) and str(value):
        return str(value)
    return None


def _as_status(value: Any) -> TaskStatus | None:
    try:
        return TaskStatus(value)
    except ValueError:
        return None


def extract_task_id(text: str | None) -> str | None:
    """Digits of the first `Task #<n>` in a TaskCreate result."""
    if not text:
        return None
    match = TASK_ID_PATTERN.search(text)
    if match:
        return match.group(1)
    return None


class TaskTracker:
    """Mutable task map shared by every snapshot of one grouping pass.

    Tasks are never removed; a deleted task keeps its slot with status
    `deleted`, so ordering is stable from one snapshot to the next.
    """

    def __init__(self, results: dict[str, ToolOutcome]) -> None:
        self.results = results
        self.tasks: dict[str, Task] = {}

    def observe(self, call: ToolCallUnit) -> None:
        """Apply one task tool call. Other tools are ignored."""
        if call.name == TASK_CREATE:
            self._create(call)
        elif call.name == TASK_UPDATE:
            self._update(call)

    def _create(self, call: ToolCallUnit) -> None:
        subject = tool_input(call).get("subject")
        if not isinstance(subject, str):
            subject = ""
        outcome = self.results.get(call.id)
        task_id = extract_task_id(outcome.content if outcome else None) or call.id
        self.tasks[task_id] = Task(subject=subject, status=TaskStatus.PENDING)

    def _update(self, call: ToolCallUnit) -> None:
        data = tool_input(call)
        task_id = _as_id(data.get("taskId"))
        status = _as_status(data.get("status"))
        if task_id is None or status is None:
            return
        existing = self.tasks.get(task_id)
        if existing is not None:
            existing.status = status
        else:
            # Update seen before its create could be resolved
            self.tasks[task_id] = Task(subject=f"Task {task_id}", status=status)

    def snapshot(self) -> dict[str, Task]:
        """Deep copy of the current map; later updates do not leak into it."""
        return {task_id: task.model_copy() for task_id, task in self.tasks.items()}


def ordered_tasks(tasks: dict[str, Task]) -> list[tuple[str, Task]]:
    """Tasks by numeric id; non-numeric ids follow in insertion order."""

    def sort_key(item: tuple[int, tuple[str, Task]]) -> tuple[int, int]:
        position, (task_id, _task) = item
        if task_id.isdecimal():
            return (0, int(task_id))
        return (1, position)

    return [entry for _, entry in sorted(enumerate(tasks.items()), key=sort_key)]


def completed_count(tasks: dict[str, Task]) -> int:
    return sum(1 for task in tasks.values() if task.status == TaskStatus.COMPLETED)
