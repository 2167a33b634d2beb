"""JSON and plain-text output for display plans."""

import json
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .grouper import format_steps
from .models import (
    AgentCall,
    AssistantItem,
    DisplayItem,
    InternalActivityRun,
    StandaloneTag,
    StandaloneToolCall,
    TaskListSnapshot,
    TaskStatus,
    TextUnit,
    TranscriptEvent,
    TurnMarker,
    UserItem,
)
from .parser import truncate
from .tasks import completed_count, ordered_tasks, tool_input

CHECKBOXES = {
    TaskStatus.PENDING: "☐",
    TaskStatus.IN_PROGRESS: "◑",
    TaskStatus.COMPLETED: "☑",
    TaskStatus.DELETED: "☒",
}

# Input key shown as the one-line preview for each standalone tool
TOOL_PREVIEW_KEYS = {
    StandaloneTag.BASH: "command",
    StandaloneTag.EXIT_PLAN: "plan",
    StandaloneTag.ASK_QUESTION: "questions",
}


def plan_to_dict(items: list[DisplayItem], agent_map: dict[str, str] | None = None) -> dict:
    """Convert a display plan to plain data for JSON serialization."""
    agent_map = agent_map or {}
    out = []
    for item in items:
        data = item.model_dump(mode="json")
        if isinstance(item, AgentCall):
            data["agent_id"] = agent_map.get(item.call.id)
        if isinstance(item, TaskListSnapshot):
            data["tasks"] = [
                {"id": task_id, **task.model_dump(mode="json")}
                for task_id, task in ordered_tasks(item.tasks)
            ]
        out.append(data)
    return {"items": out}


def render_json(
    items: list[DisplayItem],
    session_id: str,
    agent_map: dict[str, str] | None = None,
    compact: bool = False,
) -> str:
    """Render a display plan as JSON string."""
    data = plan_to_dict(items, agent_map)
    metadata = {
        "session_id": session_id,
        "total_items": len(items),
        "total_events": sum(len(item.member_events()) for item in items),
    }
    return json.dumps({"metadata": metadata, **data}, indent=None if compact else 2)


def _first_text(event: TranscriptEvent) -> str:
    if event.user_content is not None and event.user_content.type == "text":
        return event.user_content.text
    if event.assistant_content is not None:
        for unit in event.assistant_content.units:
            if isinstance(unit, TextUnit):
                return unit.text
    return ""


def _one_line(text: str, max_len: int) -> str:
    return truncate(" ".join(str(text).split()), max_len)


def outline_entry(
    item: DisplayItem, agent_map: dict[str, str], width: int = 100
) -> dict | None:
    """Label and detail lines for one item, or None for items with no display."""
    if isinstance(item, UserItem):
        return {"label": "user", "text": _one_line(_first_text(item.event), width), "lines": []}
    if isinstance(item, AssistantItem):
        return {
            "label": "assistant",
            "text": _one_line(_first_text(item.event), width),
            "lines": [],
        }
    if isinstance(item, StandaloneToolCall):
        value = tool_input(item.call).get(TOOL_PREVIEW_KEYS[item.tag], "")
        if not isinstance(value, str):
            value = json.dumps(value)
        return {"label": item.tag.value, "text": _one_line(value, width), "lines": []}
    if isinstance(item, AgentCall):
        data = tool_input(item.call)
        parts = [str(data.get("subagent_type") or ""), str(data.get("description") or "")]
        agent_id = agent_map.get(item.call.id)
        if agent_id:
            parts.append(f"-> agent-{agent_id}")
        return {"label": "agent", "text": " · ".join(p for p in parts if p), "lines": []}
    if isinstance(item, InternalActivityRun):
        return {
            "label": "internal",
            "text": f"{format_steps(item.steps)} ({item.tokens:,} tokens)",
            "lines": [],
        }
    if isinstance(item, TaskListSnapshot):
        tasks = ordered_tasks(item.tasks)
        return {
            "label": "tasks",
            "text": f"{completed_count(item.tasks)}/{len(tasks)} completed",
            "lines": [f"{CHECKBOXES[task.status]} {task.subject}" for _, task in tasks],
        }
    if isinstance(item, TurnMarker):
        seconds = (item.duration_ms or 0) / 1000
        return {"label": "turn", "text": f"completed in {seconds:.1f}s", "lines": []}
    # Passthrough items have nothing to show
    return None


def render_outline(
    items: list[DisplayItem],
    agent_map: dict[str, str] | None = None,
    width: int = 100,
) -> str:
    """Render a display plan as a terminal-friendly outline."""
    agent_map = agent_map or {}
    template_dir = Path(__file__).parent / "templates"
    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("outline.txt.j2")

    entries = [outline_entry(item, agent_map, width) for item in items]
    return template.render(entries=[e for e in entries if e is not None])
