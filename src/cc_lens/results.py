"""Tool-result and sub-agent lookups over a transcript."""

from .models import EventKind, ToolOutcome, ToolResults, TranscriptEvent
from .parser import extract_agent_id

AGENT_TOOL_NAMES = ("Task", "Agent")


def build_tool_result_index(events: list[TranscriptEvent]) -> dict[str, ToolOutcome]:
    """Map tool call id -> its result.

    A call id seen twice keeps the later result, in event order.
    """
    index: dict[str, ToolOutcome] = {}
    for event in events:
        if event.kind != EventKind.USER or not isinstance(event.user_content, ToolResults):
            continue
        for result in event.user_content.results:
            index[result.tool_use_id] = ToolOutcome(
                content=result.content,
                is_error=result.is_error,
            )
    return index


def lookup_result(index: dict[str, ToolOutcome], call_id: str) -> ToolOutcome | None:
    """Result for a call, or None while it is still pending."""
    return index.get(call_id)


def build_agent_map(
    events: list[TranscriptEvent],
    index: dict[str, ToolOutcome] | None = None,
) -> dict[str, str]:
    """Map Task/Agent call id -> sub-agent id announced in its result."""
    if index is None:
        index = build_tool_result_index(events)

    agent_map: dict[str, str] = {}
    for event in events:
        if event.assistant_content is None:
            continue
        for unit in event.assistant_content.units:
            if unit.type != "tool_use" or unit.name not in AGENT_TOOL_NAMES:
                continue
            outcome = index.get(unit.id)
            if outcome is None:
                continue
            agent_id = extract_agent_id(outcome.content)
            if agent_id:
                agent_map[unit.id] = agent_id
    return agent_map
