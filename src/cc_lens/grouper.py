"""Group transcript events into display items.

One left-to-right pass with two pending accumulators, the internal run and
the task run. At most one of them is open at any point: opening either
closes the other.
"""

from .models import (
    AgentCall,
    AssistantItem,
    DisplayItem,
    EventKind,
    InternalActivityRun,
    Passthrough,
    StandaloneTag,
    StandaloneToolCall,
    TaskListSnapshot,
    ToolCallUnit,
    ToolOutcome,
    TranscriptEvent,
    TurnMarker,
    UserItem,
    UserText,
)
from .results import AGENT_TOOL_NAMES, build_tool_result_index
from .tasks import TASK_TOOL_NAMES, TaskTracker

TURN_DURATION = "turn_duration"
THINKING_STEP = "Thinking"

# Checked in order; the first tool present wins.
STANDALONE_TOOLS = [
    ("AskUserQuestion", StandaloneTag.ASK_QUESTION),
    ("ExitPlanMode", StandaloneTag.EXIT_PLAN),
    ("Bash", StandaloneTag.BASH),
]


def find_tool_call(event: TranscriptEvent, name: str) -> ToolCallUnit | None:
    """First tool call with the given name in an assistant event."""
    if event.assistant_content is None:
        return None
    for unit in event.assistant_content.units:
        if isinstance(unit, ToolCallUnit) and unit.name == name:
            return unit
    return None


def find_agent_call(event: TranscriptEvent) -> ToolCallUnit | None:
    for name in AGENT_TOOL_NAMES:
        call = find_tool_call(event, name)
        if call:
            return call
    return None


def has_user_facing_text(event: TranscriptEvent) -> bool:
    if event.assistant_content is None:
        return False
    return any(unit.type == "text" for unit in event.assistant_content.units)


def task_calls(event: TranscriptEvent) -> list[ToolCallUnit]:
    if event.assistant_content is None:
        return []
    return [
        unit
        for unit in event.assistant_content.units
        if isinstance(unit, ToolCallUnit) and unit.name in TASK_TOOL_NAMES
    ]


def total_tokens(event: TranscriptEvent) -> int | None:
    """Input plus output tokens, or None when the event reports no usage."""
    if event.assistant_content is None or event.assistant_content.usage is None:
        return None
    usage = event.assistant_content.usage
    return (usage.input_tokens or 0) + (usage.output_tokens or 0)


def event_steps(event: TranscriptEvent) -> list[str]:
    if event.assistant_content is None:
        return []
    steps = []
    for unit in event.assistant_content.units:
        if unit.type == "thinking":
            steps.append(THINKING_STEP)
        elif unit.type == "tool_use":
            steps.append(unit.name)
    return steps


def compact_steps(steps: list[str]) -> list[tuple[str, int]]:
    """Run-length compaction: ["Bash", "Bash", "Read"] -> [("Bash", 2), ("Read", 1)]."""
    result: list[tuple[str, int]] = []
    for step in steps:
        if result and result[-1][0] == step:
            result[-1] = (step, result[-1][1] + 1)
        else:
            result.append((step, 1))
    return result


def format_steps(steps: list[str]) -> str:
    """Summary label such as "Thinking · Bash ×3"."""
    return " · ".join(
        name if count == 1 else f"{name} ×{count}" for name, count in compact_steps(steps)
    )


class _GroupingPass:
    def __init__(self, results: dict[str, ToolOutcome]) -> None:
        self.items: list[DisplayItem] = []
        self.internal: list[TranscriptEvent] = []
        self.task_run: list[TranscriptEvent] = []
        self.tracker = TaskTracker(results)

    def flush_internal(self) -> None:
        if not self.internal:
            return
        steps: list[str] = []
        tokens = 0
        for event in self.internal:
            steps.extend(event_steps(event))
            tokens += total_tokens(event) or 0
        self.items.append(
            InternalActivityRun(
                key=f"ig-{self.internal[0].id}",
                steps=steps,
                tokens=tokens,
                events=self.internal,
            )
        )
        self.internal = []

    def flush_tasks(self) -> None:
        if not self.task_run:
            return
        self.items.append(
            TaskListSnapshot(
                key=f"task-list-{self.task_run[0].id}",
                tasks=self.tracker.snapshot(),
                events=self.task_run,
            )
        )
        self.task_run = []

    def flush(self) -> None:
        self.flush_internal()
        self.flush_tasks()

    def emit(self, item: DisplayItem) -> None:
        self.flush()
        self.items.append(item)

    def attach(self, event: TranscriptEvent) -> None:
        """Events with no display of their own ride along with the open run."""
        if self.internal:
            self.internal.append(event)
        elif self.task_run:
            self.task_run.append(event)
        else:
            self.items.append(Passthrough(event=event))

    def feed(self, event: TranscriptEvent) -> None:
        if event.kind == EventKind.USER and isinstance(event.user_content, UserText):
            self.emit(UserItem(event=event))
        elif event.kind == EventKind.ASSISTANT and event.assistant_content is not None:
            self.feed_assistant(event)
        elif (
            event.kind == EventKind.SYSTEM
            and event.system_info is not None
            and event.system_info.subtype == TURN_DURATION
        ):
            self.emit(TurnMarker(duration_ms=event.system_info.duration_ms, event=event))
        else:
            self.attach(event)

    def feed_assistant(self, event: TranscriptEvent) -> None:
        if has_user_facing_text(event):
            self.emit(AssistantItem(event=event))
            return

        for name, tag in STANDALONE_TOOLS:
            call = find_tool_call(event, name)
            if call:
                self.emit(StandaloneToolCall(tag=tag, call=call, event=event))
                return

        call = find_agent_call(event)
        if call:
            self.emit(AgentCall(call=call, event=event))
            return

        calls = task_calls(event)
        if calls:
            self.flush_internal()
            for call in calls:
                self.tracker.observe(call)
            self.task_run.append(event)
            return

        self.flush_tasks()
        self.internal.append(event)


def group(
    events: list[TranscriptEvent],
    results: dict[str, ToolOutcome] | None = None,
) -> list[DisplayItem]:
    """Turn an ordered event list into display items.

    Pure: the same events always give structurally equal items, and every
    event appears in exactly one item, in its original order.
    """
    if results is None:
        results = build_tool_result_index(events)
    grouping = _GroupingPass(results)
    for event in events:
        grouping.feed(event)
    grouping.flush()
    return grouping.items
