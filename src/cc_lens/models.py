"""Domain models for cc-lens."""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Known transcript event kinds. Other kinds pass through untouched."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# --- Content units ---


class TextUnit(BaseModel):
    """User-facing assistant text."""

    type: Literal["text"] = "text"
    text: str


class ThinkingUnit(BaseModel):
    """Model reasoning, never shown inline."""

    type: Literal["thinking"] = "thinking"
    text: str


class ToolCallUnit(BaseModel):
    """A tool invocation. `id` joins against ToolResult.tool_use_id."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = None


class ToolOutcomeUnit(BaseModel):
    """A tool result embedded directly in assistant content."""

    type: Literal["tool_result"] = "tool_result"
    call_id: str
    content: str = ""
    is_error: bool | None = None


ContentUnit = Annotated[
    TextUnit | ThinkingUnit | ToolCallUnit | ToolOutcomeUnit,
    Field(discriminator="type"),
]


# --- Event payloads ---


class ToolResult(BaseModel):
    """One tool result carried by a user event."""

    tool_use_id: str
    content: str = ""
    is_error: bool | None = None


class UserText(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResults(BaseModel):
    type: Literal["tool_results"] = "tool_results"
    results: list[ToolResult] = []


UserContent = Annotated[UserText | ToolResults, Field(discriminator="type")]


class Usage(BaseModel):
    """Token usage counters reported with an assistant message."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None


class AssistantContent(BaseModel):
    model: str | None = None
    stop_reason: str | None = None
    usage: Usage | None = None
    units: list[ContentUnit] = []


class SystemInfo(BaseModel):
    subtype: str | None = None
    duration_ms: int | None = None


class TranscriptEvent(BaseModel):
    """One record in a session's event sequence. Array order is the ordering key."""

    id: str
    parent_id: str | None = None
    timestamp: str | None = None
    kind: str
    is_sidechain: bool | None = None
    user_content: UserContent | None = None
    assistant_content: AssistantContent | None = None
    system_info: SystemInfo | None = None


# --- Tool results and tasks ---


class ToolOutcome(BaseModel):
    """Indexed result of a tool call."""

    content: str
    is_error: bool | None = None


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELETED = "deleted"


class Task(BaseModel):
    """A tracked task. Mutated in place by the tracker, copied into snapshots."""

    subject: str
    status: TaskStatus = TaskStatus.PENDING


# --- Display items ---


class StandaloneTag(str, Enum):
    """Recognized tools that get their own display item."""

    ASK_QUESTION = "ask-question"
    EXIT_PLAN = "exit-plan"
    BASH = "bash"


class DisplayItem(BaseModel):
    """Base for everything the grouper emits. Frozen once created."""

    model_config = ConfigDict(frozen=True)

    def member_events(self) -> list[TranscriptEvent]:
        """Transcript events this item was built from, in stream order."""
        event = getattr(self, "event", None)
        if event is not None:
            return [event]
        return list(getattr(self, "events", []))


class UserItem(DisplayItem):
    kind: Literal["user"] = "user"
    event: TranscriptEvent


class AssistantItem(DisplayItem):
    kind: Literal["assistant"] = "assistant"
    event: TranscriptEvent


class StandaloneToolCall(DisplayItem):
    kind: Literal["tool_call"] = "tool_call"
    tag: StandaloneTag
    call: ToolCallUnit
    event: TranscriptEvent


class AgentCall(DisplayItem):
    kind: Literal["agent"] = "agent"
    call: ToolCallUnit
    event: TranscriptEvent


class InternalActivityRun(DisplayItem):
    """Contiguous non-user-facing assistant activity collapsed into one unit."""

    kind: Literal["internal"] = "internal"
    key: str
    steps: list[str]
    tokens: int
    events: list[TranscriptEvent]


class TaskListSnapshot(DisplayItem):
    """Copy of the task map taken when a run of task calls closed."""

    kind: Literal["task_list"] = "task_list"
    key: str
    tasks: dict[str, Task]
    events: list[TranscriptEvent]


class TurnMarker(DisplayItem):
    kind: Literal["turn_marker"] = "turn_marker"
    duration_ms: int | None = None
    event: TranscriptEvent


class Passthrough(DisplayItem):
    """An event with no display of its own and no open run to join."""

    kind: Literal["passthrough"] = "passthrough"
    event: TranscriptEvent


AnyDisplayItem = Annotated[
    UserItem
    | AssistantItem
    | StandaloneToolCall
    | AgentCall
    | InternalActivityRun
    | TaskListSnapshot
    | TurnMarker
    | Passthrough,
    Field(discriminator="kind"),
]


# --- Raw log pages and sessions ---


class LogLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    line_number: int = Field(alias="lineNumber")
    content: str


class LogPage(BaseModel):
    """One page of raw log lines plus the file's total line count."""

    model_config = ConfigDict(populate_by_name=True)

    lines: list[LogLine] = []
    total_lines: int = Field(alias="totalLines")


class SessionInfo(BaseModel):
    """Metadata about a discovered session, without loading its events."""

    id: str
    project: str
    slug: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    message_count: int = 0
    first_message: str | None = None
    project_path: str | None = None
    file_path: str | None = None
    is_sidechain: bool = False
    parent_session_id: str | None = None
    agent_id: str | None = None
