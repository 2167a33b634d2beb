"""cc-lens: Group Claude Code transcripts into display plans and page through raw logs."""

from .discovery import discover_sessions, find_session
from .grouper import compact_steps, group
from .loader import WindowedLogLoader
from .models import (
    AgentCall,
    AssistantItem,
    DisplayItem,
    InternalActivityRun,
    Passthrough,
    StandaloneToolCall,
    Task,
    TaskListSnapshot,
    TaskStatus,
    TranscriptEvent,
    TurnMarker,
    UserItem,
)
from .parser import parse_session
from .results import build_agent_map, build_tool_result_index
from .source import LocalSessionSource, SessionSource, TransportError

__all__ = [
    "AgentCall",
    "AssistantItem",
    "DisplayItem",
    "InternalActivityRun",
    "LocalSessionSource",
    "Passthrough",
    "SessionSource",
    "StandaloneToolCall",
    "Task",
    "TaskListSnapshot",
    "TaskStatus",
    "TranscriptEvent",
    "TransportError",
    "TurnMarker",
    "UserItem",
    "WindowedLogLoader",
    "build_agent_map",
    "build_tool_result_index",
    "compact_steps",
    "discover_sessions",
    "find_session",
    "group",
    "parse_session",
]
