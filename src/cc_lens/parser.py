"""JSONL parser for Claude Code transcripts."""

import json
import re
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import (
    AssistantContent,
    EventKind,
    LogLine,
    LogPage,
    SystemInfo,
    TextUnit,
    ThinkingUnit,
    ToolCallUnit,
    ToolOutcomeUnit,
    ToolResult,
    ToolResults,
    TranscriptEvent,
    Usage,
    UserText,
)

SKIPPED_RECORD_TYPES = ["file-history-snapshot", "progress"]

AGENT_ID_PATTERN = re.compile(r"agentId:\s*([a-f0-9]+)")


def load_records(path: Path) -> list[dict]:
    """Load JSONL, skip file-history-snapshot and progress records."""
    records = []
    with open(path, encoding="utf-8", errors="replace") as f:
        for line_num, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                rec = json.loads(line)
            except json.JSONDecodeError as e:
                print(f"Warning: Skipping malformed JSON at line {line_num}: {e}", file=sys.stderr)
                continue
            if isinstance(rec, dict) and rec.get("type") not in SKIPPED_RECORD_TYPES:
                records.append(rec)
    return records


def get_content_blocks(message: dict) -> list[dict]:
    """Extract content blocks from message."""
    content = message.get("content")
    if content is None:
        return []
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return [b for b in content if isinstance(b, dict)]


def truncate(text: str, max_len: int = 300) -> str:
    """Truncate text with ellipsis."""
    text = str(text)
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def value_to_string(content: Any) -> str:
    """Flatten tool result content to text.

    Lists of content parts are joined on their `text` fields; anything else
    that is not already a string is dumped as JSON.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [c.get("text", "") for c in content if isinstance(c, dict)]
        return "\n".join(texts)
    if content is None:
        return ""
    return json.dumps(content)


def extract_agent_id(text: str) -> str | None:
    """Extract agentId from a Task/Agent tool result."""
    match = AGENT_ID_PATTERN.search(text)
    if match:
        return match.group(1)
    return None


def parse_user_content(rec: dict) -> UserText | ToolResults | None:
    """Plain text for user prompts, tool results for tool_result carriers."""
    message = rec.get("message") or {}
    content = message.get("content")
    if isinstance(content, str):
        return UserText(text=content)

    blocks = get_content_blocks(message)
    if not blocks:
        return None

    if rec.get("toolUseResult") is not None or blocks[0].get("type") == "tool_result":
        results = [
            ToolResult(
                tool_use_id=str(b.get("tool_use_id", "")),
                content=value_to_string(b.get("content", "")),
                is_error=b.get("is_error"),
            )
            for b in blocks
            if b.get("type") == "tool_result"
        ]
        return ToolResults(results=results)

    # Take first text block as main message
    for block in blocks:
        if block.get("type") == "text":
            return UserText(text=block.get("text", ""))
    return None


def parse_assistant_content(message: dict) -> AssistantContent:
    """Convert an assistant message into ordered content units."""
    units: list = []
    for block in get_content_blocks(message):
        block_type = block.get("type")
        if block_type == "text":
            units.append(TextUnit(text=block.get("text", "")))
        elif block_type == "thinking":
            units.append(ThinkingUnit(text=block.get("thinking", "")))
        elif block_type == "tool_use":
            units.append(
                ToolCallUnit(
                    id=str(block.get("id", "")),
                    name=block.get("name", "?"),
                    input=block.get("input"),
                )
            )
        elif block_type == "tool_result":
            units.append(
                ToolOutcomeUnit(
                    call_id=str(block.get("tool_use_id", "")),
                    content=value_to_string(block.get("content", "")),
                    is_error=block.get("is_error"),
                )
            )

    usage = message.get("usage")
    return AssistantContent(
        model=message.get("model"),
        stop_reason=message.get("stop_reason"),
        usage=Usage.model_validate(usage) if isinstance(usage, dict) else None,
        units=units,
    )


def record_to_event(rec: dict) -> TranscriptEvent | None:
    """Convert one JSONL record into a TranscriptEvent.

    Records without a uuid cannot be addressed and are dropped.
    """
    uuid = rec.get("uuid")
    if not uuid:
        return None

    kind = str(rec.get("type", ""))
    fields: dict[str, Any] = {
        "id": uuid,
        "parent_id": rec.get("parentUuid"),
        "timestamp": rec.get("timestamp"),
        "kind": kind,
        "is_sidechain": rec.get("isSidechain"),
    }

    if kind == EventKind.USER:
        fields["user_content"] = parse_user_content(rec)
    elif kind == EventKind.ASSISTANT:
        message = rec.get("message")
        if isinstance(message, dict):
            fields["assistant_content"] = parse_assistant_content(message)
    elif kind == EventKind.SYSTEM:
        fields["system_info"] = SystemInfo(
            subtype=rec.get("subtype"),
            duration_ms=rec.get("durationMs"),
        )

    return TranscriptEvent(**fields)


def records_to_events(records: list[dict]) -> list[TranscriptEvent]:
    """Convert records in order, skipping ones that do not fit the event model."""
    events = []
    for index, rec in enumerate(records):
        try:
            event = record_to_event(rec)
        except ValidationError as e:
            print(
                f"Warning: Skipping record {index} ({rec.get('uuid', '?')}): "
                f"{e.error_count()} validation error(s)",
                file=sys.stderr,
            )
            continue
        if event is not None:
            events.append(event)
    return events


def parse_session(jsonl_path: Path) -> list[TranscriptEvent]:
    """Main entry point: JSONL path -> ordered transcript events."""
    return records_to_events(load_records(jsonl_path))


def read_log_lines(path: Path) -> list[str]:
    """All non-empty raw lines of a log file, newline stripped."""
    with open(path, encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def load_log_lines(path: Path, offset: int, limit: int) -> LogPage:
    """Slice `[offset, offset + limit)` out of a log file, numbered from 0."""
    raw_lines = read_log_lines(path)
    offset = max(0, offset)
    limit = max(0, limit)
    window = raw_lines[offset : offset + limit]
    return LogPage(
        lines=[LogLine(line_number=offset + i, content=text) for i, text in enumerate(window)],
        total_lines=len(raw_lines),
    )
