"""Session discovery under the Claude projects directory."""

import re
import sys
from pathlib import Path

from .models import SessionInfo

DEFAULT_PROJECTS_DIR = Path.home() / ".claude" / "projects"

USER_CONTENT_PATTERN = re.compile(r'"content":"((?:[^"\\]|\\.)+)"')


def extract_json_string(line: str, key: str) -> str | None:
    """Extract a string value for a key from a JSON line without full parsing."""
    match = re.search(rf'"{re.escape(key)}":"([^"]*)"', line)
    if match:
        return match.group(1)
    return None


def extract_user_content_string(line: str) -> str | None:
    """Extract the plain-string content of a user message line."""
    match = USER_CONTENT_PATTERN.search(line)
    if not match:
        return None
    raw = match.group(1)
    return (
        raw.replace("\\n", " ")
        .replace("\\t", " ")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def scan_session_metadata(path: Path) -> dict:
    """Quick scan of a session file for slug, timestamps, line count and first prompt."""
    meta: dict = {
        "slug": None,
        "created_at": None,
        "updated_at": None,
        "message_count": 0,
        "first_message": None,
        "project_path": None,
    }
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            if not line.strip():
                continue
            meta["message_count"] += 1

            if meta["slug"] is None:
                meta["slug"] = extract_json_string(line, "slug")
            timestamp = extract_json_string(line, "timestamp")
            if timestamp:
                if meta["created_at"] is None:
                    meta["created_at"] = timestamp
                meta["updated_at"] = timestamp
            if meta["project_path"] is None:
                meta["project_path"] = extract_json_string(line, "cwd")
            if (
                meta["first_message"] is None
                and '"type":"user"' in line
                and '"toolUseResult"' not in line
            ):
                meta["first_message"] = extract_user_content_string(line)
    return meta


def _session_info(path: Path, project: str, **linkage) -> SessionInfo | None:
    try:
        meta = scan_session_metadata(path)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Warning: failed to scan {path}: {e}", file=sys.stderr)
        return None
    return SessionInfo(id=path.stem, project=project, file_path=str(path), **meta, **linkage)


def discover_sessions(base_path: Path) -> list[SessionInfo]:
    """Discover all session JSONL files, most recently updated first.

    Layout:
      <base>/<project>/<session-id>.jsonl
      <base>/<project>/<session-id>/subagents/agent-<agent-id>.jsonl
    """
    sessions: list[SessionInfo] = []
    if not base_path.is_dir():
        return sessions

    for project_dir in sorted(base_path.iterdir()):
        if not project_dir.is_dir():
            continue
        project = project_dir.name

        for f in sorted(project_dir.glob("*.jsonl")):
            info = _session_info(f, project)
            if info:
                sessions.append(info)

        for f in sorted(project_dir.glob("*/subagents/*.jsonl")):
            info = _session_info(
                f,
                project,
                is_sidechain=True,
                parent_session_id=f.parent.parent.name,
                agent_id=f.stem.replace("agent-", ""),
            )
            if info:
                sessions.append(info)

    sessions.sort(key=lambda s: s.updated_at or "", reverse=True)
    return sessions


def find_session(base_path: Path, session_id: str) -> SessionInfo | None:
    """Look up one session by id."""
    for info in discover_sessions(base_path):
        if info.id == session_id:
            return info
    return None
