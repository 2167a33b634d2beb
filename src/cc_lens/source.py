"""Request/response data source for session data.

The core only ever talks to a `SessionSource`: `send(query, params)` returns
a structured result, `None` for an unknown session, or raises
`TransportError`. `LocalSessionSource` answers the same queries from session
files on disk.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from .discovery import discover_sessions
from .models import SessionInfo
from .parser import load_log_lines, parse_session
from .results import build_agent_map

logger = logging.getLogger("cc_lens.source")


class TransportError(Exception):
    """A request failed; nothing partial was returned."""


class Query(str, Enum):
    SESSIONS = "sessions"
    SESSION_INFO = "sessionInfo"
    SESSION = "session"
    SESSION_AGENT_MAP = "sessionAgentMap"
    SESSION_LOG_LINES = "sessionLogLines"
    SESSION_RAW_LOG = "sessionRawLog"


class SessionSource(Protocol):
    async def send(self, query: str, params: dict[str, Any]) -> Any: ...


class LocalSessionSource:
    """Answers session queries from `<base>/<project>/*.jsonl` files."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    async def send(self, query: str, params: dict[str, Any]) -> Any:
        try:
            handler = self._handlers()[Query(query)]
        except ValueError:
            raise TransportError(f"Unknown query: {query}") from None
        try:
            return await asyncio.to_thread(handler, params)
        except (OSError, ValueError) as e:
            logger.warning("Query %s failed: %s", query, e)
            raise TransportError(str(e)) from e

    def _handlers(self) -> dict:
        return {
            Query.SESSIONS: self._sessions,
            Query.SESSION_INFO: self._session_info,
            Query.SESSION: self._session,
            Query.SESSION_AGENT_MAP: self._agent_map,
            Query.SESSION_LOG_LINES: self._log_lines,
            Query.SESSION_RAW_LOG: self._raw_log,
        }

    def _find(self, session_id: str) -> SessionInfo | None:
        for info in discover_sessions(self.base_path):
            if info.id == session_id:
                return info
        return None

    def _sessions(self, params: dict[str, Any]) -> list[dict]:
        project = params.get("project")
        return [
            info.model_dump()
            for info in discover_sessions(self.base_path)
            # Sessions with no user prompt (e.g. snapshot-only files) are hidden
            if info.first_message is not None and (not project or project in info.project)
        ]

    def _session_info(self, params: dict[str, Any]) -> dict | None:
        info = self._find(params["id"])
        return info.model_dump() if info else None

    def _session(self, params: dict[str, Any]) -> list[dict] | None:
        info = self._find(params["id"])
        if info is None:
            return None
        return [event.model_dump() for event in parse_session(Path(info.file_path))]

    def _agent_map(self, params: dict[str, Any]) -> list[dict] | None:
        info = self._find(params["id"])
        if info is None:
            return None
        events = parse_session(Path(info.file_path))
        return [
            {"toolUseId": call_id, "agentId": agent_id}
            for call_id, agent_id in build_agent_map(events).items()
        ]

    def _log_lines(self, params: dict[str, Any]) -> dict | None:
        info = self._find(params["id"])
        if info is None:
            return None
        page = load_log_lines(Path(info.file_path), int(params["offset"]), int(params["limit"]))
        return page.model_dump(by_alias=True)

    def _raw_log(self, params: dict[str, Any]) -> str | None:
        info = self._find(params["id"])
        if info is None:
            return None
        return Path(info.file_path).read_text(encoding="utf-8", errors="replace")
