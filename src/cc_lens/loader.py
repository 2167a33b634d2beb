"""Windowed loader for raw session logs.

Keeps a sparse line cache for one session's log and fills it page by page
as a virtual-scrolling view reports what is visible. Line numbers are
0-based here and shown 1-based.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Iterable
from typing import Literal, Protocol

from pydantic import BaseModel, ValidationError

from .models import LogLine, LogPage
from .source import Query, SessionSource, TransportError

PAGE_SIZE = 200
SCROLL_BUFFER = 50

logger = logging.getLogger("cc_lens.loader")


def uuid_needle(target_id: str) -> str:
    """Match the event's own `uuid` field, not parentUuid or messageId."""
    return f'"uuid":"{target_id}"'


class LineSummary(BaseModel):
    type: str = ""
    uuid: str = ""
    timestamp: str = ""


_SUMMARY_PATTERNS = {
    field: re.compile(rf'"{field}"\s*:\s*"([^"]*)"') for field in ("type", "uuid", "timestamp")
}


def summarize_line(raw: str) -> LineSummary:
    """Pull type, uuid and timestamp out of a raw line without parsing it."""
    found = {}
    for field, pattern in _SUMMARY_PATTERNS.items():
        match = pattern.search(raw)
        if match:
            found[field] = match.group(1)
    return LineSummary(**found)


def display_number(line_number: int) -> int:
    return line_number + 1


class LineCache:
    """Line number -> raw text. Entries are only ever added."""

    def __init__(self) -> None:
        self._lines: dict[int, str] = {}

    def __contains__(self, line_number: int) -> bool:
        return line_number in self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, line_number: int) -> str | None:
        return self._lines.get(line_number)

    def set(self, line_number: int, content: str) -> None:
        self._lines[line_number] = content

    def merge(self, lines: Iterable[LogLine]) -> None:
        for line in lines:
            self._lines[line.line_number] = line.content

    def line_numbers(self) -> list[int]:
        return sorted(self._lines)

    def missing_runs(self, start: int, end: int) -> list[tuple[int, int]]:
        """Maximal runs `[s, e)` of uncached lines within `[start, end)`."""
        runs = []
        gap_start = None
        for n in range(start, end):
            if n not in self._lines:
                if gap_start is None:
                    gap_start = n
            elif gap_start is not None:
                runs.append((gap_start, n))
                gap_start = None
        if gap_start is not None:
            runs.append((gap_start, end))
        return runs


class FetchDeduper:
    """In-flight `"start-end"` range keys."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    @staticmethod
    def key(start: int, end: int) -> str:
        return f"{start}-{end}"

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def claim(self, start: int, end: int) -> bool:
        """Mark a range in flight. False when it already was."""
        key = self.key(start, end)
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def release(self, start: int, end: int) -> None:
        self._keys.discard(self.key(start, end))


def page_ranges(start: int, end: int, page_size: int, total_lines: int) -> list[tuple[int, int]]:
    """Page-aligned ranges covering `[start, end)`, clipped to the file."""
    ranges = []
    page_start = (start // page_size) * page_size
    while page_start < end:
        ranges.append((page_start, min(page_start + page_size, total_lines)))
        page_start += page_size
    return ranges


class FetchOutcome(BaseModel):
    start: int
    end: int
    status: Literal["ok", "skipped", "failed", "stale"]
    error: str | None = None


class ScrollCoordinator(Protocol):
    def scroll_to_index(self, index: int, align: str = "center") -> None: ...


class LogViewState:
    """Everything tied to one session load. Replaced, never reset in place."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.cache = LineCache()
        self.total_lines = 0
        self.expanded: set[int] = set()
        self.highlight_line: int | None = None
        self.located = False
        self.scroll_done = False
        self.in_flight = FetchDeduper()
        self.failures: dict[str, str] = {}


class WindowedLogLoader:
    """Gap-aware page loader for one session's raw log at a time.

    Responses that arrive after `open_session` switched to another session
    are dropped.
    """

    def __init__(
        self,
        source: SessionSource,
        session_id: str,
        page_size: int = PAGE_SIZE,
        buffer: int = SCROLL_BUFFER,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.source = source
        self.page_size = page_size
        self.buffer = buffer
        self.state = LogViewState(session_id)

    def open_session(self, session_id: str) -> LogViewState:
        self.state = LogViewState(session_id)
        return self.state

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def total_lines(self) -> int:
        return self.state.total_lines

    @property
    def highlight_line(self) -> int | None:
        return self.state.highlight_line

    @property
    def expanded(self) -> set[int]:
        return self.state.expanded

    def line(self, line_number: int) -> str | None:
        """Cached content, or None while the line is still a placeholder."""
        return self.state.cache.get(line_number)

    def toggle_line(self, line_number: int) -> bool:
        """Flip a line's expanded state; returns the new state."""
        expanded = self.state.expanded
        if line_number in expanded:
            expanded.discard(line_number)
            return False
        expanded.add(line_number)
        return True

    async def _fetch_page(self, session_id: str, offset: int, limit: int) -> LogPage | None:
        data = await self.source.send(
            Query.SESSION_LOG_LINES,
            {"id": session_id, "offset": offset, "limit": limit},
        )
        if data is None:
            return None
        try:
            return LogPage.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Malformed log page: {e.error_count()} error(s)") from e

    async def load_initial(self) -> int | None:
        """Fetch the first page. Returns the total line count, None if unknown session."""
        state = self.state
        page = await self._fetch_page(state.session_id, 0, self.page_size)
        if page is None or state is not self.state:
            return None
        state.total_lines = page.total_lines
        state.cache.merge(page.lines)
        logger.debug(
            "Loaded %d of %d lines for %s", len(page.lines), page.total_lines, state.session_id
        )
        return state.total_lines

    def _select(self, state: LogViewState, line_number: int) -> None:
        state.highlight_line = line_number
        state.expanded = {line_number}

    async def locate_and_select(
        self,
        target_id: str,
        needle_builder: Callable[[str], str] = uuid_needle,
    ) -> int | None:
        """Find the first line containing the needle for `target_id` and highlight it.

        Cached lines are scanned first. Failing that, the rest of the file
        past the first page is fetched in one request. Runs once per load,
        after `load_initial`; a miss or a failed fetch leaves the highlight
        unset.
        """
        state = self.state
        if state.located:
            return state.highlight_line
        if state.total_lines == 0:
            # Nothing loaded yet, keep the attempt for later
            return None
        state.located = True
        needle = needle_builder(target_id)

        for n in state.cache.line_numbers():
            if needle in state.cache.get(n):
                self._select(state, n)
                return n

        if state.total_lines <= self.page_size:
            return None

        try:
            page = await self._fetch_page(
                state.session_id, self.page_size, state.total_lines - self.page_size
            )
        except TransportError as e:
            logger.warning("Locating %s in %s failed: %s", target_id, state.session_id, e)
            return None
        if page is None or state is not self.state:
            return None

        for line in sorted(page.lines, key=lambda line: line.line_number):
            state.cache.set(line.line_number, line.content)
            if state.highlight_line is None and needle in line.content:
                self._select(state, line.line_number)
        return state.highlight_line

    async def fetch_range(self, start: int, end: int) -> FetchOutcome:
        """Fetch `[start, end)` into the cache unless the same range is in flight."""
        state = self.state
        if not state.in_flight.claim(start, end):
            return FetchOutcome(start=start, end=end, status="skipped")

        key = FetchDeduper.key(start, end)
        try:
            page = await self._fetch_page(state.session_id, start, end - start)
        except TransportError as e:
            logger.warning("Fetching lines %s of %s failed: %s", key, state.session_id, e)
            state.failures[key] = str(e)
            return FetchOutcome(start=start, end=end, status="failed", error=str(e))
        finally:
            state.in_flight.release(start, end)

        if state is not self.state:
            return FetchOutcome(start=start, end=end, status="stale")
        if page is not None:
            state.cache.merge(page.lines)
        state.failures.pop(key, None)
        return FetchOutcome(start=start, end=end, status="ok")

    def gaps(self, visible_start: int, visible_end: int) -> list[tuple[int, int]]:
        """Page-aligned ranges needed to fill the buffered visible window."""
        state = self.state
        lo = max(0, visible_start - self.buffer)
        hi = min(state.total_lines, visible_end + self.buffer)
        ranges: list[tuple[int, int]] = []
        for gap_start, gap_end in state.cache.missing_runs(lo, hi):
            for page in page_ranges(gap_start, gap_end, self.page_size, state.total_lines):
                if page not in ranges:
                    ranges.append(page)
        return ranges

    async def reconcile_visible_range(
        self, visible_start: int, visible_end: int
    ) -> list[FetchOutcome]:
        """React to a new visible range `[visible_start, visible_end)`."""
        ranges = self.gaps(visible_start, visible_end)
        if not ranges:
            return []
        return list(await asyncio.gather(*(self.fetch_range(s, e) for s, e in ranges)))

    def scroll_to_highlight(self, coordinator: ScrollCoordinator) -> asyncio.Handle | None:
        """Center the highlighted line once per load, on the next loop tick.

        The coordinator needs a layout pass with a known item count before it
        can compute an offset, so the call is never made synchronously.
        """
        state = self.state
        if state.highlight_line is None or state.scroll_done or state.total_lines <= 0:
            return None
        state.scroll_done = True
        loop = asyncio.get_running_loop()
        return loop.call_soon(coordinator.scroll_to_index, state.highlight_line, "center")

    async def download(self) -> str | None:
        """Whole raw log, fetched separately from the windowed cache."""
        return await self.source.send(Query.SESSION_RAW_LOG, {"id": self.state.session_id})
