"""CLI entry point for cc-lens."""

import asyncio
import logging
from pathlib import Path

import typer

from .discovery import DEFAULT_PROJECTS_DIR

APP_HELP = """
Inspect Claude Code session transcripts.

\b
Session files are stored at:
  ~/.claude/projects/<project-hash>/<session-id>.jsonl

\b
Set CC_LENS_PROJECTS_DIR to read sessions from somewhere else.
"""

PLAN_HELP = """
Group a session's events into a display plan.

Conversation text, standalone tool calls (Bash, AskUserQuestion,
ExitPlanMode), agent calls and turn markers each get their own item. Runs of
thinking and other tool calls collapse into one internal item, and
TaskCreate/TaskUpdate runs become task list snapshots.

\b
Examples:
  # Outline of a session by id
  cc-lens plan 0f3c2a1e-...

  # Same, from a file, as JSON
  cc-lens plan session.jsonl --json | jq '.items[] | select(.kind == "internal") | .steps'
"""

LOG_HELP = """
Show a window of a session's raw JSONL log.

Lines are fetched a page at a time, only for the visible window plus a
small buffer. With --uuid the window is centered on the line recording that
event, which is also shown expanded.

\b
Examples:
  cc-lens log 0f3c2a1e-... --start 400 --count 40
  cc-lens log 0f3c2a1e-... --uuid 5d1e...
  cc-lens log 0f3c2a1e-... --download session.jsonl
"""


def projects_dir_option():
    return typer.Option(
        DEFAULT_PROJECTS_DIR,
        "--projects-dir",
        envvar="CC_LENS_PROJECTS_DIR",
        help="Directory holding per-project session folders",
    )


app = typer.Typer(add_completion=False, help=APP_HELP)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log loader activity to stderr"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def sessions(
    project: str | None = typer.Option(None, "--project", help="Only projects containing this"),
    projects_dir: Path = projects_dir_option(),
) -> None:
    """List discovered sessions, most recent first."""
    from .parser import truncate
    from .source import LocalSessionSource, Query

    found = asyncio.run(
        LocalSessionSource(projects_dir).send(Query.SESSIONS, {"project": project})
    )
    for info in found:
        marker = "agent" if info["is_sidechain"] else "     "
        first = truncate(" ".join((info["first_message"] or "").split()), 60)
        typer.echo(f"{info['id']}  {marker}  {info['message_count']:>6}  {first}")


def _resolve_session(target: str, projects_dir: Path) -> Path | None:
    from .discovery import find_session

    path = Path(target)
    if path.suffix == ".jsonl" and path.exists():
        return path
    info = find_session(projects_dir, target)
    if info is None or info.file_path is None:
        return None
    return Path(info.file_path)


@app.command(help=PLAN_HELP)
def plan(
    session: str = typer.Argument(..., help="Session id or path to a JSONL transcript"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON instead of an outline"),
    compact: bool = typer.Option(False, "--compact", help="No indentation (with --json)"),
    output: Path | None = typer.Option(None, "-o", "--output", help="Output file path"),
    projects_dir: Path = projects_dir_option(),
) -> None:
    from .grouper import group
    from .parser import parse_session
    from .renderer import render_json, render_outline
    from .results import build_agent_map, build_tool_result_index

    path = _resolve_session(session, projects_dir)
    if path is None:
        typer.echo(f"Error: Session not found: {session}", err=True)
        raise typer.Exit(1)

    events = parse_session(path)
    results = build_tool_result_index(events)
    items = group(events, results)
    agent_map = build_agent_map(events, results)

    if as_json:
        text = render_json(items, path.stem, agent_map, compact=compact)
    else:
        text = render_outline(items, agent_map)

    if output is None:
        typer.echo(text)
    else:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Written to {output}", err=True)


class TerminalWindow:
    """Fixed-height window over the log; stands in for a virtual scroller."""

    def __init__(self, start: int, count: int) -> None:
        self.start = max(0, start)
        self.count = count

    @property
    def end(self) -> int:
        return self.start + self.count

    def scroll_to_index(self, index: int, align: str = "center") -> None:
        if align == "center":
            self.start = max(0, index - self.count // 2)
        else:
            self.start = max(0, index)


async def _load_window(loader, window: TerminalWindow, uuid: str | None) -> int | None:
    total = await loader.load_initial()
    if total is None:
        return None
    if uuid:
        await loader.locate_and_select(uuid)
        if loader.scroll_to_highlight(window):
            # Deferred scroll runs on the next loop tick
            await asyncio.sleep(0)
    window.start = min(window.start, max(0, total - window.count))
    await loader.reconcile_visible_range(window.start, min(window.end, total))
    return total


@app.command(help=LOG_HELP)
def log(
    session_id: str = typer.Argument(..., help="Session id"),
    start: int = typer.Option(0, "--start", help="First line to show (0-based)"),
    count: int = typer.Option(40, "--count", help="Number of lines to show"),
    uuid: str | None = typer.Option(None, "--uuid", help="Center on the line with this uuid"),
    download: Path | None = typer.Option(None, "--download", help="Save the whole log here"),
    projects_dir: Path = projects_dir_option(),
) -> None:
    from .loader import WindowedLogLoader, display_number, summarize_line
    from .parser import truncate
    from .source import LocalSessionSource, TransportError

    loader = WindowedLogLoader(LocalSessionSource(projects_dir), session_id)

    if download is not None:
        try:
            content = asyncio.run(loader.download())
        except TransportError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e
        if content is None:
            typer.echo(f"Error: Session not found: {session_id}", err=True)
            raise typer.Exit(1)
        download.write_text(content, encoding="utf-8")
        typer.echo(f"Written to {download}", err=True)
        return

    window = TerminalWindow(start, count)
    try:
        total = asyncio.run(_load_window(loader, window, uuid))
    except TransportError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    if total is None:
        typer.echo(f"Error: Session not found: {session_id}", err=True)
        raise typer.Exit(1)
    if total == 0:
        typer.echo("Empty log file.")
        return

    typer.echo(f"{total} lines", err=True)
    for n in range(window.start, min(window.end, total)):
        raw = loader.line(n)
        if raw is None:
            typer.echo(f"{display_number(n):>6}  Loading...")
            continue
        summary = summarize_line(raw)
        mark = ">" if n == loader.highlight_line else " "
        typer.echo(
            f"{display_number(n):>6}{mark} {summary.type or '?':<10} "
            f"{summary.uuid[:8]:<8}  {truncate(raw, 120)}"
        )
        if n in loader.expanded:
            typer.echo(raw)


if __name__ == "__main__":
    app()
