"""Tests for the command line interface."""

import json
from pathlib import Path

from typer.testing import CliRunner

from cc_lens.cli import TerminalWindow, app

runner = CliRunner()


class TestSessions:
    """Tests for the sessions command."""

    def test_lists_sessions(self, projects_dir: Path) -> None:
        """Every session is listed with its line count."""
        result = runner.invoke(app, ["sessions", "--projects-dir", str(projects_dir)])
        assert result.exit_code == 0
        assert "simple" in result.output
        assert "agent-abc123def  agent" in result.output
        assert "Add a test for the parser" in result.output

    def test_env_var(self, projects_dir: Path) -> None:
        """The projects directory can come from the environment."""
        result = runner.invoke(
            app, ["sessions", "--project", "demo"], env={"CC_LENS_PROJECTS_DIR": str(projects_dir)}
        )
        assert result.exit_code == 0
        assert "with_tasks" in result.output


class TestPlan:
    """Tests for the plan command."""

    def test_outline_by_id(self, projects_dir: Path) -> None:
        """Session ids resolve through discovery."""
        result = runner.invoke(app, ["plan", "simple", "--projects-dir", str(projects_dir)])
        assert result.exit_code == 0
        assert "[internal] Thinking · Read (120 tokens)" in result.output

    def test_json_from_path(self, simple_session: Path) -> None:
        """A JSONL path can be given directly."""
        result = runner.invoke(app, ["plan", str(simple_session), "--json", "--compact"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["metadata"]["session_id"] == "simple"
        assert data["metadata"]["total_events"] == 7

    def test_output_file(self, simple_session: Path, tmp_path: Path) -> None:
        """Output can be written to a file."""
        target = tmp_path / "plan.json"
        result = runner.invoke(app, ["plan", str(simple_session), "--json", "-o", str(target)])
        assert result.exit_code == 0
        assert json.loads(target.read_text())["metadata"]["total_items"] == 6

    def test_unknown_session(self, projects_dir: Path) -> None:
        """Unknown sessions exit with an error."""
        result = runner.invoke(app, ["plan", "nope", "--projects-dir", str(projects_dir)])
        assert result.exit_code == 1
        assert "Session not found: nope" in result.output


class TestLog:
    """Tests for the log command."""

    def test_window(self, projects_dir: Path) -> None:
        """Rows show 1-based numbers, type and uuid."""
        result = runner.invoke(
            app, ["log", "simple", "--count", "3", "--projects-dir", str(projects_dir)]
        )
        assert result.exit_code == 0
        assert "     2  user       u1" in result.output
        assert "Loading..." not in result.output

    def test_centered_on_uuid(self, projects_dir: Path) -> None:
        """--uuid centers the window on the event's line and expands it."""
        result = runner.invoke(
            app,
            ["log", "simple", "--count", "3", "--uuid", "a3", "--projects-dir", str(projects_dir)],
        )
        assert result.exit_code == 0
        assert "     7> assistant  a3" in result.output
        assert "     6  user       u3" in result.output
        assert "Added the test and it passes." in result.output

    def test_download(self, projects_dir: Path, simple_session: Path, tmp_path: Path) -> None:
        """--download saves the whole log."""
        target = tmp_path / "copy.jsonl"
        result = runner.invoke(
            app,
            ["log", "simple", "--download", str(target), "--projects-dir", str(projects_dir)],
        )
        assert result.exit_code == 0
        assert target.read_text() == simple_session.read_text()

    def test_unknown_session(self, projects_dir: Path) -> None:
        """Unknown sessions exit with an error."""
        result = runner.invoke(app, ["log", "nope", "--projects-dir", str(projects_dir)])
        assert result.exit_code == 1
        assert "Session not found: nope" in result.output

    def test_undecodable_neighbour(self, projects_dir: Path) -> None:
        """A session file with invalid bytes does not break other sessions."""
        (projects_dir / "-work-demo" / "broken.jsonl").write_bytes(b'{"type":"user"}\xff\xfe\n')
        result = runner.invoke(
            app, ["log", "simple", "--count", "3", "--projects-dir", str(projects_dir)]
        )
        assert result.exit_code == 0
        assert "     2  user       u1" in result.output

    def test_empty_log(self, projects_dir: Path) -> None:
        """Empty logs say so."""
        (projects_dir / "-work-demo" / "blank.jsonl").write_text("")
        result = runner.invoke(app, ["log", "blank", "--projects-dir", str(projects_dir)])
        assert result.exit_code == 0
        assert "Empty log file." in result.output


class TestTerminalWindow:
    """Tests for the terminal scroll stand-in."""

    def test_center(self) -> None:
        """Centering puts the index in the middle of the window."""
        window = TerminalWindow(0, 10)
        window.scroll_to_index(50)
        assert (window.start, window.end) == (45, 55)

    def test_center_near_top(self) -> None:
        """The window never starts before line 0."""
        window = TerminalWindow(0, 10)
        window.scroll_to_index(2)
        assert window.start == 0
