"""Pytest configuration and fixtures."""

import shutil
from pathlib import Path

import pytest


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def simple_session(fixtures_dir: Path) -> Path:
    """Return path to simple.jsonl fixture."""
    return fixtures_dir / "simple.jsonl"


@pytest.fixture
def with_tasks_session(fixtures_dir: Path) -> Path:
    """Return path to with_tasks.jsonl fixture."""
    return fixtures_dir / "with_tasks.jsonl"


@pytest.fixture
def with_agent_session(fixtures_dir: Path) -> Path:
    """Return path to with_agent.jsonl fixture."""
    return fixtures_dir / "with_agent.jsonl"


@pytest.fixture
def projects_dir(tmp_path: Path, fixtures_dir: Path) -> Path:
    """A projects directory holding every fixture session plus one subagent.

    Layout:
      projects/-work-demo/{simple,with_tasks,with_agent}.jsonl
      projects/-work-demo/with_agent/subagents/agent-abc123def.jsonl
    """
    project = tmp_path / "projects" / "-work-demo"
    project.mkdir(parents=True)
    for name in ["simple", "with_tasks", "with_agent"]:
        shutil.copy(fixtures_dir / f"{name}.jsonl", project / f"{name}.jsonl")
    subagents = project / "with_agent" / "subagents"
    subagents.mkdir(parents=True)
    shutil.copy(fixtures_dir / "agent-abc123def.jsonl", subagents / "agent-abc123def.jsonl")
    return tmp_path / "projects"
