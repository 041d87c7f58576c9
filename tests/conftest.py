"""Shared pytest fixtures for the Textor test suite.

Provides reusable fixtures for:
- Temporary project directories with a saved Textor configuration
- A StateStore bound to that project
- A temporary git repository
- Small helpers for writing files relative to the project root
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable

import pytest

from textor.config import Config
from textor.core.state import StateStore


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary directory acting as a project root (auto-cleanup)."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


@pytest.fixture
def config(tmp_project_dir: Path) -> Config:
    """Default configuration saved to ``.textor/config.json`` in the project.

    Managed roots are created empty so scans do not report them missing.
    """
    cfg = Config(project_root=tmp_project_dir)
    cfg.save()
    for key in ("pages", "features", "components", "layouts"):
        cfg.resolve_path(key).mkdir(parents=True, exist_ok=True)
    return cfg


@pytest.fixture
def store(config: Config) -> StateStore:
    return StateStore(config.project_root)


@pytest.fixture
def write_file(tmp_project_dir: Path) -> Callable[[str, str], Path]:
    """Write *content* to a project-relative path, creating parents."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_project_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def tmp_git_repo(tmp_project_dir: Path) -> Path:
    """The project directory turned into a git repository with one commit."""
    repo_dir = tmp_project_dir
    subprocess.run(["git", "init"], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@textor.local"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Textor Test"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    readme = repo_dir / "README.md"
    readme.write_text("# Test Project\n", encoding="utf-8")
    subprocess.run(["git", "add", "."], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    yield repo_dir
