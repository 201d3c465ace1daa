"""Tests for store wiring, configuration and the git commit hook."""

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from rivet import engine
from rivet.config import load_config
from rivet.errors import ValidationError
from rivet.store import git_commit, no_commit, open_store

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=repo, capture_output=True, text=True, check=True)
    return result.stdout


def test_config_defaults_and_file(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RIVET_NO_COMMIT", raising=False)
    assert load_config(str(project_dir)) == {"auto_commit": True, "commit_prefix": "rivet"}

    (project_dir / ".rivet" / "config.json").write_text(json.dumps({"commit_prefix": "arch"}))
    assert load_config(str(project_dir))["commit_prefix"] == "arch"

    monkeypatch.setenv("RIVET_NO_COMMIT", "1")
    assert load_config(str(project_dir))["auto_commit"] is False


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_malformed_config_raises_validation_error(project_dir: Path, content: str) -> None:
    (project_dir / ".rivet" / "config.json").write_text(content, encoding="utf-8")

    with pytest.raises(ValidationError, match="Invalid config"):
        load_config(str(project_dir))


def test_open_store_discovers_and_wires_hook(project_dir: Path, doc_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    nested = project_dir / "src"
    nested.mkdir()

    monkeypatch.delenv("RIVET_NO_COMMIT", raising=False)
    store = open_store(str(nested))
    assert Path(store.path) == doc_path
    assert store.commit_hook is git_commit

    monkeypatch.setenv("RIVET_NO_COMMIT", "true")
    assert open_store(str(nested)).commit_hook is no_commit


@requires_git
def test_git_hook_commits_only_the_document(project_dir: Path, doc_path: Path) -> None:
    _git(project_dir, "init", "-q")
    _git(project_dir, "config", "user.email", "dev@example.com")
    _git(project_dir, "config", "user.name", "Dev")
    _git(project_dir, "config", "commit.gpgsign", "false")
    (project_dir / "unrelated.txt").write_text("leave me staged\n")
    _git(project_dir, "add", "unrelated.txt")

    store = open_store(path=str(doc_path))
    store.commit_hook = git_commit
    engine.add_system(store, "Router", "handles routing")

    log = _git(project_dir, "log", "--format=%s")
    assert log.strip().splitlines() == ["rivet: system add Router"]
    committed = _git(project_dir, "show", "--name-only", "--format=", "HEAD").split()
    assert committed == [".rivet/systems.yaml"]


@requires_git
def test_git_hook_failure_outside_repository_is_swallowed(doc_path: Path) -> None:
    store = open_store(path=str(doc_path))
    store.commit_hook = git_commit

    result = engine.add_system(store, "Router", "x")

    assert result.message == "Added system Router"
    assert "Router" in store.read().systems
