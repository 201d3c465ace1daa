"""Shared fixtures: isolated project directories and stores with recording commit hooks."""

import sys
from pathlib import Path

import pytest

# Project root on sys.path so tests can import the rivet package and server/ script
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from rivet import codec  # noqa: E402
from rivet.store import Store  # noqa: E402


class RecordingHook:
    """Commit hook that remembers every (path, message) it was called with."""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def __call__(self, path, message):
        self.calls.append((path, message))
        if self.fail:
            raise RuntimeError("not a git repository")

    @property
    def messages(self):
        return [message for _, message in self.calls]


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Temporary project with a fresh .rivet/systems.yaml."""
    codec.create("Demo", "test", str(tmp_path))
    return tmp_path


@pytest.fixture
def doc_path(project_dir: Path) -> Path:
    return project_dir / ".rivet" / "systems.yaml"


@pytest.fixture
def commits() -> RecordingHook:
    return RecordingHook()


@pytest.fixture
def store(doc_path: Path, commits: RecordingHook) -> Store:
    return Store(str(doc_path), commit_hook=commits)


@pytest.fixture
def cli_env(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at project_dir with commits disabled."""
    monkeypatch.setenv("CLAUDE_PROJECT_DIR", str(project_dir))
    monkeypatch.setenv("RIVET_NO_COMMIT", "1")
    return project_dir
