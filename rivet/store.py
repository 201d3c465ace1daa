"""Explicit handle on one backing document plus its post-write commit hook."""

import logging
import os
import subprocess

from rivet import codec
from rivet.config import load_config
from rivet.locator import locate

log = logging.getLogger("rivet.store")


# ---------------------------------------------------------------------------
# Commit hooks
# ---------------------------------------------------------------------------


def no_commit(path, message):
    """Commit hook that does nothing."""


def git_commit(path, message):
    """Stage and commit only the document at path."""
    path = os.path.abspath(path)
    repo_dir = os.path.dirname(path)
    subprocess.run(
        ["git", "add", "--", path],
        cwd=repo_dir, capture_output=True, text=True, check=True, timeout=30,
    )
    subprocess.run(
        ["git", "commit", "-m", message, "--", path],
        cwd=repo_dir, capture_output=True, text=True, check=True, timeout=30,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class Store:
    """A resolved document path and the hook run after every write.

    Records are never cached: read() parses the file every time.
    """

    def __init__(self, path, commit_hook=no_commit, commit_prefix="rivet"):
        self.path = path
        self.commit_hook = commit_hook
        self.commit_prefix = commit_prefix

    def read(self):
        return codec.read(self.path)

    def write(self, record):
        return codec.write(record, self.path)

    def commit(self, summary):
        """Run the commit hook. Any failure is logged and discarded."""
        message = f"{self.commit_prefix}: {summary}"
        try:
            self.commit_hook(self.path, message)
        except Exception as e:
            log.debug("Commit skipped for %s: %s", self.path, e)

    def save(self, record, summary):
        """Write the record, then commit it with summary."""
        self.write(record)
        self.commit(summary)


def open_store(start_dir=None, path=None):
    """Resolve the document and wire the commit hook from project config."""
    if path is None:
        path = locate(start_dir)
    project_dir = os.path.dirname(os.path.dirname(os.path.abspath(path)))
    config = load_config(project_dir)
    hook = git_commit if config.get("auto_commit", True) else no_commit
    return Store(path, commit_hook=hook, commit_prefix=config.get("commit_prefix", "rivet"))
