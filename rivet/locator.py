"""Find .rivet/systems.yaml by walking up from a start directory."""

import os

from rivet.errors import NotFoundError

RIVET_DIR = ".rivet"
RIVET_FILENAME = "systems.yaml"


def default_start_dir():
    """CLAUDE_PROJECT_DIR when set to a real path, else the working directory."""
    raw = os.environ.get("CLAUDE_PROJECT_DIR", "")
    if raw and not raw.startswith("$"):
        return raw
    return os.getcwd()


def document_path(base_dir):
    return os.path.join(base_dir, RIVET_DIR, RIVET_FILENAME)


def locate(start_dir=None):
    """Return the path of the nearest .rivet/systems.yaml.

    Searches start_dir and each ancestor in turn. Raises NotFoundError
    carrying the original start_dir once the filesystem root is passed.
    """
    if start_dir is None:
        start_dir = default_start_dir()
    current = os.path.abspath(start_dir)

    while True:
        candidate = document_path(current)
        if os.path.isfile(candidate):
            return candidate

        parent = os.path.dirname(current)
        if parent == current:
            raise NotFoundError(start_dir)
        current = parent


def exists(start_dir=None):
    try:
        locate(start_dir)
    except NotFoundError:
        return False
    return True
