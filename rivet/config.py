"""Project configuration: environment variables and .rivet/config.json."""

import json
import logging
import os

from rivet.errors import ValidationError
from rivet.locator import RIVET_DIR

log = logging.getLogger("rivet.config")

DEFAULTS = {
    "auto_commit": True,
    "commit_prefix": "rivet",
}

_TRUTHY = {"1", "true", "yes", "on"}


def load_config(project_dir):
    """Load .rivet/config.json under project_dir merged over DEFAULTS.

    RIVET_NO_COMMIT in the environment forces auto_commit off.
    """
    config = dict(DEFAULTS)
    config_path = os.path.join(project_dir, RIVET_DIR, "config.json")
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except ValueError as e:
            raise ValidationError(f"Invalid config {config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValidationError(f"Invalid config {config_path}: expected a JSON object")
        config.update(loaded)
        log.debug("Loaded config from %s", config_path)
    if os.environ.get("RIVET_NO_COMMIT", "").strip().lower() in _TRUTHY:
        config["auto_commit"] = False
    return config


def log_level_from_env(default=logging.WARNING):
    name = os.environ.get("RIVET_LOG_LEVEL", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default
