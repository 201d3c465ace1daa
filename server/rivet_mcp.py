# /// script
# requires-python = ">=3.10"
# dependencies = ["fastmcp", "pyyaml"]
# ///
"""MCP server exposing the rivet CLI as native assistant tools.

Launched via: uv run --python 3.12 server/rivet_mcp.py
Transport: stdio (JSON-RPC over stdin/stdout)
"""

import logging
import os
import shlex
import subprocess
import sys

from fastmcp import FastMCP

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

PLUGIN_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_raw_project_dir = os.environ.get("CLAUDE_PROJECT_DIR", "")
PROJECT_DIR = _raw_project_dir if _raw_project_dir and not _raw_project_dir.startswith("$") else os.getcwd()

logging.basicConfig(level=logging.INFO, stream=sys.stderr)
log = logging.getLogger("rivet-mcp")

mcp = FastMCP("rivet")

# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------


def _run(*args: str, project_dir: str = "") -> str:
    """Run `python -m rivet` with given arguments, return stdout or error string."""
    cwd = project_dir or PROJECT_DIR
    cmd = [sys.executable, "-m", "rivet"] + list(args)
    pythonpath = os.environ.get("PYTHONPATH", "")
    env = {
        **os.environ,
        "CLAUDE_PROJECT_DIR": cwd,
        "PYTHONPATH": PLUGIN_ROOT + (os.pathsep + pythonpath if pythonpath else ""),
    }
    log.info("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=30,
            env=env,
            cwd=cwd,
        )
        output = result.stdout
        err = result.stderr.strip()
        if err:
            output = f"{output}\n{err}" if output else err
        return output.strip() if output else "(no output)"
    except subprocess.TimeoutExpired:
        return "Error: command timed out after 30s"
    except OSError as e:
        return f"Error: {e}"


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
def rivet_context(systems: str = "") -> str:
    """Markdown dump of the project record. Returns project info, terms, and systems.

    Args:
        systems: Space-separated system names to include. Empty for all.
    """
    return _run("context", *systems.split())


@mcp.tool()
def rivet_prompt(type: str = "session-start") -> str:
    """Generate an agent prompt from the project record.

    Args:
        type: session-start (context at session start), drift-check (verify before commit),
              session-harvest (capture what emerged this session), harvest or deep-harvest
              (one-time extraction from project history), init (setup when no record exists)
    """
    return _run("prompt", type)


@mcp.tool()
def rivet_system_list(status: str = "") -> str:
    """List systems with status and description.

    Args:
        status: Filter by active, deprecated, or replacing. Empty for all.
    """
    args = ["system", "list"]
    if status:
        args.extend(["--status", status])
    return _run(*args)


@mcp.tool()
def rivet_system_show(name: str) -> str:
    """Show a single system as YAML."""
    return _run("system", "show", name)


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
def rivet_system_add(name: str, description: str) -> str:
    """Add a new system (a box in the architecture diagram).

    Args:
        name: System name (e.g. Router)
        description: What it does, from the user's perspective (~100 words max)
    """
    return _run("system", "add", name, description)


@mcp.tool()
def rivet_system_edit(name: str, field: str, value: str = "") -> str:
    """Edit one field of a system.

    Args:
        name: System name
        field: description, status, +requirement, -requirement, +decision, -decision,
            +term, -term, +relationship, -relationship, +boundary, -boundary
        value: New value. For +term: 'NAME [context]'. For relationships: 'TYPE TARGET'.
    """
    if field in ("+term", "-term", "+relationship", "-relationship"):
        values = shlex.split(value)
    else:
        values = [value] if value else []
    return _run("system", "edit", name, field, *values)


@mcp.tool()
def rivet_system_link(name: str, type: str, target: str) -> str:
    """Add a relationship from one system to another (idempotent).

    Args:
        name: Source system
        type: calls, called_by, depends_on, or used_by
        target: Target system
    """
    return _run("system", "link", name, type, target)


@mcp.tool()
def rivet_system_deprecate(name: str, replaced_by: str = "") -> str:
    """Mark a system deprecated, optionally naming its replacement."""
    args = ["system", "deprecate", name]
    if replaced_by:
        args.extend(["--replaced-by", replaced_by])
    return _run(*args)


@mcp.tool()
def rivet_term_define(term: str, definition: str) -> str:
    """Define a project-wide term."""
    return _run("term", "define", term, definition)


@mcp.tool()
def rivet_term_deprecate(old: str, new: str, reason: str = "") -> str:
    """Retire a project term in favour of another; drift checks flag later uses.

    Args:
        old: Term being retired
        new: Term to use instead
        reason: Why the term was retired
    """
    args = ["term", "deprecate", old, new]
    if reason:
        args.extend(["--reason", reason])
    return _run(*args)


@mcp.tool()
def rivet_sync(args: list[str]) -> str:
    """Run several operations, one commit each. Stops at the first failure.

    Args:
        args: sync flags, e.g. ["--add", "Router", "handles routing",
            "--require", "Router", "must support nested routes"]
    """
    return _run("sync", *args)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()
