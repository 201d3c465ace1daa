"""Read-only views used by `show` and `list` commands. Never write."""

from rivet.codec import project_to_dict, system_to_dict, to_yaml
from rivet.errors import ValidationError
from rivet.model import REPLACING_PREFIX


def _indented(text, prefix="  "):
    return "\n".join(prefix + line if line else line for line in text.rstrip("\n").split("\n"))


def show_project(record):
    return "project:\n" + _indented(to_yaml(project_to_dict(record.project)))


def show_system(record, name):
    system = record.get_system(name)
    return f"{name}:\n" + _indented(to_yaml(system_to_dict(system)))


def list_systems(record, status=None):
    """One line per system, optionally filtered by status.

    `replacing` matches every replacing:<name> status.
    """
    if status is not None and status not in ("active", "deprecated", "replacing"):
        raise ValidationError(f"Invalid status filter '{status}' (must be active, deprecated or replacing)")

    rows = []
    for name, system in record.systems.items():
        current = system.effective_status
        if status == "replacing":
            if not current.startswith(REPLACING_PREFIX):
                continue
        elif status is not None and current != status:
            continue
        rows.append((name, current, system.description))

    if not rows:
        return "No systems defined." if status is None else f"No {status} systems."

    width = max(len(name) for name, _, _ in rows) + 2
    lines = [f"{'Name':<{width}} {'Status':<20} Description", "-" * 70]
    for name, current, description in rows:
        lines.append(f"{name:<{width}} {current:<20} {description}")
    return "\n".join(lines)


def list_terms(record):
    project = record.project
    lines = []
    for term, definition in (project.terms or {}).items():
        lines.append(f"{term}: {definition}")
    for old, info in (project.deprecated_terms or {}).items():
        reason = f" ({info.reason})" if info.reason else ""
        lines.append(f"{old} [deprecated] → use {info.use}{reason}")
    return "\n".join(lines) if lines else "No terms defined."


def list_glossary(record):
    lines = []
    for term, entry in (record.project.glossary or {}).items():
        previously = f" (previously: {entry.previously})" if entry.previously else ""
        lines.append(f"{term}: {entry.definition}{previously}")
    return "\n".join(lines) if lines else "Glossary is empty."
