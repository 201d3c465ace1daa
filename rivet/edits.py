"""Edit commands for `system edit` and `project edit`.

Each edit is its own small type carrying its payload; the engine dispatches
on the type. The CLI field selectors (`+requirement`, `-term`, ...) are
translated here and nowhere else.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

from rivet.errors import ValidationError
from rivet.model import (
    NO_CONTEXT,
    Relationship,
    TermContext,
    context_from_arg,
    parse_relationship,
    parse_status,
)

# ---------------------------------------------------------------------------
# Edit types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SetDescription:
    text: str
    selector: ClassVar[str] = "description"


@dataclass(frozen=True)
class SetName:
    text: str
    selector: ClassVar[str] = "name"


@dataclass(frozen=True)
class SetPurpose:
    text: str
    selector: ClassVar[str] = "purpose"


@dataclass(frozen=True)
class AddRequirement:
    text: str
    selector: ClassVar[str] = "+requirement"


@dataclass(frozen=True)
class RemoveRequirement:
    text: str
    selector: ClassVar[str] = "-requirement"


@dataclass(frozen=True)
class AddDecision:
    text: str
    selector: ClassVar[str] = "+decision"


@dataclass(frozen=True)
class RemoveDecision:
    text: str
    selector: ClassVar[str] = "-decision"


@dataclass(frozen=True)
class AddPrinciple:
    text: str
    selector: ClassVar[str] = "+principle"


@dataclass(frozen=True)
class RemovePrinciple:
    text: str
    selector: ClassVar[str] = "-principle"


@dataclass(frozen=True)
class AddBoundary:
    text: str
    selector: ClassVar[str] = "+boundary"


@dataclass(frozen=True)
class RemoveBoundary:
    text: str
    selector: ClassVar[str] = "-boundary"


@dataclass(frozen=True)
class AddTerm:
    name: str
    # System terms: a context string or NO_CONTEXT. Project terms: the definition.
    context: TermContext = NO_CONTEXT
    selector: ClassVar[str] = "+term"


@dataclass(frozen=True)
class RemoveTerm:
    name: str
    selector: ClassVar[str] = "-term"


@dataclass(frozen=True)
class SetStatus:
    status: str
    selector: ClassVar[str] = "status"


@dataclass(frozen=True)
class AddRelationship:
    relationship: Relationship
    selector: ClassVar[str] = "+relationship"


@dataclass(frozen=True)
class RemoveRelationship:
    relationship: Relationship
    selector: ClassVar[str] = "-relationship"


SystemEdit = Union[
    SetDescription, AddRequirement, RemoveRequirement, AddDecision, RemoveDecision,
    AddTerm, RemoveTerm, SetStatus, AddRelationship, RemoveRelationship,
    AddBoundary, RemoveBoundary,
]

ProjectEdit = Union[
    SetName, SetPurpose, AddPrinciple, RemovePrinciple, AddTerm, RemoveTerm,
    AddDecision, RemoveDecision, AddRequirement, RemoveRequirement,
]

SYSTEM_FIELDS = (
    "description", "+requirement", "-requirement", "+decision", "-decision",
    "+term", "-term", "status", "+relationship", "-relationship",
    "+boundary", "-boundary",
)

PROJECT_FIELDS = (
    "name", "purpose", "+principle", "-principle", "+term", "-term",
    "+decision", "-decision", "+requirement", "-requirement",
)

_TEXT_EDITS = {
    cls.selector: cls
    for cls in (SetDescription, SetName, SetPurpose, AddRequirement, RemoveRequirement,
                AddDecision, RemoveDecision, AddPrinciple, RemovePrinciple,
                AddBoundary, RemoveBoundary)
}


# ---------------------------------------------------------------------------
# Selector parsing
# ---------------------------------------------------------------------------


def _text(field, args):
    value = " ".join(args).strip()
    if not value:
        raise ValidationError(f"{field} requires a value")
    return value


def _parse(field, args, allowed, project_scope):
    if field not in allowed:
        raise ValidationError(f"Unknown field: {field} (valid: {', '.join(allowed)})")

    if field in _TEXT_EDITS:
        return _TEXT_EDITS[field](_text(field, args))

    if field == "+term":
        if not args:
            raise ValidationError("+term requires a term name")
        rest = " ".join(args[1:]).strip() or None
        if project_scope:
            if rest is None:
                raise ValidationError("Usage: project edit +term <name> <definition>")
            return AddTerm(args[0], rest)
        return AddTerm(args[0], context_from_arg(rest))

    if field == "-term":
        if not args:
            raise ValidationError("-term requires a term name")
        return RemoveTerm(args[0])

    if field == "status":
        return SetStatus(parse_status(_text(field, args)))

    # +relationship / -relationship
    if len(args) != 2:
        raise ValidationError(f"Usage: system edit <name> {field} <type> <target>")
    rel = parse_relationship(args[0], args[1])
    return AddRelationship(rel) if field == "+relationship" else RemoveRelationship(rel)


def parse_system_edit(field, args):
    """Translate a `system edit` field selector and its arguments."""
    return _parse(field, list(args), SYSTEM_FIELDS, project_scope=False)


def parse_project_edit(field, args):
    """Translate a `project edit` field selector and its arguments."""
    return _parse(field, list(args), PROJECT_FIELDS, project_scope=True)
