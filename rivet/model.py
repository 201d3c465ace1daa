"""Typed shape of the project record held in .rivet/systems.yaml.

Optional collections are None when the key is absent from the document, so
an unmodified record writes back exactly what was read. `extra` carries keys
this model does not know about (e.g. `layout`); `key_order` remembers the
order keys appeared in so the codec can reproduce it.
"""

from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional, Union

from rivet.errors import ValidationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RELATIONSHIP_TYPES = ("calls", "called_by", "depends_on", "used_by")

STATUS_ACTIVE = "active"
STATUS_DEPRECATED = "deprecated"
REPLACING_PREFIX = "replacing:"


class _Marker:
    """Named singleton used for the states a plain None cannot express."""

    def __init__(self, name):
        self._name = name

    def __repr__(self):
        return self._name


# Term present, no context given (serialized as ~).
NO_CONTEXT = _Marker("NO_CONTEXT")
# Term not present at all.
UNSET = _Marker("UNSET")

TermContext = Union[str, _Marker]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Relationship(NamedTuple):
    type: str
    target: str


@dataclass
class DeprecatedTerm:
    use: str
    reason: Optional[str]
    extra: dict = field(default_factory=dict)
    key_order: tuple = field(default=(), compare=False)


@dataclass
class GlossaryTerm:
    definition: str
    # Old name, kept until the old term is purged from the codebase.
    previously: Optional[str] = None
    extra: dict = field(default_factory=dict)
    key_order: tuple = field(default=(), compare=False)


@dataclass
class System:
    description: str
    status: Optional[str] = None
    replaces: Optional[str] = None
    requirements: Optional[list] = None
    decisions: Optional[list] = None
    terms: Optional[dict] = None
    deprecated_terms: Optional[dict] = None
    boundaries: Optional[list] = None
    relationships: Optional[list] = None
    extra: dict = field(default_factory=dict)
    key_order: tuple = field(default=(), compare=False)

    @property
    def effective_status(self) -> str:
        return self.status or STATUS_ACTIVE

    def term_context(self, name: str) -> Any:
        """Return the term's context string, NO_CONTEXT, or UNSET."""
        if not self.terms or name not in self.terms:
            return UNSET
        return self.terms[name]


@dataclass
class Project:
    name: str
    purpose: str
    principles: Optional[list] = None
    terms: Optional[dict] = None
    deprecated_terms: Optional[dict] = None
    decisions: Optional[list] = None
    requirements: Optional[list] = None
    glossary: Optional[dict] = None
    extra: dict = field(default_factory=dict)
    key_order: tuple = field(default=(), compare=False)


@dataclass
class ProjectRecord:
    project: Project
    systems: dict = field(default_factory=dict)
    extra: dict = field(default_factory=dict)
    key_order: tuple = field(default=(), compare=False)

    def get_system(self, name: str) -> System:
        if name not in self.systems:
            raise ValidationError(f"System '{name}' not found")
        return self.systems[name]


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def parse_status(value: str) -> str:
    """Validate a status string: active, deprecated or replacing:<name>."""
    if value in (STATUS_ACTIVE, STATUS_DEPRECATED):
        return value
    if value.startswith(REPLACING_PREFIX) and value[len(REPLACING_PREFIX):].strip():
        return value
    raise ValidationError(
        f"Invalid status '{value}' (must be active, deprecated or replacing:<system>)"
    )


def replacing(name: str) -> str:
    return f"{REPLACING_PREFIX}{name}"


def parse_relationship(rel_type: str, target: str) -> Relationship:
    if rel_type not in RELATIONSHIP_TYPES:
        raise ValidationError(
            f"Invalid relationship type '{rel_type}' (must be one of: {', '.join(RELATIONSHIP_TYPES)})"
        )
    if not target:
        raise ValidationError("Relationship target is required")
    return Relationship(rel_type, target)


def context_from_arg(context: Optional[str]) -> TermContext:
    """Map an optional CLI context string to the stored term context."""
    if context is None or not context.strip():
        return NO_CONTEXT
    return context
