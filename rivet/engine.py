"""Mutation operations on the project record.

Every operation reads the record fresh from the store, validates its
preconditions (raising ValidationError before anything is written), applies
one change, writes the whole record back and runs the store's commit hook.
Operations return an OperationResult: a one-line confirmation plus any
non-fatal warnings.
"""

import logging
from dataclasses import dataclass, field

from rivet.edits import (
    AddBoundary,
    AddDecision,
    AddPrinciple,
    AddRelationship,
    AddRequirement,
    AddTerm,
    RemoveBoundary,
    RemoveDecision,
    RemovePrinciple,
    RemoveRelationship,
    RemoveRequirement,
    RemoveTerm,
    SetDescription,
    SetName,
    SetPurpose,
    SetStatus,
)
from rivet.errors import ValidationError
from rivet.model import (
    NO_CONTEXT,
    STATUS_DEPRECATED,
    DeprecatedTerm,
    GlossaryTerm,
    System,
    parse_relationship,
    replacing,
)

log = logging.getLogger("rivet.engine")


@dataclass
class OperationResult:
    message: str
    warnings: list = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require(value, what):
    if value is None or not str(value).strip():
        raise ValidationError(f"{what} is required")
    return value


def _appended(seq, value):
    return (seq or []) + [value]


def _without(seq, value):
    """Drop entries equal to value. No match leaves the sequence unchanged."""
    if seq is None:
        return None
    return [item for item in seq if item != value]


def _finish(store, record, summary, message, warnings=None):
    store.save(record, summary)
    log.info("%s (%s)", message, store.path)
    return OperationResult(message, list(warnings or []))


def _move_to_deprecated(terms, deprecated, old, new_term, reason):
    """Return (terms, deprecated) with old moved under deprecated."""
    terms = {k: v for k, v in terms.items() if k != old}
    deprecated = dict(deprecated or {})
    deprecated[old] = DeprecatedTerm(use=new_term, reason=reason or "")
    return terms, deprecated


# ---------------------------------------------------------------------------
# Systems
# ---------------------------------------------------------------------------


def add_system(store, name, description):
    _require(name, "System name")
    _require(description, "System description")
    record = store.read()
    if name in record.systems:
        raise ValidationError(f"System '{name}' already exists")
    record.systems[name] = System(description=description)
    return _finish(store, record, f"system add {name}", f"Added system {name}")


def _apply_system_edit(system, edit):
    """Apply one edit to system in place."""
    if isinstance(edit, SetDescription):
        system.description = edit.text
    elif isinstance(edit, AddRequirement):
        system.requirements = _appended(system.requirements, edit.text)
    elif isinstance(edit, RemoveRequirement):
        system.requirements = _without(system.requirements, edit.text)
    elif isinstance(edit, AddDecision):
        system.decisions = _appended(system.decisions, edit.text)
    elif isinstance(edit, RemoveDecision):
        system.decisions = _without(system.decisions, edit.text)
    elif isinstance(edit, AddTerm):
        if system.deprecated_terms and edit.name in system.deprecated_terms:
            use = system.deprecated_terms[edit.name].use
            raise ValidationError(f"Term '{edit.name}' is deprecated (use '{use}')")
        terms = dict(system.terms or {})
        terms[edit.name] = edit.context if edit.context else NO_CONTEXT
        system.terms = terms
    elif isinstance(edit, RemoveTerm):
        if system.terms is not None:
            system.terms = {k: v for k, v in system.terms.items() if k != edit.name}
    elif isinstance(edit, SetStatus):
        system.status = edit.status
    elif isinstance(edit, AddRelationship):
        if edit.relationship not in (system.relationships or []):
            system.relationships = _appended(system.relationships, edit.relationship)
    elif isinstance(edit, RemoveRelationship):
        system.relationships = _without(system.relationships, edit.relationship)
    elif isinstance(edit, AddBoundary):
        system.boundaries = _appended(system.boundaries, edit.text)
    elif isinstance(edit, RemoveBoundary):
        system.boundaries = _without(system.boundaries, edit.text)
    else:
        raise ValidationError(f"Unsupported system edit: {edit!r}")


def edit_system(store, name, edit):
    record = store.read()
    system = record.get_system(name)
    _apply_system_edit(system, edit)
    warnings = []
    if isinstance(edit, AddRelationship):
        warnings.extend(_target_warnings(record, edit.relationship.target))
    return _finish(store, record, f"system edit {name} {edit.selector}",
                   f"Updated {name} ({edit.selector})", warnings)


def _target_warnings(record, target):
    if target not in record.systems:
        return [f"Relationship target '{target}' is not a defined system"]
    return []


def link_system(store, name, rel_type, target):
    rel = parse_relationship(rel_type, target)
    record = store.read()
    system = record.get_system(name)
    warnings = _target_warnings(record, target)
    if rel in (system.relationships or []):
        message = f"{name} already {rel.type} {rel.target}"
    else:
        system.relationships = _appended(system.relationships, rel)
        message = f"Linked {name} {rel.type} {rel.target}"
    return _finish(store, record, f"system link {name} {rel.type} {rel.target}", message, warnings)


def deprecate_system(store, name, replaced_by=None):
    record = store.read()
    system = record.get_system(name)
    system.status = replacing(replaced_by) if replaced_by else STATUS_DEPRECATED
    system.replaces = None
    suffix = f" (replaced by {replaced_by})" if replaced_by else ""
    return _finish(store, record, f"system deprecate {name}", f"Deprecated {name}{suffix}")


def deprecate_system_term(store, system_name, old, new_term, reason=""):
    _require(new_term, "Replacement term")
    record = store.read()
    system = record.get_system(system_name)
    if not system.terms or old not in system.terms:
        raise ValidationError(f"Term '{old}' not found in system '{system_name}'")
    if old == new_term:
        raise ValidationError("A term cannot be deprecated in favour of itself")

    warnings = []
    known = set(system.terms) | set(record.project.terms or {})
    if new_term not in known:
        warnings.append(f"Replacement term '{new_term}' is not defined")

    system.terms, system.deprecated_terms = _move_to_deprecated(
        system.terms, system.deprecated_terms, old, new_term, reason
    )
    return _finish(store, record, f"system term deprecate {system_name} {old}",
                   f"Deprecated {system_name}.{old} → {new_term}", warnings)


# ---------------------------------------------------------------------------
# Project terms
# ---------------------------------------------------------------------------


def _project_term_taken(project, term):
    return term in (project.terms or {}) or term in (project.deprecated_terms or {})


def define_term(store, term, definition):
    _require(term, "Term")
    _require(definition, "Definition")
    record = store.read()
    project = record.project
    if term in (project.terms or {}):
        raise ValidationError(f"Term '{term}' already defined")
    if term in (project.deprecated_terms or {}):
        raise ValidationError(f"Term '{term}' is deprecated (use '{project.deprecated_terms[term].use}')")
    project.terms = dict(project.terms or {})
    project.terms[term] = definition
    return _finish(store, record, f"term define {term}", f"Defined term {term}")


def rename_term(store, old, new):
    _require(new, "New term name")
    record = store.read()
    project = record.project
    if old not in (project.terms or {}):
        raise ValidationError(f"Term '{old}' not found")
    if _project_term_taken(project, new):
        raise ValidationError(f"Term '{new}' already exists")
    # Rebuild so the renamed term keeps its position.
    project.terms = {(new if k == old else k): v for k, v in project.terms.items()}
    return _finish(store, record, f"term rename {old} {new}", f"Renamed term {old} → {new}")


def deprecate_term(store, old, new_term, reason=""):
    _require(new_term, "Replacement term")
    record = store.read()
    project = record.project
    if old not in (project.terms or {}):
        raise ValidationError(f"Term '{old}' not found")
    if old == new_term:
        raise ValidationError("A term cannot be deprecated in favour of itself")

    warnings = []
    if new_term not in project.terms:
        warnings.append(f"Replacement term '{new_term}' is not defined")

    project.terms, project.deprecated_terms = _move_to_deprecated(
        project.terms, project.deprecated_terms, old, new_term, reason
    )
    return _finish(store, record, f"term deprecate {old}", f"Deprecated term {old} → {new_term}", warnings)


def delete_term(store, term):
    record = store.read()
    project = record.project
    if term in (project.terms or {}):
        project.terms = {k: v for k, v in project.terms.items() if k != term}
    elif term in (project.deprecated_terms or {}):
        project.deprecated_terms = {k: v for k, v in project.deprecated_terms.items() if k != term}
    else:
        raise ValidationError(f"Term '{term}' not found")
    return _finish(store, record, f"term delete {term}", f"Deleted term {term}")


# ---------------------------------------------------------------------------
# Glossary
# ---------------------------------------------------------------------------


def define_glossary_term(store, term, definition):
    _require(term, "Term")
    _require(definition, "Definition")
    record = store.read()
    project = record.project
    if term in (project.glossary or {}):
        raise ValidationError(f"Glossary term '{term}' already defined")
    project.glossary = dict(project.glossary or {})
    project.glossary[term] = GlossaryTerm(definition=definition)
    return _finish(store, record, f"glossary define {term}", f"Defined glossary term {term}")


def rename_glossary_term(store, old, new):
    """Rename a glossary term, recording the old name in `previously`."""
    _require(new, "New term name")
    record = store.read()
    project = record.project
    glossary = project.glossary or {}
    if old not in glossary:
        raise ValidationError(f"Glossary term '{old}' not found")
    if new in glossary:
        raise ValidationError(f"Glossary term '{new}' already exists")
    entry = glossary[old]
    renamed = GlossaryTerm(definition=entry.definition, previously=old, extra=dict(entry.extra))
    project.glossary = {(new if k == old else k): (renamed if k == old else v) for k, v in glossary.items()}
    return _finish(store, record, f"glossary rename {old} {new}",
                   f"Renamed glossary term {old} → {new} (previously: {old})")


def delete_glossary_term(store, term):
    record = store.read()
    project = record.project
    if term not in (project.glossary or {}):
        raise ValidationError(f"Glossary term '{term}' not found")
    project.glossary = {k: v for k, v in project.glossary.items() if k != term}
    return _finish(store, record, f"glossary delete {term}", f"Deleted glossary term {term}")


# ---------------------------------------------------------------------------
# Project fields
# ---------------------------------------------------------------------------


def edit_project(store, edit):
    record = store.read()
    project = record.project
    if isinstance(edit, SetName):
        project.name = edit.text
    elif isinstance(edit, SetPurpose):
        project.purpose = edit.text
    elif isinstance(edit, AddPrinciple):
        project.principles = _appended(project.principles, edit.text)
    elif isinstance(edit, RemovePrinciple):
        project.principles = _without(project.principles, edit.text)
    elif isinstance(edit, AddTerm):
        if not isinstance(edit.context, str) or not edit.context.strip():
            raise ValidationError("Project terms require a definition")
        if edit.name in (project.deprecated_terms or {}):
            raise ValidationError(f"Term '{edit.name}' is deprecated (use '{project.deprecated_terms[edit.name].use}')")
        project.terms = dict(project.terms or {})
        project.terms[edit.name] = edit.context
    elif isinstance(edit, RemoveTerm):
        if project.terms is not None:
            project.terms = {k: v for k, v in project.terms.items() if k != edit.name}
    elif isinstance(edit, AddDecision):
        project.decisions = _appended(project.decisions, edit.text)
    elif isinstance(edit, RemoveDecision):
        project.decisions = _without(project.decisions, edit.text)
    elif isinstance(edit, AddRequirement):
        project.requirements = _appended(project.requirements, edit.text)
    elif isinstance(edit, RemoveRequirement):
        project.requirements = _without(project.requirements, edit.text)
    else:
        raise ValidationError(f"Unsupported project edit: {edit!r}")
    return _finish(store, record, f"project edit {edit.selector}", "Updated project")
