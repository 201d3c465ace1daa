"""Read and write .rivet/systems.yaml.

Output policy: no line wrapping, `~` for null, block style with indented
sequences, relationships as flow tuples, and keys written back in the order
they were read. Re-writing a freshly read record is byte-identical.

Input uses YAML 1.2 scalar typing: only true/false are booleans and dates
stay strings, so hand-written values like `on` or `2024-01-01` survive.
"""

import logging
import os
import re

import yaml

from rivet.errors import NotFoundError, ParseError, ValidationError
from rivet.locator import RIVET_DIR, document_path
from rivet.model import (
    NO_CONTEXT,
    RELATIONSHIP_TYPES,
    DeprecatedTerm,
    GlossaryTerm,
    Project,
    ProjectRecord,
    Relationship,
    System,
)

log = logging.getLogger("rivet.codec")

DEPRECATED_TERMS_KEY = "deprecated-terms"

_BOOL_TAG = "tag:yaml.org,2002:bool"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


# ---------------------------------------------------------------------------
# YAML loader and dumper
# ---------------------------------------------------------------------------


class _RecordLoader(yaml.SafeLoader):
    """SafeLoader without YAML 1.1 timestamps and yes/no/on/off booleans."""


_RecordLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (_BOOL_TAG, _TIMESTAMP_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_RecordLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


class _RecordDumper(yaml.SafeDumper):
    """SafeDumper that indents block sequences under their parent key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data):
        return True


def _represent_none(dumper, _data):
    return dumper.represent_scalar("tag:yaml.org,2002:null", "~")


def _represent_relationship(dumper, rel):
    return dumper.represent_sequence("tag:yaml.org,2002:seq", list(rel), flow_style=True)


_RecordDumper.add_representer(type(None), _represent_none)
_RecordDumper.add_representer(Relationship, _represent_relationship)


def to_yaml(data):
    """Serialize plain data with the document's formatting policy."""
    return yaml.dump(
        data,
        Dumper=_RecordDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )


# ---------------------------------------------------------------------------
# Parsing: plain data -> record
# ---------------------------------------------------------------------------


def _expect_mapping(raw, where):
    if not isinstance(raw, dict):
        raise ValueError(f"{where} must be a mapping, got {type(raw).__name__}")
    return raw


def _expect_text(value, where):
    if not isinstance(value, str):
        raise ValueError(f"{where} must be a string, got {type(value).__name__}")
    return value


def _optional_list(raw, key, where):
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"{where}.{key} must be a list, got {type(value).__name__}")
    return list(value)


def _text_list(raw, key, where):
    items = _optional_list(raw, key, where)
    if items is None:
        return None
    return [_expect_text(item, f"{where}.{key}[{i}]") for i, item in enumerate(items)]


def _optional_mapping(raw, key, where):
    value = raw.get(key)
    if value is None:
        return None
    return dict(_expect_mapping(value, f"{where}.{key}"))


def _optional_text(raw, key, where):
    value = raw.get(key)
    if value is None:
        return None
    return _expect_text(value, f"{where}.{key}")


def _required_text(raw, key, where):
    if raw.get(key) is None:
        raise ValueError(f"{where} is missing '{key}'")
    return _expect_text(raw[key], f"{where}.{key}")


def _extras(raw, known):
    """Unknown keys, plus known keys written as an explicit null."""
    return {k: v for k, v in raw.items() if k not in known or v is None}


def _terms(raw, where, allow_no_context):
    entries = _optional_mapping(raw, "terms", where)
    if entries is None:
        return None
    result = {}
    for term, context in entries.items():
        term = _expect_text(term, f"{where}.terms key")
        if context is None and allow_no_context:
            result[term] = NO_CONTEXT
        else:
            result[term] = _expect_text(context, f"{where}.terms.{term}")
    return result


def _deprecated_terms(raw, where):
    entries = _optional_mapping(raw, DEPRECATED_TERMS_KEY, where)
    if entries is None:
        return None
    result = {}
    for old, entry in entries.items():
        old = _expect_text(old, f"{where}.{DEPRECATED_TERMS_KEY} key")
        entry_where = f"{where}.{DEPRECATED_TERMS_KEY}.{old}"
        entry = _expect_mapping(entry, entry_where)
        result[old] = DeprecatedTerm(
            use=_required_text(entry, "use", entry_where),
            reason=_optional_text(entry, "reason", entry_where),
            extra=_extras(entry, ("use", "reason")),
            key_order=tuple(entry),
        )
    return result


def _check_disjoint(terms, deprecated, where):
    both = sorted(set(terms or ()) & set(deprecated or ()))
    if both:
        raise ValueError(f"{where} has term(s) both defined and deprecated: {', '.join(both)}")


def _relationships(raw, where):
    items = _optional_list(raw, "relationships", where)
    if items is None:
        return None
    result = []
    for item in items:
        if not isinstance(item, list) or len(item) != 2:
            raise ValueError(f"{where}.relationships entries must be [type, target] pairs, got {item!r}")
        rel_type, target = item
        if rel_type not in RELATIONSHIP_TYPES:
            raise ValueError(f"{where}.relationships has unknown type '{rel_type}'")
        result.append(Relationship(rel_type, _expect_text(target, f"{where}.relationships target")))
    return result


_SYSTEM_KEYS = ("description", "status", "replaces", "requirements", "decisions", "terms",
                DEPRECATED_TERMS_KEY, "boundaries", "relationships")


def _system_from_dict(name, raw):
    where = f"systems.{name}"
    raw = _expect_mapping(raw, where)
    terms = _terms(raw, where, allow_no_context=True)
    deprecated_terms = _deprecated_terms(raw, where)
    _check_disjoint(terms, deprecated_terms, where)
    return System(
        description=_required_text(raw, "description", where),
        status=_optional_text(raw, "status", where),
        replaces=_optional_text(raw, "replaces", where),
        requirements=_text_list(raw, "requirements", where),
        decisions=_text_list(raw, "decisions", where),
        terms=terms,
        deprecated_terms=deprecated_terms,
        boundaries=_text_list(raw, "boundaries", where),
        relationships=_relationships(raw, where),
        extra=_extras(raw, _SYSTEM_KEYS),
        key_order=tuple(raw),
    )


_PROJECT_KEYS = ("name", "purpose", "principles", "terms", DEPRECATED_TERMS_KEY,
                 "decisions", "requirements", "glossary")


def _glossary(raw):
    entries = _optional_mapping(raw, "glossary", "project")
    if entries is None:
        return None
    result = {}
    for term, entry in entries.items():
        term = _expect_text(term, "project.glossary key")
        where = f"project.glossary.{term}"
        entry = _expect_mapping(entry, where)
        result[term] = GlossaryTerm(
            definition=_required_text(entry, "definition", where),
            previously=_optional_text(entry, "previously", where),
            extra=_extras(entry, ("definition", "previously")),
            key_order=tuple(entry),
        )
    return result


def _project_from_dict(raw):
    raw = _expect_mapping(raw, "project")
    terms = _terms(raw, "project", allow_no_context=False)
    deprecated_terms = _deprecated_terms(raw, "project")
    _check_disjoint(terms, deprecated_terms, "project")
    return Project(
        name=_required_text(raw, "name", "project"),
        purpose=_required_text(raw, "purpose", "project"),
        principles=_text_list(raw, "principles", "project"),
        terms=terms,
        deprecated_terms=deprecated_terms,
        decisions=_text_list(raw, "decisions", "project"),
        requirements=_text_list(raw, "requirements", "project"),
        glossary=_glossary(raw),
        extra=_extras(raw, _PROJECT_KEYS),
        key_order=tuple(raw),
    )


def record_from_dict(data):
    """Build a ProjectRecord from parsed YAML. Raises ValueError on bad shape."""
    data = _expect_mapping(data, "document root")
    if "project" not in data:
        raise ValueError("document is missing 'project'")
    systems_raw = data.get("systems")
    systems = {}
    if systems_raw is not None:
        for name, raw in _expect_mapping(systems_raw, "systems").items():
            name = _expect_text(name, "systems key")
            systems[name] = _system_from_dict(name, raw)
    return ProjectRecord(
        project=_project_from_dict(data["project"]),
        systems=systems,
        extra=_extras(data, ("project", "systems")),
        key_order=tuple(data),
    )


# ---------------------------------------------------------------------------
# Serialization: record -> plain data
# ---------------------------------------------------------------------------


def _ordered(fields, extra, key_order):
    """Known fields plus extras, in the order they were read.

    A known field that is None falls back to an explicit null kept in extra,
    otherwise it is dropped.
    """
    present = dict(extra)
    present.update((k, v) for k, v in fields if v is not None)
    out = {}
    for key in key_order:
        if key in present:
            out[key] = present.pop(key)
    out.update(present)
    return out


def _deprecated_terms_to_dict(entries):
    if entries is None:
        return None
    return {
        old: _ordered([("use", dt.use), ("reason", dt.reason)], dt.extra, dt.key_order)
        for old, dt in entries.items()
    }


def system_to_dict(system):
    terms = None
    if system.terms is not None:
        terms = {k: None if v is NO_CONTEXT else v for k, v in system.terms.items()}
    relationships = None
    if system.relationships is not None:
        relationships = [Relationship(*rel) for rel in system.relationships]
    return _ordered(
        [
            ("description", system.description),
            ("status", system.status),
            ("replaces", system.replaces),
            ("requirements", system.requirements),
            ("decisions", system.decisions),
            ("terms", terms),
            (DEPRECATED_TERMS_KEY, _deprecated_terms_to_dict(system.deprecated_terms)),
            ("boundaries", system.boundaries),
            ("relationships", relationships),
        ],
        system.extra,
        system.key_order,
    )


def project_to_dict(project):
    glossary = None
    if project.glossary is not None:
        glossary = {
            term: _ordered(
                [("definition", entry.definition), ("previously", entry.previously)],
                entry.extra,
                entry.key_order,
            )
            for term, entry in project.glossary.items()
        }
    return _ordered(
        [
            ("name", project.name),
            ("purpose", project.purpose),
            ("principles", project.principles),
            ("terms", project.terms),
            (DEPRECATED_TERMS_KEY, _deprecated_terms_to_dict(project.deprecated_terms)),
            ("decisions", project.decisions),
            ("requirements", project.requirements),
            ("glossary", glossary),
        ],
        project.extra,
        project.key_order,
    )


def record_to_dict(record):
    systems = None
    # An absent or null systems key stays that way until a system exists.
    had_systems = "systems" in record.key_order and "systems" not in record.extra
    if record.systems or had_systems or not record.key_order:
        systems = {name: system_to_dict(s) for name, s in record.systems.items()}
    return _ordered(
        [("project", project_to_dict(record.project)), ("systems", systems)],
        record.extra,
        record.key_order,
    )


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------


def read(path):
    """Parse the document at path into a ProjectRecord."""
    if not os.path.isfile(path):
        raise NotFoundError(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=_RecordLoader)
        return record_from_dict(data)
    except (yaml.YAMLError, ValueError, TypeError, UnicodeDecodeError) as e:
        raise ParseError(path, e) from e


def write(record, path):
    """Serialize record to path (atomic replace). Returns path."""
    content = to_yaml(record_to_dict(record))
    tmp_path = path + ".tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    log.debug("Wrote %s (%d bytes)", path, len(content))
    return path


def create(name, purpose, base_dir):
    """Create .rivet/systems.yaml under base_dir. Never overwrites."""
    path = document_path(base_dir)
    if os.path.exists(path):
        raise ValidationError(f"{RIVET_DIR}/systems.yaml already exists at {path}")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    record = ProjectRecord(project=Project(name=name, purpose=purpose))
    return write(record, path)
