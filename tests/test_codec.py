"""Tests for reading, writing and creating .rivet/systems.yaml."""

from pathlib import Path

import pytest

from rivet import codec
from rivet.errors import NotFoundError, ParseError, ValidationError
from rivet.model import (
    NO_CONTEXT,
    DeprecatedTerm,
    GlossaryTerm,
    Project,
    ProjectRecord,
    Relationship,
    System,
)


def _full_record() -> ProjectRecord:
    return ProjectRecord(
        project=Project(
            name="Demo",
            purpose="test",
            principles=["Simplicity over cleverness"],
            terms={"workspace": "A collection of projects"},
            deprecated_terms={"repo": DeprecatedTerm(use="workspace", reason="too vague")},
            decisions=["Monorepo"],
            requirements=["APIs respond within 200ms p99"],
            glossary={"harvest": GlossaryTerm(definition="extracting requirements", previously="mine")},
        ),
        systems={
            "Router": System(
                description="handles routing",
                status="replacing:Router2",
                requirements=["must support nested routes"],
                terms={"createRouter": NO_CONTEXT, "route": "a path pattern"},
                boundaries=["No rendering"],
                relationships=[Relationship("calls", "Parser"), Relationship("depends_on", "Schema")],
            ),
            "Parser": System(description="reads files"),
        },
    )


def test_create_writes_minimal_document(tmp_path: Path) -> None:
    path = codec.create("Demo", "test", str(tmp_path))

    assert Path(path) == tmp_path / ".rivet" / "systems.yaml"
    assert Path(path).read_text(encoding="utf-8") == (
        "project:\n"
        "  name: Demo\n"
        "  purpose: test\n"
        "systems: {}\n"
    )


def test_create_refuses_to_overwrite(project_dir: Path, doc_path: Path) -> None:
    before = doc_path.read_bytes()

    with pytest.raises(ValidationError, match="already exists"):
        codec.create("Other", "x", str(project_dir))

    assert doc_path.read_bytes() == before


def test_round_trip_structural_equality(doc_path: Path) -> None:
    record = _full_record()
    codec.write(record, str(doc_path))

    assert codec.read(str(doc_path)) == record


def test_rewrite_of_fresh_read_is_byte_identical(doc_path: Path) -> None:
    codec.write(_full_record(), str(doc_path))
    first = doc_path.read_bytes()

    codec.write(codec.read(str(doc_path)), str(doc_path))

    assert doc_path.read_bytes() == first


def test_formatting_policies(doc_path: Path) -> None:
    record = _full_record()
    long_description = "word " * 80
    record.systems["Parser"].description = long_description.strip()
    codec.write(record, str(doc_path))
    text = doc_path.read_text(encoding="utf-8")

    # null sentinel
    assert "      createRouter: ~\n" in text
    # relationships as flow tuples in an indented block sequence
    assert "      - [calls, Parser]\n" in text
    assert "      - must support nested routes\n" in text
    # no wrapping of long values
    assert f"    description: {long_description.strip()}\n" in text
    assert "deprecated-terms:" in text


def test_block_sequences_are_indented_under_their_key(doc_path: Path) -> None:
    record = ProjectRecord(
        project=Project(name="Demo", purpose="test", principles=["Simplicity"]),
        systems={"Router": System(description="x", requirements=["r1", "r2"])},
    )
    codec.write(record, str(doc_path))

    assert doc_path.read_text(encoding="utf-8") == (
        "project:\n"
        "  name: Demo\n"
        "  purpose: test\n"
        "  principles:\n"
        "    - Simplicity\n"
        "systems:\n"
        "  Router:\n"
        "    description: x\n"
        "    requirements:\n"
        "      - r1\n"
        "      - r2\n"
    )


def test_explicit_nulls_round_trip_byte_identical(doc_path: Path) -> None:
    content = (
        "project:\n"
        "  name: Demo\n"
        "  purpose: test\n"
        "  glossary: ~\n"
        "systems:\n"
        "  Legacy:\n"
        "    description: old\n"
        "    status: ~\n"
        "    requirements: ~\n"
        "    deprecated-terms:\n"
        "      oldName:\n"
        "        use: newName\n"
        "        reason: ~\n"
    )
    doc_path.write_text(content, encoding="utf-8")

    record = codec.read(str(doc_path))
    assert record.systems["Legacy"].requirements is None
    assert record.systems["Legacy"].effective_status == "active"

    codec.write(record, str(doc_path))
    assert doc_path.read_text(encoding="utf-8") == content


def test_null_systems_round_trip(doc_path: Path) -> None:
    content = "project:\n  name: Demo\n  purpose: test\nsystems: ~\n"
    doc_path.write_text(content, encoding="utf-8")

    codec.write(codec.read(str(doc_path)), str(doc_path))

    assert doc_path.read_text(encoding="utf-8") == content


def test_yaml_11_scalars_stay_strings(doc_path: Path) -> None:
    doc_path.write_text(
        "project:\n  name: Demo\n  purpose: test\n"
        "  terms:\n    on: the enabled state\n"
        "systems:\n  Router:\n    description: x\n"
        "    requirements:\n      - 2024-01-01\n      - yes\n",
        encoding="utf-8",
    )

    record = codec.read(str(doc_path))
    assert record.project.terms == {"on": "the enabled state"}
    assert record.systems["Router"].requirements == ["2024-01-01", "yes"]

    codec.write(record, str(doc_path))
    assert codec.read(str(doc_path)) == record


def test_failed_write_leaves_document_and_no_temp_file(doc_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    before = doc_path.read_bytes()

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(codec.os, "replace", fail_replace)
    with pytest.raises(OSError, match="disk full"):
        codec.write(_full_record(), str(doc_path))

    assert doc_path.read_bytes() == before
    assert not Path(str(doc_path) + ".tmp").exists()


def test_key_order_and_unknown_keys_preserved(doc_path: Path) -> None:
    doc_path.write_text(
        "layout: ~\n"
        "systems:\n"
        "  Router:\n"
        "    boundaries:\n"
        "      - No rendering\n"
        "    description: handles routing\n"
        "    owner: platform-team\n"
        "project:\n"
        "  purpose: test\n"
        "  name: Demo\n",
        encoding="utf-8",
    )

    record = codec.read(str(doc_path))
    assert record.extra == {"layout": None}
    assert record.systems["Router"].extra == {"owner": "platform-team"}

    codec.write(record, str(doc_path))
    text = doc_path.read_text(encoding="utf-8")

    assert text.index("layout: ~") < text.index("systems:") < text.index("project:")
    assert text.index("boundaries:") < text.index("description:") < text.index("owner:")
    assert text.index("purpose: test") < text.index("name: Demo")


def test_absent_systems_is_empty_mapping(doc_path: Path) -> None:
    doc_path.write_text("project:\n  name: Demo\n  purpose: test\n", encoding="utf-8")

    record = codec.read(str(doc_path))

    assert record.systems == {}
    codec.write(record, str(doc_path))
    assert "systems" not in doc_path.read_text(encoding="utf-8")


def test_null_term_context_reads_as_no_context(doc_path: Path) -> None:
    doc_path.write_text(
        "project:\n  name: Demo\n  purpose: test\n"
        "systems:\n  Router:\n    description: x\n    terms:\n      createRouter: ~\n",
        encoding="utf-8",
    )

    system = codec.read(str(doc_path)).systems["Router"]

    assert system.term_context("createRouter") is NO_CONTEXT


def test_missing_document_is_not_found_not_parse_error(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        codec.read(str(tmp_path / ".rivet" / "systems.yaml"))


@pytest.mark.parametrize(
    "content",
    [
        "project: [unclosed\n",
        "- just\n- a list\n",
        "systems: {}\n",
        "project: not-a-mapping\n",
        "project:\n  name: Demo\n  purpose: test\nsystems:\n  Router:\n    description: x\n    relationships:\n      - [calls]\n",
        "project:\n  name: Demo\n  purpose: test\nsystems:\n  Router:\n    description: x\n    relationships:\n      - [knows, Parser]\n",
        "project:\n  name: Demo\n  purpose: test\nsystems:\n  Router:\n    requirements: []\n",
        "project:\n  name: Demo\n  purpose: test\n  principles: not-a-list\n",
        "project:\n  name: Demo\n  purpose: test\nsystems:\n  Legacy:\n    description: ~\n",
        "project:\n  name: ~\n  purpose: test\n",
        "project:\n  name: Demo\n  purpose: test\n  principles:\n    - 42\n",
        "project:\n  name: Demo\n  purpose: test\n"
        "  terms:\n    repo: a place\n  deprecated-terms:\n    repo:\n      use: workspace\n",
        "project:\n  name: Demo\n  purpose: test\nsystems:\n  Router:\n    description: x\n"
        "    terms:\n      getRoute: ~\n    deprecated-terms:\n      getRoute:\n        use: resolveRoute\n",
    ],
)
def test_malformed_documents_raise_parse_error(doc_path: Path, content: str) -> None:
    doc_path.write_text(content, encoding="utf-8")

    with pytest.raises(ParseError) as exc_info:
        codec.read(str(doc_path))

    assert exc_info.value.path == str(doc_path)
    assert exc_info.value.cause is not None
    assert str(doc_path) in str(exc_info.value)
