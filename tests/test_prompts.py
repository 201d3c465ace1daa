"""Tests for the read-only markdown renderers."""

from rivet import prompts
from rivet.model import NO_CONTEXT, DeprecatedTerm, Project, ProjectRecord, Relationship, System


def _record() -> ProjectRecord:
    return ProjectRecord(
        project=Project(
            name="Demo",
            purpose="test",
            terms={"workspace": "A collection of projects"},
            deprecated_terms={"repo": DeprecatedTerm(use="workspace", reason="too vague")},
        ),
        systems={
            "Router": System(
                description="handles routing",
                terms={"createRouter": NO_CONTEXT},
                boundaries=["No rendering"],
                relationships=[Relationship("calls", "Parser")],
                deprecated_terms={"getRoute": DeprecatedTerm(use="resolveRoute", reason="")},
            ),
            "Legacy": System(description="old stuff", status="deprecated"),
        },
    )


def test_renderers_tolerate_minimal_record() -> None:
    record = ProjectRecord(project=Project(name="Demo", purpose="test"), systems={"Bare": System(description="x")})

    assert "# Demo" in prompts.render_context(record)
    assert "### Bare" in prompts.session_start_prompt(record)
    assert "## Checklist" in prompts.drift_check_prompt(record)


def test_session_start_skips_deprecated_systems() -> None:
    text = prompts.session_start_prompt(_record())

    assert "### Router" in text
    assert "### Legacy" not in text
    assert "- **createRouter**\n" in text
    assert "- ~~repo~~ → use **workspace**" in text
    assert "- ~~getRoute~~ (Router) → use **resolveRoute**" in text


def test_drift_check_lists_terms_and_boundaries() -> None:
    text = prompts.drift_check_prompt(_record())

    assert "`workspace`, `createRouter`" in text
    assert "**Router:**\n- No rendering" in text


def test_harvest_prompts_list_existing_terms_and_systems() -> None:
    for render, title in ((prompts.harvest_prompt, "# Rivet Initial Harvest"),
                          (prompts.deep_harvest_prompt, "# Deep Harvest")):
        text = render(_record())

        assert text.startswith(title)
        assert "## Already Defined" in text
        assert "`workspace`, `createRouter`" in text
        assert "- **Router**: handles routing" in text
        assert "rivet sync \\" in text


def test_harvest_prompt_omits_empty_sections() -> None:
    record = ProjectRecord(project=Project(name="Demo", purpose="test"))

    text = prompts.harvest_prompt(record)

    assert "## Already Defined" not in text
    assert "## Existing Systems" not in text
    assert "## Guidelines" in text


def test_session_harvest_checks_deprecations_and_capture() -> None:
    text = prompts.session_harvest_prompt(_record())

    assert text.startswith("# Session Harvest")
    assert "- ~~getRoute~~ → use **resolveRoute**" in text
    assert "**Router:**\n- No rendering" in text
    assert "## What Emerged" in text
    assert "accidental variation" in text


def test_drift_check_points_at_session_harvest() -> None:
    assert "rivet prompt session-harvest" in prompts.drift_check_prompt(_record())


def test_every_prompt_type_has_a_renderer() -> None:
    from rivet.cli import _PROMPTS

    assert set(_PROMPTS) | {"init"} == set(prompts.PROMPT_TYPES)


def test_init_prompt_covers_setup_steps() -> None:
    text = prompts.init_prompt()

    assert text.startswith("# Rivet Setup Required")
    assert "rivet init --name" in text
    assert "| `depends_on` |" in text
    assert "rivet prompt deep-harvest" in text


def test_context_includes_relationships_and_status() -> None:
    text = prompts.render_context(_record(), ["Router"])

    assert "## System: Router [active]" in text
    assert "- calls Parser" in text
    assert "Legacy" not in text
