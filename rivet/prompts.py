"""Markdown renderers over the project record, for AI-agent consumption.

All of these are read-only and tolerate any optional field being absent.
"""

from rivet.errors import ValidationError
from rivet.model import NO_CONTEXT, STATUS_DEPRECATED, REPLACING_PREFIX

PROMPT_TYPES = ("session-start", "drift-check", "session-harvest", "harvest", "deep-harvest", "init")


def _bullets(lines, items):
    for item in items:
        lines.append(f"- {item}")


def _all_deprecated(record):
    """(old, DeprecatedTerm, scope) for project and system scopes."""
    found = [(old, info, None) for old, info in (record.project.deprecated_terms or {}).items()]
    for name, system in record.systems.items():
        for old, info in (system.deprecated_terms or {}).items():
            found.append((old, info, name))
    return found


def _term_line(term, context):
    if context is NO_CONTEXT or not context:
        return f"- **{term}**"
    return f"- **{term}**: {context}"


# ---------------------------------------------------------------------------
# Context dump
# ---------------------------------------------------------------------------


def render_context(record, systems=None):
    """Full record, or only the named systems, as markdown."""
    if systems:
        unknown = [name for name in systems if name not in record.systems]
        if unknown:
            raise ValidationError(f"Unknown system(s): {', '.join(unknown)}")
        selected = [(name, record.systems[name]) for name in systems]
    else:
        selected = list(record.systems.items())

    project = record.project
    lines = [f"# {project.name}", "", project.purpose, ""]

    if project.principles:
        lines.append("## Principles")
        _bullets(lines, project.principles)
        lines.append("")

    if project.terms:
        lines.append("## Terms")
        for term, definition in project.terms.items():
            lines.append(_term_line(term, definition))
        lines.append("")

    if project.glossary:
        lines.append("## Glossary")
        for term, entry in project.glossary.items():
            previously = f" (previously `{entry.previously}`)" if entry.previously else ""
            lines.append(f"- **{term}**: {entry.definition}{previously}")
        lines.append("")

    if project.decisions:
        lines.append("## Decisions")
        _bullets(lines, project.decisions)
        lines.append("")

    if project.requirements:
        lines.append("## Requirements")
        _bullets(lines, project.requirements)
        lines.append("")

    for name, system in selected:
        lines.append(f"## System: {name} [{system.effective_status}]")
        lines.append("")
        lines.append(system.description)
        lines.append("")
        for title, items in (("Requirements", system.requirements),
                             ("Decisions", system.decisions),
                             ("Boundaries", system.boundaries)):
            if items:
                lines.append(f"**{title}:**")
                _bullets(lines, items)
                lines.append("")
        if system.terms:
            lines.append("**Terms:**")
            for term, context in system.terms.items():
                lines.append(_term_line(term, context))
            lines.append("")
        if system.deprecated_terms:
            lines.append("**Deprecated terms:**")
            for old, info in system.deprecated_terms.items():
                lines.append(f"- ~~{old}~~ → use **{info.use}**")
            lines.append("")
        if system.relationships:
            lines.append("**Relationships:**")
            for rel_type, target in system.relationships:
                lines.append(f"- {rel_type} {target}")
            lines.append("")

    if isinstance(record.extra.get("layout"), dict):
        layout = record.extra["layout"]
        lines.append(f"## Layout: {layout.get('name', '')}")
        if layout.get("description"):
            lines.append(layout["description"])
        for path, description in (layout.get("rules") or {}).items():
            lines.append(f"- `{path}`: {description}")
        lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def session_start_prompt(record):
    project = record.project
    lines = ["# Rivet Context", "",
             f"**Project:** {project.name}",
             f"**Purpose:** {project.purpose}", ""]

    if project.terms:
        lines.append("## Project Terms")
        lines.append("")
        lines.append("These terms are **defined** for this project. Use them consistently:")
        lines.append("")
        for term, definition in project.terms.items():
            lines.append(_term_line(term, definition))
        lines.append("")

    deprecated = _all_deprecated(record)
    if deprecated:
        lines.append("## Deprecated Terms")
        lines.append("")
        lines.append("These terms have been replaced. **Do not use them**:")
        lines.append("")
        for old, info, scope in deprecated:
            scope_str = f" ({scope})" if scope else ""
            lines.append(f"- ~~{old}~~{scope_str} → use **{info.use}**")
            if info.reason:
                lines.append(f"  - {info.reason}")
        lines.append("")

    if project.decisions:
        lines.append("## Project Decisions")
        lines.append("")
        _bullets(lines, project.decisions)
        lines.append("")

    if project.requirements:
        lines.append("## Project Requirements")
        lines.append("")
        _bullets(lines, project.requirements)
        lines.append("")

    live = [(name, s) for name, s in record.systems.items() if s.effective_status != STATUS_DEPRECATED]
    if live:
        lines.append("## Systems")
        lines.append("")
        for name, system in live:
            lines.append(f"### {name}")
            lines.append("")
            if system.effective_status.startswith(REPLACING_PREFIX):
                lines.append(f"_Status: {system.effective_status}_")
                lines.append("")
            lines.append(system.description)
            lines.append("")
            if system.terms:
                lines.append("**Terms:**")
                for term, context in system.terms.items():
                    lines.append(_term_line(term, context))
                lines.append("")
            if system.boundaries:
                lines.append("**Boundaries:**")
                _bullets(lines, system.boundaries)
                lines.append("")

    lines.append("## Instructions")
    lines.append("")
    _bullets(lines, [
        "Use the defined terms consistently throughout this session",
        "Respect system boundaries when making changes",
        "If you notice new domain terms emerging, note them for potential capture",
        "Before ending the session, consider if any new terms or decisions should be defined",
    ])
    lines.append("")
    return "\n".join(lines)


def _defined_terms(record):
    terms = list(record.project.terms or {})
    for system in record.systems.values():
        terms.extend(system.terms or {})
    return terms


def _verification_sections(record, lines, terms_note=None):
    """Defined terms, deprecated terms and boundaries, shared by the end-of-session prompts."""
    all_terms = _defined_terms(record)
    if all_terms:
        lines.append("## Defined Terms")
        lines.append("")
        lines.append("These terms are defined. Check that you have used them consistently:")
        lines.append("")
        lines.append(", ".join(f"`{t}`" for t in all_terms))
        lines.append("")
        if terms_note:
            lines.append(terms_note)
            lines.append("")

    deprecated = _all_deprecated(record)
    if deprecated:
        lines.append("## Deprecated Terms")
        lines.append("")
        lines.append("Check that you did NOT use any of these deprecated terms:")
        lines.append("")
        for old, info, _ in deprecated:
            lines.append(f"- ~~{old}~~ → use **{info.use}**")
        lines.append("")

    bounded = [(name, s) for name, s in record.systems.items() if s.boundaries]
    if bounded:
        lines.append("## System Boundaries")
        lines.append("")
        lines.append("Verify changes respect these boundaries:")
        lines.append("")
        for name, system in bounded:
            lines.append(f"**{name}:**")
            _bullets(lines, system.boundaries)
            lines.append("")


def drift_check_prompt(record):
    lines = ["# Drift Check", "",
             "Before completing this session, verify that your changes align with the defined architecture.",
             ""]
    _verification_sections(record, lines)

    lines.extend([
        "## Checklist",
        "",
        "1. **Terminology**: Did you introduce any new domain terms? If so, should they be defined?",
        '   - Are proposed terms specific enough? Avoid generic words like "context", "data", "handler"',
        '   - Prefix with the project or system name if the term could collide ("rivet-prompt", not "prompt")',
        "2. **Deprecated terms**: Did you accidentally use any deprecated terms? Check and replace.",
        "3. **Boundaries**: Did any changes cross system boundaries that should be noted?",
        "4. **Decisions**: Did you make architectural decisions that should be recorded?",
        "5. **Requirements**: Did you discover implicit requirements that should be explicit?",
        "",
        "If any of the above apply, use the `rivet` CLI to update the project:",
        "",
        "```bash",
        'rivet term define <name> "<definition>"',
        'rivet project edit +decision "<rationale>"',
        'rivet system edit <system> +term <name> "<context>"',
        'rivet system edit <system> +decision "<rationale>"',
        "```",
        "",
        "For everything else that emerged this session, run `rivet prompt session-harvest`.",
        "",
    ])
    return "\n".join(lines)


def session_harvest_prompt(record):
    """Per-session capture of terms, decisions and requirements that emerged."""
    lines = ["# Session Harvest", "",
             "Before completing this session, capture what emerged and verify alignment "
             "with the defined architecture.",
             ""]
    _verification_sections(
        record, lines,
        terms_note="Also watch for symbols or words similar to these terms. If something looks like "
                   "an accidental variation or collision, surface it to the user.",
    )

    lines.extend([
        "## Verification",
        "",
        "1. **Deprecated terms**: Did you accidentally use any deprecated terms? Fix before committing.",
        "2. **Boundaries**: Did changes respect system boundaries?",
        "",
        "## What Emerged",
        "",
        "1. **New, changed, or deprecated terms**: domain language used consistently with a specific meaning",
        '   - Specific enough? Avoid "context", "data", "handler"',
        '   - Scoped? Prefer "rivet-prompt" over "prompt"',
        "2. **Decisions made**: architectural choices with their rationale",
        "3. **Requirements discovered**: constraints that should be explicit",
        "4. **Boundary clarifications**: what is in or out of scope for a system",
        "",
        "### Certainty levels",
        "",
        "**High certainty**: make the change through the CLI and report it:",
        "",
        "```bash",
        'rivet term define <name> "<definition>"',
        "```",
        "",
        'Then note: "Rivet: added term <name>"',
        "",
        "**Lower certainty**: ask the user before making changes.",
        "",
        "Report every rivet change in a single line at the end of your response.",
        "",
    ])
    return "\n".join(lines)


_HARVEST_EXTRACT = [
    "## What to Extract",
    "",
    "1. **New domain terms**: words or phrases used consistently with a specific meaning",
    '   - Scoped enough? Avoid generic words like "context", "handler", "data"',
    "   - Prefix with the project or system name if needed",
    "2. **Decisions made**: architectural choices with rationale",
    '   - Capture the reason, e.g. "Redis for sessions, need sub-ms latency", not "Uses Redis"',
    "3. **Requirements discovered**: atomic, testable constraints",
    '   - e.g. "Must validate JWT on every request"',
    "4. **System boundaries**: what is in or out of scope for a system",
    "5. **New systems**: cohesive code bundles that deserve their own entry",
    "",
]

_HARVEST_OUTPUT = [
    "## Output Format",
    "",
    "**Do not edit .rivet/systems.yaml directly**. Use CLI commands.",
    "",
    "Batch related operations with `rivet sync` (one commit per operation, stops at the first failure):",
    "",
    "```bash",
    "rivet sync \\",
    '  --require CLI "must parse arguments before routing" \\',
    '  --decide CLI "subcommand pattern for extensibility" \\',
    '  --define rivet-prompt "CLI command that outputs AI prompts"',
    "```",
    "",
    "Or run individual commands:",
    "",
    "```bash",
    'rivet term define <name> "<definition>"',
    'rivet project edit +decision "<rationale>"',
    'rivet system edit <Name> +requirement "<constraint>"',
    'rivet system edit <Name> +boundary "<scope clarification>"',
    "```",
    "",
    "## Guidelines",
    "",
    "- **Batch related changes** with `rivet sync`",
    "- **Newer sources are more authoritative** than older ones",
    "- **Ask before running**: propose the commands and let the user approve",
    "- **Quality over quantity**: only extract things worth locking down",
    "- **Prefer system-level** for things specific to one system",
    "- **Prefer project-level** for cross-cutting concerns",
    "",
]


def _harvest_prompt(record, title, sources):
    lines = [f"# {title}", "",
             "Systems have been defined. Now mine the project history for architectural knowledge.",
             "",
             "## Sources to Review",
             "",
             "Look through these for requirements, decisions, and domain terms:",
             ""]
    for i, source in enumerate(sources, 1):
        lines.append(f"{i}. {source}")
    lines.append("")
    lines.extend(_HARVEST_EXTRACT)

    existing = _defined_terms(record)
    if existing:
        lines.append("## Already Defined")
        lines.append("")
        lines.append("These terms are already locked (do not re-propose):")
        lines.append("")
        lines.append(", ".join(f"`{t}`" for t in existing))
        lines.append("")

    if record.systems:
        lines.append("## Existing Systems")
        lines.append("")
        for name, system in record.systems.items():
            lines.append(f"- **{name}**: {system.description}")
        lines.append("")

    lines.extend(_HARVEST_OUTPUT)
    return "\n".join(lines)


def harvest_prompt(record):
    """One-time extraction from recent conversation and project history."""
    return _harvest_prompt(record, "Rivet Initial Harvest", [
        "**Recent conversation history**: discussions that led to the current architecture",
        "**README and documentation**: stated requirements and design decisions",
        "**Commit messages**: rationale for changes",
        "**Code comments**: inline decisions and constraints",
        "**PR descriptions**: why changes were made",
    ])


def deep_harvest_prompt(record):
    """One-time extraction from old assistant transcripts, run after init."""
    return _harvest_prompt(record, "Deep Harvest", [
        "**Assistant transcripts**: past conversations about this project, largest and most recent first. "
        "Focus on architecture, naming, and design choices",
        "**README and documentation**: stated requirements and design decisions",
        "**Commit messages**: rationale for changes",
        "**Code comments**: inline decisions and constraints",
        "**PR descriptions**: why changes were made",
    ])


def init_prompt():
    """Blocking setup prompt shown while the project has no record."""
    return "\n".join([
        "# Rivet Setup Required",
        "",
        "> **Start immediately.** Do not wait for user input and do not summarize this prompt. Begin with Step 1.",
        "",
        "This project has no `.rivet/systems.yaml` yet. Analyze the codebase and create it.",
        "",
        "## Step 1: Create the Record",
        "",
        "```bash",
        'rivet init --name <project> --purpose "<one sentence: what this project does>"',
        "```",
        "",
        "## Step 2: Analyze the Codebase",
        "",
        "Read the entry points, package layout and imports. From this, identify:",
        "",
        "- **Systems**: cohesive bundles of code, each roughly 5% of the codebase",
        "- **Boundaries**: what each system IS and IS NOT responsible for",
        "- **Relationships**: how systems call or depend on each other",
        "",
        "A system is something you would draw as a box in an architecture diagram.",
        "",
        "**Good system names**: CLI, Parser, API, Auth, Database",
        "**Bad system names**: RedisCache, ZodValidator, ExpressMiddleware (implementation details)",
        "",
        "## Step 3: Add Systems and Boundaries",
        "",
        "```bash",
        'rivet system add <Name> "<what it does, from the user\'s perspective, ~100 words max>"',
        'rivet system edit <Name> +boundary "<what is in or out of scope>"',
        "```",
        "",
        "Every system needs at least one boundary.",
        "",
        "**Do not fill in during init** (these come from the deep harvest):",
        "",
        "- terms",
        "- requirements",
        "- decisions",
        "",
        "## Step 4: Define Relationships",
        "",
        "| Type | Meaning | Example |",
        "|------|---------|---------|",
        "| `calls` | Runtime invocation: A calls functions in B | CLI calls Commands |",
        "| `called_by` | Inverse of calls | Commands called_by CLI |",
        "| `depends_on` | Compile-time dependency: A needs B to exist | Parser depends_on Schema |",
        "| `used_by` | Inverse of depends_on | Schema used_by Parser |",
        "",
        "```bash",
        "rivet system link <Name> calls <Other>",
        "rivet system link <Name> depends_on <Other>",
        "```",
        "",
        "- **Prefer forward relationships**: `calls` and `depends_on` over `called_by` and `used_by`",
        "- **One direction per edge**: do not add both `calls` and `called_by` for the same pair",
        "- **Be selective**: only meaningful architectural relationships, not every function call",
        "",
        "Or batch everything in one command:",
        "",
        "```bash",
        "rivet sync \\",
        '  --add CLI "Parses arguments and routes to command handlers" \\',
        '  --boundary CLI "Argument parsing only, business logic lives in Commands" \\',
        '  --add Commands "Individual command implementations" \\',
        "  --link CLI calls Commands",
        "```",
        "",
        "## Step 5: Verify",
        "",
        "```bash",
        "rivet system list",
        "rivet context",
        "```",
        "",
        "## Step 6: Deep Harvest",
        "",
        "Once systems are defined, mine the project history for terms, decisions and requirements:",
        "",
        "```bash",
        "rivet prompt deep-harvest",
        "```",
        "",
        "---",
        "",
        "**Complete this setup before any other work.**",
        "",
    ])
