"""rivet: keep a project's architecture record in .rivet/systems.yaml.

Subcommands (setup):
  init [--name NAME] [--purpose TEXT]     Create .rivet/systems.yaml here

Subcommands (systems):
  system add NAME DESCRIPTION             Add a system
  system show NAME                        Show one system
  system list [--status STATUS]           List systems (active|deprecated|replacing)
  system edit NAME FIELD [VALUE ...]      Edit one field (see below)
  system link NAME TYPE TARGET            Add relationship (calls|called_by|depends_on|used_by)
  system deprecate NAME [--replaced-by NEW]
  system term-deprecate NAME OLD NEW [--reason TEXT]
  decide SYSTEM STATEMENT                 Shorthand for system edit +decision
  lock SYSTEM IDENTIFIER [CONTEXT]        Shorthand for system edit +term

Subcommands (project):
  project show
  project edit FIELD [VALUE ...]          name, purpose, +/-principle, +/-term,
                                          +/-decision, +/-requirement
  term define TERM DEFINITION
  term rename OLD NEW
  term deprecate OLD NEW [--reason TEXT]
  term delete TERM
  term list
  glossary define|rename|delete|list ...  Glossary terms (rename keeps 'previously')

Subcommands (batch and read):
  sync --add NAME DESC --require SYSTEM STMT ...   One commit per operation
  context [SYSTEM ...]                    Markdown dump of the record
  prompt [session-start|drift-check|session-harvest|harvest|deep-harvest|init]

System edit fields:
  description TEXT | status active|deprecated|replacing:NAME
  +requirement/-requirement TEXT | +decision/-decision TEXT
  +term NAME [CONTEXT] | -term NAME
  +relationship/-relationship TYPE TARGET | +boundary/-boundary TEXT

Options:
  -v, --verbose                           Debug logging on stderr
"""

import logging
import os
import sys

from rivet import codec, locator, prompts, queries
from rivet import engine
from rivet.batch import BatchOperation, run_batch
from rivet.config import log_level_from_env
from rivet.edits import AddDecision, AddTerm, parse_project_edit, parse_system_edit
from rivet.errors import RivetError, ValidationError
from rivet.model import context_from_arg
from rivet.store import open_store

log = logging.getLogger("rivet")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store():
    return open_store(locator.default_start_dir())


def _record():
    return _store().read()


def _report(result):
    for w in result.warnings:
        print(f"WARNING: {w}", file=sys.stderr)
    print(result.message)
    return 0


def _pop_flag(args, flag):
    """Remove `flag VALUE` from args. Returns VALUE or None."""
    if flag not in args:
        return None
    i = args.index(flag)
    if i + 1 >= len(args):
        raise ValidationError(f"{flag} requires a value")
    value = args[i + 1]
    del args[i:i + 2]
    return value


def _need(args, count, usage):
    if len(args) < count:
        raise ValidationError(f"Usage: rivet {usage}")


def _link_args(args):
    """Accept `NAME TYPE TARGET` or `NAME --depends-on TARGET`."""
    if len(args) == 3 and args[1].startswith("--"):
        return args[0], args[1][2:].replace("-", "_"), args[2]
    _need(args, 3, "system link NAME TYPE TARGET")
    return args[0], args[1], args[2]


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_init(args):
    name = _pop_flag(args, "--name")
    purpose = _pop_flag(args, "--purpose")
    base_dir = locator.default_start_dir()
    if locator.exists(base_dir):
        raise ValidationError(f".rivet/systems.yaml already exists at {locator.locate(base_dir)}")
    name = name or os.path.basename(os.path.abspath(base_dir))
    path = codec.create(name, purpose or f"{name} project", base_dir)
    print(f"Created {path}")
    return 0


def cmd_system(args):
    _need(args, 1, "system {add|show|list|edit|link|deprecate|term-deprecate} ...")
    sub, rest = args[0], args[1:]

    if sub == "add":
        _need(rest, 2, "system add NAME DESCRIPTION")
        return _report(engine.add_system(_store(), rest[0], " ".join(rest[1:])))

    elif sub == "show":
        _need(rest, 1, "system show NAME")
        print(queries.show_system(_record(), rest[0]))
        return 0

    elif sub == "list":
        status = _pop_flag(rest, "--status")
        print(queries.list_systems(_record(), status))
        return 0

    elif sub == "edit":
        _need(rest, 2, "system edit NAME FIELD [VALUE ...]")
        edit = parse_system_edit(rest[1], rest[2:])
        return _report(engine.edit_system(_store(), rest[0], edit))

    elif sub == "link":
        name, rel_type, target = _link_args(rest)
        return _report(engine.link_system(_store(), name, rel_type, target))

    elif sub == "deprecate":
        replaced_by = _pop_flag(rest, "--replaced-by")
        _need(rest, 1, "system deprecate NAME [--replaced-by NEW]")
        return _report(engine.deprecate_system(_store(), rest[0], replaced_by))

    elif sub == "term-deprecate":
        reason = _pop_flag(rest, "--reason") or ""
        _need(rest, 3, "system term-deprecate NAME OLD NEW [--reason TEXT]")
        return _report(engine.deprecate_system_term(_store(), rest[0], rest[1], rest[2], reason))

    raise ValidationError(f"Unknown system subcommand: {sub}")


def cmd_term(args):
    _need(args, 1, "term {define|rename|deprecate|delete|list} ...")
    sub, rest = args[0], args[1:]

    if sub == "define":
        _need(rest, 2, "term define TERM DEFINITION")
        return _report(engine.define_term(_store(), rest[0], " ".join(rest[1:])))
    elif sub == "rename":
        _need(rest, 2, "term rename OLD NEW")
        return _report(engine.rename_term(_store(), rest[0], rest[1]))
    elif sub == "deprecate":
        reason = _pop_flag(rest, "--reason") or ""
        _need(rest, 2, "term deprecate OLD NEW [--reason TEXT]")
        return _report(engine.deprecate_term(_store(), rest[0], rest[1], reason))
    elif sub == "delete":
        _need(rest, 1, "term delete TERM")
        return _report(engine.delete_term(_store(), rest[0]))
    elif sub == "list":
        print(queries.list_terms(_record()))
        return 0

    raise ValidationError(f"Unknown term subcommand: {sub}")


def cmd_glossary(args):
    _need(args, 1, "glossary {define|rename|delete|list} ...")
    sub, rest = args[0], args[1:]

    if sub == "define":
        _need(rest, 2, "glossary define TERM DEFINITION")
        return _report(engine.define_glossary_term(_store(), rest[0], " ".join(rest[1:])))
    elif sub == "rename":
        _need(rest, 2, "glossary rename OLD NEW")
        return _report(engine.rename_glossary_term(_store(), rest[0], rest[1]))
    elif sub == "delete":
        _need(rest, 1, "glossary delete TERM")
        return _report(engine.delete_glossary_term(_store(), rest[0]))
    elif sub == "list":
        print(queries.list_glossary(_record()))
        return 0

    raise ValidationError(f"Unknown glossary subcommand: {sub}")


def cmd_project(args):
    _need(args, 1, "project {show|edit} ...")
    sub, rest = args[0], args[1:]

    if sub == "show":
        print(queries.show_project(_record()))
        return 0
    elif sub == "edit":
        _need(rest, 1, "project edit FIELD [VALUE ...]")
        return _report(engine.edit_project(_store(), parse_project_edit(rest[0], rest[1:])))

    raise ValidationError(f"Unknown project subcommand: {sub}")


def cmd_decide(args):
    _need(args, 2, "decide SYSTEM STATEMENT")
    return _report(engine.edit_system(_store(), args[0], AddDecision(" ".join(args[1:]))))


def cmd_lock(args):
    _need(args, 2, "lock SYSTEM IDENTIFIER [CONTEXT]")
    context = " ".join(args[2:]) or None
    return _report(engine.edit_system(_store(), args[0], AddTerm(args[1], context_from_arg(context))))


# flag -> (batch op, number of values)
_SYNC_FLAGS = {
    "--add": ("add", 2),
    "--require": ("require", 2),
    "--decide": ("decide", 2),
    "--symbol": ("symbol", 2),
    "--boundary": ("boundary", 2),
    "--define": ("define", 2),
    "--link": ("link", 3),
    "--deprecate": ("deprecate", 1),
}


def parse_sync_args(args):
    """Turn sync flags into BatchOperations, in command-line order."""
    operations = []
    i = 0
    while i < len(args):
        flag = args[i]
        if flag == "--replaced-by":
            if not operations or operations[-1].op != "deprecate" or i + 1 >= len(args):
                raise ValidationError("--replaced-by must follow --deprecate NAME")
            last = operations.pop()
            operations.append(BatchOperation("deprecate", last.args + (args[i + 1],)))
            i += 2
            continue
        if flag not in _SYNC_FLAGS:
            raise ValidationError(f"Unknown sync flag '{flag}'")
        op, count = _SYNC_FLAGS[flag]
        values = args[i + 1:i + 1 + count]
        if len(values) < count:
            raise ValidationError(f"{flag} takes {count} value(s)")
        if op == "link" and values[1].startswith("--"):
            values = [values[0], values[1][2:].replace("-", "_"), values[2]]
        operations.append(BatchOperation(op, tuple(values)))
        i += 1 + count
    return operations


def cmd_sync(args):
    operations = parse_sync_args(args)
    if not operations:
        raise ValidationError("Usage: rivet sync --add NAME DESC [--require SYSTEM STMT ...]")

    result = run_batch(_store(), operations)
    for _, op_result in result.applied:
        _report(op_result)
    if result.failed is not None:
        operation, error = result.failed
        print(f"Error: {operation.describe()}: {error}", file=sys.stderr)
        skipped = len(operations) - len(result.applied) - 1
        print(f"Applied {len(result.applied)} of {len(operations)} operation(s); "
              f"{skipped} not attempted.", file=sys.stderr)
        return 1
    return 0


def cmd_context(args):
    print(prompts.render_context(_record(), args or None))
    return 0


_PROMPTS = {
    "session-start": prompts.session_start_prompt,
    "drift-check": prompts.drift_check_prompt,
    "session-harvest": prompts.session_harvest_prompt,
    "harvest": prompts.harvest_prompt,
    "deep-harvest": prompts.deep_harvest_prompt,
}


def cmd_prompt(args):
    prompt_type = args[0] if args else "session-start"
    if prompt_type not in prompts.PROMPT_TYPES:
        raise ValidationError(
            f"Unknown prompt type: {prompt_type} (use: {', '.join(prompts.PROMPT_TYPES)})"
        )

    start_dir = locator.default_start_dir()
    if not locator.exists(start_dir):
        print(prompts.init_prompt())
        return 0
    if prompt_type == "init":
        # Already initialized: nothing to set up.
        return 0

    print(_PROMPTS[prompt_type](_record()))
    return 0


COMMANDS = {
    "init": cmd_init,
    "system": cmd_system,
    "term": cmd_term,
    "glossary": cmd_glossary,
    "project": cmd_project,
    "decide": cmd_decide,
    "lock": cmd_lock,
    "sync": cmd_sync,
    "context": cmd_context,
    "prompt": cmd_prompt,
}


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = False
    for flag in ("-v", "--verbose"):
        while flag in args:
            args.remove(flag)
            verbose = True
    level = logging.DEBUG if verbose else log_level_from_env()
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    log.setLevel(level)

    if not args or args[0] in ("-h", "--help", "help"):
        print(__doc__)
        return 0 if args else 1

    cmd = args[0]
    if cmd not in COMMANDS:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        print(__doc__)
        return 1

    try:
        return COMMANDS[cmd](args[1:])
    except RivetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
