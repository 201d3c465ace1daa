"""Run several engine operations in order, one commit each.

There is no overall transaction: when an operation fails the run stops and
everything before it stays written and committed, so each change can be
reverted on its own.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from rivet import engine
from rivet.edits import AddBoundary, AddDecision, AddRequirement, AddTerm, parse_system_edit
from rivet.errors import RivetError, ValidationError
from rivet.model import context_from_arg

log = logging.getLogger("rivet.batch")


@dataclass(frozen=True)
class BatchOperation:
    op: str
    args: tuple = ()

    def describe(self):
        return " ".join([self.op] + [str(a) for a in self.args])


@dataclass
class BatchResult:
    applied: list = field(default_factory=list)
    failed: Optional[tuple] = None

    @property
    def status(self):
        if self.failed is None:
            return "applied"
        return "partial" if self.applied else "failed"


# ---------------------------------------------------------------------------
# Operation table
# ---------------------------------------------------------------------------


def _edit(store, name, field_selector, *rest):
    return engine.edit_system(store, name, parse_system_edit(field_selector, rest))


def _require(store, name, statement):
    return engine.edit_system(store, name, AddRequirement(statement))


def _decide(store, name, statement):
    return engine.edit_system(store, name, AddDecision(statement))


def _symbol(store, name, symbol, context=None):
    return engine.edit_system(store, name, AddTerm(symbol, context_from_arg(context)))


def _boundary(store, name, statement):
    return engine.edit_system(store, name, AddBoundary(statement))


# op -> (handler, min args, max args)
OPERATIONS = {
    "add": (engine.add_system, 2, 2),
    "edit": (_edit, 2, None),
    "link": (engine.link_system, 3, 3),
    "deprecate": (engine.deprecate_system, 1, 2),
    "require": (_require, 2, 2),
    "decide": (_decide, 2, 2),
    "symbol": (_symbol, 2, 3),
    "boundary": (_boundary, 2, 2),
    "define": (engine.define_term, 2, 2),
    "term-rename": (engine.rename_term, 2, 2),
    "term-deprecate": (engine.deprecate_term, 2, 3),
    "term-delete": (engine.delete_term, 1, 1),
    "system-term-deprecate": (engine.deprecate_system_term, 3, 4),
}


def _dispatch(store, operation):
    if operation.op not in OPERATIONS:
        raise ValidationError(
            f"Unknown batch operation: {operation.op} (valid: {', '.join(OPERATIONS)})"
        )
    handler, min_args, max_args = OPERATIONS[operation.op]
    count = len(operation.args)
    if count < min_args or (max_args is not None and count > max_args):
        if max_args is None:
            expected = f"at least {min_args}"
        elif min_args == max_args:
            expected = str(min_args)
        else:
            expected = f"{min_args}-{max_args}"
        raise ValidationError(f"{operation.op} takes {expected} argument(s), got {count}")
    return handler(store, *operation.args)


def run_batch(store, operations):
    """Apply operations in order, stopping at the first failure."""
    result = BatchResult()
    for index, operation in enumerate(operations):
        try:
            op_result = _dispatch(store, operation)
        except RivetError as e:
            log.info("Batch stopped at operation %d (%s): %s", index + 1, operation.describe(), e)
            result.failed = (operation, e)
            break
        result.applied.append((operation, op_result))
    return result
