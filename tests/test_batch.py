"""Tests for the batch runner: one commit per operation, no rollback."""

import pytest

from rivet.batch import BatchOperation, run_batch
from rivet.store import Store


def test_batch_applies_in_order_with_one_commit_each(store: Store, commits) -> None:
    result = run_batch(store, [
        BatchOperation("add", ("Router", "handles routing")),
        BatchOperation("require", ("Router", "must support nested routes")),
        BatchOperation("symbol", ("Router", "createRouter")),
        BatchOperation("link", ("Router", "calls", "Parser")),
        BatchOperation("deprecate", ("Router", "Router2")),
    ])

    assert result.status == "applied"
    assert len(result.applied) == 5
    assert len(commits.calls) == 5

    router = store.read().systems["Router"]
    assert router.requirements == ["must support nested routes"]
    assert router.status == "replacing:Router2"
    assert list(router.terms) == ["createRouter"]


def test_batch_stops_at_first_failure_and_keeps_prior_effects(store: Store, commits) -> None:
    result = run_batch(store, [
        BatchOperation("add", ("A", "valid")),
        BatchOperation("add", ("A", "duplicate")),
        BatchOperation("add", ("C", "never runs")),
    ])

    assert result.status == "partial"
    assert [op.args[0] for op, _ in result.applied] == ["A"]
    failed_op, error = result.failed
    assert failed_op == BatchOperation("add", ("A", "duplicate"))
    assert "already exists" in str(error)

    systems = store.read().systems
    assert systems["A"].description == "valid"
    assert "C" not in systems
    assert commits.messages == ["rivet: system add A"]


def test_first_operation_failing_is_failed_status(store: Store) -> None:
    result = run_batch(store, [BatchOperation("require", ("Ghost", "x"))])

    assert result.status == "failed"
    assert result.applied == []


@pytest.mark.parametrize(
    "operation, message",
    [
        (BatchOperation("explode", ()), "Unknown batch operation"),
        (BatchOperation("add", ("OnlyName",)), "takes 2 argument"),
        (BatchOperation("edit", ("Router",)), "at least 2"),
    ],
)
def test_malformed_operations_fail_validation(store: Store, operation, message) -> None:
    result = run_batch(store, [operation])

    assert result.status == "failed"
    assert message in str(result.failed[1])


def test_edit_operation_uses_field_selectors(store: Store) -> None:
    result = run_batch(store, [
        BatchOperation("add", ("Router", "x")),
        BatchOperation("edit", ("Router", "+boundary", "No rendering")),
        BatchOperation("define", ("route", "a path pattern")),
        BatchOperation("term-deprecate", ("route", "path", "shorter")),
    ])

    assert result.status == "applied"
    record = store.read()
    assert record.systems["Router"].boundaries == ["No rendering"]
    assert record.project.deprecated_terms["route"].use == "path"
