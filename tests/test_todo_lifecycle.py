from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from hrdesk.exceptions import ValidationFailed
from hrdesk.models import TodoPriority, TodoStatus
from hrdesk.services.todo_lifecycle import (
    TodoState,
    apply_result,
    as_utc,
    derive_status,
    effective_status,
    initial_state,
    parse_priority,
    parse_status,
    plan,
    plan_due_date_change,
    plan_status_change,
)

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


class TodoLifecycleTests(unittest.TestCase):
    def test_create_with_past_due_date_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            initial_state(NOW - timedelta(seconds=1), NOW)
        self.assertEqual(ctx.exception.message, "Due date cannot be in the past")

    def test_create_due_now_or_later_starts_pending(self) -> None:
        for due in (NOW, NOW + timedelta(days=3)):
            with self.subTest(due=due):
                result = initial_state(due, NOW)
                self.assertEqual(result.status, TodoStatus.PENDING)
                self.assertIsNone(result.completed_at)

    def test_completing_sets_completed_at(self) -> None:
        current = TodoState(status=TodoStatus.PENDING, due_date=NOW + timedelta(days=1))
        result = plan_status_change(current, "completed", NOW)
        self.assertEqual(result.status, TodoStatus.COMPLETED)
        self.assertEqual(result.completed_at, NOW)

    def test_completing_twice_keeps_original_timestamp(self) -> None:
        first_completion = NOW - timedelta(hours=5)
        current = TodoState(
            status=TodoStatus.COMPLETED,
            due_date=NOW + timedelta(days=1),
            completed_at=first_completion,
        )
        result = plan_status_change(current, TodoStatus.COMPLETED, NOW)
        self.assertEqual(result.completed_at, first_completion)

    def test_reopening_past_due_todo_goes_straight_to_overdue(self) -> None:
        current = TodoState(
            status=TodoStatus.COMPLETED,
            due_date=NOW - timedelta(days=1),
            completed_at=NOW - timedelta(days=2),
        )
        result = plan_status_change(current, "pending", NOW)
        self.assertEqual(result.status, TodoStatus.OVERDUE)
        self.assertIsNone(result.completed_at)

    def test_client_cannot_force_overdue_on_future_todo(self) -> None:
        current = TodoState(status=TodoStatus.PENDING, due_date=NOW + timedelta(days=1))
        result = plan_status_change(current, "overdue", NOW)
        self.assertEqual(result.status, TodoStatus.PENDING)

    def test_pending_todo_becomes_overdue_on_next_status_write(self) -> None:
        created_at = NOW
        current = TodoState(status=TodoStatus.PENDING, due_date=created_at + timedelta(seconds=1))
        later = created_at + timedelta(seconds=2)
        self.assertEqual(plan_status_change(current, "pending", later).status, TodoStatus.OVERDUE)

    def test_read_recompute_yields_overdue_without_mutating(self) -> None:
        todo = SimpleNamespace(status=TodoStatus.PENDING, due_date=NOW + timedelta(seconds=1), completed_at=None)
        self.assertEqual(effective_status(todo, NOW), TodoStatus.PENDING)
        self.assertEqual(effective_status(todo, NOW + timedelta(seconds=2)), TodoStatus.OVERDUE)
        self.assertEqual(todo.status, TodoStatus.PENDING)

    def test_due_date_equal_to_now_is_not_overdue(self) -> None:
        self.assertEqual(derive_status(TodoStatus.PENDING, NOW, NOW), TodoStatus.PENDING)

    def test_moving_due_date_forward_clears_overdue(self) -> None:
        current = TodoState(status=TodoStatus.OVERDUE, due_date=NOW - timedelta(days=1))
        result = plan_due_date_change(current, NOW + timedelta(days=1), NOW)
        self.assertEqual(result.status, TodoStatus.PENDING)

    def test_due_date_change_into_past_is_rejected(self) -> None:
        current = TodoState(status=TodoStatus.PENDING, due_date=NOW + timedelta(days=1))
        with self.assertRaises(ValidationFailed):
            plan_due_date_change(current, NOW - timedelta(minutes=1), NOW)

    def test_due_date_change_keeps_completion(self) -> None:
        completed_at = NOW - timedelta(hours=1)
        current = TodoState(
            status=TodoStatus.COMPLETED,
            due_date=NOW + timedelta(days=1),
            completed_at=completed_at,
        )
        result = plan_due_date_change(current, NOW + timedelta(days=5), NOW)
        self.assertEqual(result.status, TodoStatus.COMPLETED)
        self.assertEqual(result.completed_at, completed_at)

    def test_combined_plan_judges_status_against_new_due_date(self) -> None:
        current = TodoState(status=TodoStatus.OVERDUE, due_date=NOW - timedelta(days=1))
        result = plan(
            current,
            now=NOW,
            requested_status="pending",
            requested_due_date=NOW + timedelta(days=2),
        )
        self.assertEqual(result.status, TodoStatus.PENDING)

    def test_completed_iff_completed_at_across_transitions(self) -> None:
        todo = SimpleNamespace(status=TodoStatus.PENDING, due_date=NOW + timedelta(days=1), completed_at=None)
        for requested in ("completed", "pending", "completed", "overdue", "completed", "completed"):
            apply_result(todo, plan_status_change(TodoState.of(todo), requested, NOW))
            self.assertEqual(todo.status is TodoStatus.COMPLETED, todo.completed_at is not None)

    def test_unknown_values_raise_validation_errors(self) -> None:
        with self.assertRaises(ValidationFailed) as status_ctx:
            parse_status("archived")
        self.assertEqual(status_ctx.exception.message, "Invalid status value")
        with self.assertRaises(ValidationFailed) as priority_ctx:
            parse_priority("urgent")
        self.assertEqual(priority_ctx.exception.message, "Invalid priority value")

    def test_parsing_is_case_insensitive(self) -> None:
        self.assertEqual(parse_status(" Completed "), TodoStatus.COMPLETED)
        self.assertEqual(parse_priority("HIGH"), TodoPriority.HIGH)

    def test_naive_datetimes_are_treated_as_utc(self) -> None:
        naive = datetime(2026, 3, 2, 12, 0, 0)
        self.assertEqual(as_utc(naive), NOW)


if __name__ == "__main__":
    unittest.main()
