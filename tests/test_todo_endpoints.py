from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from hrdesk.db import get_db
from hrdesk.main import app
from hrdesk.models import AuditLog, Project, Role, Todo, TodoPriority, TodoStatus, User
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor

EMPLOYEE = Actor(id=5, role=Role.EMPLOYEE)
ADMIN = Actor(id=10, role=Role.ADMIN)
SUPER_ADMIN = Actor(id=1, role=Role.SUPER_ADMIN)


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _todo(
    todo_id: int,
    *,
    employee_id: int = 5,
    assigned_by: int = 10,
    status: TodoStatus = TodoStatus.PENDING,
    due_in: timedelta = timedelta(days=2),
    completed_at: datetime | None = None,
    hidden: bool = False,
) -> Todo:
    return Todo(
        id=todo_id,
        title=f"Task {todo_id}",
        description=None,
        notes=None,
        tags=[],
        due_date=_now() + due_in,
        priority=TodoPriority.MEDIUM,
        status=status,
        employee_id=employee_id,
        assigned_by=assigned_by,
        project_id=None,
        is_hidden_for_employee=hidden,
        completed_at=completed_at,
    )


class _ScalarResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class _FakeTodoDB:
    def __init__(self, todos: list[Todo] | None = None, users: list[User] | None = None):
        self.todos = {todo.id: todo for todo in todos or []}
        self.users = {user.id: user for user in users or []}
        self.projects: dict[int, Project] = {}
        self.statements: list[object] = []
        self.scalar_values: list[int] = []
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.commits = 0

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        if model is Todo:
            return self.todos.get(pk)
        if model is User:
            return self.users.get(pk)
        if model is Project:
            return self.projects.get(pk)
        return None

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        if "FROM todos" not in str(statement):
            return _ScalarResult([])
        requested_ids: set[int] | None = None
        for value in statement.compile().params.values():
            if isinstance(value, (list, tuple)):
                requested_ids = set(value)
        rows = [todo for todo in self.todos.values() if requested_ids is None or todo.id in requested_ids]
        return _ScalarResult(sorted(rows, key=lambda todo: todo.id))

    def scalar(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        return self.scalar_values.pop(0) if self.scalar_values else 0

    def add(self, obj: object) -> None:
        if isinstance(obj, Todo) and obj.id is None:
            obj.id = 100 + len(self.todos)
            self.todos[obj.id] = obj
        self.added.append(obj)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        return

    def refresh(self, _obj: object) -> None:
        return

    def delete(self, obj: object) -> None:
        self.deleted.append(obj)


class TodoEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _client(self, fake_db: _FakeTodoDB, actor: Actor) -> TestClient:
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        app.dependency_overrides[get_current_actor] = lambda: actor
        return TestClient(app)

    def test_employee_list_is_scoped_to_own_visible_todos(self) -> None:
        fake_db = _FakeTodoDB([_todo(1)])
        client = self._client(fake_db, EMPLOYEE)

        response = client.get("/api/todos", params={"employee_id": 99})

        self.assertEqual(response.status_code, 200)
        sql = str(fake_db.statements[-1])
        self.assertIn("todos.employee_id = ", sql)
        self.assertIn("is_hidden_for_employee IS NOT", sql)
        self.assertNotIn(99, fake_db.statements[-1].compile().params.values())
        self.assertIn(5, fake_db.statements[-1].compile().params.values())

    def test_list_rejects_unknown_status_filter(self) -> None:
        client = self._client(_FakeTodoDB(), ADMIN)

        response = client.get("/api/todos", params={"status": "archived"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Invalid status value")

    def test_list_reports_recomputed_overdue_status(self) -> None:
        stale = _todo(1, due_in=timedelta(hours=-3))
        client = self._client(_FakeTodoDB([stale]), ADMIN)

        response = client.get("/api/todos")

        self.assertEqual(response.status_code, 200)
        item = response.json()[0]
        self.assertEqual(item["status"], "overdue")
        self.assertTrue(item["is_overdue"])
        self.assertEqual(stale.status, TodoStatus.PENDING)

    def test_get_unknown_todo_returns_not_found(self) -> None:
        client = self._client(_FakeTodoDB(), SUPER_ADMIN)

        response = client.get("/api/todos/404")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_employee_cannot_read_hidden_todo(self) -> None:
        client = self._client(_FakeTodoDB([_todo(1, hidden=True)]), EMPLOYEE)

        response = client.get("/api/todos/1")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "FORBIDDEN")

    def test_admin_creates_pending_todo(self) -> None:
        employee = User(id=5, email="e@example.com", first_name="E", last_name="M", role=Role.EMPLOYEE, is_active=True)
        fake_db = _FakeTodoDB(users=[employee])
        client = self._client(fake_db, ADMIN)

        response = client.post(
            "/api/todos",
            json={
                "title": "  Prepare report  ",
                "due_date": (_now() + timedelta(days=1)).isoformat(),
                "priority": "HIGH",
                "employee_id": 5,
                "tags": ["finance", " "],
            },
        )

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["title"], "Prepare report")
        self.assertEqual(payload["status"], "pending")
        self.assertEqual(payload["priority"], "high")
        self.assertEqual(payload["assigned_by"], 10)
        self.assertEqual(payload["tags"], ["finance"])
        self.assertIsNone(payload["completed_at"])
        self.assertTrue(any(isinstance(row, AuditLog) and row.action == "TODO_CREATED" for row in fake_db.added))

    def test_create_with_past_due_date_is_rejected(self) -> None:
        employee = User(id=5, email="e@example.com", first_name="E", last_name="M", role=Role.EMPLOYEE, is_active=True)
        fake_db = _FakeTodoDB(users=[employee])
        client = self._client(fake_db, ADMIN)

        response = client.post(
            "/api/todos",
            json={
                "title": "Late",
                "due_date": (_now() - timedelta(minutes=5)).isoformat(),
                "employee_id": 5,
            },
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Due date cannot be in the past")
        self.assertEqual(fake_db.commits, 0)

    def test_create_with_unknown_priority_is_rejected(self) -> None:
        client = self._client(_FakeTodoDB(), ADMIN)

        response = client.post(
            "/api/todos",
            json={
                "title": "Task",
                "due_date": (_now() + timedelta(days=1)).isoformat(),
                "priority": "urgent",
                "employee_id": 5,
            },
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Invalid priority value")

    def test_employee_cannot_create_todo(self) -> None:
        client = self._client(_FakeTodoDB(), EMPLOYEE)

        response = client.post(
            "/api/todos",
            json={"title": "Self", "due_date": (_now() + timedelta(days=1)).isoformat(), "employee_id": 5},
        )

        self.assertEqual(response.status_code, 403)

    def test_employee_cannot_change_visibility(self) -> None:
        todo = _todo(1)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, EMPLOYEE)

        response = client.put("/api/todos/1", json={"is_hidden_for_employee": True})

        self.assertEqual(response.status_code, 403)
        self.assertFalse(todo.is_hidden_for_employee)
        self.assertEqual(fake_db.commits, 0)

    def test_employee_cannot_update_someone_elses_todo(self) -> None:
        fake_db = _FakeTodoDB([_todo(1, employee_id=6)])
        client = self._client(fake_db, EMPLOYEE)

        response = client.put("/api/todos/1", json={"notes": "mine now"})

        self.assertEqual(response.status_code, 403)

    def test_update_moving_due_date_forward_clears_overdue(self) -> None:
        todo = _todo(1, status=TodoStatus.OVERDUE, due_in=timedelta(days=-1))
        client = self._client(_FakeTodoDB([todo]), ADMIN)

        response = client.put("/api/todos/1", json={"due_date": (_now() + timedelta(days=3)).isoformat()})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "pending")
        self.assertEqual(todo.status, TodoStatus.PENDING)

    def test_update_rejects_whitespace_only_title(self) -> None:
        todo = _todo(1)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, ADMIN)

        response = client.put("/api/todos/1", json={"title": "   "})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(todo.title, "Task 1")
        self.assertEqual(fake_db.commits, 0)

    def test_update_strips_title(self) -> None:
        todo = _todo(1)
        client = self._client(_FakeTodoDB([todo]), ADMIN)

        response = client.put("/api/todos/1", json={"title": "  Renamed  "})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(todo.title, "Renamed")

    def test_employee_sending_null_visibility_is_not_a_visibility_change(self) -> None:
        todo = _todo(1)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, EMPLOYEE)

        response = client.put("/api/todos/1", json={"is_hidden_for_employee": None, "notes": "on it"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(todo.notes, "on it")
        self.assertFalse(todo.is_hidden_for_employee)

    def test_employee_completes_own_todo(self) -> None:
        todo = _todo(1)
        client = self._client(_FakeTodoDB([todo]), EMPLOYEE)

        response = client.patch("/api/todos/1/status", json={"status": "completed"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "completed")
        self.assertIsNotNone(response.json()["completed_at"])
        self.assertIsNotNone(todo.completed_at)

    def test_reopening_past_due_completed_todo_yields_overdue(self) -> None:
        todo = _todo(
            1,
            status=TodoStatus.COMPLETED,
            due_in=timedelta(days=-1),
            completed_at=_now() - timedelta(days=2),
        )
        client = self._client(_FakeTodoDB([todo]), ADMIN)

        response = client.patch("/api/todos/1/status", json={"status": "pending"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "overdue")
        self.assertIsNone(todo.completed_at)

    def test_bulk_status_is_all_or_nothing_on_permission(self) -> None:
        todos = [_todo(1), _todo(2, assigned_by=11), _todo(3)]
        fake_db = _FakeTodoDB(todos)
        client = self._client(fake_db, ADMIN)

        response = client.post("/api/todos/bulk-status", json={"todo_ids": [1, 2, 3], "status": "completed"})

        self.assertEqual(response.status_code, 403)
        self.assertTrue(all(todo.status is TodoStatus.PENDING for todo in todos))
        self.assertTrue(all(todo.completed_at is None for todo in todos))
        self.assertEqual(fake_db.commits, 0)

    def test_bulk_status_with_missing_ids_is_not_found(self) -> None:
        todo = _todo(1)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, ADMIN)

        response = client.post("/api/todos/bulk-status", json={"todo_ids": [1, 42], "status": "completed"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Todos not found: 42")
        self.assertIs(todo.status, TodoStatus.PENDING)

    def test_bulk_status_requires_ids(self) -> None:
        client = self._client(_FakeTodoDB(), ADMIN)

        response = client.post("/api/todos/bulk-status", json={"status": "completed"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Todo IDs array is required")

    def test_bulk_status_rejects_unknown_status_without_mutation(self) -> None:
        todo = _todo(1)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, ADMIN)

        response = client.post("/api/todos/bulk-status", json={"todo_ids": [1], "status": "done"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(fake_db.commits, 0)

    def test_bulk_status_updates_every_todo_in_one_commit(self) -> None:
        todos = [_todo(1), _todo(3, employee_id=6)]
        fake_db = _FakeTodoDB(todos)
        client = self._client(fake_db, ADMIN)

        response = client.post("/api/todos/bulk-status", json={"todo_ids": [1, 3, 3], "status": "completed"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": 2, "status": "completed"})
        self.assertTrue(all(todo.completed_at is not None for todo in todos))
        # One commit for the batch, one for the audit row.
        self.assertEqual(fake_db.commits, 2)

    def test_super_admin_deletes_any_todo(self) -> None:
        todo = _todo(1, employee_id=6, assigned_by=11)
        fake_db = _FakeTodoDB([todo])
        client = self._client(fake_db, SUPER_ADMIN)

        response = client.delete("/api/todos/1")

        self.assertEqual(response.status_code, 204)
        self.assertEqual(fake_db.deleted, [todo])

    def test_employee_cannot_delete_own_todo(self) -> None:
        fake_db = _FakeTodoDB([_todo(1)])
        client = self._client(fake_db, EMPLOYEE)

        response = client.delete("/api/todos/1")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(fake_db.deleted, [])

    def test_stats_derive_pending_from_totals(self) -> None:
        fake_db = _FakeTodoDB()
        fake_db.scalar_values = [5, 2, 1]
        client = self._client(fake_db, SUPER_ADMIN)

        response = client.get("/api/todos/stats")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"pending": 2, "completed": 2, "overdue": 1, "total": 5, "overdue_count": 1},
        )
        self.assertIn("todos.due_date < ", str(fake_db.statements[-1]))

    def test_admin_stats_count_only_todos_they_assigned(self) -> None:
        fake_db = _FakeTodoDB()
        fake_db.scalar_values = [3, 1, 1]
        client = self._client(fake_db, ADMIN)

        response = client.get("/api/todos/stats", params={"employee_id": 6})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total"], 3)
        self.assertEqual(len(fake_db.statements), 3)
        for statement in fake_db.statements:
            self.assertIn("todos.assigned_by = ", str(statement))
            self.assertIn(10, statement.compile().params.values())


if __name__ == "__main__":
    unittest.main()
