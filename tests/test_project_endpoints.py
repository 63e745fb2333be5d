from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import date

from fastapi.testclient import TestClient

from hrdesk.db import get_db
from hrdesk.main import app
from hrdesk.models import ActiveStatus, Client, Project, Role, User
from hrdesk.security import get_current_actor
from hrdesk.services.access import Actor

EMPLOYEE = Actor(id=5, role=Role.EMPLOYEE)
ADMIN = Actor(id=10, role=Role.ADMIN)


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


def _user(user_id: int) -> User:
    return User(
        id=user_id,
        email=f"user{user_id}@example.com",
        first_name=f"User{user_id}",
        last_name="Test",
        role=Role.EMPLOYEE,
        is_active=True,
    )


def _client_row() -> Client:
    return Client(
        id=3,
        name="Acme",
        email="ops@acme.example",
        country="TR",
        state="Istanbul",
        city="Istanbul",
        status=ActiveStatus.ACTIVE,
    )


def _project(project_id: int, members: list[User]) -> Project:
    project = Project(
        id=project_id,
        project_name="Portal",
        project_description="Customer portal",
        project_technology="FastAPI",
        client_id=3,
        project_start_date=date(2026, 1, 5),
        project_end_date=None,
        status=ActiveStatus.ACTIVE,
        created_by=10,
    )
    project.client = _client_row()
    project.team_members = members
    return project


class _ScalarResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class _FakeProjectDB:
    def __init__(self, projects: list[Project] | None = None):
        self.projects = {project.id: project for project in projects or []}
        self.users = {user_id: _user(user_id) for user_id in (5, 6, 7)}
        self.client = _client_row()
        self.statements: list[object] = []
        self.deleted: list[object] = []
        self.commits = 0

    def _params(self, statement) -> list[object]:  # type: ignore[no-untyped-def]
        return list(statement.compile().params.values())

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        if model is Client and pk == self.client.id:
            return self.client
        if model is User:
            return self.users.get(pk)
        return None

    def scalar(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        if "count(" in str(statement):
            return len(self.projects)
        if "FROM projects" in str(statement):
            for value in self._params(statement):
                if value in self.projects:
                    return self.projects[value]
        return None

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        sql = str(statement)
        if "FROM projects" in sql:
            return _ScalarResult(list(self.projects.values()))
        if "FROM users" in sql:
            requested: set[int] = set()
            for value in self._params(statement):
                if isinstance(value, (list, tuple)):
                    requested.update(value)
            return _ScalarResult([user for user_id, user in self.users.items() if user_id in requested])
        return _ScalarResult([])

    def execute(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        rows = [(project.client_id, project.client.name, 1) for project in self.projects.values()]
        return _ScalarResult(rows)

    def add(self, obj: object) -> None:
        if isinstance(obj, Project) and obj.id is None:
            obj.id = 40
            self.projects[obj.id] = obj

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        return

    def refresh(self, _obj: object) -> None:
        return

    def delete(self, obj: object) -> None:
        self.deleted.append(obj)


class ProjectEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _client(self, fake_db: _FakeProjectDB, actor: Actor) -> TestClient:
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        app.dependency_overrides[get_current_actor] = lambda: actor
        return TestClient(app)

    def test_employee_list_requires_membership(self) -> None:
        fake_db = _FakeProjectDB([_project(1, [_user(5)])])
        client = self._client(fake_db, EMPLOYEE)

        response = client.get("/api/projects")

        self.assertEqual(response.status_code, 200)
        sql = str(fake_db.statements[-1])
        self.assertIn("EXISTS", sql)
        self.assertIn("project_members", sql)
        self.assertEqual(response.json()[0]["team_members"][0]["id"], 5)

    def test_employee_cannot_open_foreign_project(self) -> None:
        client = self._client(_FakeProjectDB([_project(1, [_user(6)])]), EMPLOYEE)

        response = client.get("/api/projects/1")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["message"], "You are not a member of this project")

    def test_member_employee_can_open_project(self) -> None:
        client = self._client(_FakeProjectDB([_project(1, [_user(5), _user(6)])]), EMPLOYEE)

        response = client.get("/api/projects/1")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["client_name"], "Acme")

    def test_employee_cannot_create_project(self) -> None:
        client = self._client(_FakeProjectDB(), EMPLOYEE)

        response = client.post(
            "/api/projects",
            json={
                "project_name": "Side",
                "project_description": "Nope",
                "project_technology": "Python",
                "client_id": 3,
                "team_members": [5],
                "project_start_date": "2026-02-01",
            },
        )

        self.assertEqual(response.status_code, 403)

    def test_admin_creates_project_with_team(self) -> None:
        fake_db = _FakeProjectDB()
        client = self._client(fake_db, ADMIN)

        response = client.post(
            "/api/projects",
            json={
                "project_name": " Billing ",
                "project_description": "Invoices",
                "project_technology": "FastAPI, PostgreSQL",
                "client_id": 3,
                "team_members": [5, 6, 5],
                "project_start_date": "2026-02-01",
                "project_end_date": "2026-08-01",
            },
        )

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["project_name"], "Billing")
        self.assertEqual(sorted(member["id"] for member in payload["team_members"]), [5, 6])
        self.assertEqual(payload["client_name"], "Acme")
        self.assertEqual(payload["created_by"], 10)

    def test_project_end_before_start_is_rejected(self) -> None:
        client = self._client(_FakeProjectDB(), ADMIN)

        response = client.post(
            "/api/projects",
            json={
                "project_name": "Backwards",
                "project_description": "Dates",
                "project_technology": "Python",
                "client_id": 3,
                "team_members": [5],
                "project_start_date": "2026-02-01",
                "project_end_date": "2026-01-01",
            },
        )

        self.assertEqual(response.status_code, 400)

    def test_unknown_team_member_is_rejected(self) -> None:
        client = self._client(_FakeProjectDB(), ADMIN)

        response = client.post(
            "/api/projects",
            json={
                "project_name": "Ghost",
                "project_description": "Missing member",
                "project_technology": "Python",
                "client_id": 3,
                "team_members": [5, 404],
                "project_start_date": "2026-02-01",
            },
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "One or more team members not found")

    def test_create_rejects_whitespace_only_technology(self) -> None:
        fake_db = _FakeProjectDB()
        client = self._client(fake_db, ADMIN)

        response = client.post(
            "/api/projects",
            json={
                "project_name": "Blank",
                "project_description": "Has no stack",
                "project_technology": "   ",
                "client_id": 3,
                "team_members": [5],
                "project_start_date": "2026-02-01",
            },
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(fake_db.projects, {})

    def test_update_rejects_whitespace_only_project_name(self) -> None:
        project = _project(1, [_user(5)])
        fake_db = _FakeProjectDB([project])
        client = self._client(fake_db, ADMIN)

        response = client.put("/api/projects/1", json={"project_name": "   "})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(project.project_name, "Portal")
        self.assertEqual(fake_db.commits, 0)

    def test_employee_stats_count_only_member_projects(self) -> None:
        fake_db = _FakeProjectDB([_project(1, [_user(5)])])
        client = self._client(fake_db, EMPLOYEE)

        response = client.get("/api/projects/stats/overview")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["projects_by_client"], [{"client_id": 3, "client_name": "Acme", "count": 1}])
        # Three counts plus the per-client breakdown.
        self.assertEqual(len(fake_db.statements), 4)
        for statement in fake_db.statements:
            sql = str(statement)
            self.assertIn("EXISTS", sql)
            self.assertIn("project_members", sql)
            self.assertIn(5, statement.compile().params.values())

    def test_admin_stats_are_not_membership_scoped(self) -> None:
        fake_db = _FakeProjectDB([_project(1, [_user(5)])])
        client = self._client(fake_db, ADMIN)

        response = client.get("/api/projects/stats/overview")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(all("EXISTS" not in str(statement) for statement in fake_db.statements))

    def test_employee_cannot_delete_project(self) -> None:
        fake_db = _FakeProjectDB([_project(1, [_user(5)])])
        client = self._client(fake_db, EMPLOYEE)

        response = client.delete("/api/projects/1")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(fake_db.deleted, [])

    def test_admin_deletes_project(self) -> None:
        project = _project(1, [_user(5)])
        fake_db = _FakeProjectDB([project])
        client = self._client(fake_db, ADMIN)

        response = client.delete("/api/projects/1")

        self.assertEqual(response.status_code, 204)
        self.assertEqual(fake_db.deleted, [project])


if __name__ == "__main__":
    unittest.main()
