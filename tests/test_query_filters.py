from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from hrdesk.exceptions import ValidationFailed
from hrdesk.models import Leave, Project, Role, Todo
from hrdesk.services.access import Actor, authorization
from hrdesk.services.pagination import PageRequest, page_info
from hrdesk.services.query_filters import apply_record_filter, apply_search
from hrdesk.settings import get_settings


def _sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class RecordFilterQueryTests(unittest.TestCase):
    def test_employee_todo_filter_compiles_to_owner_and_visibility(self) -> None:
        record_filter = authorization.todo_list(Actor(id=5, role=Role.EMPLOYEE)).require()
        statement = apply_record_filter(select(Todo), Todo, record_filter)

        sql = _sql(statement)
        self.assertIn("todos.employee_id = ", sql)
        self.assertIn("todos.is_hidden_for_employee IS NOT true", sql)
        self.assertIn(5, statement.compile().params.values())

    def test_super_admin_filter_adds_no_where_clause(self) -> None:
        record_filter = authorization.todo_list(Actor(id=1, role=Role.SUPER_ADMIN)).require()
        statement = apply_record_filter(select(Todo), Todo, record_filter)
        self.assertNotIn("WHERE", _sql(statement))

    def test_project_membership_becomes_exists_subquery(self) -> None:
        record_filter = authorization.project_list(Actor(id=3, role=Role.EMPLOYEE)).require()
        sql = _sql(apply_record_filter(select(Project), Project, record_filter))
        self.assertIn("EXISTS", sql)
        self.assertIn("project_members", sql)

    def test_search_ors_across_columns(self) -> None:
        sql = _sql(apply_search(select(Todo), "  report ", Todo.title, Todo.notes))
        self.assertIn("ILIKE", sql)
        self.assertIn(" OR ", sql)

    def test_blank_search_is_ignored(self) -> None:
        self.assertNotIn("WHERE", _sql(apply_search(select(Leave), "   ", Leave.reason)))


class PaginationTests(unittest.TestCase):
    def setUp(self) -> None:
        get_settings.cache_clear()

    def tearDown(self) -> None:
        get_settings.cache_clear()

    def test_defaults_and_offsets(self) -> None:
        page = PageRequest.build(3, None)
        self.assertEqual(page.limit, 10)
        self.assertEqual(page.offset, 20)

    def test_limit_is_clamped_to_configured_maximum(self) -> None:
        with patch.dict(os.environ, {"MAX_PAGE_SIZE": "25"}, clear=False):
            get_settings.cache_clear()
            self.assertEqual(PageRequest.build(1, 500).limit, 25)

    def test_page_below_one_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailed):
            PageRequest.build(0, 10)

    def test_page_info_flags(self) -> None:
        info = page_info(PageRequest(page=2, limit=10), 25)
        self.assertEqual(info.total_pages, 3)
        self.assertTrue(info.has_next_page)
        self.assertTrue(info.has_prev_page)

        last = page_info(PageRequest(page=3, limit=10), 25)
        self.assertFalse(last.has_next_page)

        empty = page_info(PageRequest(page=1, limit=10), 0)
        self.assertEqual(empty.total_pages, 0)
        self.assertFalse(empty.has_prev_page)


if __name__ == "__main__":
    unittest.main()
