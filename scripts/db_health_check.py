#!/usr/bin/env python
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text


EXPECTED_HEAD = "0002_links_reports_holidays"
REQUIRED_TABLES = (
    "departments",
    "users",
    "clients",
    "projects",
    "project_members",
    "todos",
    "leaves",
    "reports",
    "links",
    "holidays",
    "audit_logs",
)


def load_env_if_exists() -> None:
    env_file = Path(".env")
    if not env_file.exists():
        return
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def run() -> dict:
    load_env_if_exists()
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL not found (.env or env vars).")

    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    def sample_ids(conn, sql: str) -> list[int]:
        return [row[0] for row in conn.execute(text(sql)).fetchall()]

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})

        if "todos" in tables:
            completed_without_timestamp = sample_ids(
                conn,
                """
                select id from todos
                where status = 'completed' and completed_at is null
                limit 20
                """,
            )
            add(
                "todo_completed_without_completed_at",
                "fail" if completed_without_timestamp else "ok",
                {"sample_ids": completed_without_timestamp},
            )

            open_with_timestamp = sample_ids(
                conn,
                """
                select id from todos
                where status <> 'completed' and completed_at is not null
                limit 20
                """,
            )
            add(
                "todo_open_with_completed_at",
                "fail" if open_with_timestamp else "ok",
                {"sample_ids": open_with_timestamp},
            )

        if "leaves" in tables:
            inverted_ranges = sample_ids(
                conn,
                "select id from leaves where from_date > to_date limit 20",
            )
            add(
                "leave_inverted_date_range",
                "fail" if inverted_ranges else "ok",
                {"sample_ids": inverted_ranges},
            )

        if "project_members" in tables and "users" in tables:
            orphan_members = sample_ids(
                conn,
                """
                select pm.project_id
                from project_members pm
                left join users u on u.id = pm.user_id
                where u.id is null
                limit 20
                """,
            )
            add(
                "project_member_orphan_user",
                "fail" if orphan_members else "ok",
                {"sample_project_ids": orphan_members},
            )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
