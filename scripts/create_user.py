#!/usr/bin/env python
from __future__ import annotations

import argparse
import getpass
import json
import os
from pathlib import Path

from pydantic import ValidationError


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


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an HRDesk login.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument(
        "--role",
        choices=["employee", "admin", "super_admin"],
        default="super_admin",
    )
    parser.add_argument("--department-id", type=int, default=None)
    parser.add_argument("--password", default=None, help="Prompted for when omitted.")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> dict:
    load_env_if_exists()
    args = parse_args(argv)
    password = args.password or getpass.getpass("Password: ")

    # Imported late so DATABASE_URL from .env is visible to the settings cache.
    from hrdesk.db import SessionLocal
    from hrdesk.exceptions import DomainError
    from hrdesk.schemas import UserCreate
    from hrdesk.services.users import create_user

    try:
        payload = UserCreate(
            email=args.email,
            password=password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=args.role,
            department_id=args.department_id,
        )
    except ValidationError as exc:
        raise SystemExit(f"Invalid user data: {exc}") from exc

    with SessionLocal() as db:
        try:
            user = create_user(db, None, payload)
        except DomainError as exc:
            raise SystemExit(f"{exc.code}: {exc.message}") from exc

    return {"id": user.id, "email": user.email, "role": user.role.value}


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
