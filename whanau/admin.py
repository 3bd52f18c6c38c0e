"""CLI admin tool for accounts and quick graph checks.

Usage:
    python -m whanau.admin init-db
    python -m whanau.admin create-user --username=mere --password=Secret123 --role=ADMIN
    python -m whanau.admin list-users
    python -m whanau.admin describe --a=<person id> --b=<person id>
"""

from __future__ import annotations

import argparse
from pathlib import Path

import psycopg

from .ancestry import configured_max_depth
from .auth import hash_password, validate_password
from .db import db_conn
from .graph import PgGraph
from .kinship import classify_relationship
from .models import UserRole

_SCHEMA_SQL = Path(__file__).resolve().parent.parent / "sql" / "schema.sql"


def _ensure_schema(conn: psycopg.Connection) -> None:
    if _SCHEMA_SQL.exists():
        conn.execute(_SCHEMA_SQL.read_text(encoding="utf-8"))
        conn.commit()


def cmd_init_db(args: argparse.Namespace) -> None:
    with db_conn() as conn:
        _ensure_schema(conn)
    print(f"Schema applied from {_SCHEMA_SQL}.")


def cmd_create_user(args: argparse.Namespace) -> None:
    role = args.role.upper().strip()
    if role not in {r.value for r in UserRole}:
        raise SystemExit(f"Invalid role '{args.role}'. Must be one of ADMIN, EDITOR, MEMBER.")

    pw_err = validate_password(args.password)
    if pw_err:
        raise SystemExit(f"Weak password: {pw_err}")

    pw_hash = hash_password(args.password)
    with db_conn() as conn:
        conn.execute(
            """
            INSERT INTO app_user (username, display_name, password_hash, role, person_id)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (username) DO UPDATE
              SET password_hash = EXCLUDED.password_hash,
                  display_name = EXCLUDED.display_name,
                  role = EXCLUDED.role,
                  person_id = COALESCE(EXCLUDED.person_id, app_user.person_id),
                  updated_at = now()
            """.strip(),
            (args.username, args.display_name or args.username, pw_hash, role, args.person_id),
        )
        conn.commit()
    print(f"User '{args.username}' ({role}) created/updated.")


def cmd_list_users(args: argparse.Namespace) -> None:
    with db_conn() as conn:
        rows = conn.execute(
            """
            SELECT id, username, display_name, role, person_id
            FROM app_user
            ORDER BY username
            """.strip()
        ).fetchall()

    if not rows:
        print("No users.")
        return
    print(f"{'ID':<38} {'Username':<20} {'Display Name':<25} {'Role':<8} {'Person':<20}")
    print("-" * 114)
    for uid, uname, dname, role, person_id in rows:
        print(f"{str(uid):<38} {uname:<20} {(dname or '-'):<25} {role:<8} {(person_id or '-'):<20}")


def cmd_describe(args: argparse.Namespace) -> None:
    depth = args.max_depth or configured_max_depth()
    with db_conn() as conn:
        graph = PgGraph(conn)
        for pid in (args.a, args.b):
            if graph.get_person(pid) is None:
                raise SystemExit(f"Person not found: {pid}")
        rel = classify_relationship(graph, args.a, args.b, max_depth=depth)
    print(rel.label)


def main() -> int:
    parser = argparse.ArgumentParser(description="Whanau admin CLI")
    sub = parser.add_subparsers(dest="command")

    # init-db
    sub.add_parser("init-db", help="Apply sql/schema.sql")

    # create-user
    p = sub.add_parser("create-user", help="Create or update a login")
    p.add_argument("--username", required=True)
    p.add_argument("--password", required=True)
    p.add_argument("--role", default="MEMBER", choices=["ADMIN", "EDITOR", "MEMBER"])
    p.add_argument("--display-name", default=None)
    p.add_argument("--person-id", default=None, help="Person record this account represents")

    # list-users
    sub.add_parser("list-users", help="List all users")

    # describe
    p = sub.add_parser("describe", help="Print what person B is to person A")
    p.add_argument("--a", required=True)
    p.add_argument("--b", required=True)
    p.add_argument("--max-depth", type=int, default=None)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return 1

    dispatch = {
        "init-db": cmd_init_db,
        "create-user": cmd_create_user,
        "list-users": cmd_list_users,
        "describe": cmd_describe,
    }
    dispatch[args.command](args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
