from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    return url


@contextmanager
def db_conn(schema: str | None = None) -> Iterator[psycopg.Connection]:
    """Yield a database connection.

    If *schema* is provided it is put first on ``search_path`` (useful for
    running the app against a scratch schema); otherwise ``public`` is used.
    """
    with psycopg.connect(get_database_url()) as conn:
        if schema:
            conn.execute(f"SET search_path TO {schema}, public")
        yield conn
