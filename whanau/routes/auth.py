"""Auth routes: login, logout, current-user info."""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from ..auth import (
    clear_session_cookie,
    create_jwt,
    get_current_user,
    set_session_cookie,
    verify_password,
)
from ..db import db_conn

router = APIRouter(prefix="/auth", tags=["auth"])

# ---------------------------------------------------------------------------
# Login rate limiting: 5 failed attempts per IP per 5-minute window (in-memory).
# ---------------------------------------------------------------------------

_RATE_MAX_ATTEMPTS = 5
_RATE_WINDOW_SECS = 300

# ip -> list of failed attempt timestamps
_login_attempts: dict[str, list[float]] = defaultdict(list)


def _check_rate_limit(client_ip: str) -> None:
    """Raise 429 if the IP has too many recent failed login attempts."""
    cutoff = time.monotonic() - _RATE_WINDOW_SECS
    _login_attempts[client_ip] = [t for t in _login_attempts[client_ip] if t > cutoff]
    if len(_login_attempts[client_ip]) >= _RATE_MAX_ATTEMPTS:
        raise HTTPException(
            status_code=429,
            detail=f"Too many login attempts. Try again in {_RATE_WINDOW_SECS // 60} minutes.",
        )


def _record_failed_attempt(client_ip: str) -> None:
    _login_attempts[client_ip].append(time.monotonic())


def _clear_attempts(client_ip: str) -> None:
    _login_attempts.pop(client_ip, None)


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login")
def login(body: LoginRequest, request: Request, response: Response) -> dict[str, Any]:
    """Authenticate with username + password, set session cookie."""
    client_ip = request.client.host if request.client else "unknown"
    _check_rate_limit(client_ip)

    with db_conn() as conn:
        row = conn.execute(
            """
            SELECT id, username, display_name, password_hash, role, person_id
            FROM app_user
            WHERE username = %s
            """.strip(),
            (body.username,),
        ).fetchone()

    if not row or not verify_password(body.password, row[3]):
        _record_failed_attempt(client_ip)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user_id, username, display_name, _pw_hash, role, person_id = row
    set_session_cookie(response, create_jwt(user_id=str(user_id), username=username, role=role))
    _clear_attempts(client_ip)

    return {
        "ok": True,
        "user": {
            "id": str(user_id),
            "username": username,
            "display_name": display_name,
            "role": role,
            "person_id": person_id,
        },
    }


@router.post("/logout")
def logout(response: Response) -> dict[str, bool]:
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/me")
def me(request: Request) -> dict[str, Any]:
    user = get_current_user(request)
    with db_conn() as conn:
        row = conn.execute(
            "SELECT display_name, person_id FROM app_user WHERE id = %s",
            (user["id"],),
        ).fetchone()
    return {
        "user": user,
        "display_name": row[0] if row else None,
        "person_id": row[1] if row else None,
    }
