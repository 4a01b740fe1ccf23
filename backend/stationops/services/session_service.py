# Overview: Service-layer operations for session tokens; issue, validate and revoke.

"""
Session Tokens

A login issues an opaque bearer token. Only its SHA-256 digest is stored,
so a leaked sessions table cannot be replayed.

RULES:
- 32 random bytes per token (64 hex chars on the wire)
- Expires SESSION_ABSOLUTE_HOURS after login (default 24)
- Revoked after SESSION_IDLE_HOURS without use (default 2)
- Revoked on logout or when the employee is deactivated
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import UserNotFoundError
from ..models import SessionToken, User
from ..time_utils import station_now


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_HOURS", 2))


def generate_token() -> str:
    """Plaintext bearer token handed to the client once."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for an employee.

    Returns (session, token); the token is not recoverable afterwards.
    """
    if not db.session.get(User, user_id):
        raise UserNotFoundError(f"User {user_id} not found")

    plaintext_token = generate_token()
    now = station_now()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = station_now()
    session.revoked_reason = reason
    db.session.commit()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def validate_session(token: str) -> User | None:
    """
    The employee behind a bearer token, or None.

    Idle tokens and tokens of deactivated employees are revoked on the way
    out; a token past its absolute expiry is simply refused.
    """
    now = station_now()
    session = _live_session(token)
    if not session or session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return user


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a live token. False when it is unknown or already revoked."""
    session = _live_session(token)
    if not session:
        return False
    _revoke(session, reason)
    return True
