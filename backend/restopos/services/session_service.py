# Overview: Service-layer operations for session tokens; issues and validates bearer tokens.

"""
Session Token Management

Tokens are 32 random bytes (64 hex chars) handed to the client once; only
their SHA-256 hash is stored. A token stops working after the absolute
timeout, after the idle timeout, or when revoked.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..models import SessionToken, User
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """Authenticated principal for one request: who, and with which role."""
    user: User
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(session, user_id: int) -> tuple[SessionToken, str]:
    """
    Create a new session token for a user.

    Returns (session_record, plaintext_token); only the hash is persisted.
    """
    if session.get(User, user_id) is None:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()
    record = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        is_revoked=False,
    )
    session.add(record)
    session.commit()
    return record, plaintext_token


def _revoke(session, record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    session.commit()


def validate_session(session, token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user.

    Returns None for unknown, expired, idle, or revoked tokens and for
    deactivated users. Refreshes last_used_at on success.
    """
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if record is None:
        return None

    now = utcnow()
    if record.expires_at < now:
        return None

    if now - record.last_used_at > _idle_timeout():
        _revoke(session, record, "Idle timeout")
        return None

    user = record.user
    if user is None or not user.is_active:
        _revoke(session, record, "User account deactivated")
        return None

    record.last_used_at = now
    session.commit()
    return SessionContext(user=user, session=record)


def revoke_session(session, token: str, reason: str = "User logout") -> bool:
    """Revoke a token; returns False if it was not an active session."""
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if record is None:
        return False
    _revoke(session, record, reason)
    return True
