# Overview: Service-layer operations for auth; password hashing and staff accounts.

"""
Staff accounts and password checks.

Passwords are hashed with bcrypt (cost factor 12). Roles are one of
cashier, supervisor, owner; route decorators gate operations by role.
"""

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..models import User
from ..models.auth import VALID_ROLES
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, optional_text
from .concurrency import atomic

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(session, username: str, password: str, role: str = "cashier", full_name: str | None = None) -> User:
    username = optional_text(username, "username", max_length=50)
    if not username:
        raise ValidationError("username is required")
    role = (role or "").strip().lower()
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of {list(VALID_ROLES)}")

    user = User(
        username=username,
        password_hash=hash_password(password),
        full_name=optional_text(full_name, "full_name", max_length=100),
        role=role,
        is_active=True,
    )
    try:
        with atomic(session):
            session.add(user)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Username '{username}' already exists")
    return user


def authenticate(session, username: str, password: str) -> User | None:
    """Return the active user for these credentials, or None."""
    user = session.query(User).filter_by(username=username).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    session.commit()
    return user
