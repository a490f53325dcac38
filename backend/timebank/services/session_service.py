# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Every mutating endpoint needs an authenticated actor. Tokens are
cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout from SESSION_TTL_HOURS (default 12h)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout or when the employee is deactivated
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Employee
from ..time_utils import utcnow
from .access_service import AccessScope, resolve_scope


SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    """Authenticated employee plus the access scope resolved once per request."""
    employee: Employee
    session: SessionToken
    scope: AccessScope


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _session_ttl() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 12))


def create_session(
    employee_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for an employee.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    employee = db.session.get(Employee, employee_id)
    if not employee or not employee.is_active:
        raise ValueError("Employee not found or inactive")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        employee_id=employee_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _session_ttl(),
        user_agent=user_agent,
        ip_address=ip_address,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, expired, revoked, idle too long,
    or the employee was deactivated. Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter(
        SessionToken.token_hash == hash_token(token),
        SessionToken.revoked_at.is_(None),
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        session.revoked_at = now
        db.session.commit()
        return None

    employee = session.employee
    if not employee or not employee.is_active:
        session.revoked_at = now
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(employee=employee, session=session, scope=resolve_scope(employee))


def revoke_session(token: str) -> bool:
    """Revoke session token. Returns True if session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter(
        SessionToken.token_hash == hash_token(token),
        SessionToken.revoked_at.is_(None),
    ).first()

    if not session:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_all_sessions(employee_id: int) -> int:
    """
    Revoke all active sessions for an employee.

    WHY: Password change or deactivation forces re-authentication everywhere.
    """
    now = utcnow()
    sessions = db.session.query(SessionToken).filter(
        SessionToken.employee_id == employee_id,
        SessionToken.revoked_at.is_(None),
    ).all()

    for session in sessions:
        session.revoked_at = now

    db.session.commit()
    return len(sessions)
