# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing
and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper, lower and a digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ValidationError
from ..extensions import db
from ..models import Employee, ROLES, ROLE_EMPLOYEE
from . import schedule_service
from .session_service import revoke_all_sessions


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    code = "PasswordValidationError"


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash is treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_employee(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_EMPLOYEE,
    department: str | None = None,
    work_schedule: dict | None = None,
    lunch_break_hours: float = 0.0,
    late_tolerance: int = 10,
    overtime_limit: float | None = None,
) -> Employee:
    """
    Create an employee with a bcrypt password hash.

    Raises ValidationError for a bad email, role or schedule, a duplicate
    email, or a weak password.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("email is invalid")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    if db.session.query(Employee.id).filter(Employee.email == email).first():
        raise ValidationError("Email already exists", email=email)

    employee = Employee(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        department=(department or None),
        work_schedule=schedule_service.normalize_schedule(work_schedule) if work_schedule else None,
        lunch_break_hours=lunch_break_hours,
        late_tolerance=late_tolerance,
        overtime_limit=overtime_limit,
        is_active=True,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def authenticate(email: str, password: str) -> Employee | None:
    """
    Authenticate with email and password.

    Returns the Employee if credentials are valid and the account is active,
    None otherwise.
    """
    if not email or not password:
        return None

    employee = db.session.query(Employee).filter(
        Employee.email == email.strip().lower(),
        Employee.is_active.is_(True),
    ).first()

    if not employee:
        return None

    if verify_password(password, employee.password_hash):
        return employee

    return None


def change_password(employee: Employee, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", employee.password_hash):
        raise ValidationError("Current password is incorrect")
    employee.password_hash = hash_password(new_password)
    db.session.commit()
    revoke_all_sessions(employee.id)


def set_active(employee: Employee, is_active: bool) -> Employee:
    employee.is_active = is_active
    db.session.commit()
    if not is_active:
        revoke_all_sessions(employee.id)
    return employee
