# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12). Self-registration creates
STAFF users only; ADMIN accounts come from the CLI.
"""

import logging

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_STAFF, ROLES
from ..time_utils import utcnow
from ..validation import EMAIL_RE, ConflictError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """Validate, then hash with bcrypt. Stored as a str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def create_user(name: str, email: str, password: str, role: str = ROLE_STAFF) -> User:
    """
    Raises:
        ValidationError: Missing name, bad email or unknown role
        PasswordValidationError: Password too short
        ConflictError: Email already registered
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("email must be a valid email address")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    if db.session.query(User).filter(User.email == email).first():
        raise ConflictError("Email is already registered")

    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.session.add(user)
    db.session.commit()
    logger.info("User %s created with role %s", email, role)
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the active user for these credentials, else None. Stamps last_login_at."""
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if user is None or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
