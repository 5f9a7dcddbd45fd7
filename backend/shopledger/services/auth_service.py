# Overview: Service-layer operations for operator accounts and password checks.

"""
Authentication Service

WHY: Every sale and stock change is attributed to an operator username.
Accounts are created by an administrator through the CLI; the service
never ships a built-in list of credentials.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from shopledger.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,80}$")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

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
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(username: str, password: str) -> User:
    """
    Create an operator account.

    Raises PasswordValidationError for weak passwords and ValueError for
    malformed or duplicate usernames.
    """
    username = (username or "").strip()
    if not USERNAME_PATTERN.match(username):
        raise ValueError("Username must be 3-80 characters: letters, digits, '.', '_' or '-'")

    if db.session.query(User).filter_by(username=username).first():
        raise ValueError(f"User '{username}' already exists")

    user = User(username=username, password_hash=hash_password(password), is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


def set_password(username: str, password: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise ValueError(f"User '{username}' not found")
    user.password_hash = hash_password(password)
    db.session.commit()
    return user


def deactivate_user(username: str) -> User:
    """Disable an account and revoke its open sessions."""
    from .session_service import revoke_all_user_sessions

    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise ValueError(f"User '{username}' not found")
    user.is_active = False
    revoke_all_user_sessions(user.id)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user for valid credentials, None otherwise.

    Unknown usernames and wrong passwords are indistinguishable to callers.
    """
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
