"""Username helpers for accounts created through OAuth."""

from __future__ import annotations

import re

from sqlalchemy.orm import Session

from ..models import User

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def is_username_taken(db: Session, username: str) -> bool:
    return db.query(User.id).filter(User.username == username).first() is not None


def sanitize_username(seed: str) -> str:
    """Reduce an arbitrary string to a valid username stem (may still be too short)."""
    return _INVALID_CHARS.sub("", seed)[:USERNAME_MAX_LENGTH]


def generate_unique_username(db: Session, email: str | None, provider_user_id: str) -> str:
    """
    Derive a free username for a new OAuth account.

    Starts from the email's local part (or ``user_<provider id>``), strips
    invalid characters, pads short stems, then appends ``_1``, ``_2``, ...
    until unused. The result always fits USERNAME_MAX_LENGTH.
    """
    seed = email.split("@")[0] if email else f"user_{provider_user_id}"
    base = sanitize_username(seed)
    if len(base) < USERNAME_MIN_LENGTH:
        base = sanitize_username(f"user_{base or provider_user_id}")
    if len(base) < USERNAME_MIN_LENGTH:
        base = "user"

    candidate = base
    counter = 0
    while is_username_taken(db, candidate):
        counter += 1
        suffix = f"_{counter}"
        candidate = f"{base[: USERNAME_MAX_LENGTH - len(suffix)]}{suffix}"
    return candidate
