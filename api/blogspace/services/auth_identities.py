"""Authentication identity service for managing user authentication methods."""

from __future__ import annotations

import logging
from typing import Any

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..models import AuthIdentity

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def add_password_identity(
    db: Session,
    user_id: int,
    email: str,
    password: str,
) -> AuthIdentity:
    """
    Stage a password-based identity on the session without committing.

    Args:
        db: Database session
        user_id: User ID
        email: Email address (used as provider_user_id for login)
        password: Plain text password (will be hashed)
    """
    identity = AuthIdentity(
        user_id=user_id,
        provider="password",
        provider_user_id=email.lower(),  # Store lowercase for case-insensitive lookup
        secret_hash=hash_password(password),
        email=email.lower(),
    )
    db.add(identity)
    return identity


def add_oauth_identity(
    db: Session,
    user_id: int,
    provider: str,
    provider_user_id: str,
    email: str | None = None,
    provider_metadata: dict[str, Any] | None = None,
) -> AuthIdentity:
    """
    Stage an OAuth-based identity on the session without committing.

    Args:
        db: Database session
        user_id: User ID
        provider: Provider name ("google" or "facebook")
        provider_user_id: Provider's user ID
        email: Optional email address
        provider_metadata: Optional provider-specific metadata (e.g., display name)
    """
    identity = AuthIdentity(
        user_id=user_id,
        provider=provider,
        provider_user_id=provider_user_id,
        secret_hash=None,  # OAuth doesn't use passwords
        email=email,
        provider_metadata=provider_metadata or {},
    )
    db.add(identity)
    return identity


def find_identity_by_password(
    db: Session,
    email: str,
    password: str,
) -> AuthIdentity | None:
    """
    Find and verify a password-based identity by email.

    Returns:
        AuthIdentity if found and password matches, None otherwise
    """
    identity = (
        db.query(AuthIdentity)
        .filter(
            AuthIdentity.provider == "password",
            AuthIdentity.provider_user_id == email.lower(),
        )
        .first()
    )

    if not identity:
        return None

    if not identity.secret_hash:
        return None

    if not verify_password(password, identity.secret_hash):
        return None

    return identity


def find_identity_by_oauth(
    db: Session,
    provider: str,
    provider_user_id: str,
) -> AuthIdentity | None:
    """
    Find an OAuth-based identity.
    """
    return (
        db.query(AuthIdentity)
        .filter(
            AuthIdentity.provider == provider,
            AuthIdentity.provider_user_id == provider_user_id,
        )
        .first()
    )
