"""Audit logging utility for admin actions."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def log_admin_action(
    db: Session,
    actor_id: int,
    action: str,
    target_type: str | None = None,
    target_id: int | None = None,
    note: str | None = None,
    commit: bool = True,
) -> models.AuditLog:
    """
    Log an admin action to the audit log.

    Args:
        db: Database session
        actor_id: ID of the admin performing the action
        action: Action name (e.g., "deactivate_user", "change_role", "delete_user")
        target_type: Type of target (e.g., "user", "blog")
        target_id: ID of the target entity
        note: Additional context about the action
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        The created AuditLog entry
    """
    audit_entry = models.AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        note=note,
    )
    db.add(audit_entry)
    if commit:
        db.commit()
        db.refresh(audit_entry)
    logger.info(
        "Admin action %s by user %s on %s %s", action, actor_id, target_type, target_id
    )
    return audit_entry
