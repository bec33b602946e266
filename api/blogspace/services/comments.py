"""Comment threads: one level of replies under each top-level comment."""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy.orm import Session, joinedload

from .. import models
from .likes import annotate_comments_with_likes


def load_comment_tree(
    db: Session,
    blog_id: int,
    viewer: models.User | None = None,
) -> list[models.Comment]:
    """
    Active top-level comments for a blog, newest first, each with ``replies``
    set to its active replies, oldest first. Authors are eager-loaded and
    like counts attached.
    """
    top_level = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(
            models.Comment.blog_id == blog_id,
            models.Comment.parent_id.is_(None),
            models.Comment.is_active.is_(True),
        )
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
        .all()
    )
    if not top_level:
        return []

    replies = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(
            models.Comment.parent_id.in_([comment.id for comment in top_level]),
            models.Comment.is_active.is_(True),
        )
        .order_by(models.Comment.created_at.asc(), models.Comment.id.asc())
        .all()
    )

    annotate_comments_with_likes(db, top_level + replies, viewer)

    replies_by_parent: dict[int, list[models.Comment]] = defaultdict(list)
    for reply in replies:
        replies_by_parent[reply.parent_id].append(reply)
    for comment in top_level:
        comment.replies = replies_by_parent.get(comment.id, [])

    return top_level


def get_active_comment(db: Session, comment_id: int) -> models.Comment | None:
    return (
        db.query(models.Comment)
        .filter(models.Comment.id == comment_id, models.Comment.is_active.is_(True))
        .first()
    )
