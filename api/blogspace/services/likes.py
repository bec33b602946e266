"""
Like counts and toggles for blogs and comments.

Counts are fetched for a whole page of objects with one GROUP BY query each
and attached to the ORM objects as ``likes_count`` / ``is_liked``.
"""

from __future__ import annotations

from typing import TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models

_LIKE_TABLES = {
    models.Blog: (models.BlogLike, models.BlogLike.blog_id),
    models.Comment: (models.CommentLike, models.CommentLike.comment_id),
}

Target = TypeVar("Target", models.Blog, models.Comment)


def _annotate(
    db: Session,
    objects: list[Target],
    viewer: models.User | None,
) -> list[Target]:
    if not objects:
        return objects

    like_model, target_column = _LIKE_TABLES[type(objects[0])]
    ids = [obj.id for obj in objects]

    like_counts = (
        db.query(target_column, func.count(like_model.id).label("count"))
        .filter(target_column.in_(ids))
        .group_by(target_column)
        .all()
    )
    like_count_map = {target_id: count for target_id, count in like_counts}

    liked_ids: set[int] = set()
    if viewer is not None:
        liked_ids = {
            row[0]
            for row in db.query(target_column)
            .filter(target_column.in_(ids), like_model.user_id == viewer.id)
            .all()
        }

    for obj in objects:
        obj.likes_count = like_count_map.get(obj.id, 0)
        obj.is_liked = obj.id in liked_ids

    return objects


def annotate_blogs_with_likes(
    db: Session,
    blogs: list[models.Blog],
    viewer: models.User | None = None,
) -> list[models.Blog]:
    """Attach likes_count and is_liked (for ``viewer``) to each blog."""
    return _annotate(db, blogs, viewer)


def annotate_comments_with_likes(
    db: Session,
    comments: list[models.Comment],
    viewer: models.User | None = None,
) -> list[models.Comment]:
    """Attach likes_count and is_liked (for ``viewer``) to each comment."""
    return _annotate(db, comments, viewer)


def count_likes(db: Session, target: models.Blog | models.Comment) -> int:
    like_model, target_column = _LIKE_TABLES[type(target)]
    return db.query(func.count(like_model.id)).filter(target_column == target.id).scalar() or 0


def toggle_like(db: Session, target: models.Blog | models.Comment, user: models.User) -> tuple[bool, int]:
    """
    Add the user's like if absent, remove it if present.

    Returns:
        (is_liked, likes_count) after the toggle
    """
    like_model, target_column = _LIKE_TABLES[type(target)]
    existing = (
        db.query(like_model)
        .filter(target_column == target.id, like_model.user_id == user.id)
        .first()
    )

    if existing:
        db.delete(existing)
        is_liked = False
    else:
        db.add(like_model(**{target_column.key: target.id, "user_id": user.id}))
        is_liked = True

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request already inserted the same like
        db.rollback()
        is_liked = True

    return is_liked, count_likes(db, target)
