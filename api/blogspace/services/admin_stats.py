"""Admin dashboard counts and paginated detail listings."""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..pagination import paginate
from .likes import annotate_blogs_with_likes

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5
STATS_TYPES = ("users", "blogs", "published-blogs", "comments")


def _count(db: Session, model, *criteria) -> int:
    return db.query(func.count(model.id)).filter(*criteria).scalar() or 0


def get_dashboard_stats(db: Session) -> schemas.DashboardStats:
    """Site-wide totals plus the five newest users and blogs."""
    blog_status_counts = dict(
        db.query(models.Blog.status, func.count(models.Blog.id))
        .group_by(models.Blog.status)
        .all()
    )

    recent_users = (
        db.query(models.User)
        .order_by(models.User.created_at.desc(), models.User.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    recent_blogs = (
        db.query(models.Blog)
        .options(joinedload(models.Blog.author))
        .order_by(models.Blog.created_at.desc(), models.Blog.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    annotate_blogs_with_likes(db, recent_blogs)

    return schemas.DashboardStats(
        stats=schemas.DashboardCounts(
            total_users=_count(db, models.User),
            total_blogs=sum(blog_status_counts.values()),
            total_comments=_count(db, models.Comment),
            published_blogs=blog_status_counts.get("published", 0),
            draft_blogs=blog_status_counts.get("draft", 0),
            archived_blogs=blog_status_counts.get("archived", 0),
        ),
        recent_activity=schemas.RecentActivity(
            users=[schemas.UserSummary.model_validate(user) for user in recent_users],
            blogs=[schemas.BlogOut.model_validate(blog) for blog in recent_blogs],
        ),
    )


def _users_page(db: Session, page: int, limit: int):
    query = db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc())
    users, pagination = paginate(query, page, limit)
    return [schemas.AdminUser.model_validate(user) for user in users], pagination


def _blogs_page(db: Session, page: int, limit: int, published_only: bool = False):
    query = db.query(models.Blog).options(joinedload(models.Blog.author))
    if published_only:
        query = query.filter(models.Blog.status == "published")
    query = query.order_by(models.Blog.created_at.desc(), models.Blog.id.desc())
    blogs, pagination = paginate(query, page, limit)
    annotate_blogs_with_likes(db, blogs)
    return [schemas.BlogOut.model_validate(blog) for blog in blogs], pagination


def _comments_page(db: Session, page: int, limit: int):
    query = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author), joinedload(models.Comment.blog))
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
    )
    comments, pagination = paginate(query, page, limit)
    return [schemas.AdminComment.model_validate(comment) for comment in comments], pagination


_DETAIL_LOADERS: dict[str, Callable[..., tuple[list[Any], schemas.Pagination]]] = {
    "users": _users_page,
    "blogs": _blogs_page,
    "published-blogs": lambda db, page, limit: _blogs_page(db, page, limit, published_only=True),
    "comments": _comments_page,
}


def get_detailed_stats(
    db: Session, stats_type: str, page: int, limit: int
) -> schemas.Page[dict[str, Any]]:
    """
    One page of users, blogs, published blogs, or comments.

    Raises 400 for an unknown ``stats_type``.
    """
    loader = _DETAIL_LOADERS.get(stats_type)
    if loader is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid stats type",
        )

    items, pagination = loader(db, page, limit)
    return schemas.Page[dict[str, Any]](
        items=[item.model_dump(by_alias=True, mode="json") for item in items],
        pagination=pagination,
        type=stats_type,
    )
