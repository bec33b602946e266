"""User profile assembly and the follow graph."""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from .likes import annotate_blogs_with_likes

logger = logging.getLogger(__name__)

PROFILE_BLOG_LIMIT = 10


def get_followers(db: Session, user_id: int) -> list[models.User]:
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.follower_id == models.User.id)
        .filter(models.Follow.following_id == user_id)
        .order_by(models.Follow.created_at.asc(), models.Follow.id.asc())
        .all()
    )


def get_following(db: Session, user_id: int) -> list[models.User]:
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.following_id == models.User.id)
        .filter(models.Follow.follower_id == user_id)
        .order_by(models.Follow.created_at.asc(), models.Follow.id.asc())
        .all()
    )


def count_followers(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(models.Follow.id))
        .filter(models.Follow.following_id == user_id)
        .scalar()
        or 0
    )


def annotate_user_with_follows(db: Session, user: models.User) -> models.User:
    """Attach ``followers`` and ``following`` lists to a user for serialization."""
    user.followers = get_followers(db, user.id)
    user.following = get_following(db, user.id)
    return user


def build_profile(db: Session, user: models.User) -> schemas.UserProfileData:
    """Public profile: the user, their latest published blogs, and blog totals."""
    annotate_user_with_follows(db, user)

    blogs = (
        db.query(models.Blog)
        .filter(models.Blog.author_id == user.id, models.Blog.status == "published")
        .order_by(models.Blog.created_at.desc(), models.Blog.id.desc())
        .limit(PROFILE_BLOG_LIMIT)
        .all()
    )
    annotate_blogs_with_likes(db, blogs)

    total_blogs, total_views = (
        db.query(func.count(models.Blog.id), func.coalesce(func.sum(models.Blog.views), 0))
        .filter(models.Blog.author_id == user.id, models.Blog.status == "published")
        .one()
    )
    total_likes = (
        db.query(func.count(models.BlogLike.id))
        .join(models.Blog, models.Blog.id == models.BlogLike.blog_id)
        .filter(models.Blog.author_id == user.id, models.Blog.status == "published")
        .scalar()
        or 0
    )

    return schemas.UserProfileData(
        user=schemas.UserPublic.model_validate(user),
        blogs=[schemas.BlogOut.model_validate(blog) for blog in blogs],
        stats=schemas.UserStats(
            total_blogs=total_blogs,
            total_views=int(total_views),
            total_likes=total_likes,
        ),
    )


def toggle_follow(db: Session, follower: models.User, target: models.User) -> tuple[bool, int]:
    """
    Follow ``target`` if not already following, unfollow otherwise.

    Returns:
        (is_following, target's followers count) after the toggle
    """
    existing = (
        db.query(models.Follow)
        .filter(
            models.Follow.follower_id == follower.id,
            models.Follow.following_id == target.id,
        )
        .first()
    )

    if existing:
        db.delete(existing)
        is_following = False
    else:
        db.add(models.Follow(follower_id=follower.id, following_id=target.id))
        is_following = True

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request already created the same edge
        db.rollback()
        is_following = True

    return is_following, count_followers(db, target.id)
