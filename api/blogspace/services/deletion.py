"""Cascading deletes for blogs and users.

Every function stages bulk DELETE statements and commits once, so a failure
part-way leaves nothing half-deleted.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def _delete_comments_where(db: Session, *criteria) -> int:
    comment_ids = [row[0] for row in db.query(models.Comment.id).filter(*criteria).all()]
    if not comment_ids:
        return 0
    # Nesting is one level deep, so replies never have replies of their own
    reply_ids = [
        row[0]
        for row in db.query(models.Comment.id)
        .filter(models.Comment.parent_id.in_(comment_ids))
        .all()
    ]
    doomed = set(comment_ids) | set(reply_ids)

    db.query(models.CommentLike).filter(models.CommentLike.comment_id.in_(doomed)).delete(
        synchronize_session=False
    )
    db.query(models.Comment).filter(models.Comment.id.in_(set(reply_ids) - set(comment_ids))).delete(
        synchronize_session=False
    )
    return db.query(models.Comment).filter(models.Comment.id.in_(comment_ids)).delete(
        synchronize_session=False
    )


def _delete_blogs_where(db: Session, *criteria) -> int:
    blog_ids = [row[0] for row in db.query(models.Blog.id).filter(*criteria).all()]
    if not blog_ids:
        return 0
    _delete_comments_where(db, models.Comment.blog_id.in_(blog_ids))
    db.query(models.BlogLike).filter(models.BlogLike.blog_id.in_(blog_ids)).delete(
        synchronize_session=False
    )
    db.query(models.BlogTag).filter(models.BlogTag.blog_id.in_(blog_ids)).delete(
        synchronize_session=False
    )
    return db.query(models.Blog).filter(models.Blog.id.in_(blog_ids)).delete(
        synchronize_session=False
    )


def delete_blog(db: Session, blog: models.Blog) -> None:
    """Delete a blog with its comments, comment likes, likes and tags."""
    blog_id = blog.id
    db.expunge(blog)
    _delete_blogs_where(db, models.Blog.id == blog_id)
    db.commit()
    logger.info(f"Deleted blog {blog_id}")


def delete_user(db: Session, user: models.User) -> None:
    """
    Delete a user and everything they own.

    Removes their comments (and replies to them), their blogs with all
    dependent rows, their likes, follow edges and sign-in identities, then
    the user row itself. Audit log entries keep a NULL actor.
    """
    user_id = user.id
    db.expunge(user)

    _delete_comments_where(db, models.Comment.author_id == user_id)
    _delete_blogs_where(db, models.Blog.author_id == user_id)
    db.query(models.BlogLike).filter(models.BlogLike.user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(models.CommentLike).filter(models.CommentLike.user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(models.Follow).filter(
        or_(models.Follow.follower_id == user_id, models.Follow.following_id == user_id)
    ).delete(synchronize_session=False)
    db.query(models.AuthIdentity).filter(models.AuthIdentity.user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(models.AuditLog).filter(models.AuditLog.actor_id == user_id).update(
        {models.AuditLog.actor_id: None}, synchronize_session=False
    )
    db.query(models.User).filter(models.User.id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Deleted user {user_id} and owned content")
