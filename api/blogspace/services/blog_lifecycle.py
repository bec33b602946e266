"""Blog creation, status transitions, visibility and listing queries."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from .. import models
from ..auth import check_ownership
from ..utils.slugs import generate_unique_slug

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
SLUG_RETRY_ATTEMPTS = 3
MAX_TAGS = 20
MAX_TAG_LENGTH = 50


def compute_read_time(content: str) -> int:
    """Estimated minutes to read ``content`` at 200 words per minute, minimum 1."""
    word_count = len(content.split())
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def apply_status(blog: models.Blog, new_status: str) -> None:
    """
    Set a blog's status.

    ``is_published`` mirrors the status. ``published_at`` is stamped the first
    time the blog is published and never changes afterwards.
    """
    if new_status not in models.BLOG_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(models.BLOG_STATUSES)}",
        )
    blog.status = new_status
    blog.is_published = new_status == "published"
    if blog.is_published and blog.published_at is None:
        blog.published_at = datetime.now(timezone.utc)


def validate_category(category: str) -> str:
    if category not in models.CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category. Must be one of: {', '.join(models.CATEGORIES)}",
        )
    return category


def parse_tags(raw: list[str] | str | None) -> list[str]:
    """
    Normalize tags from a multipart form.

    Accepts a JSON array string, a comma-separated string, or repeated form
    fields. A value that looks like JSON but does not parse as an array is
    treated as comma-separated text. Tags are trimmed, empty ones dropped,
    duplicates removed (first occurrence wins).
    """
    if raw is None:
        return []

    values = raw if isinstance(raw, list) else [raw]
    candidates: list[str] = []
    for value in values:
        value = value.strip()
        if value.startswith("["):
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                # Plain text that happens to start with a bracket
                decoded = None
            if isinstance(decoded, list):
                candidates.extend(str(item) for item in decoded)
                continue
        candidates.extend(value.split(","))

    tags: list[str] = []
    for tag in candidates:
        tag = tag.strip()[:MAX_TAG_LENGTH]
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def _slug_taken(db: Session, slug: str) -> bool:
    return db.query(models.Blog.id).filter(models.Blog.slug == slug).first() is not None


def create_blog(
    db: Session,
    author: models.User,
    *,
    title: str,
    content: str,
    category: str,
    excerpt: str | None = None,
    tags: list[str] | None = None,
    featured_image: str | None = None,
    blog_status: str = "draft",
    meta_title: str | None = None,
    meta_description: str | None = None,
) -> models.Blog:
    """
    Insert a new blog with a unique slug.

    The slug is probed first; if a concurrent insert takes it before commit,
    the unique index raises and the insert is retried with a fresh slug.
    Integrity errors that are not slug collisions propagate.
    """
    for attempt in range(1, SLUG_RETRY_ATTEMPTS + 1):
        slug = generate_unique_slug(db, title)
        blog = models.Blog(
            title=title,
            slug=slug,
            content=content,
            excerpt=excerpt,
            featured_image=featured_image,
            author_id=author.id,
            category=category,
            views=0,
            read_time=compute_read_time(content),
            meta_title=meta_title,
            meta_description=meta_description,
        )
        apply_status(blog, blog_status)
        blog.set_tags(tags or [])
        db.add(blog)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not _slug_taken(db, slug):
                raise
            logger.warning(
                f"Slug collision for '{slug}' (attempt {attempt}/{SLUG_RETRY_ATTEMPTS})"
            )
            continue
        db.refresh(blog)
        logger.info(f"Blog {blog.id} created by user {author.id} as {blog.status}")
        return blog

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Could not assign a unique slug, please retry",
    )


def get_blog_or_404(db: Session, blog_id: int) -> models.Blog:
    blog = db.query(models.Blog).filter(models.Blog.id == blog_id).first()
    if not blog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


def can_view(blog: models.Blog, viewer: models.User | None) -> bool:
    """Published blogs are public; drafts and archived blogs only for the author or an admin."""
    if blog.status == "published":
        return True
    return check_ownership(blog.author_id, viewer)


def increment_views(db: Session, blog: models.Blog) -> None:
    """Atomically bump the view counter and refresh the loaded value."""
    db.execute(
        update(models.Blog)
        .where(models.Blog.id == blog.id)
        .values(views=models.Blog.views + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(blog)


def published_blogs_query(
    db: Session,
    *,
    category: str | None = None,
    tags: str | None = None,
    search: str | None = None,
    author_id: int | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> Query:
    """Build the public listing query: published blogs only, filtered and sorted."""
    query = (
        db.query(models.Blog)
        .options(joinedload(models.Blog.author))
        .filter(models.Blog.status == "published")
    )

    if category and category != "all":
        query = query.filter(models.Blog.category == category)

    if tags:
        tag_list = [tag.strip() for tag in tags.split(",") if tag.strip()]
        if tag_list:
            query = query.filter(
                models.Blog.tag_links.any(models.BlogTag.tag.in_(tag_list))
            )

    if author_id is not None:
        query = query.filter(models.Blog.author_id == author_id)

    if search:
        query = apply_search(query, search, models.Blog.title, models.Blog.content)

    return apply_blog_sort(db, query, sort_by, sort_order)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_search(query: Query, search: str, *columns) -> Query:
    """Case-insensitive literal substring match over any of ``columns``."""
    pattern = f"%{escape_like(search.strip())}%"
    return query.filter(or_(*(column.ilike(pattern, escape="\\") for column in columns)))


def apply_blog_sort(db: Session, query: Query, sort_by: str, sort_order: str) -> Query:
    descending = sort_order != "asc"

    if sort_by == "likes":
        like_counts = (
            db.query(
                models.BlogLike.blog_id.label("blog_id"),
                func.count(models.BlogLike.id).label("like_count"),
            )
            .group_by(models.BlogLike.blog_id)
            .subquery()
        )
        sort_column = func.coalesce(like_counts.c.like_count, 0)
        query = query.outerjoin(like_counts, models.Blog.id == like_counts.c.blog_id)
    elif sort_by == "views":
        sort_column = models.Blog.views
    elif sort_by == "title":
        sort_column = models.Blog.title
    elif sort_by == "publishedAt":
        sort_column = models.Blog.published_at
    else:
        sort_column = models.Blog.created_at

    if descending:
        return query.order_by(sort_column.desc(), models.Blog.id.desc())
    return query.order_by(sort_column.asc(), models.Blog.id.asc())
