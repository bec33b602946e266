"""Blog slug generation."""

from __future__ import annotations

import re

from sqlalchemy.orm import Session

from ..models import Blog

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9 ]")
_WHITESPACE = re.compile(r"\s+")


def slugify_title(title: str) -> str:
    """
    Lowercase, drop everything except letters, digits and spaces, and join
    whitespace runs with a single hyphen.

    >>> slugify_title("Hello, World!")
    'hello-world'
    """
    slug = _NON_ALNUM.sub("", title.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = slug.strip("-")
    return slug or "blog"


def generate_unique_slug(db: Session, title: str) -> str:
    """
    Return the first free slug among ``base``, ``base-1``, ``base-2``, ...

    This is a check-then-insert; the unique index on blogs.slug is what
    actually guarantees uniqueness under concurrent creates (see
    services.blog_lifecycle.create_blog for the retry).
    """
    base = slugify_title(title)
    query = db.query(Blog.slug).filter((Blog.slug == base) | Blog.slug.like(f"{base}-%"))
    taken = {row[0] for row in query.all()}

    if base not in taken:
        return base

    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
