from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogspace import models
from blogspace.services.blog_lifecycle import compute_read_time, create_blog, escape_like, parse_tags
from blogspace.utils.handles import generate_unique_username
from blogspace.utils.slugs import generate_unique_slug, slugify_title


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Hello World", "hello-world"),
        ("Hello, World!", "hello-world"),
        ("  Spaces   everywhere  ", "spaces-everywhere"),
        ("C++ & Rust: 2024", "c-rust-2024"),
        ("!!!", "blog"),
    ],
)
def test_slugify_title(title, expected):
    assert slugify_title(title) == expected


def _blog(db: Session, author: models.User, slug: str) -> None:
    db.add(
        models.Blog(
            title=slug,
            slug=slug,
            content="x",
            author_id=author.id,
            category="Other",
            status="draft",
        )
    )
    db.commit()


def test_generate_unique_slug_skips_taken_suffixes(db: Session, test_user):
    _blog(db, test_user, "my-trip")
    _blog(db, test_user, "my-trip-2")

    assert generate_unique_slug(db, "My Trip") == "my-trip-1"
    _blog(db, test_user, "my-trip-1")
    assert generate_unique_slug(db, "My Trip") == "my-trip-3"
    assert generate_unique_slug(db, "My Trips") == "my-trips"


@pytest.mark.parametrize(
    "words,minutes",
    [(0, 1), (1, 1), (200, 1), (201, 2), (1000, 5)],
)
def test_compute_read_time(words, minutes):
    assert compute_read_time(" ".join(["word"] * words)) == minutes


def test_parse_tags_formats():
    assert parse_tags(None) == []
    assert parse_tags('["a", " b ", "a"]') == ["a", "b"]
    assert parse_tags(["x,y", "y", ""]) == ["x", "y"]
    assert parse_tags("[wip] notes, ideas") == ["[wip] notes", "ideas"]
    assert parse_tags('["unterminated", "list"') == ['["unterminated"', '"list"']


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_create_blog_reraises_unrelated_integrity_errors(db: Session, test_user):
    with pytest.raises(IntegrityError):
        create_blog(db, test_user, title="No Category", content="x", category=None)

    assert db.query(models.Blog).count() == 0


def test_generate_unique_username_truncates_with_suffix(db: Session, make_user):
    make_user("averyveryverylongnam")

    username = generate_unique_username(db, "a.very.very.very.long.name@example.com", "1")

    assert username == "averyveryverylongn_1"
    assert len(username) == 20
