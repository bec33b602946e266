"""Test blog authoring, reading, listing and likes."""

from __future__ import annotations

import io

import pytest
from sqlalchemy.orm import Session

from blogspace import models


def test_create_blog_requires_auth(client):
    response = client.post(
        "/api/blogs", data={"title": "T", "content": "C", "category": "Technology"}
    )
    assert response.status_code == 401


def test_create_blog_requires_title_content_category(client, test_user, auth_headers):
    response = client.post(
        "/api/blogs", headers=auth_headers(test_user), data={"title": "Only a title"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Title, content, and category are required"


def test_create_blog_rejects_unknown_category(client, test_user, auth_headers):
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={"title": "T", "content": "C", "category": "Gardening"},
    )
    assert response.status_code == 400


def test_create_blog_rejects_long_title(client, test_user, auth_headers):
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={"title": "x" * 101, "content": "C", "category": "Technology"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Title cannot exceed 100 characters"


def test_create_draft_by_default(client, test_user, auth_headers):
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={"title": "Hello World", "content": "Draft body", "category": "Technology"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Blog saved as draft successfully"
    blog = body["data"]["blog"]
    assert blog["status"] == "draft"
    assert blog["isPublished"] is False
    assert blog["publishedAt"] is None
    assert blog["author"]["username"] == test_user.username


def test_create_published_blog_computes_slug_and_read_time(client, test_user, auth_headers):
    content = " ".join(["word"] * 401)
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={
            "title": "Hello, World!",
            "content": content,
            "category": "Technology",
            "status": "published",
            "tags": '["python", "fastapi", "python"]',
            "metaTitle": "Hello meta",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Blog published successfully"
    blog = body["data"]["blog"]
    assert blog["slug"] == "hello-world"
    assert blog["readTime"] == 3
    assert blog["tags"] == ["python", "fastapi"]
    assert blog["isPublished"] is True
    assert blog["publishedAt"] is not None
    assert blog["metaTitle"] == "Hello meta"
    assert blog["likesCount"] == 0
    assert blog["views"] == 0


def test_duplicate_titles_get_numbered_slugs(make_blog, test_user):
    first = make_blog(test_user, title="My Trip!")
    second = make_blog(test_user, title="My Trip")
    third = make_blog(test_user, title="my   trip")
    assert [first["slug"], second["slug"], third["slug"]] == ["my-trip", "my-trip-1", "my-trip-2"]


def test_tags_accept_comma_separated_and_repeated_fields(make_blog, test_user):
    csv_blog = make_blog(test_user, title="CSV", tags="a, b ,,c")
    repeated_blog = make_blog(test_user, title="Repeated", tags=["x", "y", "x"])
    assert csv_blog["tags"] == ["a", "b", "c"]
    assert repeated_blog["tags"] == ["x", "y"]


def test_bracketed_tag_text_is_not_rejected(make_blog, test_user):
    blog = make_blog(test_user, tags="[wip] notes, ideas")
    assert blog["tags"] == ["[wip] notes", "ideas"]


def test_featured_image_is_uploaded(client, test_user, auth_headers, uploads):
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={"title": "Pic", "content": "C", "category": "Travel"},
        files={"featuredImage": ("cover.png", io.BytesIO(b"\x89PNG fake"), "image/png")},
    )
    assert response.status_code == 201
    blog = response.json()["data"]["blog"]
    assert blog["featuredImage"] == "https://res.cloudinary.com/demo/blog-images/1.png"
    assert uploads[0]["folder"] == "blog-images"


def test_featured_image_failure_does_not_block_creation(client, test_user, auth_headers, uploads):
    response = client.post(
        "/api/blogs",
        headers=auth_headers(test_user),
        data={"title": "Doc", "content": "C", "category": "Travel"},
        files={"featuredImage": ("notes.txt", io.BytesIO(b"plain text"), "text/plain")},
    )
    assert response.status_code == 201
    assert response.json()["data"]["blog"]["featuredImage"] is None
    assert uploads == []


# ============================================================================
# READING
# ============================================================================


def test_reading_published_blog_counts_views(client, make_blog, test_user):
    blog = make_blog(test_user)

    first = client.get(f"/api/blogs/{blog['slug']}")
    second = client.get(f"/api/blogs/{blog['slug']}")

    assert first.status_code == 200
    assert first.json()["data"]["blog"]["views"] == 1
    assert second.json()["data"]["blog"]["views"] == 2
    assert second.json()["data"]["comments"] == []


def test_draft_is_hidden_from_others(client, make_blog, test_user, other_user, auth_headers):
    draft = make_blog(test_user, status="draft")

    anonymous = client.get(f"/api/blogs/{draft['slug']}")
    stranger = client.get(f"/api/blogs/{draft['slug']}", headers=auth_headers(other_user))

    assert anonymous.status_code == 404
    assert anonymous.json()["message"] == "Blog not found"
    assert stranger.status_code == 404


def test_draft_visible_to_author_and_admin_without_views(
    client, make_blog, test_user, admin_user, auth_headers
):
    draft = make_blog(test_user, status="draft")

    own = client.get(f"/api/blogs/{draft['slug']}", headers=auth_headers(test_user))
    admin = client.get(f"/api/blogs/{draft['slug']}", headers=auth_headers(admin_user))

    assert own.status_code == 200
    assert admin.status_code == 200
    assert admin.json()["data"]["blog"]["views"] == 0


def test_unknown_slug_is_404(client):
    response = client.get("/api/blogs/no-such-post")
    assert response.status_code == 404


def test_list_only_shows_published_blogs(client, make_blog, test_user):
    make_blog(test_user, title="Public One")
    make_blog(test_user, title="Secret Draft", status="draft")
    make_blog(test_user, title="Old News", status="archived")

    response = client.get("/api/blogs")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [blog["title"] for blog in data["blogs"]] == ["Public One"]
    assert data["pagination"] == {
        "currentPage": 1,
        "totalPages": 1,
        "totalBlogs": 1,
        "hasNext": False,
        "hasPrev": False,
    }


def test_list_filters_and_search(client, make_blog, test_user, other_user):
    make_blog(test_user, title="Python Tips", category="Technology", tags="python")
    make_blog(test_user, title="Paris Guide", category="Travel", tags="europe")
    make_blog(other_user, title="Ramen", category="Food", content="Noodles and PYTHON jokes")

    by_category = client.get("/api/blogs", params={"category": "Travel"}).json()["data"]["blogs"]
    by_tag = client.get("/api/blogs", params={"tags": "europe,python"}).json()["data"]["blogs"]
    by_search = client.get("/api/blogs", params={"search": "python"}).json()["data"]["blogs"]
    by_author = client.get("/api/blogs", params={"author": other_user.id}).json()["data"]["blogs"]

    assert [b["title"] for b in by_category] == ["Paris Guide"]
    assert {b["title"] for b in by_tag} == {"Python Tips", "Paris Guide"}
    assert {b["title"] for b in by_search} == {"Python Tips", "Ramen"}
    assert [b["title"] for b in by_author] == ["Ramen"]


@pytest.mark.parametrize("term", ["%", "_", "\\"])
def test_search_treats_wildcards_literally(client, make_blog, test_user, term):
    make_blog(test_user, title="Plain Title")
    make_blog(test_user, title="Discount 50% off")

    blogs = client.get("/api/blogs", params={"search": term}).json()["data"]["blogs"]

    expected = ["Discount 50% off"] if term == "%" else []
    assert [b["title"] for b in blogs] == expected


def test_list_newest_first_with_pagination(client, make_blog, test_user):
    for index in range(3):
        make_blog(test_user, title=f"Post {index}")

    response = client.get("/api/blogs", params={"page": 2, "limit": 2})

    data = response.json()["data"]
    assert [b["title"] for b in data["blogs"]] == ["Post 0"]
    assert data["pagination"]["totalPages"] == 2
    assert data["pagination"]["hasPrev"] is True
    assert data["pagination"]["hasNext"] is False


def test_list_sorted_by_likes(client, make_blog, test_user, other_user, auth_headers):
    quiet = make_blog(test_user, title="Quiet")
    popular = make_blog(test_user, title="Popular")
    make_blog(test_user, title="Newest")
    client.post(f"/api/blogs/{popular['id']}/like", headers=auth_headers(test_user))
    client.post(f"/api/blogs/{popular['id']}/like", headers=auth_headers(other_user))
    client.post(f"/api/blogs/{quiet['id']}/like", headers=auth_headers(other_user))

    response = client.get("/api/blogs", params={"sortBy": "likes"}, headers=auth_headers(other_user))

    blogs = response.json()["data"]["blogs"]
    assert [b["title"] for b in blogs] == ["Popular", "Quiet", "Newest"]
    assert [b["likesCount"] for b in blogs] == [2, 1, 0]
    assert [b["isLiked"] for b in blogs] == [True, True, False]


def test_my_blogs_lists_every_status(client, make_blog, test_user, other_user, auth_headers):
    make_blog(test_user, title="Mine Published")
    make_blog(test_user, title="Mine Draft", status="draft")
    make_blog(other_user, title="Not Mine")

    everything = client.get("/api/blogs/my-blogs", headers=auth_headers(test_user))
    drafts = client.get(
        "/api/blogs/my-blogs", params={"status": "draft"}, headers=auth_headers(test_user)
    )

    assert {b["title"] for b in everything.json()["data"]["blogs"]} == {"Mine Published", "Mine Draft"}
    assert [b["title"] for b in drafts.json()["data"]["blogs"]] == ["Mine Draft"]
    assert everything.json()["data"]["pagination"]["totalBlogs"] == 2


def test_edit_view_is_owner_only(client, make_blog, test_user, other_user, auth_headers):
    blog = make_blog(test_user, status="draft")

    own = client.get(f"/api/blogs/edit/{blog['id']}", headers=auth_headers(test_user))
    other = client.get(f"/api/blogs/edit/{blog['id']}", headers=auth_headers(other_user))

    assert own.status_code == 200
    assert own.json()["data"]["blog"]["id"] == blog["id"]
    assert other.status_code == 403


# ============================================================================
# UPDATE / DELETE
# ============================================================================


def test_update_keeps_slug_and_recomputes_read_time(client, make_blog, test_user, auth_headers):
    blog = make_blog(test_user, title="Original Title")

    response = client.put(
        f"/api/blogs/{blog['id']}",
        headers=auth_headers(test_user),
        data={"title": "Brand New Title", "content": " ".join(["w"] * 250), "tags": "one,two"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Blog updated successfully"
    updated = response.json()["data"]["blog"]
    assert updated["title"] == "Brand New Title"
    assert updated["slug"] == "original-title"
    assert updated["readTime"] == 2
    assert updated["tags"] == ["one", "two"]
    assert updated["category"] == "Technology"


def test_update_tags_can_keep_some_existing(client, make_blog, test_user, auth_headers):
    blog = make_blog(test_user, tags="a,b")

    response = client.put(
        f"/api/blogs/{blog['id']}", headers=auth_headers(test_user), data={"tags": "b,c"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["blog"]["tags"] == ["b", "c"]


def test_publish_sets_published_at_once(client, db: Session, make_blog, test_user, auth_headers):
    blog = make_blog(test_user, status="draft")
    headers = auth_headers(test_user)

    published = client.put(f"/api/blogs/{blog['id']}", headers=headers, data={"status": "published"})
    first_published_at = published.json()["data"]["blog"]["publishedAt"]
    client.put(f"/api/blogs/{blog['id']}", headers=headers, data={"status": "archived"})
    republished = client.put(f"/api/blogs/{blog['id']}", headers=headers, data={"status": "published"})

    assert first_published_at is not None
    assert republished.json()["data"]["blog"]["publishedAt"] == first_published_at
    row = db.query(models.Blog).filter(models.Blog.id == blog["id"]).one()
    assert row.is_published is True


def test_update_rejects_invalid_status(client, make_blog, test_user, auth_headers):
    blog = make_blog(test_user)
    response = client.put(
        f"/api/blogs/{blog['id']}", headers=auth_headers(test_user), data={"status": "deleted"}
    )
    assert response.status_code == 400


def test_update_by_non_owner_forbidden(client, make_blog, test_user, other_user, auth_headers):
    blog = make_blog(test_user)
    response = client.put(
        f"/api/blogs/{blog['id']}", headers=auth_headers(other_user), data={"title": "Hijacked"}
    )
    assert response.status_code == 403


def test_admin_can_update_any_blog(client, make_blog, test_user, admin_user, auth_headers):
    blog = make_blog(test_user)
    response = client.put(
        f"/api/blogs/{blog['id']}", headers=auth_headers(admin_user), data={"title": "Moderated"}
    )
    assert response.status_code == 200
    assert response.json()["data"]["blog"]["title"] == "Moderated"


def test_delete_blog_removes_comments_and_likes(
    client, db: Session, make_blog, test_user, other_user, auth_headers
):
    blog = make_blog(test_user)
    client.post(f"/api/blogs/{blog['id']}/like", headers=auth_headers(other_user))
    comment = client.post(
        "/api/comments",
        headers=auth_headers(other_user),
        json={"content": "Nice", "blog": blog["id"]},
    ).json()["data"]["comment"]
    client.post(f"/api/comments/{comment['id']}/like", headers=auth_headers(test_user))

    response = client.delete(f"/api/blogs/{blog['id']}", headers=auth_headers(test_user))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Blog deleted successfully", "data": None}
    assert db.query(models.Blog).count() == 0
    assert db.query(models.Comment).count() == 0
    assert db.query(models.BlogLike).count() == 0
    assert db.query(models.CommentLike).count() == 0
    assert db.query(models.BlogTag).count() == 0


def test_delete_by_non_owner_forbidden(client, make_blog, test_user, other_user, auth_headers):
    blog = make_blog(test_user)
    response = client.delete(f"/api/blogs/{blog['id']}", headers=auth_headers(other_user))
    assert response.status_code == 403


# ============================================================================
# LIKES
# ============================================================================


def test_like_toggles(client, make_blog, test_user, other_user, auth_headers):
    blog = make_blog(test_user)
    headers = auth_headers(other_user)

    liked = client.post(f"/api/blogs/{blog['id']}/like", headers=headers)
    unliked = client.post(f"/api/blogs/{blog['id']}/like", headers=headers)

    assert liked.json()["message"] == "Blog liked"
    assert liked.json()["data"] == {"isLiked": True, "likesCount": 1}
    assert unliked.json()["message"] == "Blog unliked"
    assert unliked.json()["data"] == {"isLiked": False, "likesCount": 0}


def test_like_state_is_per_viewer(client, make_blog, test_user, other_user, auth_headers):
    blog = make_blog(test_user)
    client.post(f"/api/blogs/{blog['id']}/like", headers=auth_headers(other_user))

    anonymous = client.get(f"/api/blogs/{blog['slug']}").json()["data"]["blog"]
    liker = client.get(f"/api/blogs/{blog['slug']}", headers=auth_headers(other_user)).json()["data"]["blog"]

    assert (anonymous["likesCount"], anonymous["isLiked"]) == (1, False)
    assert (liker["likesCount"], liker["isLiked"]) == (1, True)


def test_like_unknown_blog_is_404(client, test_user, auth_headers):
    response = client.post("/api/blogs/999/like", headers=auth_headers(test_user))
    assert response.status_code == 404
