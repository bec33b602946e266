"""Test the admin dashboard and moderation endpoints."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from blogspace import models


def test_admin_routes_require_admin_role(client, test_user, auth_headers):
    anonymous = client.get("/api/admin/stats")
    regular = client.get("/api/admin/stats", headers=auth_headers(test_user))

    assert anonymous.status_code == 401
    assert regular.status_code == 403


def test_dashboard_stats(client, make_blog, test_user, other_user, admin_user, auth_headers):
    blog = make_blog(test_user, title="Live")
    make_blog(test_user, title="Draft", status="draft")
    make_blog(other_user, title="Shelved", status="archived")
    client.post(
        "/api/comments", headers=auth_headers(other_user), json={"content": "Hi", "blog": blog["id"]}
    )

    response = client.get("/api/admin/stats", headers=auth_headers(admin_user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stats"] == {
        "totalUsers": 3,
        "totalBlogs": 3,
        "totalComments": 1,
        "publishedBlogs": 1,
        "draftBlogs": 1,
        "archivedBlogs": 1,
    }
    assert [b["title"] for b in data["recentActivity"]["blogs"]] == ["Shelved", "Draft", "Live"]
    assert data["recentActivity"]["users"][0]["username"] == "root_admin"


@pytest.mark.parametrize(
    "stats_type,expected",
    [
        ("users", 3),
        ("blogs", 2),
        ("published-blogs", 1),
        ("comments", 1),
    ],
)
def test_detailed_stats(client, make_blog, test_user, other_user, admin_user, auth_headers, stats_type, expected):
    blog = make_blog(test_user, title="Live")
    make_blog(test_user, title="Draft", status="draft")
    client.post(
        "/api/comments", headers=auth_headers(other_user), json={"content": "Hi", "blog": blog["id"]}
    )

    response = client.get(f"/api/admin/stats/{stats_type}", headers=auth_headers(admin_user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["type"] == stats_type
    assert data["pagination"]["total"] == expected
    assert len(data["items"]) == expected


def test_detailed_stats_comment_items_reference_blog(client, make_blog, test_user, admin_user, auth_headers):
    blog = make_blog(test_user, title="Live")
    client.post(
        "/api/comments", headers=auth_headers(test_user), json={"content": "Hi", "blog": blog["id"]}
    )

    items = client.get("/api/admin/stats/comments", headers=auth_headers(admin_user)).json()["data"]["items"]

    assert items[0]["blog"] == {"id": blog["id"], "title": "Live", "slug": "live"}
    assert items[0]["author"]["username"] == "alice"


def test_detailed_stats_unknown_type(client, admin_user, auth_headers):
    response = client.get("/api/admin/stats/likes", headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid stats type"


def test_list_users_filters(client, make_user, test_user, admin_user, auth_headers):
    make_user("dormant", is_active=False)

    inactive = client.get(
        "/api/admin/users", params={"status": "inactive"}, headers=auth_headers(admin_user)
    ).json()["data"]
    admins = client.get(
        "/api/admin/users", params={"role": "admin"}, headers=auth_headers(admin_user)
    ).json()["data"]
    searched = client.get(
        "/api/admin/users", params={"search": "ALI"}, headers=auth_headers(admin_user)
    ).json()["data"]

    assert [u["username"] for u in inactive["users"]] == ["dormant"]
    assert [u["username"] for u in admins["users"]] == ["root_admin"]
    assert [u["username"] for u in searched["users"]] == ["alice"]
    assert searched["users"][0]["email"] == "alice@example.com"
    assert searched["pagination"]["totalUsers"] == 1


def test_list_users_search_matches_underscore_literally(client, test_user, other_user, admin_user, auth_headers):
    response = client.get("/api/admin/users", params={"search": "_"}, headers=auth_headers(admin_user))

    assert [u["username"] for u in response.json()["data"]["users"]] == ["root_admin"]


def test_list_blogs_includes_all_statuses(client, make_blog, test_user, admin_user, auth_headers):
    make_blog(test_user, title="Live")
    make_blog(test_user, title="Draft", status="draft")

    everything = client.get("/api/admin/blogs", headers=auth_headers(admin_user)).json()["data"]
    drafts = client.get(
        "/api/admin/blogs", params={"status": "draft"}, headers=auth_headers(admin_user)
    ).json()["data"]

    assert everything["pagination"]["totalBlogs"] == 2
    assert [b["title"] for b in drafts["blogs"]] == ["Draft"]


def test_deactivate_user_blocks_their_token(client, db: Session, test_user, admin_user, auth_headers):
    response = client.put(
        f"/api/admin/users/{test_user.id}/status",
        headers=auth_headers(admin_user),
        json={"isActive": False},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "User deactivated successfully"
    assert response.json()["data"]["isActive"] is False
    assert client.get("/api/auth/me", headers=auth_headers(test_user)).status_code == 401
    audit = db.query(models.AuditLog).one()
    assert (audit.actor_id, audit.action, audit.target_id) == (admin_user.id, "deactivate_user", test_user.id)


def test_admin_cannot_change_own_status(client, admin_user, auth_headers):
    response = client.put(
        f"/api/admin/users/{admin_user.id}/status",
        headers=auth_headers(admin_user),
        json={"isActive": False},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "You cannot change your own status"


def test_change_role(client, test_user, admin_user, auth_headers):
    response = client.put(
        f"/api/admin/users/{test_user.id}/role",
        headers=auth_headers(admin_user),
        json={"role": "moderator"},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "User role updated to moderator successfully"
    assert response.json()["data"]["role"] == "moderator"


def test_change_role_validation(client, test_user, admin_user, auth_headers):
    invalid = client.put(
        f"/api/admin/users/{test_user.id}/role",
        headers=auth_headers(admin_user),
        json={"role": "superuser"},
    )
    own = client.put(
        f"/api/admin/users/{admin_user.id}/role",
        headers=auth_headers(admin_user),
        json={"role": "user"},
    )
    missing = client.put(
        "/api/admin/users/999/role", headers=auth_headers(admin_user), json={"role": "user"}
    )

    assert invalid.status_code == 400
    assert own.status_code == 400
    assert own.json()["message"] == "You cannot change your own role"
    assert missing.status_code == 404


def test_delete_user_cascades(client, db: Session, make_blog, test_user, other_user, admin_user, auth_headers):
    own_blog = make_blog(test_user, title="Alice Post")
    bobs_blog = make_blog(other_user, title="Bob Post")
    client.post(
        "/api/comments", headers=auth_headers(test_user), json={"content": "By alice", "blog": bobs_blog["id"]}
    )
    client.post(
        "/api/comments", headers=auth_headers(other_user), json={"content": "On alice", "blog": own_blog["id"]}
    )
    client.post(f"/api/blogs/{bobs_blog['id']}/like", headers=auth_headers(test_user))
    client.post(f"/api/users/{other_user.id}/follow", headers=auth_headers(test_user))
    test_user_id = test_user.id

    response = client.delete(f"/api/admin/users/{test_user_id}", headers=auth_headers(admin_user))

    assert response.status_code == 200
    assert response.json()["message"] == "User deleted successfully"
    assert db.query(models.User).filter(models.User.id == test_user_id).count() == 0
    assert [b.title for b in db.query(models.Blog).all()] == ["Bob Post"]
    assert db.query(models.Comment).count() == 0
    assert db.query(models.BlogLike).count() == 0
    assert db.query(models.Follow).count() == 0
    assert db.query(models.AuthIdentity).filter(models.AuthIdentity.user_id == test_user_id).count() == 0
    assert db.query(models.AuditLog).filter(models.AuditLog.action == "delete_user").count() == 1


def test_admin_cannot_delete_self(client, admin_user, auth_headers):
    response = client.delete(f"/api/admin/users/{admin_user.id}", headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json()["message"] == "You cannot delete your own account"


def test_delete_unknown_user_is_404(client, admin_user, auth_headers):
    response = client.delete("/api/admin/users/999", headers=auth_headers(admin_user))
    assert response.status_code == 404


def test_admin_blog_status_sets_published_at_once(client, make_blog, test_user, admin_user, auth_headers):
    blog = make_blog(test_user, status="draft")
    headers = auth_headers(admin_user)

    published = client.put(f"/api/admin/blogs/{blog['id']}/status", headers=headers, json={"status": "published"})
    archived = client.put(f"/api/admin/blogs/{blog['id']}/status", headers=headers, json={"status": "archived"})

    assert published.status_code == 200
    assert published.json()["data"]["isPublished"] is True
    assert archived.json()["data"]["isPublished"] is False
    assert archived.json()["data"]["publishedAt"] == published.json()["data"]["publishedAt"]


def test_admin_blog_status_validation(client, make_blog, test_user, admin_user, auth_headers):
    blog = make_blog(test_user)

    invalid = client.put(
        f"/api/admin/blogs/{blog['id']}/status", headers=auth_headers(admin_user), json={"status": "gone"}
    )
    missing = client.put(
        "/api/admin/blogs/999/status", headers=auth_headers(admin_user), json={"status": "draft"}
    )

    assert invalid.status_code == 400
    assert missing.status_code == 404
