"""Admin dashboard endpoints. Every route requires the admin role."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..auth import require_admin
from ..deps import get_db
from ..pagination import clamp_page, paginate
from ..services.admin_stats import get_dashboard_stats, get_detailed_stats
from ..services.blog_lifecycle import apply_search, apply_status, get_blog_or_404
from ..services.deletion import delete_user
from ..services.likes import annotate_blogs_with_likes
from ..utils.audit import log_admin_action

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)

DEFAULT_PAGE_SIZE = 10
STATS_PAGE_SIZE = 20


def _get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/stats", response_model=schemas.ApiResponse[schemas.DashboardStats])
def dashboard_stats(db: Session = Depends(get_db)) -> schemas.ApiResponse[schemas.DashboardStats]:
    """Site totals and recent activity."""
    return schemas.ApiResponse(data=get_dashboard_stats(db))


@router.get(
    "/stats/{stats_type}",
    response_model=schemas.ApiResponse[schemas.Page[dict[str, Any]]],
)
def detailed_stats(
    stats_type: str,
    page: int = Query(1),
    limit: int = Query(STATS_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.Page[dict[str, Any]]]:
    """Paginated listing behind one dashboard counter: users, blogs, published-blogs, comments."""
    page, limit = clamp_page(page, limit, STATS_PAGE_SIZE)
    return schemas.ApiResponse(data=get_detailed_stats(db, stats_type, page, limit))


@router.get("/users", response_model=schemas.ApiResponse[schemas.AdminUserList])
def list_users(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    search: str | None = Query(None),
    role: str | None = Query(None),
    user_status: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.AdminUserList]:
    page, limit = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    query = db.query(models.User)

    if search:
        query = apply_search(
            query,
            search,
            models.User.username,
            models.User.email,
            models.User.first_name,
            models.User.last_name,
        )
    if role and role != "all":
        query = query.filter(models.User.role == role)
    if user_status and user_status != "all":
        query = query.filter(models.User.is_active.is_(user_status == "active"))

    query = query.order_by(models.User.created_at.desc(), models.User.id.desc())
    users, pagination = paginate(query, page, limit, schemas.UserPagination)

    return schemas.ApiResponse(
        data=schemas.AdminUserList(
            users=[schemas.AdminUser.model_validate(user) for user in users],
            pagination=pagination,
        ),
    )


@router.get("/blogs", response_model=schemas.ApiResponse[schemas.BlogListData])
def list_blogs(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    search: str | None = Query(None),
    blog_status: str | None = Query(None, alias="status"),
    category: str | None = Query(None),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.BlogListData]:
    """All blogs in any status."""
    page, limit = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    query = db.query(models.Blog).options(joinedload(models.Blog.author))

    if search:
        query = apply_search(query, search, models.Blog.title, models.Blog.content)
    if blog_status and blog_status != "all":
        query = query.filter(models.Blog.status == blog_status)
    if category and category != "all":
        query = query.filter(models.Blog.category == category)

    query = query.order_by(models.Blog.created_at.desc(), models.Blog.id.desc())
    blogs, pagination = paginate(query, page, limit, schemas.BlogPagination)
    annotate_blogs_with_likes(db, blogs)

    return schemas.ApiResponse(
        data=schemas.BlogListData(
            blogs=[schemas.BlogOut.model_validate(blog) for blog in blogs],
            pagination=pagination,
        ),
    )


@router.put("/users/{user_id}/status", response_model=schemas.ApiResponse[schemas.AdminUser])
def update_user_status(
    user_id: int,
    payload: schemas.UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ApiResponse[schemas.AdminUser]:
    """Activate or deactivate a user."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own status",
        )

    user = _get_user_or_404(db, user_id)
    user.is_active = payload.is_active
    log_admin_action(
        db,
        actor_id=admin.id,
        action="activate_user" if payload.is_active else "deactivate_user",
        target_type="user",
        target_id=user.id,
        commit=False,
    )
    db.commit()
    db.refresh(user)

    return schemas.ApiResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        data=schemas.AdminUser.model_validate(user),
    )


@router.put("/users/{user_id}/role", response_model=schemas.ApiResponse[schemas.AdminUser])
def update_user_role(
    user_id: int,
    payload: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ApiResponse[schemas.AdminUser]:
    """Change a user's role."""
    if payload.role not in models.ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role. Must be one of: {', '.join(models.ROLES)}",
        )

    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own role",
        )

    user = _get_user_or_404(db, user_id)
    previous_role = user.role
    user.role = payload.role
    log_admin_action(
        db,
        actor_id=admin.id,
        action="change_role",
        target_type="user",
        target_id=user.id,
        note=f"{previous_role} -> {payload.role}",
        commit=False,
    )
    db.commit()
    db.refresh(user)

    return schemas.ApiResponse(
        message=f"User role updated to {user.role} successfully",
        data=schemas.AdminUser.model_validate(user),
    )


@router.delete("/users/{user_id}", response_model=schemas.ApiResponse[None])
def remove_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ApiResponse[None]:
    """Delete a user together with their blogs, comments, likes and follows."""
    user = _get_user_or_404(db, user_id)

    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    username = user.username
    delete_user(db, user)
    log_admin_action(
        db,
        actor_id=admin.id,
        action="delete_user",
        target_type="user",
        target_id=user_id,
        note=username,
    )

    return schemas.ApiResponse(message="User deleted successfully")


@router.put("/blogs/{blog_id}/status", response_model=schemas.ApiResponse[schemas.BlogOut])
def update_blog_status(
    blog_id: int,
    payload: schemas.BlogStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.ApiResponse[schemas.BlogOut]:
    """Overwrite a blog's status regardless of ownership."""
    if payload.status not in models.BLOG_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(models.BLOG_STATUSES)}",
        )

    blog = get_blog_or_404(db, blog_id)
    previous_status = blog.status
    apply_status(blog, payload.status)
    log_admin_action(
        db,
        actor_id=admin.id,
        action="change_blog_status",
        target_type="blog",
        target_id=blog.id,
        note=f"{previous_status} -> {payload.status}",
        commit=False,
    )
    db.commit()
    db.refresh(blog)
    annotate_blogs_with_likes(db, [blog])

    return schemas.ApiResponse(
        message="Blog status updated successfully",
        data=schemas.BlogOut.model_validate(blog),
    )
