"""User profile and follow endpoints."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..services.media import AVATAR_FOLDER, UploadError, has_file, upload_image
from ..services.user_profiles import (
    annotate_user_with_follows,
    build_profile,
    get_followers,
    get_following,
    toggle_follow,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _merge_social_links(
    current: dict[str, str] | None,
    raw_json: str | None,
    fields: dict[str, str | None],
) -> dict[str, str]:
    """
    Merge social links from a JSON object string and individual form fields.

    Only known keys are kept. Empty values leave the stored link unchanged.
    """
    links = dict(current or {})

    updates: dict[str, str | None] = {}
    if raw_json:
        try:
            parsed = json.loads(raw_json)
        except json.JSONDecodeError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="socialLinks must be a JSON object",
            )
        if not isinstance(parsed, dict):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="socialLinks must be a JSON object",
            )
        updates.update(parsed)
    updates.update({key: value for key, value in fields.items() if value})

    for key in models.SOCIAL_LINK_KEYS:
        value = updates.get(key)
        if isinstance(value, str) and value.strip():
            links[key] = value.strip()
    return links


@router.put("/profile", response_model=schemas.ApiResponse[schemas.UserData])
def update_profile(
    first_name: str | None = Form(None, alias="firstName"),
    last_name: str | None = Form(None, alias="lastName"),
    bio: str | None = Form(None),
    social_links: str | None = Form(None, alias="socialLinks"),
    website: str | None = Form(None),
    twitter: str | None = Form(None),
    linkedin: str | None = Form(None),
    github: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.UserData]:
    """
    Update the caller's profile (multipart form).

    Blank fields keep their stored values. A failed avatar upload aborts the
    whole update with 400.
    """
    for label, value, limit in (
        ("First name", first_name, 50),
        ("Last name", last_name, 50),
        ("Bio", bio, 500),
    ):
        if value and len(value.strip()) > limit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label} cannot exceed {limit} characters",
            )

    links = _merge_social_links(
        current_user.social_links,
        social_links,
        {"website": website, "twitter": twitter, "linkedin": linkedin, "github": github},
    )

    avatar_url = None
    if has_file(avatar):
        try:
            avatar_url = upload_image(avatar, AVATAR_FOLDER)
        except UploadError as e:
            logger.warning(f"Avatar upload failed for user {current_user.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Error uploading avatar",
            )

    if first_name and first_name.strip():
        current_user.first_name = first_name.strip()
    if last_name and last_name.strip():
        current_user.last_name = last_name.strip()
    if bio and bio.strip():
        current_user.bio = bio.strip()
    current_user.social_links = links
    if avatar_url:
        current_user.avatar = avatar_url

    db.commit()
    db.refresh(current_user)
    annotate_user_with_follows(db, current_user)

    return schemas.ApiResponse(
        message="Profile updated successfully",
        data=schemas.UserData(user=schemas.UserFull.model_validate(current_user)),
    )


@router.post("/{user_id}/follow", response_model=schemas.ApiResponse[schemas.FollowState])
def follow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.FollowState]:
    """Toggle following another user."""
    target = _get_user_or_404(db, user_id)

    if target.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot follow yourself",
        )

    is_following, followers_count = toggle_follow(db, current_user, target)
    return schemas.ApiResponse(
        message="User followed" if is_following else "User unfollowed",
        data=schemas.FollowState(is_following=is_following, followers_count=followers_count),
    )


@router.get("/{user_id}/followers", response_model=schemas.ApiResponse[list[schemas.UserCard]])
def list_followers(
    user_id: int,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.UserCard]]:
    user = _get_user_or_404(db, user_id)
    return schemas.ApiResponse(
        data=[schemas.UserCard.model_validate(follower) for follower in get_followers(db, user.id)],
    )


@router.get("/{user_id}/following", response_model=schemas.ApiResponse[list[schemas.UserCard]])
def list_following(
    user_id: int,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.UserCard]]:
    user = _get_user_or_404(db, user_id)
    return schemas.ApiResponse(
        data=[schemas.UserCard.model_validate(followed) for followed in get_following(db, user.id)],
    )


@router.get("/{username}", response_model=schemas.ApiResponse[schemas.UserProfileData])
def get_user_profile(
    username: str,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.UserProfileData]:
    """Public profile with the user's latest published blogs and totals."""
    user = db.query(models.User).filter(models.User.username == username).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return schemas.ApiResponse(data=build_profile(db, user))
