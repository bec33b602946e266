"""Comment endpoints: threaded (one level) comments with likes and soft delete."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional, require_ownership
from ..deps import get_db
from ..services.blog_lifecycle import can_view
from ..services.comments import get_active_comment, load_comment_tree
from ..services.likes import annotate_comments_with_likes, toggle_like

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


def _get_comment_or_404(db: Session, comment_id: int) -> models.Comment:
    comment = get_active_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


@router.get("/{blog_id}", response_model=schemas.ApiResponse[schemas.CommentListData])
def list_comments(
    blog_id: int,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.CommentListData]:
    """Active top-level comments, newest first, each with its active replies."""
    comments = load_comment_tree(db, blog_id, current_user)
    return schemas.ApiResponse(
        data=schemas.CommentListData(
            comments=[schemas.CommentOut.model_validate(comment) for comment in comments],
        ),
    )


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.CommentData],
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.CommentData]:
    """
    Comment on a blog, or reply to a top-level comment on the same blog.

    Replies are single-level: replying to a reply is rejected.
    """
    blog = db.query(models.Blog).filter(models.Blog.id == payload.blog).first()
    if not blog or not can_view(blog, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")

    if payload.parent_comment is not None:
        parent = get_active_comment(db, payload.parent_comment)
        if not parent:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Parent comment not found",
            )
        if parent.blog_id != blog.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid parent comment",
            )
        if parent.parent_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot reply to a reply",
            )

    comment = models.Comment(
        content=payload.content,
        author_id=current_user.id,
        blog_id=blog.id,
        parent_id=payload.parent_comment,
        is_edited=False,
        is_active=True,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    annotate_comments_with_likes(db, [comment], current_user)
    return schemas.ApiResponse(
        message="Comment added successfully",
        data=schemas.CommentData(comment=schemas.CommentOut.model_validate(comment)),
    )


@router.put("/{comment_id}", response_model=schemas.ApiResponse[schemas.CommentData])
def update_comment(
    comment_id: int,
    payload: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.CommentData]:
    """Edit a comment. Author only."""
    comment = _get_comment_or_404(db, comment_id)

    if comment.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only edit your own comments",
        )

    comment.content = payload.content
    comment.is_edited = True
    comment.edited_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(comment)

    annotate_comments_with_likes(db, [comment], current_user)
    return schemas.ApiResponse(
        message="Comment updated successfully",
        data=schemas.CommentData(comment=schemas.CommentOut.model_validate(comment)),
    )


@router.delete("/{comment_id}", response_model=schemas.ApiResponse[None])
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Soft-delete a comment. Author or admin."""
    comment = _get_comment_or_404(db, comment_id)
    require_ownership(comment.author_id, current_user)

    comment.is_active = False
    db.commit()
    logger.info(f"Comment {comment.id} soft-deleted by user {current_user.id}")
    return schemas.ApiResponse(message="Comment deleted successfully")


@router.post("/{comment_id}/like", response_model=schemas.ApiResponse[schemas.LikeState])
def like_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.LikeState]:
    """Toggle the caller's like on a comment."""
    comment = _get_comment_or_404(db, comment_id)

    is_liked, likes_count = toggle_like(db, comment, current_user)
    return schemas.ApiResponse(
        message="Comment liked" if is_liked else "Comment unliked",
        data=schemas.LikeState(is_liked=is_liked, likes_count=likes_count),
    )
