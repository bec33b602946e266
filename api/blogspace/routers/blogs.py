"""Blog endpoints: public listing and reading, authoring, likes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional, require_ownership
from ..deps import get_db
from ..pagination import clamp_page, paginate
from ..services import blog_lifecycle
from ..services.comments import load_comment_tree
from ..services.deletion import delete_blog
from ..services.likes import annotate_blogs_with_likes, toggle_like
from ..services.media import BLOG_IMAGE_FOLDER, UploadError, has_file, upload_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["Blogs"])

DEFAULT_PAGE_SIZE = 10
MY_BLOGS_PAGE_SIZE = 50


def _validate_lengths(title: str | None, excerpt: str | None) -> None:
    if title is not None and len(title) > 100:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title cannot exceed 100 characters",
        )
    if excerpt is not None and len(excerpt) > 300:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Excerpt cannot exceed 300 characters",
        )


def _blog_out(db: Session, blog: models.Blog, viewer: models.User | None) -> schemas.BlogOut:
    annotate_blogs_with_likes(db, [blog], viewer)
    return schemas.BlogOut.model_validate(blog)


@router.get("", response_model=schemas.ApiResponse[schemas.BlogListData])
def list_blogs(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    category: str | None = Query(None),
    tags: str | None = Query(None, description="Comma-separated; matches any"),
    search: str | None = Query(None),
    author: int | None = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.BlogListData]:
    """
    List published blogs.

    Supports category/tag/author filters, free-text search over title and
    content, and sorting by creation time, views, or likes.
    """
    page, limit = clamp_page(page, limit, DEFAULT_PAGE_SIZE)
    query = blog_lifecycle.published_blogs_query(
        db,
        category=category,
        tags=tags,
        search=search,
        author_id=author,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    blogs, pagination = paginate(query, page, limit, schemas.BlogPagination)
    annotate_blogs_with_likes(db, blogs, current_user)

    return schemas.ApiResponse(
        data=schemas.BlogListData(
            blogs=[schemas.BlogOut.model_validate(blog) for blog in blogs],
            pagination=pagination,
        ),
    )


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.BlogData],
    status_code=status.HTTP_201_CREATED,
)
def create_blog(
    title: str | None = Form(None),
    content: str | None = Form(None),
    category: str | None = Form(None),
    excerpt: str | None = Form(None),
    tags: list[str] | None = Form(None),
    blog_status: str = Form("draft", alias="status"),
    meta_title: str | None = Form(None, alias="metaTitle"),
    meta_description: str | None = Form(None, alias="metaDescription"),
    featured_image: UploadFile | None = File(None, alias="featuredImage"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.BlogData]:
    """
    Create a blog (multipart form).

    A failed image upload does not block creation; the blog is saved without
    a featured image.
    """
    title = title.strip() if title else title
    if not title or not content or not category:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title, content, and category are required",
        )
    _validate_lengths(title, excerpt)
    blog_lifecycle.validate_category(category)

    image_url = None
    if has_file(featured_image):
        try:
            image_url = upload_image(featured_image, BLOG_IMAGE_FOLDER)
        except UploadError as e:
            logger.warning(f"Featured image upload failed, creating blog without it: {e}")

    blog = blog_lifecycle.create_blog(
        db,
        current_user,
        title=title,
        content=content,
        category=category,
        excerpt=excerpt or None,
        tags=blog_lifecycle.parse_tags(tags),
        featured_image=image_url,
        blog_status=blog_status,
        meta_title=meta_title,
        meta_description=meta_description,
    )

    message = (
        "Blog published successfully"
        if blog.status == "published"
        else "Blog saved as draft successfully"
    )
    return schemas.ApiResponse(
        message=message,
        data=schemas.BlogData(blog=_blog_out(db, blog, current_user)),
    )


@router.get("/my-blogs", response_model=schemas.ApiResponse[schemas.BlogListData])
def get_my_blogs(
    page: int = Query(1),
    limit: int = Query(MY_BLOGS_PAGE_SIZE),
    blog_status: str = Query("all", alias="status"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.BlogListData]:
    """The caller's own blogs in any status, newest first."""
    page, limit = clamp_page(page, limit, MY_BLOGS_PAGE_SIZE)
    query = (
        db.query(models.Blog)
        .options(joinedload(models.Blog.author))
        .filter(models.Blog.author_id == current_user.id)
    )
    if blog_status != "all":
        query = query.filter(models.Blog.status == blog_status)
    query = query.order_by(models.Blog.created_at.desc(), models.Blog.id.desc())

    blogs, pagination = paginate(query, page, limit, schemas.BlogPagination)
    annotate_blogs_with_likes(db, blogs, current_user)

    return schemas.ApiResponse(
        data=schemas.BlogListData(
            blogs=[schemas.BlogOut.model_validate(blog) for blog in blogs],
            pagination=pagination,
        ),
    )


@router.get("/edit/{blog_id}", response_model=schemas.ApiResponse[schemas.BlogData])
def get_blog_for_edit(
    blog_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.BlogData]:
    """Load a blog for the editor. Author or admin only."""
    blog = blog_lifecycle.get_blog_or_404(db, blog_id)
    require_ownership(blog.author_id, current_user)
    return schemas.ApiResponse(data=schemas.BlogData(blog=_blog_out(db, blog, current_user)))


@router.get("/{slug}", response_model=schemas.ApiResponse[schemas.BlogDetailData])
def get_blog_by_slug(
    slug: str,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.BlogDetailData]:
    """
    Read a blog by slug.

    Published blogs are public and each read counts one view. Drafts and
    archived blogs are visible only to the author or an admin, without
    counting a view and without comments.
    """
    blog = db.query(models.Blog).filter(models.Blog.slug == slug).first()
    if not blog or not blog_lifecycle.can_view(blog, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")

    comments: list[models.Comment] = []
    if blog.status == "published":
        blog_lifecycle.increment_views(db, blog)
        comments = load_comment_tree(db, blog.id, current_user)

    annotate_blogs_with_likes(db, [blog], current_user)
    return schemas.ApiResponse(
        data=schemas.BlogDetailData(
            blog=schemas.BlogDetail.model_validate(blog),
            comments=[schemas.CommentOut.model_validate(comment) for comment in comments],
        ),
    )


@router.put("/{blog_id}", response_model=schemas.ApiResponse[schemas.BlogData])
def update_blog(
    blog_id: int,
    title: str | None = Form(None),
    content: str | None = Form(None),
    category: str | None = Form(None),
    excerpt: str | None = Form(None),
    tags: list[str] | None = Form(None),
    blog_status: str | None = Form(None, alias="status"),
    meta_title: str | None = Form(None, alias="metaTitle"),
    meta_description: str | None = Form(None, alias="metaDescription"),
    featured_image: UploadFile | None = File(None, alias="featuredImage"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.BlogData]:
    """
    Update a blog (multipart form). Author or admin only.

    Only supplied fields change. The slug is fixed at creation. A failed image
    upload keeps the previous image.
    """
    blog = blog_lifecycle.get_blog_or_404(db, blog_id)
    require_ownership(blog.author_id, current_user)

    title = title.strip() if title else title
    _validate_lengths(title, excerpt)

    if title:
        blog.title = title
    if content:
        blog.content = content
        blog.read_time = blog_lifecycle.compute_read_time(content)
    if category:
        blog.category = blog_lifecycle.validate_category(category)
    if excerpt is not None:
        blog.excerpt = excerpt or None
    if tags is not None:
        blog.set_tags(blog_lifecycle.parse_tags(tags))
    if meta_title is not None:
        blog.meta_title = meta_title or None
    if meta_description is not None:
        blog.meta_description = meta_description or None
    if blog_status:
        blog_lifecycle.apply_status(blog, blog_status)

    if has_file(featured_image):
        try:
            blog.featured_image = upload_image(featured_image, BLOG_IMAGE_FOLDER)
        except UploadError as e:
            logger.warning(f"Featured image upload failed for blog {blog.id}, keeping old image: {e}")

    db.commit()
    db.refresh(blog)
    logger.info(f"Blog {blog.id} updated by user {current_user.id}")

    return schemas.ApiResponse(
        message="Blog updated successfully",
        data=schemas.BlogData(blog=_blog_out(db, blog, current_user)),
    )


@router.delete("/{blog_id}", response_model=schemas.ApiResponse[None])
def remove_blog(
    blog_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Delete a blog with all its comments and likes. Author or admin only."""
    blog = blog_lifecycle.get_blog_or_404(db, blog_id)
    require_ownership(blog.author_id, current_user)

    delete_blog(db, blog)
    return schemas.ApiResponse(message="Blog deleted successfully")


@router.post("/{blog_id}/like", response_model=schemas.ApiResponse[schemas.LikeState])
def like_blog(
    blog_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.LikeState]:
    """Toggle the caller's like on a blog."""
    blog = blog_lifecycle.get_blog_or_404(db, blog_id)

    is_liked, likes_count = toggle_like(db, blog, current_user)
    return schemas.ApiResponse(
        message="Blog liked" if is_liked else "Blog unliked",
        data=schemas.LikeState(is_liked=is_liked, likes_count=likes_count),
    )
