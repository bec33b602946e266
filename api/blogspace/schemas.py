from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# BASE SCHEMAS
# ============================================================================


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """Envelope shared by every JSON response."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class FieldError(CamelModel):
    field: str
    message: str


class ErrorResponse(CamelModel):
    """Error envelope produced by the exception handlers."""

    success: Literal[False] = False
    message: str
    error: str | None = None
    errors: list[FieldError] | None = None
    stack: str | None = None


class PaginationBase(CamelModel):
    """Page metadata; each subclass names its own total count field."""

    total_field: ClassVar[str]

    current_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Pagination(PaginationBase):
    total_field: ClassVar[str] = "total"

    total: int


class BlogPagination(PaginationBase):
    total_field: ClassVar[str] = "total_blogs"

    total_blogs: int


class UserPagination(PaginationBase):
    total_field: ClassVar[str] = "total_users"

    total_users: int


class Page(CamelModel, Generic[T]):
    """Generic page of admin stats items."""

    items: list[T]
    pagination: Pagination
    type: str


class HealthData(CamelModel):
    timestamp: datetime


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserSummary(CamelModel):
    """Minimal author/follower card."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar: str | None = None


class UserCard(UserSummary):
    bio: str | None = None


class UserPublic(UserCard):
    """Public user profile."""

    full_name: str
    social_links: dict[str, str] = Field(default_factory=dict)
    role: str
    created_at: datetime
    followers: list[UserSummary] = Field(default_factory=list)
    following: list[UserSummary] = Field(default_factory=list)


class UserFull(UserPublic):
    """Full user profile (for the authenticated user and admins)."""

    email: str | None = None
    is_active: bool
    is_email_verified: bool
    last_login: datetime | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime | None = None


class AdminUser(UserCard):
    """User row in admin listings."""

    email: str | None = None
    role: str
    is_active: bool
    is_email_verified: bool
    last_login: datetime | None = None
    created_at: datetime


class UserStats(CamelModel):
    total_blogs: int
    total_views: int
    total_likes: int


class UserProfileData(CamelModel):
    user: UserPublic
    blogs: list[BlogOut]
    stats: UserStats


class UserData(CamelModel):
    user: UserFull


class FollowState(CamelModel):
    is_following: bool
    followers_count: int


# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=20, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)

    @field_validator("username", "first_name", "last_name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthData(CamelModel):
    token: str
    user: UserFull


class TokenData(CamelModel):
    token: str


# ============================================================================
# BLOG SCHEMAS
# ============================================================================


class BlogAuthor(UserCard):
    social_links: dict[str, str] = Field(default_factory=dict)


class BlogOut(CamelModel):
    """Blog as returned by listings and mutations."""

    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    featured_image: str | None = None
    author: UserSummary
    category: str
    tags: list[str] = Field(default_factory=list)
    status: str
    views: int
    read_time: int
    is_published: bool
    published_at: datetime | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    likes_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class BlogDetail(BlogOut):
    author: BlogAuthor


class BlogData(CamelModel):
    blog: BlogOut


class BlogListData(CamelModel):
    blogs: list[BlogOut]
    pagination: BlogPagination


class BlogDetailData(CamelModel):
    blog: BlogDetail
    comments: list[CommentOut]


class LikeState(CamelModel):
    is_liked: bool
    likes_count: int


class BlogRef(CamelModel):
    id: int
    title: str
    slug: str


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=1000)
    blog: int
    parent_comment: int | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class CommentUpdate(CamelModel):
    content: str = Field(min_length=1, max_length=1000)

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class CommentOut(CamelModel):
    id: int
    content: str
    author: UserSummary
    # ORM rows carry blog_id/parent_id; serialized responses carry the camelCase names
    blog: int = Field(validation_alias=AliasChoices("blog_id", "blog"))
    parent_comment: int | None = Field(
        default=None, validation_alias=AliasChoices("parent_id", "parentComment")
    )
    replies: list[CommentOut] = Field(default_factory=list)
    likes_count: int = 0
    is_liked: bool = False
    is_edited: bool
    edited_at: datetime | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


class AdminComment(CamelModel):
    id: int
    content: str
    author: UserSummary
    blog: BlogRef
    is_active: bool
    created_at: datetime


class CommentData(CamelModel):
    comment: CommentOut


class CommentListData(CamelModel):
    comments: list[CommentOut]


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================


class DashboardCounts(CamelModel):
    total_users: int
    total_blogs: int
    total_comments: int
    published_blogs: int
    draft_blogs: int
    archived_blogs: int


class RecentActivity(CamelModel):
    users: list[UserSummary]
    blogs: list[BlogOut]


class DashboardStats(CamelModel):
    stats: DashboardCounts
    recent_activity: RecentActivity


class AdminUserList(CamelModel):
    users: list[AdminUser]
    pagination: UserPagination


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserRoleUpdate(CamelModel):
    role: str


class BlogStatusUpdate(CamelModel):
    status: str


UserProfileData.model_rebuild()
BlogDetailData.model_rebuild()
CommentOut.model_rebuild()
