from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base


ROLES = ("user", "admin", "moderator")
BLOG_STATUSES = ("draft", "published", "archived")
CATEGORIES = (
    "Technology",
    "Lifestyle",
    "Travel",
    "Food",
    "Health",
    "Business",
    "Education",
    "Entertainment",
    "Sports",
    "Other",
)
SOCIAL_LINK_KEYS = ("website", "twitter", "linkedin", "github")


# ============================================================================
# USERS & IDENTITIES
# ============================================================================


class User(Base):
    """User account with profile and role information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(
        String(255), unique=True, nullable=True, index=True
    )  # OAuth accounts may have no email
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    avatar = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    social_links = Column(JSON, nullable=False, default=dict)  # {website, twitter, linkedin, github}
    preferences = Column(JSON, nullable=False, default=dict)  # {email_notifications, newsletter}

    role = Column(String(20), nullable=False, default="user", index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    auth_identities = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    blogs = relationship("Blog", back_populates="author")
    comments = relationship("Comment", back_populates="author")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AuthIdentity(Base):
    """One way of signing in: a password, or a linked OAuth provider account."""

    __tablename__ = "auth_identities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider = Column(String(50), nullable=False)  # "password", "google", "facebook"
    provider_user_id = Column(String(255), nullable=False)  # lower-cased email for "password"
    secret_hash = Column(String(255), nullable=True)  # bcrypt hash, password provider only
    email = Column(String(255), nullable=True)
    provider_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user = relationship("User", back_populates="auth_identities")

    __table_args__ = (
        UniqueConstraint(
            "provider", "provider_user_id", name="uq_auth_identity_provider_user"
        ),
        Index("ix_auth_identities_user_provider", user_id, provider),
    )


class Follow(Base):
    """User following relationship."""

    __tablename__ = "follows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    following_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow_follower_following"),
    )


# ============================================================================
# BLOGS
# ============================================================================


class Blog(Base):
    """A blog post. The slug is assigned once at creation and never changes."""

    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(200), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(String(300), nullable=True)
    featured_image = Column(String(500), nullable=True)
    author_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    views = Column(Integer, nullable=False, default=0)
    read_time = Column(Integer, nullable=False, default=1)  # minutes
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(String(300), nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    author = relationship("User", back_populates="blogs")
    tag_links = relationship(
        "BlogTag",
        back_populates="blog",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BlogTag.id",
    )

    __table_args__ = (
        Index("ix_blogs_status_created", status, created_at.desc()),
        Index("ix_blogs_author_created", author_id, created_at.desc()),
    )

    @property
    def tags(self) -> list[str]:
        return [link.tag for link in self.tag_links]

    def set_tags(self, tags: list[str]) -> None:
        # Reuse surviving rows; the unit of work inserts before it deletes.
        existing = {link.tag: link for link in self.tag_links}
        self.tag_links = [existing.get(tag) or BlogTag(tag=tag) for tag in tags]


class BlogTag(Base):
    """A single tag attached to a blog."""

    __tablename__ = "blog_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blog_id = Column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag = Column(String(50), nullable=False, index=True)

    blog = relationship("Blog", back_populates="tag_links")

    __table_args__ = (UniqueConstraint("blog_id", "tag", name="uq_blog_tag"),)


class BlogLike(Base):
    """A user's like on a blog. At most one per (blog, user)."""

    __tablename__ = "blog_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blog_id = Column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("blog_id", "user_id", name="uq_blog_like_blog_user"),)


# ============================================================================
# COMMENTS
# ============================================================================


class Comment(Base):
    """Comment on a blog. Replies point at their parent; nesting is one level deep."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blog_id = Column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id = Column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    author = relationship("User", back_populates="comments")
    blog = relationship("Blog")

    __table_args__ = (Index("ix_comments_blog_created", blog_id, created_at.desc()),)


class CommentLike(Base):
    """A user's like on a comment. At most one per (comment, user)."""

    __tablename__ = "comment_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    comment_id = Column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_like_comment_user"),
    )


# ============================================================================
# ADMIN
# ============================================================================


class AuditLog(Base):
    """Record of an admin action."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action = Column(String(50), nullable=False, index=True)
    target_type = Column(String(50), nullable=True)
    target_id = Column(Integer, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("ix_audit_logs_actor_created", actor_id, created_at.desc()),)
