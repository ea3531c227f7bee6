"""
SQLAlchemy ORM models for the engagement store.

Tables:
  authors     — post authors
  posts       — post metadata, one author each
  engagements — one row per like / comment / share on a post
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from engagement_api.database import Base


class Author(Base):
    __tablename__ = "authors"

    author_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    posts = relationship("Post", back_populates="author", lazy="noload")


class Post(Base):
    __tablename__ = "posts"

    post_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("authors.author_id"), nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    author = relationship("Author", back_populates="posts", lazy="noload")

    __table_args__ = (
        Index("idx_posts_author", "author_id"),
    )


class Engagement(Base):
    __tablename__ = "engagements"

    engagement_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.post_id"), nullable=False
    )
    engaged_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    engagement_type: Mapped[Optional[str]] = mapped_column(
        String(20)
    )  # 'like' | 'comment' | 'share'

    __table_args__ = (
        Index("idx_engagements_post", "post_id"),
        # Window and bucket queries all range-scan on the timestamp
        Index("idx_engagements_ts", "engaged_timestamp"),
    )
