"""
Database Models

This module defines the database models for the application.
"""
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, Text, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class DecimalId(TypeDecorator):
    """
    Non-negative integer id stored as zero-padded decimal text.

    Derived issue-event ids outgrow SQLite's 64-bit INTEGER; padding keeps
    text order equal to numeric order.
    """

    impl = String(32)
    cache_ok = True

    WIDTH = 32

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError(f"Feed ids must be non-negative, got {value}")
        return str(value).zfill(self.WIDTH)

    def process_result_value(self, value, dialect):
        return None if value is None else int(value)


class FeedItem(Base):
    """A single issue event or issue comment in the activity feed."""

    __tablename__ = "feed_items"

    id = Column(DecimalId, primary_key=True)
    kind = Column(String, nullable=False)
    occurred_at = Column(String, nullable=False)
    actor_login = Column(String, nullable=False)
    actor_avatar_url = Column(String, nullable=False)
    repository_full_name = Column(String, nullable=False)
    activity_url = Column(String, nullable=False)
    parent_url = Column(String, nullable=False)
    parent_number = Column(Integer, nullable=False)
    parent_title = Column(String)
    body = Column(Text)
    lifecycle_action = Column(String)
    is_own = Column(Boolean, nullable=False, default=False)
    derived_date = Column(String, nullable=False)
    upstream_id = Column(BigInteger)

    __table_args__ = (
        Index("idx_feed_items_derived_date", "derived_date"),
    )

    def __repr__(self):
        return f"<FeedItem(id={self.id}, kind={self.kind}, repo={self.repository_full_name})>"
