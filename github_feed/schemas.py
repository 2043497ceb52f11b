"""
Feed Schemas

Canonical representation of a feed record, shared by the normalizer,
the store and the API responses.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FeedKind(str, Enum):
    COMMENT = "comment"
    EVENT = "event"


class LifecycleAction(str, Enum):
    OPENED = "opened"
    CLOSED = "closed"
    REOPENED = "reopened"


class FeedRecord(BaseModel):
    """One accepted issue event or issue comment."""

    id: int
    kind: FeedKind
    occurred_at: str
    actor_login: str
    actor_avatar_url: str
    repository_full_name: str
    activity_url: str
    parent_url: str
    parent_number: int
    parent_title: Optional[str] = None
    body: Optional[str] = None
    lifecycle_action: Optional[LifecycleAction] = None
    is_own: bool = False
    derived_date: Optional[str] = None
    # Raw GitHub id of the issue or comment, stored for debugging only
    upstream_id: Optional[int] = Field(default=None, exclude=True)


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""
