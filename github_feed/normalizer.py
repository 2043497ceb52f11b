"""
Event Normalizer Module

Maps raw GitHub webhook payloads into canonical feed records.

Two event types are recognized, keyed by the X-GitHub-Event header:

- ``issues``: issue lifecycle transitions (opened, closed, reopened)
- ``issue_comment``: newly created issue comments

Anything else, including filtered actions and payloads missing the nested
objects a recognized event needs, is "not applicable" and yields None.
"""
import logging
from typing import Any, Callable, Dict, Optional

from github_feed.schemas import FeedKind, FeedRecord, LifecycleAction
from github_feed.timestamps import derive_date, epoch_seconds, to_utc_timestamp

logger = logging.getLogger(__name__)

ISSUE_ACTIONS = ("opened", "closed", "reopened")
COMMENT_ACTIONS = ("created",)

# Single digit appended to the issue id to keep lifecycle actions apart
ACTION_DIGITS = {"opened": "1", "closed": "2"}
DEFAULT_ACTION_DIGIT = "3"


def derive_issue_event_id(issue_id: int, action: str, timestamp: str) -> int:
    """
    Build the feed id for an issue lifecycle action.

    The id is the decimal concatenation of the issue id, the action digit
    and the epoch seconds of the action's timestamp, e.g. issue 555 opened
    at 2024-01-01T10:00:00Z gives 55511704103200. Different concatenations
    can collide numerically, so the id is stable but not guaranteed unique.
    Current issue ids are about 10 digits, so ids usually exceed 64 bits;
    they are kept exact rather than truncated.
    """
    digit = ACTION_DIGITS.get(action, DEFAULT_ACTION_DIGIT)
    return int(f"{int(issue_id)}{digit}{epoch_seconds(timestamp)}")


def _user(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, dict) and data.get("login"):
        return data
    return None


def _is_own(login: str, own_username: Optional[str]) -> bool:
    return bool(own_username) and login == own_username


def _normalize_issue(payload: Dict[str, Any], own_username: Optional[str]) -> Optional[FeedRecord]:
    action = payload.get("action")
    if action not in ISSUE_ACTIONS:
        logger.info(f"Ignoring issues event with action: {action}")
        return None

    issue = payload.get("issue")
    repository = payload.get("repository")
    if not isinstance(issue, dict) or not isinstance(repository, dict):
        logger.warning("issues event without issue or repository, ignoring")
        return None

    timestamp = issue.get("created_at") if action == "opened" else issue.get("updated_at")
    # Prefer the user who performed the action over the issue author
    actor = _user(payload.get("sender")) or _user(issue.get("user"))
    if actor is None:
        logger.warning(f"issues event for issue {issue.get('id')} has no actor, ignoring")
        return None

    try:
        record_id = derive_issue_event_id(issue["id"], action, timestamp)
        return FeedRecord(
            id=record_id,
            kind=FeedKind.EVENT,
            occurred_at=to_utc_timestamp(timestamp),
            actor_login=actor["login"],
            actor_avatar_url=actor.get("avatar_url") or "",
            repository_full_name=repository["full_name"],
            activity_url=issue["html_url"],
            parent_url=issue["html_url"],
            parent_number=issue["number"],
            parent_title=issue.get("title"),
            body=issue.get("body") if action == "opened" else None,
            lifecycle_action=LifecycleAction(action),
            is_own=_is_own(actor["login"], own_username),
            derived_date=derive_date(timestamp),
            upstream_id=issue["id"],
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed issues payload, ignoring: {e}")
        return None


def _normalize_comment(payload: Dict[str, Any], own_username: Optional[str]) -> Optional[FeedRecord]:
    action = payload.get("action")
    if action not in COMMENT_ACTIONS:
        logger.info(f"Ignoring issue_comment event with action: {action}")
        return None

    comment = payload.get("comment")
    issue = payload.get("issue")
    repository = payload.get("repository")
    if not all(isinstance(part, dict) for part in (comment, issue, repository)):
        logger.warning("issue_comment event without comment, issue or repository, ignoring")
        return None

    author = _user(comment.get("user"))
    if author is None:
        logger.warning(f"Comment {comment.get('id')} has no author, ignoring")
        return None

    try:
        timestamp = comment["created_at"]
        return FeedRecord(
            id=comment["id"],
            kind=FeedKind.COMMENT,
            occurred_at=to_utc_timestamp(timestamp),
            actor_login=author["login"],
            actor_avatar_url=author.get("avatar_url") or "",
            repository_full_name=repository["full_name"],
            activity_url=comment["html_url"],
            parent_url=issue["html_url"],
            parent_number=issue["number"],
            parent_title=issue.get("title"),
            body=comment.get("body") or "",
            is_own=_is_own(author["login"], own_username),
            derived_date=derive_date(timestamp),
            upstream_id=comment["id"],
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed issue_comment payload, ignoring: {e}")
        return None


NORMALIZERS: Dict[str, Callable[[Dict[str, Any], Optional[str]], Optional[FeedRecord]]] = {
    "issues": _normalize_issue,
    "issue_comment": _normalize_comment,
}


def normalize_event(
    event_type: Optional[str], payload: Any, own_username: Optional[str] = None
) -> Optional[FeedRecord]:
    """
    Normalize a webhook payload into a feed record.

    Args:
        event_type: Value of the X-GitHub-Event header
        payload: Parsed JSON body
        own_username: Login whose activity is flagged with is_own

    Returns:
        FeedRecord, or None when the event is not applicable
    """
    normalizer = NORMALIZERS.get(event_type or "")
    if normalizer is None:
        logger.info(f"Ignoring unsupported event type: {event_type}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"{event_type} payload is not a JSON object, ignoring")
        return None
    return normalizer(payload, own_username)
