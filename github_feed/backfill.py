"""
Backfill Module

Pulls recent issue comments and issue lifecycle events from the GitHub REST
API and feeds them through the same normalizer and store as live webhooks,
so a freshly started feed is not empty.

Usage:
    python -m github_feed.backfill --repo owner/name --days 14
"""
import argparse
import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

import requests

from github_feed import config
from github_feed.normalizer import ISSUE_ACTIONS, normalize_event
from github_feed.store import FeedStore
from github_feed.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

ISSUE_NUMBER_RE = re.compile(r"/issues/(\d+)$")


class GitHubAPIError(Exception):
    """Raised when the GitHub API answers with an unexpected status."""

    def __init__(self, status_code: int, url: str, message: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"GitHub API error {status_code} for {url}: {message}")


class GitHubBackfill:
    """
    Fetches historical activity for repositories and stores it as feed records.
    """

    def __init__(self, store: FeedStore, token: Optional[str] = None, session=None):
        self.store = store
        self.base_url = config.GITHUB_API_URL.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "GitHub-Feed-Backfill",
            }
        )
        token = config.GITHUB_TOKEN if token is None else token
        if token:
            self.session.headers["Authorization"] = f"token {token}"
            logger.info("Using GitHub token for authentication")
        else:
            logger.warning(
                "No GitHub token provided. API rate limits will be restricted. "
                "Set the GITHUB_TOKEN environment variable to increase rate limits."
            )
        self._issue_cache: Dict[tuple, Dict[str, Any]] = {}

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        logger.info(f"Fetching {url}")
        response = self.session.get(url, params=params)
        if response.status_code == 403:
            reset = response.headers.get("X-RateLimit-Reset")
            if reset:
                logger.error(
                    f"GitHub API rate limit exceeded, resets at {datetime.fromtimestamp(int(reset))}"
                )
            raise GitHubAPIError(403, url, "rate limit exceeded or access denied")
        if response.status_code != 200:
            raise GitHubAPIError(response.status_code, url, response.text[:200])

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None and int(remaining) < 10:
            logger.warning(f"Rate limit low: {remaining} requests remaining")
        return response

    def _paginate(self, url: str, params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        page_count = 0
        next_url = url
        while next_url and page_count < config.MAX_PAGES_PER_COLLECTION:
            response = self._get(next_url, params=params if page_count == 0 else None)
            items = response.json()
            if not items:
                break
            yield from items
            page_count += 1
            next_url = self._get_next_page_url(response.headers.get("Link", ""))
        if next_url and page_count >= config.MAX_PAGES_PER_COLLECTION:
            logger.warning(
                f"Reached max pages limit ({config.MAX_PAGES_PER_COLLECTION}) for {url}. "
                "Some data may be missing."
            )

    def _get_next_page_url(self, link_header: str) -> Optional[str]:
        if 'rel="next"' in link_header:
            for part in link_header.split(","):
                if 'rel="next"' in part:
                    url_part = part.split(";")[0].strip().strip("<>")
                    return url_part
        return None

    def fetch_issue_comments(self, full_name: str, since: datetime) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/repos/{full_name}/issues/comments"
        params = {"since": since.strftime("%Y-%m-%dT%H:%M:%SZ"), "per_page": config.PER_PAGE}
        comments = list(self._paginate(url, params))
        logger.info(f"Found {len(comments)} comments on {full_name} since {since.isoformat()}")
        return comments

    def fetch_issue_events(self, full_name: str, since: datetime) -> List[Dict[str, Any]]:
        """
        Repository IssuesEvents with a lifecycle action, newest first.

        The events API is ordered newest first, so paging stops at the
        first event older than ``since``.
        """
        url = f"{self.base_url}/repos/{full_name}/events"
        events = []
        for event in self._paginate(url, {"per_page": config.PER_PAGE}):
            created_at = event.get("created_at")
            if created_at and parse_timestamp(created_at) < since:
                break
            if event.get("type") != "IssuesEvent":
                continue
            if (event.get("payload") or {}).get("action") in ISSUE_ACTIONS:
                events.append(event)
        logger.info(f"Found {len(events)} relevant issue events on {full_name}")
        return events

    def fetch_issue(self, full_name: str, number: int) -> Dict[str, Any]:
        key = (full_name, number)
        if key not in self._issue_cache:
            url = f"{self.base_url}/repos/{full_name}/issues/{number}"
            self._issue_cache[key] = self._get(url).json()
        return self._issue_cache[key]

    def _comment_payload(self, full_name: str, comment: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        match = ISSUE_NUMBER_RE.search(comment.get("issue_url") or "")
        if not match:
            logger.warning(f"Comment {comment.get('id')} has no issue url, skipping")
            return None
        number = int(match.group(1))
        try:
            issue = self.fetch_issue(full_name, number)
        except GitHubAPIError as e:
            logger.warning(f"Could not fetch issue {full_name}#{number}: {e}")
            issue = {"number": number, "html_url": (comment.get("html_url") or "").split("#")[0]}
        return {
            "action": "created",
            "comment": comment,
            "issue": issue,
            "repository": {"full_name": full_name},
        }

    def _issue_event_payload(self, full_name: str, event: Dict[str, Any]) -> Dict[str, Any]:
        payload = event.get("payload") or {}
        return {
            "action": payload.get("action"),
            "issue": payload.get("issue"),
            "repository": {"full_name": full_name},
            "sender": event.get("actor"),
        }

    def _ingest(self, event_type: str, payload: Optional[Dict[str, Any]]) -> int:
        if payload is None:
            return 0
        record = normalize_event(event_type, payload, config.GITHUB_OWN_USERNAME)
        if record is None:
            return 0
        self.store.upsert(record)
        return 1

    def backfill_repository(self, full_name: str, since: datetime) -> int:
        """
        Store comments and issue events of one repository newer than ``since``.

        Returns:
            Number of feed records written
        """
        written = 0
        for comment in self.fetch_issue_comments(full_name, since):
            written += self._ingest("issue_comment", self._comment_payload(full_name, comment))
        for event in self.fetch_issue_events(full_name, since):
            written += self._ingest("issues", self._issue_event_payload(full_name, event))
        logger.info(f"Backfilled {written} feed items for {full_name}")
        return written

    def run(self, repositories: List[str], days: int, delay: float = 1.0) -> int:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        logger.info(
            f"Starting backfill for {len(repositories)} repositories since {since.isoformat()}"
        )
        total = 0
        for index, full_name in enumerate(repositories):
            owner, _, name = full_name.partition("/")
            if not owner or not name:
                logger.error(f"Invalid repository format: {full_name}")
                continue
            try:
                total += self.backfill_repository(full_name, since)
            except Exception as e:
                logger.error(f"Error backfilling {full_name}: {e}")
            if delay and index < len(repositories) - 1:
                time.sleep(delay)
        logger.info(f"Backfill complete! Total items in database: {self.store.count()}")
        return total


def main(argv=None):
    parser = argparse.ArgumentParser(description="Backfill the feed from the GitHub API.")
    parser.add_argument(
        "--repo",
        action="append",
        dest="repositories",
        help="Repository as owner/name; may be repeated. Defaults to GITHUB_REPOSITORIES.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=config.BACKFILL_DAYS,
        help="How many days of history to fetch.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    repositories = args.repositories or config.GITHUB_REPOSITORIES
    if not repositories:
        parser.error("no repositories given; use --repo or set GITHUB_REPOSITORIES")

    config.FEED_DB_PATH.parent.mkdir(exist_ok=True, parents=True)
    store = FeedStore(config.FEED_DB_URL)
    store.initialize()
    GitHubBackfill(store).run(repositories, args.days)


if __name__ == "__main__":
    main()
