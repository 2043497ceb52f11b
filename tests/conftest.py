from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from github_feed import config
from github_feed.api import router
from github_feed.database import dispose_engine
from github_feed.store import FeedStore


def make_issue_payload(
    *,
    action: str = "opened",
    issue_id: int = 555,
    number: int = 7,
    created_at: str = "2024-01-01T10:00:00Z",
    updated_at: str = "2024-01-02T08:30:00Z",
    sender: str | None = "closer",
    author: str = "author",
    repo: str = "octo/widgets",
) -> dict:
    payload = {
        "action": action,
        "issue": {
            "id": issue_id,
            "number": number,
            "title": "Widgets break on Tuesdays",
            "body": "Steps to reproduce...",
            "state": "open",
            "html_url": f"https://github.com/{repo}/issues/{number}",
            "created_at": created_at,
            "updated_at": updated_at,
            "user": {"login": author, "avatar_url": f"https://avatars.example/{author}"},
        },
        "repository": {"full_name": repo},
    }
    if sender:
        payload["sender"] = {"login": sender, "avatar_url": f"https://avatars.example/{sender}"}
    return payload


def make_comment_payload(
    *,
    action: str = "created",
    comment_id: int = 9001,
    body: str = "looks good",
    created_at: str = "2024-01-01T12:00:00Z",
    author: str = "reviewer",
    number: int = 7,
    repo: str = "octo/widgets",
) -> dict:
    issue_url = f"https://github.com/{repo}/issues/{number}"
    return {
        "action": action,
        "comment": {
            "id": comment_id,
            "body": body,
            "html_url": f"{issue_url}#issuecomment-{comment_id}",
            "created_at": created_at,
            "updated_at": created_at,
            "user": {"login": author, "avatar_url": f"https://avatars.example/{author}"},
        },
        "issue": {
            "id": 555,
            "number": number,
            "title": "Widgets break on Tuesdays",
            "html_url": issue_url,
        },
        "repository": {"full_name": repo},
    }


@pytest.fixture()
def store(tmp_path) -> Generator[FeedStore, None, None]:
    url = f"sqlite:///{tmp_path / 'feed.db'}"
    feed_store = FeedStore(url)
    try:
        yield feed_store
    finally:
        dispose_engine(url)


@pytest.fixture()
def settings(monkeypatch):
    monkeypatch.setattr(config, "GITHUB_WEBHOOK_SECRET", "")
    monkeypatch.setattr(config, "GITHUB_OWN_USERNAME", "me")
    monkeypatch.setattr(config, "AUTH_USERNAME", "reader")
    monkeypatch.setattr(config, "AUTH_PASSWORD", "hunter2")
    monkeypatch.setattr(config, "AUTH_SECRET", "test-secret")
    monkeypatch.setattr(config, "FEED_REQUIRE_AUTH", True)
    return config


@pytest.fixture()
def client(store, settings) -> TestClient:
    app = FastAPI()
    app.include_router(router, prefix=config.API_PREFIX)
    app.state.store = store
    return TestClient(app)
