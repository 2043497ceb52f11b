"""
API Module

Webhook ingestion, the date-filterable feed and the login endpoints.
"""
import json
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from github_feed import auth, config
from github_feed.normalizer import normalize_event
from github_feed.schemas import LoginRequest
from github_feed.signature import verify_signature
from github_feed.store import FeedStore, StoreError

logger = logging.getLogger(__name__)
router = APIRouter()


def get_store(request: Request) -> FeedStore:
    # Built once in the application lifespan
    return request.app.state.store


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _require_reader(authorization: Optional[str]) -> Optional[str]:
    """Username of the feed reader, or None when the request must be refused."""
    if not config.FEED_REQUIRE_AUTH:
        return "anonymous"
    return auth.authenticate_request(authorization)


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    store: FeedStore = Depends(get_store),
    x_github_event: Optional[str] = Header(None),
    x_github_delivery: Optional[str] = Header(None),
    x_hub_signature_256: Optional[str] = Header(None),
):
    """
    Receive a GitHub webhook delivery and store the resulting feed record.
    """
    raw_body = await request.body()

    secret = config.GITHUB_WEBHOOK_SECRET
    if secret:
        if not x_hub_signature_256:
            logger.warning("Webhook secret configured but no signature provided - rejecting request")
            return _error(401, "Missing signature")
        if not verify_signature(raw_body, x_hub_signature_256, secret):
            logger.warning(f"Invalid webhook signature for delivery {x_github_delivery} - rejecting request")
            return _error(401, "Invalid signature")
    else:
        logger.warning("No webhook secret configured - accepting unsigned webhook")

    try:
        payload = json.loads(raw_body)
    except ValueError as e:
        logger.error(f"Error parsing webhook body for delivery {x_github_delivery}: {e}")
        return _error(500, "Internal server error")

    logger.info(
        f"Received GitHub webhook: event={x_github_event} delivery={x_github_delivery} "
        f"action={payload.get('action') if isinstance(payload, dict) else None}"
    )

    record = normalize_event(x_github_event, payload, config.GITHUB_OWN_USERNAME)
    if record is None:
        return {"success": True, "ignored": True}

    try:
        store.upsert(record)
    except StoreError as e:
        logger.error(f"Error processing webhook {x_github_delivery}: {e}")
        return _error(500, "Internal server error")

    return {"success": True}


@router.get("/feed")
def get_feed(
    date: Optional[str] = Query(None, description="Only items from this day (YYYY-MM-DD)"),
    authorization: Optional[str] = Header(None),
    store: FeedStore = Depends(get_store),
):
    """
    Get feed items, most recent first, optionally limited to one day.
    """
    username = _require_reader(authorization)
    if username is None:
        return _error(401, "Unauthorized")

    try:
        records = store.query(date or None)
    except StoreError as e:
        logger.error(f"Error in feed API: {e}")
        return _error(500, "Internal server error")

    logger.info(
        f"Feed API: returning {len(records)} items"
        f"{f' for date {date}' if date else ''} for user {username}"
    )
    return [record.model_dump(mode="json") for record in records]


@router.get("/feed/count", response_model=Dict[str, int])
def get_feed_count(
    authorization: Optional[str] = Header(None),
    store: FeedStore = Depends(get_store),
):
    """
    Get the total number of stored feed items.
    """
    if _require_reader(authorization) is None:
        return _error(401, "Unauthorized")
    try:
        return {"count": store.count()}
    except StoreError as e:
        logger.error(f"Error counting feed items: {e}")
        return _error(500, "Internal server error")


@router.post("/auth")
def login(credentials: LoginRequest):
    """
    Exchange the configured username and password for a bearer token.
    """
    if not auth.credentials_configured():
        logger.error("Login attempted but AUTH_USERNAME/AUTH_PASSWORD are not set")
        return _error(500, "Authentication not configured")

    if not auth.check_credentials(credentials.username, credentials.password):
        logger.warning(f"Failed login for user {credentials.username!r}")
        return _error(401, "Invalid credentials")

    logger.info(f"User {credentials.username} logged in")
    return {"success": True, "token": auth.create_token(credentials.username)}


@router.post("/logout")
def logout():
    response = JSONResponse(content={"success": True})
    response.delete_cookie(config.AUTH_COOKIE_NAME, path="/", httponly=True, samesite="strict")
    return response
