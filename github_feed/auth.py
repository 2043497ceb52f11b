"""
Authentication Module

Issues and checks the bearer tokens that protect the feed endpoints.
Tokens are HS256 JWTs carrying the username and an expiry.
"""
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from github_feed import config

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BEARER_PREFIX = "Bearer "


def credentials_configured() -> bool:
    return bool(config.AUTH_USERNAME and config.AUTH_PASSWORD)


def check_credentials(username: str, password: str) -> bool:
    """Compare login credentials against the configured ones."""
    username_ok = hmac.compare_digest(
        (username or "").encode("utf-8"), config.AUTH_USERNAME.encode("utf-8")
    )
    password_ok = hmac.compare_digest(
        (password or "").encode("utf-8"), config.AUTH_PASSWORD.encode("utf-8")
    )
    return username_ok and password_ok


def create_token(username: str, expires_in: Optional[timedelta] = None) -> str:
    if expires_in is None:
        expires_in = timedelta(days=config.AUTH_TOKEN_EXPIRE_DAYS)
    payload = {
        "sub": username,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, config.AUTH_SECRET, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """
    Return the username a token was issued for.

    Returns None when the signature is wrong, the token has expired or
    it is not a token at all.
    """
    try:
        payload = jwt.decode(token, config.AUTH_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None
    username = payload.get("sub")
    return username if isinstance(username, str) and username else None


def authenticate_request(authorization: Optional[str]) -> Optional[str]:
    """Resolve an ``Authorization: Bearer <token>`` header to a username."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return verify_token(authorization[len(BEARER_PREFIX):].strip())
