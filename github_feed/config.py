"""
Configuration Module

This module contains configuration settings for the application.
"""
import os
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

# Base directory - one level up from this file
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env file from BASE_DIR (adjust path if your .env is elsewhere)
load_dotenv(BASE_DIR / ".env")


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Feed storage - a single local SQLite database
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
FEED_DB_PATH = Path(os.getenv("FEED_DB_PATH", DATA_DIR / "feed.db"))
FEED_DB_URL = os.getenv("FEED_DB_URL", f"sqlite:///{FEED_DB_PATH}")

# Webhook settings
GITHUB_WEBHOOK_SECRET = os.getenv("GITHUB_WEBHOOK_SECRET", "")
GITHUB_OWN_USERNAME = os.getenv("GITHUB_OWN_USERNAME", "")

# Feed reader authentication
AUTH_USERNAME = os.getenv("AUTH_USERNAME", "")
AUTH_PASSWORD = os.getenv("AUTH_PASSWORD", "")
AUTH_SECRET = os.getenv("AUTH_SECRET", "default-secret")
AUTH_TOKEN_EXPIRE_DAYS = int(os.getenv("AUTH_TOKEN_EXPIRE_DAYS", "7"))
AUTH_COOKIE_NAME = "github-feed-auth"
FEED_REQUIRE_AUTH = _env_flag("FEED_REQUIRE_AUTH", True)

# GitHub API settings (backfill)
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")  # Personal Access Token for GitHub API
GITHUB_REPOSITORIES = [
    repo.strip()
    for repo in os.getenv("GITHUB_REPOSITORIES", "").split(",")
    if repo.strip()
]
BACKFILL_DAYS = int(os.getenv("BACKFILL_DAYS", "14"))
MAX_PAGES_PER_COLLECTION = int(os.getenv("MAX_PAGES_PER_COLLECTION", "30"))
PER_PAGE = int(os.getenv("PER_PAGE", 100))  # 100 is the max for GitHub API

# API settings
API_PREFIX = "/api"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
