from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from github_feed.api import router as api_router
from github_feed.store import FeedStore
from github_feed import config


logging.basicConfig(
    level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.GITHUB_WEBHOOK_SECRET:
        logger.warning(
            "No webhook secret configured. Unsigned webhooks will be accepted. "
            "Set the GITHUB_WEBHOOK_SECRET environment variable to verify deliveries."
        )
    if config.FEED_REQUIRE_AUTH and config.AUTH_SECRET == "default-secret":
        logger.warning("AUTH_SECRET is not set; feed tokens are signed with the default secret")

    config.FEED_DB_PATH.parent.mkdir(exist_ok=True, parents=True)
    store = FeedStore(config.FEED_DB_URL)
    store.initialize()
    app.state.store = store
    logger.info(f"Feed store ready with {store.count()} items")
    try:
        yield
    finally:
        logger.info("Application shutdown.")

app = FastAPI(
    title="GitHub Feed",
    description="Collects GitHub issue and comment webhooks into a date-filterable activity feed",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=config.API_PREFIX)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
