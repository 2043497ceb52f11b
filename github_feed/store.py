"""
Feed Store Module

Durable, date-indexed storage for feed records. Writes are idempotent:
a record whose id already exists replaces the stored row entirely.
"""
import logging
import threading
from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from github_feed.database import get_engine, get_sync_session
from github_feed.models import Base, FeedItem
from github_feed.schemas import FeedRecord
from github_feed.timestamps import derive_date, to_utc_timestamp

logger = logging.getLogger(__name__)

# Columns written on every upsert, in table order
RECORD_COLUMNS = [
    column.name for column in FeedItem.__table__.columns
]


class StoreError(Exception):
    """Raised when the feed database cannot be read or written."""


class FeedStore:
    """
    Stores feed records in a single ``feed_items`` table.

    Records are returned newest first by ``occurred_at``; records sharing a
    timestamp are ordered by id, highest first. ``occurred_at`` is written in
    UTC ``Z`` form so that string order is chronological order.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = get_engine(database_url)
        self._initialized = False
        self._init_lock = threading.Lock()

    def initialize(self):
        """Create the feed table and its date index if they do not exist."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            try:
                with self.engine.begin() as conn:
                    Base.metadata.create_all(bind=conn, checkfirst=True)
            except SQLAlchemyError as e:
                raise StoreError(f"Could not initialize feed database: {e}") from e
            self._initialized = True
        logger.info(f"Feed database initialized at {self.engine.url}")

    def upsert(self, record: FeedRecord) -> None:
        """Insert the record, or overwrite every column of an existing one."""
        self.initialize()
        values = self._to_row(record)
        stmt = insert(FeedItem).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[FeedItem.id],
            set_={name: stmt.excluded[name] for name in RECORD_COLUMNS if name != "id"},
        )
        try:
            with get_sync_session(self.engine) as session:
                session.execute(stmt)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error writing feed item {record.id}: {e}")
            raise StoreError(f"Could not write feed item {record.id}") from e

        logger.info(
            f"Stored {values['kind']}: "
            f"{values['lifecycle_action'] or 'comment'} on "
            f"{values['repository_full_name']}#{values['parent_number']}"
        )

    def query(self, date: Optional[str] = None) -> List[FeedRecord]:
        """
        Return stored records, newest first.

        Args:
            date: Only return records whose derived date equals this
                  YYYY-MM-DD string; no filtering when empty
        """
        self.initialize()
        stmt = select(FeedItem)
        if date:
            stmt = stmt.where(FeedItem.derived_date == date)
        stmt = stmt.order_by(desc(FeedItem.occurred_at), desc(FeedItem.id))
        try:
            with get_sync_session(self.engine) as session:
                rows = session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error reading feed items: {e}")
            raise StoreError("Could not read feed items") from e
        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        """Total number of stored records."""
        self.initialize()
        try:
            with get_sync_session(self.engine) as session:
                return session.execute(select(func.count()).select_from(FeedItem)).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting feed items: {e}")
            raise StoreError("Could not count feed items") from e

    @staticmethod
    def _to_row(record: FeedRecord) -> dict:
        row = record.model_dump(mode="json")
        row["upstream_id"] = record.upstream_id
        try:
            row["occurred_at"] = to_utc_timestamp(record.occurred_at)
        except (TypeError, ValueError):
            logger.warning(f"Feed item {record.id} has an unparseable timestamp: {record.occurred_at}")
        # Never trust a caller-supplied date
        row["derived_date"] = derive_date(record.occurred_at)
        return {name: row.get(name) for name in RECORD_COLUMNS}

    @staticmethod
    def _to_record(row: FeedItem) -> FeedRecord:
        return FeedRecord(**{name: getattr(row, name) for name in RECORD_COLUMNS})
