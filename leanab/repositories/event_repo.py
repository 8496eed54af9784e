import uuid
from typing import Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leanab.core.errors import StorageError
from leanab.models.orm.base import as_naive_utc, utcnow
from leanab.models.orm.event import EventORM
from leanab.models.schemas.event import EventCreateModel

# Keeps IN (...) lists under the bound-parameter limits of SQLite and PostgreSQL
USER_ID_CHUNK_SIZE = 500


class EventRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def count_users_with_event(self, user_ids: Sequence[str], event_type: str, **kwargs) -> int:
        """
        Counts how many of the given users recorded at least one event of a
        type, applying optional start_date / end_date bounds.
        """
        total = 0
        for start in range(0, len(user_ids), USER_ID_CHUNK_SIZE):
            chunk = user_ids[start:start + USER_ID_CHUNK_SIZE]
            stmt = select(func.count(distinct(EventORM.user_id))).where(
                EventORM.type == event_type,
                EventORM.user_id.in_(chunk),
            )

            if start_date := as_naive_utc(kwargs.get("start_date")):
                stmt = stmt.where(EventORM.timestamp >= start_date)

            if end_date := as_naive_utc(kwargs.get("end_date")):
                stmt = stmt.where(EventORM.timestamp <= end_date)

            try:
                total += self.db.scalar(stmt) or 0
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError(f"Event count failed: {e}") from e

        return total

    def create_event(self, event_data: EventCreateModel) -> EventORM:
        """
        Creates a new event record in the database.

        Args:
            event_data: The Pydantic model containing event details.

        Returns:
            The created EventORM object.
        """
        event_dict = event_data.model_dump()
        event_dict["event_id"] = str(uuid.uuid4())

        if event_dict.get("timestamp") is None:
            event_dict["timestamp"] = utcnow()
        else:
            event_dict["timestamp"] = as_naive_utc(event_dict["timestamp"])

        db_event = EventORM(**event_dict)
        try:
            self.db.add(db_event)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"A database error occurred recording the event: {e}") from e

        self.db.refresh(db_event)

        return db_event
