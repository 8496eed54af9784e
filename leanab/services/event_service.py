import logging

from sqlalchemy.orm import Session

from leanab.models.schemas.event import EventCreateModel, EventResponseModel
from leanab.repositories.event_repo import EventRepository

logger = logging.getLogger(__name__)


class EventService:
    def __init__(self, db: Session):
        """Initializes the service with repositories it needs."""
        self.event_repo = EventRepository(db)

    def record_event(self, event_data: EventCreateModel) -> EventResponseModel:
        """Stores a funnel event for a user; StorageError propagates to the caller."""
        recorded_event = self.event_repo.create_event(event_data=event_data)
        logger.debug("Recorded %r", recorded_event)

        return EventResponseModel(
            event_id=recorded_event.event_id,
            user_id=recorded_event.user_id,
            type=recorded_event.type,
        )
