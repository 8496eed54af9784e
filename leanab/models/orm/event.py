from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from .base import Base, utcnow

# JSONB on PostgreSQL, generic JSON elsewhere
JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")


class EventORM(Base):
    __tablename__ = "events"

    event_id = Column(String, primary_key=True, index=True)

    user_id = Column(String(255), nullable=False, index=True)

    # Funnel step name, e.g. 'signup', 'purchase'
    type = Column(String, nullable=False, index=True)

    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    properties = Column(JSON_TYPE, default=dict, nullable=False)
