from sqlalchemy import Column, DateTime, ForeignKey, Integer, PrimaryKeyConstraint, String

from .base import Base, utcnow


class AssignmentORM(Base):
    __tablename__ = "assignments"

    # Opaque caller-defined id, so stored as a string
    user_id = Column(String(255), nullable=False)
    experiment_id = Column(
        Integer, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id = Column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True
    )

    assigned_on = Column(DateTime, default=utcnow, nullable=False)

    # At most one assignment per (user, experiment); concurrent inserts race on this key
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "experiment_id", name="assignment_pk"),
    )
