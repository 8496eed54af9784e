from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, utcnow


# --- Experiment Model ---
class ExperimentORM(Base):
    __tablename__ = "experiments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    created_on = Column(DateTime, default=utcnow, nullable=False)

    # One Experiment owns Many Groups, kept in insertion (id) order
    groups = relationship(
        "GroupORM",
        back_populates="experiment",
        order_by="GroupORM.id",
        cascade="all, delete-orphan",
    )


# --- Hypothesis Group Model ---
class GroupORM(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    experiment_id = Column(
        Integer, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    # 0 to 100; the weights of one experiment sum to 100
    weight = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("experiment_id", "name", name="group_experiment_name_uq"),
    )

    experiment = relationship("ExperimentORM", back_populates="groups")
