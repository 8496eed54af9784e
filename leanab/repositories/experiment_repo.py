import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from leanab.core.errors import StorageError
from leanab.models.orm.base import utcnow
from leanab.models.orm.experiment import ExperimentORM, GroupORM
from leanab.models.schemas.experiment import GroupWeight

logger = logging.getLogger(__name__)


class ExperimentRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def create_experiment(self, name: str, groups: Sequence[GroupWeight]) -> ExperimentORM:
        """
        Inserts the experiment and all of its groups in one transaction.

        Raises IntegrityError (after rolling back) when the name is already
        taken, so the caller can tell a lost creation race from a real failure.
        Any other database failure is raised as StorageError.
        """
        db_experiment = ExperimentORM(
            name=name,
            created_on=utcnow(),
            groups=[GroupORM(name=group.name, weight=group.weight) for group in groups],
        )

        try:
            self.db.add(db_experiment)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"A database error occurred creating experiment '{name}': {e}") from e

        self.db.refresh(db_experiment)
        logger.debug("Created %r", db_experiment)

        return db_experiment

    def get_experiment(self, name: str) -> Optional[ExperimentORM]:
        """
        Fetches an experiment by name and loads its groups in the same round
        trip to avoid an N+1 on the group list.
        """
        stmt = (
            select(ExperimentORM)
            .where(ExperimentORM.name == name)
            .options(selectinload(ExperimentORM.groups))
        )
        return self._read(lambda: self.db.scalars(stmt).one_or_none())

    def experiment_exists(self, name: str) -> bool:
        stmt = select(ExperimentORM.id).where(ExperimentORM.name == name)
        return self._read(lambda: self.db.scalar(stmt)) is not None

    def get_groups(self, name: str) -> list[GroupORM]:
        """Groups of the named experiment in insertion order; empty if it does not exist."""
        stmt = (
            select(GroupORM)
            .join(ExperimentORM, GroupORM.experiment_id == ExperimentORM.id)
            .where(ExperimentORM.name == name)
            .order_by(GroupORM.id)
        )
        return list(self._read(lambda: self.db.scalars(stmt).all()))

    def list_names(self) -> list[str]:
        stmt = select(ExperimentORM.name).order_by(ExperimentORM.created_on, ExperimentORM.id)
        return list(self._read(lambda: self.db.scalars(stmt).all()))

    def _read(self, query):
        try:
            return query()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Experiment lookup failed: {e}") from e
