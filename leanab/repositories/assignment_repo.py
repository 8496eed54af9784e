from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from leanab.core.errors import DuplicateAssignment, StorageError
from leanab.models.orm.assignment import AssignmentORM
from leanab.models.orm.base import utcnow
from leanab.models.orm.experiment import ExperimentORM, GroupORM


class AssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_assigned_group_name(self, experiment_name: str, user_id: str) -> Optional[str]:
        """Name of the group a user is assigned to in an experiment, or None."""
        stmt = (
            select(GroupORM.name)
            .join(AssignmentORM, AssignmentORM.group_id == GroupORM.id)
            .join(ExperimentORM, AssignmentORM.experiment_id == ExperimentORM.id)
            .where(
                ExperimentORM.name == experiment_name,
                AssignmentORM.user_id == user_id,
            )
        )
        try:
            return self.db.scalars(stmt).one_or_none()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Assignment lookup failed: {e}") from e

    def get_user_ids_for_group(self, group_id: int) -> list[str]:
        stmt = (
            select(AssignmentORM.user_id)
            .where(AssignmentORM.group_id == group_id)
            .order_by(AssignmentORM.assigned_on, AssignmentORM.user_id)
        )
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Group membership lookup failed: {e}") from e

    def create_assignment(self, experiment_id: int, user_id: str, group_id: int) -> AssignmentORM:
        """
        Inserts an assignment, relying on the (user_id, experiment_id) primary
        key for insert-if-absent semantics.

        Raises DuplicateAssignment when another request won the insert, and
        StorageError for any other failure.
        """
        db_assignment = AssignmentORM(
            experiment_id=experiment_id,
            user_id=user_id,
            group_id=group_id,
            assigned_on=utcnow(),
        )

        try:
            self.db.add(db_assignment)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateAssignment(
                f"Assignment already exists for user '{user_id}' in experiment {experiment_id}."
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Exception occurred during assignment creation: {e}") from e

        self.db.refresh(db_assignment)

        return db_assignment
