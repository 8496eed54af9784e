import logging
import random
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from leanab.core.errors import (
    AssignmentError,
    DuplicateAssignment,
    InvalidWeights,
    StorageError,
)
from leanab.models.orm.experiment import GroupORM
from leanab.models.schemas.experiment import GroupWeight
from leanab.repositories.assignment_repo import AssignmentRepository
from leanab.repositories.experiment_repo import ExperimentRepository
from leanab.services.experiment_registry import (
    TOTAL_WEIGHT,
    ExperimentRegistry,
    GroupsAndWeights,
    as_group_weights,
)

logger = logging.getLogger(__name__)


def pick_weighted_group(experiment_name: str, groups: Sequence, rng=random):
    """
    Selects a group with probability weight / 100.

    Draws r in [1, 100] and walks the groups in stored order, subtracting each
    weight from r until it fits inside a group. Works on anything with `name`
    and `weight` attributes.
    """
    total = sum(group.weight for group in groups)
    if total != TOTAL_WEIGHT:
        raise AssignmentError(
            f"Stored weights for experiment '{experiment_name}' add up to {total}, not 100."
        )

    draw = rng.randint(1, TOTAL_WEIGHT)
    remaining = draw
    for group in groups:
        if remaining <= group.weight:
            return group
        remaining -= group.weight

    raise AssignmentError(
        f"Was unable to assign a group for experiment '{experiment_name}'. "
        f"Random placement was {draw}. Configuration was: "
        + ", ".join(f"{g.name}={g.weight}" for g in groups)
    )


class AssignmentResolver:
    """
    Answers "which group is this user in?" for an experiment, assigning and
    persisting a group the first time a user is seen.
    """

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.registry = ExperimentRegistry(db)
        self.experiment_repo = ExperimentRepository(db)
        self.assignment_repo = AssignmentRepository(db)
        self.rng = rng or random

    def resolve(
        self,
        user_id: Optional[str],
        experiment_name: str,
        groups_and_weights: GroupsAndWeights,
    ) -> str:
        """
        Returns the name of the group the user should be exposed to.

        Anonymous users (None or empty id) always get the first group and
        nothing is stored. If the assignment cannot be read or written, the
        first group is returned as well, so list the control group first.

        Raises InvalidWeights when the experiment does not exist yet and the
        supplied groups are not a valid configuration.
        """
        groups = as_group_weights(experiment_name, groups_and_weights)
        if not groups:
            raise InvalidWeights(experiment_name, "at least one group is required")
        default_group = groups[0].name

        if not user_id:
            return default_group

        try:
            return self._lookup_or_assign(user_id, experiment_name, groups)
        except (StorageError, AssignmentError):
            logger.warning(
                "Falling back to group '%s' for user '%s' in experiment '%s'",
                default_group,
                user_id,
                experiment_name,
                exc_info=True,
            )
            return default_group

    def belongs_to(self, user_id: Optional[str], experiment_name: str) -> bool:
        """
        True if the user already has a group in the experiment.

        Never creates anything; an experiment that has not been created yet
        simply has no members.
        """
        if not user_id:
            return False
        return self.assignment_repo.get_assigned_group_name(experiment_name, user_id) is not None

    def _lookup_or_assign(
        self, user_id: str, experiment_name: str, groups: list[GroupWeight]
    ) -> str:
        # Returning users cost a single indexed lookup
        existing = self.assignment_repo.get_assigned_group_name(experiment_name, user_id)
        if existing is not None:
            return existing

        self.registry.ensure_experiment(experiment_name, groups)

        experiment = self.experiment_repo.get_experiment(experiment_name)
        if experiment is None or not experiment.groups:
            raise StorageError(
                f"Experiment '{experiment_name}' is not usable yet: no stored groups."
            )

        group: GroupORM = pick_weighted_group(experiment_name, experiment.groups, self.rng)
        # Committing expires loaded rows
        group_name = group.name

        try:
            self.assignment_repo.create_assignment(
                experiment_id=experiment.id, user_id=user_id, group_id=group.id
            )
        except DuplicateAssignment:
            winner = self.assignment_repo.get_assigned_group_name(experiment_name, user_id)
            if winner is None:
                raise StorageError(
                    f"Assignment for user '{user_id}' in '{experiment_name}' conflicted "
                    "but could not be read back."
                )
            logger.info(
                "User '%s' was assigned to '%s' in '%s' by a concurrent request",
                user_id,
                winner,
                experiment_name,
            )
            return winner

        logger.debug("Assigned user '%s' to '%s' in '%s'", user_id, group_name, experiment_name)
        return group_name
