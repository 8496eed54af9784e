import logging
from typing import Iterable, Sequence, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leanab.core.errors import InvalidWeights, StorageError
from leanab.models.schemas.experiment import GroupWeight
from leanab.repositories.experiment_repo import ExperimentRepository

logger = logging.getLogger(__name__)

GroupsAndWeights = Sequence[Union[GroupWeight, Tuple[str, int]]]

TOTAL_WEIGHT = 100


def as_group_weights(experiment_name: str, groups_and_weights: Iterable) -> list[GroupWeight]:
    """Normalizes GroupWeight models and (name, weight) pairs into GroupWeight models."""
    groups = []
    for item in groups_and_weights:
        if isinstance(item, GroupWeight):
            groups.append(item)
            continue
        try:
            name, weight = item
        except (TypeError, ValueError) as e:
            raise InvalidWeights(
                experiment_name,
                f"each group must be a (name, weight) pair, got {item!r}",
            ) from e
        try:
            groups.append(GroupWeight(name=name, weight=weight))
        except ValidationError as e:
            raise InvalidWeights(
                experiment_name,
                f"group {name!r} needs a string name and an integer weight, got {weight!r}",
            ) from e
    return groups


def validate_weights(experiment_name: str, groups: Sequence[GroupWeight]) -> None:
    """
    Raises InvalidWeights unless every weight is an integer in [0, 100], the
    weights sum to exactly 100 and group names are non-empty and unique.
    """
    if not groups:
        raise InvalidWeights(experiment_name, "at least one group is required")

    seen = set()
    for group in groups:
        if not group.name:
            raise InvalidWeights(experiment_name, "group names must not be empty")
        if group.name in seen:
            raise InvalidWeights(experiment_name, f"group '{group.name}' is listed twice")
        seen.add(group.name)

        if not 0 <= group.weight <= TOTAL_WEIGHT:
            raise InvalidWeights(
                experiment_name,
                f"weight for group '{group.name}' must be between 0 and 100 (inclusive), "
                f"got {group.weight!r}",
            )

    total = sum(group.weight for group in groups)
    if total != TOTAL_WEIGHT:
        raise InvalidWeights(experiment_name, f"weights must add up to 100, got {total}")


class ExperimentRegistry:
    """Owns experiment and group definitions; creates an experiment the first time its name is used."""

    def __init__(self, db: Session):
        self.experiment_repo = ExperimentRepository(db)

    def ensure_experiment(self, name: str, groups_and_weights: GroupsAndWeights) -> None:
        """
        Creates the experiment with its groups unless one with this name exists.

        Weights passed for an existing experiment are ignored: the stored
        configuration wins, so exposed users never change group.
        """
        if self.experiment_repo.experiment_exists(name):
            logger.debug("Experiment '%s' already exists; supplied weights ignored", name)
            return

        groups = as_group_weights(name, groups_and_weights)
        validate_weights(name, groups)

        try:
            self.experiment_repo.create_experiment(name, groups)
        except IntegrityError as e:
            # Lost the unique-name race to a concurrent first request
            if self.experiment_repo.experiment_exists(name):
                logger.info("Experiment '%s' was created by a concurrent request", name)
                return
            raise StorageError(f"Could not create experiment '{name}': {e}") from e

        logger.info(
            "Created experiment '%s' with groups %s",
            name,
            ", ".join(f"{g.name}={g.weight}" for g in groups),
        )

    def groups_of(self, name: str) -> list[GroupWeight]:
        """Stored groups and weights in their original order; empty if the experiment is unknown."""
        return [
            GroupWeight.model_validate(group)
            for group in self.experiment_repo.get_groups(name)
        ]

    def experiment_exists(self, name: str) -> bool:
        return self.experiment_repo.experiment_exists(name)

    def list_experiment_names(self) -> list[str]:
        return self.experiment_repo.list_names()
