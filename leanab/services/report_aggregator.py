import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from leanab.core.errors import UnknownExperiment
from leanab.core.settings import config_settings
from leanab.models.schemas.report import ExperimentReport
from leanab.providers.metrics import MetricsProvider
from leanab.repositories.assignment_repo import AssignmentRepository
from leanab.repositories.experiment_repo import ExperimentRepository
from leanab.services.experiment_registry import ExperimentRegistry

logger = logging.getLogger(__name__)


class ReportAggregator:
    """
    Builds a group-by-metric comparison table for an experiment.

    All counting and percentage math belongs to the metrics provider; this
    class only collects user ids per group and merges the provider's answers.
    """

    def __init__(
        self,
        db: Session,
        metrics_provider: MetricsProvider,
        unknown_cell: Optional[str] = None,
    ):
        self.registry = ExperimentRegistry(db)
        self.experiment_repo = ExperimentRepository(db)
        self.assignment_repo = AssignmentRepository(db)
        self.metrics_provider = metrics_provider
        self.unknown_cell = (
            config_settings.UNKNOWN_CELL if unknown_cell is None else unknown_cell
        )

    def build_report(
        self, experiment_name: str, filter_params: Optional[Mapping[str, Any]] = None
    ) -> ExperimentReport:
        filter_params = filter_params or {}
        groups = self.experiment_repo.get_groups(experiment_name)

        # No groups at all usually means a typo in the experiment name
        if not groups:
            if not self.registry.experiment_exists(experiment_name):
                logger.warning("Report requested for unknown experiment '%s'", experiment_name)
                raise UnknownExperiment(experiment_name)
            logger.warning("Experiment '%s' has no groups to report on", experiment_name)
            return ExperimentReport(experiment=experiment_name, groups=[])

        user_counts = {}
        funnel_by_group = {}
        for group in groups:
            user_ids = self.assignment_repo.get_user_ids_for_group(group.id)
            user_counts[group.name] = len(user_ids)
            funnel_by_group[group.name] = dict(
                self.metrics_provider.get_funnel_for_user_ids(user_ids, filter_params)
            )

        # Metric order comes from the first group; later groups can only append
        metric_names = []
        for funnel in funnel_by_group.values():
            metric_names.extend(m for m in funnel if m not in metric_names)

        rows = {
            metric: {
                group_name: funnel.get(metric, self.unknown_cell)
                for group_name, funnel in funnel_by_group.items()
            }
            for metric in metric_names
        }

        return ExperimentReport(
            experiment=experiment_name,
            groups=list(funnel_by_group),
            user_counts=user_counts,
            rows=rows,
        )

    def list_experiment_names(self) -> list[str]:
        return self.registry.list_experiment_names()
