import logging
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette import status

from leanab.core.auth import require_auth_token
from leanab.core.db import get_db, init_db
from leanab.core.errors import (
    AssignmentError,
    InvalidWeights,
    StorageError,
    UnknownExperiment,
)
from leanab.core.logging import configure_logging
from leanab.core.settings import config_settings
from leanab.models.schemas.assignment import (
    AssignmentModel,
    AssignmentRequestModel,
    MembershipModel,
)
from leanab.models.schemas.event import EventCreateModel, EventResponseModel
from leanab.models.schemas.experiment import (
    ExperimentCreateModel,
    ExperimentListModel,
    ExperimentResponseModel,
)
from leanab.models.schemas.report import ExperimentReport
from leanab.providers.event_funnel import EventFunnelMetricsProvider
from leanab.providers.identity import IdentityProvider, get_identity
from leanab.providers.metrics import MetricsProvider
from leanab.services.assignment_resolver import AssignmentResolver
from leanab.services.event_service import EventService
from leanab.services.experiment_registry import ExperimentRegistry
from leanab.services.report_aggregator import ReportAggregator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config_settings.LOG_LEVEL)
    # Schema is a startup precondition, not something repaired on query failure
    init_db()
    yield


app = FastAPI(
    title="LeanAb",
    description="One-line A/B split tests: weighted group assignment and funnel reports.",
    version="0.1.0",
    dependencies=[Depends(require_auth_token)],
    lifespan=lifespan,
)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(InvalidWeights)
async def invalid_weights_handler(request: Request, exc: InvalidWeights):
    logger.warning("Rejected experiment configuration: %s", exc)
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(UnknownExperiment)
async def unknown_experiment_handler(request: Request, exc: UnknownExperiment):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)


@app.exception_handler(AssignmentError)
async def assignment_error_handler(request: Request, exc: AssignmentError):
    logger.error("Assignment failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


def get_metrics_provider(db: Session = Depends(get_db)) -> MetricsProvider:
    """Funnel source for reports; override to plug in an external analytics system."""
    return EventFunnelMetricsProvider(db, config_settings.FUNNEL_STEPS)


@app.get(
    "/experiments",
    response_model=ExperimentListModel,
    summary="List experiment names, oldest first",
)
def get_experiments(db: Session = Depends(get_db)):
    return ExperimentListModel(experiments=ExperimentRegistry(db).list_experiment_names())


@app.post(
    "/experiments",
    response_model=ExperimentResponseModel,
    status_code=status.HTTP_201_CREATED,
    summary="Create an experiment unless it already exists",
)
def post_experiments(
    experiment_data: ExperimentCreateModel,
    db: Session = Depends(get_db),
):
    """
    Creates the experiment and its groups. If the name is already taken the
    stored configuration is returned unchanged.
    """
    registry = ExperimentRegistry(db)
    registry.ensure_experiment(experiment_data.name, experiment_data.groups)

    return ExperimentResponseModel(
        name=experiment_data.name, groups=registry.groups_of(experiment_data.name)
    )


@app.get(
    "/experiments/{experiment_name}",
    response_model=ExperimentResponseModel,
    summary="Get the stored groups and weights of an experiment",
)
def get_experiment(
    experiment_name: str = Path(..., description="The name of the experiment."),
    db: Session = Depends(get_db),
):
    registry = ExperimentRegistry(db)
    if not registry.experiment_exists(experiment_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Experiment {experiment_name} not found.",
        )

    return ExperimentResponseModel(
        name=experiment_name, groups=registry.groups_of(experiment_name)
    )


@app.post(
    "/experiments/{experiment_name}/assignment",
    response_model=AssignmentModel,
    summary="Get the caller's group, assigning one on first visit",
)
def post_assignment(
    assignment_request: AssignmentRequestModel,
    experiment_name: str = Path(..., description="The name of the experiment."),
    identity: IdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    Returns the caller's hypothesis group. The experiment is created from the
    posted groups the first time its name is seen; anonymous callers get the
    first group and are not recorded.
    """
    user_id = identity.get_user_id()
    group = AssignmentResolver(db).resolve(user_id, experiment_name, assignment_request.groups)

    return AssignmentModel(experiment=experiment_name, user_id=user_id, group=group)


@app.get(
    "/experiments/{experiment_name}/membership",
    response_model=MembershipModel,
    summary="Check whether the caller is already in an experiment",
)
def get_membership(
    experiment_name: str = Path(..., description="The name of the experiment."),
    identity: IdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db),
):
    user_id = identity.get_user_id()
    belongs = AssignmentResolver(db).belongs_to(user_id, experiment_name)

    return MembershipModel(experiment=experiment_name, user_id=user_id, belongs=belongs)


@app.get(
    "/experiments/{experiment_name}/report",
    response_model=ExperimentReport,
    summary="Funnel metrics per group",
)
def get_experiment_report(
    experiment_name: str,
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    metrics_provider: MetricsProvider = Depends(get_metrics_provider),
    db: Session = Depends(get_db),
):
    filter_params = {
        "start_date": start_date,
        "end_date": end_date,
    }
    return ReportAggregator(db, metrics_provider).build_report(experiment_name, filter_params)


@app.post(
    "/events",
    response_model=EventResponseModel,
    status_code=status.HTTP_201_CREATED,
    summary="Record a funnel event for a user",
)
def post_events(event_data: EventCreateModel, db: Session = Depends(get_db)):
    return EventService(db).record_event(event_data)


if __name__ == "__main__":
    uvicorn.run("leanab.main:app", host="0.0.0.0", port=8000, reload=True)
