import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from leanab.repositories.event_repo import EventRepository

logger = logging.getLogger(__name__)


def format_share(count: int, total: int) -> str:
    """'350 (35%)' style cell: percentage rounded to two decimals, trailing zeros dropped."""
    if total == 0:
        return "0 (0%)"
    percent = round(count * 100 / total, 2)
    return f"{count} ({percent:g}%)"


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class EventFunnelMetricsProvider:
    """
    Funnel metrics computed from the recorded events table.

    A user reaches a step when they have at least one event of that type
    inside the optional start_date / end_date window.
    """

    def __init__(self, db: Session, steps: Sequence[str]):
        self.event_repo = EventRepository(db)
        self.steps = list(steps)

    def get_funnel_for_user_ids(
        self, user_ids: Sequence[str], filter_params: Mapping[str, Any]
    ) -> dict[str, str]:
        user_ids = list(user_ids)
        window = {
            "start_date": _as_datetime(filter_params.get("start_date")),
            "end_date": _as_datetime(filter_params.get("end_date")),
        }

        funnel = {}
        for step in self.steps:
            reached = (
                self.event_repo.count_users_with_event(user_ids, step, **window)
                if user_ids
                else 0
            )
            funnel[step] = format_share(reached, len(user_ids))

        logger.debug("Funnel for %d users: %s", len(user_ids), funnel)
        return funnel
