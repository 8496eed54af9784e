from typing import Any, Mapping, Protocol, Sequence


class MetricsProvider(Protocol):
    def get_funnel_for_user_ids(
        self, user_ids: Sequence[str], filter_params: Mapping[str, Any]
    ) -> Mapping[str, str]:
        """
        Funnel metrics for a set of users, already formatted for display.

        Keys are funnel step names and must be the same whatever users are
        passed in, e.g. {"Registered": "1000 (100%)", "Purchased": "100 (10%)"}.
        `filter_params` is forwarded untouched from the report request
        (date ranges, cohorts, ...).
        """
        ...
