"""Tests for the events-table funnel metrics provider."""
from datetime import datetime, timezone

import pytest

from leanab.models.schemas.event import EventCreateModel
from leanab.providers.event_funnel import EventFunnelMetricsProvider, format_share
from leanab.repositories.event_repo import USER_ID_CHUNK_SIZE
from leanab.services.event_service import EventService


def record(db, user_id, event_type, timestamp=None):
    EventService(db).record_event(
        EventCreateModel(user_id=user_id, type=event_type, timestamp=timestamp)
    )


class TestFormatShare:
    @pytest.mark.parametrize(
        "count, total, expected",
        [
            (350, 1000, "350 (35%)"),
            (1000, 1000, "1000 (100%)"),
            (2, 3, "2 (66.67%)"),
            (1, 8, "1 (12.5%)"),
            (0, 5, "0 (0%)"),
            (0, 0, "0 (0%)"),
        ],
    )
    def test_display_values(self, count, total, expected):
        assert format_share(count, total) == expected


class TestEventFunnelMetricsProvider:
    def test_counts_distinct_users_per_step(self, db):
        record(db, "alice", "signup")
        record(db, "alice", "signup")
        record(db, "bob", "signup")
        record(db, "bob", "purchase")
        record(db, "outsider", "purchase")

        provider = EventFunnelMetricsProvider(db, ["signup", "purchase"])
        funnel = provider.get_funnel_for_user_ids(["alice", "bob", "carol"], {})

        assert funnel == {"signup": "2 (66.67%)", "purchase": "1 (33.33%)"}
        assert list(funnel) == ["signup", "purchase"]

    def test_no_users(self, db):
        provider = EventFunnelMetricsProvider(db, ["signup", "purchase"])

        assert provider.get_funnel_for_user_ids([], {}) == {
            "signup": "0 (0%)",
            "purchase": "0 (0%)",
        }

    def test_date_window(self, db):
        record(db, "alice", "signup", datetime(2016, 1, 10))
        record(db, "bob", "signup", datetime(2016, 6, 1))
        record(db, "carol", "signup", datetime(2017, 1, 1))

        provider = EventFunnelMetricsProvider(db, ["signup"])
        funnel = provider.get_funnel_for_user_ids(
            ["alice", "bob", "carol"],
            {"start_date": "2016-01-01 00:00:00", "end_date": datetime(2016, 11, 27)},
        )

        assert funnel == {"signup": "2 (66.67%)"}

    def test_aware_timestamps_are_stored_as_utc(self, db):
        record(db, "alice", "signup", datetime(2016, 1, 10, 23, 30, tzinfo=timezone.utc))

        provider = EventFunnelMetricsProvider(db, ["signup"])
        funnel = provider.get_funnel_for_user_ids(
            ["alice"], {"start_date": datetime(2016, 1, 10, 23, 0)}
        )

        assert funnel == {"signup": "1 (100%)"}

    def test_large_user_sets_are_chunked(self, db):
        user_ids = [f"user_{i}" for i in range(USER_ID_CHUNK_SIZE * 2 + 10)]
        record(db, user_ids[0], "signup")
        record(db, user_ids[-1], "signup")

        provider = EventFunnelMetricsProvider(db, ["signup"])
        funnel = provider.get_funnel_for_user_ids(user_ids, {})

        assert funnel == {"signup": f"2 ({round(200 / len(user_ids), 2):g}%)"}
