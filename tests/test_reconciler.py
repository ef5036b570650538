"""Tests for the two-feed ViewModel reconciler."""

import pytest

from src.signage.errors import FeedError
from src.signage.models import (
    FALLBACK_SCHOOL_NAME,
    LOADING_SCHOOL_NAME,
    AdItem,
    AssignmentItem,
    DailyDocument,
    DisplaySettings,
    Feed,
    FeedLoadState,
    NoticeItem,
    ScheduleItem,
    TimeInterval,
)
from src.signage.reconciler import Reconciler


@pytest.fixture
def reconciler(scheduler, clock):
    return Reconciler(scheduler, clock=clock)


def settings(**kwargs) -> DisplaySettings:
    base = {"school_name": "GN Tech", "class_name": "2-B"}
    base.update(kwargs)
    return DisplaySettings.model_validate(base)


def daily(date: str, **kwargs) -> DailyDocument:
    return DailyDocument.model_validate({"date": date, **kwargs})


class TestInitialLoad:
    def test_starts_loading(self, reconciler):
        assert reconciler.initial_load
        assert reconciler.load_state(Feed.SETTINGS) is FeedLoadState.LOADING
        assert reconciler.load_state(Feed.DAILY) is FeedLoadState.LOADING
        assert reconciler.view.school_name == LOADING_SCHOOL_NAME

    def test_clears_one_settle_delay_after_second_feed(self, reconciler, scheduler):
        """Initial load ends 1s after the later of the two first deliveries."""
        completed = []
        reconciler.on_initial_load_complete(lambda: completed.append(scheduler.now()))

        reconciler.apply_settings(settings())
        scheduler.advance(2.0)
        assert reconciler.initial_load

        delivery = reconciler.apply_daily([daily("2024-03-14")])
        assert delivery.first
        assert delivery.initial_load

        scheduler.advance(0.9)
        assert reconciler.initial_load
        scheduler.advance(0.2)
        assert not reconciler.initial_load
        assert completed == [pytest.approx(3.0)]

    def test_clears_exactly_once(self, reconciler, scheduler):
        completed = []
        reconciler.on_initial_load_complete(lambda: completed.append(True))

        reconciler.apply_settings(settings())
        reconciler.apply_daily([])
        reconciler.apply_daily([])
        reconciler.apply_settings(settings())
        scheduler.advance(5.0)
        reconciler.apply_settings(settings())
        scheduler.advance(5.0)

        assert completed == [True]

    def test_later_deliveries_report_not_initial(self, reconciler, scheduler):
        reconciler.apply_settings(settings())
        reconciler.apply_daily([])
        scheduler.advance(1.5)

        delivery = reconciler.apply_settings(settings(class_name="3-A"))
        assert not delivery.first
        assert not delivery.initial_load
        assert delivery.changed

    def test_error_counts_as_delivery(self, reconciler, scheduler):
        """A feed that only ever errors cannot hold initial load open."""
        reconciler.apply_settings(settings())
        delivery = reconciler.fail(Feed.DAILY, RuntimeError("permission denied"))

        assert delivery.first
        assert not delivery.changed
        assert reconciler.load_state(Feed.DAILY) is FeedLoadState.LOADED

        scheduler.advance(1.1)
        assert not reconciler.initial_load

    def test_error_keeps_previous_content(self, reconciler):
        reconciler.apply_settings(settings(school_name="Kept"))
        reconciler.fail(Feed.SETTINGS, FeedError("settings", "network down"))
        assert reconciler.view.school_name == "Kept"

    def test_stop_cancels_settle(self, reconciler, scheduler):
        reconciler.apply_settings(settings())
        reconciler.apply_daily([])
        reconciler.stop()
        scheduler.advance(5.0)
        assert reconciler.initial_load


class TestSettings:
    def test_overwrites_settings_fields(self, reconciler):
        reconciler.apply_settings(
            settings(
                ads=[{"id": "a", "url": "a.png", "duration_sec": 5}],
                quiet_hours=[{"start": "08:00", "end": "15:00"}],
            )
        )
        view = reconciler.view
        assert view.school_name == "GN Tech"
        assert view.class_name == "2-B"
        assert view.ads == [AdItem(id="a", url="a.png", duration_sec=5)]
        assert view.quiet_hours == [TimeInterval(start="08:00", end="15:00")]

    def test_missing_school_name_falls_back(self, reconciler):
        reconciler.apply_settings(DisplaySettings())
        assert reconciler.view.school_name == FALLBACK_SCHOOL_NAME
        assert reconciler.view.class_name == ""

    def test_null_lists_become_empty(self, reconciler):
        reconciler.apply_settings(DisplaySettings.model_validate({"ads": None, "quiet_hours": None}))
        assert reconciler.view.ads == []
        assert reconciler.view.quiet_hours == []

    def test_absent_document_resets_to_defaults(self, reconciler):
        reconciler.apply_settings(settings(ads=[{"url": "a.png"}]))
        delivery = reconciler.apply_settings(None)

        assert delivery.changed
        assert reconciler.view.school_name == LOADING_SCHOOL_NAME
        assert reconciler.view.ads == []

    def test_settings_do_not_touch_daily_fields(self, reconciler):
        reconciler.apply_daily([daily("2024-03-14", notices=[{"text": "hello"}])])
        reconciler.apply_settings(settings())
        assert reconciler.view.notices == [NoticeItem(text="hello")]


class TestDaily:
    def test_schedules_from_today_on(self, reconciler):
        reconciler.apply_daily(
            [
                daily("2024-03-13", schedules=[{"time": "1限", "content": "国語"}]),
                daily("2024-03-14", schedules=[{"time": "1限", "content": "数学"}]),
                daily("2024-03-15", schedules=[]),
                daily("2024-03-18", schedules=[{"time": "放課後", "content": "部活"}]),
            ]
        )
        schedules = reconciler.view.weekly_schedules
        assert list(schedules) == ["2024-03-14", "2024-03-18"]
        assert schedules["2024-03-14"] == [ScheduleItem(time="1限", content="数学")]

    def test_notices_only_from_today(self, reconciler):
        reconciler.apply_daily(
            [
                daily("2024-03-13", notices=[{"text": "yesterday"}]),
                daily("2024-03-14", notices=[{"text": "today", "is_highlight": True}]),
                daily("2024-03-15", notices=[{"text": "tomorrow"}]),
            ]
        )
        assert reconciler.view.notices == [NoticeItem(text="today", is_highlight=True)]

    def test_no_document_for_today_clears_notices(self, reconciler):
        reconciler.apply_daily([daily("2024-03-14", notices=[{"text": "today"}])])
        reconciler.apply_daily([daily("2024-03-15", notices=[{"text": "tomorrow"}])])
        assert reconciler.view.notices == []

    def test_assignments_merged_and_sorted(self, reconciler):
        reconciler.apply_daily(
            [
                daily("2024-03-12", assignments=[{"deadline": "2024-03-20", "subject": "B"}]),
                daily(
                    "2024-03-14",
                    assignments=[
                        {"deadline": "2024-03-10", "subject": "A"},
                        {"deadline": "soon", "subject": "Z"},
                    ],
                ),
                daily("2024-03-15", assignments=[{"deadline": "2024-03-16", "subject": "C"}]),
            ]
        )
        subjects = [a.subject for a in reconciler.view.assignments]
        assert subjects == ["A", "C", "B", "Z"]

    def test_snapshot_replaces_previous(self, reconciler):
        reconciler.apply_daily(
            [daily("2024-03-14", assignments=[{"deadline": "2024-03-20", "subject": "old"}])]
        )
        reconciler.apply_daily([])
        assert reconciler.view.assignments == []
        assert reconciler.view.weekly_schedules == {}

    def test_document_limit(self, scheduler, clock):
        reconciler = Reconciler(scheduler, clock=clock, document_limit=2)
        reconciler.apply_daily(
            [
                daily("2024-03-16", assignments=[{"deadline": "2024-03-30", "subject": "late"}]),
                daily("2024-03-14", assignments=[{"deadline": "2024-03-20", "subject": "a"}]),
                daily("2024-03-15", assignments=[{"deadline": "2024-03-21", "subject": "b"}]),
            ]
        )
        assert [a.subject for a in reconciler.view.assignments] == ["a", "b"]

    def test_date_today_follows_clock(self, reconciler, scheduler):
        reconciler.apply_daily([])
        assert reconciler.view.date_today == "2024-03-14"
        scheduler.advance(24 * 3600)
        reconciler.apply_daily([])
        assert reconciler.view.date_today == "2024-03-15"

    def test_date_window_start(self, reconciler):
        assert reconciler.date_window_start() == "2024-03-09"


class TestSnapshot:
    def test_snapshot_is_independent(self, reconciler):
        reconciler.apply_daily(
            [daily("2024-03-14", assignments=[{"deadline": "2024-03-20", "subject": "A"}])]
        )
        copy = reconciler.snapshot()
        copy.assignments.append(AssignmentItem(deadline="2024-03-21"))
        copy.school_name = "edited"

        assert len(reconciler.view.assignments) == 1
        assert reconciler.view.school_name == LOADING_SCHOOL_NAME
