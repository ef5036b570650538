"""ViewModel reconciler for the two realtime feeds.

The settings feed delivers the whole display_settings document; the daily
feed delivers up to ten date-keyed documents from ``today - 5 days`` on.
Each delivery is applied in full before the caller sees the result, so
side effects downstream never read a half-updated ViewModel.

Initial load: side effects (banner, chime) stay off until both feeds have
delivered once, plus a settle delay that absorbs the near-simultaneous first
bursts. Errors count as a delivery for this purpose, so a broken feed cannot
keep the display in initial load forever.

Identical snapshots are not deduplicated. Every delivery reports
``changed=True`` and triggers a full re-render downstream.
"""

from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import NamedTuple

from src.signage import dates
from src.signage.errors import FeedError
from src.signage.logging import get_logger
from src.signage.models import (
    FALLBACK_SCHOOL_NAME,
    AssignmentItem,
    DailyDocument,
    DisplaySettings,
    Feed,
    FeedLoadState,
    ViewModel,
)
from src.signage.scheduling import Scheduler, TimerSlot

log = get_logger(__name__)


class FeedDelivery(NamedTuple):
    """What one feed delivery did to the ViewModel."""

    feed: Feed
    changed: bool  # ViewModel was written (False only for errors)
    first: bool  # This delivery moved the feed to LOADED
    initial_load: bool  # Side effects are still suppressed


def _deadline_sort_key(item: AssignmentItem) -> tuple[int, date]:
    try:
        return 0, dates.parse_key(item.deadline)
    except ValueError:
        # Unreadable deadlines go last; the renderer labels them
        return 1, date.max


class Reconciler:
    """Owns the ViewModel and the per-feed load state."""

    def __init__(
        self,
        scheduler: Scheduler,
        clock: Callable[[], datetime] = datetime.now,
        settle_delay: float = 1.0,
        window_days: int = 5,
        document_limit: int = 10,
    ) -> None:
        self._clock = clock
        self._settle_delay = settle_delay
        self._window_days = window_days
        self._document_limit = document_limit
        self._settle = TimerSlot(scheduler)
        self._view = ViewModel(date_today=dates.today(clock()))
        self._load_state = {feed: FeedLoadState.LOADING for feed in Feed}
        self._initial_load = True
        self._initial_load_listeners: list[Callable[[], None]] = []

    @property
    def view(self) -> ViewModel:
        """The live ViewModel. Callers must treat it as read-only."""
        return self._view

    @property
    def initial_load(self) -> bool:
        return self._initial_load

    def load_state(self, feed: Feed) -> FeedLoadState:
        return self._load_state[feed]

    def snapshot(self) -> ViewModel:
        """Deep copy of the ViewModel for readers outside the display loop."""
        return self._view.model_copy(deep=True)

    def date_window_start(self) -> str:
        """First DateKey the daily feed should cover."""
        return dates.window_start(self._window_days, self._clock())

    def stop(self) -> None:
        """Cancel a pending settle timer (engine shutdown)."""
        self._settle.cancel()

    def on_initial_load_complete(self, callback: Callable[[], None]) -> None:
        self._initial_load_listeners.append(callback)

    def apply_settings(self, settings: DisplaySettings | None) -> FeedDelivery:
        """Overwrite the settings-owned fields, or reset them if the document is absent."""
        if settings is None:
            defaults = ViewModel()
            school_name = defaults.school_name
            class_name = defaults.class_name
            ads = defaults.ads
            quiet_hours = defaults.quiet_hours
            log.info("settings_missing", action="reset_to_defaults")
        else:
            school_name = settings.school_name or FALLBACK_SCHOOL_NAME
            class_name = settings.class_name or ""
            ads = list(settings.ads)
            quiet_hours = list(settings.quiet_hours)

        view = self._view
        view.school_name = school_name
        view.class_name = class_name
        view.ads = ads
        view.quiet_hours = quiet_hours
        view.date_today = dates.today(self._clock())

        log.info(
            "settings_applied",
            present=settings is not None,
            ads=len(ads),
            quiet_intervals=len(quiet_hours),
        )
        return self._delivered(Feed.SETTINGS, changed=True)

    def apply_daily(self, documents: Iterable[DailyDocument]) -> FeedDelivery:
        """Rebuild schedules, notices and assignments from a full daily snapshot."""
        today = dates.today(self._clock())
        ordered = sorted(documents, key=lambda d: d.date)[: self._document_limit]

        schedules = {}
        notices = []
        assignments: list[AssignmentItem] = []
        for doc in ordered:
            if doc.date >= today and doc.schedules:
                schedules[doc.date] = list(doc.schedules)
            if doc.date == today:
                notices = list(doc.notices)
            assignments.extend(doc.assignments)
        assignments.sort(key=_deadline_sort_key)

        view = self._view
        view.date_today = today
        view.weekly_schedules = schedules
        view.notices = notices
        view.assignments = assignments

        log.info(
            "daily_applied",
            documents=len(ordered),
            schedule_days=len(schedules),
            notices=len(notices),
            assignments=len(assignments),
        )
        return self._delivered(Feed.DAILY, changed=True)

    def fail(self, feed: Feed, error: Exception) -> FeedDelivery:
        """Record a failed delivery. The ViewModel keeps its previous content."""
        feed_error = error if isinstance(error, FeedError) else FeedError(feed.value, str(error))
        log.error(
            "feed_error",
            feed=feed.value,
            error=str(feed_error),
            type=type(error).__name__,
        )
        return self._delivered(feed, changed=False)

    def _delivered(self, feed: Feed, changed: bool) -> FeedDelivery:
        first = self._load_state[feed] is FeedLoadState.LOADING
        if first:
            self._load_state[feed] = FeedLoadState.LOADED
            log.info("feed_loaded", feed=feed.value)
            if self._initial_load and self._all_loaded() and not self._settle.pending:
                self._settle.set(self._settle_delay, self._finish_initial_load)
        return FeedDelivery(feed, changed, first, self._initial_load)

    def _all_loaded(self) -> bool:
        return all(state is FeedLoadState.LOADED for state in self._load_state.values())

    def _finish_initial_load(self) -> None:
        self._initial_load = False
        log.info("initial_load_complete")
        for callback in self._initial_load_listeners:
            callback()
