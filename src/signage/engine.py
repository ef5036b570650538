"""SignageEngine: wires the feeds, reconciler and presentation components.

Per delivery, in order:
    1. reconcile (the ViewModel is fully updated and load state flipped)
    2. render
    3. settings feed only: restart ad rotation, refresh ad-area quiet mode
    4. notify (no-op during initial load)
    5. destroy the scrollers of the replaced panels and schedule new ones
       after the layout delay

Step 5 re-creates scrollers through a single slot, so a burst of deliveries
produces one scroller rebuild after the last render rather than one per
delivery.

The editing layer gets snapshot() for its own view and refresh() to force a
full pass after it commits an edit.
"""

from collections.abc import Callable
from datetime import datetime

from src.signage import dates
from src.signage.ads import AdRotationScheduler
from src.signage.autoscroll import AutoScrollEngine
from src.signage.config import SignageConfig, get_config
from src.signage.logging import get_logger
from src.signage.models import DailyDocument, DisplaySettings, Feed, ViewModel
from src.signage.notify import AudioBackend, NotificationSubsystem
from src.signage.reconciler import FeedDelivery, Reconciler
from src.signage.render import Renderer, RenderedView
from src.signage.scheduling import Scheduler, TimerSlot
from src.signage.store import DocumentStore, Unsubscribe
from src.signage.surface import DisplaySurface, InteractionSource

log = get_logger(__name__)

CURRENT_TIME = "current-time"
CLOCK_INTERVAL = 1.0


class SignageEngine:
    """The running display."""

    def __init__(
        self,
        store: DocumentStore,
        surface: DisplaySurface,
        scheduler: Scheduler,
        config: SignageConfig | None = None,
        audio: AudioBackend | None = None,
        interactions: InteractionSource | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or get_config()
        self._store = store
        self._surface = surface
        self._clock = clock

        cfg = self.config
        self.reconciler = Reconciler(
            scheduler,
            clock=clock,
            settle_delay=cfg.initial_load_settle,
            window_days=cfg.daily_window_days,
            document_limit=cfg.daily_document_limit,
        )
        view = self.reconciler.view
        self.renderer = Renderer()
        self.ads = AdRotationScheduler(
            scheduler,
            surface,
            view,
            clock=clock,
            default_duration=cfg.ad_default_duration,
            quiet_poll_interval=cfg.quiet_poll_interval,
        )
        if interactions is None:
            if not isinstance(surface, InteractionSource):
                raise TypeError(
                    f"{type(surface).__name__} does not report interactions; pass interactions="
                )
            interactions = surface
        self.scroll = AutoScrollEngine(surface, interactions, scheduler, cfg)
        self.notifications = NotificationSubsystem(
            scheduler,
            surface,
            view,
            audio=audio,
            clock=clock,
            banner_duration=cfg.banner_duration,
            status_duration=cfg.audio_status_duration,
        )

        self._layout = TimerSlot(scheduler)
        self._resize = TimerSlot(scheduler)
        self._ticker = TimerSlot(scheduler)
        self._unsubscribe_settings: Unsubscribe | None = None
        self._unsubscribe_daily: Unsubscribe | None = None
        self._day = dates.today(clock())
        self._quiet_next_daily = False
        self._panels: list[str] = []
        self._render_listeners: list[Callable[[RenderedView], None]] = []
        self.last_render: RenderedView | None = None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        self._unsubscribe_settings = self._store.subscribe_settings(
            self._on_settings, lambda e: self._on_error(Feed.SETTINGS, e)
        )
        self._subscribe_daily()
        self._tick_clock()

        if self.config.kiosk:
            self.notifications.prime()
        self.notifications.show_audio_status(auto_hide=self.config.kiosk)
        log.info("engine_started", kiosk=self.config.kiosk, day=self._day)

    def stop(self) -> None:
        for unsubscribe in (self._unsubscribe_settings, self._unsubscribe_daily):
            if unsubscribe is not None:
                unsubscribe()
        self._unsubscribe_settings = None
        self._unsubscribe_daily = None

        self._layout.cancel()
        self._resize.cancel()
        self._ticker.cancel()
        self.reconciler.stop()
        self.ads.stop()
        self.scroll.stop()
        self.notifications.stop()
        log.info("engine_stopped")

    # -- hooks for the editing layer -----------------------------------------

    def snapshot(self) -> ViewModel:
        return self.reconciler.snapshot()

    def on_render(self, callback: Callable[[RenderedView], None]) -> None:
        self._render_listeners.append(callback)

    def refresh(self) -> None:
        """Re-render and restart ads and scrolling, e.g. after an edit commits."""
        log.info("refresh_requested")
        self._render(include_ad=True)
        self.ads.restart()
        self.ads.update_area_visibility()

    def user_gesture(self) -> None:
        """A tap or click anywhere: the only way audio gets unlocked."""
        self.notifications.prime()
        self.notifications.show_audio_status(auto_hide=self.config.kiosk)

    def on_resize(self) -> None:
        self._resize.set(self.config.resize_debounce, self._restart_scrolling)

    # -- feed callbacks ----------------------------------------------------

    def _on_settings(self, settings: DisplaySettings | None) -> None:
        delivery = self.reconciler.apply_settings(settings)
        self._render(include_ad=True)
        self.ads.restart()
        self.ads.update_area_visibility()
        self._after_delivery(delivery)

    def _on_daily(self, documents: list[DailyDocument]) -> None:
        delivery = self.reconciler.apply_daily(documents)
        self._render(include_ad=False)
        if self._quiet_next_daily:
            # First snapshot after a day rollover is not an edit
            self._quiet_next_daily = False
            return
        self._after_delivery(delivery)

    def _on_error(self, feed: Feed, error: Exception) -> None:
        self.reconciler.fail(feed, error)
        if feed is Feed.DAILY:
            # The failed delivery stands in for the rollover resend
            self._quiet_next_daily = False

    def _after_delivery(self, delivery: FeedDelivery) -> None:
        log.debug(
            "feed_delivered",
            feed=delivery.feed.value,
            first=delivery.first,
            initial_load=delivery.initial_load,
        )
        self.notifications.notify(delivery.initial_load)

    # -- internals ---------------------------------------------------------

    def _subscribe_daily(self) -> None:
        if self._unsubscribe_daily is not None:
            self._unsubscribe_daily()
        range_start = self.reconciler.date_window_start()
        self._unsubscribe_daily = self._store.subscribe_daily_data(
            range_start, self._on_daily, lambda e: self._on_error(Feed.DAILY, e)
        )
        log.info("daily_feed_subscribed", range_start=range_start)

    def _render(self, include_ad: bool) -> None:
        rendered = self.renderer.render(self.reconciler.view, self._clock())
        self._panels = self.renderer.apply(rendered, self._surface, include_ad=include_ad)
        # Old scrollers point at replaced panels; rebind after layout
        self.scroll.stop()
        self.last_render = rendered
        for callback in self._render_listeners:
            callback(rendered)
        self._layout.set(self.config.layout_delay, self._remeasure)

    def _remeasure(self) -> None:
        self.scroll.restart(self._panels)

    def _restart_scrolling(self) -> None:
        self.scroll.stop()
        self._layout.set(self.config.layout_delay, self._remeasure)

    def _tick_clock(self) -> None:
        now = self._clock()
        self._surface.set_text(CURRENT_TIME, dates.clock_text(now))

        today = dates.today(now)
        if today != self._day:
            log.info("day_rollover", previous=self._day, today=today)
            self._day = today
            self._quiet_next_daily = True
            self._subscribe_daily()
            self._render(include_ad=False)

        self._ticker.set(CLOCK_INTERVAL, self._tick_clock)
