"""Ad rotation for the signage ad area.

Cycles the settings feed's ads, each for its own duration_sec. Before every
tick the quiet-hours gate is consulted: during class the image is hidden and
the rotation re-checks once a minute without advancing.

Exactly one timer is pending at any time. restart() cancels it before doing
anything else, so rapid settings updates cannot leave two cycles racing.
"""

from collections.abc import Callable
from datetime import datetime

from src.signage.logging import get_logger
from src.signage.models import ViewModel
from src.signage.quiet_hours import is_quiet
from src.signage.render import AD_AREA, AD_IMAGE
from src.signage.scheduling import Scheduler, TimerSlot
from src.signage.surface import DisplaySurface

log = get_logger(__name__)

IDLE = "idle"
ROTATING = "rotating"
QUIET = "quiet"


class AdRotationScheduler:
    """Cycles ads on the surface's ad image."""

    def __init__(
        self,
        scheduler: Scheduler,
        surface: DisplaySurface,
        view: ViewModel,
        clock: Callable[[], datetime] = datetime.now,
        default_duration: float = 5.0,
        quiet_poll_interval: float = 60.0,
    ) -> None:
        self._scheduler = scheduler
        self._surface = surface
        self._view = view
        self._clock = clock
        self._default_duration = default_duration
        self._quiet_poll_interval = quiet_poll_interval
        self._timer = TimerSlot(scheduler)
        self.current_index = 0
        self.state = IDLE
        # (scheduler time, ad index) for every ad shown
        self.displayed: list[tuple[float, int]] = []

    def restart(self) -> None:
        """Start over from the first ad."""
        self._timer.cancel()
        self.current_index = 0
        if not self._view.ads:
            self.state = IDLE
            log.debug("ad_rotation_idle", reason="no_ads")
            return
        log.info("ad_rotation_started", ads=len(self._view.ads))
        self._tick()

    def stop(self) -> None:
        self._timer.cancel()
        self.state = IDLE

    def update_area_visibility(self) -> None:
        """Apply the quiet-mode look without touching the rotation."""
        self._set_quiet_mode(is_quiet(self._clock(), self._view.quiet_hours))

    def _tick(self) -> None:
        if is_quiet(self._clock(), self._view.quiet_hours):
            self._set_quiet_mode(True)
            self.state = QUIET
            self._timer.set(self._quiet_poll_interval, self._tick)
            log.debug("ad_rotation_quiet", index=self.current_index)
            return

        self._set_quiet_mode(False)
        ads = self._view.ads
        if not ads:
            self.state = IDLE
            return
        if self.current_index >= len(ads):
            self.current_index = 0

        index = self.current_index
        ad = ads[index]
        self._surface.set_attribute(AD_IMAGE, "src", ad.url)
        self.displayed.append((self._scheduler.now(), index))
        self.state = ROTATING

        self.current_index = (index + 1) % len(ads)
        duration = ad.duration(self._default_duration)
        self._timer.set(duration, self._tick)
        log.debug("ad_displayed", index=index, ad_id=ad.id, duration=duration)

    def _set_quiet_mode(self, quiet: bool) -> None:
        self._surface.set_hidden(AD_IMAGE, quiet)
        self._surface.toggle_class(AD_AREA, "quiet-mode", quiet)
