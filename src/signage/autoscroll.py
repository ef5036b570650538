"""Auto-scroll for the display's overflowing panels.

Each scrollable panel (the three schedule columns, the notice list and the
assignment table) gets its own AutoScroller:

    IDLE -> SCROLLING(down) -> PAUSED_AT_EDGE -> SCROLLING(up) -> PAUSED_AT_EDGE -> ...
                          \\-> USER_PAUSED (from any state) -> resume after cooldown

A panel that fits (overflow <= 3 px) is re-measured every few seconds and is
never written to. A touch, pointer-down or wheel on a panel stops it at
once; it resumes five seconds after the last such interaction.

The engine rebuilds every scroller after each render pass, since the panels
they were bound to have been replaced.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from src.signage.config import SignageConfig
from src.signage.logging import get_logger
from src.signage.scheduling import Scheduler, TimerSlot
from src.signage.surface import INTERACTION_EVENTS, DisplaySurface, InteractionSource

log = get_logger(__name__)


class ScrollPhase(str, Enum):
    IDLE = "idle"
    SCROLLING = "scrolling"
    PAUSED_AT_EDGE = "paused_at_edge"
    USER_PAUSED = "user_paused"
    DESTROYED = "destroyed"


@dataclass
class ScrollerState:
    direction: int = 1  # +1 down, -1 up
    paused: bool = False
    user_paused: bool = False
    phase: ScrollPhase = ScrollPhase.IDLE


class AutoScroller:
    """Bidirectional auto-scroll state machine for one panel."""

    def __init__(
        self,
        panel_id: str,
        surface: DisplaySurface,
        interactions: InteractionSource,
        scheduler: Scheduler,
        config: SignageConfig,
    ) -> None:
        self.panel_id = panel_id
        self.state = ScrollerState()
        self._surface = surface
        self._scheduler = scheduler
        self._config = config
        # Start delay, idle poll, edge dwell and user cooldown share one slot:
        # whichever is scheduled last is the only one that can fire.
        self._timer = TimerSlot(scheduler)
        self._frame = TimerSlot(scheduler)
        self._last_time = 0.0
        self._limit = 0
        self._alive = True
        self._unsubscribe = interactions.subscribe(panel_id, self._on_interaction)

    @property
    def alive(self) -> bool:
        return self._alive

    def start(self) -> None:
        self._timer.set(self._config.scroll_start_delay, self._check_and_scroll)

    def pause_for_user(self) -> None:
        """Stop now and resume after the cooldown, counted from this call."""
        if not self._alive:
            return
        self.state.user_paused = True
        self.state.phase = ScrollPhase.USER_PAUSED
        self._pause()
        self._timer.set(self._config.user_pause_cooldown, self._end_user_pause)

    def resume(self) -> None:
        if self.state.user_paused or not self._alive:
            return
        self.state.paused = False
        self._check_and_scroll()

    def destroy(self) -> None:
        self._alive = False
        self._pause()
        self._timer.cancel()
        self._unsubscribe()
        self.state.phase = ScrollPhase.DESTROYED

    def _on_interaction(self, event: str) -> None:
        if event in INTERACTION_EVENTS:
            log.debug("scroll_user_pause", panel=self.panel_id, trigger=event)
            self.pause_for_user()

    def _end_user_pause(self) -> None:
        self.state.user_paused = False
        log.debug("scroll_user_resume", panel=self.panel_id)
        self.resume()

    def _pause(self) -> None:
        self.state.paused = True
        self._frame.cancel()

    def _blocked(self) -> bool:
        return not self._alive or self.state.paused or self.state.user_paused

    def _overflow(self) -> int:
        scroll_height, client_height = self._surface.scroll_metrics(self.panel_id)
        return scroll_height - client_height

    def _check_and_scroll(self) -> None:
        if self._blocked():
            return
        if self._overflow() <= self._config.scroll_overflow_threshold:
            self.state.phase = ScrollPhase.IDLE
            self._timer.set(self._config.scroll_idle_poll, self._check_and_scroll)
            return
        self._animate()

    def _animate(self) -> None:
        if self._blocked():
            return
        overflow = self._overflow()
        if overflow <= self._config.scroll_overflow_threshold:
            self.state.phase = ScrollPhase.IDLE
            self._timer.set(self._config.scroll_idle_poll, self._check_and_scroll)
            return
        self._limit = overflow
        self.state.phase = ScrollPhase.SCROLLING
        self._last_time = self._scheduler.now()
        self._frame.frame(self._step)

    def _step(self, timestamp: float) -> None:
        if self._blocked():
            return
        dt = timestamp - self._last_time
        self._last_time = timestamp

        direction = self.state.direction
        speed = self._config.scroll_speed
        if direction < 0:
            speed *= self._config.scroll_reverse_factor
        top = self._surface.get_scroll_top(self.panel_id) + speed * dt * direction

        if direction > 0 and top >= self._limit:
            self._surface.set_scroll_top(self.panel_id, self._limit)
            self._reach_edge("bottom")
            return
        if direction < 0 and top <= 0:
            self._surface.set_scroll_top(self.panel_id, 0)
            self._reach_edge("top")
            return

        self._surface.set_scroll_top(self.panel_id, top)
        self._frame.frame(self._step)

    def _reach_edge(self, edge: str) -> None:
        self.state.direction = -self.state.direction
        self.state.phase = ScrollPhase.PAUSED_AT_EDGE
        log.debug("scroll_edge", panel=self.panel_id, edge=edge)
        self._timer.set(self._config.scroll_edge_dwell, self._animate)


class AutoScrollEngine:
    """Registry of live scrollers, one per rendered panel."""

    def __init__(
        self,
        surface: DisplaySurface,
        interactions: InteractionSource,
        scheduler: Scheduler,
        config: SignageConfig,
    ) -> None:
        self._surface = surface
        self._interactions = interactions
        self._scheduler = scheduler
        self._config = config
        self._scrollers: dict[str, AutoScroller] = {}

    @property
    def scrollers(self) -> Mapping[str, AutoScroller]:
        return MappingProxyType(self._scrollers)

    def restart(self, panel_ids: list[str]) -> None:
        """Destroy every scroller and bind fresh ones to the given panels."""
        self.stop()
        for panel_id in panel_ids:
            if not self._surface.exists(panel_id):
                log.debug("scroll_panel_missing", panel=panel_id)
                continue
            scroller = AutoScroller(
                panel_id, self._surface, self._interactions, self._scheduler, self._config
            )
            self._scrollers[panel_id] = scroller
            scroller.start()
        log.info("scrollers_restarted", panels=list(self._scrollers))

    def stop(self) -> None:
        for scroller in self._scrollers.values():
            scroller.destroy()
        self._scrollers.clear()
