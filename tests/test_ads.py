"""Tests for the ad rotation scheduler."""

import pytest

from src.signage import ads as ad_states
from src.signage.ads import AdRotationScheduler
from src.signage.models import AdItem, TimeInterval, ViewModel
from src.signage.render import AD_AREA, AD_IMAGE


@pytest.fixture
def view():
    return ViewModel(
        ads=[
            AdItem(id="a", url="a.png", duration_sec=5),
            AdItem(id="b", url="b.png", duration_sec=10),
        ]
    )


@pytest.fixture
def rotation(scheduler, surface, view, clock):
    return AdRotationScheduler(scheduler, surface, view, clock=clock)


class TestRotation:
    def test_each_ad_for_its_own_duration(self, rotation, scheduler, surface):
        """Durations [5, 10] show 0,1,0,1 at t=0,5,15,20."""
        rotation.restart()
        scheduler.advance(20.0)

        assert rotation.displayed == [(0.0, 0), (5.0, 1), (15.0, 0), (20.0, 1)]
        assert surface.element(AD_IMAGE).attributes["src"] == "b.png"
        assert rotation.state == ad_states.ROTATING

    def test_missing_duration_uses_default(self, scheduler, surface, clock):
        view = ViewModel(ads=[AdItem(url="a.png"), AdItem(url="b.png", duration_sec=0)])
        rotation = AdRotationScheduler(scheduler, surface, view, clock=clock, default_duration=5.0)
        rotation.restart()
        scheduler.advance(10.0)
        assert [t for t, _ in rotation.displayed] == [0.0, 5.0, 10.0]

    def test_restart_cancels_previous_chain(self, rotation, scheduler):
        rotation.restart()
        scheduler.advance(3.0)
        rotation.restart()

        assert scheduler.pending == 1
        scheduler.advance(4.0)
        assert rotation.displayed == [(0.0, 0), (3.0, 0)]
        scheduler.advance(1.0)
        assert rotation.displayed[-1] == (8.0, 1)

    def test_no_ads_idles(self, scheduler, surface, clock):
        rotation = AdRotationScheduler(scheduler, surface, ViewModel(), clock=clock)
        rotation.restart()
        assert rotation.state == ad_states.IDLE
        assert scheduler.pending == 0

    def test_ads_removed_mid_rotation(self, rotation, scheduler, view):
        rotation.restart()
        view.ads = []
        scheduler.advance(5.0)
        assert rotation.state == ad_states.IDLE
        assert scheduler.pending == 0

    def test_index_wraps_when_list_shrinks(self, rotation, scheduler, view):
        rotation.restart()
        assert rotation.current_index == 1
        view.ads = [AdItem(url="only.png", duration_sec=5)]
        scheduler.advance(5.0)
        assert rotation.displayed[-1] == (5.0, 0)

    def test_stop(self, rotation, scheduler):
        rotation.restart()
        rotation.stop()
        scheduler.advance(60.0)
        assert rotation.displayed == [(0.0, 0)]
        assert rotation.state == ad_states.IDLE


class TestQuietHours:
    def test_quiet_hides_and_does_not_advance(self, rotation, scheduler, surface, view):
        view.quiet_hours = [TimeInterval(start="08:00", end="15:00")]
        rotation.restart()
        scheduler.advance(600.0)

        assert rotation.displayed == []
        assert rotation.current_index == 0
        assert rotation.state == ad_states.QUIET
        assert surface.element(AD_IMAGE).hidden
        assert "quiet-mode" in surface.element(AD_AREA).classes

    def test_polls_every_minute_then_resumes(self, rotation, scheduler, surface, view):
        # Clock starts at 09:00
        view.quiet_hours = [TimeInterval(start="09:00", end="09:02")]
        rotation.restart()
        scheduler.advance(60.0)
        assert rotation.displayed == []
        scheduler.advance(60.0)

        assert rotation.displayed == [(120.0, 0)]
        assert not surface.element(AD_IMAGE).hidden
        assert "quiet-mode" not in surface.element(AD_AREA).classes

    def test_update_area_visibility(self, rotation, surface, view):
        view.quiet_hours = [TimeInterval(start="08:00", end="15:00")]
        rotation.update_area_visibility()
        assert surface.element(AD_IMAGE).hidden
        view.quiet_hours = []
        rotation.update_area_visibility()
        assert not surface.element(AD_IMAGE).hidden
