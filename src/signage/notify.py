"""Update notifications: banner and chime.

After initial load, every content update shows a short banner and, if audio
has been unlocked and it is not class time, plays a two-tone chime.

Audio starts LOCKED. Kiosk players only allow sound after a user gesture, so
the only way to UNLOCKED is prime(), called from a gesture (or at start in
kiosk mode, where the player is configured to allow it). Audio state and
quiet hours are independent: quiet hours silence the chime, never the banner.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum
from typing import Protocol

import numpy as np

from src.signage.errors import AudioUnavailableError
from src.signage.logging import get_logger
from src.signage.models import ViewModel
from src.signage.quiet_hours import is_quiet
from src.signage.scheduling import Scheduler, TimerSlot
from src.signage.surface import DisplaySurface

log = get_logger(__name__)

BANNER = "update-banner"
BANNER_TEXT = "🔔 情報が更新されました"
AUDIO_STATUS = "audio-status"
AUDIO_ON_TEXT = "🔊 音声ON"
AUDIO_OFF_TEXT = "🔇 音声OFF（タップで有効化）"

# (offset seconds, frequency Hz) steps, peak gain, length in seconds
CHIME = (((0.0, 830.0), (0.15, 1046.0)), 0.3, 0.3)
PRIME_TONE = (((0.0, 523.0),), 0.2, 0.15)


class AudioState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class AudioBackend(Protocol):
    @property
    def state(self) -> str:
        """Either "suspended" or "running"."""
        ...

    def resume(self) -> None: ...

    def play(self, steps: Sequence[tuple[float, float]], gain: float, duration: float) -> None:
        """Play a sine tone that switches frequency at each step and decays from gain."""
        ...


class SilentBackend:
    """Backend for displays without audio output. Never leaves suspended."""

    state = "suspended"

    def resume(self) -> None:
        log.debug("audio_resume_ignored", backend="silent")

    def play(self, steps: Sequence[tuple[float, float]], gain: float, duration: float) -> None:
        raise AudioUnavailableError("no audio output on this display")


class SoundDeviceBackend:
    """Tones synthesised with numpy and played through sounddevice.

    sounddevice loads PortAudio on import, so it is imported here rather than
    at module level; a display without PortAudio gets AudioUnavailableError
    and falls back to the banner.
    """

    def __init__(self, sample_rate: int = 44100) -> None:
        try:
            import sounddevice
        except (ImportError, OSError) as e:
            raise AudioUnavailableError(f"audio output unavailable: {e}") from e
        self._sd = sounddevice
        self.sample_rate = sample_rate
        self.state = "suspended"

    def resume(self) -> None:
        try:
            self._sd.query_devices(kind="output")
        except Exception as e:
            raise AudioUnavailableError(f"no output device: {e}") from e
        self.state = "running"

    def play(self, steps: Sequence[tuple[float, float]], gain: float, duration: float) -> None:
        rate = self.sample_rate
        n = int(duration * rate)
        t = np.arange(n) / rate

        frequency = np.full(n, steps[0][1])
        for offset, hz in steps[1:]:
            frequency[int(offset * rate):] = hz
        phase = 2 * np.pi * np.cumsum(frequency) / rate

        # Exponential decay from gain down to 0.01 over the tone
        envelope = gain * (0.01 / gain) ** (t / duration)
        wave = (np.sin(phase) * envelope).astype(np.float32)
        try:
            self._sd.play(wave, rate)
        except Exception as e:
            raise AudioUnavailableError(f"playback failed: {e}") from e


class NotificationSubsystem:
    """Banner, chime and the audio status badge."""

    def __init__(
        self,
        scheduler: Scheduler,
        surface: DisplaySurface,
        view: ViewModel,
        audio: AudioBackend | None = None,
        clock: Callable[[], datetime] = datetime.now,
        banner_duration: float = 3.0,
        status_duration: float = 5.0,
    ) -> None:
        self._scheduler = scheduler
        self._surface = surface
        self._view = view
        self._audio = audio
        self._clock = clock
        self._banner_duration = banner_duration
        self._status_duration = status_duration
        self._banner_timer = TimerSlot(scheduler)
        self._status_timer = TimerSlot(scheduler)
        self.audio_state = AudioState.LOCKED
        # ("banner" | "chime", scheduler time)
        self.events: list[tuple[str, float]] = []

    def prime(self) -> AudioState:
        """Handle a user gesture: try to unlock audio and confirm with a short tone."""
        if self.audio_state is AudioState.UNLOCKED:
            return self.audio_state
        if self._audio is None:
            log.debug("audio_prime_skipped", reason="no_backend")
            return self.audio_state
        try:
            self._audio.resume()
        except Exception as e:
            log.warning("audio_unavailable", error=str(e), type=type(e).__name__)
            return self.audio_state

        if self._audio.state == "running":
            self.audio_state = AudioState.UNLOCKED
            log.info("audio_unlocked")
            self._play(*PRIME_TONE)
        return self.audio_state

    def show_audio_status(self, auto_hide: bool = False) -> None:
        on = self.audio_state is AudioState.UNLOCKED
        self._surface.set_text(AUDIO_STATUS, AUDIO_ON_TEXT if on else AUDIO_OFF_TEXT)
        self._surface.toggle_class(AUDIO_STATUS, "audio-on", on)
        self._surface.toggle_class(AUDIO_STATUS, "audio-off", not on)
        self._surface.set_hidden(AUDIO_STATUS, False)
        if auto_hide:
            self._status_timer.set(
                self._status_duration, lambda: self._surface.set_hidden(AUDIO_STATUS, True)
            )

    def notify(self, initial_load: bool) -> None:
        """React to one content update."""
        if initial_load:
            log.debug("notification_suppressed", reason="initial_load")
            return

        self._show_banner()

        if is_quiet(self._clock(), self._view.quiet_hours):
            log.info("chime_skipped", reason="quiet_hours")
            return
        if self.audio_state is AudioState.LOCKED:
            log.debug("chime_skipped", reason="audio_locked")
            return
        if self._play(*CHIME):
            self.events.append(("chime", self._scheduler.now()))

    def stop(self) -> None:
        self._banner_timer.cancel()
        self._status_timer.cancel()

    def _show_banner(self) -> None:
        self._surface.set_text(BANNER, BANNER_TEXT)
        self._surface.toggle_class(BANNER, "show", True)
        self._banner_timer.set(self._banner_duration, self._hide_banner)
        self.events.append(("banner", self._scheduler.now()))

    def _hide_banner(self) -> None:
        self._surface.toggle_class(BANNER, "show", False)

    def _play(self, steps: Sequence[tuple[float, float]], gain: float, duration: float) -> bool:
        try:
            self._audio.play(steps, gain, duration)
        except Exception as e:
            log.warning("audio_playback_failed", error=str(e), type=type(e).__name__)
            return False
        return True
