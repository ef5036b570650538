"""Signage configuration loaded from environment variables.

Every timing constant the presentation engine uses lives here so a display
can be tuned from its .env file without touching code.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class SignageConfig(BaseSettings):
    """Signage configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For a kiosk install, create a .env file next to the launch script.
    """

    # Document store
    school_id: str = Field(
        default="gn_tech",
        description="School document id under the store root",
    )
    data_dir: str = Field(
        default="data/store",
        description="Root directory of the JSON document store",
    )
    store_poll_interval: float = Field(
        default=2.0,
        description="Seconds between store polls (JSON directory adapter)",
    )
    daily_window_days: int = Field(
        default=5,
        description="Days before today included in the daily-data feed",
    )
    daily_document_limit: int = Field(
        default=10,
        description="Maximum number of daily documents per delivery",
    )

    # Reconciler
    initial_load_settle: float = Field(
        default=1.0,
        description="Seconds to wait after both feeds load before side effects start",
    )

    # Ad rotation
    ad_default_duration: float = Field(
        default=5.0,
        description="Display seconds for an ad without duration_sec",
    )
    quiet_poll_interval: float = Field(
        default=60.0,
        description="Seconds between quiet-hours re-checks while ads are hidden",
    )

    # Auto-scroll
    scroll_speed: float = Field(
        default=25.0,
        description="Downward auto-scroll speed in pixels per second",
    )
    scroll_reverse_factor: float = Field(
        default=1.5,
        description="Upward leg speed multiplier",
    )
    scroll_start_delay: float = Field(
        default=2.0,
        description="Seconds before a new scroller first measures its panel",
    )
    scroll_idle_poll: float = Field(
        default=3.0,
        description="Seconds between overflow re-checks for panels that fit",
    )
    scroll_overflow_threshold: int = Field(
        default=3,
        description="Overflow in pixels at or below which a panel does not scroll",
    )
    scroll_edge_dwell: float = Field(
        default=2.5,
        description="Seconds to pause at the top and bottom edges",
    )
    user_pause_cooldown: float = Field(
        default=5.0,
        description="Seconds after the last user interaction before scrolling resumes",
    )
    layout_delay: float = Field(
        default=0.3,
        description="Seconds between a render pass and scroller re-measurement",
    )
    resize_debounce: float = Field(
        default=0.25,
        description="Seconds to debounce window resize before restarting scrollers",
    )
    frame_interval: float = Field(
        default=1 / 60,
        description="Seconds between animation frames",
    )

    # Notifications
    banner_duration: float = Field(
        default=3.0,
        description="Seconds the update banner stays visible",
    )
    audio_status_duration: float = Field(
        default=5.0,
        description="Seconds the audio status badge stays up in kiosk mode",
    )
    audio_enabled: bool = Field(
        default=True,
        description="Use the sounddevice backend (False = visual notifications only)",
    )
    kiosk: bool = Field(
        default=False,
        description="Unattended start: prime audio immediately, auto-hide the audio badge",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for kiosks)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: SignageConfig | None = None


def get_config() -> SignageConfig:
    """Get the signage configuration singleton.

    Returns:
        SignageConfig: Signage configuration instance
    """
    global _config
    if _config is None:
        _config = SignageConfig()
    return _config
