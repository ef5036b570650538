"""Pydantic models for signage documents and the reconciled view model.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Store documents use snake_case keys (school_name, is_highlight, duration_sec),
which are also the Python field names.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Shown in the header until the settings feed delivers
LOADING_SCHOOL_NAME = "ロード中..."
# Used when the settings document exists but has no school_name
FALLBACK_SCHOOL_NAME = "School Name"


class Feed(str, Enum):
    """The two realtime subscriptions the reconciler merges."""

    SETTINGS = "settings"
    DAILY = "daily_data"


class FeedLoadState(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"


class WindowedItem(BaseModel):
    """Base for items the dashboard can restrict to a date range.

    Empty or missing bounds are open; both bounds are inclusive DateKeys.
    """

    model_config = ConfigDict(extra="ignore")

    display_start: str | None = None
    display_end: str | None = None

    def visible_on(self, date_key: str) -> bool:
        if self.display_start and date_key < self.display_start:
            return False
        if self.display_end and date_key > self.display_end:
            return False
        return True


class ScheduleItem(WindowedItem):
    """One row in a day's schedule column."""

    time: str = ""  # Free label: "1限", "放課後", "13:30"
    content: str = ""


class NoticeItem(WindowedItem):
    """A notice shown in today's notice list."""

    text: str = ""
    is_highlight: bool = False


class AssignmentItem(BaseModel):
    """An assignment with a due date.

    Assignments are collected from every delivered daily document regardless
    of which date they were filed under.
    """

    model_config = ConfigDict(extra="ignore")

    deadline: str = ""  # DateKey, YYYY-MM-DD
    subject: str = ""
    task: str = ""


class AdItem(BaseModel):
    """A rotating ad image."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    url: str = ""
    duration_sec: float | None = None

    def duration(self, default: float) -> float:
        """Display seconds for this ad, falling back to default when unset."""
        if self.duration_sec is None or self.duration_sec <= 0:
            return default
        return float(self.duration_sec)


class TimeInterval(BaseModel):
    """A same-day quiet-hours interval, start inclusive, end exclusive.

    Bounds are kept as raw strings; the quiet-hours gate parses them and
    skips entries it cannot read.
    """

    model_config = ConfigDict(extra="ignore")

    start: str | None = None  # "HH:MM"
    end: str | None = None  # "HH:MM"


class DisplaySettings(BaseModel):
    """The display_settings document from the settings feed."""

    model_config = ConfigDict(extra="ignore")

    school_name: str | None = None
    class_name: str | None = None
    ads: list[AdItem] = Field(default_factory=list)
    quiet_hours: list[TimeInterval] = Field(default_factory=list)

    @field_validator("ads", "quiet_hours", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class DailyDocument(BaseModel):
    """One date-keyed document from the daily-data feed."""

    model_config = ConfigDict(extra="ignore")

    date: str  # DateKey, also the document id
    schedules: list[ScheduleItem] = Field(default_factory=list)
    notices: list[NoticeItem] = Field(default_factory=list)
    assignments: list[AssignmentItem] = Field(default_factory=list)

    @field_validator("schedules", "notices", "assignments", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class ViewModel(BaseModel):
    """The single reconciled snapshot of everything the display shows.

    Owned and written by the Reconciler only; everything else reads it.
    """

    school_name: str = LOADING_SCHOOL_NAME
    class_name: str = ""
    date_today: str = ""
    weekly_schedules: dict[str, list[ScheduleItem]] = Field(default_factory=dict)
    notices: list[NoticeItem] = Field(default_factory=list)
    assignments: list[AssignmentItem] = Field(default_factory=list)
    ads: list[AdItem] = Field(default_factory=list)
    quiet_hours: list[TimeInterval] = Field(default_factory=list)
