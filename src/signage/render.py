"""Renderer: projects the ViewModel onto the display surface.

``render`` is a pure projection (ViewModel + now -> RenderedView) and
``apply`` writes that projection to a surface. Neither touches ads, scrolling
or notifications; the engine restarts those after a pass, never the reverse.

Layout on screen:
    header          date, weekday, class name
    schedule-grid   three weekday columns starting today (weekends skipped)
    notice-list     today's notices
    assignment-list assignments due from five days ago onwards
    ad-area         current ad image or placeholder
"""

from datetime import datetime, timedelta
from html import escape

from pydantic import BaseModel, Field

from src.signage import dates
from src.signage.logging import get_logger
from src.signage.models import ViewModel
from src.signage.surface import Child, DisplaySurface

log = get_logger(__name__)

SCHEDULE_COLUMNS = 3
ASSIGNMENT_LOOKBACK_DAYS = 5

# Element ids
CURRENT_DATE = "current-date"
CURRENT_DAY = "current-day"
CLASS_NAME = "class-name"
SCHOOL_NAME = "school-name"
SCHEDULE_GRID = "schedule-grid"
NOTICE_PANEL = "notice-list"
ASSIGNMENT_PANEL = "assignment-list"
AD_AREA = "ad-area"
AD_IMAGE = "ad-image"

# Empty states
NO_SCHEDULE = "予定なし"
NO_NOTICE = "連絡事項はありません"
NO_ASSIGNMENT = "提出物はありません"
NO_AD = "広告はありません"
HIGHLIGHT_PREFIX = "【重要】"
UNKNOWN_DEADLINE = "期限不明"


def schedule_panel_id(index: int) -> str:
    return f"schedule-scroll-{index}"


def schedule_header_id(index: int) -> str:
    return f"schedule-head-{index}"


class HeaderSection(BaseModel):
    date_text: str
    weekday_text: str
    class_name: str
    school_name: str


class ScheduleRow(BaseModel):
    time: str
    content: str


class ScheduleColumn(BaseModel):
    date_key: str
    label: str
    is_today: bool
    panel_id: str
    items: list[ScheduleRow] = Field(default_factory=list)


class NoticeRow(BaseModel):
    text: str
    is_highlight: bool


class AssignmentRow(BaseModel):
    deadline: str
    short_date: str
    subject: str
    task: str
    days: int | None
    status: str
    label: str
    css_class: str

    @property
    def overdue(self) -> bool:
        return self.status == dates.OVERDUE


class AdSurface(BaseModel):
    url: str | None = None

    @property
    def placeholder(self) -> bool:
        return self.url is None


class RenderedView(BaseModel):
    """Everything one render pass puts on screen."""

    today: str
    header: HeaderSection
    columns: list[ScheduleColumn]
    notices: list[NoticeRow]
    assignments: list[AssignmentRow]
    ad: AdSurface

    @property
    def panel_ids(self) -> list[str]:
        """Scrollable panels, in the order the auto-scroller picks them up."""
        return [c.panel_id for c in self.columns] + [NOTICE_PANEL, ASSIGNMENT_PANEL]


class Renderer:
    def render(self, view: ViewModel, now: datetime) -> RenderedView:
        today = now.date()
        today_key = dates.format_key(today)
        return RenderedView(
            today=today_key,
            header=HeaderSection(
                date_text=dates.header_date(today),
                weekday_text=f"({dates.weekday_label(today)})",
                class_name=view.class_name,
                school_name=view.school_name,
            ),
            columns=self._columns(view, now),
            notices=[
                NoticeRow(text=n.text, is_highlight=n.is_highlight)
                for n in view.notices
                if n.visible_on(today_key)
            ],
            assignments=self._assignments(view, today_key),
            ad=AdSurface(url=view.ads[0].url if view.ads else None),
        )

    def _columns(self, view: ViewModel, now: datetime) -> list[ScheduleColumn]:
        columns: list[ScheduleColumn] = []
        day_offset = 0
        while len(columns) < SCHEDULE_COLUMNS:
            day = dates.offset(day_offset, now)
            day_offset += 1
            if dates.is_weekend(day):
                continue
            key = dates.format_key(day)
            columns.append(
                ScheduleColumn(
                    date_key=key,
                    label=dates.format_display_date(day),
                    is_today=day_offset == 1,
                    panel_id=schedule_panel_id(len(columns)),
                    items=[
                        ScheduleRow(time=item.time, content=item.content)
                        for item in view.weekly_schedules.get(key, [])
                        if item.visible_on(key)
                    ],
                )
            )
        return columns

    def _assignments(self, view: ViewModel, today_key: str) -> list[AssignmentRow]:
        cutoff = dates.format_key(
            dates.parse_key(today_key) - timedelta(days=ASSIGNMENT_LOOKBACK_DAYS)
        )
        rows = []
        for item in view.assignments:
            if item.deadline < cutoff:
                continue
            try:
                label = dates.deadline_label(dates.days_left(item.deadline, today_key))
            except ValueError:
                log.warning("assignment_deadline_invalid", deadline=item.deadline)
                days, status, text, css_class = None, "unknown", UNKNOWN_DEADLINE, "days-left"
            else:
                days, status, text, css_class = label
            rows.append(
                AssignmentRow(
                    deadline=item.deadline,
                    short_date=item.deadline[5:],
                    subject=item.subject,
                    task=item.task,
                    days=days,
                    status=status,
                    label=text,
                    css_class=css_class,
                )
            )
        return rows

    def apply(
        self, rendered: RenderedView, surface: DisplaySurface, include_ad: bool = True
    ) -> list[str]:
        """Write a render pass to the surface and return the rebuilt panel ids.

        With include_ad=False the ad image is left alone, so a daily update does
        not snap a running rotation back to the first ad.
        """
        header = rendered.header
        surface.set_text(CURRENT_DATE, header.date_text)
        surface.set_text(CURRENT_DAY, header.weekday_text)
        surface.set_text(CLASS_NAME, header.class_name)
        surface.set_text(SCHOOL_NAME, header.school_name)

        children = []
        for index, column in enumerate(rendered.columns):
            head_classes = ("schedule-date-header",)
            if column.is_today:
                head_classes += ("is-today",)
            children.append(Child(schedule_header_id(index), escape(column.label), head_classes))
            children.append(
                Child(column.panel_id, _schedule_html(column), ("schedule-scroll-area",))
            )
        surface.replace_children(SCHEDULE_GRID, children)

        surface.set_html(NOTICE_PANEL, _notices_html(rendered.notices))
        surface.set_html(ASSIGNMENT_PANEL, _assignments_html(rendered.assignments))

        if include_ad:
            ad = rendered.ad
            surface.toggle_class(AD_AREA, "no-ads", ad.placeholder)
            surface.set_attribute(AD_IMAGE, "src", ad.url or "")
            surface.set_attribute(AD_IMAGE, "alt", NO_AD if ad.placeholder else "")

        log.debug(
            "render_applied",
            today=rendered.today,
            columns=[c.date_key for c in rendered.columns],
            notices=len(rendered.notices),
            assignments=len(rendered.assignments),
        )
        return rendered.panel_ids


def _schedule_html(column: ScheduleColumn) -> str:
    if not column.items:
        return f'<div class="no-schedule">{NO_SCHEDULE}</div>'
    return "".join(
        '<div class="schedule-list-item">'
        f'<span class="schedule-time">{escape(row.time)}</span>'
        f'<span class="schedule-content">{escape(row.content)}</span>'
        "</div>"
        for row in column.items
    )


def _notices_html(notices: list[NoticeRow]) -> str:
    if not notices:
        return f'<li class="no-notice">{NO_NOTICE}</li>'
    parts = []
    for row in notices:
        if row.is_highlight:
            parts.append(f'<li class="highlight">{HIGHLIGHT_PREFIX} {escape(row.text)}</li>')
        else:
            parts.append(f"<li>{escape(row.text)}</li>")
    return "".join(parts)


def _assignments_html(rows: list[AssignmentRow]) -> str:
    if not rows:
        return f'<tr><td colspan="3" class="no-assignment">{NO_ASSIGNMENT}</td></tr>'
    return "".join(
        f'<tr class="{"overdue-row" if row.overdue else ""}">'
        f"<td>{escape(row.short_date)}<br>"
        f'<span class="{row.css_class}">{escape(row.label)}</span></td>'
        f"<td>{escape(row.subject)}</td>"
        f"<td>{escape(row.task)}</td>"
        "</tr>"
        for row in rows
    )
