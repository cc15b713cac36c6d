"""List layout: one row per (entry, activity) pair.

Each entry opens with a small banner (custom id and area).  Row height is
computed from the row's content: a base strip with the activity name,
frequency badge and status, plus photo rows and wrapped observations when
the activity carries them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..models import (
    STATUS_NA,
    STATUS_NOK,
    STATUS_NR,
    STATUS_OK,
    Activity,
    ActivityData,
    ReportEntry,
)
from ..report_theme import REPORT_COLORS, STATUS_COLORS
from .primitives import (
    FONT,
    FONT_B,
    draw_box,
    draw_dot,
    draw_image,
    draw_single_line,
    draw_text,
    measure_text_height,
)
from .session import LayoutSession

if TYPE_CHECKING:
    from .sections import DeviceSection

AREA_INSET = 8.0
ENTRY_HEADER_HEIGHT = 14.0
ACTIVITY_ROW_HEIGHT = 18.0
THUMB_SIZE = 64.0
THUMB_SPACING = 4.0
PHOTO_ROW_PAD = 6.0
PHOTO_AREA_MARGIN = 8.0
OBS_MAX_W = 300.0
OBS_FONT_SIZE = 4
OBS_LEADING = 4.8
OBS_GAP = 4.0
CONTINUATION_ROOM = 2.0
LIST_ROW_MAX_HEIGHT = 560.0
LIST_GAP = 6.0

NAME_W = 100.0
BADGE_OFFSET = 110.0
BADGE_W = 20.0
BADGE_H = 8.0
STATUS_DOT_R = 4.0

_STATUS_LABELS: dict[str | None, str] = {
    STATUS_OK: "",
    STATUS_NOK: "X",
    STATUS_NA: "N/A",
    STATUS_NR: "NR",
}
_NO_STATUS_LABEL = "-"


@dataclass(slots=True)
class ActivityRow:
    entry: ReportEntry
    activity: Activity
    data: ActivityData | None
    first_of_entry: bool

    @property
    def status(self) -> str | None:
        return self.entry.results.get(self.activity.id)

    @property
    def photo_refs(self) -> list[str]:
        return self.data.photo_urls if self.data is not None else []

    @property
    def observations(self) -> str:
        return self.data.observations.strip() if self.data is not None else ""


def build_activity_rows(
    entries: list[ReportEntry], activities: list[Activity]
) -> list[ActivityRow]:
    """Rows for every activity an entry has a result key for, in catalog order."""
    rows: list[ActivityRow] = []
    for entry in entries:
        own = [activity for activity in activities if activity.id in entry.results]
        for index, activity in enumerate(own):
            rows.append(
                ActivityRow(
                    entry=entry,
                    activity=activity,
                    data=entry.activity_data.get(activity.id),
                    first_of_entry=index == 0,
                )
            )
    return rows


def entry_area_width(content_w: float) -> float:
    return content_w - AREA_INSET


def photos_per_row(area_w: float) -> int:
    return max(1, int((area_w - PHOTO_AREA_MARGIN) // (THUMB_SIZE + THUMB_SPACING)))


def observation_width(area_w: float) -> float:
    return min(OBS_MAX_W, area_w - PHOTO_AREA_MARGIN)


def observation_max_height(row: ActivityRow) -> float:
    """Room left for observation text in a row of at most ``LIST_ROW_MAX_HEIGHT``."""
    used = ACTIVITY_ROW_HEIGHT + OBS_GAP
    if row.photo_refs:
        used += THUMB_SIZE + PHOTO_ROW_PAD
    return LIST_ROW_MAX_HEIGHT - used


def list_row_height(row: ActivityRow, area_w: float) -> float:
    height = ACTIVITY_ROW_HEIGHT
    photos = len(row.photo_refs)
    if photos:
        per_row = photos_per_row(area_w)
        photo_rows = -(-photos // per_row)
        height += photo_rows * (THUMB_SIZE + PHOTO_ROW_PAD)
    if row.observations:
        measured = measure_text_height(
            row.observations,
            observation_width(area_w),
            size=OBS_FONT_SIZE,
            leading=OBS_LEADING,
        )
        height += min(measured, observation_max_height(row)) + OBS_GAP
    # Rows are never split, so one must fit below the page header.
    return min(height, LIST_ROW_MAX_HEIGHT)


def status_label(status: str | None) -> str:
    return _STATUS_LABELS.get(status, _NO_STATUS_LABEL)


def status_dot_color(status: str | None) -> str:
    return STATUS_COLORS.get(status or "", REPORT_COLORS["row_border"])


class ItemizedListLayout:
    """Row-per-activity rendering for device definitions in list view."""

    def render(self, session: LayoutSession, section: DeviceSection) -> None:
        area_w = entry_area_width(session.width)
        rows = build_activity_rows(section.entries, section.activities)
        for index, row in enumerate(rows):
            h = list_row_height(row, area_w)
            if row.first_of_entry:
                session.ensure_room(ENTRY_HEADER_HEIGHT + h)
                self._draw_entry_header(session, row.entry, area_w)
            elif session.ensure_room(h + CONTINUATION_ROOM):
                self._draw_entry_header(session, row.entry, area_w)
            self._draw_row(session, row, index, h, area_w)
        session.advance(LIST_GAP)

    def _draw_entry_header(self, session: LayoutSession, entry: ReportEntry, area_w: float) -> None:
        c = session.canvas
        x, y = session.left, session.y
        draw_box(
            c,
            x,
            y - ENTRY_HEADER_HEIGHT,
            area_w,
            ENTRY_HEADER_HEIGHT,
            fill=REPORT_COLORS["header_bg"],
            stroke=REPORT_COLORS["row_border"],
        )
        draw_single_line(c, x + 4, y - 3, 60, entry.custom_id, font=FONT_B, size=6)
        draw_single_line(
            c,
            x + 69,
            y - 3,
            area_w - 73,
            entry.area,
            size=5,
            color=REPORT_COLORS["text_muted"],
            align="right",
        )
        session.advance(ENTRY_HEADER_HEIGHT)

    def _draw_row(
        self, session: LayoutSession, row: ActivityRow, index: int, h: float, area_w: float
    ) -> None:
        c = session.canvas
        x, y = session.left, session.y
        row_x = x + 4
        muted = REPORT_COLORS["text_muted"]

        if index % 2 == 0:
            draw_box(c, x, y - h, area_w, h, fill=REPORT_COLORS["zebra_bg"], stroke=None)

        draw_single_line(c, row_x, y - 2, NAME_W, row.activity.name, font=FONT_B, size=5)

        badge_x = row_x + BADGE_OFFSET
        draw_box(c, badge_x, y - 2 - BADGE_H, BADGE_W, BADGE_H, stroke=REPORT_COLORS["border"])
        draw_single_line(
            c,
            badge_x,
            y - 3,
            BADGE_W,
            row.activity.frequency_code,
            size=4,
            color=muted,
            align="center",
        )

        status = row.status
        draw_dot(c, badge_x + 35, y - 6, STATUS_DOT_R, status_dot_color(status))
        label = status_label(status)
        if label:
            is_nok = status == STATUS_NOK
            draw_single_line(
                c,
                badge_x + 50,
                y - 2,
                area_w - 160,
                label,
                font=FONT_B,
                size=10 if is_nok else 5,
                color=REPORT_COLORS["danger"] if is_nok else muted,
            )

        photos = row.photo_refs
        if photos:
            self._draw_thumbnails(session, photos, row_x, y - 12, area_w)

        if row.observations:
            obs_top = y - 12 - (THUMB_SIZE + 2 if photos else 0)
            draw_text(
                c,
                row_x,
                obs_top,
                observation_width(area_w),
                row.observations,
                font=FONT,
                size=OBS_FONT_SIZE,
                color=muted,
                leading=OBS_LEADING,
                max_height=observation_max_height(row),
            )

        draw_box(c, x, y - h, area_w, h, stroke=REPORT_COLORS["row_border"])
        session.advance(h)

    def _draw_thumbnails(
        self, session: LayoutSession, refs: list[str], x: float, y_top: float, area_w: float
    ) -> None:
        # A single strip; thumbnails past its capacity are not drawn.
        capacity = photos_per_row(area_w)
        drawn = 0
        px = x
        for ref in refs:
            if drawn >= capacity:
                break
            data = session.images.get(ref)
            if data is None:
                continue
            if draw_image(
                session.canvas, data, px, y_top - THUMB_SIZE, THUMB_SIZE, THUMB_SIZE, clip_radius=2
            ):
                px += THUMB_SIZE + THUMB_SPACING
                drawn += 1
