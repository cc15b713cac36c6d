"""Grid layout: one row per entry against a fixed set of activity columns.

Activities beyond :data:`MAX_ACTIVITIES_PER_TABLE` spill into further
tables, each introduced by an "Activities N - M" sub-banner.  The column
header row is repeated on every page a table spans.  Entry photos appear
only in the first table of a section.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..models import STATUS_NA, STATUS_NOK, STATUS_NR, STATUS_OK, Activity, ReportEntry
from ..report_theme import REPORT_COLORS
from .primitives import FONT, FONT_B, draw_box, draw_dot, draw_image, draw_line, draw_text
from .session import LayoutSession

if TYPE_CHECKING:
    from .sections import DeviceSection

MAX_ACTIVITIES_PER_TABLE = 12
DENSE_COLUMN_THRESHOLD = 8
DENSE_ACTIVITY_COL_W = 25.0
ACTIVITY_COL_W = 38.0
ID_COL_W = 30.0

TABLE_HEADER_HEIGHT = 20.0
TABLE_HEADER_ROOM = 45.0
SUB_BANNER_HEIGHT = 10.0
SUB_BANNER_GAP = 2.0
BASE_ROW_HEIGHT = 25.0
PHOTO_ROW_HEIGHT = 85.0
PHOTO_W = 70.0
PHOTO_H = 65.0
PHOTO_TOP_OFFSET = 10.0
PHOTO_SPACING = 3.0
TABLE_GAP = 6.0

OK_DOT_RADIUS = 2.5
NOK_GLYPH = "X"
NOK_GLYPH_SIZE = 12
STATUS_TEXT_SIZE = 5

# Baseline offset that centers cap-height glyphs on a point.
_CAP_CENTER = 0.35


def partition_activities(
    activities: list[Activity], per_table: int = MAX_ACTIVITIES_PER_TABLE
) -> list[list[Activity]]:
    """Split *activities* into consecutive groups of at most *per_table*."""
    return [activities[i : i + per_table] for i in range(0, len(activities), per_table)]


def table_count(activity_count: int, per_table: int = MAX_ACTIVITIES_PER_TABLE) -> int:
    return math.ceil(activity_count / per_table) if activity_count > 0 else 0


def activity_col_width(column_count: int) -> float:
    return DENSE_ACTIVITY_COL_W if column_count > DENSE_COLUMN_THRESHOLD else ACTIVITY_COL_W


def row_height(entry: ReportEntry, group_index: int) -> float:
    """Rows of the first table grow to hold a photo strip when the entry has photos."""
    if group_index == 0 and entry.photo_urls:
        return PHOTO_ROW_HEIGHT
    return BASE_ROW_HEIGHT


@dataclass(slots=True, frozen=True)
class TableColumns:
    id_w: float
    location_w: float
    activity_w: float

    @classmethod
    def for_group(cls, group: list[Activity], table_w: float) -> TableColumns:
        activity_w = activity_col_width(len(group))
        return cls(
            id_w=ID_COL_W,
            location_w=table_w - ID_COL_W - len(group) * activity_w,
            activity_w=activity_w,
        )


def _draw_centered_glyph(
    session: LayoutSession,
    x: float,
    w: float,
    cy: float,
    text: str,
    *,
    font: str,
    size: float,
    color: str,
) -> None:
    baseline = cy - size * _CAP_CENTER
    draw_text(
        session.canvas,
        x,
        baseline + size,
        w,
        text,
        font=font,
        size=size,
        color=color,
        align="center",
        max_lines=1,
    )


def draw_status_cell(
    session: LayoutSession, status: str | None, x: float, y_top: float, w: float, h: float
) -> None:
    cx = x + w / 2
    cy = y_top - h / 2
    if status == STATUS_OK:
        draw_dot(session.canvas, cx, cy, OK_DOT_RADIUS, REPORT_COLORS["success"])
    elif status == STATUS_NOK:
        _draw_centered_glyph(
            session,
            x,
            w,
            cy,
            NOK_GLYPH,
            font=FONT_B,
            size=NOK_GLYPH_SIZE,
            color=REPORT_COLORS["danger"],
        )
    elif status in (STATUS_NA, STATUS_NR):
        _draw_centered_glyph(
            session,
            x,
            w,
            cy,
            status,
            font=FONT,
            size=STATUS_TEXT_SIZE,
            color=REPORT_COLORS["text_muted"],
        )


class GridTableLayout:
    """Tabular rendering for device definitions without the list view flag."""

    def render(self, session: LayoutSession, section: DeviceSection) -> None:
        groups = partition_activities(section.activities)
        for group_index, group in enumerate(groups):
            if len(groups) > 1:
                self._draw_sub_banner(session, group_index, len(section.activities))
            self._draw_table(session, section, group, group_index)
            session.advance(TABLE_GAP)

    # -- pieces ---------------------------------------------------------------

    def _draw_sub_banner(self, session: LayoutSession, group_index: int, total: int) -> None:
        session.ensure_room(
            SUB_BANNER_HEIGHT + SUB_BANNER_GAP + TABLE_HEADER_HEIGHT + TABLE_HEADER_ROOM
        )
        start = group_index * MAX_ACTIVITIES_PER_TABLE + 1
        end = min((group_index + 1) * MAX_ACTIVITIES_PER_TABLE, total)
        x, y, w = session.left, session.y, session.width
        draw_box(
            session.canvas,
            x,
            y - SUB_BANNER_HEIGHT,
            w,
            SUB_BANNER_HEIGHT,
            fill=REPORT_COLORS["band_bg"],
            stroke=REPORT_COLORS["border"],
        )
        draw_text(
            session.canvas,
            x + 4,
            y - 3,
            w - 8,
            session.tr("ACTIVITIES_RANGE", start=start, end=end),
            font=FONT_B,
            size=5,
            color=REPORT_COLORS["text_secondary"],
            max_lines=1,
        )
        session.advance(SUB_BANNER_HEIGHT + SUB_BANNER_GAP)

    def _draw_table(
        self,
        session: LayoutSession,
        section: DeviceSection,
        group: list[Activity],
        group_index: int,
    ) -> None:
        columns = TableColumns.for_group(group, session.width)
        if not session.fits(TABLE_HEADER_HEIGHT + TABLE_HEADER_ROOM):
            session.new_page()
        self._draw_column_header(session, group, columns)

        for entry in section.entries:
            h = row_height(entry, group_index)
            if not session.fits(h):
                session.new_page()
                self._draw_column_header(session, group, columns)
            self._draw_row(session, entry, group, columns, h, with_photos=group_index == 0)

    def _draw_column_header(
        self, session: LayoutSession, group: list[Activity], columns: TableColumns
    ) -> None:
        c = session.canvas
        x, y, w = session.left, session.y, session.width
        h = TABLE_HEADER_HEIGHT
        black = REPORT_COLORS["black"]
        draw_box(c, x, y - h, w, h, fill=REPORT_COLORS["header_bg"], stroke=black)

        draw_text(c, x, y - 8, columns.id_w, session.tr("COLUMN_ID"), font=FONT_B, align="center")
        cx = x + columns.id_w
        draw_line(c, cx, y, cx, y - h, color=black)
        draw_text(
            c,
            cx + 2,
            y - 8,
            columns.location_w - 4,
            session.tr("COLUMN_LOCATION"),
            font=FONT_B,
            max_lines=1,
        )
        cx += columns.location_w
        draw_line(c, cx, y, cx, y - h, color=black)

        aw = columns.activity_w
        for activity in group:
            draw_text(
                c,
                cx + 2,
                y - 2,
                aw - 4,
                activity.name,
                font=FONT_B,
                size=5,
                align="center",
                max_height=12,
            )
            draw_box(c, cx + 2, y - 14 - 5, aw - 4, 5, stroke=REPORT_COLORS["border"])
            draw_text(
                c,
                cx + 2,
                y - 15,
                aw - 4,
                activity.frequency_code[:1],
                size=4,
                align="center",
                max_lines=1,
            )
            cx += aw
            draw_line(c, cx, y, cx, y - h, color=black)

        session.advance(h)

    def _draw_row(
        self,
        session: LayoutSession,
        entry: ReportEntry,
        group: list[Activity],
        columns: TableColumns,
        h: float,
        *,
        with_photos: bool,
    ) -> None:
        c = session.canvas
        x, y, w = session.left, session.y, session.width
        black = REPORT_COLORS["black"]
        draw_box(c, x, y - h, w, h, stroke=black)

        draw_text(
            c,
            x,
            y - h / 2 + 3,
            columns.id_w,
            entry.custom_id,
            font=FONT_B,
            align="center",
            max_lines=1,
        )
        cx = x + columns.id_w
        draw_line(c, cx, y, cx, y - h, color=black)

        draw_text(c, cx + 3, y - 3, columns.location_w - 6, entry.area, leading=7, max_height=14)
        if with_photos and entry.photo_urls:
            self._draw_photo_strip(session, entry, cx, y, columns.location_w)
        cx += columns.location_w
        draw_line(c, cx, y, cx, y - h, color=black)

        aw = columns.activity_w
        for activity in group:
            draw_status_cell(session, entry.results.get(activity.id), cx, y, aw, h)
            cx += aw
            draw_line(c, cx, y, cx, y - h, color=black)

        session.advance(h)

    def _draw_photo_strip(
        self, session: LayoutSession, entry: ReportEntry, cell_x: float, y_top: float, cell_w: float
    ) -> None:
        px = cell_x + 3
        photo_y = y_top - PHOTO_TOP_OFFSET - PHOTO_H
        for ref in entry.photo_urls:
            data = session.images.get(ref)
            if data is None or px + PHOTO_W >= cell_x + cell_w:
                continue
            if draw_image(session.canvas, data, px, photo_y, PHOTO_W, PHOTO_H, clip_radius=2):
                px += PHOTO_W + PHOTO_SPACING
