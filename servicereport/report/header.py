"""Repeating page header: identity columns plus the two info bands.

Three columns (provider / title block / client) sit in a fixed-height box
at the top of the page, followed by the schedule+staff band and the
reference-standard band.  :func:`draw_page_header` returns the cursor
right below the bands and is called at the top of every page.
"""

from __future__ import annotations

from datetime import datetime

from ..models import ReportInputs
from ..report_i18n import month_name, tr
from ..report_theme import REPORT_COLORS
from .primitives import FONT, FONT_B, draw_box, draw_image, draw_line, draw_single_line, draw_text
from .session import MARGIN, PAGE_H, LayoutSession

HEADER_HEIGHT = 80.0
HEADER_GAP = 10.0
INFO_BAR_HEIGHT = 12.0
STANDARD_BAR_HEIGHT = 10.0
BANDS_GAP = 8.0

PROVIDER_COL_RATIO = 0.28
TITLE_COL_RATIO = 0.44
LOGO_SIZE = 35.0
BADGE_W = 180.0
BADGE_H = 11.0

WEEK_MARKER = "W"
NO_TIME = "--:--"


# ---------------------------------------------------------------------------
# Text rules
# ---------------------------------------------------------------------------


def period_label(date_str: str, lang: str) -> str:
    """``Week <id>`` for week periods, ``<Month> <YYYY>`` for ``YYYY-MM``.

    Anything that does not parse is returned unchanged.
    """
    if WEEK_MARKER in date_str:
        return tr(lang, "WEEK_LABEL", period=date_str)
    parts = date_str.split("-")
    try:
        year, month = int(parts[0]), int(parts[1])
        return f"{month_name(lang, month)} {year}"
    except (IndexError, ValueError):
        return date_str


def format_execution_date(value: datetime | None, lang: str) -> str:
    """``DD <abbrev-month> YYYY`` upper-cased, e.g. ``05 MAR 2025``."""
    if value is None:
        return "--"
    return f"{value.day:02d} {month_name(lang, value.month, short=True)} {value.year}".upper()


def format_service_date(value: datetime | None) -> str:
    if value is None:
        return "--/--/----"
    return f"{value.day:02d}/{value.month:02d}/{value.year}"


def frequency_summary(inputs: ReportInputs) -> str:
    """Comma-joined display frequencies of every activity with a result."""
    seen: dict[str, None] = {}
    for entry in inputs.report.entries:
        for device in inputs.devices:
            for activity in device.activities:
                if activity.id in entry.results:
                    seen.setdefault(activity.frequency_code or activity.frequency, None)
    return ", ".join(code for code in seen if code)


def staff_names(inputs: ReportInputs, unknown: str) -> str:
    names = []
    for tech_id in inputs.report.assigned_technician_ids:
        names.append(inputs.technician_name(tech_id, fallback="") or unknown)
    return ", ".join(names)


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


def _draw_provider_column(session: LayoutSession, top: float, col_w: float) -> None:
    c = session.canvas
    company = session.inputs.company
    logo = session.images.get(company.logo_url)
    if company.logo_url:
        draw_image(c, logo, MARGIN + 8, top - 8 - LOGO_SIZE, LOGO_SIZE, LOGO_SIZE)
    info_x = MARGIN + (49 if company.logo_url else 8)
    info_w = col_w - (info_x - MARGIN) - 4
    muted = REPORT_COLORS["text_secondary"]

    draw_single_line(c, info_x, top - 6, info_w, company.name, font=FONT_B, size=7)
    draw_single_line(c, info_x, top - 15, info_w, company.legal_name, size=6, color=muted)
    draw_text(
        c, info_x, top - 24, info_w, company.address, size=5.5, color=muted, max_height=14
    )
    draw_single_line(
        c, info_x, top - 40, info_w, company.email, size=5, color=REPORT_COLORS["text_muted"]
    )
    draw_single_line(c, info_x, top - 48, info_w, company.phone, font=FONT_B, size=6)


def _draw_title_column(session: LayoutSession, top: float, col_x: float, col_w: float) -> None:
    c = session.canvas
    report = session.inputs.report
    options = session.options
    title = options.title or session.tr("REPORT_TITLE")
    subtitle = options.subtitle or session.tr("REPORT_SUBTITLE")

    draw_single_line(c, col_x, top - 12, col_w, title, font=FONT_B, size=10, align="center")
    draw_single_line(
        c,
        col_x,
        top - 24,
        col_w,
        subtitle,
        font=FONT_B,
        size=6,
        color=REPORT_COLORS["text_secondary"],
        align="center",
    )

    badge_x = col_x + (col_w - BADGE_W) / 2
    draw_box(
        c,
        badge_x,
        top - 38 - BADGE_H,
        BADGE_W,
        BADGE_H,
        fill=REPORT_COLORS["header_bg"],
        stroke=REPORT_COLORS["border"],
    )
    badge = session.tr(
        "EXECUTION_PERIOD_BADGE",
        date=format_execution_date(report.service_date, session.lang),
        period=period_label(report.date_str, session.lang).upper(),
    )
    draw_single_line(
        c, badge_x + 3, top - 40.5, BADGE_W - 6, badge, font=FONT_B, size=5.5, align="center"
    )

    draw_single_line(
        c,
        col_x,
        top - 56,
        col_w,
        session.tr("FREQUENCIES", frequencies=frequency_summary(session.inputs)),
        size=5,
        color=REPORT_COLORS["text_muted"],
        align="center",
    )


def _draw_client_column(session: LayoutSession, top: float, col_x: float, col_w: float) -> None:
    c = session.canvas
    client = session.inputs.client
    text_x = col_x + 8
    text_w = col_w - 50
    muted = REPORT_COLORS["text_secondary"]

    draw_single_line(c, text_x, top - 6, text_w, client.name, font=FONT_B, size=7)
    if client.legal_name:
        draw_single_line(c, text_x, top - 14, text_w, client.legal_name, size=5.5, color=muted)
    if client.contact_name:
        draw_single_line(
            c,
            text_x,
            top - 22,
            text_w,
            session.tr("CONTACT_LINE", name=client.contact_name),
            font=FONT_B,
            size=5.5,
        )
    draw_single_line(
        c, text_x, top - 30, text_w, session.tr("PHONE_LINE", phone=client.contact), size=5.5
    )
    draw_text(c, text_x, top - 38, text_w, client.address, size=5, color=muted, max_height=18)

    if client.logo_url:
        draw_image(
            c,
            session.images.get(client.logo_url),
            col_x + col_w - 40,
            top - 8 - LOGO_SIZE,
            LOGO_SIZE,
            LOGO_SIZE,
        )


def _draw_info_band(session: LayoutSession, y_top: float) -> float:
    c = session.canvas
    report = session.inputs.report
    w = session.width
    label_clr = REPORT_COLORS["text_muted"]
    draw_box(
        c,
        MARGIN,
        y_top - INFO_BAR_HEIGHT,
        w,
        INFO_BAR_HEIGHT,
        fill=REPORT_COLORS["band_bg"],
        stroke=REPORT_COLORS["border"],
    )
    text_top = y_top - 4
    draw_single_line(
        c, MARGIN + 4, text_top, 26, session.tr("DATE_LABEL"), font=FONT_B, size=6, color=label_clr
    )
    draw_single_line(c, MARGIN + 30, text_top, 58, format_service_date(report.service_date), size=6)
    draw_single_line(
        c,
        MARGIN + 90,
        text_top,
        35,
        session.tr("SCHEDULE_LABEL"),
        font=FONT_B,
        size=6,
        color=label_clr,
    )
    schedule = f"{report.start_time or NO_TIME} - {report.end_time or NO_TIME}"
    draw_single_line(c, MARGIN + 125, text_top, 73, schedule, font=FONT, size=6)
    draw_single_line(c, MARGIN + 200, text_top, 85, session.tr("STAFF_LABEL"), font=FONT_B, size=6)
    names = staff_names(session.inputs, session.tr("UNKNOWN_TECHNICIAN"))
    draw_single_line(
        c, MARGIN + 285, text_top, w - 289, names or session.tr("NOT_AVAILABLE"), size=6
    )
    return y_top - INFO_BAR_HEIGHT


def _draw_standard_band(session: LayoutSession, y_top: float) -> float:
    c = session.canvas
    w = session.width
    draw_box(
        c,
        MARGIN,
        y_top - STANDARD_BAR_HEIGHT,
        w,
        STANDARD_BAR_HEIGHT,
        fill=REPORT_COLORS["header_bg"],
        stroke=REPORT_COLORS["border"],
    )
    text = session.tr("REFERENCE_STANDARD", standard=session.options.reference_standard)
    draw_single_line(c, MARGIN + 4, y_top - 3, w - 8, text, font=FONT_B, size=6, align="center")
    return y_top - STANDARD_BAR_HEIGHT


def draw_page_header(session: LayoutSession) -> float:
    """Draw header and bands on the current page; return the content start y."""
    c = session.canvas
    w = session.width
    top = PAGE_H - MARGIN
    draw_box(c, MARGIN, top - HEADER_HEIGHT, w, HEADER_HEIGHT, stroke=REPORT_COLORS["black"])

    col1_w = w * PROVIDER_COL_RATIO
    col2_w = w * TITLE_COL_RATIO
    col2_x = MARGIN + col1_w
    col3_x = col2_x + col2_w
    col3_w = w - col1_w - col2_w

    _draw_provider_column(session, top, col1_w)
    draw_line(c, col2_x, top, col2_x, top - HEADER_HEIGHT)
    _draw_title_column(session, top, col2_x, col2_w)
    draw_line(c, col3_x, top, col3_x, top - HEADER_HEIGHT)
    _draw_client_column(session, top, col3_x, col3_w)

    y = top - HEADER_HEIGHT - HEADER_GAP
    y = _draw_info_band(session, y)
    y = _draw_standard_band(session, y)
    return y - BANDS_GAP
