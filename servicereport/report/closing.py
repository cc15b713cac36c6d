"""Trailing sections: general findings, summary tally and signatures."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import (
    RESULT_STATUSES,
    STATUS_NA,
    STATUS_NOK,
    STATUS_NR,
    STATUS_OK,
    ReportEntry,
)
from ..report_theme import REPORT_COLORS
from .primitives import (
    FONT_B,
    draw_box,
    draw_image,
    draw_line,
    draw_single_line,
    draw_text,
    measure_text_height,
)
from .session import LayoutSession

FINDINGS_ROOM = 60.0
FINDINGS_BANNER_HEIGHT = 10.0
FINDING_ROW_MIN_HEIGHT = 16.0
FINDING_ID_W = 60.0
FINDING_TEXT_SIZE = 6
FINDING_PAD = 5.0
FINDING_ROW_MAX_HEIGHT = 400.0

SUMMARY_HEIGHT = 50.0
SUMMARY_ROOM = 60.0
OBS_BOX_RATIO = 0.65
TALLY_BOX_RATIO = 0.30
BOX_GAP_RATIO = 0.05

SIGNATURE_HEIGHT = 70.0
SIGNATURE_GAP = 15.0
SIGNATURE_IMG_W = 60.0
SIGNATURE_IMG_H = 30.0

SECTION_GAP = 8.0
SUMMARY_GAP = 10.0


@dataclass(slots=True, frozen=True)
class StatusTally:
    ok: int = 0
    nok: int = 0
    na: int = 0
    nr: int = 0

    def as_dict(self) -> dict[str, int]:
        return {STATUS_OK: self.ok, STATUS_NOK: self.nok, STATUS_NA: self.na, STATUS_NR: self.nr}


def tally_statuses(entries: list[ReportEntry]) -> StatusTally:
    """Count every OK/NOK/NA/NR value across all entry results."""
    counts = dict.fromkeys(RESULT_STATUSES, 0)
    for entry in entries:
        for status in entry.results.values():
            if status in counts:
                counts[status] += 1
    return StatusTally(
        ok=counts[STATUS_OK], nok=counts[STATUS_NOK], na=counts[STATUS_NA], nr=counts[STATUS_NR]
    )


def entries_with_findings(entries: list[ReportEntry]) -> list[ReportEntry]:
    return [entry for entry in entries if entry.observations.strip()]


def finding_row_height(text: str, text_w: float) -> float:
    measured = measure_text_height(text, text_w, size=FINDING_TEXT_SIZE) + 2 * FINDING_PAD
    return min(FINDING_ROW_MAX_HEIGHT, max(FINDING_ROW_MIN_HEIGHT, measured))


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


def draw_findings(session: LayoutSession) -> int:
    """List entries with observations; returns how many rows were drawn."""
    findings = entries_with_findings(session.inputs.report.entries)
    if not findings:
        return 0

    c = session.canvas
    session.ensure_room(FINDINGS_ROOM)
    x, w = session.left, session.width
    y = session.y
    draw_box(
        c,
        x,
        y - FINDINGS_BANNER_HEIGHT,
        w,
        FINDINGS_BANNER_HEIGHT,
        fill=REPORT_COLORS["section_bg"],
        stroke=REPORT_COLORS["black"],
    )
    draw_single_line(
        c,
        x + 5,
        y - 2,
        w - 10,
        session.tr("GENERAL_FINDINGS"),
        font=FONT_B,
        size=7,
        color=REPORT_COLORS["white"],
    )
    session.advance(FINDINGS_BANNER_HEIGHT)

    text_w = w - FINDING_ID_W - 4
    border = REPORT_COLORS["row_border"]
    for entry in findings:
        text = entry.observations.strip()
        h = finding_row_height(text, text_w)
        session.ensure_room(h)
        y = session.y
        draw_box(c, x, y - h, FINDING_ID_W, h, stroke=border)
        draw_single_line(
            c, x + 2, y - FINDING_PAD, FINDING_ID_W - 4, entry.custom_id, font=FONT_B, size=6
        )
        draw_box(c, x + FINDING_ID_W, y - h, w - FINDING_ID_W, h, stroke=border)
        draw_text(
            c,
            x + FINDING_ID_W + 2,
            y - FINDING_PAD,
            text_w,
            text,
            size=FINDING_TEXT_SIZE,
            max_height=h - 2 * FINDING_PAD,
        )
        session.advance(h)

    session.advance(SECTION_GAP)
    return len(findings)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def draw_summary(session: LayoutSession) -> StatusTally:
    """General observations box beside the OK / NOK / NA figures.

    NR results are counted in the returned tally but have no figure.
    """
    report = session.inputs.report
    tally = tally_statuses(report.entries)
    session.ensure_room(SUMMARY_ROOM)

    c = session.canvas
    x, y, w = session.left, session.y, session.width
    h = SUMMARY_HEIGHT
    obs_w = w * OBS_BOX_RATIO
    sum_w = w * TALLY_BOX_RATIO
    sum_x = x + obs_w + w * BOX_GAP_RATIO
    border = REPORT_COLORS["border"]
    divider = REPORT_COLORS["row_border"]

    draw_box(c, x, y - h, obs_w, h, stroke=border)
    draw_single_line(c, x + 4, y - 4, obs_w - 8, session.tr("GENERAL_OBSERVATIONS"), font=FONT_B)
    draw_line(c, x, y - 12, x + obs_w, y - 12, color=divider)
    draw_text(
        c,
        x + 4,
        y - 15,
        obs_w - 8,
        report.general_observations.strip() or session.tr("NO_GENERAL_OBSERVATIONS"),
        size=6,
        max_height=h - 19,
    )

    draw_box(c, sum_x, y - h, sum_w, h, stroke=border)
    draw_single_line(
        c, sum_x, y - 4, sum_w, session.tr("SUMMARY"), font=FONT_B, size=6, align="center"
    )
    draw_line(c, sum_x, y - 12, sum_x + sum_w, y - 12, color=divider)

    figures = (
        (session.tr("TALLY_OK"), tally.ok, REPORT_COLORS["success"]),
        (session.tr("TALLY_NOK"), tally.nok, REPORT_COLORS["danger"]),
        (session.tr("TALLY_NA"), tally.na, REPORT_COLORS["text_muted"]),
    )
    stat_w = sum_w / len(figures)
    for i, (label, value, color) in enumerate(figures):
        sx = sum_x + i * stat_w
        draw_single_line(
            c, sx, y - 20, stat_w, label, font=FONT_B, size=5, color=color, align="center"
        )
        draw_single_line(
            c, sx, y - 30, stat_w, str(value), font=FONT_B, size=9, color=color, align="center"
        )

    session.advance(h + SUMMARY_GAP)
    return tally


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def _draw_signature_box(
    session: LayoutSession,
    x: float,
    y: float,
    w: float,
    title: str,
    signature_ref: str | None,
    signer_name: str | None,
) -> None:
    c = session.canvas
    h = SIGNATURE_HEIGHT
    draw_box(c, x, y - h, w, h, stroke=REPORT_COLORS["black"])
    draw_single_line(c, x + 4, y - 2, w - 8, title, font=FONT_B, size=5)
    if signature_ref:
        draw_image(
            c,
            session.images.get(signature_ref),
            x + w / 2 - SIGNATURE_IMG_W / 2,
            y - 15 - SIGNATURE_IMG_H,
            SIGNATURE_IMG_W,
            SIGNATURE_IMG_H,
        )
    draw_line(c, x + 20, y - 55, x + w - 20, y - 55, color=REPORT_COLORS["border"])
    if signer_name:
        draw_single_line(
            c, x + 20, y - 58, w - 40, signer_name, font=FONT_B, size=6, align="center"
        )


def draw_signatures(session: LayoutSession) -> None:
    report = session.inputs.report
    session.ensure_room(SIGNATURE_HEIGHT)
    x, y, w = session.left, session.y, session.width
    sig_w = (w - SIGNATURE_GAP) / 2
    _draw_signature_box(
        session,
        x,
        y,
        sig_w,
        session.tr("SIGNATURE_PROVIDER"),
        report.provider_signature,
        report.provider_signer_name,
    )
    _draw_signature_box(
        session,
        x + sig_w + SIGNATURE_GAP,
        y,
        sig_w,
        session.tr("SIGNATURE_CLIENT"),
        report.client_signature,
        report.client_signer_name,
    )
    session.advance(SIGNATURE_HEIGHT)


def draw_closing_sections(session: LayoutSession) -> StatusTally:
    draw_findings(session)
    tally = draw_summary(session)
    draw_signatures(session)
    return tally
