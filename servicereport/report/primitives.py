"""Low-level drawing helpers over the ReportLab canvas.

Coordinates are ReportLab's (origin bottom-left).  Box helpers take the
box's bottom-left corner; text helpers take the top of the text block and
return the y below the last drawn line, so layout code can keep a top-down
cursor.
"""

from __future__ import annotations

import logging
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from ..report_theme import REPORT_COLORS

LOGGER = logging.getLogger(__name__)

FONT = "Helvetica"
FONT_B = "Helvetica-Bold"
ELLIPSIS = "…"

TEXT_CLR = REPORT_COLORS["black"]
LINE_CLR = REPORT_COLORS["border"]


def hex_color(c: str) -> colors.Color:
    return colors.HexColor(c)


def default_leading(size: float) -> float:
    return size * 1.2


# ---------------------------------------------------------------------------
# Boxes and lines
# ---------------------------------------------------------------------------


def draw_box(
    c: Canvas,
    x: float,
    y: float,
    w: float,
    h: float,
    *,
    fill: str | None = None,
    stroke: str | None = LINE_CLR,
    radius: float = 0.0,
    line_width: float = 0.5,
) -> None:
    """Filled and/or stroked rectangle with bottom-left corner at (x, y)."""
    if fill is None and stroke is None:
        return
    c.saveState()
    c.setLineWidth(line_width)
    if fill is not None:
        c.setFillColor(hex_color(fill))
    if stroke is not None:
        c.setStrokeColor(hex_color(stroke))
    do_fill = 1 if fill is not None else 0
    do_stroke = 1 if stroke is not None else 0
    if radius > 0:
        c.roundRect(x, y, w, h, radius, stroke=do_stroke, fill=do_fill)
    else:
        c.rect(x, y, w, h, stroke=do_stroke, fill=do_fill)
    c.restoreState()


def draw_line(
    c: Canvas,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    *,
    color: str = LINE_CLR,
    line_width: float = 0.5,
) -> None:
    c.saveState()
    c.setLineWidth(line_width)
    c.setStrokeColor(hex_color(color))
    c.line(x1, y1, x2, y2)
    c.restoreState()


def draw_dot(c: Canvas, cx: float, cy: float, r: float, color: str) -> None:
    c.saveState()
    c.setFillColor(hex_color(color))
    c.circle(cx, cy, r, stroke=0, fill=1)
    c.restoreState()


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def wrap_lines(text: str, width: float, *, font: str = FONT, size: float = 6) -> list[str]:
    """Split *text* into lines that fit *width* using real font metrics."""
    if not text:
        return []
    lines: list[str] = []
    for paragraph in text.split("\n"):
        lines.extend(simpleSplit(paragraph, font, size, max(width, 1.0)) or [""])
    return lines


def measure_text_height(
    text: str,
    width: float,
    *,
    font: str = FONT,
    size: float = 6,
    leading: float | None = None,
) -> float:
    """Return the total height consumed by *text* wrapped at *width*."""
    if leading is None:
        leading = default_leading(size)
    return len(wrap_lines(text, width, font=font, size=size)) * leading


def fit_with_ellipsis(text: str, width: float, *, font: str, size: float) -> str:
    """Trim *text* until it plus an ellipsis fits *width*."""
    if stringWidth(text, font, size) <= width:
        return text
    trimmed = text
    while trimmed and stringWidth(trimmed + ELLIPSIS, font, size) > width:
        trimmed = trimmed[:-1]
    return trimmed.rstrip() + ELLIPSIS if trimmed else ELLIPSIS


def draw_text(
    c: Canvas,
    x: float,
    y_top: float,
    w: float,
    text: str,
    *,
    font: str = FONT,
    size: float = 6,
    color: str = TEXT_CLR,
    align: str = "left",
    leading: float | None = None,
    max_lines: int | None = None,
    max_height: float | None = None,
) -> float:
    """Draw wrapped text top-down.  Returns the y after the last line.

    ``max_lines`` / ``max_height`` cap the output; the last kept line then
    ends with an ellipsis.
    """
    if leading is None:
        leading = default_leading(size)
    lines = wrap_lines(text, w, font=font, size=size)
    if not lines:
        return y_top
    limit = len(lines)
    if max_lines is not None:
        limit = min(limit, max(1, max_lines))
    if max_height is not None:
        limit = min(limit, max(1, int(max_height // leading)))
    if limit < len(lines):
        lines = lines[:limit]
        lines[-1] = fit_with_ellipsis(lines[-1] + ELLIPSIS, w, font=font, size=size)
    c.saveState()
    c.setFillColor(hex_color(color))
    c.setFont(font, size)
    y = y_top
    for line in lines:
        baseline = y - size
        if align == "center":
            c.drawCentredString(x + w / 2, baseline, line)
        elif align == "right":
            c.drawRightString(x + w, baseline, line)
        else:
            c.drawString(x, baseline, line)
        y -= leading
    c.restoreState()
    return y


def draw_single_line(
    c: Canvas,
    x: float,
    y_top: float,
    w: float,
    text: str,
    *,
    font: str = FONT,
    size: float = 6,
    color: str = TEXT_CLR,
    align: str = "left",
) -> None:
    """One line of text, ellipsized to *w*."""
    if not text:
        return
    draw_text(
        c,
        x,
        y_top,
        w,
        fit_with_ellipsis(text.replace("\n", " "), w, font=font, size=size),
        font=font,
        size=size,
        color=color,
        align=align,
        max_lines=1,
    )


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def fit_rect_preserve_aspect(
    src_w: float,
    src_h: float,
    box_x: float,
    box_y: float,
    box_w: float,
    box_h: float,
) -> tuple[float, float, float, float]:
    """Return (x, y, w, h) fitted inside box while preserving src aspect."""
    if src_w <= 0 or src_h <= 0:
        return box_x, box_y, box_w, box_h
    src_ratio = src_w / src_h
    box_ratio = box_w / box_h if box_h else src_ratio
    if box_ratio > src_ratio:
        h = box_h
        w = h * src_ratio
        x = box_x + (box_w - w) / 2
        y = box_y
    else:
        w = box_w
        h = w / src_ratio
        x = box_x
        y = box_y + (box_h - h) / 2
    return x, y, w, h


def draw_image(
    c: Canvas,
    data: bytes | None,
    x: float,
    y: float,
    w: float,
    h: float,
    *,
    clip_radius: float | None = None,
) -> bool:
    """Fit image *data* into the box at (x, y, w, h), centered.

    With ``clip_radius`` the image is clipped to a rounded box.  Missing or
    undecodable data leaves the box blank; returns whether anything was drawn.
    """
    if not data:
        return False
    c.saveState()
    try:
        reader = ImageReader(BytesIO(data))
        src_w, src_h = reader.getSize()
        dx, dy, dw, dh = fit_rect_preserve_aspect(src_w, src_h, x, y, w, h)
        if clip_radius is not None:
            path = c.beginPath()
            path.roundRect(x, y, w, h, clip_radius)
            c.clipPath(path, stroke=0, fill=0)
        c.drawImage(reader, dx, dy, dw, dh, mask="auto")
    except Exception as exc:
        # Image codecs raise a wide range of types for corrupt payloads.
        LOGGER.warning("Skipping undecodable image (%d bytes): %s", len(data), exc)
        return False
    finally:
        c.restoreState()
    return True
