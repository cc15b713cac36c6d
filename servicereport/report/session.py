"""Layout session: the single owner of the vertical cursor for one build.

Every composer receives the session, reads ``session.y`` (the top of the
free area on the current page) and advances it.  A block that does not fit
triggers ``new_page``, which closes the page, redraws the page header and
resets the cursor below it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen.canvas import Canvas

from ..assets import ImageCache
from ..config import ReportConfig
from ..models import ReportInputs
from ..report_i18n import tr as _tr

PAGE_SIZE = LETTER
PAGE_W, PAGE_H = PAGE_SIZE
MARGIN = 14.4
BOTTOM_RESERVE = 25.0
CONTENT_W = PAGE_W - 2 * MARGIN

HeaderRenderer = Callable[["LayoutSession"], float]


@dataclass
class LayoutSession:
    canvas: Canvas
    inputs: ReportInputs
    images: ImageCache
    options: ReportConfig = field(default_factory=ReportConfig)
    header: HeaderRenderer | None = None
    y: float = PAGE_H - MARGIN
    page_count: int = 1

    # -- geometry -------------------------------------------------------------

    @property
    def left(self) -> float:
        return MARGIN

    @property
    def width(self) -> float:
        return CONTENT_W

    @property
    def bottom_limit(self) -> float:
        return MARGIN + BOTTOM_RESERVE

    @property
    def lang(self) -> str:
        return self.options.language

    def tr(self, key: str, **kwargs: Any) -> str:
        return _tr(self.lang, key, **kwargs)

    # -- cursor discipline ----------------------------------------------------

    def fits(self, height: float) -> bool:
        return self.y - height >= self.bottom_limit

    def start_page(self) -> float:
        """Draw the page header on the current page and park the cursor below it."""
        self.y = self.header(self) if self.header is not None else PAGE_H - MARGIN
        return self.y

    def new_page(self) -> float:
        self.canvas.showPage()
        self.page_count += 1
        return self.start_page()

    def ensure_room(self, height: float) -> bool:
        """Break to a new page unless *height* fits.  Returns True on a break."""
        if self.fits(height):
            return False
        self.new_page()
        return True

    def advance(self, dy: float) -> float:
        self.y -= dy
        return self.y
