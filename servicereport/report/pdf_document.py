"""PDF document assembly helpers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from reportlab.lib import colors
from reportlab.pdfgen.canvas import Canvas

from ..report_theme import REPORT_COLORS

FOOTER_FONT = "Helvetica"
FOOTER_SIZE = 6
FOOTER_Y = 10


def _default_page_label(page: int, total: int) -> str:
    return f"{page} / {total}"


class NumberedCanvas(Canvas):
    """Canvas that buffers finished pages so each footer can show the total.

    ``showPage`` only snapshots the page; footers are stamped and pages
    emitted on ``save``.
    """

    def __init__(
        self,
        *args: Any,
        footer_label: str = "",
        footer_margin: float = 14.4,
        page_label: Callable[[int, int], str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict[str, Any]] = []
        self._footer_label = footer_label
        self._footer_margin = footer_margin
        self._page_label = page_label or _default_page_label

    def showPage(self) -> None:  # noqa: N802 - ReportLab API name
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        total = len(self._saved_page_states)
        for page, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self._draw_footer(page, total)
            super().showPage()
        super().save()

    @property
    def buffered_page_count(self) -> int:
        return len(self._saved_page_states)

    def _draw_footer(self, page: int, total: int) -> None:
        width = self._pagesize[0]
        margin = self._footer_margin
        self.saveState()
        self.setFont(FOOTER_FONT, FOOTER_SIZE)
        self.setFillColor(colors.HexColor(REPORT_COLORS["text_muted"]))
        if self._footer_label:
            self.drawString(margin, FOOTER_Y, self._footer_label)
        self.drawRightString(width - margin, FOOTER_Y, self._page_label(page, total))
        self.restoreState()

