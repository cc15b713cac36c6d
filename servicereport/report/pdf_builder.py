"""Service report PDF builder.

Two strictly ordered phases: images are prefetched by the caller into an
:class:`~servicereport.assets.ImageCache`, then the whole document is laid
out single-threaded on one canvas.  Any drawing failure aborts the build;
no partial document is ever returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from reportlab.pdfgen.canvas import Canvas

from ..assets import ImageCache
from ..config import ReportConfig
from ..errors import ReportBuildError
from ..models import ReportInputs
from ..report_i18n import tr as _tr
from .closing import StatusTally, draw_closing_sections
from .header import draw_page_header
from .pdf_document import NumberedCanvas
from .sections import DeviceSection, render_device_sections
from .session import MARGIN, PAGE_SIZE, LayoutSession

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderOutcome:
    sections: list[DeviceSection]
    tally: StatusTally
    page_count: int


def _warn_unknown_technicians(inputs: ReportInputs) -> None:
    known = {tech.id for tech in inputs.technicians}
    assigned = list(inputs.report.assigned_technician_ids)
    for ids in inputs.report.section_assignments.values():
        assigned.extend(ids)
    for tech_id in dict.fromkeys(assigned):
        if tech_id not in known:
            LOGGER.warning("Technician %s is not in the technician list", tech_id)


def render_service_report(
    canvas: Canvas,
    inputs: ReportInputs,
    images: ImageCache,
    *,
    options: ReportConfig | None = None,
) -> RenderOutcome:
    """Lay the report out on *canvas*.  The last page is left open."""
    session = LayoutSession(
        canvas=canvas,
        inputs=inputs,
        images=images,
        options=options or ReportConfig(),
        header=draw_page_header,
    )
    session.start_page()
    sections = render_device_sections(session)
    tally = draw_closing_sections(session)
    return RenderOutcome(sections=sections, tally=tally, page_count=session.page_count)


def build_service_report_pdf(
    inputs: ReportInputs,
    *,
    images: ImageCache | None = None,
    options: ReportConfig | None = None,
) -> bytes:
    """Build the complete service report and return the PDF bytes.

    *images* must already hold every reference the report draws; a missing
    or ``None`` entry leaves blank space.  Raises :class:`ReportBuildError`
    when any drawing step fails.
    """
    options = options or ReportConfig()
    lang = options.language
    _warn_unknown_technicians(inputs)

    buf = BytesIO()
    try:
        c = NumberedCanvas(
            buf,
            pagesize=PAGE_SIZE,
            pageCompression=0,
            footer_label=_tr(lang, "FOOTER_TITLE"),
            footer_margin=MARGIN,
            page_label=lambda page, total: _tr(lang, "PAGE_LABEL", page=page, total=total),
        )
        c.setTitle(_tr(lang, "DOCUMENT_TITLE", client=inputs.client.name))
        c.setAuthor(inputs.company.name)
        outcome = render_service_report(
            c, inputs, images if images is not None else ImageCache.empty(), options=options
        )
        c.showPage()
        c.save()
    except Exception as exc:
        LOGGER.error("PDF generation failed for report %s.", inputs.report.id, exc_info=True)
        raise ReportBuildError(f"PDF generation failed for report {inputs.report.id}") from exc

    pdf = buf.getvalue()
    LOGGER.info(
        "PDF generated for report %s: %d bytes, %d pages, %d device sections",
        inputs.report.id,
        len(pdf),
        outcome.page_count,
        len(outcome.sections),
    )
    return pdf
