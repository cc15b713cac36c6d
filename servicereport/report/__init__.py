"""servicereport.report – the paginated PDF layout engine.

Only rendering code lives here; record loading, image prefetching and
persistence are handled by the caller.
"""

from .pdf_builder import RenderOutcome, build_service_report_pdf, render_service_report

__all__ = [
    "RenderOutcome",
    "build_service_report_pdf",
    "render_service_report",
]
