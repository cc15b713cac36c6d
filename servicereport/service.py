"""End-to-end report generation: load, prefetch, build, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .assets import Fetcher, collect_image_refs, prefetch_images
from .config import AppConfig, PrefetchConfig, ReportConfig
from .errors import INVALID_ARGUMENT, ReportInputError
from .record_store import JsonRecordStore
from .report import build_service_report_pdf
from .storage import PdfStorage
from .worker_pool import WorkerPool

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class GenerationRequest:
    report_id: str | None = None
    policy_id: str | None = None
    date_str: str | None = None

    def validate(self) -> None:
        """Raise ``invalid-argument`` unless a report id or policy+period is given."""
        if self.report_id:
            return
        if self.policy_id and self.date_str:
            return
        raise ReportInputError(INVALID_ARGUMENT, "Provide reportId or (policyId + dateStr).")


@dataclass(slots=True, frozen=True)
class GenerationResult:
    success: bool
    download_url: str
    size_bytes: int


@dataclass(slots=True)
class GenerationSettings:
    prefetch: PrefetchConfig = field(default_factory=PrefetchConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    @classmethod
    def from_config(cls, config: AppConfig) -> GenerationSettings:
        return cls(prefetch=config.prefetch, report=config.report)


def generate_service_report(
    request: GenerationRequest,
    *,
    store: JsonRecordStore,
    storage: PdfStorage,
    settings: GenerationSettings | None = None,
    fetcher: Fetcher | None = None,
) -> GenerationResult:
    """Generate, persist and describe the PDF for one service report.

    Input problems raise :class:`ReportInputError` before any layout work;
    drawing failures raise :class:`ReportBuildError`.
    """
    settings = settings or GenerationSettings()
    request.validate()
    inputs = store.load_inputs(
        report_id=request.report_id,
        policy_id=request.policy_id,
        date_str=request.date_str,
    )
    LOGGER.info(
        "Generating report %s (policy=%s period=%s, %d entries)",
        inputs.report.id,
        inputs.report.policy_id,
        inputs.report.date_str,
        len(inputs.report.entries),
    )

    prefetch = settings.prefetch
    with WorkerPool(
        max_workers=prefetch.max_workers, thread_name_prefix="servicereport-prefetch"
    ) as pool:
        images = prefetch_images(
            collect_image_refs(inputs),
            batch_size=prefetch.batch_size,
            timeout_s=prefetch.timeout_s,
            fetcher=fetcher,
            pool=pool,
        )

    pdf = build_service_report_pdf(inputs, images=images, options=settings.report)
    stored = storage.save(pdf, policy_id=inputs.report.policy_id, date_str=inputs.report.date_str)
    return GenerationResult(
        success=True, download_url=stored.download_url, size_bytes=stored.size_bytes
    )
