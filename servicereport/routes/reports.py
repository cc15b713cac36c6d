"""Report generation and download endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from ..api_models import GenerateReportRequest, GenerateReportResponse
from ..errors import NOT_FOUND, ReportBuildError, ReportInputError
from ..service import GenerationRequest
from ._helpers import input_error_to_http, safe_filename

if TYPE_CHECKING:
    from ..app import RuntimeState

LOGGER = logging.getLogger(__name__)


def create_report_routes(state: RuntimeState) -> APIRouter:
    router = APIRouter()

    @router.post("/api/reports/pdf", response_model=GenerateReportResponse)
    async def generate_report_pdf(req: GenerateReportRequest) -> GenerateReportResponse:
        request = GenerationRequest(
            report_id=req.reportId or None,
            policy_id=req.policyId or None,
            date_str=req.dateStr or None,
        )
        try:
            result = await asyncio.to_thread(state.generate, request)
        except ReportInputError as exc:
            raise input_error_to_http(exc) from exc
        except (ReportBuildError, OSError) as exc:
            LOGGER.warning("PDF generation failed for %s", request, exc_info=True)
            raise HTTPException(
                status_code=500,
                detail={"code": "internal", "message": "PDF generation failed"},
            ) from exc
        return GenerateReportResponse(
            success=result.success,
            downloadUrl=result.download_url,
            sizeBytes=result.size_bytes,
        )

    @router.get("/api/reports/pdf/{policy_id}/{file_name}")
    async def download_report_pdf(policy_id: str, file_name: str) -> FileResponse:
        path = state.storage.resolve(policy_id, file_name)
        if path is None:
            raise HTTPException(
                status_code=404,
                detail={"code": NOT_FOUND, "message": "Document not found."},
            )
        return FileResponse(path, media_type="application/pdf", filename=safe_filename(file_name))

    return router
