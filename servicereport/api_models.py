"""Pydantic request/response models for the service report HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class GenerateReportRequest(BaseModel):
    reportId: str | None = Field(default=None, max_length=200)
    policyId: str | None = Field(default=None, max_length=200)
    dateStr: str | None = Field(default=None, max_length=32)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class GenerateReportResponse(BaseModel):
    success: bool
    downloadUrl: str
    sizeBytes: int


class HealthResponse(BaseModel):
    status: str
    version: str
