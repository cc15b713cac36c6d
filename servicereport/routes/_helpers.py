"""Shared route helpers."""

from __future__ import annotations

import re

from fastapi import HTTPException

from ..errors import INVALID_ARGUMENT, NOT_FOUND, ReportInputError

_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")

_STATUS_BY_CODE = {
    INVALID_ARGUMENT: 400,
    NOT_FOUND: 404,
}


def safe_filename(name: str) -> str:
    """Sanitize *name* for use in Content-Disposition headers and file lookups."""
    return _SAFE_FILENAME_RE.sub("_", name)[:200] or "download"


def input_error_to_http(exc: ReportInputError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_CODE.get(exc.code, 400), detail=exc.to_dict())
