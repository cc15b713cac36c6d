"""Exception types shared by the record store, builder and HTTP layer."""

from __future__ import annotations

INVALID_ARGUMENT = "invalid-argument"
NOT_FOUND = "not-found"


class ReportInputError(Exception):
    """Caller-facing input problem, raised before any layout work starts.

    ``code`` is a machine-readable reason (``invalid-argument`` or
    ``not-found``); retrying the same request will not help.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ReportBuildError(RuntimeError):
    """Drawing failed; the whole document build was aborted."""
