"""Local persistence for generated documents.

Layout::

    <output_dir>/
        <policyId>/
            <dateStr>_<epoch-ms>.pdf
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"
_UNSAFE_SEGMENT_RE = re.compile(r"[^a-zA-Z0-9._-]")


def safe_segment(name: str) -> str:
    """Make *name* usable as a single path segment."""
    cleaned = _UNSAFE_SEGMENT_RE.sub("_", name)[:200].strip(".")
    return cleaned or "unnamed"


@dataclass(slots=True, frozen=True)
class StoredDocument:
    path: Path
    download_url: str
    size_bytes: int


class PdfStorage:
    """Writes finished PDFs below *output_dir* and resolves them for download."""

    def __init__(
        self,
        output_dir: Path,
        *,
        public_base_url: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._output_dir = Path(output_dir)
        self._public_base_url = public_base_url.rstrip("/")
        self._clock = clock

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def relative_path(self, policy_id: str, date_str: str) -> Path:
        epoch_ms = int(self._clock() * 1000)
        return Path(safe_segment(policy_id)) / f"{safe_segment(date_str)}_{epoch_ms}{PDF_SUFFIX}"

    def download_url(self, relative: Path) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{relative.as_posix()}"
        return (self._output_dir / relative).resolve().as_uri()

    def save(self, pdf: bytes, *, policy_id: str, date_str: str) -> StoredDocument:
        """Atomically write *pdf*; a crash mid-write never leaves a truncated file."""
        relative = self.relative_path(policy_id, date_str)
        dest = self._output_dir / relative
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(dest.parent), prefix=".pdf_", suffix=".tmp")
        try:
            try:
                os.write(fd, pdf)
                os.fsync(fd)
            finally:
                os.close(fd)
            os.replace(tmp, str(dest))
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise
        stored = StoredDocument(
            path=dest, download_url=self.download_url(relative), size_bytes=len(pdf)
        )
        LOGGER.info("PDF stored at %s (%d bytes)", dest, stored.size_bytes)
        return stored

    def resolve(self, policy_id: str, file_name: str) -> Path | None:
        """Path of a stored document, or ``None`` when it does not exist."""
        if not file_name.endswith(PDF_SUFFIX):
            return None
        path = self._output_dir / safe_segment(policy_id) / safe_segment(file_name)
        return path if path.is_file() else None
