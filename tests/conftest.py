from __future__ import annotations

import io
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from builders import make_bundle, write_record_tree


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract all text from a PDF using pypdf."""
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(pdf_bytes))
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def pdf_page_count(pdf_bytes: bytes) -> int:
    from pypdf import PdfReader

    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)


def wait_until(predicate: Callable[[], bool], timeout_s: float = 2.0, step_s: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step_s)
    return False


@pytest.fixture
def bundle() -> dict:
    return make_bundle()


@pytest.fixture
def record_dir(tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    write_record_tree(data_dir, make_bundle())
    return data_dir


@pytest.fixture
def config_file(tmp_path: Path, record_dir: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "storage:\n"
        f"  data_dir: {record_dir.name}\n"
        "  output_dir: out\n"
        "prefetch:\n"
        "  batch_size: 2\n"
        "  timeout_s: 1.5\n",
        encoding="utf-8",
    )
    return path
