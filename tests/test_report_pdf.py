"""End-to-end document builds."""

from __future__ import annotations

import io
import logging
from unittest.mock import patch

import pytest
from builders import (
    TINY_PNG,
    TINY_PNG_DATA_URI,
    make_activities,
    make_bundle,
    make_canvas,
    make_definition,
    make_entry,
    make_inputs,
)
from conftest import extract_pdf_text, pdf_page_count

from servicereport.assets import ImageCache
from servicereport.config import ReportConfig
from servicereport.errors import ReportBuildError
from servicereport.report import build_service_report_pdf, render_service_report


def _images() -> ImageCache:
    return ImageCache({TINY_PNG_DATA_URI: TINY_PNG})


def _long_bundle(entry_count: int = 60) -> dict:
    entries = [
        make_entry(f"inst-ext_{i}", f"EXT-{i:02d}", {"a1": "OK", "a2": "NOK", "a3": "NA"})
        for i in range(entry_count)
    ]
    return make_bundle(entries=entries)


class TestExtinguisherScenario:
    def test_pdf_bytes_and_text(self) -> None:
        pdf = build_service_report_pdf(make_inputs(), images=_images())
        assert pdf.startswith(b"%PDF")
        text = extract_pdf_text(pdf)
        assert "EXTINGUISHER" in text
        assert "Hotel Central" in text
        assert "NA" in text
        assert "NR" in text
        assert "HALLAZGOS GENERALES" in text
        assert "Página 1 / 1" in text

    def test_render_outcome(self) -> None:
        outcome = render_service_report(make_canvas(), make_inputs(), _images())
        assert [s.definition_id for s in outcome.sections] == ["def-ext"]
        assert [a.id for a in outcome.sections[0].activities] == ["a1", "a2", "a3"]
        tally = outcome.tally.as_dict()
        assert {k: tally[k] for k in ("OK", "NOK", "NA")} == {"OK": 3, "NOK": 1, "NA": 1}
        assert outcome.page_count == 1

    def test_document_metadata(self) -> None:
        from pypdf import PdfReader

        pdf = build_service_report_pdf(make_inputs(), images=_images())
        meta = PdfReader(io.BytesIO(pdf)).metadata
        assert meta.title == "Reporte Hotel Central"
        assert meta.author == "Fire Safety SA"

    def test_english_labels(self) -> None:
        pdf = build_service_report_pdf(
            make_inputs(), images=_images(), options=ReportConfig(language="en")
        )
        text = extract_pdf_text(pdf)
        assert "SERVICE REPORT" in text
        assert "GENERAL FINDINGS" in text
        assert "Page 1 / 1" in text


class TestMultiPage:
    def test_footer_carries_page_total(self) -> None:
        pdf = build_service_report_pdf(make_inputs(_long_bundle()), images=_images())
        pages = pdf_page_count(pdf)
        assert pages >= 3
        text = extract_pdf_text(pdf)
        assert f"Página 1 / {pages}" in text
        assert f"Página {pages} / {pages}" in text

    def test_page_count_matches_render(self) -> None:
        inputs = make_inputs(_long_bundle())
        outcome = render_service_report(make_canvas(), inputs, _images())
        pdf = build_service_report_pdf(inputs, images=_images())
        assert pdf_page_count(pdf) == outcome.page_count

    def test_mixed_grid_and_list_sections(self) -> None:
        bundle = make_bundle(
            devices=[
                make_definition(),
                make_definition(
                    "def-hose", "Hose cabinet", activities=make_activities(40), view_mode="list"
                ),
            ],
            policy_devices=[
                {"instanceId": "inst-ext", "definitionId": "def-ext"},
                {"instanceId": "inst-hose", "definitionId": "def-hose"},
            ],
            entries=[
                make_entry("inst-ext_0", "EXT-01", {"a1": "OK"}),
                make_entry("inst-hose_0", "HOSE-01", {f"a{i}": "OK" for i in range(1, 41)}),
                make_entry("inst-hose_1", "HOSE-02", {f"a{i}": "NR" for i in range(1, 41)}),
            ],
        )
        outcome = render_service_report(make_canvas(), make_inputs(bundle), _images())
        assert [s.definition_id for s in outcome.sections] == ["def-ext", "def-hose"]
        assert outcome.page_count >= 2
        assert outcome.tally.nr == 40


class TestDegradation:
    def test_missing_images_still_build(self) -> None:
        bundle = make_bundle(
            providerSignature="https://x/sig.png",
            entries=[
                make_entry("inst-ext_0", "EXT-01", {"a1": "OK"}, photoUrls=["https://x/p.jpg"])
            ],
        )
        images = ImageCache({"https://x/sig.png": None, "https://x/p.jpg": None})
        assert build_service_report_pdf(make_inputs(bundle), images=images).startswith(b"%PDF")

    def test_no_image_cache_at_all(self) -> None:
        assert build_service_report_pdf(make_inputs()).startswith(b"%PDF")

    def test_undecodable_image_is_blank(self, caplog) -> None:
        images = ImageCache({TINY_PNG_DATA_URI: b"definitely not an image"})
        with caplog.at_level(logging.WARNING, logger="servicereport.report.primitives"):
            pdf = build_service_report_pdf(make_inputs(), images=images)
        assert pdf.startswith(b"%PDF")
        assert "Skipping undecodable image" in caplog.text

    def test_no_sections_still_builds_closing(self) -> None:
        pdf = build_service_report_pdf(make_inputs(make_bundle(entries=[])))
        text = extract_pdf_text(pdf)
        assert "Resumen" in text
        assert "HALLAZGOS GENERALES" not in text

    def test_unknown_technician_warned_once(self, caplog) -> None:
        bundle = _long_bundle()
        bundle["report"]["assignedTechnicianIds"] = ["ghost"]
        bundle["report"]["sectionAssignments"] = {"def-ext": ["ghost"]}
        with caplog.at_level(logging.WARNING, logger="servicereport.report.pdf_builder"):
            build_service_report_pdf(make_inputs(bundle))
        assert caplog.text.count("Technician ghost is not in the technician list") == 1


class TestFailure:
    def test_draw_error_aborts_build(self, caplog) -> None:
        with (
            patch(
                "servicereport.report.grid_layout.draw_status_cell",
                side_effect=ValueError("bad cell"),
            ),
            caplog.at_level(logging.ERROR, logger="servicereport.report.pdf_builder"),
            pytest.raises(ReportBuildError) as exc_info,
        ):
            build_service_report_pdf(make_inputs())
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert "PDF generation failed for report rep-1" in caplog.text

    def test_success_logged(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="servicereport.report.pdf_builder"):
            build_service_report_pdf(make_inputs())
        assert "PDF generated for report rep-1" in caplog.text
