from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from builders import make_bundle, make_entry
from conftest import extract_pdf_text

from servicereport.report_cli import main


def _write_bundle(tmp_path: Path, bundle: dict) -> Path:
    path = tmp_path / "march.json"
    path.write_text(json.dumps(bundle), encoding="utf-8")
    return path


def test_renders_next_to_input(tmp_path: Path, capsys) -> None:
    src = _write_bundle(tmp_path, make_bundle())
    with patch("sys.argv", ["servicereport-render", str(src)]):
        assert main() == 0
    out_pdf = tmp_path / "march_report.pdf"
    assert out_pdf.read_bytes().startswith(b"%PDF")
    assert f"wrote report: {out_pdf}" in capsys.readouterr().out


def test_explicit_output_and_language(tmp_path: Path) -> None:
    src = _write_bundle(tmp_path, make_bundle())
    out_pdf = tmp_path / "nested" / "report.pdf"
    argv = ["servicereport-render", str(src), "--output", str(out_pdf), "--lang", "en"]
    with patch("sys.argv", argv):
        assert main() == 0
    assert "SERVICE REPORT" in extract_pdf_text(out_pdf.read_bytes())


def test_offline_skips_remote_photos(tmp_path: Path) -> None:
    bundle = make_bundle(
        entries=[
            make_entry("inst-ext_0", "EXT-01", {"a1": "OK"}, photoUrls=["https://x/p.jpg"])
        ]
    )
    src = _write_bundle(tmp_path, bundle)
    with (
        patch("servicereport.assets.fetch_url") as fetch_url,
        patch("sys.argv", ["servicereport-render", str(src), "--offline"]),
    ):
        assert main() == 0
    fetch_url.assert_not_called()


@pytest.mark.parametrize(
    ("content", "message"),
    [
        (None, "input file not found"),
        ("{broken", "invalid JSON"),
        ("[1, 2, 3]", "must be a JSON object"),
        (json.dumps({"report": {}}), "missing the 'policy' object"),
    ],
)
def test_bad_input_reports_error(tmp_path: Path, capsys, content: str | None, message: str) -> None:
    src = tmp_path / "bundle.json"
    if content is not None:
        src.write_text(content, encoding="utf-8")
    with patch("sys.argv", ["servicereport-render", str(src)]):
        assert main() == 1
    err = capsys.readouterr().err
    assert err.startswith("Error:")
    assert message in err
