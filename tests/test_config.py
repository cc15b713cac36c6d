from __future__ import annotations

from pathlib import Path

import pytest

from servicereport.config import (
    CONFIG_ENV_VAR,
    PrefetchConfig,
    ReportConfig,
    default_config_path,
    load_config,
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg.server.port == 8080
    assert cfg.prefetch.batch_size == 6
    assert cfg.prefetch.timeout_s == 20.0
    assert cfg.report.language == "es"
    assert cfg.report.reference_standard == "NFPA"
    assert cfg.storage.data_dir == tmp_path.resolve() / "data"
    assert cfg.storage.output_dir == tmp_path.resolve() / "data" / "generated_pdfs"


def test_partial_override_is_deep_merged(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "server:\n  port: 9000\n"
        "storage:\n  output_dir: /srv/pdfs\n  public_base_url: https://files.example.com/\n"
        "report:\n  language: en\n  title: PUMP SERVICE\n",
    )
    cfg = load_config(path)
    assert cfg.server.port == 9000
    assert cfg.server.host == "0.0.0.0"
    assert cfg.storage.output_dir == Path("/srv/pdfs")
    assert cfg.storage.data_dir == tmp_path.resolve() / "data"
    assert cfg.storage.public_base_url == "https://files.example.com"
    assert cfg.report.language == "en"
    assert cfg.report.title == "PUMP SERVICE"
    assert cfg.config_path == path.resolve()


def test_invalid_port_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="server.port"):
        load_config(_write(tmp_path, "server:\n  port: 70000\n"))


def test_non_mapping_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="YAML object"):
        load_config(_write(tmp_path, "- just\n- a list\n"))


def test_env_var_points_at_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, "prefetch:\n  batch_size: 3\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert default_config_path() == path
    assert load_config().prefetch.batch_size == 3


class TestClamping:
    def test_prefetch_values_clamped(self, caplog) -> None:
        cfg = PrefetchConfig(batch_size=0, timeout_s=-1, max_workers=0)
        assert cfg.batch_size == 1
        assert cfg.timeout_s == 20.0
        assert cfg.max_workers == 1
        assert "clamped" in caplog.text

    def test_workers_raised_to_batch_size(self) -> None:
        assert PrefetchConfig(batch_size=8, max_workers=2).max_workers == 8

    def test_unsupported_language_falls_back(self, caplog) -> None:
        assert ReportConfig(language="fr").language == "es"
        assert ReportConfig(language=" EN ").language == "en"
        assert "not supported" in caplog.text
