from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .report_i18n import SUPPORTED_LANGS, normalize_lang

PACKAGE_DIR = Path(__file__).resolve().parent
"""Root of the ``servicereport`` package tree."""

REPO_DIR = PACKAGE_DIR.parent
CONFIG_ENV_VAR = "SERVICEREPORT_CONFIG"
LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 8080},
    "storage": {
        "data_dir": "data",
        "output_dir": "data/generated_pdfs",
        "public_base_url": "",
    },
    "prefetch": {
        "batch_size": 6,
        "timeout_s": 20.0,
        "max_workers": 6,
    },
    "report": {
        "language": "es",
        "title": "",
        "subtitle": "",
        "reference_standard": "NFPA",
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_config_path(path_text: str, config_path: Path) -> Path:
    path = Path(path_text)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path


@dataclass(slots=True)
class ServerConfig:
    host: str
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ValueError(f"ServerConfig.port must be 1-65535, got {self.port!r}")


@dataclass(slots=True)
class StorageConfig:
    data_dir: Path
    output_dir: Path
    public_base_url: str = ""


@dataclass(slots=True)
class PrefetchConfig:
    batch_size: int = 6
    timeout_s: float = 20.0
    max_workers: int = 6

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            LOGGER.warning("prefetch.batch_size=%s is below minimum 1; clamped", self.batch_size)
            object.__setattr__(self, "batch_size", 1)
        if self.timeout_s <= 0:
            LOGGER.warning(
                "prefetch.timeout_s=%s must be positive; reset to 20", self.timeout_s
            )
            object.__setattr__(self, "timeout_s", 20.0)
        if self.max_workers < self.batch_size:
            LOGGER.warning(
                "prefetch.max_workers=%s is below batch_size %s; raised to match",
                self.max_workers,
                self.batch_size,
            )
            object.__setattr__(self, "max_workers", self.batch_size)


@dataclass(slots=True)
class ReportConfig:
    language: str = "es"
    title: str = ""
    subtitle: str = ""
    reference_standard: str = "NFPA"

    def __post_init__(self) -> None:
        lang = str(self.language or "").strip().lower()
        if lang not in SUPPORTED_LANGS:
            LOGGER.warning(
                "report.language=%r is not supported; using %r",
                self.language,
                normalize_lang(lang),
            )
        object.__setattr__(self, "language", normalize_lang(lang))


@dataclass(slots=True)
class AppConfig:
    server: ServerConfig
    storage: StorageConfig
    prefetch: PrefetchConfig
    report: ReportConfig
    config_path: Path


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML object at the top level.")
        return data


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)
    return REPO_DIR / "config.yaml"


def load_config(config_path: Path | None = None) -> AppConfig:
    path = (config_path or default_config_path()).resolve()
    override = _read_config_file(path)
    merged = _deep_merge(deepcopy(DEFAULT_CONFIG), override)

    server_port = int(merged["server"]["port"])
    if not 1 <= server_port <= 65535:
        raise ValueError(f"server.port must be 1-65535, got {server_port}")

    storage_cfg = merged["storage"]
    prefetch_cfg = merged["prefetch"]
    report_cfg = merged["report"]
    app_config = AppConfig(
        server=ServerConfig(
            host=str(merged["server"]["host"]),
            port=server_port,
        ),
        storage=StorageConfig(
            data_dir=_resolve_config_path(str(storage_cfg["data_dir"]), path),
            output_dir=_resolve_config_path(str(storage_cfg["output_dir"]), path),
            public_base_url=str(storage_cfg.get("public_base_url") or "").rstrip("/"),
        ),
        prefetch=PrefetchConfig(
            batch_size=int(prefetch_cfg["batch_size"]),
            timeout_s=float(prefetch_cfg["timeout_s"]),
            max_workers=int(prefetch_cfg["max_workers"]),
        ),  # NOTE: PrefetchConfig.__post_init__ clamps out-of-range values
        report=ReportConfig(
            language=str(report_cfg.get("language") or "es"),
            title=str(report_cfg.get("title") or ""),
            subtitle=str(report_cfg.get("subtitle") or ""),
            reference_standard=str(report_cfg.get("reference_standard") or "NFPA"),
        ),
        config_path=path,
    )
    LOGGER.info(
        "Loaded config=%s data_dir=%s output_dir=%s",
        app_config.config_path,
        app_config.storage.data_dir,
        app_config.storage.output_dir,
    )
    return app_config
