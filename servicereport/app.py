"""HTTP application: runtime wiring for report generation."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from . import __version__
from .assets import Fetcher
from .config import AppConfig, load_config
from .record_store import JsonRecordStore
from .routes import create_router
from .service import (
    GenerationRequest,
    GenerationResult,
    GenerationSettings,
    generate_service_report,
)
from .storage import PdfStorage

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RuntimeState:
    config: AppConfig
    store: JsonRecordStore
    storage: PdfStorage
    settings: GenerationSettings
    fetcher: Fetcher | None = None

    def generate(self, request: GenerationRequest) -> GenerationResult:
        return generate_service_report(
            request,
            store=self.store,
            storage=self.storage,
            settings=self.settings,
            fetcher=self.fetcher,
        )


def build_runtime(config: AppConfig, *, fetcher: Fetcher | None = None) -> RuntimeState:
    return RuntimeState(
        config=config,
        store=JsonRecordStore(config.storage.data_dir),
        storage=PdfStorage(
            config.storage.output_dir, public_base_url=config.storage.public_base_url
        ),
        settings=GenerationSettings.from_config(config),
        fetcher=fetcher,
    )


def create_app(config_path: Path | None = None, *, fetcher: Fetcher | None = None) -> FastAPI:
    config = load_config(config_path)
    runtime = build_runtime(config, fetcher=fetcher)
    app = FastAPI(title="Service Report", version=__version__)
    app.state.runtime = runtime
    app.include_router(create_router(runtime))
    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Run the service report server")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML")
    args = parser.parse_args()

    runtime_app = create_app(config_path=args.config)
    runtime: RuntimeState = runtime_app.state.runtime
    uvicorn.run(
        runtime_app,
        host=runtime.config.server.host,
        port=runtime.config.server.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
