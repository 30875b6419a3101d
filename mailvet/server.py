"""Application assembly, logging setup and the command that runs the server."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import uvicorn
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from .config import DEFAULT_CONFIG_FILE, AppConfig, load_config
from .models import ConfigurationError, ValidationError
from .pipeline import ValidationPipeline
from .routes import SERVICE_VERSION, AppState, build_routes

logger = logging.getLogger(__name__)

DEFAULT_DISPOSABLE_LIST = "list.txt"

_LEVEL_ALIASES = {"TRACE": "DEBUG", "WARN": "WARNING"}


class _JsonFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "target": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _level(name: str) -> int:
    upper = name.strip().upper()
    upper = _LEVEL_ALIASES.get(upper, upper)
    level = logging.getLevelName(upper)
    if not isinstance(level, int):
        raise ConfigurationError(f"unknown log level: {name!r}")
    return level


def init_logging(config: AppConfig) -> None:
    """Configure the root logger: JSON lines or human-readable text."""
    handler = logging.StreamHandler(sys.stderr)
    if config.observability.json_logs:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root = logging.getLogger()
    level = _level(config.observability.log_level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def create_app(state: AppState) -> Starlette:
    """The routed application with CORS and compression applied."""
    app = build_routes(state)
    app.add_middleware(GZipMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    return app


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="E-mail domain validation API server")
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_FILE, help="optional TOML configuration file"
    )
    parser.add_argument(
        "--disposable-list",
        default=DEFAULT_DISPOSABLE_LIST,
        help="file with one disposable domain per line",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Load configuration, build the pipeline and serve until interrupted."""
    args = _parse_args(argv)
    try:
        config = load_config(args.config)
        init_logging(config)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 1

    logger.info("Starting Email Domain Validation API v%s", SERVICE_VERSION)

    try:
        disposable_list = Path(args.disposable_list).read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read disposable domain list: %s", exc)
        return 1

    try:
        pipeline = ValidationPipeline(
            config.validation.to_validation_config(), disposable_list
        )
    except ValidationError as exc:
        logger.error("Failed to initialize validation pipeline: %s", exc)
        return 1

    stats = pipeline.get_stats()
    logger.info(
        "Pipeline initialized - %d disposable domains, %d MB memory, %d providers",
        stats.disposable_domains_count,
        stats.disposable_filter_memory_bytes // 1024 // 1024,
        stats.typo_providers_count,
    )

    app = create_app(AppState(validation_pipeline=pipeline, config=config))
    logger.info("Server listening on %s:%d", config.server.host, config.server.port)
    shutdown_timeout = (
        config.server.shutdown_timeout_secs if config.server.graceful_shutdown else 0
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        timeout_graceful_shutdown=shutdown_timeout,
        log_config=None,
    )
    logger.info("Server shut down gracefully")
    return 0


if __name__ == "__main__":
    sys.exit(main())