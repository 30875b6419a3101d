"""HTTP endpoints of the validation service and the router that binds them."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from .api import (
    ApiError,
    ApiErrorKind,
    convert_fast_validation_result,
    convert_validation_result,
    extract_domain_from_input,
)
from .config import AppConfig
from .models import ValidationError
from .pipeline import ValidationPipeline

logger = logging.getLogger(__name__)

API_VERSION = "v1"
MAX_DOMAIN_LENGTH = 253
DEFAULT_REQUEST_TIMEOUT = 30
SERVICE_VERSION = "0.1.0"

_READINESS_PROBE_DOMAIN = "test.com"


@dataclass
class AppState:
    """Shared state handed to every request handler."""

    validation_pipeline: ValidationPipeline
    config: AppConfig


def _state(request: Request) -> AppState:
    return request.app.state.app_state


def _system_time() -> dict[str, int]:
    """The current time as seconds and nanoseconds since the Unix epoch."""
    nanos = time.time_ns()
    return {
        "secs_since_epoch": nanos // 1_000_000_000,
        "nanos_since_epoch": nanos % 1_000_000_000,
    }


def _error_response(error: ApiError) -> JSONResponse:
    status, body = error.to_response()
    return JSONResponse(body.to_dict(), status_code=status)


def _query_domain(request: Request) -> str | None:
    return request.query_params.get("domain")


def _missing_domain() -> PlainTextResponse:
    return PlainTextResponse(
        "Failed to deserialize query string: missing field `domain`", status_code=400
    )


def _checked_domain(raw: str) -> str:
    """Apply the request-level input checks and strip any local part."""
    if not raw.strip():
        logger.warning("Empty domain provided")
        raise ApiError(ApiErrorKind.INVALID_DOMAIN, "Domain cannot be empty")
    if len(raw.encode("utf-8")) > MAX_DOMAIN_LENGTH:
        logger.warning("Domain too long: %d characters", len(raw))
        raise ApiError(
            ApiErrorKind.INVALID_DOMAIN, "Domain name too long (max 253 characters)"
        )
    domain = extract_domain_from_input(raw)
    if domain != raw:
        logger.debug("Extracted domain '%s' from email address '%s'", domain, raw)
    return domain


async def validate_domain_handler(request: Request) -> Response:
    """GET /v1/validate?domain=... - full validation with risk scoring."""
    raw = _query_domain(request)
    if raw is None:
        return _missing_domain()
    request_id = str(uuid.uuid4())
    logger.info("Validating domain: %s", raw)
    started = time.perf_counter()
    try:
        domain = _checked_domain(raw)
        result = await _state(request).validation_pipeline.validate_domain(domain)
    except ApiError as exc:
        return _error_response(exc)
    except ValidationError as exc:
        return _error_response(ApiError.from_validation_error(exc))

    response = convert_validation_result(result, request_id)
    logger.info(
        "Domain validation completed: %s -> risk_level=%s, risk_score=%d (%.0fms)",
        domain,
        response.risk_level.value,
        response.risk_score,
        (time.perf_counter() - started) * 1000,
    )
    return JSONResponse(response.to_dict())


async def fast_validate_domain_handler(request: Request) -> Response:
    """GET /v1/fast-validate?domain=... - format, disposable and A record checks only."""
    raw = _query_domain(request)
    if raw is None:
        return _missing_domain()
    request_id = str(uuid.uuid4())
    logger.info("Fast validating domain: %s", raw)
    started = time.perf_counter()
    try:
        domain = _checked_domain(raw)
        result = await _state(request).validation_pipeline.fast_validate_domain(domain)
    except ApiError as exc:
        return _error_response(exc)
    except ValidationError as exc:
        return _error_response(ApiError.from_validation_error(exc))

    response = convert_fast_validation_result(result, request_id)
    logger.info(
        "Fast domain validation completed: %s -> is_valid=%s, is_disposable=%s (%.0fms)",
        domain,
        response.is_valid,
        response.is_disposable,
        (time.perf_counter() - started) * 1000,
    )
    return JSONResponse(response.to_dict())


async def health_handler(request: Request) -> Response:
    """GET /health - the service is running."""
    return JSONResponse(
        {"status": "healthy", "version": SERVICE_VERSION, "timestamp": _system_time()}
    )


async def ready_handler(request: Request) -> Response:
    """GET /ready - a trial validation succeeds."""
    try:
        await _state(request).validation_pipeline.validate_domain(_READINESS_PROBE_DOMAIN)
        ready = True
    except ValidationError as exc:
        logger.warning("Readiness check failed: %s", exc)
        ready = False
    return JSONResponse({"ready": ready, "timestamp": _system_time()})


async def metrics_handler(request: Request) -> Response:
    """GET /metrics - Prometheus text exposition of pipeline figures."""
    stats = _state(request).validation_pipeline.get_stats()
    body = (
        "# HELP email_validator_disposable_domains_total Total number of disposable domains in filter\n"
        "# TYPE email_validator_disposable_domains_total gauge\n"
        f"email_validator_disposable_domains_total {stats.disposable_domains_count}\n"
        "\n"
        "# HELP email_validator_filter_memory_bytes Memory usage of disposable domain filter\n"
        "# TYPE email_validator_filter_memory_bytes gauge\n"
        f"email_validator_filter_memory_bytes {stats.disposable_filter_memory_bytes}\n"
        "\n"
        "# HELP email_validator_typo_providers_total Total number of typo detection providers\n"
        "# TYPE email_validator_typo_providers_total gauge\n"
        f"email_validator_typo_providers_total {stats.typo_providers_count}\n"
        "\n"
        "# HELP email_validator_build_info Build information\n"
        "# TYPE email_validator_build_info gauge\n"
        f'email_validator_build_info{{version="{SERVICE_VERSION}"}} 1\n'
    )
    return PlainTextResponse(body)


async def stats_handler(request: Request) -> Response:
    """GET /admin/stats - detailed pipeline statistics."""
    stats = _state(request).validation_pipeline.get_stats()
    payload: dict[str, Any] = {
        "version": SERVICE_VERSION,
        "pipeline_stats": stats.to_dict(),
        "timestamp": _system_time(),
    }
    return JSONResponse(payload)


async def clear_cache_handler(request: Request) -> Response:
    """POST /admin/cache/clear - forget every cached DNS answer."""
    _state(request).validation_pipeline.clear_dns_cache()
    logger.info("DNS cache cleared by admin request")
    return JSONResponse(
        {"message": "DNS cache cleared successfully", "timestamp": _system_time()}
    )


def build_routes(state: AppState) -> Starlette:
    """An application serving every endpoint with the given shared state."""
    routes = [
        Route("/v1/validate", validate_domain_handler, methods=["GET"]),
        Route("/v1/fast-validate", fast_validate_domain_handler, methods=["GET"]),
        Route("/health", health_handler, methods=["GET"]),
        Route("/ready", ready_handler, methods=["GET"]),
        Route("/metrics", metrics_handler, methods=["GET"]),
        Route("/admin/stats", stats_handler, methods=["GET"]),
        Route("/admin/cache/clear", clear_cache_handler, methods=["POST"]),
    ]
    app = Starlette(routes=routes)
    app.state.app_state = state
    return app