"""Request and response records of the HTTP API, and conversion from pipeline results."""

from __future__ import annotations

import enum
import math
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import (
    ConfigurationError,
    DkimRecord,
    DmarcRecord,
    DnsResolutionError,
    FastValidationResult,
    InternalError,
    InvalidDomainError,
    SmtpProbeError,
    SpfRecord,
    ValidationError,
    ValidationResult,
)

CACHE_HIT_THRESHOLD_MS = 50


def _json_factory(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {key: value.value if isinstance(value, enum.Enum) else value for key, value in items}


def _to_json(record: Any) -> dict[str, Any]:
    return asdict(record, dict_factory=_json_factory)


def _utc_now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat()


def _format_checked_at(moment: datetime) -> str:
    """RFC 3339 form of a timestamp, truncated to whole seconds, in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    stamp = moment.timestamp()
    if stamp < 0:
        return _utc_now_rfc3339()
    return datetime.fromtimestamp(math.floor(stamp), timezone.utc).isoformat()


def _elapsed_ms(processing_time: timedelta | float) -> int:
    """Whole milliseconds in a duration given as a timedelta or as seconds."""
    if isinstance(processing_time, timedelta):
        return processing_time // timedelta(milliseconds=1)
    return round(processing_time * 1_000_000) // 1000


@dataclass(frozen=True)
class ValidateQuery:
    """Query parameters of a validation request."""

    domain: str


@dataclass(frozen=True)
class ValidateRequest:
    """Body of a validation request."""

    domain: str
    request_id: str | None = None


class RiskLevel(enum.StrEnum):
    """Risk band of a 0-100 risk score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_score(cls, score: int) -> RiskLevel:
        """Band a score: 0-25 low, 26-50 medium, 51-75 high, above that critical."""
        if score < 0:
            raise ValueError(f"Risk score cannot be negative: {score}")
        if score <= 25:
            return cls.LOW
        if score <= 50:
            return cls.MEDIUM
        if score <= 75:
            return cls.HIGH
        return cls.CRITICAL


@dataclass(frozen=True)
class PerformanceMetrics:
    """Timing figures attached to developer responses."""

    total_time_ms: int
    dns_cache_hit: bool


def _metrics(processing_time: timedelta | float) -> PerformanceMetrics:
    elapsed = _elapsed_ms(processing_time)
    return PerformanceMetrics(
        total_time_ms=elapsed, dns_cache_hit=elapsed < CACHE_HIT_THRESHOLD_MS
    )


@dataclass(kw_only=True)
class ValidateResponse:
    """Full validation response."""

    request_id: str
    domain: str
    is_valid: bool
    is_disposable: bool
    has_mx_records: bool
    has_a_records: bool
    is_potential_typo: bool
    suggestion: str | None = None
    spf_record: SpfRecord | None = None
    dmarc_record: DmarcRecord | None = None
    dkim_records: list[DkimRecord] = field(default_factory=list)
    smtp_accessible: bool | None = None
    risk_score: int
    risk_level: RiskLevel
    checked_at: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this response."""
        return _to_json(self)


@dataclass(kw_only=True)
class ValidateDevResponse(ValidateResponse):
    """Full validation response with timing figures."""

    performance: PerformanceMetrics

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this response."""
        return _to_json(self)


@dataclass(kw_only=True)
class FastValidateResponse:
    """Fast validation response."""

    request_id: str
    domain: str
    is_valid: bool
    is_disposable: bool

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this response."""
        return _to_json(self)


@dataclass(kw_only=True)
class FastValidateDevResponse(FastValidateResponse):
    """Fast validation response with timing figures."""

    performance: PerformanceMetrics

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this response."""
        return _to_json(self)


@dataclass(kw_only=True)
class ErrorResponse:
    """Body of an error response."""

    error: str
    error_code: str
    request_id: str
    timestamp: str
    details: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this response."""
        return _to_json(self)


class ApiErrorKind(enum.Enum):
    """Categories of API errors with their HTTP status and error code."""

    INVALID_DOMAIN = (400, "INVALID_DOMAIN")
    VALIDATION_FAILED = (422, "VALIDATION_FAILED")
    INTERNAL_ERROR = (500, "INTERNAL_ERROR")
    RATE_LIMITED = (429, "RATE_LIMITED")
    REQUEST_TOO_LARGE = (413, "REQUEST_TOO_LARGE")

    def __init__(self, status: int, code: str) -> None:
        self.status = status
        self.code = code


_FIXED_MESSAGES = {
    ApiErrorKind.RATE_LIMITED: "Too many requests",
    ApiErrorKind.REQUEST_TOO_LARGE: "Request body too large",
}


class ApiError(Exception):
    """An error to be reported to the API client."""

    def __init__(self, kind: ApiErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = _FIXED_MESSAGES.get(kind, message or "")
        super().__init__(self.message)

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> ApiError:
        """Map a pipeline error onto the matching API error."""
        if isinstance(error, InvalidDomainError):
            kind = ApiErrorKind.INVALID_DOMAIN
        elif isinstance(error, (DnsResolutionError, SmtpProbeError)):
            kind = ApiErrorKind.VALIDATION_FAILED
        elif isinstance(error, (ConfigurationError, InternalError)):
            kind = ApiErrorKind.INTERNAL_ERROR
        else:
            kind = ApiErrorKind.INTERNAL_ERROR
        return cls(kind, error.detail)

    @property
    def status_code(self) -> int:
        """HTTP status code of this error."""
        return self.kind.status

    def to_response(self) -> tuple[int, ErrorResponse]:
        """The HTTP status and error body for this error."""
        body = ErrorResponse(
            error=self.message,
            error_code=self.kind.code,
            request_id=str(uuid.uuid4()),
            timestamp=_utc_now_rfc3339(),
        )
        return self.status_code, body


def _validation_fields(result: ValidationResult, request_id: str) -> dict[str, Any]:
    return {
        "request_id": request_id,
        "domain": result.domain,
        "is_valid": result.is_valid,
        "is_disposable": result.is_disposable,
        "has_mx_records": result.has_mx_records,
        "has_a_records": result.has_a_records,
        "is_potential_typo": result.is_potential_typo,
        "suggestion": result.suggestion,
        "spf_record": result.spf_record,
        "dmarc_record": result.dmarc_record,
        "dkim_records": list(result.dkim_records),
        "smtp_accessible": result.smtp_accessible,
        "risk_score": result.risk_score,
        "risk_level": RiskLevel.from_score(result.risk_score),
        "checked_at": _format_checked_at(result.checked_at),
    }


def convert_validation_result(result: ValidationResult, request_id: str) -> ValidateResponse:
    """Build the full API response from a pipeline result."""
    return ValidateResponse(**_validation_fields(result, request_id))


def convert_validation_dev_result(
    result: ValidationResult, request_id: str, processing_time: timedelta | float
) -> ValidateDevResponse:
    """Build the full developer response, with timing, from a pipeline result."""
    return ValidateDevResponse(
        **_validation_fields(result, request_id), performance=_metrics(processing_time)
    )


def convert_fast_validation_result(
    result: FastValidationResult, request_id: str
) -> FastValidateResponse:
    """Build the fast API response from a pipeline result."""
    return FastValidateResponse(
        request_id=request_id,
        domain=result.domain,
        is_valid=result.is_valid,
        is_disposable=result.is_disposable,
    )


def convert_fast_validation_dev_result(
    result: FastValidationResult, request_id: str, processing_time: timedelta | float
) -> FastValidateDevResponse:
    """Build the fast developer response, with timing, from a pipeline result."""
    return FastValidateDevResponse(
        request_id=request_id,
        domain=result.domain,
        is_valid=result.is_valid,
        is_disposable=result.is_disposable,
        performance=_metrics(processing_time),
    )


def extract_domain_from_input(input_text: str) -> str:
    """The part after the last '@', or the whole input when there is none."""
    return input_text.rpartition("@")[2]