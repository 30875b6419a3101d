"""Configuration, result records and errors shared by the validation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ValidationConfig:
    """Settings for the domain validation pipeline."""

    dns_timeout_ms: int = 500
    dns_attempts: int = 2
    dns_cache_size: int = 10_000
    dns_min_ttl_secs: int = 60
    bloom_filter_fp_rate: float = 0.0001
    enable_smtp_probe: bool = True
    enable_dmarc_analysis: bool = True


@dataclass(frozen=True)
class SpfRecord:
    """Outcome of analysing a domain's SPF record."""

    exists: bool
    policy: str | None = None
    is_strict: bool = False


@dataclass(frozen=True)
class DmarcRecord:
    """Outcome of analysing a domain's DMARC record."""

    exists: bool
    policy: str | None = None
    percentage: int | None = None


@dataclass(frozen=True)
class DkimRecord:
    """Outcome of analysing one DKIM selector's record."""

    selector: str
    exists: bool
    has_public_key: bool


@dataclass(kw_only=True)
class ValidationResult:
    """Complete validation result for a domain."""

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
    risk_score: int = 0
    checked_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this result."""
        data = asdict(self)
        data["checked_at"] = self.checked_at.isoformat()
        return data


@dataclass(kw_only=True)
class FastValidationResult:
    """Essential validation information for a domain."""

    domain: str
    is_valid: bool
    is_disposable: bool
    checked_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this result."""
        data = asdict(self)
        data["checked_at"] = self.checked_at.isoformat()
        return data


class ValidationError(Exception):
    """Base class for errors raised while validating a domain."""

    prefix = "Validation error"

    def __init__(self, detail: object = "") -> None:
        self.detail = str(detail)
        super().__init__(f"{self.prefix}: {self.detail}")


class InvalidDomainError(ValidationError):
    """The domain given is not acceptable."""

    prefix = "Invalid domain format"


class DnsResolutionError(ValidationError):
    """A DNS lookup failed."""

    prefix = "DNS resolution failed"


class SmtpProbeError(ValidationError):
    """Probing the mail server failed."""

    prefix = "SMTP probe failed"


class ConfigurationError(ValidationError):
    """The pipeline could not be configured."""

    prefix = "Configuration error"


class InternalError(ValidationError):
    """An unexpected internal failure."""

    prefix = "Internal error"