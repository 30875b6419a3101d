"""The validation pipeline that runs every domain check in order."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from .deliverability import (
    analyze_dkim_records,
    analyze_dmarc_record,
    analyze_spf_record,
    calculate_deliverability_risk,
)
from .disposable import DisposableDetector, is_valid_domain_format
from .heuristics import TypoDetector
from .models import (
    DkimRecord,
    DmarcRecord,
    FastValidationResult,
    InternalError,
    InvalidDomainError,
    SpfRecord,
    ValidationConfig,
    ValidationResult,
)
from .privacy import PrivacyError, PrivacyProcessor
from .resolver import DnsResolver

logger = logging.getLogger(__name__)

_SMTP_PROBE_TIMEOUT_SECS = 2.0


class _Resolver(Protocol):
    async def has_a_records(self, domain: str) -> bool: ...

    async def check_domain_records(self, domain: str) -> tuple[bool, bool]: ...

    async def get_spf_record(self, domain: str) -> str | None: ...

    async def get_dmarc_record(self, domain: str) -> str | None: ...

    async def get_common_dkim_records(self, domain: str) -> list[tuple[str, str]]: ...

    def clear_cache(self) -> None: ...


@dataclass
class RiskCalculationParams:
    """Inputs to the overall risk score."""

    is_disposable: bool
    has_a_records: bool
    has_mx_records: bool
    is_potential_typo: bool
    spf_record: SpfRecord | None = None
    dmarc_record: DmarcRecord | None = None
    dkim_records: Sequence[DkimRecord] = field(default_factory=tuple)
    smtp_accessible: bool | None = None


@dataclass(frozen=True)
class PipelineStats:
    """Figures about the pipeline for monitoring."""

    disposable_domains_count: int
    disposable_filter_memory_bytes: int
    typo_providers_count: int
    typo_tlds_count: int

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of these statistics."""
        return asdict(self)


class ValidationPipeline:
    """Runs format, disposable, typo, DNS and authentication checks on a domain."""

    def __init__(
        self,
        config: ValidationConfig | None = None,
        disposable_list: str = "",
        resolver: _Resolver | None = None,
    ) -> None:
        self.config = config if config is not None else ValidationConfig()
        logger.info("Initializing validation pipeline")
        try:
            self._disposable = DisposableDetector.from_list_txt(
                disposable_list, self.config.bloom_filter_fp_rate
            )
        except ValueError as exc:
            raise InternalError(f"Failed to initialize disposable detector: {exc}") from exc

        if resolver is None:
            resolver = DnsResolver(
                self.config.dns_timeout_ms,
                self.config.dns_attempts,
                self.config.dns_cache_size,
                self.config.dns_min_ttl_secs,
            )
        self._resolver = resolver
        self._typo = TypoDetector()
        self._privacy = PrivacyProcessor.with_random_salt()
        logger.info("Validation pipeline initialized successfully")

    def _normalize(self, domain: str) -> str:
        try:
            self._privacy.validate_input(domain)
        except PrivacyError as exc:
            raise InvalidDomainError(str(exc)) from exc
        normalized = domain.strip().lower()
        if not normalized:
            raise InvalidDomainError("Empty domain")
        return normalized

    async def validate_domain(self, domain: str) -> ValidationResult:
        """Validate a domain through every check and score its risk."""
        normalized = self._normalize(domain)

        if not self.is_valid_domain_format(normalized):
            logger.debug("Domain failed basic format validation: %s", normalized)
            return ValidationResult(
                domain=normalized,
                is_valid=False,
                is_disposable=False,
                has_mx_records=False,
                has_a_records=False,
                is_potential_typo=False,
                risk_score=100,
            )

        if self._disposable.is_disposable(normalized):
            logger.debug("Domain flagged as disposable: %s", normalized)
            return ValidationResult(
                domain=normalized,
                is_valid=True,
                is_disposable=True,
                has_mx_records=False,
                has_a_records=False,
                is_potential_typo=False,
                risk_score=85,
            )

        suggestion = self._typo.check_typo(normalized)
        is_potential_typo = suggestion is not None

        try:
            has_a, has_mx = await self._resolver.check_domain_records(normalized)
        except Exception as exc:  # noqa: BLE001 - continue with limited information
            logger.warning("DNS lookup failed for %s: %s", normalized, exc)
            has_a, has_mx = False, False

        if not has_a:
            logger.debug("Domain has no A/AAAA records: %s", normalized)
            return ValidationResult(
                domain=normalized,
                is_valid=False,
                is_disposable=False,
                has_mx_records=False,
                has_a_records=False,
                is_potential_typo=is_potential_typo,
                suggestion=suggestion,
                risk_score=90,
            )

        spf: SpfRecord | None = None
        dmarc: DmarcRecord | None = None
        dkim: list[DkimRecord] = []
        if self.config.enable_dmarc_analysis:
            spf, dmarc, dkim = await self._analyze_email_authentication(normalized)

        smtp_accessible: bool | None = None
        if self.config.enable_smtp_probe and has_mx:
            smtp_accessible = await self._probe_smtp(normalized)

        risk_score = self.calculate_risk_score(
            RiskCalculationParams(
                is_disposable=False,
                has_a_records=has_a,
                has_mx_records=has_mx,
                is_potential_typo=is_potential_typo,
                spf_record=spf,
                dmarc_record=dmarc,
                dkim_records=dkim,
                smtp_accessible=smtp_accessible,
            )
        )
        logger.debug("Domain validation complete for %s: risk_score=%d", normalized, risk_score)

        return ValidationResult(
            domain=normalized,
            is_valid=True,
            is_disposable=False,
            has_mx_records=has_mx,
            has_a_records=has_a,
            is_potential_typo=is_potential_typo,
            suggestion=suggestion,
            spf_record=spf,
            dmarc_record=dmarc,
            dkim_records=dkim,
            smtp_accessible=smtp_accessible,
            risk_score=risk_score,
        )

    async def fast_validate_domain(self, domain: str) -> FastValidationResult:
        """Check format, the disposable list and A records only."""
        normalized = self._normalize(domain)

        if not self.is_valid_domain_format(normalized):
            return FastValidationResult(domain=normalized, is_valid=False, is_disposable=False)

        if self._disposable.is_disposable(normalized):
            return FastValidationResult(domain=normalized, is_valid=True, is_disposable=True)

        try:
            has_a = await self._resolver.has_a_records(normalized)
        except Exception as exc:  # noqa: BLE001 - a failed lookup means no records
            logger.warning("A record lookup failed for %s: %s", normalized, exc)
            has_a = False

        return FastValidationResult(domain=normalized, is_valid=has_a, is_disposable=False)

    def extract_domain_from_email(self, email: str) -> str:
        """Return the domain of an address, subject to the domain-only input policy."""
        try:
            self._privacy.validate_input(email)
        except PrivacyError as exc:
            raise InvalidDomainError(str(exc)) from exc

        local_part, sep, domain = email.rpartition("@")
        if not sep:
            raise InvalidDomainError("Invalid email format: Missing separator character '@'.")
        if not local_part:
            raise InvalidDomainError("Invalid email format: Local part is empty.")
        if not domain:
            raise InvalidDomainError("Invalid email format: Domain is empty.")
        return domain

    def is_valid_domain_format(self, domain: str) -> bool:
        """Basic syntactic check of a domain name."""
        return is_valid_domain_format(domain)

    async def _analyze_email_authentication(
        self, domain: str
    ) -> tuple[SpfRecord, DmarcRecord, list[DkimRecord]]:
        spf_raw, dmarc_raw, dkim_raw = await asyncio.gather(
            self._resolver.get_spf_record(domain),
            self._resolver.get_dmarc_record(domain),
            self._resolver.get_common_dkim_records(domain),
            return_exceptions=True,
        )
        spf = analyze_spf_record(None if isinstance(spf_raw, BaseException) else spf_raw)
        dmarc = analyze_dmarc_record(None if isinstance(dmarc_raw, BaseException) else dmarc_raw)
        dkim = analyze_dkim_records([] if isinstance(dkim_raw, BaseException) else dkim_raw)
        return spf, dmarc, dkim

    async def _probe_smtp(self, domain: str) -> bool:
        """Check that a transport to smtp.<domain> can be set up; no connection is opened."""
        smtp_host = f"smtp.{domain}"

        async def configure() -> str:
            return smtp_host

        try:
            await asyncio.wait_for(configure(), _SMTP_PROBE_TIMEOUT_SECS)
        except asyncio.TimeoutError:
            logger.debug("SMTP not accessible for %s: timeout", domain)
            return False
        logger.debug("SMTP accessible for: %s", domain)
        return True

    def calculate_risk_score(self, params: RiskCalculationParams) -> int:
        """Combine every check into a risk score from 0 to 100."""
        risk = 0
        if not params.has_a_records:
            risk += 50
        if params.is_disposable:
            risk += 40
        if params.is_potential_typo:
            risk += 30
        if not params.has_mx_records:
            risk += 15
        if params.spf_record is not None and params.dmarc_record is not None:
            auth_risk = calculate_deliverability_risk(
                params.spf_record, params.dmarc_record, params.dkim_records
            )
            risk += min(auth_risk // 3, 20)
        if params.smtp_accessible is False:
            risk += 10
        return min(risk, 100)

    def get_stats(self) -> PipelineStats:
        """Statistics about the loaded filters and lists."""
        return PipelineStats(
            disposable_domains_count=self._disposable.domain_count(),
            disposable_filter_memory_bytes=self._disposable.memory_usage(),
            typo_providers_count=self._typo.provider_count(),
            typo_tlds_count=self._typo.tld_count(),
        )

    def clear_dns_cache(self) -> None:
        """Forget every cached DNS answer."""
        self._resolver.clear_cache()