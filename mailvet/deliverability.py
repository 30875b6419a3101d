"""SPF, DKIM and DMARC record analysis and deliverability risk scoring."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .models import DkimRecord, DmarcRecord, SpfRecord

logger = logging.getLogger(__name__)

_UNSIGNED_BYTE = re.compile(r"\+?[0-9]+")


def parse_dmarc_tags(record: str) -> dict[str, str]:
    """Split a DMARC record into a mapping of lower-cased tag names to values."""
    tags: dict[str, str] = {}
    for part in record.split(";"):
        key, sep, value = part.strip().partition("=")
        if sep:
            tags[key.strip().lower()] = value.strip()
    return tags


def analyze_spf_record(record: str | None) -> SpfRecord:
    """Analyse a raw SPF record for presence and strictness."""
    if record is None:
        logger.debug("No SPF record found")
        return SpfRecord(exists=False)

    lowered = record.lower()
    if not lowered.startswith("v=spf1"):
        logger.warning("Invalid SPF record format: %s", record)
        return SpfRecord(exists=False)

    is_strict = "-all" in lowered
    return SpfRecord(exists=True, policy=record, is_strict=is_strict)


def _parse_percentage(raw: str | None) -> int | None:
    if raw is None or not _UNSIGNED_BYTE.fullmatch(raw):
        return None
    value = int(raw)
    return value if value <= 100 else None


def analyze_dmarc_record(record: str | None) -> DmarcRecord:
    """Analyse a raw DMARC record for its policy and percentage."""
    if record is None:
        logger.debug("No DMARC record found")
        return DmarcRecord(exists=False)

    if not record.lower().startswith("v=dmarc1"):
        logger.warning("Invalid DMARC record format: %s", record)
        return DmarcRecord(exists=False)

    tags = parse_dmarc_tags(record)
    policy = tags.get("p")
    percentage = _parse_percentage(tags.get("pct"))
    logger.debug("DMARC policy: %s, percentage: %s", policy, percentage)
    return DmarcRecord(exists=True, policy=policy, percentage=percentage)


def analyze_dkim_records(records: Iterable[tuple[str, str]]) -> list[DkimRecord]:
    """Analyse (selector, record) pairs for validity and public key presence."""
    results = []
    for selector, record in records:
        lowered = record.lower()
        is_valid = "v=dkim1" in lowered
        has_public_key = (
            "p=" in lowered and "p=;" not in lowered and "p= ;" not in lowered
        )
        if not is_valid:
            logger.warning(
                "Invalid DKIM record format for selector '%s': %s", selector, record
            )
        results.append(
            DkimRecord(selector=selector, exists=is_valid, has_public_key=has_public_key)
        )
    return results


_DMARC_POLICY_RISK = {"reject": 0, "quarantine": 5, "none": 15}


def calculate_deliverability_risk(
    spf: SpfRecord, dmarc: DmarcRecord, dkim: Iterable[DkimRecord]
) -> int:
    """Score email authentication risk from 0 (best) to 100 (worst)."""
    risk = 0

    if not spf.exists:
        risk += 15
    elif not spf.is_strict:
        risk += 10

    if not dmarc.exists:
        risk += 25
    else:
        risk += _DMARC_POLICY_RISK.get(dmarc.policy, 20)
        if dmarc.percentage is not None and dmarc.percentage < 100:
            risk += (100 - dmarc.percentage) * 15 // 100

    valid_dkim = sum(1 for record in dkim if record.exists and record.has_public_key)
    if valid_dkim == 0:
        risk += 20
    elif valid_dkim == 1:
        risk += 5

    final = min(risk, 100)
    logger.debug("Final deliverability risk score: %d", final)
    return final