"""Asynchronous DNS lookups with a TTL-bounded result cache."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

import dns.asyncresolver
import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)

_CLOUDFLARE_NAMESERVERS = ("1.1.1.1", "1.0.0.1", "2606:4700:4700::1111", "2606:4700:4700::1001")
_NEGATIVE_TTL_SECS = 30
_POSITIVE_MAX_TTL_SECS = 3600

COMMON_DKIM_SELECTORS = (
    "default",
    "google",
    "selector1",
    "selector2",
    "k1",
    "k2",
    "dkim",
    "s1",
    "s2",
)


@dataclass
class _Entry:
    expires: float
    records: list[Any] = field(default_factory=list)
    error: Exception | None = None


class _TtlCache:
    """Least-recently-used cache whose entries expire."""

    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._entries: OrderedDict[tuple[str, str], _Entry] = OrderedDict()

    def get(self, key: tuple[str, str]) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires <= time.monotonic():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry

    def put(self, key: tuple[str, str], entry: _Entry) -> None:
        if self._max_size <= 0:
            return
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()


class DnsResolver:
    """DNS resolver querying Cloudflare's public servers, with caching."""

    def __init__(
        self,
        timeout_ms: int = 500,
        attempts: int = 2,
        cache_size: int = 10_000,
        min_ttl_secs: int = 60,
    ) -> None:
        timeout = timeout_ms / 1000
        self._resolver = dns.asyncresolver.Resolver(configure=False)
        self._resolver.nameservers = list(_CLOUDFLARE_NAMESERVERS)
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout * max(attempts, 1)
        self._min_ttl = min_ttl_secs
        self._cache = _TtlCache(cache_size)
        logger.info(
            "DNS resolver initialized - timeout: %dms, attempts: %d, cache_size: %d",
            timeout_ms,
            attempts,
            cache_size,
        )

    async def _lookup(self, name: str, rdtype: str) -> list[Any]:
        key = (name.lower(), rdtype)
        entry = self._cache.get(key)
        if entry is not None:
            if entry.error is not None:
                raise entry.error
            return entry.records

        try:
            answer = await self._resolver.resolve(name, rdtype)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as exc:
            self._cache.put(key, _Entry(time.monotonic() + _NEGATIVE_TTL_SECS, error=exc))
            raise

        records = list(answer)
        ttl = answer.rrset.ttl if answer.rrset is not None else 0
        ttl = min(max(ttl, self._min_ttl), _POSITIVE_MAX_TTL_SECS)
        self._cache.put(key, _Entry(time.monotonic() + ttl, records=records))
        return records

    async def has_a_records(self, domain: str) -> bool:
        """True if the domain has A or AAAA records."""
        for rdtype in ("A", "AAAA"):
            try:
                if await self._lookup(domain, rdtype):
                    logger.debug("Domain %s has %s records", domain, rdtype)
                    return True
            except dns.exception.DNSException as exc:
                logger.debug("%s record lookup failed for %s: %s", rdtype, domain, exc)
        logger.debug("Domain %s has no A or AAAA records", domain)
        return False

    async def has_mx_records(self, domain: str) -> bool:
        """True if the domain has MX records; lookup failures count as none."""
        try:
            records = await self._lookup(domain, "MX")
        except dns.exception.DNSException as exc:
            logger.debug("MX record lookup failed for %s: %s", domain, exc)
            return False
        logger.debug("Domain %s has %d MX record(s)", domain, len(records))
        return bool(records)

    async def get_txt_records(self, domain: str) -> list[str]:
        """Each character-string of the domain's TXT records; empty on failure."""
        try:
            records = await self._lookup(domain, "TXT")
        except dns.exception.DNSException as exc:
            logger.debug("TXT record lookup failed for %s: %s", domain, exc)
            return []
        texts = [
            chunk.decode("utf-8", errors="replace")
            for record in records
            for chunk in record.strings
        ]
        logger.debug("Found %d TXT record(s) for %s", len(texts), domain)
        return texts

    async def check_domain_records(self, domain: str) -> tuple[bool, bool]:
        """Look up A/AAAA and MX concurrently; returns (has_a, has_mx)."""
        has_a, has_mx = await asyncio.gather(
            self.has_a_records(domain), self.has_mx_records(domain)
        )
        logger.debug("Domain %s - A/AAAA: %s, MX: %s", domain, has_a, has_mx)
        return has_a, has_mx

    async def _find_txt(self, name: str, marker: str, *, prefix: bool) -> str | None:
        for record in await self.get_txt_records(name):
            lowered = record.strip().lower()
            if lowered.startswith(marker) if prefix else marker in lowered:
                return record
        return None

    async def get_spf_record(self, domain: str) -> str | None:
        """The domain's SPF record, if any."""
        return await self._find_txt(domain, "v=spf1", prefix=True)

    async def get_dmarc_record(self, domain: str) -> str | None:
        """The DMARC record published at _dmarc.<domain>, if any."""
        return await self._find_txt(f"_dmarc.{domain}", "v=dmarc1", prefix=True)

    async def get_dkim_record(self, selector: str, domain: str) -> str | None:
        """The DKIM record at <selector>._domainkey.<domain>, if any."""
        return await self._find_txt(f"{selector}._domainkey.{domain}", "v=dkim1", prefix=False)

    async def get_common_dkim_records(self, domain: str) -> list[tuple[str, str]]:
        """(selector, record) pairs for the common selectors that have a DKIM record."""
        found = []
        for selector in COMMON_DKIM_SELECTORS:
            record = await self.get_dkim_record(selector, domain)
            if record is not None:
                found.append((selector, record))
        logger.debug("Found %d DKIM records for %s", len(found), domain)
        return found

    def clear_cache(self) -> None:
        """Forget every cached answer."""
        self._cache.clear()
        logger.info("DNS cache cleared")