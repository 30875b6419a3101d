"""Disposable domain detection backed by a Bloom filter."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from collections.abc import Iterable

logger = logging.getLogger(__name__)

_LABEL = re.compile(r"[A-Za-z0-9-]+", re.ASCII)
_MAX_REPORTED_INVALID = 10


def optimal_bits(item_count: int, false_positive_rate: float) -> int:
    """Number of bits a Bloom filter needs: m = -(n * ln p) / (ln 2)^2."""
    bits = (-item_count * math.log(false_positive_rate)) / (math.log(2) ** 2)
    return math.ceil(bits)


class BloomFilter:
    """A fixed-size Bloom filter sized for a capacity and false positive rate."""

    def __init__(self, capacity: int, false_positive_rate: float) -> None:
        if capacity <= 0:
            raise ValueError("Bloom filter capacity must be positive")
        if not 0.0 < false_positive_rate < 1.0:
            raise ValueError("False positive rate must be between 0 and 1")
        self.num_bits = max(optimal_bits(capacity, false_positive_rate), 1)
        self.num_hashes = max(round(self.num_bits / capacity * math.log(2)), 1)
        self._bits = bytearray((self.num_bits + 7) // 8)

    def _positions(self, item: str):
        digest = hashlib.sha256(item.encode("utf-8")).digest()
        first = int.from_bytes(digest[:8], "big")
        step = int.from_bytes(digest[8:16], "big") | 1
        for i in range(self.num_hashes):
            yield (first + i * step) % self.num_bits

    def add(self, item: str) -> None:
        """Insert an item into the filter."""
        for pos in self._positions(item):
            self._bits[pos >> 3] |= 1 << (pos & 7)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, str):
            return False
        return all(self._bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(item))


def is_valid_domain_format(domain: str) -> bool:
    """Basic syntactic check of a domain name."""
    if not domain or len(domain.encode("utf-8")) > 253:
        return False
    if "." not in domain:
        return False
    if domain[0] in ".-" or domain[-1] in ".-":
        return False
    for label in domain.split("."):
        if not label or len(label) > 63:
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
        if not _LABEL.fullmatch(label):
            return False
    return True


def parse_disposable_list(content: str) -> set[str]:
    """Parse a one-domain-per-line list, skipping blanks, comments and bad entries."""
    domains: set[str] = set()
    invalid = 0
    line_count = 0
    for line_count, line in enumerate(content.splitlines(), start=1):
        domain = line.strip()
        if not domain or domain.startswith("#"):
            continue
        if is_valid_domain_format(domain):
            domains.add(domain.lower())
        else:
            invalid += 1
            if invalid <= _MAX_REPORTED_INVALID:
                logger.warning("Invalid domain format at line %d: '%s'", line_count, domain)

    if invalid > _MAX_REPORTED_INVALID:
        logger.warning(
            "... and %d more invalid domain entries", invalid - _MAX_REPORTED_INVALID
        )
    logger.info(
        "Parsed %d valid domains from %d lines (%d invalid entries)",
        len(domains),
        line_count,
        invalid,
    )
    if not domains:
        raise ValueError("No valid domains found in list")
    return domains


class DisposableDetector:
    """Probabilistic membership test for disposable e-mail domains."""

    def __init__(self, domains: Iterable[str], false_positive_rate: float) -> None:
        items = [domain.lower() for domain in domains]
        if not items:
            raise ValueError("No domains provided for disposable detection")
        self._filter = BloomFilter(len(items), false_positive_rate)
        for item in items:
            self._filter.add(item)
        self._domain_count = len(items)
        self._memory_usage = math.ceil(optimal_bits(len(items), false_positive_rate) / 8)
        logger.info(
            "Disposable detector initialized with %d domains, ~%d KB memory, "
            "%.4f%% false positive rate",
            self._domain_count,
            self._memory_usage // 1024,
            false_positive_rate * 100.0,
        )

    @classmethod
    def from_list_txt(cls, list_content: str, false_positive_rate: float) -> DisposableDetector:
        """Build a detector from the text of a domain list file."""
        return cls(parse_disposable_list(list_content), false_positive_rate)

    def is_disposable(self, domain: str) -> bool:
        """True if the domain may be disposable; False means it certainly is not listed."""
        result = domain.lower() in self._filter
        if result:
            logger.debug("Domain '%s' flagged as potentially disposable", domain)
        return result

    def domain_count(self) -> int:
        """Number of domains loaded into the filter."""
        return self._domain_count

    def memory_usage(self) -> int:
        """Estimated filter size in bytes."""
        return self._memory_usage