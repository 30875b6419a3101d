"""Typo detection against major e-mail providers using Levenshtein distance."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Second-level names of widely used mailbox providers, alphabetical.
_MAJOR_PROVIDERS = frozenset(
    """
    126 163 aol company corp daum email enterprise fastmail free
    gmail gmx googlemail hotmail icloud laposte libero live mac mail
    me msn naver orange outlook proton protonmail qq rediffmail rocketmail
    sify sina sohu t-online tin tuta tutanota virgilio web yahoo
    yandex ymail zoho
    """.split()
)

# Generic and special-use suffixes, alphabetical.
_GENERIC_TLDS = """
    aero app biz cat cloud com coop dev digital edu email example
    gov info int invalid jobs local localhost mail mil mobi museum name
    net online org post pro site tech tel test travel web website
"""

# Two-letter suffixes, grouped by first letter.
_TWO_LETTER_TLDS = """
    ae ai al ao ar at au
    ba bd be bf bg bo br bw by
    ca cd cf cg ch ci cl cm cn co cv cz
    de dj dk dz
    ec ee eg er es et
    fi fk fr
    ga gf gh gm gn gq gr gw gy
    hk hr hu
    id il in io it
    jp
    ke km kr
    lk lr ls lt lv ly
    ma me mg mk ml mr mu mw mx my
    na ne ng nl no np
    pe ph pk pl py
    re ro rs ru
    sa sc sd se sg si sk sl sn so sr st sz
    td th tn tr tw tz
    ua ug uk us uy
    ve
    yt
    za zm zw
"""

_VALID_TLDS = frozenset(_GENERIC_TLDS.split()) | frozenset(_TWO_LETTER_TLDS.split())


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insertions, deletions, substitutions)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def default_major_providers() -> set[str]:
    """Second-level names of the major e-mail providers."""
    return set(_MAJOR_PROVIDERS)


def default_valid_tlds() -> set[str]:
    """Top-level domains accepted for typo suggestions."""
    return set(_VALID_TLDS)


class TypoDetector:
    """Flags domains that look like misspellings of a major provider."""

    def __init__(
        self,
        providers: Iterable[str] | None = None,
        tlds: Iterable[str] | None = None,
    ) -> None:
        self._providers = set(providers) if providers is not None else default_major_providers()
        self._tlds = set(tlds) if tlds is not None else default_valid_tlds()
        logger.debug(
            "Typo detector ready: %d providers, %d TLDs",
            len(self._providers),
            len(self._tlds),
        )

    def check_typo(self, domain: str) -> str | None:
        """Return a suggested correction if the domain looks like a provider typo."""
        sld, sep, tld = domain.lower().partition(".")
        if not sep or tld not in self._tlds:
            return None

        for provider in sorted(self._providers):
            distance = levenshtein(sld, provider)
            threshold_ok = distance == 1 if len(provider) <= 6 else 0 < distance <= 2
            if threshold_ok:
                suggestion = f"{provider}.{tld}"
                logger.debug("Typo suspected: %s -> %s (distance %d)", domain, suggestion, distance)
                return suggestion
        return None

    def add_major_provider(self, provider: str) -> None:
        """Track an additional provider name."""
        self._providers.add(provider.lower())

    def add_valid_tld(self, tld: str) -> None:
        """Accept an additional top-level domain."""
        self._tlds.add(tld.lower())

    def provider_count(self) -> int:
        """Number of providers tracked."""
        return len(self._providers)

    def tld_count(self) -> int:
        """Number of TLDs accepted."""
        return len(self._tlds)