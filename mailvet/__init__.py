"""Email domain validation: disposable detection, DNS checks, SPF/DKIM/DMARC analysis, typo hints, risk scoring and an HTTP API."""

__version__ = "0.1.0"