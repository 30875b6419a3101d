"""Salted hashing and input checks for privacy-preserving handling of addresses."""

from __future__ import annotations

import hashlib
import logging
import secrets

logger = logging.getLogger(__name__)

_RANDOM_SALT_BYTES = 8
_ROTATION_SALT_BYTES = 32


class PrivacyError(ValueError):
    """Base class for privacy policy violations."""


class ContainsLocalPartError(PrivacyError):
    """The input holds an '@', i.e. a full address rather than a domain."""

    def __init__(self) -> None:
        super().__init__("Input contains @ symbol - only domain names are accepted")


class InvalidEmailFormatError(PrivacyError):
    """The address cannot be split into a local part and a domain."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Invalid email format: {email}")


class PrivacyProcessor:
    """Pseudonymises address local parts with a salted SHA-256 hash."""

    def __init__(self, salt: bytes | bytearray | list[int]) -> None:
        self._salt = bytes(salt)
        logger.debug("Privacy processor initialized with %d-byte salt", len(self._salt))

    @classmethod
    def with_random_salt(cls) -> PrivacyProcessor:
        """Create a processor with a fresh random salt; hashes differ across instances."""
        return cls(secrets.token_bytes(_RANDOM_SALT_BYTES))

    @property
    def salt(self) -> bytes:
        """The salt in use. Treat it as sensitive."""
        return self._salt

    def hash_local_part(self, local_part: str) -> str:
        """Hex-encoded SHA-256 of the salt followed by the local part."""
        digest = hashlib.sha256(self._salt + local_part.encode("utf-8")).hexdigest()
        logger.debug("Hashed local part (length: %d) -> %s", len(local_part), digest[:8])
        return digest

    def process_email(self, email: str) -> tuple[str, str]:
        """Split an address into (hashed local part, domain)."""
        local_part, sep, domain = email.partition("@")
        if not sep or not local_part or not domain:
            raise InvalidEmailFormatError(email)
        return self.hash_local_part(local_part), domain

    def validate_input(self, input_text: str) -> None:
        """Reject input that carries a local part; only bare domains are accepted."""
        if "@" in input_text:
            logger.debug("Input rejected: contains @ symbol")
            raise ContainsLocalPartError()

    @staticmethod
    def generate_new_salt() -> bytes:
        """A new 32-byte random salt for key rotation."""
        salt = secrets.token_bytes(_ROTATION_SALT_BYTES)
        logger.debug("Generated new %d-byte salt for key rotation", len(salt))
        return salt