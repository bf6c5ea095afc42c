# maskinporten_client/errors.py
"""Exceptions raised by the Maskinporten client."""

from typing import Optional


class MaskinportenError(Exception):
    """Base exception for all Maskinporten client errors."""


class ConfigurationError(MaskinportenError, ValueError):
    """Raised when the client is misconfigured (environment, credentials)."""


class TokenRequestError(MaskinportenError):
    """Raised when the authority rejects a token or exchange request."""

    def __init__(
        self,
        description: str,
        error_type: str = "Other",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(description)
        self.description = description
        self.error_type = error_type
        self.status_code = status_code
