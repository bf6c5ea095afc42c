"""Maskinporten Client Library - JWT bearer token client for Maskinporten and Altinn.

This library provides client-side token handling for Maskinporten,
implementing:
- Signed JWT grant assertions (JWK or business certificate)
- The JWT bearer grant token request
- Expiry-aware, pluggable token caching with single-flight fetching
- Exchange of Maskinporten tokens for Altinn platform tokens
- httpx authentication for outgoing requests
"""

from .assertion import build_assertion, build_claims
from .auth import MaskinportenAuth
from .client_config import ClientSettings
from .credentials import (
    CertificateSecret,
    ClientDefinition,
    ClientSecrets,
    JwkSecret,
    SettingsCertificateClientDefinition,
    SettingsJwkClientDefinition,
)
from .environments import (
    Environment,
    get_assertion_audience,
    get_token_endpoint,
    get_token_exchange_endpoint,
)
from .errors import ConfigurationError, MaskinportenError, TokenRequestError
from .maskinporten_service import MaskinportenService
from .responses import parse_response
from .token_cache import MemoryTokenCacheProvider, TokenCacheProvider
from .token_types import ErrorResponse, TokenResponse

__version__ = "0.1.0"

__all__ = [
    "build_assertion",
    "build_claims",
    "MaskinportenAuth",
    "ClientSettings",
    "CertificateSecret",
    "ClientDefinition",
    "ClientSecrets",
    "JwkSecret",
    "SettingsCertificateClientDefinition",
    "SettingsJwkClientDefinition",
    "Environment",
    "get_assertion_audience",
    "get_token_endpoint",
    "get_token_exchange_endpoint",
    "ConfigurationError",
    "MaskinportenError",
    "TokenRequestError",
    "MaskinportenService",
    "parse_response",
    "MemoryTokenCacheProvider",
    "TokenCacheProvider",
    "ErrorResponse",
    "TokenResponse",
]
