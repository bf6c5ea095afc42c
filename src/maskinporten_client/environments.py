# maskinporten_client/environments.py
"""Maskinporten environments and the endpoints they resolve to."""

from enum import Enum
from typing import Union

from .errors import ConfigurationError


class Environment(str, Enum):
    """Supported Maskinporten environments."""

    PROD = "prod"
    VER1 = "ver1"
    VER2 = "ver2"


_AUDIENCES = {
    Environment.PROD: "https://maskinporten.no/",
    Environment.VER1: "https://ver1.maskinporten.no/",
    Environment.VER2: "https://ver2.maskinporten.no/",
}

_TOKEN_ENDPOINTS = {
    Environment.PROD: "https://maskinporten.no/token",
    Environment.VER1: "https://ver1.maskinporten.no/token",
    Environment.VER2: "https://ver2.maskinporten.no/token",
}

# ver1 and ver2 share the Altinn test platform
_EXCHANGE_ENDPOINTS = {
    Environment.PROD: "https://platform.altinn.no/authentication/api/v1/exchange/maskinporten",
    Environment.VER1: "https://platform.tt02.altinn.no/authentication/api/v1/exchange/maskinporten",
    Environment.VER2: "https://platform.tt02.altinn.no/authentication/api/v1/exchange/maskinporten",
}


def resolve_environment(environment: Union[str, Environment, None]) -> Environment:
    """
    Validate an environment name.

    Args:
        environment: Environment name ("prod", "ver1", "ver2") or enum member

    Returns:
        The matching Environment

    Raises:
        ConfigurationError: If the environment is missing or unknown
    """
    try:
        return Environment(environment)
    except ValueError:
        raise ConfigurationError(
            "Invalid environment setting. Valid values: prod, ver1, ver2"
        ) from None


def get_assertion_audience(environment: Union[str, Environment]) -> str:
    """Audience claim for assertions sent to the given environment."""
    return _AUDIENCES[resolve_environment(environment)]


def get_token_endpoint(environment: Union[str, Environment]) -> str:
    """Token endpoint for the given environment."""
    return _TOKEN_ENDPOINTS[resolve_environment(environment)]


def get_token_exchange_endpoint(environment: Union[str, Environment]) -> str:
    """Altinn token exchange endpoint for the given environment."""
    return _EXCHANGE_ENDPOINTS[resolve_environment(environment)]
