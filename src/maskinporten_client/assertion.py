# maskinporten_client/assertion.py
"""JWT grant assertions sent to Maskinporten."""

import time
import uuid
from typing import Any, Dict, Optional, Union

import jwt

from .client_config import ClientSettings
from .credentials import CertificateSecret, ClientSecrets, JwkSecret
from .environments import Environment, get_assertion_audience
from .errors import ConfigurationError

# Lifetime of an assertion in seconds
ASSERTION_LIFETIME = 10


def build_claims(
    client_id: str,
    environment: Union[str, Environment],
    scope: str,
    resource: Optional[str] = None,
    consumer_org: Optional[str] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build the claim set of a grant assertion.

    Args:
        client_id: Maskinporten client id (issuer)
        environment: Target environment, decides the audience
        scope: Requested scope(s), space separated
        resource: Optional audience restriction for the access token
        consumer_org: Optional organisation number acted on behalf of
        now: Issued-at time in epoch seconds (default: current time)

    Returns:
        Claim dictionary
    """
    issued_at = int(time.time()) if now is None else now
    claims: Dict[str, Any] = {
        "aud": get_assertion_audience(environment),
        "scope": scope,
        "iss": client_id,
        "exp": issued_at + ASSERTION_LIFETIME,
        "iat": issued_at,
        "jti": str(uuid.uuid4()),
    }

    if resource:
        claims["resource"] = resource
    if consumer_org:
        claims["consumer_org"] = consumer_org

    return claims


def build_assertion(secrets: ClientSecrets, settings: ClientSettings) -> str:
    """
    Build and sign a fresh grant assertion.

    JWK-signed assertions carry ``kid`` when the key has one. Certificate
    signed assertions carry the certificate in ``x5c`` instead and omit
    ``typ`` and ``kid``.

    Args:
        secrets: Signing key or certificate
        settings: Client settings supplying the claims

    Returns:
        Compact serialized JWT

    Raises:
        ConfigurationError: If no signing material is given or the
            environment is invalid
    """
    claims = build_claims(
        settings.client_id,
        settings.environment,
        settings.scope,
        settings.resource,
        settings.consumer_org_no,
    )

    if isinstance(secrets, CertificateSecret):
        headers: Dict[str, Any] = {"x5c": [secrets.der_base64], "typ": None}
        return jwt.encode(
            claims, secrets.private_key, algorithm="RS256", headers=headers
        )

    if isinstance(secrets, JwkSecret):
        headers = {"kid": secrets.key_id} if secrets.key_id else {}
        return jwt.encode(
            claims, secrets.key, algorithm=secrets.algorithm, headers=headers or None
        )

    raise ConfigurationError(
        "Missing client secrets: either a JWK or a certificate is required"
    )
