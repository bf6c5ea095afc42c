# maskinporten_client/maskinporten_service.py
"""Token issuance and Altinn token exchange against Maskinporten."""

import base64
import hashlib
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional, Union

import httpx

from .assertion import build_assertion
from .client_config import ClientSettings
from .credentials import CertificateSecret, ClientDefinition, ClientSecrets, JwkSecret
from .environments import (
    Environment,
    get_token_endpoint,
    get_token_exchange_endpoint,
    resolve_environment,
)
from .errors import ConfigurationError
from .locks import KeyedLock
from .responses import parse_response
from .token_cache import MemoryTokenCacheProvider, TokenCacheProvider
from .token_types import TokenResponse

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ENTERPRISE_USER_HEADER = "X-Altinn-EnterpriseUser-Authentication"
ALTINN_TOKEN_TYPE = "altinn"

# Seconds subtracted from expires_in when caching a token
CACHE_SAFETY_MARGIN = 5


def get_cache_ttl(token: TokenResponse) -> timedelta:
    """Time a token may be served from cache."""
    return timedelta(seconds=max(0, token.expires_in - CACHE_SAFETY_MARGIN))


def get_exchange_cache_key(access_token: str, username: Optional[str] = None) -> str:
    """Cache key for an exchanged token."""
    material = access_token + (username or "")
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class MaskinportenService:
    """
    Issues Maskinporten tokens and exchanges them for Altinn tokens.

    One instance is meant to be shared by all logical clients in a process:
    the token cache and the single-flight locks live on the instance.

    Example:
        ```python
        async with MaskinportenService() as service:
            secrets = JwkSecret.from_base64(encoded_jwk)
            settings = ClientSettings(
                client_id="my-client-id",
                environment="ver2",
                scope="altinn:serviceowner/instances.read",
            )
            token = await service.get_token(secrets, settings)
        ```
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        token_cache: Optional[TokenCacheProvider] = None,
        enable_debug_logging: bool = False,
    ):
        """
        Initialize the service.

        Args:
            http_client: HTTP client used for all requests (creates one if not
                provided; an injected client is not closed by ``aclose``)
            token_cache: Token cache (default: in-memory cache)
            enable_debug_logging: Log request details at INFO level
        """
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()
        self._client.headers["Accept"] = "application/json"
        self.token_cache = token_cache or MemoryTokenCacheProvider()
        self.enable_debug_logging = enable_debug_logging
        self._token_locks = KeyedLock()
        self._exchange_locks = KeyedLock()

    async def __aenter__(self) -> "MaskinportenService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def get_token(
        self,
        secrets: ClientSecrets,
        settings: ClientSettings,
        disable_caching: bool = False,
    ) -> TokenResponse:
        """
        Get a Maskinporten access token using the JWT bearer grant.

        Cached tokens are returned without any network call. On a miss the
        request runs under a lock per cache key, so concurrent callers for
        the same client wait for the first fetch and then reuse its result.

        Args:
            secrets: Signing key or certificate
            settings: Client id, environment, scope, resource, consumer org
            disable_caching: Always request a new token (the result is still
                cached)

        Returns:
            Token response from Maskinporten

        Raises:
            ConfigurationError: If the environment or secrets are invalid
            TokenRequestError: If Maskinporten rejects the request
            httpx.HTTPError: On transport failures
        """
        token_endpoint = get_token_endpoint(settings.environment)
        cache_key = settings.cache_key

        if not disable_caching:
            cached = await self._get_cached(cache_key, "get_token")
            if cached is not None:
                return cached

        async with self._token_locks.hold(cache_key):
            if not disable_caching:
                cached = await self._get_cached(cache_key, "get_token")
                if cached is not None:
                    return cached

            self._debug_log("get_token: cache miss or cache disabled")

            assertion = build_assertion(secrets, settings)
            self._debug_log(f"get_token: assertion {assertion}")
            self._debug_log(f"get_token: requesting token from {token_endpoint}")

            response = await self._client.post(
                token_endpoint,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
            )
            token = parse_response(response, TokenResponse)

            self._debug_log(
                f"get_token: received token, expires in {token.expires_in} seconds"
            )
            await self._cache_token(cache_key, token)
            return token

    async def get_token_with_jwk(
        self,
        jwk: Union[JwkSecret, Mapping[str, Any], str],
        settings: ClientSettings,
        disable_caching: bool = False,
    ) -> TokenResponse:
        """Get a token signed with a JWK (JwkSecret, parsed dict or JSON string)."""
        secrets = jwk if isinstance(jwk, JwkSecret) else JwkSecret.from_jwk(jwk)
        return await self.get_token(secrets, settings, disable_caching)

    async def get_token_with_encoded_jwk(
        self,
        encoded_jwk: str,
        settings: ClientSettings,
        disable_caching: bool = False,
    ) -> TokenResponse:
        """Get a token signed with a base64-encoded JWK."""
        return await self.get_token(
            JwkSecret.from_base64(encoded_jwk), settings, disable_caching
        )

    async def get_token_with_certificate(
        self,
        certificate: CertificateSecret,
        settings: ClientSettings,
        disable_caching: bool = False,
    ) -> TokenResponse:
        """Get a token signed with a business certificate."""
        return await self.get_token(certificate, settings, disable_caching)

    async def get_token_for_client(
        self, client_definition: ClientDefinition, disable_caching: bool = False
    ) -> TokenResponse:
        """
        Get the token a client definition asks for.

        The Maskinporten token is exchanged for an Altinn token when the
        client has enterprise user credentials or has
        ``exchange_to_altinn_token`` set.

        Args:
            client_definition: Settings and secrets for the client
            disable_caching: Bypass the cache for every request made

        Returns:
            Maskinporten or Altinn token response
        """
        settings = client_definition.client_settings
        if settings.enable_debug_logging:
            self.enable_debug_logging = True

        secrets = await client_definition.get_client_secrets()
        self._debug_log(f"get_token: client id {settings.client_id}")

        if isinstance(secrets, JwkSecret):
            self._debug_log(f"get_token: using JWK, kid={secrets.key_id}")
        elif isinstance(secrets, CertificateSecret):
            self._debug_log(f"get_token: using certificate, subject={secrets.subject}")
        else:
            raise ConfigurationError(
                f"Client {settings.client_id}: missing client secrets"
            )

        token = await self.get_token(secrets, settings, disable_caching)

        if settings.has_enterprise_credentials:
            self._debug_log("get_token: using enterprise username and password")
            return await self.exchange_to_altinn_token(
                token,
                settings.environment,
                username=settings.enterprise_username,
                password=settings.enterprise_password,
                disable_caching=disable_caching,
            )

        if settings.exchange_to_altinn_token:
            return await self.exchange_to_altinn_token(
                token,
                settings.environment,
                disable_caching=disable_caching,
                is_test_org=bool(settings.use_altinn_test_org),
            )

        return token

    async def exchange_to_altinn_token(
        self,
        token: TokenResponse,
        environment: Union[str, Environment],
        username: Optional[str] = None,
        password: Optional[str] = None,
        disable_caching: bool = False,
        is_test_org: bool = False,
    ) -> TokenResponse:
        """
        Exchange a Maskinporten token for an Altinn token.

        Args:
            token: Maskinporten token to exchange
            environment: Environment the token was issued in
            username: Enterprise user name (sent only together with password)
            password: Enterprise user password
            disable_caching: Always perform the exchange
            is_test_org: Ask Altinn for a test organisation token

        Returns:
            Altinn token, with expires_in and scope taken from ``token``

        Raises:
            ConfigurationError: If the environment is invalid
            TokenRequestError: If Altinn rejects the exchange
            httpx.HTTPError: On transport failures
        """
        exchange_endpoint = get_token_exchange_endpoint(resolve_environment(environment))
        cache_key = get_exchange_cache_key(token.access_token, username)

        if not disable_caching:
            cached = await self._get_cached(cache_key, "exchange_to_altinn_token")
            if cached is not None:
                return cached

        async with self._exchange_locks.hold(cache_key):
            if not disable_caching:
                cached = await self._get_cached(cache_key, "exchange_to_altinn_token")
                if cached is not None:
                    return cached

            self._debug_log("exchange_to_altinn_token: cache miss or cache disabled")

            headers = {"Authorization": f"Bearer {token.access_token}"}
            params = None
            if is_test_org:
                self._debug_log("exchange_to_altinn_token: is_test_org is true")
                params = {"test": "true"}

            if username and password:
                credentials = f"{username}:{password}".encode("utf-8")
                headers[ENTERPRISE_USER_HEADER] = base64.b64encode(credentials).decode(
                    "ascii"
                )
                self._debug_log(
                    f"exchange_to_altinn_token: setting {ENTERPRISE_USER_HEADER}"
                )
            else:
                self._debug_log(
                    f"exchange_to_altinn_token: not setting {ENTERPRISE_USER_HEADER}"
                )

            self._debug_log("exchange_to_altinn_token: attempting token exchange")
            response = await self._client.get(
                exchange_endpoint, headers=headers, params=params
            )
            access_token = parse_response(response, str)

            exchanged = TokenResponse(
                access_token=access_token,
                token_type=ALTINN_TOKEN_TYPE,
                expires_in=token.expires_in,
                scope=token.scope,
            )
            self._debug_log(
                f"exchange_to_altinn_token: received token, "
                f"expires in {exchanged.expires_in} seconds"
            )
            await self._cache_token(cache_key, exchanged)
            return exchanged

    async def _get_cached(self, cache_key: str, operation: str) -> Optional[TokenResponse]:
        found, cached = await self.token_cache.try_get_token(cache_key)
        if found:
            self._debug_log(f"{operation}: returning cached value")
            return cached
        return None

    async def _cache_token(self, cache_key: str, token: TokenResponse) -> None:
        """Cache a token; failures are logged and the token is still returned."""
        try:
            await self.token_cache.set(cache_key, token, get_cache_ttl(token))
        except Exception as e:
            logger.warning(f"Failed to cache token: {e}")

    def _debug_log(self, message: str) -> None:
        if self.enable_debug_logging:
            logger.info(f"[maskinporten_client DEBUG]: {message}")
        else:
            logger.debug(message)
