# maskinporten_client/auth.py
"""httpx authentication attaching Maskinporten tokens to outgoing requests."""

import logging
import typing

import httpx

from .credentials import ClientDefinition
from .maskinporten_service import MaskinportenService

logger = logging.getLogger(__name__)


class MaskinportenAuth(httpx.Auth):
    """
    Bearer authentication for an ``httpx.AsyncClient``.

    Every request gets ``Authorization: Bearer <token>`` with the token that
    ``client_definition`` resolves to (Maskinporten or exchanged Altinn
    token). Tokens come from the service cache whenever possible.

    Example:
        ```python
        auth = MaskinportenAuth(service, SettingsJwkClientDefinition(settings))
        async with httpx.AsyncClient(auth=auth) as client:
            response = await client.get("https://api.example.no/resource")
        ```
    """

    def __init__(
        self,
        service: MaskinportenService,
        client_definition: ClientDefinition,
        disable_caching: bool = False,
    ):
        self.service = service
        self.client_definition = client_definition
        self.disable_caching = disable_caching

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> typing.Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError("MaskinportenAuth can only be used with httpx.AsyncClient")

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> typing.AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.service.get_token_for_client(
            self.client_definition, disable_caching=self.disable_caching
        )
        request.headers["Authorization"] = token.get_authorization_header()
        logger.debug(
            f"Added Authorization header for {self.client_definition.client_settings.client_id}"
        )
        yield request
