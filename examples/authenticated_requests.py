#!/usr/bin/env python3
"""
Maskinporten token example.

This example demonstrates:
1. Fetching a Maskinporten token with a JWK from the environment
2. Token caching (the second request is served from cache)
3. Exchanging the token for an Altinn token
4. Calling an API with MaskinportenAuth

Configure with environment variables:
    MASKINPORTEN_CLIENT_ID, MASKINPORTEN_ENVIRONMENT, MASKINPORTEN_SCOPE,
    MASKINPORTEN_ENCODED_JWK (base64 encoded private JWK)
    API_URL (optional, an API accepting the token)
"""

import asyncio
import logging
import os

import httpx

from maskinporten_client import (
    ClientSettings,
    MaskinportenAuth,
    MaskinportenService,
    SettingsJwkClientDefinition,
    TokenRequestError,
)
from maskinporten_client.cli import safe_display_token


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


async def main():
    logging.basicConfig(level=logging.INFO)

    settings = ClientSettings.from_env()
    client_definition = SettingsJwkClientDefinition(settings)

    async with MaskinportenService() as service:
        print_section("Example 1: Maskinporten token")
        try:
            tokens = await service.get_token_for_client(client_definition)
        except TokenRequestError as e:
            print(f"❌ Token request failed ({e.error_type}): {e.description}")
            return

        print(f"✅ Access Token: {safe_display_token(tokens.access_token)}")
        print(f"   Expires In: {tokens.expires_in} seconds")

        print_section("Example 2: Cached token")
        cached = await service.get_token_for_client(client_definition)
        print(f"✅ Same token from cache: {cached == tokens}")

        print_section("Example 3: Altinn token exchange")
        try:
            altinn = await service.exchange_to_altinn_token(tokens, settings.environment)
            print(f"✅ Altinn Token: {safe_display_token(altinn.access_token)}")
        except TokenRequestError as e:
            print(f"⚠️  Exchange failed: {e.description}")

        api_url = os.environ.get("API_URL")
        if api_url:
            print_section("Example 4: Authenticated request")
            auth = MaskinportenAuth(service, client_definition)
            async with httpx.AsyncClient(auth=auth) as client:
                response = await client.get(api_url)
                print(f"Status: {response.status_code}")


if __name__ == "__main__":
    asyncio.run(main())
