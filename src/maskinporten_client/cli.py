#!/usr/bin/env python3
"""
Simple CLI tool for fetching Maskinporten tokens.

This tool makes it easy to:
- Fetch a Maskinporten access token with a JWK or a business certificate
- Exchange the token for an Altinn token (optionally as an enterprise user)
- Print a signed grant assertion for troubleshooting

Usage:
    maskinporten-token token --env ver2 --client-id <id> --scope <scope> --jwk-file key.json
    maskinporten-token token --env prod --client-id <id> --scope <scope> --cert-file cert.p12 --exchange
    maskinporten-token assertion --env ver2 --client-id <id> --scope <scope> --jwk-file key.json

Secrets are read from the environment:
    MASKINPORTEN_CERTIFICATE_PASSWORD   password for the certificate or key file
    MASKINPORTEN_ENTERPRISE_PASSWORD    password for --enterprise-user
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .assertion import build_assertion
from .client_config import ClientSettings
from .credentials import CertificateSecret, ClientSecrets, JwkSecret
from .errors import ConfigurationError
from .maskinporten_service import MaskinportenService
from .token_types import TokenResponse

CERTIFICATE_PASSWORD_ENV = "MASKINPORTEN_CERTIFICATE_PASSWORD"
ENTERPRISE_PASSWORD_ENV = "MASKINPORTEN_ENTERPRISE_PASSWORD"


def safe_display_token(token: str, prefix_len: int = 20, suffix_len: int = 6) -> str:
    """Safely display a token with most characters redacted."""
    if len(token) <= prefix_len + suffix_len:
        return f"{token[:10]}..."

    prefix = token[:prefix_len]
    suffix = token[-suffix_len:]
    redacted_len = len(token) - prefix_len - suffix_len

    return f"{prefix}...{'*' * min(redacted_len, 20)}...{suffix}"


def print_header(text: str):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(text)
    print("=" * 60)


class CliClientDefinition:
    """Client definition built from command line arguments."""

    def __init__(self, client_settings: ClientSettings, secrets: ClientSecrets):
        self.client_settings = client_settings
        self._secrets = secrets

    async def get_client_secrets(self) -> ClientSecrets:
        return self._secrets


def load_secrets(args: argparse.Namespace) -> ClientSecrets:
    """Load signing material from the source given on the command line."""
    password = os.environ.get(CERTIFICATE_PASSWORD_ENV)

    if args.jwk_file:
        return JwkSecret.from_jwk(Path(args.jwk_file).read_text())
    if args.encoded_jwk:
        return JwkSecret.from_base64(args.encoded_jwk)
    if args.key_file and not args.cert_file:
        return JwkSecret.from_pem(
            Path(args.key_file).read_bytes(), password=password, key_id=args.kid
        )
    if args.cert_file:
        data = Path(args.cert_file).read_bytes()
        if Path(args.cert_file).suffix.lower() in (".p12", ".pfx"):
            return CertificateSecret.from_pkcs12(data, password)
        key_pem = Path(args.key_file).read_bytes() if args.key_file else None
        return CertificateSecret.from_pem(data, key_pem, password)

    raise ConfigurationError(
        "No signing material given: use --jwk-file, --encoded-jwk, --key-file or --cert-file"
    )


def build_settings(args: argparse.Namespace) -> ClientSettings:
    """Build client settings from command line arguments."""
    enterprise_user = getattr(args, "enterprise_user", None)
    return ClientSettings(
        client_id=args.client_id,
        environment=args.env,
        scope=args.scope,
        resource=args.resource,
        consumer_org_no=args.consumer_org,
        enterprise_username=enterprise_user,
        enterprise_password=(
            os.environ.get(ENTERPRISE_PASSWORD_ENV) if enterprise_user else None
        ),
        exchange_to_altinn_token=getattr(args, "exchange", False),
        use_altinn_test_org=getattr(args, "test_org", False),
        enable_debug_logging=args.debug,
    )


async def cmd_token(
    settings: ClientSettings,
    secrets: ClientSecrets,
    disable_caching: bool = False,
    show_token: bool = False,
):
    """Fetch a token and print it."""
    print_header(f"Fetching token for {settings.client_id}")
    print(f"Environment: {settings.environment}")
    print(f"Scope: {settings.scope}")
    if settings.resource:
        print(f"Resource: {settings.resource}")
    if settings.consumer_org_no:
        print(f"Consumer Org: {settings.consumer_org_no}")

    try:
        async with MaskinportenService() as service:
            tokens: TokenResponse = await service.get_token_for_client(
                CliClientDefinition(settings, secrets),
                disable_caching=disable_caching,
            )

        print("\n✅ Token received!")
        if show_token:
            print(f"Access Token: {tokens.access_token}")
        else:
            print(f"Access Token: {safe_display_token(tokens.access_token)}")
        print(f"Token Type: {tokens.token_type}")
        print(f"Expires In: {tokens.expires_in} seconds")
        if tokens.scope:
            print(f"Scopes: {tokens.scope}")

        return 0

    except Exception as e:
        print(f"\n❌ Token request failed: {e}")
        return 1


def cmd_assertion(settings: ClientSettings, secrets: ClientSecrets):
    """Print a freshly signed grant assertion."""
    try:
        assertion = build_assertion(secrets, settings)
    except Exception as e:
        print(f"❌ Unable to build assertion: {e}")
        return 1

    print(assertion)
    return 0


def _add_client_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env", required=True, help="Maskinporten environment (prod, ver1, ver2)"
    )
    parser.add_argument("--client-id", required=True, help="Maskinporten client id")
    parser.add_argument("--scope", required=True, help="Space separated scopes")
    parser.add_argument("--resource", help="Audience restriction for the token")
    parser.add_argument(
        "--consumer-org", help="Organisation number to act on behalf of"
    )

    secrets = parser.add_argument_group("signing material")
    secrets.add_argument("--jwk-file", help="Private JWK as a JSON file")
    secrets.add_argument("--encoded-jwk", help="Private JWK as base64 encoded JSON")
    secrets.add_argument(
        "--cert-file", help="Business certificate (.p12/.pfx or PEM)"
    )
    secrets.add_argument(
        "--key-file", help="PEM private key (for a PEM certificate, or on its own)"
    )
    secrets.add_argument("--kid", help="Key id to put in the header with --key-file")


def main(argv: Optional[list[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Maskinporten Token CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  maskinporten-token token --env ver2 --client-id my-client --scope altinn:serviceowner --jwk-file key.json
  maskinporten-token token --env prod --client-id my-client --scope altinn:serviceowner \\
      --cert-file virksomhet.p12 --exchange
  maskinporten-token token --env ver2 --client-id my-client --scope altinn:serviceowner \\
      --jwk-file key.json --enterprise-user 123456789/user
  maskinporten-token assertion --env ver2 --client-id my-client --scope altinn:serviceowner --jwk-file key.json
        """,
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Token command
    token_parser = subparsers.add_parser("token", help="Fetch an access token")
    _add_client_arguments(token_parser)
    token_parser.add_argument(
        "--no-cache", action="store_true", help="Bypass the token cache"
    )
    token_parser.add_argument(
        "--exchange", action="store_true", help="Exchange for an Altinn token"
    )
    token_parser.add_argument(
        "--test-org", action="store_true", help="Request an Altinn test org token"
    )
    token_parser.add_argument(
        "--enterprise-user",
        help=f"Altinn enterprise user (password from ${ENTERPRISE_PASSWORD_ENV})",
    )
    token_parser.add_argument(
        "--show-token", action="store_true", help="Print the full access token"
    )

    # Assertion command
    assertion_parser = subparsers.add_parser(
        "assertion", help="Print a signed grant assertion"
    )
    _add_client_arguments(assertion_parser)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )

    # Execute command
    try:
        settings = build_settings(args)
        secrets = load_secrets(args)

        if args.command == "token":
            return asyncio.run(
                cmd_token(
                    settings,
                    secrets,
                    disable_caching=args.no_cache,
                    show_token=args.show_token,
                )
            )
        elif args.command == "assertion":
            return cmd_assertion(settings, secrets)
        else:  # pragma: no cover
            # This should never be reached due to argparse validation
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\n\n❌ Interrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
