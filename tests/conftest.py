"""Shared fixtures: signing keys, certificates and a fake authority."""

import datetime
import json
import urllib.parse
from typing import Callable, List

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from maskinporten_client.client_config import ClientSettings
from maskinporten_client.credentials import CertificateSecret, JwkSecret
from maskinporten_client.maskinporten_service import MaskinportenService

TOKEN_PATH = "/token"
EXCHANGE_PATH = "/authentication/api/v1/exchange/maskinporten"


@pytest.fixture(scope="session")
def rsa_key():
    """Provide an RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_jwk(rsa_key):
    """Provide the RSA key as a private JWK dict."""
    jwk = json.loads(jwt.algorithms.RSAAlgorithm.to_jwk(rsa_key))
    jwk["kid"] = "test-kid"
    jwk["alg"] = "RS256"
    return jwk


@pytest.fixture
def jwk_secret(private_jwk):
    """Provide a JwkSecret."""
    return JwkSecret.from_jwk(private_jwk)


@pytest.fixture(scope="session")
def certificate(rsa_key):
    """Provide a self-signed business certificate for the RSA key."""
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "NO"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Virksomhet AS"),
            x509.NameAttribute(NameOID.SERIAL_NUMBER, "123456789"),
        ]
    )
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(rsa_key, hashes.SHA256())
    )


@pytest.fixture
def certificate_secret(certificate, rsa_key):
    """Provide a CertificateSecret."""
    return CertificateSecret(certificate=certificate, private_key=rsa_key)


@pytest.fixture
def settings():
    """Provide client settings for ver2."""
    return ClientSettings(
        client_id="test-client-id",
        environment="ver2",
        scope="altinn:serviceowner/instances.read",
    )


def read_form(request: httpx.Request) -> dict:
    """Decode a form-urlencoded request body."""
    return dict(urllib.parse.parse_qsl(request.content.decode()))


def read_assertion_claims(request: httpx.Request) -> dict:
    """Claims of the assertion posted in a token request (unverified)."""
    assertion = read_form(request)["assertion"]
    return jwt.decode(assertion, options={"verify_signature": False})


class FakeAuthority:
    """
    Stands in for Maskinporten and the Altinn exchange endpoint.

    Token requests get a token named after the request count and the
    assertion scope; exchange requests get a bare JSON string.
    """

    def __init__(self, expires_in: int = 120):
        self.expires_in = expires_in
        self.requests: List[httpx.Request] = []

    @property
    def token_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == TOKEN_PATH]

    @property
    def exchange_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == EXCHANGE_PATH]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            scope = read_assertion_claims(request)["scope"]
            return httpx.Response(
                200,
                json={
                    "access_token": f"mp-token-{len(self.requests)}-{scope}",
                    "token_type": "Bearer",
                    "expires_in": self.expires_in,
                    "scope": scope,
                },
            )
        if request.url.path == EXCHANGE_PATH:
            return httpx.Response(200, json=f"altinn-token-{len(self.requests)}")
        return httpx.Response(404)


@pytest.fixture
def authority():
    """Provide a fake authority."""
    return FakeAuthority()


@pytest.fixture
def make_service() -> Callable[..., MaskinportenService]:
    """Provide a factory for services talking to a mock transport."""

    def _make(handler, **kwargs) -> MaskinportenService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return MaskinportenService(http_client=client, **kwargs)

    return _make


@pytest.fixture
def service(make_service, authority):
    """Provide a service backed by the fake authority."""
    return make_service(authority)
