# maskinporten_client/credentials.py
"""Credential material and the client definitions that supply it."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

import jwt
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .client_config import ClientSettings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _password_bytes(password: Optional[str]) -> Optional[bytes]:
    return password.encode("utf-8") if password else None


@dataclass(frozen=True)
class JwkSecret:
    """Private signing key, usually loaded from a JSON Web Key."""

    key: Any
    key_id: Optional[str] = None
    algorithm: str = "RS256"

    @classmethod
    def from_jwk(cls, jwk: Union[str, Mapping[str, Any]]) -> "JwkSecret":
        """
        Load a private JWK.

        Args:
            jwk: JWK as a JSON string or an already parsed mapping

        Returns:
            JwkSecret wrapping the private key

        Raises:
            ConfigurationError: If the JWK cannot be parsed
        """
        try:
            data = json.loads(jwk) if isinstance(jwk, str) else dict(jwk)
            parsed = jwt.PyJWK(data)
        except (ValueError, TypeError, AttributeError, jwt.exceptions.PyJWTError) as e:
            raise ConfigurationError(f"Invalid JWK: {e}") from e

        return cls(
            key=parsed.key,
            key_id=parsed.key_id,
            algorithm=data.get("alg") or "RS256",
        )

    @classmethod
    def from_base64(cls, encoded_jwk: str) -> "JwkSecret":
        """Load a private JWK given as base64-encoded JSON."""
        try:
            compact = "".join(encoded_jwk.split())
            decoded = base64.b64decode(compact, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Invalid base64-encoded JWK: {e}") from e
        return cls.from_jwk(decoded)

    @classmethod
    def from_pem(
        cls,
        pem: bytes,
        password: Optional[str] = None,
        key_id: Optional[str] = None,
        algorithm: str = "RS256",
    ) -> "JwkSecret":
        """Load a PEM-encoded private key."""
        try:
            key = serialization.load_pem_private_key(
                pem, password=_password_bytes(password)
            )
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid private key: {e}") from e
        return cls(key=key, key_id=key_id, algorithm=algorithm)


@dataclass(frozen=True)
class CertificateSecret:
    """X.509 business certificate together with its private key."""

    certificate: x509.Certificate
    private_key: Any

    @property
    def der_base64(self) -> str:
        """Certificate DER bytes, base64 encoded (an ``x5c`` entry)."""
        der = self.certificate.public_bytes(serialization.Encoding.DER)
        return base64.b64encode(der).decode("ascii")

    @property
    def subject(self) -> str:
        """Certificate subject as an RFC 4514 string."""
        return self.certificate.subject.rfc4514_string()

    @classmethod
    def from_pem(
        cls,
        certificate_pem: bytes,
        private_key_pem: Optional[bytes] = None,
        password: Optional[str] = None,
    ) -> "CertificateSecret":
        """
        Load a PEM certificate and private key.

        When ``private_key_pem`` is omitted the key is read from
        ``certificate_pem``, which then has to hold both blocks.
        """
        try:
            certificate = x509.load_pem_x509_certificate(certificate_pem)
            private_key = serialization.load_pem_private_key(
                private_key_pem or certificate_pem, password=_password_bytes(password)
            )
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid certificate or private key: {e}") from e
        return cls(certificate=certificate, private_key=private_key)

    @classmethod
    def from_pkcs12(
        cls, data: bytes, password: Optional[str] = None
    ) -> "CertificateSecret":
        """Load a PKCS#12 (.p12/.pfx) bundle."""
        try:
            private_key, certificate, _ = pkcs12.load_key_and_certificates(
                data, _password_bytes(password)
            )
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid PKCS#12 bundle: {e}") from e

        if private_key is None or certificate is None:
            raise ConfigurationError(
                "PKCS#12 bundle must contain both a certificate and a private key"
            )
        return cls(certificate=certificate, private_key=private_key)


ClientSecrets = Union[JwkSecret, CertificateSecret]


@runtime_checkable
class ClientDefinition(Protocol):
    """Supplies settings and credential material for one logical client."""

    client_settings: ClientSettings

    async def get_client_secrets(self) -> ClientSecrets: ...


def _read_file(path: str) -> bytes:
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Unable to read {path}: {e}") from e


class SettingsJwkClientDefinition:
    """Client definition reading a JWK from ``encoded_jwk`` or ``jwk_path``."""

    def __init__(self, client_settings: ClientSettings):
        self.client_settings = client_settings
        self._secrets: Optional[JwkSecret] = None

    async def get_client_secrets(self) -> ClientSecrets:
        if self._secrets is None:
            settings = self.client_settings
            if settings.encoded_jwk:
                self._secrets = JwkSecret.from_base64(settings.encoded_jwk)
            elif settings.jwk_path:
                logger.debug(f"Loading JWK from {settings.jwk_path}")
                self._secrets = JwkSecret.from_jwk(
                    _read_file(settings.jwk_path).decode("utf-8")
                )
            else:
                raise ConfigurationError(
                    f"Client {settings.client_id}: encoded_jwk or jwk_path is required"
                )
        return self._secrets


class SettingsCertificateClientDefinition:
    """
    Client definition reading a certificate from ``certificate_path``.

    ``.p12``/``.pfx`` files are read as PKCS#12 bundles. Anything else is read
    as PEM, with the private key taken from ``private_key_path`` or, when that
    is unset, from the certificate file itself.
    """

    def __init__(self, client_settings: ClientSettings):
        self.client_settings = client_settings
        self._secrets: Optional[CertificateSecret] = None

    async def get_client_secrets(self) -> ClientSecrets:
        if self._secrets is None:
            settings = self.client_settings
            if not settings.certificate_path:
                raise ConfigurationError(
                    f"Client {settings.client_id}: certificate_path is required"
                )

            logger.debug(f"Loading certificate from {settings.certificate_path}")
            data = _read_file(settings.certificate_path)
            if Path(settings.certificate_path).suffix.lower() in (".p12", ".pfx"):
                self._secrets = CertificateSecret.from_pkcs12(
                    data, settings.certificate_password
                )
            else:
                key_pem = (
                    _read_file(settings.private_key_path)
                    if settings.private_key_path
                    else None
                )
                self._secrets = CertificateSecret.from_pem(
                    data, key_pem, settings.certificate_password
                )
        return self._secrets
