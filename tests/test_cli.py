"""Tests for CLI module."""

import base64
import json
from unittest.mock import AsyncMock, patch

import jwt
import pytest
from cryptography.hazmat.primitives import serialization

from maskinporten_client.cli import (
    CliClientDefinition,
    cmd_assertion,
    cmd_token,
    main,
    print_header,
    safe_display_token,
)
from maskinporten_client.credentials import CertificateSecret, JwkSecret
from maskinporten_client.errors import TokenRequestError
from maskinporten_client.token_types import TokenResponse


class TestSafeDisplayToken:
    """Test token display redaction."""

    def test_short_token(self):
        """Test redaction of short tokens."""
        token = "short123"
        result = safe_display_token(token)
        assert result == "short123..."
        assert "..." in result

    def test_normal_token(self):
        """Test redaction of normal length tokens."""
        token = "a" * 50
        result = safe_display_token(token)
        assert result.startswith("a" * 20)
        assert result.endswith("a" * 6)
        assert "..." in result
        assert "*" in result

    def test_long_token(self):
        """Test redaction of long tokens."""
        token = "x" * 100
        result = safe_display_token(token, prefix_len=10, suffix_len=4)
        assert result.startswith("x" * 10)
        assert result.endswith("x" * 4)
        assert "..." in result
        assert "*" in result


class TestPrintHeader:
    """Test header printing."""

    def test_print_header(self, capsys):
        """Test header is formatted correctly."""
        print_header("Test Header")
        captured = capsys.readouterr()
        assert "Test Header" in captured.out
        assert "=" * 60 in captured.out


class TestCmdToken:
    """Test token command."""

    @pytest.fixture
    def mock_service(self):
        """Patch MaskinportenService in the CLI module."""
        with patch("maskinporten_client.cli.MaskinportenService") as mock_service_class:
            mock_service_class.return_value.__aexit__.return_value = False
            service = mock_service_class.return_value.__aenter__.return_value
            yield service

    async def test_token_success(self, mock_service, settings, jwk_secret, capsys):
        """Test successful token fetch."""
        mock_tokens = TokenResponse(
            access_token="test_access_token_1234567890_abcdefghij",
            token_type="Bearer",
            expires_in=120,
            scope="altinn:serviceowner",
        )
        mock_service.get_token_for_client = AsyncMock(return_value=mock_tokens)

        result = await cmd_token(settings, jwk_secret)

        assert result == 0
        call_args = mock_service.get_token_for_client.call_args
        definition = call_args[0][0]
        assert isinstance(definition, CliClientDefinition)
        assert definition.client_settings == settings
        assert call_args[1]["disable_caching"] is False

        out = capsys.readouterr().out
        assert "Token received" in out
        assert mock_tokens.access_token not in out
        assert "Expires In: 120 seconds" in out

    async def test_token_show_token(self, mock_service, settings, jwk_secret, capsys):
        """Test the full token is printed with show_token."""
        mock_service.get_token_for_client = AsyncMock(
            return_value=TokenResponse(access_token="full_token_value" * 3)
        )

        result = await cmd_token(settings, jwk_secret, show_token=True)

        assert result == 0
        assert "full_token_value" * 3 in capsys.readouterr().out

    async def test_token_failure(self, mock_service, settings, jwk_secret, capsys):
        """Test token request failure."""
        mock_service.get_token_for_client = AsyncMock(
            side_effect=TokenRequestError("Scope not allowed", "invalid_scope", 400)
        )

        result = await cmd_token(settings, jwk_secret)

        assert result == 1
        assert "Scope not allowed" in capsys.readouterr().out


class TestCmdAssertion:
    """Test assertion command."""

    def test_prints_assertion(self, settings, jwk_secret, capsys):
        result = cmd_assertion(settings, jwk_secret)

        assert result == 0
        assertion = capsys.readouterr().out.strip()
        claims = jwt.decode(assertion, options={"verify_signature": False})
        assert claims["iss"] == settings.client_id

    def test_invalid_environment(self, settings, jwk_secret, capsys):
        settings = settings.model_copy(update={"environment": "staging"})

        result = cmd_assertion(settings, jwk_secret)

        assert result == 1
        assert "Invalid environment" in capsys.readouterr().out


class TestMain:
    """Test main entry point."""

    @pytest.fixture
    def jwk_file(self, tmp_path, private_jwk):
        """Write the private JWK to a file."""
        path = tmp_path / "jwk.json"
        path.write_text(json.dumps(private_jwk))
        return path

    def client_args(self, *extra):
        return [
            "--env",
            "ver2",
            "--client-id",
            "cli-client",
            "--scope",
            "altinn:serviceowner",
            *extra,
        ]

    def test_no_command(self, capsys):
        """Test main with no command."""
        result = main([])
        assert result == 1

    def test_assertion_command(self, jwk_file, capsys):
        result = main(["assertion", *self.client_args("--jwk-file", str(jwk_file))])

        assert result == 0
        assertion = capsys.readouterr().out.strip()
        assert jwt.get_unverified_header(assertion)["kid"] == "test-kid"

    def test_encoded_jwk(self, private_jwk, capsys):
        encoded = base64.b64encode(json.dumps(private_jwk).encode()).decode()

        result = main(["assertion", *self.client_args("--encoded-jwk", encoded)])

        assert result == 0

    def test_missing_signing_material(self, capsys):
        result = main(["assertion", *self.client_args()])

        assert result == 1
        assert "No signing material" in capsys.readouterr().out

    def test_token_command(self, jwk_file):
        with patch("maskinporten_client.cli.cmd_token", new_callable=AsyncMock) as mock_cmd:
            mock_cmd.return_value = 0

            result = main(
                [
                    "token",
                    *self.client_args(
                        "--jwk-file", str(jwk_file), "--no-cache", "--exchange", "--test-org"
                    ),
                ]
            )

        assert result == 0
        settings, secrets = mock_cmd.call_args[0]
        assert isinstance(secrets, JwkSecret)
        assert settings.client_id == "cli-client"
        assert settings.exchange_to_altinn_token is True
        assert settings.use_altinn_test_org is True
        assert mock_cmd.call_args[1] == {"disable_caching": True, "show_token": False}

    def test_enterprise_password_from_environment(self, jwk_file, monkeypatch):
        monkeypatch.setenv("MASKINPORTEN_ENTERPRISE_PASSWORD", "pw")

        with patch("maskinporten_client.cli.cmd_token", new_callable=AsyncMock) as mock_cmd:
            mock_cmd.return_value = 0
            main(
                [
                    "token",
                    *self.client_args("--jwk-file", str(jwk_file), "--enterprise-user", "user"),
                ]
            )

        settings = mock_cmd.call_args[0][0]
        assert settings.enterprise_username == "user"
        assert settings.enterprise_password == "pw"
        assert settings.has_enterprise_credentials

    def test_certificate_pem(self, tmp_path, certificate, rsa_key):
        cert_path = tmp_path / "cert.pem"
        key_path = tmp_path / "key.pem"
        cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
        key_path.write_bytes(
            rsa_key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )

        with patch("maskinporten_client.cli.cmd_token", new_callable=AsyncMock) as mock_cmd:
            mock_cmd.return_value = 0
            result = main(
                [
                    "token",
                    *self.client_args(
                        "--cert-file", str(cert_path), "--key-file", str(key_path)
                    ),
                ]
            )

        assert result == 0
        assert isinstance(mock_cmd.call_args[0][1], CertificateSecret)

    def test_keyboard_interrupt(self, jwk_file):
        with patch("maskinporten_client.cli.load_secrets", side_effect=KeyboardInterrupt):
            result = main(["token", *self.client_args("--jwk-file", str(jwk_file))])

        assert result == 130
