# maskinporten_client/client_config.py
"""Per-client settings."""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigurationError


class ClientSettings(BaseModel):
    """
    Settings for one logical Maskinporten client.

    The identity fields (client_id, environment, scope, resource,
    consumer_org_no) decide what token is requested. The credential fields
    are only read by the settings-driven client definitions in
    ``credentials``.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    environment: str
    scope: str
    resource: Optional[str] = None
    consumer_org_no: Optional[str] = None

    # Altinn token exchange
    enterprise_username: Optional[str] = None
    enterprise_password: Optional[str] = None
    exchange_to_altinn_token: bool = False
    use_altinn_test_org: Optional[bool] = None

    enable_debug_logging: bool = False

    # Credential sources
    encoded_jwk: Optional[str] = None
    jwk_path: Optional[str] = None
    certificate_path: Optional[str] = None
    private_key_path: Optional[str] = None
    certificate_password: Optional[str] = None

    @property
    def cache_key(self) -> str:
        """Cache key for tokens issued with these settings."""
        return (
            f"{self.client_id}-{self.scope}-"
            f"{self.resource or ''}-{self.consumer_org_no or ''}"
        )

    @property
    def has_enterprise_credentials(self) -> bool:
        """True when both enterprise username and password are set."""
        return bool(self.enterprise_username) and bool(self.enterprise_password)

    @classmethod
    def from_env(
        cls, prefix: str = "MASKINPORTEN_", environ: Optional[Dict[str, str]] = None
    ) -> "ClientSettings":
        """
        Build settings from environment variables.

        Each field maps to ``<prefix><FIELD_NAME>`` in upper case, e.g.
        ``MASKINPORTEN_CLIENT_ID`` or ``MASKINPORTEN_CONSUMER_ORG_NO``.
        Unset variables fall back to the field defaults.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read from (default: os.environ)

        Returns:
            ClientSettings instance

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        source = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for name in cls.model_fields:
            value = source.get(f"{prefix}{name.upper()}")
            if value is not None and value != "":
                data[name] = value
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid client settings in environment (prefix {prefix}): {e}"
            ) from e
