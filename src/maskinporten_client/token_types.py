# maskinporten_client/token_types.py
"""Token and error payloads exchanged with the authority."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    """Access token issued by Maskinporten or exchanged by Altinn."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    scope: Optional[str] = None

    def get_authorization_header(self) -> str:
        """Authorization header value for this token."""
        return f"Bearer {self.access_token}"


class ErrorResponse(BaseModel):
    """
    Structured error body returned by the authority.

    Accepts the OAuth wire names (``error``, ``error_description``) as well as
    the ``errorType``/``description`` shape.
    """

    error_type: str = Field(
        validation_alias=AliasChoices("error", "errorType", "error_type")
    )
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("error_description", "description"),
    )

    model_config = ConfigDict(populate_by_name=True)
