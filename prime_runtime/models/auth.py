"""
Pydantic models for OAuth2 token handling.

The token endpoint speaks the OAuth2 password grant. Its success body is
parsed into TokenResponse and turned into a Credential with an absolute
expiry so validity checks do not depend on when the response arrived.
"""

from typing import Optional

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """Success body returned by the token endpoint."""
    access_token: str = Field(..., min_length=1, description="Opaque bearer token")
    token_type: str = Field(default="Bearer", description="Token type, normally 'Bearer'")
    expires_in: int = Field(..., ge=0, description="Lifetime of the token in seconds")
    refresh_token: Optional[str] = Field(default=None, description="Optional rotation token")


class Credential(BaseModel):
    """
    A bearer credential with an absolute expiry.

    Credentials are immutable: a refresh replaces the whole object.
    """
    access_token: str = Field(..., repr=False, description="Opaque bearer token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_at: float = Field(..., description="Expiry as epoch seconds")
    refresh_token: Optional[str] = Field(default=None, repr=False, description="Optional rotation token")

    model_config = {"frozen": True}

    @classmethod
    def from_token_response(cls, token: TokenResponse, issued_at: float) -> "Credential":
        """Build a credential from a token response received at ``issued_at``."""
        return cls(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_at=issued_at + token.expires_in,
            refresh_token=token.refresh_token,
        )

    def is_valid(self, now: float, buffer_seconds: float = 0.0) -> bool:
        """Check whether the credential stays valid for ``buffer_seconds`` past ``now``."""
        return now < self.expires_at - buffer_seconds

    def authorization_header(self) -> str:
        """Value for the Authorization header."""
        return f"Bearer {self.access_token}"


class TokenInfo(BaseModel):
    """Summary of the cached credential, safe to log or display."""
    has_token: bool = Field(..., description="Whether a credential is cached")
    expires_in: Optional[int] = Field(default=None, description="Seconds until expiry, if cached")
