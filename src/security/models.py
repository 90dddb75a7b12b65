"""Models for confidential-client identity and exchanged tokens."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from config import IdentitySettings


class DownstreamToken(BaseModel):
    access_token: str = Field(repr=False)
    scope: str
    expires_at: float = Field(description="Unix timestamp")
    token_type: str = Field(default="Bearer")


@dataclass(frozen=True)
class ConfidentialClient:
    """Immutable confidential-client identity used for every exchange."""

    client_id: str
    client_secret: str
    authority: str
    token_endpoint: str

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.client_secret:
            raise ValueError("client_secret must not be empty")
        for name in ("authority", "token_endpoint"):
            parsed = urlparse(getattr(self, name))
            if parsed.scheme != "https" or not parsed.netloc:
                raise ValueError(f"{name} must be an absolute https URL")

    def __repr__(self) -> str:
        return (
            f"ConfidentialClient(client_id={self.client_id!r}, "
            f"authority={self.authority!r})"
        )

    @classmethod
    def from_identity(cls, identity: IdentitySettings) -> "ConfidentialClient":
        return cls(
            client_id=identity.client_id,
            client_secret=identity.client_secret,
            authority=identity.authority,
            token_endpoint=identity.token_endpoint,
        )
