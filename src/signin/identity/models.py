"""Domain models for local accounts, provider links, and sessions."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

GOOGLE_PROVIDER = "google"

# OAuth-only accounts carry no usable password credential.
NO_PASSWORD = ""


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class LocalAccount(BaseModel):
    """
    Local user account.

    ``id`` is None until the account has been stored.
    """

    id: str | None = None
    username: str
    email: str | None = None
    email_verified: bool = False
    enabled: bool = True
    title: str | None = None
    password_hash: str = NO_PASSWORD
    roles: set[str] = Field(default_factory=set)
    created_at: datetime = Field(default_factory=utcnow)


class ProviderLink(BaseModel):
    """
    Binding of one external identity to at most one local account.

    The pair (provider, subject) is unique across all links. ``account_id`` is
    None only while a linking operation is in progress.
    """

    id: str | None = None
    provider: str = GOOGLE_PROVIDER
    subject: str
    provider_email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    picture_url: str | None = None
    raw_profile: str = "{}"
    account_id: str | None = None
    last_login_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_bound(self) -> bool:
        """Whether the link references a local account."""
        return self.account_id is not None


class SessionHandle(BaseModel):
    """Opaque session issued by a session store."""

    id: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class CallbackOutcome(BaseModel):
    """Uniform result of the Google callback flow."""

    username: str | None = None
    message: str
    success: bool
    session: SessionHandle | None = Field(default=None, exclude=True)

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "username": "alice",
                "message": "Google authentication successful",
                "success": True,
            }
        }
