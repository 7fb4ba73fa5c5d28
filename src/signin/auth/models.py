"""Data models for Google identity claims."""

from pydantic import BaseModel, Field


class IdentityProfile(BaseModel):
    """
    Normalized profile derived from a verified Google ID token.

    Attributes:
        subject: Provider-scoped, stable user identifier ('sub' claim)
        email: Email address ('email' claim)
        email_verified: Whether Google verified the email; False when absent
        name: Display name
        given_name: Given name
        family_name: Family name
        picture: Profile picture URL
        locale: Locale tag (e.g. "en")

    Example:
        >>> profile = IdentityProfile(
        ...     subject="110169484474386276334",
        ...     email="alice@example.com",
        ...     email_verified=True,
        ... )
    """

    subject: str = Field(min_length=1)
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None
    locale: str | None = None

    @property
    def email_local_part(self) -> str | None:
        """Substring of the email before '@', or None without an email."""
        if not self.email:
            return None
        return self.email.split("@", 1)[0] or None
