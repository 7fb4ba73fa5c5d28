"""Custom exceptions for Google sign-in and account linking."""

GENERIC_FAILURE_MESSAGE = "Google authentication failed"


class GoogleAuthError(Exception):
    """
    Base exception for all failures of the Google callback flow.

    The exception message is meant for logs. ``public_message`` is what a
    caller may be shown and never carries token, key, or claim details.
    """

    public_message = GENERIC_FAILURE_MESSAGE


class NoCredentialSupplied(GoogleAuthError):
    """Raised when a callback carries neither an authorization code nor an ID token."""

    public_message = "No valid token provided"


class CodeExchangeFailed(GoogleAuthError):
    """Raised when the token endpoint rejects the code or returns no id_token."""

    pass


class KeyFetchFailed(GoogleAuthError):
    """Raised when the provider key set cannot be fetched or parsed."""

    pass


class TokenVerificationError(GoogleAuthError):
    """Base exception for ID token rejections."""

    pass


class MalformedToken(TokenVerificationError):
    """Raised when a token cannot be parsed or lacks a usable header."""

    pass


class UnknownSigningKey(TokenVerificationError):
    """Raised when the token's key id is absent from a freshly fetched key set."""

    pass


class SignatureInvalid(TokenVerificationError):
    """Raised when the token signature does not verify against the resolved key."""

    pass


class IssuerMismatch(TokenVerificationError):
    """Raised when the iss claim is not the provider's issuer."""

    pass


class AudienceMismatch(TokenVerificationError):
    """Raised when the aud claim is not this application's client id."""

    pass


class TokenExpired(TokenVerificationError):
    """Raised when the exp claim is missing or in the past."""

    pass


class LinkingConflict(GoogleAuthError):
    """Raised when a concurrent link insert still conflicts after the single retry."""

    pass


class AccountPersistenceFailed(GoogleAuthError):
    """Raised when a local account cannot be loaded or stored."""

    pass


class SessionIssuanceFailed(GoogleAuthError):
    """Raised when the session store cannot create the new session."""

    pass
