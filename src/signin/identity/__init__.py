"""Account linking and session issuance for Google sign-in."""

from src.signin.identity.models import CallbackOutcome, LocalAccount, ProviderLink, SessionHandle

__all__ = [
    "LocalAccount",
    "ProviderLink",
    "SessionHandle",
    "CallbackOutcome",
]
