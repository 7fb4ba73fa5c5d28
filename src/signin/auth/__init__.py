"""Google ID token acquisition and verification."""

from src.signin.auth.exceptions import GoogleAuthError
from src.signin.auth.jwks import KeySetCache
from src.signin.auth.jwt_validator import IdTokenVerifier
from src.signin.auth.models import IdentityProfile
from src.signin.auth.profile import extract_profile
from src.signin.auth.token_exchange import TokenExchanger

__all__ = [
    "GoogleAuthError",
    "KeySetCache",
    "IdTokenVerifier",
    "IdentityProfile",
    "extract_profile",
    "TokenExchanger",
]
