"""Mapping of verified ID token claims to an IdentityProfile."""

from typing import Any

from src.signin.auth.models import IdentityProfile


def _as_bool(value: Any) -> bool:
    # Google has sent email_verified both as a JSON bool and as "true"/"false".
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def extract_profile(claims: dict[str, Any]) -> IdentityProfile:
    """
    Build an IdentityProfile from verified claims.

    An absent or unrecognised ``email_verified`` claim maps to False.

    Args:
        claims: Claims returned by IdTokenVerifier.verify

    Returns:
        Normalized identity profile
    """
    return IdentityProfile(
        subject=str(claims["sub"]),
        email=_as_str(claims.get("email")),
        email_verified=_as_bool(claims.get("email_verified")),
        name=_as_str(claims.get("name")),
        given_name=_as_str(claims.get("given_name")),
        family_name=_as_str(claims.get("family_name")),
        picture=_as_str(claims.get("picture")),
        locale=_as_str(claims.get("locale")),
    )
