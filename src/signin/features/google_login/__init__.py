"""Google sign-in callback endpoint."""

from src.signin.features.google_login.handlers import router

__all__ = ["router"]
