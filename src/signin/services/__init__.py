"""Shared services module for external integrations."""

from src.signin.services.analytics import PostHogService

__all__ = [
    "PostHogService",
]
