"""Product analytics."""

from src.signin.services.analytics.posthog import PostHogService

__all__ = ["PostHogService"]
