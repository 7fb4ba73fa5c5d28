"""PostHog analytics service for sign-in event tracking."""

import posthog

from src.signin.config import settings


class PostHogService:
    """Service for tracking authentication events via PostHog."""

    def __init__(self) -> None:
        """Initialize PostHog service."""
        if settings.posthog_api_key:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event. A no-op when no API key is configured.

        Args:
            distinct_id: Account id, or "anonymous" before an account is resolved
            event: Event name (e.g., "google_login_succeeded")
            properties: Optional event properties

        Example:
            >>> service = PostHogService()
            >>> service.capture("account-123", "google_login_succeeded", {"provider": "google"})
        """
        if not settings.posthog_api_key:
            return

        posthog.capture(distinct_id=distinct_id, event=event, properties=properties or {})
