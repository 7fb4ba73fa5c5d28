"""Application configuration using Pydantic Settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # System Configuration
    api_v1_prefix: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    rate_limit_enabled: bool = True

    # Google OAuth Client Configuration
    google_client_id: str = "test-client-id.apps.googleusercontent.com"
    google_client_secret: str = "test-client-secret"
    google_redirect_uri: str = "http://localhost:5173/auth/google/callback"

    # Google Endpoints
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_certs_url: str = "https://www.googleapis.com/oauth2/v3/certs"
    google_issuer: str = "https://accounts.google.com"

    # ID Token Verification Configuration
    jwt_leeway_seconds: int = 10  # Clock skew tolerance
    http_timeout_seconds: float = 10.0

    # Account Provisioning
    default_role: str = "user"
    new_account_title: str = "Newbie Coder"

    # Persistence
    store_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str = "https://test.supabase.co"
    supabase_service_role_key: str = "test-service-role-key"

    # Session Cookie
    session_cookie_name: str = "session_id"
    session_cookie_secure: bool = False
    session_max_age_seconds: int = 60 * 60 * 24 * 7  # 1 week

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"


settings = Settings()
