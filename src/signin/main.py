"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.signin.auth.jwks import KeySetCache
from src.signin.auth.jwt_validator import IdTokenVerifier
from src.signin.auth.token_exchange import TokenExchanger
from src.signin.config import settings
from src.signin.features.google_login import router as google_login_router
from src.signin.features.google_login.dependencies import set_callback_service
from src.signin.identity.linker import IdentityLinker
from src.signin.identity.service import GoogleCallbackService
from src.signin.identity.sessions import SessionIssuer
from src.signin.services.rate_limiter import limiter
from src.signin.stores.base import LinkStore, SessionStore, UserStore

logger = logging.getLogger(__name__)


def build_stores() -> tuple[UserStore, LinkStore, SessionStore]:
    """Create the account, link and session stores for the configured backend."""
    if settings.store_backend == "supabase":
        from src.signin.stores.supabase import (
            SupabaseLinkStore,
            SupabaseSessionStore,
            SupabaseUserStore,
        )

        return SupabaseUserStore(), SupabaseLinkStore(), SupabaseSessionStore()

    from src.signin.stores.memory import (
        InMemoryLinkStore,
        InMemorySessionStore,
        InMemoryUserStore,
    )

    logger.warning("Using in-memory stores; accounts are lost on restart")
    return InMemoryUserStore(), InMemoryLinkStore(), InMemorySessionStore()


def build_callback_service(
    http_client: httpx.AsyncClient,
    users: UserStore,
    links: LinkStore,
    sessions: SessionStore,
) -> GoogleCallbackService:
    """Assemble the Google callback service graph from settings."""
    key_cache = KeySetCache(settings.google_certs_url, http_client=http_client)
    verifier = IdTokenVerifier(
        key_cache=key_cache,
        issuer=settings.google_issuer,
        audience=settings.google_client_id,
        leeway=settings.jwt_leeway_seconds,
    )
    exchanger = TokenExchanger(
        token_url=settings.google_token_url,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        http_client=http_client,
    )
    linker = IdentityLinker(
        users,
        links,
        default_role=settings.default_role,
        new_account_title=settings.new_account_title,
    )
    return GoogleCallbackService(exchanger, verifier, linker, SessionIssuer(sessions))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds, read=30.0)
    )
    try:
        users, links, sessions = build_stores()
        set_callback_service(
            build_callback_service(http_client, users, links, sessions), sessions
        )
        logger.info(
            "Google callback service initialized",
            extra={"store_backend": settings.store_backend, "certs_url": settings.google_certs_url},
        )
    except Exception as e:
        logger.error(
            f"Failed to initialize Google callback service: {e}",
            exc_info=True,
            extra={"error_type": "service_init_failed"},
        )
        await http_client.aclose()
        raise

    yield

    await http_client.aclose()
    logger.info("HTTP client closed")


app = FastAPI(
    title="Sign-in API",
    description="Google sign-in and account linking",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = settings.cors_origins.split(",")
logger.info(f"Origins : {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(google_login_router, prefix=settings.api_v1_prefix, tags=["auth"])


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
