"""API handlers for Google sign-in."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from src.signin.config import settings
from src.signin.features.google_login.dependencies import (
    get_callback_service,
    get_current_session,
)
from src.signin.features.google_login.models import GoogleCallbackRequest
from src.signin.identity.models import CallbackOutcome, SessionHandle
from src.signin.identity.service import GoogleCallbackService
from src.signin.services.rate_limiter import auth_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/google/callback", response_model=CallbackOutcome)
@auth_rate_limit
async def google_callback(
    request: Request,
    response: Response,
    body: GoogleCallbackRequest,
    service: GoogleCallbackService = Depends(get_callback_service),
    current_session: SessionHandle | None = Depends(get_current_session),
) -> CallbackOutcome:
    """
    Complete a Google sign-in.

    Accepts either an authorization code (exchanged server-side) or an ID
    token. On success the caller's previous session is replaced and the new
    session id is set as an HTTP-only cookie.

    Returns:
        200 with the outcome on success, 401 with a generic message otherwise

    Example Response:
        {
            "username": "alice",
            "message": "Google authentication successful",
            "success": true
        }
    """
    outcome = await service.handle(
        code=body.code, id_token=body.id_token, current_session=current_session
    )

    if not outcome.success:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return outcome

    response.set_cookie(
        settings.session_cookie_name,
        outcome.session.id,
        max_age=settings.session_max_age_seconds,
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="lax",
        path="/",
    )
    logger.info(f"Google sign-in completed for {outcome.username}")
    return outcome
