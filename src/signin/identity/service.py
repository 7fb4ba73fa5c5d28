"""End-to-end handling of the Google OAuth callback."""

import logging

from src.signin.auth.exceptions import GENERIC_FAILURE_MESSAGE, GoogleAuthError, NoCredentialSupplied
from src.signin.auth.jwt_validator import IdTokenVerifier
from src.signin.auth.profile import extract_profile
from src.signin.auth.token_exchange import TokenExchanger
from src.signin.identity.linker import IdentityLinker
from src.signin.identity.models import CallbackOutcome, SessionHandle
from src.signin.identity.sessions import SessionIssuer
from src.signin.services.analytics.posthog import PostHogService

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Google authentication successful"


class GoogleCallbackService:
    """
    Sequences code exchange, token verification, account linking, and session
    issuance into one callback.

    Every failure becomes a failed CallbackOutcome with a generic message;
    details only go to the logs. Accounts and links already stored when a
    later step fails are kept, so a retried callback finds them.

    Example:
        >>> service = GoogleCallbackService(exchanger, verifier, linker, issuer)
        >>> outcome = await service.handle(code="4/0AX4XfWh...")
        >>> outcome.success, outcome.username
        (True, 'alice')
    """

    def __init__(
        self,
        exchanger: TokenExchanger,
        verifier: IdTokenVerifier,
        linker: IdentityLinker,
        issuer: SessionIssuer,
        analytics: PostHogService | None = None,
    ):
        self.exchanger = exchanger
        self.verifier = verifier
        self.linker = linker
        self.issuer = issuer
        self.analytics = analytics or PostHogService()

    async def handle(
        self,
        code: str | None = None,
        id_token: str | None = None,
        current_session: SessionHandle | None = None,
    ) -> CallbackOutcome:
        """
        Run the callback flow.

        A supplied ID token is used directly; otherwise the code is exchanged
        for one.

        Args:
            code: Authorization code from the provider redirect
            id_token: ID token obtained by the client directly
            current_session: Session already attached to the caller

        Returns:
            Outcome with the resolved username and, on success, the new session
        """
        try:
            token = (id_token or "").strip()
            if not token:
                if not (code or "").strip():
                    raise NoCredentialSupplied("Neither code nor id_token supplied")
                logger.info("Exchanging authorization code for ID token")
                token = await self.exchanger.exchange(code.strip())

            claims = await self.verifier.verify(token)
            profile = extract_profile(claims)
            logger.info(
                "Google profile extracted",
                extra={"email_verified": profile.email_verified},
            )

            account, link = await self.linker.resolve(profile)
            session = await self.issuer.issue(account, link, current_session)

        except GoogleAuthError as e:
            logger.warning(
                f"Google callback failed: {type(e).__name__}: {e}",
                extra={"error_type": type(e).__name__},
            )
            self.analytics.capture(
                distinct_id="anonymous",
                event="google_login_failed",
                properties={"error": type(e).__name__},
            )
            return CallbackOutcome(username=None, message=e.public_message, success=False)

        except Exception as e:
            logger.error(f"Unexpected error processing Google callback: {e}", exc_info=True)
            self.analytics.capture(
                distinct_id="anonymous",
                event="google_login_failed",
                properties={"error": "unexpected_error"},
            )
            return CallbackOutcome(username=None, message=GENERIC_FAILURE_MESSAGE, success=False)

        self.analytics.capture(
            distinct_id=str(account.id),
            event="google_login_succeeded",
            properties={"provider": link.provider},
        )
        return CallbackOutcome(
            username=account.username,
            message=SUCCESS_MESSAGE,
            success=True,
            session=session,
        )
