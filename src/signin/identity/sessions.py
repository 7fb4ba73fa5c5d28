"""Session establishment after a successful Google sign-in."""

import logging

from src.signin.auth.exceptions import SessionIssuanceFailed
from src.signin.identity.models import LocalAccount, ProviderLink, SessionHandle
from src.signin.stores.base import SessionStore

logger = logging.getLogger(__name__)


class SessionIssuer:
    """Issues a fresh session per sign-in, invalidating the caller's previous one."""

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    async def issue(
        self,
        account: LocalAccount,
        link: ProviderLink | None,
        current: SessionHandle | None = None,
    ) -> SessionHandle:
        """
        Create a session bound to ``account``.

        Roles are copied at issuance time; later role changes do not reach an
        already issued session.

        Args:
            account: Resolved local account
            link: Provider link used for this sign-in
            current: Session already attached to the caller, invalidated first

        Returns:
            The new session handle

        Raises:
            SessionIssuanceFailed: If the session store cannot create the session
        """
        if current is not None:
            await self.sessions.invalidate(current)
            logger.info("Previous session invalidated", extra={"account_id": account.id})

        attributes = {
            "username": account.username,
            "account_id": account.id,
            "provider_link_id": link.id if link is not None else None,
            "roles": sorted(account.roles),
        }
        try:
            handle = await self.sessions.create_session(attributes)
        except Exception as e:
            logger.error(
                f"Session creation failed: {e}",
                exc_info=True,
                extra={"account_id": account.id, "error_type": "session_issuance_failed"},
            )
            raise SessionIssuanceFailed("Session could not be created") from e

        logger.info(
            f"Session created for user: {account.username}",
            extra={"account_id": account.id, "provider_link_id": attributes["provider_link_id"]},
        )
        return handle
