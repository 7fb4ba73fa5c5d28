"""Resolution of a Google identity to exactly one local account."""

import json
import logging
from dataclasses import dataclass
from enum import Enum

from src.signin.auth.exceptions import AccountPersistenceFailed, LinkingConflict
from src.signin.auth.models import IdentityProfile
from src.signin.identity.models import (
    GOOGLE_PROVIDER,
    NO_PASSWORD,
    LocalAccount,
    ProviderLink,
    utcnow,
)
from src.signin.stores.base import DuplicateRecordError, LinkStore, StoreError, UserStore

logger = logging.getLogger(__name__)

FALLBACK_USERNAME = "user"
ACCOUNT_SAVE_ATTEMPTS = 3


class LinkAction(str, Enum):
    """Branch taken by the linking procedure."""

    EXISTING_BOUND = "existing_bound"
    EXISTING_UNBOUND = "existing_unbound"
    AUTO_LINK = "auto_link"
    CREATE_NEW = "create_new"


@dataclass(frozen=True)
class LinkDecision:
    """
    Outcome of classifying a profile against stored state.

    ``link`` is the stored link when one exists. ``account`` is the account an
    AUTO_LINK decision binds to.
    """

    action: LinkAction
    link: ProviderLink | None = None
    account: LocalAccount | None = None


def decide(
    link: ProviderLink | None,
    profile: IdentityProfile,
    email_match: LocalAccount | None,
) -> LinkDecision:
    """
    Classify a sign-in into one linking branch.

    Precedence: a bound link wins; then a verified-email match auto-links
    (whether or not an unbound link exists); then an unbound link is resumed
    with a new account; otherwise everything is created.

    Args:
        link: Stored link for (provider, subject), if any
        profile: Verified identity profile
        email_match: Account holding the profile email, if any

    Returns:
        The decision
    """
    if link is not None and link.is_bound:
        return LinkDecision(LinkAction.EXISTING_BOUND, link=link)
    if profile.email_verified and email_match is not None:
        return LinkDecision(LinkAction.AUTO_LINK, link=link, account=email_match)
    if link is not None:
        return LinkDecision(LinkAction.EXISTING_UNBOUND, link=link)
    return LinkDecision(LinkAction.CREATE_NEW)


def raw_profile_snapshot(profile: IdentityProfile) -> str:
    """Serialize the profile claims, falling back to "{}" on failure."""
    try:
        return json.dumps(
            {
                "sub": profile.subject,
                "email": profile.email,
                "email_verified": profile.email_verified,
                "name": profile.name,
                "given_name": profile.given_name,
                "family_name": profile.family_name,
                "picture": profile.picture,
                "locale": profile.locale,
            }
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to serialize raw profile: {e}")
        return "{}"


class IdentityLinker:
    """
    Finds or creates the local account for a verified Google identity.

    Each resolution runs inside the link store's atomic region. A unique
    conflict on the (provider, subject) insert means a concurrent request won
    the race; the lookup is then retried once. Binding is a compare-and-set,
    so when concurrent resolutions both reach an unbound link only the first
    bind sticks and the others discard the account they created and join the
    winner's.

    Example:
        >>> linker = IdentityLinker(users, links)
        >>> account, link = await linker.resolve(profile)
    """

    def __init__(
        self,
        users: UserStore,
        links: LinkStore,
        default_role: str = "user",
        new_account_title: str | None = None,
        provider: str = GOOGLE_PROVIDER,
    ):
        self.users = users
        self.links = links
        self.default_role = default_role
        self.new_account_title = new_account_title
        self.provider = provider

    async def resolve(self, profile: IdentityProfile) -> tuple[LocalAccount, ProviderLink]:
        """
        Resolve a profile to (account, link), creating either as needed.

        Raises:
            LinkingConflict: If the link insert still conflicts after one retry
            AccountPersistenceFailed: If an account cannot be loaded or stored
        """
        try:
            return await self._resolve_once(profile)
        except DuplicateRecordError:
            logger.warning(
                "Concurrent link creation detected, retrying lookup",
                extra={"provider": self.provider, "error_type": "linking_conflict"},
            )

        try:
            account, link = await self._resolve_once(profile)
        except DuplicateRecordError as e:
            raise LinkingConflict("Link creation conflicted twice") from e

        return account, link

    async def _resolve_once(
        self, profile: IdentityProfile
    ) -> tuple[LocalAccount, ProviderLink]:
        async with self.links.atomic():
            link = await self.links.find_by_provider_and_subject(self.provider, profile.subject)

            email_match = None
            if (link is None or not link.is_bound) and profile.email_verified and profile.email:
                email_match = await self.users.find_by_email(profile.email)

            decision = decide(link, profile, email_match)
            logger.info(
                f"Linking decision: {decision.action.value}",
                extra={"provider": self.provider, "action": decision.action.value},
            )

            if decision.action is LinkAction.EXISTING_BOUND:
                # Bound links never change account.
                link.last_login_at = utcnow()
                link = await self.links.save(link)
                return await self._load_bound(link)

            if decision.action is LinkAction.AUTO_LINK:
                link = decision.link or await self._insert_link(profile)
                return await self._bind(link, decision.account, created=False)

            if decision.action is LinkAction.EXISTING_UNBOUND:
                link = decision.link
            else:
                link = await self._insert_link(profile)
            account = await self._create_account(profile)
            return await self._bind(link, account, created=True)

    async def _load_bound(self, link: ProviderLink) -> tuple[LocalAccount, ProviderLink]:
        account = await self.users.find_by_id(link.account_id)
        if account is None:
            logger.error(
                "Linked account not found",
                extra={"provider_link_id": link.id, "account_id": link.account_id},
            )
            raise AccountPersistenceFailed("Linked account not found")
        return account, link

    async def _insert_link(self, profile: IdentityProfile) -> ProviderLink:
        # The unbound link claims (provider, subject) before any account exists.
        link = ProviderLink(
            provider=self.provider,
            subject=profile.subject,
            provider_email=profile.email,
            email_verified=profile.email_verified,
            display_name=profile.name,
            picture_url=profile.picture,
            raw_profile=raw_profile_snapshot(profile),
        )
        link = await self.links.save(link)
        logger.info(
            "Created provider link",
            extra={"provider": self.provider, "provider_link_id": link.id},
        )
        return link

    async def _bind(
        self, link: ProviderLink, account: LocalAccount, created: bool
    ) -> tuple[LocalAccount, ProviderLink]:
        bound = await self.links.bind(link, account.id)
        if bound is not None:
            logger.info(
                "Provider link bound to account",
                extra={"provider_link_id": bound.id, "account_id": account.id},
            )
            return account, bound

        # A concurrent resolution bound the link first; its account wins.
        current = await self.links.find_by_provider_and_subject(self.provider, link.subject)
        if current is None or not current.is_bound:
            raise LinkingConflict("Link changed while binding")
        logger.warning(
            "Provider link bound concurrently, joining existing account",
            extra={
                "provider_link_id": current.id,
                "account_id": current.account_id,
                "error_type": "linking_conflict",
            },
        )
        if created:
            await self._discard_account(account)
        return await self._load_bound(current)

    async def _discard_account(self, account: LocalAccount) -> None:
        try:
            await self.users.delete(account.id)
        except StoreError as e:
            logger.error(
                f"Failed to delete unused account {account.username}: {e}",
                exc_info=True,
                extra={"account_id": account.id, "error_type": "orphaned_account"},
            )
            return
        logger.info("Deleted unused account", extra={"account_id": account.id})

    async def _create_account(self, profile: IdentityProfile) -> LocalAccount:
        last_error: DuplicateRecordError | None = None
        for _ in range(ACCOUNT_SAVE_ATTEMPTS):
            email = profile.email
            if email and await self.users.find_by_email(email) is not None:
                # Unverified email held by another account: it is never claimed.
                logger.info("Profile email already in use, new account created without it")
                email = None

            account = LocalAccount(
                username=await self.generate_username(
                    profile.email_local_part or FALLBACK_USERNAME
                ),
                email=email,
                email_verified=profile.email_verified,
                enabled=True,
                title=self.new_account_title,
                password_hash=NO_PASSWORD,
                roles={self.default_role},
            )
            try:
                account = await self.users.save(account)
            except DuplicateRecordError as e:
                # Username or email taken concurrently; regenerate both.
                logger.warning(
                    f"Account {account.username} taken concurrently, regenerating",
                    extra={"provider": self.provider, "error_type": "account_conflict"},
                )
                last_error = e
                continue
            except StoreError as e:
                raise AccountPersistenceFailed("Could not store new account") from e

            logger.info(
                f"Created account {account.username}",
                extra={"account_id": account.id, "provider": self.provider},
            )
            return account

        raise AccountPersistenceFailed("Account username kept conflicting") from last_error

    async def generate_username(self, base: str) -> str:
        """
        Return ``base``, or ``base`` followed by the lowest free suffix from 1.

        Example:
            >>> await linker.generate_username("alice")  # alice, alice1 taken
            'alice2'
        """
        username = base
        counter = 1
        while await self.users.find_by_username(username) is not None:
            username = f"{base}{counter}"
            counter += 1
        return username
