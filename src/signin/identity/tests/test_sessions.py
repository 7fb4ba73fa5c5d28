"""Tests for session issuance."""

from unittest.mock import AsyncMock, Mock

import pytest

from src.signin.auth.exceptions import SessionIssuanceFailed
from src.signin.identity.models import LocalAccount, ProviderLink
from src.signin.identity.sessions import SessionIssuer


@pytest.fixture
def account() -> LocalAccount:
    """Stored account with two roles."""
    return LocalAccount(id="acc-1", username="alice", roles={"user", "admin"})


@pytest.fixture
def link() -> ProviderLink:
    """Provider link bound to the account."""
    return ProviderLink(id="link-1", subject="sub-1", account_id="acc-1")


@pytest.mark.asyncio
class TestSessionIssuer:
    """Tests for SessionIssuer class."""

    async def test_issue_populates_attributes(self, sessions, account, link):
        """Test the session carries account, link and role snapshot."""
        handle = await SessionIssuer(sessions).issue(account, link)

        assert handle.attributes == {
            "username": "alice",
            "account_id": "acc-1",
            "provider_link_id": "link-1",
            "roles": ["admin", "user"],
        }
        assert await sessions.get(handle.id) is not None

    async def test_issue_invalidates_current_session(self, sessions, account, link):
        """Test re-authentication replaces the caller's session."""
        issuer = SessionIssuer(sessions)
        old = await issuer.issue(account, link)

        new = await issuer.issue(account, link, current=old)

        assert new.id != old.id
        assert await sessions.get(old.id) is None
        assert await sessions.get(new.id) is not None
        assert len(sessions) == 1

    async def test_roles_are_a_snapshot(self, sessions, account, link):
        """Test role changes after issuance do not reach the session."""
        handle = await SessionIssuer(sessions).issue(account, link)

        account.roles.add("moderator")

        stored = await sessions.get(handle.id)
        assert stored.attributes["roles"] == ["admin", "user"]

    async def test_store_failure_raises(self, account, link):
        """Test a session store failure surfaces as SessionIssuanceFailed."""
        store = Mock()
        store.create_session = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with pytest.raises(SessionIssuanceFailed):
            await SessionIssuer(store).issue(account, link)
