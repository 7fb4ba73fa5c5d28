"""Shared fixtures for account linking tests."""

import pytest

from src.signin.auth.models import IdentityProfile
from src.signin.identity.linker import IdentityLinker
from src.signin.identity.models import LocalAccount
from src.signin.stores.memory import InMemoryLinkStore, InMemorySessionStore, InMemoryUserStore


@pytest.fixture
def users() -> InMemoryUserStore:
    """Empty account store."""
    return InMemoryUserStore()


@pytest.fixture
def links() -> InMemoryLinkStore:
    """Empty provider link store."""
    return InMemoryLinkStore()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    """Empty session store."""
    return InMemorySessionStore()


@pytest.fixture
def linker(users, links) -> IdentityLinker:
    """Linker over the in-memory stores."""
    return IdentityLinker(users, links, default_role="user", new_account_title="Newbie Coder")


@pytest.fixture
def verified_profile() -> IdentityProfile:
    """Profile whose email Google has verified."""
    return IdentityProfile(
        subject="110169484474386276334",
        email="alice@example.com",
        email_verified=True,
        name="Alice Example",
        picture="https://lh3.googleusercontent.com/a/alice",
    )


@pytest.fixture
def unverified_profile(verified_profile) -> IdentityProfile:
    """Same identity with an unverified email."""
    return verified_profile.model_copy(update={"email_verified": False})


@pytest.fixture
def existing_alice() -> LocalAccount:
    """Password account registered with alice@example.com."""
    return LocalAccount(
        username="alice_pw",
        email="alice@example.com",
        email_verified=True,
        password_hash="$2b$12$abcdefghijklmnopqrstuv",
        roles={"user", "admin"},
    )
