"""FastAPI dependencies for the Google sign-in feature."""

from fastapi import Request

from src.signin.config import settings
from src.signin.identity.models import SessionHandle
from src.signin.identity.service import GoogleCallbackService
from src.signin.stores.base import SessionStore

# Global instances (initialized in main.py startup)
_callback_service: GoogleCallbackService | None = None
_session_store: SessionStore | None = None


def set_callback_service(service: GoogleCallbackService, session_store: SessionStore) -> None:
    """
    Set the global callback service and the session store it issues into.

    Called during application startup.
    """
    global _callback_service, _session_store
    _callback_service = service
    _session_store = session_store


def get_callback_service() -> GoogleCallbackService:
    """
    Get the global callback service.

    Raises:
        RuntimeError: If the service was not initialized
    """
    if _callback_service is None:
        raise RuntimeError(
            "Google callback service not initialized. "
            "Ensure application startup calls set_callback_service()."
        )
    return _callback_service


def get_session_store() -> SessionStore:
    """
    Get the global session store.

    Raises:
        RuntimeError: If the store was not initialized
    """
    if _session_store is None:
        raise RuntimeError(
            "Session store not initialized. "
            "Ensure application startup calls set_callback_service()."
        )
    return _session_store


async def get_current_session(request: Request) -> SessionHandle | None:
    """Return the live session named by the session cookie, if any."""
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        return None
    return await get_session_store().get(session_id)
