"""Authorization code exchange against Google's token endpoint."""

import logging

import httpx

from src.signin.auth.exceptions import CodeExchangeFailed

logger = logging.getLogger(__name__)

GRANT_TYPE = "authorization_code"


class TokenExchanger:
    """
    Exchanges an OAuth authorization code for an ID token.

    Authorization codes are single-use, so a failed exchange is never retried.

    Example:
        >>> exchanger = TokenExchanger(token_url, client_id, client_secret, redirect_uri)
        >>> id_token = await exchanger.exchange("4/0AX4XfWh...")
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def exchange(self, code: str, redirect_uri: str | None = None) -> str:
        """
        Exchange an authorization code for an ID token.

        Args:
            code: Authorization code from the provider redirect
            redirect_uri: Redirect URI used in the authorization request
                (defaults to the configured one)

        Returns:
            The raw ID token string

        Raises:
            CodeExchangeFailed: On transport error, non-success status,
                a non-JSON body, or a response without ``id_token``
        """
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "grant_type": GRANT_TYPE,
        }

        try:
            response = await self._http_client.post(
                self.token_url, data=data, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Token endpoint request failed: {e}",
                extra={"error_type": "code_exchange_transport"},
            )
            raise CodeExchangeFailed("Token endpoint request failed") from e

        if not response.is_success:
            logger.warning(
                f"Token endpoint rejected authorization code: {response.status_code}",
                extra={"error_type": "code_exchange_rejected", "status": response.status_code},
            )
            raise CodeExchangeFailed(f"Token endpoint returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise CodeExchangeFailed("Token endpoint returned a non-JSON body") from e

        id_token = payload.get("id_token") if isinstance(payload, dict) else None
        if not id_token:
            logger.warning(
                "Token endpoint response carries no id_token",
                extra={"error_type": "code_exchange_no_id_token"},
            )
            raise CodeExchangeFailed("No id_token in token response")

        logger.info("Authorization code exchanged for ID token")
        return id_token

    async def close(self) -> None:
        """Close the HTTP client if this exchanger created it."""
        if self._owns_client:
            await self._http_client.aclose()
