"""Client for requesting M2M tokens through the token cache proxy.

Usage:
    from m2m_token_cache.client import TokenCacheClient

    client = TokenCacheClient(
        token_url="https://auth.example.com/oauth2/token",
        client_id="your-client-id",
        client_secret="your-client-secret",
        scope="token-cache/invoke",
    )

    token = client.get_token()
    print(token.access_token)
"""
import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TokenCacheError(Exception):
    """Base exception for token cache errors."""

    pass


class TokenRequestError(TokenCacheError):
    """Raised when the token endpoint does not return a token."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StackOutputsError(TokenCacheError):
    """Raised when the deployed stack is missing or incomplete."""

    pass


class TokenResponse(BaseModel):
    """OAuth2 token response from Cognito."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600


class TokenCacheClient:
    """Requests client credentials tokens from the caching proxy.

    Credentials are sent both as HTTP Basic auth (the proxy requires the
    Authorization header unless validation is disabled) and in the form body.
    Requests with identical credentials and scope share a cache entry.

    Attributes:
        token_url: Token URL of the cache proxy
        client_id: Cognito app client ID
        client_secret: Cognito app client secret
        scope: OAuth2 scope to request (optional)
        timeout: Request timeout in seconds (default: 30)
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scope: str | None = None,
        timeout: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._transport = transport
        self._validate_token_url()

    def _validate_token_url(self) -> None:
        parsed = urlparse(self.token_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"Invalid token URL: {self.token_url}")
        if not parsed.path.rstrip("/").endswith("/oauth2/token"):
            logger.warning(f"Token URL should end with '/oauth2/token'. Got: {self.token_url}")

    def _form_data(self) -> dict[str, str]:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        if self.scope:
            data["scope"] = self.scope
        return data

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        if response.status_code != 200:
            raise TokenRequestError(
                f"Failed to obtain access token: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        try:
            data: dict[str, Any] = response.json()
            return TokenResponse(**data)
        except (ValueError, TypeError) as e:
            # Not JSON, not an object, or no access_token
            raise TokenRequestError(
                f"Invalid token response: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

    def get_token(self) -> TokenResponse:
        """Request a token through the cache.

        Returns:
            TokenResponse with the access token

        Raises:
            TokenRequestError: If the proxy or Cognito rejects the request
        """
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            logger.debug(f"Requesting token from {self.token_url}")
            try:
                response = client.post(
                    self.token_url,
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    data=self._form_data(),
                )
            except httpx.HTTPError as e:
                raise TokenRequestError(f"Token request failed: {e}") from e

        return self._parse_token_response(response)

    @classmethod
    def from_env(cls) -> "TokenCacheClient":
        """Create a client from environment variables.

        Required environment variables:
            TOKEN_CACHE_URL: Token URL of the cache proxy
            TOKEN_CLIENT_ID: Cognito app client ID
            TOKEN_CLIENT_SECRET: Cognito app client secret

        Optional environment variables:
            TOKEN_SCOPE: OAuth2 scope to request

        Raises:
            ValueError: If required environment variables are missing
        """
        import os

        from dotenv import load_dotenv

        load_dotenv()

        token_url = os.getenv("TOKEN_CACHE_URL")
        client_id = os.getenv("TOKEN_CLIENT_ID")
        client_secret = os.getenv("TOKEN_CLIENT_SECRET")

        if not token_url:
            raise ValueError("TOKEN_CACHE_URL environment variable is required")
        if not client_id:
            raise ValueError("TOKEN_CLIENT_ID environment variable is required")
        if not client_secret:
            raise ValueError("TOKEN_CLIENT_SECRET environment variable is required")

        return cls(
            token_url=token_url,
            client_id=client_id,
            client_secret=client_secret,
            scope=os.getenv("TOKEN_SCOPE"),
        )
