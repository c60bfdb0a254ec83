"""Credential providers.

A static API key needs no state. OAuth-style providers hold at most one
credential with an expiry; the lock makes check-and-refresh a single step so
concurrent requests never trigger redundant exchanges.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from .errors import (
    AuthenticationFailedError,
    DecodingFailedError,
    NetworkFailureError,
    error_for_status,
)
from .providers import Provider

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_BUFFER = 60  # seconds shaved off expires_in

# Token endpoints answer with OAuth error bodies, not the data API's
_OAUTH = Provider(name="oauth", base_url="")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class TokenProvider:
    """Supplies a credential before each request."""

    async def get_token(self) -> str:
        raise NotImplementedError

    def invalidate(self) -> None:
        """Forget any cached credential (called after an auth failure)."""


class StaticTokenProvider(TokenProvider):
    def __init__(self, token: str):
        if not token:
            raise ValueError("token must not be empty")
        self._token = token

    async def get_token(self) -> str:
        return self._token


class _OAuthTokenProvider(TokenProvider):
    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient,
        expiry_buffer: float = DEFAULT_EXPIRY_BUFFER,
        clock=time.monotonic,
    ):
        self.token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._http = http_client
        self._expiry_buffer = expiry_buffer
        self._clock = clock
        self._credential: Credential | None = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def invalidate(self) -> None:
        if self._credential is not None:
            logger.info("Dropping cached credential for %s", self.token_url)
        self._credential = None

    def _fresh_token(self) -> str | None:
        cred = self._credential
        if cred is not None and cred.is_fresh(self._clock()):
            return cred.token
        return None

    async def _exchange(self, form: dict) -> Credential:
        try:
            resp = await self._http.post(
                self.token_url,
                data=form,
                auth=(self._client_id, self._client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.TransportError as e:
            raise NetworkFailureError(f"token request failed: {e}") from e

        if resp.status_code in (400, 401):
            raise AuthenticationFailedError(_OAUTH.error_message(resp.content), resp.status_code)
        if not 200 <= resp.status_code <= 299:
            raise error_for_status(resp.status_code, _OAUTH.error_message(resp.content), resp.headers)
        try:
            parsed = TokenResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise DecodingFailedError(f"invalid token response: {e}") from e

        expires_at = self._clock() + max(parsed.expires_in - self._expiry_buffer, 0)
        logger.debug("Obtained token from %s (expires in %ss)", self.token_url, parsed.expires_in)
        return Credential(parsed.access_token, expires_at)


class ClientCredentialsTokenProvider(_OAuthTokenProvider):
    """OAuth client-credentials flow (e.g. Spotify app tokens).

    No user is involved, so an expired or invalidated token is silently
    replaced by a new exchange.
    """

    async def get_token(self) -> str:
        token = self._fresh_token()
        if token is not None:
            return token
        async with self._lock:
            # Another task may have refreshed while we waited
            token = self._fresh_token()
            if token is not None:
                return token
            self._credential = await self._exchange({"grant_type": "client_credentials"})
            return self._credential.token


class AuthorizationCodeTokenProvider(_OAuthTokenProvider):
    """OAuth authorization-code flow.

    States: no credential -> authorize(code) -> credential held. Expiry or
    invalidation goes back to no credential; the user has to authorize again.
    """

    def __init__(self, token_url, client_id, client_secret, redirect_uri, http_client, **kwargs):
        super().__init__(token_url, client_id, client_secret, http_client, **kwargs)
        self.redirect_uri = redirect_uri

    @property
    def is_authorized(self) -> bool:
        return self._fresh_token() is not None

    async def authorize(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        if not code:
            raise AuthenticationFailedError("authorization code is empty")
        async with self._lock:
            self._credential = await self._exchange(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                }
            )
            return self._credential.token

    async def get_token(self) -> str:
        async with self._lock:
            token = self._fresh_token()
            if token is None:
                self._credential = None
                raise AuthenticationFailedError("re-authorization required")
            return token
