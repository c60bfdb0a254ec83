"""Asynchronous typed REST client built on httpx."""

import logging

import httpx

from .decoder import ResponseDecoder
from .envelope import Envelope
from .errors import AuthenticationFailedError, NetworkFailureError, NotFoundError
from .models import Endpoint, Filter
from .providers import AuthStyle, Provider, get_provider
from .request import RequestBuilder
from .settings import Settings, get_settings
from .tokens import ClientCredentialsTokenProvider, StaticTokenProvider, TokenProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ApiClient:
    """One provider, one credential source, one HTTP connection pool.

    Each call is a single request/response; the network send is the only
    suspension point. Nothing is retried.
    """

    def __init__(
        self,
        provider: Provider,
        token_provider: TokenProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str | None = None,
        owns_client: bool = False,
    ):
        self.provider = provider
        self.tokens = token_provider
        self.builder = RequestBuilder(provider, base_url=base_url)
        self.decoder = ResponseDecoder(provider)
        self._owns_client = owns_client or http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _token(self) -> str | None:
        if self.provider.auth_style == AuthStyle.NONE or self.tokens is None:
            return None
        return await self.tokens.get_token()

    def _redacted(self, request: httpx.Request) -> str:
        if self.provider.auth_style == AuthStyle.QUERY:
            return str(request.url.copy_remove_param(self.provider.auth_param))
        return str(request.url)

    async def _send(self, request: httpx.Request, model) -> Envelope:
        logger.debug("GET %s", self._redacted(request))
        try:
            resp = await self._client.send(request)
        except httpx.TransportError as e:
            raise NetworkFailureError(f"{type(e).__name__}: {e}") from e
        logger.debug("%s %s", resp.status_code, self._redacted(request))
        try:
            return self.decoder.decode(resp.status_code, resp.content, model, resp.headers)
        except AuthenticationFailedError:
            if self.tokens is not None:
                self.tokens.invalidate()
            raise

    async def fetch(self, endpoint: Endpoint) -> Envelope:
        """Fetch one page for ``endpoint``, decoded into ``endpoint.model`` items."""
        request = self.builder.build(endpoint, await self._token())
        return await self._send(request, endpoint.model)

    async def fetch_url(self, url: str, model) -> Envelope:
        """Follow a server-supplied ``next`` URL without rebuilding it."""
        request = self.builder.build_for_url(url, await self._token())
        return await self._send(request, model)

    async def find_by_id(self, path: str, model, item_id: str):
        """Fetch a single item through an ``filter[id][value]`` query."""
        envelope = await self.fetch(Endpoint(path, model, filters=(Filter.equals("id", item_id),)))
        if not envelope.items:
            raise NotFoundError(f"no item with id {item_id!r} at {path!r}", 404)
        return envelope.items[0]


def create_client(settings: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> ApiClient:
    """Build an ``ApiClient`` from configuration."""
    settings = settings or get_settings()
    provider = get_provider(settings.api_provider)
    token_url = settings.token_url or provider.token_url
    use_oauth = not settings.api_key and settings.client_id and settings.client_secret
    if use_oauth and not token_url:
        raise RuntimeError(f"TOKEN_URL is not set and {provider.name} has no default token URL")
    if not (settings.api_key or use_oauth) and provider.auth_style != AuthStyle.NONE:
        raise RuntimeError(f"API_KEY or CLIENT_ID/CLIENT_SECRET must be set for {provider.name}")

    owns_client = http_client is None
    http_client = http_client or httpx.AsyncClient(timeout=settings.request_timeout)

    token_provider: TokenProvider | None = None
    if settings.api_key:
        token_provider = StaticTokenProvider(settings.api_key)
    elif use_oauth:
        token_provider = ClientCredentialsTokenProvider(
            token_url, settings.client_id, settings.client_secret, http_client
        )

    return ApiClient(
        provider,
        token_provider,
        http_client=http_client,
        base_url=settings.api_base_url,
        owns_client=owns_client,
    )
