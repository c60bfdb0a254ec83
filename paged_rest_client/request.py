"""Turn endpoint descriptors into wire-level requests. No I/O happens here."""

import httpx

from .errors import AuthenticationFailedError
from .models import Endpoint
from .providers import AuthStyle, Provider
from .query import append_query, build_url, validate_url


class RequestBuilder:
    def __init__(self, provider: Provider, base_url: str | None = None):
        self.provider = provider
        self.base_url = base_url or provider.base_url

    def _auth(self, token: str | None) -> tuple[list[tuple[str, str]], dict[str, str]]:
        style = self.provider.auth_style
        if style == AuthStyle.NONE:
            return [], {}
        if not token:
            raise AuthenticationFailedError(f"{self.provider.name} requires a credential")
        if style == AuthStyle.QUERY:
            return [(self.provider.auth_param, token)], {}
        return [], {"Authorization": f"Bearer {token}"}

    def url_for(self, endpoint: Endpoint, token: str | None = None) -> str:
        auth_items, _ = self._auth(token)
        items = auth_items + endpoint.query_items(self.provider.page_keys)
        return build_url(self.base_url, endpoint.path, items)

    def build(self, endpoint: Endpoint, token: str | None = None) -> httpx.Request:
        """GET request for ``endpoint`` with the credential attached."""
        _, auth_headers = self._auth(token)
        url = self.url_for(endpoint, token)
        return httpx.Request("GET", url, headers={"Accept": self.provider.accept, **auth_headers})

    def build_for_url(self, url: str, token: str | None = None) -> httpx.Request:
        """GET request for a server-supplied ``next`` URL, used verbatim.

        A query-string credential is only appended when the URL lacks one.
        """
        auth_items, auth_headers = self._auth(token)
        validate_url(url)
        if auth_items and self.provider.auth_param in httpx.URL(url).params:
            auth_items = []
        return httpx.Request(
            "GET",
            append_query(url, auth_items),
            headers={"Accept": self.provider.accept, **auth_headers},
        )
