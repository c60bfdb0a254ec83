"""Unit tests for credential providers."""

import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from .errors import (
    AuthenticationFailedError,
    DecodingFailedError,
    NetworkFailureError,
    ServerError,
)
from .tokens import (
    AuthorizationCodeTokenProvider,
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
)

TOKEN_URL = "https://accounts.example.com/api/token"


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _token_server(responses):
    """MockTransport that pops a response per request and records requests."""
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        status, body = responses.pop(0)
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler), seen


def _ok(token="tok", expires_in=3600):
    return 200, {"access_token": token, "token_type": "Bearer", "expires_in": expires_in}


def describe_StaticTokenProvider():
    def it_returns_the_same_token():
        provider = StaticTokenProvider("key")
        assert asyncio.run(provider.get_token()) == "key"
        provider.invalidate()
        assert asyncio.run(provider.get_token()) == "key"

    def it_rejects_empty_tokens():
        with pytest.raises(ValueError):
            StaticTokenProvider("")


def describe_ClientCredentialsTokenProvider():
    def _provider(transport, clock):
        http = httpx.AsyncClient(transport=transport)
        return ClientCredentialsTokenProvider(TOKEN_URL, "id", "secret", http, clock=clock)

    def it_exchanges_client_credentials():
        transport, seen = _token_server([_ok("first")])
        provider = _provider(transport, Clock())

        assert asyncio.run(provider.get_token()) == "first"
        request = seen[0]
        assert request.method == "POST"
        assert parse_qs(request.content.decode()) == {"grant_type": ["client_credentials"]}
        expected = base64.b64encode(b"id:secret").decode()
        assert request.headers["authorization"] == f"Basic {expected}"

    def it_caches_until_expiry_minus_buffer():
        transport, seen = _token_server([_ok("first", 3600), _ok("second", 3600)])
        clock = Clock()
        provider = _provider(transport, clock)

        async def run():
            a = await provider.get_token()
            clock.now += 3500
            b = await provider.get_token()
            clock.now += 100  # past 3600 - 60
            c = await provider.get_token()
            return a, b, c

        assert asyncio.run(run()) == ("first", "first", "second")
        assert len(seen) == 2

    def it_refetches_after_invalidate():
        transport, seen = _token_server([_ok("first"), _ok("second")])
        provider = _provider(transport, Clock())

        async def run():
            await provider.get_token()
            provider.invalidate()
            return await provider.get_token()

        assert asyncio.run(run()) == "second"
        assert len(seen) == 2

    def it_serializes_concurrent_refreshes():
        calls = []

        async def handler(request):
            calls.append(request)
            await asyncio.sleep(0.01)
            return httpx.Response(200, json={"access_token": "shared", "expires_in": 3600})

        provider = _provider(httpx.MockTransport(handler), Clock())

        async def run():
            return await asyncio.gather(*(provider.get_token() for _ in range(5)))

        assert asyncio.run(run()) == ["shared"] * 5
        assert len(calls) == 1

    def it_maps_rejected_credentials_to_auth_failure():
        transport, _ = _token_server([(400, {"error": "invalid_client", "error_description": "bad secret"})])
        provider = _provider(transport, Clock())
        with pytest.raises(AuthenticationFailedError, match="invalid_client: bad secret"):
            asyncio.run(provider.get_token())
        assert provider.credential is None

    def it_maps_server_errors():
        transport, _ = _token_server([(503, b"down")])
        with pytest.raises(ServerError):
            asyncio.run(_provider(transport, Clock()).get_token())

    def it_reports_malformed_token_responses():
        transport, _ = _token_server([(200, {"token": "nope"})])
        with pytest.raises(DecodingFailedError):
            asyncio.run(_provider(transport, Clock()).get_token())

    def it_wraps_transport_errors():
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkFailureError):
            asyncio.run(_provider(httpx.MockTransport(handler), Clock()).get_token())


def describe_AuthorizationCodeTokenProvider():
    def _provider(transport, clock):
        http = httpx.AsyncClient(transport=transport)
        return AuthorizationCodeTokenProvider(
            TOKEN_URL, "id", "secret", "myapp://callback", http, clock=clock
        )

    def it_requires_authorization_first():
        transport, seen = _token_server([])
        provider = _provider(transport, Clock())
        with pytest.raises(AuthenticationFailedError, match="re-authorization required"):
            asyncio.run(provider.get_token())
        assert seen == []

    def it_exchanges_the_code():
        transport, seen = _token_server([_ok("user-token")])
        provider = _provider(transport, Clock())

        async def run():
            await provider.authorize("abc")
            return await provider.get_token()

        assert asyncio.run(run()) == "user-token"
        assert provider.is_authorized
        assert parse_qs(seen[0].content.decode()) == {
            "grant_type": ["authorization_code"],
            "code": ["abc"],
            "redirect_uri": ["myapp://callback"],
        }

    def it_forces_reauthorization_on_expiry():
        transport, seen = _token_server([_ok("user-token", 120)])
        clock = Clock()
        provider = _provider(transport, clock)

        async def run():
            await provider.authorize("abc")
            clock.now += 61
            with pytest.raises(AuthenticationFailedError):
                await provider.get_token()

        asyncio.run(run())
        assert not provider.is_authorized
        assert provider.credential is None
        assert len(seen) == 1

    def it_forgets_token_on_invalidate():
        transport, _ = _token_server([_ok("user-token")])
        provider = _provider(transport, Clock())

        async def run():
            await provider.authorize("abc")
            provider.invalidate()
            await provider.get_token()

        with pytest.raises(AuthenticationFailedError):
            asyncio.run(run())

    def it_rejects_empty_codes():
        transport, _ = _token_server([])
        with pytest.raises(AuthenticationFailedError):
            asyncio.run(_provider(transport, Clock()).authorize(""))
