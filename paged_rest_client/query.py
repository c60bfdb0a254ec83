"""Query-string encoding that keeps bracket syntax intact.

The target APIs expect ``filter[title][value]=Foo`` in the raw query string.
Standard encoders escape the brackets to ``%5B``/``%5D``, so they are put
back in a post-processing pass.
"""

from urllib.parse import quote

import httpx

from .errors import InvalidEndpointError


def encode_query(items) -> str:
    """Encode (key, value) pairs into a query string, preserving order."""
    encoded = "&".join(f"{quote(str(k), safe='')}={quote(str(v), safe='')}" for k, v in items)
    return encoded.replace("%5B", "[").replace("%5D", "]")


def validate_url(url: str) -> str:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise InvalidEndpointError(f"cannot parse URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidEndpointError(f"not an absolute http(s) URL: {url!r}")
    return url


def join_path(base: str, path: str) -> str:
    if not base:
        raise InvalidEndpointError("base URL is empty")
    if not path:
        return base
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def build_url(base: str, path: str, items) -> str:
    """Join ``base`` and ``path`` and append the encoded query."""
    url = join_path(base, path)
    if "?" in url or "#" in url:
        raise InvalidEndpointError(f"path must not carry a query or fragment: {path!r}")
    validate_url(url)
    query = encode_query(items)
    return f"{url}?{query}" if query else url


def append_query(url: str, items) -> str:
    """Append items to a URL that may already have a query string."""
    validate_url(url)
    query = encode_query(items)
    if not query:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{query}"
