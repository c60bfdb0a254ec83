"""Provider profiles: where each API keeps its items, totals, links and errors."""

import json
from dataclasses import dataclass
from enum import Enum

from .models import DEFAULT_PAGE_KEYS

MAX_ERROR_TEXT_LENGTH = 500


class AuthStyle(str, Enum):
    QUERY = "query"  # ?api_key=...
    HEADER = "header"  # Authorization: Bearer ...
    NONE = "none"


class PaginationStyle(str, Enum):
    OFFSET = "offset"
    NEXT_LINK = "next_link"  # follow the opaque `next` URL verbatim


class UnknownProviderError(KeyError):
    pass


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: str
    items_key: str = "data"
    accept: str = "application/json"
    auth_style: AuthStyle = AuthStyle.HEADER
    auth_param: str = "api_key"
    total_path: tuple[str, ...] | None = None
    next_path: tuple[str, ...] | None = None
    self_path: tuple[str, ...] | None = None
    meta_key: str | None = None
    page_keys: tuple[str, str] = DEFAULT_PAGE_KEYS
    pagination: PaginationStyle = PaginationStyle.OFFSET
    token_url: str | None = None

    def error_message(self, body: bytes) -> str:
        """Best-effort human message from an error body.

        Tries the envelopes providers wrap errors in before falling back
        to the raw text.
        """
        text = body.decode("utf-8", errors="replace").strip() if body else ""
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None
        message = _message_from_envelope(data) if isinstance(data, dict) else None
        if message:
            return message
        return text[:MAX_ERROR_TEXT_LENGTH]


def _message_from_envelope(data: dict) -> str | None:
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        # JSON:API / Apple Music: {"errors": [{"detail": ..., "title": ...}]}
        parts = []
        for err in errors:
            if isinstance(err, dict):
                msg = err.get("detail") or err.get("title") or err.get("message")
                if msg:
                    parts.append(str(msg))
            elif err:
                parts.append(str(err))
        if parts:
            return "; ".join(parts)

    error = data.get("error")
    if isinstance(error, dict):
        # Google / Spotify / Instagram: {"error": {"message": ..., "code"|"status": ...}}
        msg = error.get("message")
        code = error.get("code", error.get("status"))
        if msg and code is not None:
            return f"{msg} (code {code})"
        if msg:
            return str(msg)
    elif isinstance(error, str) and error:
        # OAuth token endpoint: {"error": "invalid_client", "error_description": ...}
        desc = data.get("error_description")
        return f"{error}: {desc}" if desc else error

    msg = data.get("message")
    if isinstance(msg, str) and msg:
        return msg
    return None


def lookup(data, path: tuple[str, ...] | None):
    """Follow ``path`` through nested dicts; None if any step is missing."""
    if not path:
        return None
    cur = data
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
        if cur is None:
            return None
    return cur


FTC = Provider(
    name="ftc",
    base_url="https://api.ftc.gov/v0",
    items_key="data",
    accept="application/vnd.api+json",
    auth_style=AuthStyle.QUERY,
    auth_param="api_key",
    total_path=("meta", "records-total"),
    next_path=("links", "next", "href"),
    self_path=("links", "self", "href"),
    meta_key="meta",
)

SPOTIFY = Provider(
    name="spotify",
    base_url="https://api.spotify.com/v1",
    items_key="items",
    auth_style=AuthStyle.HEADER,
    total_path=("total",),
    next_path=("next",),
    self_path=("href",),
    page_keys=("limit", "offset"),
    pagination=PaginationStyle.NEXT_LINK,
    token_url="https://accounts.spotify.com/api/token",
)

GOOGLE_BOOKS = Provider(
    name="google_books",
    base_url="https://www.googleapis.com/books/v1",
    items_key="items",
    auth_style=AuthStyle.QUERY,
    auth_param="key",
    total_path=("totalItems",),
    page_keys=("maxResults", "startIndex"),
)

APPLE_MUSIC = Provider(
    name="apple_music",
    base_url="https://api.music.apple.com/v1",
    items_key="data",
    auth_style=AuthStyle.HEADER,
    total_path=("meta", "total"),
    next_path=("next",),
    self_path=("href",),
    meta_key="meta",
    page_keys=("limit", "offset"),
    pagination=PaginationStyle.NEXT_LINK,
)

INSTAGRAM = Provider(
    name="instagram",
    base_url="https://graph.instagram.com",
    items_key="data",
    auth_style=AuthStyle.QUERY,
    auth_param="access_token",
    next_path=("paging", "next"),
    meta_key="paging",
    page_keys=("limit", "offset"),
    pagination=PaginationStyle.NEXT_LINK,
)

PROVIDERS = {p.name: p for p in (FTC, SPOTIFY, GOOGLE_BOOKS, APPLE_MUSIC, INSTAGRAM)}


def get_provider(name: str) -> Provider:
    try:
        return PROVIDERS[name]
    except KeyError:
        raise UnknownProviderError(
            f"unknown provider {name!r} (known: {', '.join(sorted(PROVIDERS))})"
        ) from None
