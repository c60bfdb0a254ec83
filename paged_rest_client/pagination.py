"""Pagination cursor and listing sessions."""

import asyncio
import logging
from dataclasses import dataclass

from .envelope import Envelope
from .errors import ApiError, DecodingFailedError
from .models import Endpoint, PageOption
from .providers import PaginationStyle

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class PaginationState:
    offset: int
    page_size: int
    has_more: bool = True
    seen: int = 0
    next_url: str | None = None

    @classmethod
    def start(cls, page_size: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> "PaginationState":
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return cls(offset=offset, page_size=page_size)

    def page(self) -> PageOption:
        return PageOption(limit=self.page_size, offset=self.offset)


def advance(
    state: PaginationState, envelope: Envelope, accumulated: int, follows_links: bool = False
) -> PaginationState:
    """Next cursor after ``envelope`` was fetched at ``state``.

    ``accumulated`` is the de-duplicated number of items held so far.
    """
    if not envelope.items:
        has_more = False
    elif envelope.total is not None:
        has_more = accumulated < envelope.total
    elif envelope.next_url is not None:
        has_more = True
    elif follows_links:
        has_more = False
    else:
        has_more = len(envelope.items) >= state.page_size
    return PaginationState(
        offset=state.offset + state.page_size,
        page_size=state.page_size,
        has_more=has_more,
        seen=accumulated,
        next_url=envelope.next_url,
    )


def identity_key(item):
    if isinstance(item, dict):
        return item["id"]
    return item.id


def merge_unique(existing: list, new: list, key=identity_key) -> list:
    """Append ``new`` to ``existing``, dropping items whose key is already held."""
    seen = {key(item) for item in existing}
    merged = list(existing)
    for item in new:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        merged.append(item)
    return merged


class Listing:
    """Accumulates pages of one endpoint.

    Requests are serialized: ``load_more`` is ignored while a request is in
    flight, and ``load`` cancels whatever is in flight. A failed fetch keeps
    the cursor at the last successful position so calling ``load_more``
    again re-fetches the same page.
    """

    def __init__(self, client, endpoint: Endpoint, page_size: int | None = None, key=identity_key):
        self.client = client
        self.endpoint = endpoint.with_page(None)
        self.key = key
        page = endpoint.page
        self._start = PaginationState.start(
            page_size or (page.limit if page else DEFAULT_PAGE_SIZE),
            page.offset if page else 0,
        )
        self.state = self._start
        self.items: list = []
        self.error: ApiError | None = None
        self._task: asyncio.Future | None = None
        self._generation = 0

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def has_more(self) -> bool:
        return self.state.has_more

    @property
    def _follows_links(self) -> bool:
        return self.client.provider.pagination == PaginationStyle.NEXT_LINK

    async def _fetch_page(self, state: PaginationState) -> Envelope:
        if state.next_url and self._follows_links:
            return await self.client.fetch_url(state.next_url, self.endpoint.model)
        return await self.client.fetch(self.endpoint.with_page(state.page()))

    async def load(self) -> list:
        """Start over from the first page, superseding any in-flight request."""
        if self.is_loading:
            logger.debug("Cancelling in-flight request for %s", self.endpoint.path)
            self._task.cancel()
        self._generation += 1
        self.items = []
        self.state = self._start
        self.error = None
        return await self._run(self.state)

    async def load_more(self) -> list:
        """Fetch the next page; returns only the newly added items."""
        if self.is_loading or not self.state.has_more:
            return []
        return await self._run(self.state)

    async def _run(self, state: PaginationState) -> list:
        generation = self._generation
        task = asyncio.ensure_future(self._fetch_page(state))
        self._task = task
        try:
            envelope = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return []
            raise
        except ApiError as e:
            if generation == self._generation:
                self.error = e
            raise

        if generation != self._generation:
            logger.debug("Discarding superseded page at offset %d", state.offset)
            return []

        before = len(self.items)
        try:
            merged = merge_unique(self.items, envelope.items, self.key)
        except (KeyError, AttributeError) as e:
            self.error = DecodingFailedError(f"item without identity key at offset {state.offset}: {e!r}")
            raise self.error from e
        self.items = merged
        self.state = advance(state, envelope, len(self.items), self._follows_links)
        self.error = None
        return self.items[before:]


async def iterate_pages(client, endpoint: Endpoint, page_size: int | None = None, max_pages: int | None = None):
    """Yield the new items of each page until the listing is exhausted."""
    listing = Listing(client, endpoint, page_size)
    yield await listing.load()
    pages = 1
    while listing.has_more and (max_pages is None or pages < max_pages):
        yield await listing.load_more()
        pages += 1


async def collect_all(client, endpoint: Endpoint, page_size: int | None = None, max_pages: int | None = None) -> list:
    items = []
    async for page in iterate_pages(client, endpoint, page_size, max_pages):
        items.extend(page)
    return items
