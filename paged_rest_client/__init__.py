"""Typed, paginated REST API client.

Builds bracket-syntax query strings, attaches credentials, decodes JSON
envelopes into typed items and maps HTTP failures to a closed error set.
"""

from .cli import main
from .client import ApiClient, create_client
from .envelope import Envelope, Resource
from .errors import ApiError, ErrorKind
from .models import Endpoint, Filter, PageOption, SortDirection, SortSpec
from .pagination import Listing, PaginationState, collect_all, iterate_pages

__all__ = [
    "main",
    "ApiClient",
    "create_client",
    "Envelope",
    "Resource",
    "ApiError",
    "ErrorKind",
    "Endpoint",
    "Filter",
    "PageOption",
    "SortDirection",
    "SortSpec",
    "Listing",
    "PaginationState",
    "collect_all",
    "iterate_pages",
]

if __name__ == "__main__":
    main()
