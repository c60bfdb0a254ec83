"""CLI for fetching listings from a configured REST provider."""

import argparse
import asyncio
import json
import logging
import sys


def _pair(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key, value


def _sort(raw: str):
    from .errors import InvalidEndpointError
    from .models import SortSpec

    field, _, direction = raw.partition(":")
    try:
        return SortSpec(field, direction or "asc")
    except InvalidEndpointError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _add_endpoint_args(parser):
    parser.add_argument(
        "path",
        help="Endpoint path relative to the provider base URL (e.g. hsr-early-termination-notices)",
    )
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        type=_pair,
        metavar="FIELD=VALUE",
        help="Exact-match filter, sent as filter[FIELD][value] (repeatable)",
    )
    parser.add_argument(
        "--contains",
        action="append",
        default=[],
        type=_pair,
        metavar="FIELD=VALUE",
        help="CONTAINS filter (repeatable)",
    )
    parser.add_argument(
        "--sort",
        type=_sort,
        default=None,
        metavar="FIELD[:asc|desc]",
        help="Sort field and direction",
    )
    parser.add_argument("--limit", type=int, default=None, help="Page size")
    parser.add_argument("--offset", type=int, default=0, help="Start offset (default: 0)")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        type=_pair,
        metavar="KEY=VALUE",
        help="Extra query parameter (repeatable, e.g. --param q=tolkien)",
    )


def _endpoint(args, page_size):
    from .envelope import Resource
    from .models import Endpoint, Filter, PageOption

    filters = [Filter.equals(k, v) for k, v in args.filter]
    filters += [Filter.contains(k, v) for k, v in args.contains]
    return Endpoint(
        args.path,
        Resource,
        filters=tuple(filters),
        sort=args.sort,
        page=PageOption(args.limit or page_size, args.offset),
        params=tuple(args.param),
    )


async def _fetch(args, settings) -> object:
    from .client import create_client
    from .pagination import collect_all

    endpoint = _endpoint(args, settings.page_size)
    async with create_client(settings) as client:
        if args.all:
            items = await collect_all(client, endpoint, max_pages=args.max_pages)
            return {"items": [item.model_dump(mode="json") for item in items]}
        envelope = await client.fetch(endpoint)
        return envelope.model_dump(mode="json")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Fetch paginated listings from REST APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--provider",
        default=None,
        help="Provider name (ftc, spotify, google_books, apple_music, instagram; default: API_PROVIDER)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a page (or every page) of a listing")
    _add_endpoint_args(fetch_parser)
    fetch_parser.add_argument(
        "--all",
        action="store_true",
        help="Follow pagination until the listing is exhausted",
    )
    fetch_parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Stop after this many pages (requires --all)",
    )

    url_parser = subparsers.add_parser("url", help="Print the request URL without sending it")
    _add_endpoint_args(url_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if args.command is None:
        parser.print_help()
        return 0

    from .errors import ApiError
    from .settings import get_settings

    settings = get_settings()
    if args.provider:
        settings = settings.model_copy(update={"api_provider": args.provider})

    try:
        if args.command == "url":
            from .providers import get_provider
            from .request import RequestBuilder

            builder = RequestBuilder(get_provider(settings.api_provider), base_url=settings.api_base_url)
            # Placeholder keeps the credential out of printed URLs
            sys.stdout.write(builder.url_for(_endpoint(args, settings.page_size), "TOKEN") + "\n")
        else:
            result = asyncio.run(_fetch(args, settings))
            json.dump(result, sys.stdout, indent=2)
            sys.stdout.write("\n")
    except ApiError as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    except (KeyError, RuntimeError, ValueError) as e:
        sys.stderr.write(f"error: {e}\n")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
