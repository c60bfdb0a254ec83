"""Endpoint descriptors and the query options they carry."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Generic, TypeVar

from .errors import InvalidEndpointError, InvalidFilterError

T = TypeVar("T")

DEFAULT_PAGE_KEYS = ("page[limit]", "page[offset]")


class FilterKind(str, Enum):
    SIMPLE = "simple"  # filter[field]=value
    VALUE = "value"  # filter[field][value]=value
    OPERATOR = "operator"  # filter[field][operator]=OP&filter[field][value]=value
    CONDITION = "condition"  # filter[field][condition][path|operator|value]


class Operator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "<>"
    CONTAINS = "CONTAINS"
    LESS_THAN = "<"
    LESS_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="


class SortDirection(str, Enum):
    ASCENDING = "ASC"
    DESCENDING = "DESC"


@dataclass(frozen=True)
class Filter:
    """One filter condition.

    Validated on construction so an invalid filter never reaches the wire.
    """

    field: str
    value: str | None = None
    kind: FilterKind = FilterKind.SIMPLE
    operator: Operator | str | None = None
    path: str | None = None

    def __post_init__(self):
        if not self.field:
            raise InvalidFilterError("filter field must not be empty")
        if self.operator is not None and self.value is None:
            raise InvalidFilterError(f"filter on {self.field!r} has operator {_op(self.operator)!r} but no value")
        if self.value is None:
            raise InvalidFilterError(f"filter on {self.field!r} has no value")
        if self.kind in (FilterKind.OPERATOR, FilterKind.CONDITION) and self.operator is None:
            raise InvalidFilterError(f"{self.kind.value} filter on {self.field!r} needs an operator")

    @classmethod
    def simple(cls, field: str, value: str) -> "Filter":
        return cls(field, value)

    @classmethod
    def equals(cls, field: str, value: str) -> "Filter":
        return cls(field, value, FilterKind.VALUE)

    @classmethod
    def contains(cls, field: str, keyword: str) -> "Filter":
        return cls(field, keyword, FilterKind.OPERATOR, Operator.CONTAINS)

    @classmethod
    def exact_phrase(cls, field: str, phrase: str) -> "Filter":
        """Match a quoted phrase, e.g. ``filter[title][value]="Exact Phrase"``."""
        return cls(field, f'"{phrase}"', FilterKind.VALUE)

    @classmethod
    def condition(
        cls, field: str, value: str, operator: Operator | str = Operator.EQUALS, path: str | None = None
    ) -> "Filter":
        """Nested condition filter, used for date ranges."""
        return cls(field, value, FilterKind.CONDITION, operator, path or field)

    def query_items(self) -> list[tuple[str, str]]:
        prefix = f"filter[{self.field}]"
        if self.kind == FilterKind.VALUE:
            return [(f"{prefix}[value]", self.value)]
        if self.kind == FilterKind.OPERATOR:
            return [
                (f"{prefix}[operator]", _op(self.operator)),
                (f"{prefix}[value]", self.value),
            ]
        if self.kind == FilterKind.CONDITION:
            return [
                (f"{prefix}[condition][path]", self.path or self.field),
                (f"{prefix}[condition][operator]", _op(self.operator)),
                (f"{prefix}[condition][value]", self.value),
            ]
        return [(prefix, self.value)]


def _direction(value) -> SortDirection:
    """Accept a SortDirection, or "asc"/"desc" and their long forms in any case."""
    if isinstance(value, SortDirection):
        return value
    text = str(value).strip().upper()
    for direction in SortDirection:
        if text in (direction.value, direction.name):
            return direction
    raise InvalidEndpointError(f"unknown sort direction {value!r}")


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASCENDING

    def __post_init__(self):
        if not self.field:
            raise InvalidEndpointError("sort field must not be empty")
        object.__setattr__(self, "direction", _direction(self.direction))

    def query_items(self) -> list[tuple[str, str]]:
        return [
            (f"sort[{self.field}][path]", self.field),
            (f"sort[{self.field}][direction]", self.direction.value),
        ]


@dataclass(frozen=True)
class PageOption:
    limit: int
    offset: int = 0

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError("page limit must be >= 1")
        if self.offset < 0:
            raise ValueError("page offset must be >= 0")

    def query_items(self, keys: tuple[str, str] = DEFAULT_PAGE_KEYS) -> list[tuple[str, str]]:
        limit_key, offset_key = keys
        return [(limit_key, str(self.limit)), (offset_key, str(self.offset))]


@dataclass(frozen=True)
class Endpoint(Generic[T]):
    """One logical API call: a path, its query options and the item model.

    ``model`` is the type every item in the response envelope decodes into.
    """

    path: str
    model: type[T]
    filters: tuple[Filter, ...] = ()
    sort: SortSpec | None = None
    page: PageOption | None = None
    params: tuple[tuple[str, str], ...] = field(default=())

    def __post_init__(self):
        # Accept lists for convenience; store tuples so the value stays hashable
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "params", tuple((str(k), str(v)) for k, v in self.params))

    def query_items(self, page_keys: tuple[str, str] = DEFAULT_PAGE_KEYS) -> list[tuple[str, str]]:
        """Canonical ordered query items: params, filters, sort, page."""
        items = list(self.params)
        for f in self.filters:
            items.extend(f.query_items())
        if self.sort is not None:
            items.extend(self.sort.query_items())
        if self.page is not None:
            items.extend(self.page.query_items(page_keys))
        return items

    def with_page(self, page: PageOption | None) -> "Endpoint[T]":
        return replace(self, page=page)


def _op(operator) -> str:
    return operator.value if isinstance(operator, Operator) else str(operator)
