"""Typed response envelope and sample item models."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """One decoded page of results. Never mutated after decode."""

    model_config = ConfigDict(frozen=True)

    items: list[T]
    total: int | None = None
    next_url: str | None = None
    self_link: str | None = None
    meta: dict[str, Any] | None = None


class Resource(BaseModel):
    """Generic item: requires an id, keeps every other field."""

    model_config = ConfigDict(frozen=True, extra="allow", coerce_numbers_to_str=True)

    id: str


class Link(BaseModel):
    model_config = ConfigDict(frozen=True)

    href: str | None = None


class NoticeAttributes(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str | None = None
    created: str | None = None
    updated: str | None = None
    date: str | None = None
    acquired_party: str | None = Field(default=None, alias="acquired-party")
    acquiring_party: str | None = Field(default=None, alias="acquiring-party")
    acquired_entities: list[str] | None = Field(default=None, alias="acquired-entities")
    transaction_number: str | None = Field(default=None, alias="transaction-number")
    tags: list[str] | None = None


class Notice(BaseModel):
    """FTC HSR early termination notice (JSON:API resource)."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    attributes: NoticeAttributes | None = None
    links: dict[str, Link] | None = None


class VolumeInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    authors: list[str] | None = None
    publisher: str | None = None
    publishedDate: str | None = None
    description: str | None = None
    pageCount: int | None = None


class Volume(BaseModel):
    """Google Books volume."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    volumeInfo: VolumeInfo
