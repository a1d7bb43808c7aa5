"""Pageable - Pagination and sorting carried as query parameters.

The wire convention is ``page=<n>&size=<n>&sort=<property>,<asc|desc>`` with
one ``sort`` pair per order. Decoding accepts raw query strings, repeated
query parameter pairs, and already-parsed query objects.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field

# Query arguments declared with this type name are encoded by Pageable
TYPE_PAGEABLE = "Pageable"

DEFAULT_PAGE = 0
DEFAULT_SIZE = 30

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class SortOrderDirection(str, Enum):
    """Sort direction for a single order."""

    ASC = "ASC"
    DESC = "DESC"


class SortOrder(BaseModel):
    """One (property, direction) sort criterion."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    property: str = Field(description="Property to sort by")
    direction: SortOrderDirection | None = Field(
        default=None, description="Sort direction (None means ascending)"
    )


class Sort(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    orders: list[SortOrder] | None = Field(default=None, description="Orders in priority order")


class Pageable(BaseModel):
    """A page request: page index, page size and ordered sort criteria.

    Unset fields mean "let the caller decide"; the accessors apply defaults.

    Usage:
        pageable = Pageable.from_query_string("page=2&sort=name,desc")
        pageable.get_page()        # 2
        pageable.get_size()        # 30
        str(pageable)              # "page=2&sort=name%2Cdesc"
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    page: int | None = Field(default=None, ge=0, description="Zero-based page index")
    size: int | None = Field(default=None, ge=1, description="Page size")
    sort: Sort | None = Field(default=None, description="Sort criteria")

    def get_page(self, default_page: int = DEFAULT_PAGE) -> int:
        return self.page if self.page is not None else default_page

    def get_size(self, default_size: int = DEFAULT_SIZE) -> int:
        return self.size if self.size is not None else default_size

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_query_params(self) -> list[tuple[str, str]]:
        return Pageable.encode(self)

    def __str__(self) -> str:
        return urlencode(self.to_query_params())

    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------

    @staticmethod
    def encode(pageable: Pageable | Mapping[str, Any] | None) -> list[tuple[str, str]]:
        """Encode a pageable into ordered query parameter pairs.

        Emits ``page`` and ``size`` when set, then one ``sort`` pair per order
        formatted as ``<property>,<direction>`` with the direction lowercased
        (``asc`` when unset). Plain mappings with the same shape are accepted.
        """
        params: list[tuple[str, str]] = []
        if pageable is None:
            return params
        if not isinstance(pageable, Pageable):
            pageable = Pageable.model_validate(pageable)

        if pageable.page is not None:
            params.append(("page", str(pageable.page)))
        if pageable.size is not None:
            params.append(("size", str(pageable.size)))
        if pageable.sort is not None and pageable.sort.orders:
            for order in pageable.sort.orders:
                direction = order.direction.value.lower() if order.direction else "asc"
                params.append(("sort", f"{order.property},{direction}"))
        return params

    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------

    @classmethod
    def from_query_params(
        cls,
        params: httpx.QueryParams | Iterable[tuple[str, str]] | Mapping[str, Any],
    ) -> Pageable:
        """Decode from repeated query parameters.

        Accepts ``httpx.QueryParams``, a sequence of ``(key, value)`` pairs, or
        a mapping whose values are strings or lists of strings.
        """
        if isinstance(params, httpx.QueryParams):
            pairs = list(params.multi_items())
        elif isinstance(params, Mapping):
            pairs = []
            for key, value in params.items():
                if isinstance(value, (list, tuple)):
                    pairs.extend((key, str(item)) for item in value)
                else:
                    pairs.append((key, str(value)))
        else:
            pairs = list(params)

        page = next((value for key, value in pairs if key == "page"), None)
        size = next((value for key, value in pairs if key == "size"), None)
        sort_tokens = [value for key, value in pairs if key == "sort"]
        return cls._build(page, size, sort_tokens)

    @classmethod
    def from_query_map(cls, query: Mapping[str, Any]) -> Pageable:
        """Decode from ``{"page": str, "size": str, "sort": [str, ...]}``."""
        return cls._build(query.get("page"), query.get("size"), _sort_tokens(query.get("sort")))

    @classmethod
    def from_parsed_query(cls, query: Mapping[str, Any]) -> Pageable:
        """Decode from a parsed query object where ``sort`` may be a scalar or a list.

        A single scalar sort value is treated as a one-element list, so
        ``sort=`` still produces one (empty) order. A missing ``sort`` key
        produces no sort.
        """
        page = query.get("page")
        size = query.get("size")
        return cls._build(
            None if page is None else str(page),
            None if size is None else str(size),
            _sort_tokens(query.get("sort")),
        )

    @classmethod
    def from_query_string(cls, query_string: str) -> Pageable:
        """Decode from a raw query string (a leading ``?`` is ignored)."""
        return cls.from_query_params(parse_qsl(query_string.lstrip("?"), keep_blank_values=True))

    @classmethod
    def _build(cls, page: Any, size: Any, sort_tokens: Iterable[Any]) -> Pageable:
        orders = [_parse_sort_token(str(token)) for token in sort_tokens]
        return cls(
            page=_parse_int(page, minimum=0),
            size=_parse_int(size, minimum=1),
            sort=Sort(orders=orders) if orders else None,
        )


def _sort_tokens(raw_sort: Any) -> list[Any]:
    """A scalar sort value counts as one token; a missing one as none."""
    if raw_sort is None:
        return []
    if isinstance(raw_sort, (list, tuple)):
        return list(raw_sort)
    return [raw_sort]


def _parse_int(value: Any, minimum: int) -> int | None:
    """Leading-integer parse (``"12abc"`` -> 12). None when absent, unparsable or out of range."""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    number = int(match.group(1))
    return number if number >= minimum else None


def _parse_sort_token(token: str) -> SortOrder:
    """Split ``property,direction`` on the first comma. Anything but ``desc`` is ascending."""
    prop, _, direction = token.partition(",")
    if direction.lower() == "desc":
        return SortOrder(property=prop, direction=SortOrderDirection.DESC)
    return SortOrder(property=prop, direction=SortOrderDirection.ASC)
