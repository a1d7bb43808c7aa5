"""Tests for rest_request.pageable.

Tests cover:
- Encoding page/size/sort to query parameters
- Decoding from query strings, parameter pairs, query maps and parsed queries
- Round-trips and the documented edge cases (empty sort, scalar sort, bad ints)
"""

import httpx
import pytest
from pydantic import ValidationError

from rest_request.pageable import (
    TYPE_PAGEABLE,
    Pageable,
    Sort,
    SortOrder,
    SortOrderDirection,
)


def _orders(*pairs: tuple[str, SortOrderDirection]) -> Sort:
    return Sort(orders=[SortOrder(property=p, direction=d) for p, d in pairs])


@pytest.fixture
def full_pageable() -> Pageable:
    return Pageable(
        page=2,
        size=50,
        sort=_orders(("name", SortOrderDirection.DESC), ("age", SortOrderDirection.ASC)),
    )


class TestEncode:
    def test_type_name(self) -> None:
        assert TYPE_PAGEABLE == "Pageable"

    def test_full(self, full_pageable: Pageable) -> None:
        assert full_pageable.to_query_params() == [
            ("page", "2"),
            ("size", "50"),
            ("sort", "name,desc"),
            ("sort", "age,asc"),
        ]

    def test_empty(self) -> None:
        assert Pageable().to_query_params() == []

    def test_none(self) -> None:
        assert Pageable.encode(None) == []

    def test_page_zero_is_emitted(self) -> None:
        assert Pageable(page=0).to_query_params() == [("page", "0")]

    def test_missing_direction_defaults_to_asc(self) -> None:
        pageable = Pageable(sort=Sort(orders=[SortOrder(property="name")]))
        assert pageable.to_query_params() == [("sort", "name,asc")]

    def test_mapping_input(self) -> None:
        params = Pageable.encode({"page": 1, "sort": {"orders": [{"property": "id", "direction": "DESC"}]}})
        assert params == [("page", "1"), ("sort", "id,desc")]

    def test_str_is_query_string(self, full_pageable: Pageable) -> None:
        assert str(full_pageable) == "page=2&size=50&sort=name%2Cdesc&sort=age%2Casc"


class TestDecode:
    def test_from_query_string_two_sorts(self) -> None:
        pageable = Pageable.from_query_string("sort=name,desc&sort=age")
        assert pageable.sort is not None
        assert pageable.sort.orders == [
            SortOrder(property="name", direction=SortOrderDirection.DESC),
            SortOrder(property="age", direction=SortOrderDirection.ASC),
        ]
        assert pageable.page is None
        assert pageable.size is None

    def test_from_query_string_leading_question_mark(self) -> None:
        assert Pageable.from_query_string("?page=3").page == 3

    def test_direction_case_insensitive(self) -> None:
        pageable = Pageable.from_query_string("sort=name,DeSc")
        assert pageable.sort.orders[0].direction == SortOrderDirection.DESC

    def test_unknown_direction_is_asc(self) -> None:
        pageable = Pageable.from_query_string("sort=name,sideways")
        assert pageable.sort.orders[0].direction == SortOrderDirection.ASC

    def test_split_on_first_comma_only(self) -> None:
        pageable = Pageable.from_query_params([("sort", "name,desc,extra")])
        order = pageable.sort.orders[0]
        assert order.property == "name"
        assert order.direction == SortOrderDirection.ASC

    def test_no_sort_is_none(self) -> None:
        assert Pageable.from_query_string("page=1").sort is None

    def test_empty_sort_value_gives_empty_order(self) -> None:
        pageable = Pageable.from_query_string("sort=")
        assert pageable.sort.orders == [
            SortOrder(property="", direction=SortOrderDirection.ASC)
        ]

    def test_unparsable_ints_are_none(self) -> None:
        pageable = Pageable.from_query_string("page=abc&size=")
        assert pageable.page is None
        assert pageable.size is None

    def test_leading_digits_parsed(self) -> None:
        assert Pageable.from_query_string("page=12abc").page == 12

    def test_out_of_range_ints_are_none(self) -> None:
        pageable = Pageable.from_query_string("page=-1&size=0")
        assert pageable.page is None
        assert pageable.size is None

    def test_first_page_value_wins(self) -> None:
        assert Pageable.from_query_params([("page", "1"), ("page", "2")]).page == 1

    def test_from_httpx_query_params(self) -> None:
        params = httpx.QueryParams([("page", "1"), ("sort", "a,desc"), ("sort", "b")])
        pageable = Pageable.from_query_params(params)
        assert pageable.page == 1
        assert [o.property for o in pageable.sort.orders] == ["a", "b"]

    def test_from_mapping_of_lists(self) -> None:
        pageable = Pageable.from_query_params({"size": "10", "sort": ["a", "b,desc"]})
        assert pageable.size == 10
        assert pageable.sort.orders[1].direction == SortOrderDirection.DESC

    def test_from_query_map(self) -> None:
        pageable = Pageable.from_query_map({"page": "4", "size": "20", "sort": ["id,desc"]})
        assert pageable == Pageable(
            page=4, size=20, sort=_orders(("id", SortOrderDirection.DESC))
        )

    def test_from_query_map_scalar_sort(self) -> None:
        pageable = Pageable.from_query_map({"sort": "name,desc"})
        assert pageable.sort.orders == [
            SortOrder(property="name", direction=SortOrderDirection.DESC)
        ]

    def test_from_query_map_without_sort(self) -> None:
        assert Pageable.from_query_map({"page": "1"}).sort is None

    def test_from_parsed_query_scalar_sort(self) -> None:
        """A single non-list sort value is treated as a one-element list."""
        pageable = Pageable.from_parsed_query({"sort": "name,desc"})
        assert pageable.sort.orders == [
            SortOrder(property="name", direction=SortOrderDirection.DESC)
        ]

    def test_from_parsed_query_list_sort(self) -> None:
        pageable = Pageable.from_parsed_query({"page": 1, "sort": ["a", "b,desc"]})
        assert pageable.page == 1
        assert len(pageable.sort.orders) == 2

    def test_from_parsed_query_no_sort(self) -> None:
        assert Pageable.from_parsed_query({"page": "0"}).sort is None


class TestRoundTrip:
    def test_decode_encode(self, full_pageable: Pageable) -> None:
        decoded = Pageable.from_query_params(full_pageable.to_query_params())
        assert decoded == full_pageable

    def test_page_zero_round_trips(self) -> None:
        pageable = Pageable(page=0, size=1)
        assert Pageable.from_query_string(str(pageable)) == pageable

    def test_encode_decode_normalizes_direction(self) -> None:
        decoded = Pageable.from_query_string("page=1&size=5&sort=name,DESC&sort=age")
        assert str(decoded) == "page=1&size=5&sort=name%2Cdesc&sort=age%2Casc"


class TestAccessors:
    def test_defaults(self) -> None:
        pageable = Pageable()
        assert pageable.get_page() == 0
        assert pageable.get_size() == 30

    def test_custom_defaults(self) -> None:
        pageable = Pageable()
        assert pageable.get_page(5) == 5
        assert pageable.get_size(default_size=10) == 10

    def test_set_values_win(self) -> None:
        pageable = Pageable(page=3, size=7)
        assert pageable.get_page(5) == 3
        assert pageable.get_size(10) == 7

    def test_to_json(self) -> None:
        pageable = Pageable(page=1, sort=_orders(("id", SortOrderDirection.ASC)))
        assert pageable.to_json() == {
            "page": 1,
            "size": None,
            "sort": {"orders": [{"property": "id", "direction": "ASC"}]},
        }

    def test_negative_page_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Pageable(page=-1)

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            Pageable(page=1).page = 2  # type: ignore[misc]
