"""Resolver - Turns a request description into a wire-ready RequestDescriptor.

Each argument is routed by its transport:
    path   -> replaces the first {name} placeholder in the URL
    header -> flattened and appended to the headers
    query  -> flattened (or Pageable-encoded) and appended to the query string
    body   -> JSON-serialized; the last body argument wins
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel

from rest_request.flatten import flatten_value, stringify, to_epoch_millis
from rest_request.models import (
    BodyArgument,
    HeaderArgument,
    PathArgument,
    QueryArgument,
    RequestArgumentError,
    RequestDescriptor,
    parse_argument,
)
from rest_request.pageable import TYPE_PAGEABLE, Pageable

JSON_CONTENT_TYPE = "application/json"


def _json_default(value: Any) -> Any:
    """json.dumps hook: dates become epoch milliseconds."""
    if isinstance(value, date):
        return to_epoch_millis(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="python")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json_body(value: Any) -> str:
    """Serialize a body value as compact JSON text.

    Dates anywhere in the structure are written as epoch-millisecond
    numbers. None becomes ``null``.
    """
    return json.dumps(value, default=_json_default, separators=(",", ":"), ensure_ascii=False)


def _has_header(headers: list[tuple[str, str]], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key, _ in headers)


def _initial_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Fixed headers with set semantics (one value per name). ``accept`` is always JSON."""
    items = headers.items() if isinstance(headers, Mapping) else headers
    merged: dict[str, tuple[str, str]] = {}
    for key, value in items:
        merged[key.lower()] = (key, value)
    merged.pop("accept", None)
    return [*merged.values(), ("accept", JSON_CONTENT_TYPE)]


def _append_flattened(target: list[tuple[str, str]], name: str, value: Any) -> None:
    for key, values in flatten_value(name, value).items():
        for item in values:
            target.append((key, item if type(item) is str else stringify(item)))


def resolve_request(
    base_url: str,
    method: str,
    path: str,
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    arguments: Iterable[Any],
) -> RequestDescriptor:
    """Resolve arguments against a URL template into a RequestDescriptor.

    Args:
        base_url: Base URL, concatenated with ``path`` as-is.
        method: HTTP method.
        path: Path template with ``{name}`` placeholders.
        headers: Already-layered fixed headers (global, client, request).
        arguments: Typed arguments (or untyped mappings, see parse_argument),
            processed in order.

    Returns:
        The resolved request.

    Raises:
        RequestArgumentError: If an argument is not one of the four transports.
    """
    url = base_url + path
    header_pairs = _initial_headers(headers)
    query: list[tuple[str, str]] = []
    body: str | None = None

    for argument in arguments:
        if isinstance(argument, Mapping):
            argument = parse_argument(argument)

        if isinstance(argument, PathArgument):
            replacement = "" if argument.value is None else stringify(argument.value)
            url = url.replace("{" + argument.name + "}", replacement, 1)
        elif isinstance(argument, HeaderArgument):
            if argument.value is not None:
                _append_flattened(header_pairs, argument.name, argument.value)
        elif isinstance(argument, BodyArgument):
            if not _has_header(header_pairs, "content-type"):
                header_pairs.append(("content-type", JSON_CONTENT_TYPE))
            body = encode_json_body(argument.value)
        elif isinstance(argument, QueryArgument):
            if argument.value is None:
                continue
            if argument.type_name == TYPE_PAGEABLE:
                query.extend(Pageable.encode(argument.value))
            else:
                _append_flattened(query, argument.name, argument.value)
        else:
            transport = getattr(argument, "transport", None)
            raise RequestArgumentError(f"Unknown argument transport: {transport!r}")

    if query:
        url += "?" + urlencode(query)

    return RequestDescriptor(
        url=url,
        method=method,
        headers=tuple(header_pairs),
        body=body,
    )
