"""Internal data models for rest-request.

All models use Pydantic v2. Request arguments are a tagged variant: one model
per transport, discriminated by the ``transport`` literal.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RequestArgumentError(ValueError):
    """Raised when a request argument cannot be routed to a transport.

    This is a caller bug, not a runtime condition: it is raised while the
    request is being resolved, before anything is sent.
    """


RequestMethod = Literal[
    "GET",
    "POST",
    "DELETE",
    "PATCH",
    "PUT",
    "OPTIONS",
    "HEAD",
    "TRACE",
    "CONNECT",
    "LINK",
    "UNLINK",
    "COPY",
    "PURGE",
    "LOCK",
    "UNLOCK",
    "PROPFIND",
    "VIEW",
]


# =============================================================================
# Request Arguments
# =============================================================================


class _BaseArgument(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    name: str = Field(description="Argument name (placeholder, header, query key)")
    value: Any = Field(default=None, description="Argument value, any shape")


class PathArgument(_BaseArgument):
    """Substituted for the first ``{name}`` placeholder in the path."""

    transport: Literal["path"] = "path"


class HeaderArgument(_BaseArgument):
    """Flattened and appended to the request headers."""

    transport: Literal["header"] = "header"
    type_name: str | None = Field(default=None, description="Declared type of the value")


class QueryArgument(_BaseArgument):
    """Flattened and appended to the query string.

    A ``type_name`` of ``"Pageable"`` routes the value through the pagination
    codec instead of the generic flattener.
    """

    transport: Literal["query"] = "query"
    type_name: str | None = Field(default=None, description="Declared type of the value")


class BodyArgument(_BaseArgument):
    """Serialized as the JSON request body. The last body argument wins."""

    transport: Literal["body"] = "body"


RequestArgument = Annotated[
    Union[PathArgument, HeaderArgument, QueryArgument, BodyArgument],
    Field(discriminator="transport"),
]

_ARGUMENT_TYPES: dict[str, type[_BaseArgument]] = {
    "path": PathArgument,
    "header": HeaderArgument,
    "query": QueryArgument,
    "body": BodyArgument,
}


def parse_argument(data: Mapping[str, Any]) -> PathArgument | HeaderArgument | QueryArgument | BodyArgument:
    """Build a typed argument from an untyped ``{name, value, transport, typeName}`` mapping.

    The transport tag is matched case-insensitively (``"QUERY"`` and
    ``"query"`` are the same). ``typeName`` and ``type_name`` are both
    accepted.

    Raises:
        RequestArgumentError: If the transport tag is missing or unknown.
    """
    transport = data.get("transport")
    if not isinstance(transport, str) or transport.lower() not in _ARGUMENT_TYPES:
        raise RequestArgumentError(f"Unknown argument transport: {transport}")

    argument_type = _ARGUMENT_TYPES[transport.lower()]
    kwargs: dict[str, Any] = {"name": data["name"], "value": data.get("value")}
    type_name = data.get("typeName", data.get("type_name"))
    if type_name is not None and argument_type in (HeaderArgument, QueryArgument):
        kwargs["type_name"] = type_name
    return argument_type(**kwargs)


# =============================================================================
# Wire Models
# =============================================================================


class RequestDescriptor(BaseModel):
    """A fully resolved, wire-ready request.

    Headers are an ordered multimap: repeated names are kept as separate
    pairs in the order they were added. ``body`` is None when the request
    had no body argument at all; a body argument with an absent value
    serializes to the JSON text ``null``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(description="Absolute or base-relative URL including the query string")
    method: str = Field(description="HTTP method (GET, POST, etc.)")
    headers: tuple[tuple[str, str], ...] = Field(
        default=(), description="Header (name, value) pairs in append order"
    )
    body: str | None = Field(default=None, description="JSON body text, if any")

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def header_values(self, name: str) -> list[str]:
        """All values for a header name (case-insensitive), in append order."""
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]


# =============================================================================
# Settings File Models
# =============================================================================


class ClientSettings(BaseModel):
    """Settings file structure (YAML, supports ${ENV_VAR} substitution)."""

    model_config = ConfigDict(extra="forbid")

    base_url: str | None = Field(default=None, description="Default base URL for clients")
    default_timeout_ms: int | None = Field(
        default=None, description="Default request timeout in milliseconds (<= 0 disables)"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Global headers sent with every request"
    )

    @field_validator("headers")
    @classmethod
    def validate_header_names(cls, v: dict[str, str]) -> dict[str, str]:
        for name in v:
            if not name or any(c.isspace() for c in name):
                raise ValueError(f"invalid header name: {name!r}")
        return v

    def apply(self, config: Any) -> None:
        """Push timeout and headers into a RestClientConfig."""
        if self.default_timeout_ms is not None:
            config.set_default_timeout(self.default_timeout_ms)
        for name, value in self.headers.items():
            config.set_header(name, value)

