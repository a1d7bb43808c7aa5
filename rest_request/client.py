"""Base REST client.

Subclasses (usually generated, one per API) call ``create`` or ``execute``
with a method, a path template and the typed arguments of an endpoint.

Header layering, lowest to highest precedence:
    global headers (RestClientConfig) -> client fixed headers
    -> RequestBuilder.with_header -> header arguments (appended)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from rest_request.config import RestClientConfig, default_config
from rest_request.executor import Fetcher, RequestBuilder
from rest_request.models import ClientSettings

logger = logging.getLogger(__name__)


class BaseRestClient:
    """Creates requests against one base URL.

    Usage:
        class UsersClient(BaseRestClient):
            async def get_user(self, user_id: int) -> dict | None:
                return await self.execute(
                    "GET", "/users/{id}", [PathArgument(name="id", value=user_id)]
                )

        async with HttpxFetcher() as fetcher:
            users = UsersClient(fetcher, "https://api.example.com")
            user = await users.with_bearer_token("abc").get_user(42)
    """

    def __init__(
        self,
        fetcher: Fetcher,
        base_url: str,
        config: RestClientConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            fetcher: Transport collaborator used to send requests.
            base_url: Base URL. Empty means "/"; a trailing "/" is added if missing.
            config: Shared defaults (timeout, global headers). Uses
                    ``default_config`` if None.
        """
        self._fetcher = fetcher
        self._config = config or default_config
        self._base_url = ""
        self.base_url = base_url
        self._timeout_ms: int | None = None
        self._fixed_headers: dict[str, str] = {}

    @classmethod
    def from_settings(
        cls,
        fetcher: Fetcher,
        settings: ClientSettings,
        config: RestClientConfig | None = None,
    ) -> BaseRestClient:
        """Build a client from loaded settings.

        The settings' timeout and headers become this client's own, so the
        shared config is left untouched. A missing base URL means "/".
        """
        client = cls(fetcher, settings.base_url or "", config=config)
        if settings.default_timeout_ms is not None:
            client.with_timeout(settings.default_timeout_ms)
        for name, value in settings.headers.items():
            client.with_header(name, value)
        return client

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, base_url: str) -> None:
        if not base_url:
            base_url = "/"
        if not base_url.endswith("/"):
            base_url += "/"
        self._base_url = base_url

    @property
    def config(self) -> RestClientConfig:
        return self._config

    @property
    def fixed_headers(self) -> dict[str, str]:
        return dict(self._fixed_headers)

    def with_timeout(self, timeout_ms: int | None) -> BaseRestClient:
        """Timeout for requests created by this client. None falls back to the config default."""
        self._timeout_ms = timeout_ms
        return self

    def with_header(self, name: str, value: str | None) -> BaseRestClient:
        """Set a header sent with every request. An empty or None value removes it."""
        if not value:
            self._fixed_headers.pop(name, None)
            return self
        self._fixed_headers[name] = value
        return self

    def with_content_type(self, content_type: str | None) -> BaseRestClient:
        return self.with_header("Content-Type", content_type)

    def with_authorization(self, auth: str | None) -> BaseRestClient:
        return self.with_header("Authorization", auth)

    def with_bearer_token(self, token: str | None) -> BaseRestClient:
        return self.with_authorization(f"Bearer {token}" if token else token)

    def after_create(self, request: RequestBuilder) -> None:
        """Hook called for every new request. Override to add headers or similar."""

    def create(self, method: str, path: str, arguments: Iterable[Any] = ()) -> RequestBuilder:
        """Create a request builder with this client's timeout and layered headers."""
        request = RequestBuilder(
            self._fetcher,
            self._base_url,
            method,
            path,
            arguments,
            config=self._config,
        )
        if self._timeout_ms is not None:
            request.with_timeout(self._timeout_ms)

        request.with_headers(self._config.global_headers)
        request.with_headers(self._fixed_headers)

        self.after_create(request)
        logger.debug(f"Created request: {method} {request.url}")
        return request

    async def execute(self, method: str, path: str, arguments: Iterable[Any] = ()) -> Any:
        """Create and send a request. Returns the JSON payload or None."""
        return await self.create(method, path, arguments).call()
