"""Executor - Sends resolved requests through a fetcher and interprets responses.

A RequestBuilder collects headers and a timeout, then ``build()`` freezes
them into a RestRequest. ``RestRequest.call()`` resolves the arguments,
arms a one-shot cancellation timer, hands the request to the fetcher (the
transport collaborator) and turns the response into a payload, None, or a
RestError.

Response handling:
    404                           -> None
    content-type application/json -> body decoded as JSON (empty body -> None)
    anything else                 -> payload is None
    status >= 400                 -> RestError (message from the JSON "error" field)
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from rest_request.config import RestClientConfig, default_config
from rest_request.models import RequestDescriptor
from rest_request.resolver import resolve_request

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class ExecutorError(Exception):
    """Base class for executor errors."""


class RestError(ExecutorError):
    """Raised when the server answers with a status code of 400 or above."""

    def __init__(self, message: str, response: httpx.Response) -> None:
        super().__init__(message)
        self.response = response
        self.status_code = response.status_code


class RequestAbortedError(ExecutorError):
    """Raised by HttpxFetcher when the cancellation signal fires mid-request."""


class CancellationSignal:
    """One-shot signal telling the fetcher to abandon a request.

    Fetchers may poll ``aborted``, await ``wait()``, or register a callback.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], Any]] = []
        self.reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str | None = None) -> None:
        """Fire the signal. Calls after the first are no-ops."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    async def wait(self) -> None:
        await self._event.wait()

    def add_callback(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Run ``callback`` on abort (immediately if already aborted).

        Returns a function that unregisters the callback.
        """
        if self.aborted:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove


@dataclass(frozen=True)
class FetchInit:
    """Everything the fetcher needs besides the URL."""

    method: str
    headers: tuple[tuple[str, str], ...]
    body: str | None
    signal: CancellationSignal


Fetcher = Callable[[str, FetchInit], Awaitable[httpx.Response]]


class HttpxFetcher:
    """Default fetcher backed by ``httpx.AsyncClient``.

    The request is cancelled when the signal fires and RequestAbortedError
    is raised in its place. Transport errors from httpx propagate unchanged.

    Usage:
        async with HttpxFetcher() as fetcher:
            client = BaseRestClient(fetcher, "https://api.example.com")
            user = await client.execute("GET", "/users/{id}", [PathArgument(name="id", value=1)])
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Existing client to send through. Not closed by aclose().
            transport: httpx transport for a client created here
                       (e.g., httpx.MockTransport in tests).
        """
        self._owns_client = client is None
        # Timeouts are enforced by the cancellation signal, not by httpx
        self._client = client or httpx.AsyncClient(transport=transport, timeout=None)

    async def __aenter__(self) -> HttpxFetcher:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __call__(self, url: str, init: FetchInit) -> httpx.Response:
        if init.signal.aborted:
            raise RequestAbortedError(f"Request aborted before sending: {init.method} {url}")

        task = asyncio.ensure_future(
            self._client.request(
                init.method,
                url,
                headers=list(init.headers),
                content=init.body.encode("utf-8") if init.body is not None else None,
            )
        )
        remove_callback = init.signal.add_callback(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            if init.signal.aborted:
                raise RequestAbortedError(
                    f"Request aborted ({init.signal.reason or 'cancelled'}): {init.method} {url}"
                ) from None
            raise
        finally:
            remove_callback()


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str):
            return error
    return UNKNOWN_ERROR_MESSAGE


def interpret_response(response: httpx.Response) -> Any:
    """Turn a response into its JSON payload, None, or a RestError.

    Raises:
        RestError: If the status code is 400 or above (except 404).
    """
    if response.status_code == 404:
        return None

    payload: Any = None
    content_type = response.headers.get("content-type") or ""
    if content_type.startswith("application/json"):
        text = response.text
        payload = json.loads(text) if text else None

    if response.status_code >= 400:
        raise RestError(_error_message(payload), response)

    return payload


@dataclass(frozen=True)
class RestRequest:
    """An immutable, ready-to-send request. Each call() resolves and sends it afresh."""

    fetcher: Fetcher
    base_url: str
    method: str
    path: str
    arguments: tuple[Any, ...] = ()
    headers: tuple[tuple[str, str], ...] = ()
    timeout_ms: int = 0

    @property
    def url(self) -> str:
        return self.base_url + self.path

    def descriptor(self) -> RequestDescriptor:
        """Resolve the arguments into a wire-ready descriptor."""
        return resolve_request(self.base_url, self.method, self.path, self.headers, self.arguments)

    async def call(self) -> Any:
        """Send the request and interpret the response.

        Returns:
            The decoded JSON payload, or None for 404 and non-JSON responses.

        Raises:
            RestError: If the status code is 400 or above (except 404).
            RequestArgumentError: If an argument has an unknown transport.
            Exception: Any fetcher failure (including aborts) propagates unchanged.
        """
        signal = CancellationSignal()
        timer: asyncio.TimerHandle | None = None
        if self.timeout_ms > 0:
            loop = asyncio.get_running_loop()
            timer = loop.call_later(self.timeout_ms / 1000, signal.abort, "timeout")

        try:
            descriptor = self.descriptor()
            logger.debug(f"Request: {descriptor.method} {descriptor.url}")
            response = await self.fetcher(
                descriptor.url,
                FetchInit(
                    method=descriptor.method,
                    headers=descriptor.headers,
                    body=descriptor.body,
                    signal=signal,
                ),
            )
        finally:
            if timer is not None:
                timer.cancel()

        logger.debug(f"Response: {response.status_code} {descriptor.method} {descriptor.url}")
        return interpret_response(response)


class RequestBuilder:
    """Collects per-request headers and a timeout, then builds a RestRequest.

    Setters return the builder so calls can be chained. Header names are
    case-insensitive; setting a header again replaces the earlier value.

    Usage:
        builder = RequestBuilder(fetcher, "https://api.example.com/", "GET", "users/{id}", args)
        user = await builder.with_bearer_token("abc").with_timeout(5000).call()
    """

    def __init__(
        self,
        fetcher: Fetcher,
        base_url: str,
        method: str,
        path: str,
        arguments: Iterable[Any] = (),
        config: RestClientConfig | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url
        self._method = method
        self._path = path.lstrip("/")
        self._arguments = tuple(arguments)
        self._headers: dict[str, str] = {}
        self._timeout_ms = (config or default_config).default_timeout_ms

    @property
    def url(self) -> str:
        return self._base_url + self._path

    @property
    def method(self) -> str:
        return self._method

    @property
    def arguments(self) -> list[Any]:
        return list(self._arguments)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def timeout(self) -> int:
        return self._timeout_ms

    def with_timeout(self, timeout_ms: int) -> RequestBuilder:
        """Set the timeout in milliseconds. 0 or negative disables it."""
        self._timeout_ms = timeout_ms
        return self

    def with_header(self, name: str, value: str) -> RequestBuilder:
        for existing in [key for key in self._headers if key.lower() == name.lower()]:
            del self._headers[existing]
        self._headers[name] = value
        return self

    def with_headers(self, headers: dict[str, str]) -> RequestBuilder:
        for name, value in headers.items():
            self.with_header(name, value)
        return self

    def with_authorization(self, auth: str) -> RequestBuilder:
        return self.with_header("Authorization", auth)

    def with_bearer_token(self, token: str) -> RequestBuilder:
        return self.with_authorization(f"Bearer {token}")

    def with_content_type(self, content_type: str) -> RequestBuilder:
        return self.with_header("Content-Type", content_type)

    def build(self) -> RestRequest:
        """Snapshot the current state into an immutable RestRequest."""
        return RestRequest(
            fetcher=self._fetcher,
            base_url=self._base_url,
            method=self._method,
            path=self._path,
            arguments=self._arguments,
            headers=tuple(self._headers.items()),
            timeout_ms=self._timeout_ms,
        )

    async def call(self) -> Any:
        """Build and send in one step."""
        return await self.build().call()
