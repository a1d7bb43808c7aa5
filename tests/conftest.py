"""Pytest configuration and fixtures for rest-request tests.

This file provides:
- make_response: httpx.Response factory with sensible defaults
- RecordingFetcher: Fetcher that records calls and replays canned responses
- Fixtures: isolated RestClientConfig instances and a recording fetcher
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest

from rest_request.config import RestClientConfig, default_config
from rest_request.executor import FetchInit

PROJECT_ROOT = Path(__file__).parent.parent


def make_response(
    status_code: int = 200,
    body: Any = None,
    content_type: str | None = "application/json",
    text: str | None = None,
) -> httpx.Response:
    """Create an httpx.Response for testing response handling.

    ``body`` is JSON-encoded; ``text`` is sent verbatim and wins over ``body``.
    ``content_type=None`` omits the header entirely.
    """
    headers: dict[str, str] = {}
    if content_type is not None:
        headers["content-type"] = content_type
    if text is not None:
        content = text.encode("utf-8")
    elif body is not None:
        content = json.dumps(body).encode("utf-8")
    else:
        content = b""
    return httpx.Response(status_code, headers=headers, content=content)


class RecordingFetcher:
    """Fetcher that records (url, init) calls and returns queued responses.

    When the queue is empty, returns a 200 response with an empty JSON body.
    """

    def __init__(self, *responses: httpx.Response) -> None:
        self.calls: list[tuple[str, FetchInit]] = []
        self._responses = list(responses)

    async def __call__(self, url: str, init: FetchInit) -> httpx.Response:
        self.calls.append((url, init))
        if self._responses:
            return self._responses.pop(0)
        return make_response(200, body={})

    @property
    def last_url(self) -> str:
        return self.calls[-1][0]

    @property
    def last_init(self) -> FetchInit:
        return self.calls[-1][1]


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def config() -> RestClientConfig:
    """A fresh, isolated configuration (30s timeout, no global headers)."""
    return RestClientConfig()


@pytest.fixture
def recording_fetcher() -> RecordingFetcher:
    return RecordingFetcher()


@pytest.fixture
def clean_default_config() -> Generator[RestClientConfig, None, None]:
    """The shared default_config, reset before and after the test."""
    default_config.reset()
    yield default_config
    default_config.reset()


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Automatically apply markers based on test location.

    Enables running subsets via:
        pytest -m integration  # only integration tests
        pytest -m unit         # only unit tests
    """
    for item in items:
        test_path = Path(item.fspath)
        if "integration" in test_path.parts:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
