"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import os
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.linkgate.config import (
    LinkSettings,
    SecuritySettings,
    SessionSettings,
    Settings,
    reload_settings,
)
from src.linkgate.core.auth import Authenticator
from src.linkgate.core.content import ContentPost, ContentSource
from src.linkgate.core.exceptions import UpstreamUnavailableError
from src.linkgate.core.gateway import GatewayFacade
from src.linkgate.core.store import InMemoryStore
from src.linkgate.models.gateway import ContentItem

VALID_KEY = "DEMO-GATE-2024"
OTHER_KEY = "SECURE-ACCESS-99"

TWO_LINK_BODY = (
    '<p>Pick a mirror</p>'
    '<a href="https://fast-dl.lol/file/abc123">Fast</a>'
    '<a href="https://cdn.vcloud.zip/d/xyz789">Cloud</a>'
    '<a href="https://fast-dl.lol/file/abc123">Fast again</a>'
    '<a href="https://example.com/not-trusted">Other</a>'
)


class FakeClock:
    """Controllable wall clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeContentSource(ContentSource):
    """In-process content source."""

    def __init__(self) -> None:
        self.posts: Dict[str, ContentPost] = {
            "101": ContentPost(id="101", title="Big Buck Bunny", body=TWO_LINK_BODY),
            "102": ContentPost(id="102", title="Empty Post", body="<p>No links here</p>"),
        }
        self.results: List[ContentItem] = [ContentItem(id="101", title="Big Buck Bunny")]
        self.unavailable = False
        self.queries: List[str] = []

    async def search(self, query: str) -> List[ContentItem]:
        self.queries.append(query)
        if self.unavailable:
            raise UpstreamUnavailableError()
        return list(self.results)

    async def get_post(self, post_id: str) -> Optional[ContentPost]:
        if self.unavailable:
            raise UpstreamUnavailableError()
        return self.posts.get(post_id)


def build_settings(max_sessions: int = 100) -> Settings:
    """Settings for unit tests, independent of env and config files."""
    return Settings(
        security=SecuritySettings(access_keys=[VALID_KEY, OTHER_KEY]),
        session=SessionSettings(public_ttl_seconds=900, privileged_ttl_seconds=3600, max_sessions=max_sessions),
        links=LinkSettings(ttl_seconds=3600, sweep_interval_seconds=0),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def content_source() -> FakeContentSource:
    return FakeContentSource()


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def make_gateway(
    store: InMemoryStore,
    content_source: FakeContentSource,
    clock: FakeClock,
) -> Callable[..., GatewayFacade]:
    """Factory for gateway facades over the shared in-memory store and fake clock."""
    def _make(max_sessions: int = 100) -> GatewayFacade:
        settings = build_settings(max_sessions=max_sessions)
        return GatewayFacade(
            store=store,
            settings=settings,
            authenticator=Authenticator(settings.security.access_keys),
            content_source=content_source,
            clock=clock,
        )
    return _make


@pytest.fixture
def gateway(make_gateway: Callable[..., GatewayFacade]) -> GatewayFacade:
    """Gateway facade over an in-memory store and a fake clock."""
    return make_gateway()


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Test configuration data."""
    return {
        "server": {
            "host": "0.0.0.0",
            "port": 8080,
            "debug": True,
            "log_level": "DEBUG"
        },
        "security": {
            "access_keys": [VALID_KEY, OTHER_KEY],
            "auth_rate_limit_enabled": False,
            "auth_rate_limit_rps": 1,
            "auth_rate_limit_burst": 3,
        },
        "session": {
            "public_ttl_seconds": 900,
            "privileged_ttl_seconds": 3600,
            "max_sessions": 100,
        },
        "links": {
            "ttl_seconds": 3600,
            "sweep_interval_seconds": 0,
        },
        "store": {
            "backend": "memory",
        },
    }


@pytest.fixture
def test_client(
    test_config: Dict[str, Any], content_source: FakeContentSource
) -> Generator[TestClient, None, None]:
    """FastAPI test client with test configuration and a fake content source."""
    import src.linkgate.core.auth as auth_module
    import src.linkgate.core.content as content_module
    import src.linkgate.core.store as store_module
    from src.linkgate.main import create_app

    # Env vars seeded from the config file are dropped after each test
    with patch.dict(os.environ, {}, clear=False):
        for key in [k for k in os.environ if k.startswith("LINKGATE_")]:
            del os.environ[key]

        with patch('src.linkgate.config.load_config_file') as mock_load:
            mock_load.return_value = test_config
            reload_settings()

            # Clear module singletons to ensure test isolation
            auth_module._authenticator = None
            auth_module._rate_limiter = None
            store_module._store = None
            content_module._content_source = content_source

            app = create_app()
            with TestClient(app) as client:
                yield client

            content_module._content_source = None

    reload_settings()
