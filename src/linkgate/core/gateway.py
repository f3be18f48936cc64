"""
Gateway facade.

The single access surface over the session store and link vault. Each
facade owns one asyncio.Lock; every store read-then-write sequence runs
under it, so concurrent requests against one partition touch storage one
at a time, in arrival order. The lock is released around content source
calls.
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional

import structlog

from ..config import Settings
from ..models.gateway import ContentItem, DownloadLink, PostDetail
from ..models.state import Session, SessionTier
from .auth import Authenticator
from .content import ContentSource
from .crypto import decrypt_payload
from .exceptions import (
    ContentNotFoundError,
    InvalidCredentialError,
    LinkNotFoundError,
    PayloadDecryptError,
    SessionInvalidError,
    UpstreamUnavailableError,
)
from .links import LinkVault, extract_trusted_links, link_label, route_to_gateway
from .metrics import MetricsCollector
from .sessions import SessionStore
from .store import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_PARTITION = "global"
HEALTH_KEY = "health:ping"


class GatewayFacade:
    """
    Serialized session and link operations for one logical instance.

    Failures surface as typed exceptions:
    - InvalidCredentialError from authenticate
    - SessionInvalidError for unknown, expired or undecryptable sessions
    - LinkNotFoundError for unknown, expired or used opaque IDs
    - ContentNotFoundError when the content source has no such post
    Content source outages never propagate.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        authenticator: Authenticator,
        content_source: ContentSource,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
        partition: str = DEFAULT_PARTITION,
    ) -> None:
        self.store = store
        self.settings = settings
        self.authenticator = authenticator
        self.content_source = content_source
        self.metrics = metrics
        self.partition = partition
        self.sessions = SessionStore(store, settings.session, clock)
        self.links = LinkVault(store, settings.links, clock)
        self._lock = asyncio.Lock()

        logger.info("Gateway facade initialized", partition=partition)

    async def init(self, fingerprint: Optional[str] = None) -> Session:
        """Issue a public session. Always succeeds."""
        async with self._lock:
            session = await self.sessions.issue_public_session(fingerprint)

        if self.metrics:
            self.metrics.record_session_issued(SessionTier.PUBLIC.value)
        return session

    async def authenticate(self, key: Optional[str]) -> Session:
        """Issue a privileged session for an allow-listed key."""
        accepted = self.authenticator.check_credential(key)
        if self.metrics:
            self.metrics.record_auth_attempt(accepted)

        if not accepted:
            logger.warning("Authentication failed", partition=self.partition)
            raise InvalidCredentialError()

        async with self._lock:
            session = await self.sessions.issue_privileged_session()

        if self.metrics:
            self.metrics.record_session_issued(SessionTier.PRIVILEGED.value)
        return session

    async def _require_session(self, token: Optional[str]) -> str:
        """Return the token if it names an active session."""
        async with self._lock:
            valid = await self.sessions.validate(token)

        if self.metrics:
            self.metrics.record_validation(valid)
        if not valid or not token:
            raise SessionInvalidError()
        return token

    async def _search_upstream(self, query: str) -> List[ContentItem]:
        try:
            results = await self.content_source.search(query)
        except UpstreamUnavailableError:
            if self.metrics:
                self.metrics.record_upstream("search", "unavailable")
            logger.warning("Search degraded to empty result", partition=self.partition)
            return []

        if self.metrics:
            self.metrics.record_upstream("search", "ok" if results else "empty")
        return results

    async def search(self, token: Optional[str], encrypted_query: str) -> List[ContentItem]:
        """Search with a query encrypted under the session token."""
        token = await self._require_session(token)

        # Key derivation runs PBKDF2; keep it off the event loop
        try:
            query = await asyncio.to_thread(decrypt_payload, encrypted_query, token)
        except PayloadDecryptError:
            raise SessionInvalidError()

        logger.info("Search requested", token=token[:8] + "...", query_length=len(query))
        return await self._search_upstream(query)

    async def find(self, query: str) -> List[ContentItem]:
        """Plaintext search without a session."""
        logger.info("Open search requested", query_length=len(query))
        return await self._search_upstream(query)

    async def fetch_detail(self, token: Optional[str], content_id: str) -> PostDetail:
        """Fetch a post and mint one opaque link per distinct trusted URL in it."""
        await self._require_session(token)

        try:
            post = await self.content_source.get_post(content_id)
        except UpstreamUnavailableError:
            if self.metrics:
                self.metrics.record_upstream("post", "unavailable")
            raise ContentNotFoundError()

        if post is None:
            if self.metrics:
                self.metrics.record_upstream("post", "empty")
            raise ContentNotFoundError()
        if self.metrics:
            self.metrics.record_upstream("post", "ok")

        urls = extract_trusted_links(post.body, self.settings.links.trusted_domains)
        async with self._lock:
            mappings = await self.links.mint(urls)

        if self.metrics:
            self.metrics.record_links_minted(len(mappings))

        return PostDetail(
            title=post.title,
            post_id=content_id,
            links=[DownloadLink(id=m.opaque_id, label=link_label(m.target_url)) for m in mappings],
        )

    async def resolve(self, token: Optional[str], opaque_id: str) -> str:
        """Redeem an opaque ID once and return its delivery gateway URL."""
        async with self._lock:
            valid = await self.sessions.validate(token)
            target_url = await self.links.redeem(opaque_id) if valid else None

        if self.metrics:
            self.metrics.record_validation(valid)
        if not valid:
            raise SessionInvalidError()

        if self.metrics:
            self.metrics.record_redemption(target_url is not None)
        if target_url is None:
            raise LinkNotFoundError()

        return route_to_gateway(target_url)

    async def sweep_links(self) -> int:
        """Remove expired, never redeemed link mappings."""
        async with self._lock:
            removed = await self.links.sweep_expired()

        if self.metrics:
            self.metrics.record_links_swept(removed)
        return removed

    async def ping(self) -> bool:
        """Round-trip a value through the store."""
        async with self._lock:
            stamp = time.time()
            await self.store.put(HEALTH_KEY, stamp)
            ok = await self.store.get(HEALTH_KEY) == stamp
            await self.store.delete(HEALTH_KEY)
        return ok


class GatewayRegistry:
    """
    One facade, and so one lock, per partition key.

    All partitions share one store backend with namespaced keys.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        authenticator: Authenticator,
        content_source: ContentSource,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings
        self.authenticator = authenticator
        self.content_source = content_source
        self.metrics = metrics
        self.clock = clock
        self._facades: Dict[str, GatewayFacade] = {}

    def get(self, partition: str = DEFAULT_PARTITION) -> GatewayFacade:
        """Get or create the facade for a partition."""
        if partition not in self._facades:
            self._facades[partition] = GatewayFacade(
                store=self.store.namespaced(partition),
                settings=self.settings,
                authenticator=self.authenticator,
                content_source=self.content_source,
                metrics=self.metrics,
                clock=self.clock,
                partition=partition,
            )
        return self._facades[partition]

    def partitions(self) -> List[str]:
        return list(self._facades)
