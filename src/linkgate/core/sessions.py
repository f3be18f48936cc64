"""
Session store.

Sessions live as one list under the "sessions" key. Every issuance drops
expired records and keeps only the most recent max_sessions entries;
every validation rewrites the list if it observed expired records.
Callers must hold the gateway lock around every method.
"""

import time
import uuid
from typing import Callable, List, Optional

import structlog

from ..config import SessionSettings
from ..models.state import Session, SessionTier
from .store import KeyValueStore

logger = structlog.get_logger(__name__)

SESSIONS_KEY = "sessions"


def now_ms(clock: Callable[[], float] = time.time) -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(clock() * 1000)


class SessionStore:
    """
    Issues and validates session tokens.

    Public sessions are short lived and carry the client fingerprint;
    privileged sessions are long lived and issued only after the
    authenticator accepted a key.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: SessionSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock

    async def _load(self) -> List[Session]:
        raw = await self.store.get(SESSIONS_KEY) or []
        return [Session.model_validate(item) for item in raw]

    async def _save(self, sessions: List[Session]) -> None:
        await self.store.put(SESSIONS_KEY, [s.model_dump(mode="json") for s in sessions])

    async def _issue(self, tier: SessionTier, ttl_seconds: int, fingerprint: Optional[str]) -> Session:
        now = now_ms(self.clock)
        sessions = await self._load()
        active = [s for s in sessions if s.is_active(now)]

        existing = {s.token for s in active}
        token = str(uuid.uuid4())
        while token in existing:
            token = str(uuid.uuid4())

        session = Session(
            token=token,
            expires_at=now + ttl_seconds * 1000,
            tier=tier,
            fingerprint=fingerprint,
        )

        # Oldest first, so truncation keeps the tail
        retained = (active + [session])[-self.settings.max_sessions:]
        await self._save(retained)

        logger.info(
            "Session issued",
            tier=tier.value,
            token=token[:8] + "...",
            expires_at=session.expires_at,
            evicted_expired=len(sessions) - len(active),
            evicted_over_cap=len(active) + 1 - len(retained),
        )
        return session

    async def issue_public_session(self, fingerprint: Optional[str] = None) -> Session:
        """Issue a short-lived anonymous session. Always succeeds."""
        return await self._issue(SessionTier.PUBLIC, self.settings.public_ttl_seconds, fingerprint)

    async def issue_privileged_session(self) -> Session:
        """Issue a long-lived session. The caller has already checked the key."""
        return await self._issue(SessionTier.PRIVILEGED, self.settings.privileged_ttl_seconds, None)

    async def validate(self, token: Optional[str]) -> bool:
        """
        Return True iff token names a stored, unexpired session.

        Unknown and expired tokens both yield False. Expired records seen
        during the scan are dropped from storage.
        """
        if not token:
            return False

        now = now_ms(self.clock)
        sessions = await self._load()
        if not sessions:
            return False

        session = next((s for s in sessions if s.token == token), None)
        is_valid = session is not None and session.is_active(now)

        active = [s for s in sessions if s.is_active(now)]
        if len(active) != len(sessions):
            await self._save(active)
            logger.debug("Expired sessions evicted", evicted=len(sessions) - len(active))

        return is_valid
