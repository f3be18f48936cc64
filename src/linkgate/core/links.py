"""
Opaque link vault and delivery gateway routing.

Features:
- Mints one random opaque ID per distinct target URL
- Single-use redemption: the mapping is deleted before its expiry is checked
- Deterministic host-based routing of redeemed URLs onto delivery gateways
- Extraction of trusted download links from content bodies
"""

import re
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import quote, urlparse

import structlog

from ..config import LinkSettings
from ..models.state import LinkMapping
from .sessions import now_ms
from .store import KeyValueStore

logger = structlog.get_logger(__name__)

LINK_KEY_PREFIX = "link:"


@dataclass(frozen=True)
class GatewayRule:
    """Routes URLs whose host contains match onto template."""
    match: str
    template: str


FAST_DL_GATEWAY = "https://vclzipfast.dhanjeerider.workers.dev/?url={url}"
VCLOUD_GATEWAY = "https://byclass.dhanjeerider.workers.dev/api?url={url}&pagestep=2&1link=gamerxyt&2class=btn-lg"
DEFAULT_GATEWAY = "https://click.dhanjeerider.workers.dev/?url={url}"

DEFAULT_GATEWAY_RULES = (
    GatewayRule("fastdl", FAST_DL_GATEWAY),
    GatewayRule("fast-dl.lol", FAST_DL_GATEWAY),
    GatewayRule("vcloud.zip", VCLOUD_GATEWAY),
    GatewayRule("vclzip.online", VCLOUD_GATEWAY),
)


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def route_to_gateway(
    url: str,
    rules: Sequence[GatewayRule] = DEFAULT_GATEWAY_RULES,
    default_template: str = DEFAULT_GATEWAY,
) -> str:
    """
    Map a target URL onto its delivery gateway URL.

    The longest rule substring found in the host wins; ties go to the
    earlier rule. Unmatched URLs use the default gateway.
    """
    host = _host(url)
    best: Optional[GatewayRule] = None
    for rule in rules:
        if rule.match in host and (best is None or len(rule.match) > len(best.match)):
            best = rule

    template = best.template if best else default_template
    return template.format(url=quote(url, safe=""))


def link_label(url: str) -> str:
    """Human label for a download link."""
    host = _host(url)
    if "fast-dl" in host or "fastdl" in host:
        return "Fast DL"
    if "vcloud.zip" in host or "vclzip" in host:
        return "VCloud"
    return "Mirror"


def build_trusted_link_pattern(domains: Iterable[str]) -> "re.Pattern[str]":
    """href attribute pattern for http(s) URLs on the trusted domains."""
    alternatives = "|".join(re.escape(domain) for domain in domains)
    return re.compile(
        rf"""href=["'](https?://(?:[a-z0-9-]+\.)?(?:{alternatives})/[^"']+)["']""",
        re.IGNORECASE,
    )


def extract_trusted_links(html: str, domains: Iterable[str]) -> List[str]:
    """Unique trusted URLs in order of first appearance."""
    domains = list(domains)
    if not html or not domains:
        return []
    pattern = build_trusted_link_pattern(domains)
    return list(dict.fromkeys(match.group(1) for match in pattern.finditer(html)))


class LinkVault:
    """
    Stores opaque ID mappings with single-use redemption.

    Callers must hold the gateway lock around every method.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: LinkSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock

    async def mint(self, target_urls: Iterable[str]) -> List[LinkMapping]:
        """Store one fresh mapping per distinct URL, in input order."""
        expires_at = now_ms(self.clock) + self.settings.ttl_seconds * 1000
        mappings: List[LinkMapping] = []

        for target_url in dict.fromkeys(target_urls):
            mapping = LinkMapping(
                opaque_id=str(uuid.uuid4()),
                target_url=target_url,
                expires_at=expires_at,
            )
            await self.store.put(LINK_KEY_PREFIX + mapping.opaque_id, mapping.model_dump(mode="json"))
            mappings.append(mapping)

        logger.info("Links minted", count=len(mappings), expires_at=expires_at)
        return mappings

    async def redeem(self, opaque_id: str) -> Optional[str]:
        """
        Consume a mapping and return its target URL.

        Returns None for unknown, expired and already redeemed IDs alike.
        """
        if not opaque_id:
            return None

        key = LINK_KEY_PREFIX + opaque_id
        raw = await self.store.get(key)
        if raw is None:
            logger.info("Link redemption failed", opaque_id=opaque_id[:8] + "...")
            return None

        # Delete before checking expiry; the delete is the single-use gate
        await self.store.delete(key)

        mapping = LinkMapping.model_validate(raw)
        if mapping.is_expired(now_ms(self.clock)):
            logger.info("Link redemption failed", opaque_id=opaque_id[:8] + "...", expired=True)
            return None

        logger.info("Link redeemed", opaque_id=opaque_id[:8] + "...")
        return mapping.target_url

    async def sweep_expired(self) -> int:
        """Delete expired mappings nobody redeemed. Returns count removed."""
        now = now_ms(self.clock)
        removed = 0

        for key in await self.store.keys(LINK_KEY_PREFIX):
            raw = await self.store.get(key)
            if raw is None:
                continue
            if LinkMapping.model_validate(raw).is_expired(now):
                await self.store.delete(key)
                removed += 1

        if removed:
            logger.info("Expired links swept", removed=removed)
        return removed
