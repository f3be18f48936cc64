"""
Upstream content source client.

Talks to a WordPress REST API:
- GET {base_url}/posts?search=<query>&per_page=<n>
- GET {base_url}/posts/<id>

Network failures and timeouts raise UpstreamUnavailableError;
non-2xx answers mean "nothing found".
"""

import asyncio
import html
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp
import structlog

from ..config import ContentSettings, get_settings
from ..models.gateway import ContentItem
from .exceptions import UpstreamUnavailableError

logger = structlog.get_logger(__name__)

UNTITLED = "Untitled Asset"


@dataclass
class ContentPost:
    """Single post fetched from the content source."""
    id: str
    title: str
    body: str


def clean_title(title: str) -> str:
    """Decode HTML entities and strip download boilerplate from a title."""
    title = html.unescape(title)
    title = re.sub(r"Download\s+", "", title, flags=re.IGNORECASE)
    title = re.sub(r"\s+Download", "", title, flags=re.IGNORECASE)
    title = re.sub(r"Full Movie", "", title, flags=re.IGNORECASE)
    title = re.sub(r"\s{2,}", " ", title)
    return title.strip()


def _rendered(post: Dict[str, Any], field: str) -> str:
    value = post.get(field)
    if isinstance(value, dict):
        return value.get("rendered") or ""
    return ""


class ContentSource:
    """Interface of the content source the gateway consumes."""

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def search(self, query: str) -> List[ContentItem]:
        raise NotImplementedError

    async def get_post(self, post_id: str) -> Optional[ContentPost]:
        raise NotImplementedError


class WordPressContentSource(ContentSource):
    """
    aiohttp client for the WordPress posts API.

    Every request is bounded by settings.timeout_seconds.
    """

    def __init__(self, settings: ContentSettings):
        self.settings = settings
        self.base_url = settings.base_url.rstrip('/')
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("Content source initialized", base_url=self.base_url)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
            )
            logger.info("Content source started")
        return self.session

    async def start(self) -> None:
        """Open the HTTP session."""
        self._ensure_session()

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
        logger.info("Content source stopped")

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        session = self._ensure_session()
        url = f"{self.base_url}{path}"
        try:
            async with session.get(url, params=params) as response:
                if response.status < 200 or response.status >= 300:
                    logger.info("Content source returned no data", url=url, status_code=response.status)
                    return None
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(
                "Content source request failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamUnavailableError(details={"error_type": type(e).__name__})

    async def search(self, query: str) -> List[ContentItem]:
        """Search posts by free text."""
        posts = await self._get_json("/posts", params={"search": query, "per_page": self.settings.per_page})
        if not isinstance(posts, list):
            return []

        return [
            ContentItem(id=str(post["id"]), title=clean_title(_rendered(post, "title") or UNTITLED))
            for post in posts
            if isinstance(post, dict) and "id" in post
        ]

    async def get_post(self, post_id: str) -> Optional[ContentPost]:
        """Fetch one post, or None if the source has no such post."""
        post = await self._get_json(f"/posts/{quote(post_id, safe='')}")
        if not isinstance(post, dict):
            return None

        return ContentPost(
            id=str(post.get("id", post_id)),
            title=clean_title(_rendered(post, "title") or UNTITLED),
            body=_rendered(post, "content"),
        )


# Global content source instance
_content_source: Optional[ContentSource] = None


def get_content_source() -> ContentSource:
    """Get or create global content source instance."""
    global _content_source

    if _content_source is None:
        settings = get_settings()
        _content_source = WordPressContentSource(settings.content)

    return _content_source
