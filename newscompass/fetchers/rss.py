"""
RSS/Atom feed fetcher for NewsCompass.
"""
import asyncio
import logging
import random
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

import aiohttp
import async_timeout
import feedparser
from bs4 import BeautifulSoup

from newscompass.core.article import Article, BiasScore, FeedSource, PLACEHOLDER_IMAGE_URL, utcnow
from newscompass.search.matcher import matches, searchable_text
from newscompass.utils.http import (
    DEFAULT_USER_AGENT,
    FEED_ACCEPT,
    REQUEST_TIMEOUT,
    FeedError,
    MalformedFeedError,
    classify_fetch_error,
)
from newscompass.utils.text import excerpt, strip_html

# Configure logging
logger = logging.getLogger(__name__)

IMAGE_EXTENSION_RE = re.compile(r'\.(jpeg|jpg|gif|png|webp)$', re.IGNORECASE)
SUMMARY_LENGTH = 250


@dataclass
class FetchResult:
    """
    Outcome of one feed download.
    """
    entries: List[Any] = field(default_factory=list)
    feed_link: Optional[str] = None
    error: Optional[FeedError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _valid_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def _first_content(entry: Mapping) -> str:
    content = entry.get('content')
    if isinstance(content, list) and content:
        return content[0].get('value') or ""
    return ""


def extract_image_url(entry: Mapping, feed_link: Optional[str] = None) -> Optional[str]:
    """
    Pick an image for a feed entry.

    Args:
        entry: Parsed feed entry
        feed_link: Link of the feed itself, used to resolve relative image paths

    Returns:
        Image URL, or None if the entry carries no usable image
    """
    # 1. Image enclosures
    for enclosure in entry.get('enclosures') or []:
        url = enclosure.get('href') or enclosure.get('url')
        if (enclosure.get('type') or '').startswith('image/') and _valid_url(url):
            return url

    # 2. Media RSS thumbnails, then media content marked as an image
    for thumb in entry.get('media_thumbnail') or []:
        if _valid_url(thumb.get('url')):
            return thumb.get('url')
    for media in entry.get('media_content') or []:
        is_image = media.get('medium') == 'image' or (media.get('type') or '').startswith('image/')
        if is_image and _valid_url(media.get('url')):
            return media.get('url')

    # 3. Podcast-style <itunes:image>
    image = entry.get('image')
    if isinstance(image, Mapping):
        url = image.get('href') or image.get('url')
        if _valid_url(url):
            return url
    elif _valid_url(image):
        return image

    # 4. First <img> in the body
    body = _first_content(entry) or entry.get('summary') or ""
    if body and '<img' in body.lower():
        img = BeautifulSoup(body, 'html.parser').find('img')
        src = (img.get('src') or '').strip() if img else ''
        base = entry.get('link') or feed_link
        if src and (base or _valid_url(src)):
            try:
                resolved = urljoin(base or '', src)
                path = urlparse(resolved).path
            except ValueError:
                logger.debug(f"Ignoring malformed image URL: {src}")
                return None
            if _valid_url(resolved) and IMAGE_EXTENSION_RE.search(path):
                return resolved

    return None


def _published(entry: Mapping) -> datetime:
    parsed = entry.get('published_parsed') or entry.get('updated_parsed')
    if parsed:
        try:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            pass
    return utcnow()


def fallback_article_id(source: FeedSource, title: str) -> str:
    """
    Build an id for an entry that has neither a GUID nor a link.

    The id is not stable: fetching the same entry again produces a different id.
    """
    return f"{source.url}-{title or 'untitled'}-{int(time.time() * 1000)}-{random.random()}"


def entry_to_article(entry: Mapping, source: FeedSource, feed_link: Optional[str] = None) -> Article:
    """
    Convert a parsed feed entry into an Article.

    Args:
        entry: Parsed feed entry
        source: The feed the entry came from
        feed_link: Link of the feed itself

    Returns:
        The candidate article
    """
    title = strip_html(entry.get('title'))
    snippet = strip_html(entry.get('summary'))
    content = strip_html(_first_content(entry) or entry.get('summary'))

    article_id = entry.get('id') or entry.get('link')
    if not article_id:
        article_id = fallback_article_id(source, title)
        logger.warning(
            f"Generated unstable id for article from {source.name} (title: {title or 'untitled'}). "
            f"Feed should provide stable GUIDs or links."
        )

    image_url = extract_image_url(entry, feed_link)
    summary = snippet if len(snippet) > 50 else content

    return Article(
        id=article_id,
        title=title or 'No title',
        link=entry.get('link') or source.url,
        source=source.name,
        source_url=source.url,
        published=_published(entry),
        content=content,
        summary=excerpt(summary, SUMMARY_LENGTH),
        bias=BiasScore.UNKNOWN,
        image_url=image_url or PLACEHOLDER_IMAGE_URL,
        image_hint='news media' if image_url else 'news article',
        category=source.category,
    )


def entry_searchable_text(entry: Mapping) -> str:
    return searchable_text(
        strip_html(entry.get('title')),
        strip_html(entry.get('summary')),
        strip_html(_first_content(entry) or entry.get('summary')),
    )


class FeedFetcher:
    """
    Fetches and parses RSS/Atom feeds.
    """
    def __init__(self, timeout: float = REQUEST_TIMEOUT, user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize the FeedFetcher.

        Args:
            timeout: Default per-feed timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self._session = None
        self.headers = {
            'User-Agent': user_agent,
            'Accept': FEED_ACCEPT,
        }

    @property
    def session(self):
        """
        Lazy initialization of aiohttp session.

        Returns:
            aiohttp.ClientSession: The HTTP session
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def close_session(self):
        """Close aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def download(self, url: str, timeout: float) -> bytes:
        """
        Download a feed document. Single attempt, no retries.

        Args:
            url: Feed URL
            timeout: Timeout in seconds

        Returns:
            The raw document
        """
        async with async_timeout.timeout(timeout):
            async with self.session.get(url) as response:
                response.raise_for_status()
                return await response.read()

    async def fetch(self, source_url: str, timeout: Optional[float] = None) -> FetchResult:
        """
        Retrieve and parse one feed.

        Args:
            source_url: Feed URL
            timeout: Timeout in seconds, defaults to the fetcher's timeout

        Returns:
            FetchResult with the parsed entries, or no entries and a classified error
        """
        timeout = timeout or self.timeout
        try:
            raw = await self.download(source_url, timeout)
            parsed = await asyncio.to_thread(feedparser.parse, raw)
            if parsed.get('bozo') and not parsed.get('entries'):
                raise MalformedFeedError(f"XML parsing error: {parsed.get('bozo_exception')}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = classify_fetch_error(e)
            logger.warning(f"Failed to fetch feed {source_url}: {error}")
            return FetchResult(error=error)

        feed_link = parsed.get('feed', {}).get('link')
        return FetchResult(entries=list(parsed.get('entries', [])), feed_link=feed_link)

    def scan(
        self,
        result: FetchResult,
        source: FeedSource,
        max_articles: int,
        groups: Optional[Sequence[Sequence[str]]] = None,
    ) -> Tuple[List[Article], bool]:
        """
        Convert the entries of a fetched feed into articles.

        Args:
            result: A successful fetch result
            source: The feed the entries came from
            max_articles: Number of entries to scan before stopping
            groups: Synonym groups; when given only matching entries are kept

        Returns:
            Tuple of the articles and whether the scan stopped at the entry limit
        """
        articles = []
        for index, entry in enumerate(result.entries):
            if index >= max_articles:
                return articles, True
            if groups is not None and not matches(entry_searchable_text(entry), groups):
                continue
            try:
                articles.append(entry_to_article(entry, source, result.feed_link))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable entry {index} from {source.name}: {e}")
        return articles, False
