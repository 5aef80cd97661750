"""
Configured feed sources for NewsCompass.
"""
import abc
import asyncio
import csv
import io
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from newscompass.core.article import FeedSource
from newscompass.core.store import StoreError

logger = logging.getLogger(__name__)

FEED_COLUMNS = ['Name', 'URL', 'Category']

# Feeds written to a fresh or unreadable feed list
INITIAL_FEEDS = [
    FeedSource("Associated Press", "https://feeds.apnews.com/APTopNews.xml", "World News"),
    FeedSource("Reuters - World News", "https://feeds.reuters.com/reuters/worldNews", "World News"),
    FeedSource("BBC News - World", "https://feeds.bbci.co.uk/news/world/rss.xml", "World News"),
    FeedSource("NPR News", "https://feeds.npr.org/1001/rss.xml", "US News"),
    FeedSource("The Guardian - World News", "https://www.theguardian.com/world/rss", "World News"),
]


class FeedSourceList(abc.ABC):
    """
    Storage contract for the configured feed list.
    """
    @abc.abstractmethod
    async def list_feeds(self) -> List[FeedSource]:
        """Return the configured feeds in their configured order."""

    @abc.abstractmethod
    async def delete_feed(self, url: str) -> bool:
        """Remove the feed with this URL. Removing an absent feed succeeds."""


class CsvFeedSourceList(FeedSourceList):
    """
    Feed list backed by a CSV file, seeded with :data:`INITIAL_FEEDS`.
    """
    def __init__(self, path: Union[str, Path], seed: Optional[Iterable[FeedSource]] = None):
        self.path = Path(path)
        self.seed = list(INITIAL_FEEDS if seed is None else seed)
        self._lock = asyncio.Lock()

    def _seed(self, reason: str) -> List[FeedSource]:
        logger.info(f"{reason} Seeding {self.path} with initial feeds.")
        self._write(self.seed)
        return list(self.seed)

    def _read(self) -> List[FeedSource]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                return self._seed("Feed file not found.")
            text = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise StoreError(f"Failed to read feed data: {e}") from e

        if not text.strip():
            return self._seed("Feed file is empty.")

        reader = csv.DictReader(io.StringIO(text))
        header = {(h or '').strip().lower(): h for h in (reader.fieldnames or [])}
        if not {'name', 'url', 'category'} <= set(header):
            logger.error("Feed file header is missing required columns (name, url, category).")
            return self._seed("Feed file is malformed.")

        feeds = []
        for row in reader:
            name = (row.get(header['name']) or '').strip()
            url = (row.get(header['url']) or '').strip()
            category = (row.get(header['category']) or '').strip()
            if name and url and category:
                feeds.append(FeedSource(name=name, url=url, category=category))
        return feeds

    def _write(self, feeds: List[FeedSource]) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(FEED_COLUMNS)
        for feed in feeds:
            writer.writerow([feed.name, feed.url, feed.category])
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(buffer.getvalue(), encoding='utf-8')
        except OSError as e:
            raise StoreError(f"Failed to save feeds to data file: {e}") from e

    async def list_feeds(self) -> List[FeedSource]:
        return await asyncio.to_thread(self._read)

    async def add_feed(self, feed: FeedSource) -> FeedSource:
        """
        Add a feed.

        Raises:
            ValueError: If a feed with the same URL already exists
        """
        async with self._lock:
            feeds = await asyncio.to_thread(self._read)
            if any(f.url == feed.url for f in feeds):
                raise ValueError(f'Feed with URL "{feed.url}" already exists.')
            feeds.append(feed)
            await asyncio.to_thread(self._write, feeds)
            return feed

    async def update_feed(self, feed: FeedSource, original_url: str) -> FeedSource:
        """
        Replace the feed stored under ``original_url``.

        Raises:
            ValueError: If the new URL belongs to another feed
        """
        async with self._lock:
            feeds = await asyncio.to_thread(self._read)
            if feed.url != original_url and any(f.url == feed.url for f in feeds):
                raise ValueError(f'Another feed with the URL "{feed.url}" already exists.')
            feeds = [feed if f.url == original_url else f for f in feeds]
            await asyncio.to_thread(self._write, feeds)
            return feed

    async def delete_feeds(self, urls: Iterable[str]) -> int:
        """
        Remove several feeds at once.

        Returns:
            Number of feeds removed
        """
        targets = set(urls)
        async with self._lock:
            feeds = await asyncio.to_thread(self._read)
            remaining = [f for f in feeds if f.url not in targets]
            deleted = len(feeds) - len(remaining)
            if deleted == 0 and targets:
                logger.warning(f"No feeds found matching the URLs for deletion: {', '.join(sorted(targets))}")
            await asyncio.to_thread(self._write, remaining)
            return deleted

    async def delete_feed(self, url: str) -> bool:
        deleted = await self.delete_feeds([url])
        if deleted:
            logger.info(f"Removed feed {url}")
        return True
