"""
Live feed processing: the latest articles from every configured feed.
"""
import asyncio
import logging
from typing import List, Optional, Tuple

from tqdm import tqdm

from newscompass.config import SearchSettings
from newscompass.core.article import Article, BiasScore, FeedSource, merge_unique
from newscompass.core.feeds import FeedSourceList
from newscompass.core.library import ArticleLibrary
from newscompass.fetchers.rss import FeedFetcher

logger = logging.getLogger(__name__)


class FeedProcessor:
    """
    Fetches every configured feed and enriches entries with saved analyses.
    """
    def __init__(
        self,
        feeds: FeedSourceList,
        fetcher: FeedFetcher,
        library: ArticleLibrary,
        settings: Optional[SearchSettings] = None,
    ):
        self.feeds = feeds
        self.fetcher = fetcher
        self.library = library
        self.settings = settings or SearchSettings()

    async def enrich(self, article: Article) -> Article:
        """
        Copy a saved analysis onto a live article with the same link, if one exists.
        """
        if not article.link:
            return article
        saved = await self.library.find_by_link(article.link)
        if saved is None:
            return article

        logger.debug(f"Found saved analysis for {article.link} from {article.source}")
        article.summary = saved.summary
        article.bias = BiasScore.parse(saved.bias_score)
        article.bias_explanation = saved.bias_explanation
        article.neutral_summary = saved.neutral_summary
        article.content = saved.original_content or article.content
        article.similar_articles = list(saved.similar_articles)
        return article

    async def process_feed(self, source: FeedSource) -> List[Article]:
        """
        Fetch one feed and return up to ``max_articles_per_feed`` enriched articles.
        """
        result = await self.fetcher.fetch(source.url, self.settings.feed_timeout_seconds)
        if result.error is not None:
            logger.warning(f"Failed to fetch or parse feed '{source.name}' ({source.url}): {result.error}")
            return []

        articles, _ = self.fetcher.scan(result, source, self.settings.max_articles_per_feed)
        unique, _ = merge_unique([], articles)
        enriched = [await self.enrich(article) for article in unique]
        logger.info(f"Fetched {len(enriched)} article(s) from {source.name}")
        return enriched

    async def latest_articles(self, progress: bool = False) -> List[Article]:
        """
        Collect the latest articles from all configured feeds.

        Args:
            progress: Show a progress bar

        Returns:
            Articles from every reachable feed, unique by id, newest first
        """
        sources = await self.feeds.list_feeds()
        if not sources:
            logger.warning("No feeds configured")
            return []

        semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrent_feeds))

        async def process_with_semaphore(index: int, source: FeedSource) -> Tuple[int, List[Article]]:
            async with semaphore:
                try:
                    return index, await self.process_feed(source)
                except Exception as e:
                    logger.exception(f"Unexpected error processing feed {source.name}: {e}")
                    return index, []

        tasks = [process_with_semaphore(i, source) for i, source in enumerate(sources)]
        by_index = {}
        try:
            for task in tqdm(
                asyncio.as_completed(tasks),
                total=len(tasks),
                desc="Fetching feeds",
                disable=not progress,
            ):
                index, articles = await task
                by_index[index] = articles
        finally:
            await self.fetcher.close_session()

        collected: List[Article] = []
        for index in sorted(by_index):
            collected, _ = merge_unique(collected, by_index[index])

        logger.info(f"Processed a total of {len(collected)} live articles")
        return collected
