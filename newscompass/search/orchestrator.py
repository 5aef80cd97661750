"""
Global search across saved analyses and live feeds.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from newscompass.config import SearchSettings
from newscompass.core.article import Article, FeedSource, merge_unique
from newscompass.core.feeds import FeedSourceList
from newscompass.core.library import ArticleLibrary
from newscompass.core.store import StoreError
from newscompass.fetchers.rss import FeedFetcher
from newscompass.search.synonyms import SynonymExpander
from newscompass.utils.http import FeedError, FetchErrorKind

logger = logging.getLogger(__name__)


@dataclass
class FeedSearchResult:
    articles: List[Article] = field(default_factory=list)
    log_entry: str = ""
    error: Optional[FeedError] = None


@dataclass
class SearchOutcome:
    articles: List[Article] = field(default_factory=list)
    log: List[str] = field(default_factory=list)


class GlobalSearch:
    """
    Searches saved analyses and then every configured feed for a query.

    The returned log is meant for the user: it records each phase, each
    feed's outcome and every failure, in order.
    """
    def __init__(
        self,
        expander: SynonymExpander,
        library: ArticleLibrary,
        feeds: FeedSourceList,
        fetcher: FeedFetcher,
        settings: Optional[SearchSettings] = None,
    ):
        self.expander = expander
        self.library = library
        self.feeds = feeds
        self.fetcher = fetcher
        self.settings = settings or SearchSettings()

    def _error_log_entry(self, prefix: str, source: FeedSource, error: FeedError) -> str:
        if error.kind == FetchErrorKind.TIMEOUT:
            timeout = self.settings.feed_timeout_seconds
            return f"{prefix} Error searching {source.name}: Request timed out after {timeout:g}s."
        if error.kind == FetchErrorKind.UNREACHABLE:
            return f"{prefix} Error searching {source.name}: URL not found or connection refused."
        if error.kind == FetchErrorKind.MALFORMED:
            return f"{prefix} Error with {source.name}: Feed content (XML) parsing error - {error.message[:150]}"
        return f"{prefix} Error searching {source.name}: {error.message[:150]}"

    async def search_single_feed(
        self,
        groups: Sequence[Sequence[str]],
        source: FeedSource,
        feed_index: int,
        total_feeds: int,
    ) -> FeedSearchResult:
        """
        Search one feed with precomputed synonym groups.

        Args:
            groups: Synonym groups for the query
            source: The feed to search
            feed_index: 1-based position of the feed in this search
            total_feeds: Number of feeds in this search

        Returns:
            FeedSearchResult with the matches and one summary log line
        """
        prefix = f"({feed_index}/{total_feeds})"
        result = await self.fetcher.fetch(source.url, self.settings.feed_timeout_seconds)

        if result.error is not None:
            log_entry = self._error_log_entry(prefix, source, result.error)
            logger.warning(f"Error processing feed {source.name} during search: {result.error}")

            if self.settings.auto_remove_bad_feeds:
                try:
                    logger.info(f"Auto-remove is on, removing problematic feed: {source.name} ({source.url})")
                    await self.feeds.delete_feed(source.url)
                    log_entry += " | Feed automatically removed."
                except Exception as e:
                    logger.error(f"Failed to auto-remove feed {source.name}: {e}")
                    log_entry += " | Failed to auto-remove."
            return FeedSearchResult(log_entry=log_entry, error=result.error)

        limit = self.settings.max_articles_per_feed
        articles, limit_reached = self.fetcher.scan(result, source, limit, groups)

        if articles:
            log_entry = f"{prefix} Searched {source.name} with expanded terms: Found {len(articles)} article(s)."
        elif limit_reached:
            log_entry = (
                f"{prefix} Searched {source.name} with expanded terms: "
                f"Reached article limit ({limit}). Found 0 prior."
            )
        else:
            log_entry = f"{prefix} Searched {source.name} with expanded terms: No matches found."
        return FeedSearchResult(articles=articles, log_entry=log_entry)

    async def _search_feeds(self, groups, feeds: List[FeedSource]) -> List[FeedSearchResult]:
        total = len(feeds)

        async def guarded(index: int, source: FeedSource) -> FeedSearchResult:
            try:
                return await self.search_single_feed(groups, source, index, total)
            except Exception as e:
                logger.exception(f"Unexpected error searching {source.name}")
                return FeedSearchResult(
                    log_entry=f"({index}/{total}) Critical error searching {source.name}: {e}",
                    error=FeedError(FetchErrorKind.OTHER, str(e)),
                )

        if self.settings.max_concurrent_feeds <= 1:
            return [await guarded(i, source) for i, source in enumerate(feeds, 1)]

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_feeds)

        async def with_semaphore(index: int, source: FeedSource) -> FeedSearchResult:
            async with semaphore:
                return await guarded(index, source)

        # gather keeps feed order regardless of completion order
        return await asyncio.gather(*(with_semaphore(i, s) for i, s in enumerate(feeds, 1)))

    async def global_search(self, query: str) -> SearchOutcome:
        """
        Search saved analyses and live feeds for a query.

        Args:
            query: Raw search query

        Returns:
            SearchOutcome with the deduplicated, newest-first articles and the log

        Raises:
            StoreError: If the saved-article store cannot be read
        """
        outcome = SearchOutcome()
        log = outcome.log

        if not query or not query.strip():
            log.append("Search term is empty. Please provide a term to search.")
            return outcome

        settings = self.settings
        log.append(f'Global search for "{query}":')
        log.append(
            f"Timeout per live feed: {settings.feed_timeout_seconds:g}s. "
            f"Max live feeds to search: {settings.max_feeds}."
        )
        if settings.auto_remove_bad_feeds:
            log.append("Auto-removal of problematic feeds is ENABLED.")

        # Phase 1a: synonym groups for the live feed search
        log.append(f'Phase 1a: Fetching synonyms for search term "{query}"...')
        groups = await self.expander.expand_query(query)
        if not groups:
            log.append("No usable search terms could be derived from the query. Search aborted.")
            return outcome
        log.append("Synonym fetching complete for live search. Proceeding.")

        # Phase 1b: saved analyses, with their own synonym expansion
        log.append("Phase 1b: Searching previously saved articles...")
        try:
            saved = await self.library.search(query)
        except StoreError as e:
            log.append(f"Error searching saved articles: {e}")
            raise

        if saved:
            outcome.articles, added = merge_unique(outcome.articles, [s.to_article() for s in saved])
            log.append(f"Found {added} unique matching article(s) in saved analyses.")
        else:
            log.append("No matching articles found in saved analyses.")

        # Phase 2: live feeds
        log.append("Phase 2: Proceeding to search live RSS feeds...")
        try:
            configured = await self.feeds.list_feeds()
        except Exception as e:
            logger.error(f"Global live feed search setup failed: {e}")
            log.append(f"Error during live feed search setup: {e}")
            self._finish(outcome)
            return outcome

        if not configured:
            log.append("No live RSS feeds configured to search.")
            self._finish(outcome)
            return outcome

        to_search = configured[:settings.max_feeds]
        if len(configured) > settings.max_feeds:
            log.append(
                f"Limiting live feed search to first {settings.max_feeds} of {len(configured)} feeds."
            )
        else:
            log.append(f"Found {len(to_search)} live feeds to search.")

        total_added = 0
        results = await self._search_feeds(groups, to_search)
        for index, (source, result) in enumerate(zip(to_search, results), 1):
            log.append(f"({index}/{len(to_search)}) Searching live feed: {source.name}...")
            log.append(result.log_entry)
            if result.articles:
                outcome.articles, added = merge_unique(outcome.articles, result.articles)
                total_added += added

        if total_added:
            log.append(f"Added {total_added} unique article(s) from live feeds.")
        else:
            log.append("No additional unique articles found in live feeds.")

        self._finish(outcome)
        return outcome

    def _finish(self, outcome: SearchOutcome) -> None:
        if outcome.articles:
            outcome.log.append(
                f"Global search complete: Found {len(outcome.articles)} unique article(s) in total."
            )
        else:
            outcome.log.append("Global search complete: No articles found overall.")
