"""
Command-line interface for NewsCompass.
"""
import sys
import argparse
import logging
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from newscompass.ai.services import OpenAISimilarityClassifier, OpenAISynonymService
from newscompass.config import Config, SearchSettings, SimilaritySettings, config as default_config
from newscompass.core.article import ArticleDraft, FeedSource
from newscompass.core.cache import SynonymCache
from newscompass.core.feeds import CsvFeedSourceList
from newscompass.core.library import ArticleLibrary
from newscompass.core.processor import FeedProcessor
from newscompass.core.similarity import SimilarityEngine
from newscompass.core.store import CsvArticleStore, StoreError
from newscompass.fetchers.rss import FeedFetcher
from newscompass.search.orchestrator import GlobalSearch
from newscompass.search.synonyms import SynonymExpander

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """
    Configure logging for command-line runs.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(f"newscompass_{datetime.now().strftime('%Y%m%d')}.log"),
            logging.StreamHandler()
        ]
    )


@dataclass
class Components:
    feeds: CsvFeedSourceList
    fetcher: FeedFetcher
    library: ArticleLibrary
    search: GlobalSearch
    processor: FeedProcessor
    cfg: Config


def build_components(cfg: Optional[Config] = None) -> Components:
    """
    Wire stores, AI services and the search pipeline from configuration.
    """
    cfg = cfg or default_config
    search_settings = SearchSettings.from_config(cfg)
    similarity_settings = SimilaritySettings.from_config(cfg)

    data_dir = Path(cfg.get('storage.directory', 'data'))
    store = CsvArticleStore(data_dir / cfg.get('storage.articles_file', 'articles.csv'))
    feeds = CsvFeedSourceList(data_dir / cfg.get('storage.feeds_file', 'feeds.csv'))

    cache = None
    if cfg.get('synonyms.cache_enabled', False):
        cache = SynonymCache(
            cfg.get('synonyms.cache_directory', 'cache'),
            timedelta(days=cfg.get('synonyms.cache_duration_days', 7)),
        )
    expander = SynonymExpander(OpenAISynonymService(cfg=cfg), cache=cache)
    engine = SimilarityEngine(OpenAISimilarityClassifier(cfg=cfg), similarity_settings)
    library = ArticleLibrary(store, expander, engine)
    fetcher = FeedFetcher(
        timeout=search_settings.feed_timeout_seconds,
        user_agent=search_settings.user_agent,
    )

    return Components(
        feeds=feeds,
        fetcher=fetcher,
        library=library,
        search=GlobalSearch(expander, library, feeds, fetcher, search_settings),
        processor=FeedProcessor(feeds, fetcher, library, search_settings),
        cfg=cfg,
    )


def parse_args(argv=None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="NewsCompass - feed search and article similarity")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search saved analyses and live feeds")
    search.add_argument("query", nargs="+", help="Search terms")

    latest = subparsers.add_parser("latest", help="Show the latest articles from all feeds")
    latest.add_argument("--limit", type=int, default=20, help="Number of articles to show")

    feeds = subparsers.add_parser("feeds", help="Manage configured feeds")
    feed_commands = feeds.add_subparsers(dest="feed_command", required=True)
    feed_commands.add_parser("list", help="List configured feeds")
    add = feed_commands.add_parser("add", help="Add a feed")
    add.add_argument("name")
    add.add_argument("url")
    add.add_argument("category")
    remove = feed_commands.add_parser("remove", help="Remove a feed")
    remove.add_argument("url")

    save = subparsers.add_parser("save", help="Save an analysed article")
    save.add_argument("--summary", required=True)
    save.add_argument("--bias", default="Unknown")
    save.add_argument("--bias-explanation", default="")
    save.add_argument("--link")
    save.add_argument("--source")
    save.add_argument("--category")
    save.add_argument("--neutral-summary")
    save.add_argument("--content-file", help="File holding the original article text")

    config_parser = subparsers.add_parser("config", help="Inspect the effective configuration")
    config_commands = config_parser.add_subparsers(dest="config_command", required=True)
    config_save = config_commands.add_parser("save", help="Write the effective configuration to a file")
    config_save.add_argument("path", help="Destination .yaml, .yml or .json file")

    delete = subparsers.add_parser("delete", help="Delete a saved article")
    delete.add_argument("article_id")

    return parser.parse_args(argv)


async def run_command(args, components: Components) -> int:
    if args.command == "search":
        try:
            outcome = await components.search.global_search(" ".join(args.query))
        finally:
            await components.fetcher.close_session()
        for line in outcome.log:
            print(line)
        print()
        for article in outcome.articles:
            print(f"{article.published:%Y-%m-%d %H:%M}  [{article.source}] {article.title}")
            print(f"    {article.link}")
        return 0

    if args.command == "latest":
        articles = await components.processor.latest_articles(progress=True)
        for article in articles[:args.limit]:
            print(f"{article.published:%Y-%m-%d %H:%M}  [{article.source}] {article.title} ({article.bias.value})")
        return 0

    if args.command == "feeds":
        if args.feed_command == "list":
            for feed in await components.feeds.list_feeds():
                print(f"{feed.name}\t{feed.category}\t{feed.url}")
        elif args.feed_command == "add":
            try:
                await components.feeds.add_feed(FeedSource(args.name, args.url, args.category))
            except ValueError as e:
                logger.error(str(e))
                return 1
        elif args.feed_command == "remove":
            await components.feeds.delete_feed(args.url)
        return 0

    if args.command == "save":
        content = None
        if args.content_file:
            content = Path(args.content_file).read_text(encoding='utf-8')
        result = await components.library.save(ArticleDraft(
            summary=args.summary,
            bias_score=args.bias,
            bias_explanation=args.bias_explanation,
            source_name=args.source,
            article_link=args.link,
            category=args.category,
            neutral_summary=args.neutral_summary,
            original_content=content,
        ))
        print(f"{result.operation}: {result.record.id}")
        for link in result.record.similar_articles:
            print(f"  similar to {link.id} (confidence {link.confidence}): {link.reasoning}")
        return 0

    if args.command == "config":
        if not components.cfg.save(args.path):
            return 1
        print(f"Configuration written to {args.path}")
        return 0

    if args.command == "delete":
        await components.library.delete(args.article_id)
        return 0

    return 1


async def async_main(argv=None) -> int:
    """
    Main entry point for the application.
    """
    load_dotenv(override=True)
    args = parse_args(argv)
    configure_logging(args.verbose)
    return await run_command(args, build_components())


def main():
    """
    Entry point for the command-line script.
    """
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except StoreError as e:
        logger.error(f"Storage error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
