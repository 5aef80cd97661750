"""
Shared fakes for the NewsCompass test suite.

Network and AI services are replaced by in-process fakes so the pipeline
can be exercised end to end without leaving the process.
"""
import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from newscompass.config import SearchSettings, SimilaritySettings
from newscompass.core.article import SavedArticle, SimilarityVerdict
from newscompass.core.feeds import CsvFeedSourceList
from newscompass.core.library import ArticleLibrary
from newscompass.core.similarity import SimilarityEngine
from newscompass.core.store import CsvArticleStore
from newscompass.fetchers.rss import FeedFetcher
from newscompass.search.synonyms import SynonymExpander


def rss(items, link="https://example.com/"):
    """Build an RSS 2.0 document from item XML snippets."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/" '
        'xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd" '
        'xmlns:content="http://purl.org/rss/1.0/modules/content/">'
        f'<channel><title>Test feed</title><link>{link}</link><description>d</description>'
        + "".join(items)
        + '</channel></rss>'
    ).encode('utf-8')


def item(title, description="", guid=None, link=None, pub_date=None, extra=""):
    parts = [f"<title>{title}</title>", f"<description><![CDATA[{description}]]></description>"]
    if guid:
        parts.append(f'<guid isPermaLink="false">{guid}</guid>')
    if link:
        parts.append(f"<link>{link}</link>")
    if pub_date:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    parts.append(extra)
    return "<item>" + "".join(parts) + "</item>"


class FakeSynonymService:
    def __init__(self, table=None, fail_on=()):
        self.table = table or {}
        self.fail_on = set(fail_on)
        self.calls = []

    async def synonyms(self, word):
        self.calls.append(word)
        if word in self.fail_on:
            raise RuntimeError(f"synonym service down for {word}")
        return list(self.table.get(word, []))


class FakeClassifier:
    """Returns scripted verdicts keyed by candidate text; raises for texts in ``fail_on``."""
    def __init__(self, verdicts=None, default=None, fail_on=()):
        self.verdicts = verdicts or {}
        self.default = default or SimilarityVerdict(is_similar=False, confidence=0.1)
        self.fail_on = set(fail_on)
        self.calls = []

    async def compare(self, text_a, text_b):
        self.calls.append((text_a, text_b))
        if text_b in self.fail_on:
            raise RuntimeError("classifier unavailable")
        return self.verdicts.get(text_b, self.default)


class FakeFetcher(FeedFetcher):
    """Serves canned documents; a value that is an exception is raised instead."""
    def __init__(self, documents=None, **kwargs):
        super().__init__(**kwargs)
        self.documents = documents or {}
        self.requested = []

    async def download(self, url, timeout):
        self.requested.append((url, timeout))
        doc = self.documents.get(url)
        if isinstance(doc, BaseException):
            raise doc
        if doc is None:
            raise asyncio.TimeoutError()
        return doc


def saved(article_id, content, days_ago=0, **kwargs):
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return SavedArticle(
        id=article_id,
        saved_date=base - timedelta(days=days_ago),
        summary=kwargs.pop("summary", f"Summary of {article_id}"),
        bias_score=kwargs.pop("bias_score", "Center"),
        bias_explanation=kwargs.pop("bias_explanation", "Balanced sourcing."),
        original_content=content,
        **kwargs,
    )


LONG_TEXT = "The central bank raised interest rates by a quarter point on Wednesday. " * 3


@pytest.fixture
def store(tmp_path):
    return CsvArticleStore(tmp_path / "articles.csv")


@pytest.fixture
def feed_list(tmp_path):
    return CsvFeedSourceList(tmp_path / "feeds.csv", seed=[])


@pytest.fixture
def synonym_service():
    return FakeSynonymService()


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def library(store, synonym_service, classifier):
    engine = SimilarityEngine(classifier, SimilaritySettings())
    return ArticleLibrary(store, SynonymExpander(synonym_service), engine)


@pytest.fixture
def search_settings():
    return SearchSettings()
