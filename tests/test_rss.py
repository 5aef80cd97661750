"""
tests/test_rss.py - feed fetching, entry conversion and image extraction
"""
import asyncio
from unittest import mock

import aiohttp
import pytest

from conftest import FakeFetcher, item, rss
from newscompass.core.article import FeedSource, PLACEHOLDER_IMAGE_URL
from newscompass.fetchers import rss as rss_module
from newscompass.fetchers.rss import entry_to_article, extract_image_url
from newscompass.utils.http import FetchErrorKind, MalformedFeedError, classify_fetch_error

FEED = FeedSource("Example News", "https://example.com/rss", "World News")


def fetch(fetcher, url=FEED.url, timeout=None):
    return asyncio.run(fetcher.fetch(url, timeout))


def test_fetch_parses_entries_and_feed_link():
    doc = rss([item("First", "one", guid="g1"), item("Second", "two", link="https://example.com/2")])
    result = fetch(FakeFetcher({FEED.url: doc}))

    assert result.ok
    assert result.feed_link == "https://example.com/"
    assert [e.get("title") for e in result.entries] == ["First", "Second"]


def test_fetch_uses_per_call_timeout_over_default():
    fetcher = FakeFetcher({FEED.url: rss([])}, timeout=7)
    fetch(fetcher, timeout=3)
    fetch(fetcher)
    assert [t for _, t in fetcher.requested] == [3, 7]


def test_timeout_is_classified():
    result = fetch(FakeFetcher({FEED.url: asyncio.TimeoutError()}))
    assert result.entries == []
    assert result.error.kind == FetchErrorKind.TIMEOUT


def test_malformed_document_is_classified():
    result = fetch(FakeFetcher({FEED.url: b"this is <not xml"}))
    assert result.entries == []
    assert result.error.kind == FetchErrorKind.MALFORMED


def test_error_classification():
    refused = aiohttp.ClientConnectionError("Cannot connect to host")
    assert classify_fetch_error(refused).kind == FetchErrorKind.UNREACHABLE
    assert classify_fetch_error(MalformedFeedError("bad")).kind == FetchErrorKind.MALFORMED
    assert classify_fetch_error(ValueError("boom")).kind == FetchErrorKind.OTHER
    assert classify_fetch_error(RuntimeError("operation timed out")).kind == FetchErrorKind.TIMEOUT


def test_scan_stops_at_entry_limit():
    doc = rss([item(f"Story {i}", "text", guid=f"g{i}") for i in range(5)])
    fetcher = FakeFetcher({FEED.url: doc})
    result = fetch(fetcher)

    articles, limit_reached = fetcher.scan(result, FEED, max_articles=3)
    assert limit_reached
    assert [a.id for a in articles] == ["g0", "g1", "g2"]

    articles, limit_reached = fetcher.scan(result, FEED, max_articles=10)
    assert not limit_reached
    assert len(articles) == 5


def test_scan_keeps_only_matching_entries():
    doc = rss([
        item("Global warming report", "Scientists warn", guid="a"),
        item("Football results", "Scores", guid="b"),
    ])
    fetcher = FakeFetcher({FEED.url: doc})
    articles, _ = fetcher.scan(fetch(fetcher), FEED, 10, [["climate", "global warming"]])
    assert [a.id for a in articles] == ["a"]


def test_entry_to_article_fields():
    long_description = "<p>" + "word " * 80 + "</p>"
    doc = rss([item(
        "Rates &amp; bonds",
        long_description,
        link="https://example.com/story",
        pub_date="Wed, 01 May 2024 10:00:00 GMT",
    )])
    result = fetch(FakeFetcher({FEED.url: doc}))
    article = entry_to_article(result.entries[0], FEED, result.feed_link)

    assert article.id == "https://example.com/story"
    assert article.title == "Rates & bonds"
    assert article.source == "Example News"
    assert article.category == "World News"
    assert article.published.year == 2024 and article.published.hour == 10
    assert article.summary.endswith("...")
    assert len(article.summary) == 253
    assert article.image_url == PLACEHOLDER_IMAGE_URL
    assert article.image_hint == "news article"


def test_fallback_id_is_unstable_across_fetches():
    # Neither GUID nor link: the generated id changes between fetches of the same entry.
    doc = rss([item("Untracked story", "no identifiers")])
    fetcher = FakeFetcher({FEED.url: doc})

    first = entry_to_article(fetch(fetcher).entries[0], FEED)
    second = entry_to_article(fetch(fetcher).entries[0], FEED)

    assert first.id.startswith(f"{FEED.url}-Untracked story-")
    assert first.id != second.id
    assert first.link == FEED.url


class TestImageExtraction:
    def test_enclosure_wins(self):
        entry = {
            "enclosures": [
                {"href": "https://cdn.example.com/audio.mp3", "type": "audio/mpeg"},
                {"href": "https://cdn.example.com/photo.jpg", "type": "image/jpeg"},
            ],
            "media_thumbnail": [{"url": "https://cdn.example.com/thumb.jpg"}],
        }
        assert extract_image_url(entry) == "https://cdn.example.com/photo.jpg"

    def test_media_thumbnail_before_podcast_image(self):
        entry = {
            "media_thumbnail": [{"url": "https://cdn.example.com/thumb.jpg"}],
            "image": {"href": "https://cdn.example.com/podcast.png"},
        }
        assert extract_image_url(entry) == "https://cdn.example.com/thumb.jpg"

    def test_podcast_image(self):
        entry = {"image": {"href": "https://cdn.example.com/podcast.png"}}
        assert extract_image_url(entry) == "https://cdn.example.com/podcast.png"

    def test_body_image_resolved_against_entry_link(self):
        entry = {
            "link": "https://example.com/news/story.html",
            "summary": '<p>Text <img src="../img/photo.png?w=600"></p>',
        }
        assert extract_image_url(entry, "https://feed.example.org/") == "https://example.com/img/photo.png?w=600"

    def test_body_image_resolved_against_feed_link(self):
        entry = {"summary": '<img src="/media/pic.webp">'}
        assert extract_image_url(entry, "https://feed.example.org/rss") == "https://feed.example.org/media/pic.webp"

    def test_body_image_needs_image_extension(self):
        entry = {"link": "https://example.com/a", "summary": '<img src="/tracker?id=1">'}
        assert extract_image_url(entry) is None

    def test_invalid_urls_are_ignored(self):
        entry = {"enclosures": [{"href": "not a url", "type": "image/png"}]}
        assert extract_image_url(entry) is None

    def test_images_from_parsed_feed(self):
        doc = rss([item(
            "Pictured",
            "text",
            guid="p1",
            extra='<media:thumbnail url="https://cdn.example.com/t.jpg" />',
        )])
        result = fetch(FakeFetcher({FEED.url: doc}))
        article = entry_to_article(result.entries[0], FEED, result.feed_link)
        assert article.image_url == "https://cdn.example.com/t.jpg"
        assert article.image_hint == "news media"


@pytest.mark.parametrize("status,kind", [(404, FetchErrorKind.UNREACHABLE), (500, FetchErrorKind.OTHER)])
def test_http_status_classification(status, kind):
    error = aiohttp.ClientResponseError(request_info=mock.Mock(real_url="https://example.com/rss"), history=(), status=status, message="err")
    assert classify_fetch_error(error).kind == kind


class TestMalformedImageUrls:
    def test_broken_enclosure_url_is_skipped(self):
        entry = {
            "enclosures": [{"href": "http://[broken", "type": "image/png"}],
            "media_thumbnail": [{"url": "https://cdn.example.com/thumb.jpg"}],
        }
        assert extract_image_url(entry) == "https://cdn.example.com/thumb.jpg"

    def test_broken_body_image_is_skipped(self):
        entry = {"link": "https://example.com/a", "summary": '<img src="http://[broken/x.png">'}
        assert extract_image_url(entry) is None
        assert extract_image_url({"summary": '<img src="http://[broken/x.png">'}) is None

    def test_entry_with_broken_image_keeps_the_rest_of_the_feed(self):
        doc = rss([
            item("Budget one", "Clean entry", guid="ok1"),
            item("Budget two", '<img src="http://[broken/x.png"> Budget', guid="bad"),
            item("Budget three", "Clean entry", guid="ok2"),
        ])
        fetcher = FakeFetcher({FEED.url: doc})

        articles, _ = fetcher.scan(fetch(fetcher), FEED, 10, [["budget"]])

        assert [a.id for a in articles] == ["ok1", "bad", "ok2"]
        assert articles[1].image_url == PLACEHOLDER_IMAGE_URL


def test_feed_document_is_parsed_off_the_event_loop(monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(rss_module.asyncio, "to_thread", recording_to_thread)
    result = fetch(FakeFetcher({FEED.url: rss([item("Story", "text", guid="g1")])}))

    assert result.ok
    assert offloaded == [rss_module.feedparser.parse]
