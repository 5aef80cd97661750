"""
HTTP utilities for NewsCompass.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

import aiohttp

# Configure logging
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 7  # seconds, per feed download
DEFAULT_USER_AGENT = 'NewsCompassSearch/1.0'
FEED_ACCEPT = 'application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8'


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed-content"
    OTHER = "other"


@dataclass
class FeedError:
    """
    A classified failure to retrieve or parse one feed.
    """
    kind: FetchErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class MalformedFeedError(Exception):
    """Raised when a downloaded document cannot be read as a feed."""


def classify_fetch_error(error: BaseException) -> FeedError:
    """
    Turn an exception raised while downloading or parsing a feed into a FeedError.

    Args:
        error: The exception caught around the fetch

    Returns:
        The classified error
    """
    message = str(error) or error.__class__.__name__

    if isinstance(error, asyncio.TimeoutError):
        return FeedError(FetchErrorKind.TIMEOUT, message or "timed out")

    if isinstance(error, MalformedFeedError):
        return FeedError(FetchErrorKind.MALFORMED, message)

    if isinstance(error, aiohttp.ClientResponseError):
        if error.status in (404, 410):
            return FeedError(FetchErrorKind.UNREACHABLE, f"HTTP {error.status}: {error.message}")
        return FeedError(FetchErrorKind.OTHER, f"HTTP {error.status}: {error.message}")

    if isinstance(error, (aiohttp.ClientConnectionError, aiohttp.InvalidURL)):
        return FeedError(FetchErrorKind.UNREACHABLE, message)

    lowered = message.lower()
    if 'timeout' in lowered or 'timed out' in lowered:
        return FeedError(FetchErrorKind.TIMEOUT, message)

    return FeedError(FetchErrorKind.OTHER, message)
