"""
Text normalization helpers for NewsCompass.
"""
import re
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning


def strip_html(html: Optional[str]) -> str:
    """
    Strip markup and decode entities from feed content.

    Args:
        html: Raw title, description or content from a feed entry

    Returns:
        Plain text with whitespace collapsed
    """
    if not html:
        return ""

    # Feed titles are often bare text that looks like a URL or file name
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(html, 'html.parser')

    for elem in soup.find_all(['script', 'style']):
        elem.decompose()

    text = soup.get_text(separator=' ')
    text = text.replace('\xa0', ' ')
    return re.sub(r'\s+', ' ', text).strip()


def excerpt(text: Optional[str], limit: int = 250) -> str:
    """Cut text to ``limit`` characters, marking the cut with an ellipsis."""
    if not text:
        return ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
