"""
Article data model for NewsCompass.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x400.png"
SAVED_ANALYSIS_IMAGE_URL = "https://placehold.co/600x400.png?text=Saved+Analysis"


class BiasScore(str, Enum):
    LEFT = "Left"
    CENTER = "Center"
    RIGHT = "Right"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BiasScore":
        """Map a stored or AI-provided label onto the enum, falling back to Unknown."""
        for member in cls:
            if value and value.strip().lower() == member.value.lower():
                return member
        return cls.UNKNOWN


@dataclass
class SimilarityLink:
    """
    A link from a saved article to another saved article covering the same event.
    """
    id: str
    confidence: Optional[float] = None
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimilarityLink":
        return cls(
            id=str(data["id"]),
            confidence=data.get("confidence"),
            reasoning=data.get("reasoning"),
        )


@dataclass
class SimilarityVerdict:
    """
    Output of the pairwise similarity classifier.
    """
    is_similar: bool
    confidence: Optional[float] = None
    reasoning: Optional[str] = None


@dataclass
class FeedSource:
    """
    A configured RSS/Atom feed.
    """
    name: str
    url: str
    category: str


@dataclass
class Article:
    """
    Represents a news article from a live feed or a saved analysis.
    """
    id: str
    title: str
    link: str
    source: str
    published: datetime
    source_url: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    bias: BiasScore = BiasScore.UNKNOWN
    bias_explanation: Optional[str] = None
    neutral_summary: Optional[str] = None
    image_url: Optional[str] = None
    image_hint: Optional[str] = None
    category: Optional[str] = None
    similar_articles: List[SimilarityLink] = field(default_factory=list)


@dataclass
class SavedArticle:
    """
    An analysed article persisted in the article store.
    """
    id: str
    saved_date: datetime
    summary: str
    bias_score: str = BiasScore.UNKNOWN.value
    bias_explanation: str = ""
    source_name: Optional[str] = None
    article_link: Optional[str] = None
    category: Optional[str] = None
    neutral_summary: Optional[str] = None
    original_content: Optional[str] = None
    similar_articles: List[SimilarityLink] = field(default_factory=list)

    def to_article(self) -> Article:
        """
        Map the saved analysis into the common Article shape used by search results.
        """
        return Article(
            id=self.id,
            title=self.summary,
            link=self.article_link or "",
            source=self.source_name or "Saved Analysis",
            source_url=self.article_link,
            published=self.saved_date,
            content=self.original_content,
            summary=self.summary,
            bias=BiasScore.parse(self.bias_score),
            bias_explanation=self.bias_explanation,
            neutral_summary=self.neutral_summary,
            image_url=SAVED_ANALYSIS_IMAGE_URL,
            image_hint="saved analysis document",
            category=self.category,
            similar_articles=list(self.similar_articles),
        )


@dataclass
class ArticleDraft:
    """
    Analysis results submitted for saving; id and saved date are assigned by the library.
    """
    summary: str
    bias_score: str
    bias_explanation: str
    source_name: Optional[str] = None
    article_link: Optional[str] = None
    category: Optional[str] = None
    neutral_summary: Optional[str] = None
    original_content: Optional[str] = None
    similar_articles: List[SimilarityLink] = field(default_factory=list)


@dataclass
class SaveResult:
    record: SavedArticle
    operation: str  # "new" or "updated"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(article: Article) -> datetime:
    published = article.published
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def sort_by_published(articles: Iterable[Article]) -> List[Article]:
    """Sort newest first."""
    return sorted(articles, key=_sort_key, reverse=True)


def merge_unique(accumulated: List[Article], incoming: Iterable[Article]) -> Tuple[List[Article], int]:
    """
    Merge articles into an accumulated result set.

    Articles whose id is already present are dropped, so whatever was merged
    first wins. The merged list is re-sorted by published date, newest first.

    Args:
        accumulated: Result set built so far
        incoming: Articles to merge in

    Returns:
        Tuple of the merged, sorted list and the number of articles added
    """
    seen = {article.id for article in accumulated}
    merged = list(accumulated)
    added = 0
    for article in incoming:
        if article.id in seen:
            continue
        seen.add(article.id)
        merged.append(article)
        added += 1
    return sort_by_published(merged), added
