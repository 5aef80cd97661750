"""
Similarity checks between a newly saved article and recent saved articles.
"""
import logging
from typing import Iterable, List, Optional

from newscompass.config import SimilaritySettings
from newscompass.core.article import SavedArticle, SimilarityLink

logger = logging.getLogger(__name__)


def has_substantial_content(text: Optional[str], min_length: int) -> bool:
    return bool(text) and len(text.strip()) > min_length


class SimilarityEngine:
    """
    Compares a new article against a bounded window of recent saved articles.

    Each comparison is one call to the classifier, which must provide
    ``async compare(text_a, text_b)`` returning a SimilarityVerdict. At most
    ``max_candidates`` calls are made per article.
    """
    def __init__(self, classifier, settings: Optional[SimilaritySettings] = None):
        """
        Initialize the SimilarityEngine.

        Args:
            classifier: Pairwise similarity classifier
            settings: Candidate window, threshold and content floor
        """
        self.classifier = classifier
        self.settings = settings or SimilaritySettings()

    def select_candidates(
        self,
        pool: Iterable[SavedArticle],
        max_candidates: int,
        exclude_id: Optional[str] = None,
    ) -> List[SavedArticle]:
        """
        Pick the most recently saved articles with enough content to compare.
        """
        floor = self.settings.min_content_length
        recent = sorted(pool, key=lambda a: a.saved_date, reverse=True)
        candidates = [
            a for a in recent
            if a.id != exclude_id and has_substantial_content(a.original_content, floor)
        ]
        return candidates[:max_candidates]

    async def find_similar(
        self,
        new_text: Optional[str],
        pool: Iterable[SavedArticle],
        max_candidates: Optional[int] = None,
        confidence_threshold: Optional[float] = None,
        exclude_id: Optional[str] = None,
    ) -> List[SimilarityLink]:
        """
        Find saved articles that describe the same event as ``new_text``.

        Args:
            new_text: Content of the article being saved
            pool: Saved articles to draw candidates from
            max_candidates: Size of the candidate window
            confidence_threshold: Minimum classifier confidence for a link
            exclude_id: Id of the article being saved, never linked to itself

        Returns:
            Links in candidate order, most recent first
        """
        if max_candidates is None:
            max_candidates = self.settings.max_candidates
        if confidence_threshold is None:
            confidence_threshold = self.settings.confidence_threshold

        if not has_substantial_content(new_text, self.settings.min_content_length):
            logger.info("Skipping similarity check: new article content is missing or too short.")
            return []

        candidates = self.select_candidates(pool, max_candidates, exclude_id)
        if not candidates:
            logger.info("No recent candidate articles found for similarity check.")
            return []

        logger.info(f"Comparing against {len(candidates)} recent candidate articles.")
        links = []
        for candidate in candidates:
            try:
                verdict = await self.classifier.compare(new_text, candidate.original_content)
            except Exception as e:
                logger.warning(f"Similarity check failed for candidate {candidate.id}, skipping: {e}")
                continue

            confidence = verdict.confidence or 0.0
            logger.debug(
                f"Similarity check with candidate {candidate.id}: "
                f"is_similar={verdict.is_similar}, confidence={verdict.confidence}"
            )
            if verdict.is_similar and confidence >= confidence_threshold:
                links.append(SimilarityLink(
                    id=candidate.id,
                    confidence=verdict.confidence,
                    reasoning=verdict.reasoning,
                ))

        logger.info(f"Found {len(links)} similar article(s): {', '.join(link.id for link in links)}")
        return links
