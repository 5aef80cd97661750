"""
Saved-analysis operations: save with similarity linking, delete, search.
"""
import logging
import uuid
from typing import Dict, List, Optional

from newscompass.core.article import ArticleDraft, SaveResult, SavedArticle, utcnow
from newscompass.core.similarity import SimilarityEngine
from newscompass.core.store import ArticleStore
from newscompass.search.matcher import matches_any_field
from newscompass.search.synonyms import SynonymExpander

logger = logging.getLogger(__name__)


class ArticleLibrary:
    """
    Saved analyses, linked to each other by the similarity engine.
    """
    def __init__(self, store: ArticleStore, expander: SynonymExpander, engine: SimilarityEngine):
        self.store = store
        self.expander = expander
        self.engine = engine

    async def save(self, draft: ArticleDraft) -> SaveResult:
        """
        Save an analysed article.

        An article whose link is already saved is updated in place and keeps
        its similarity links unless new ones are supplied. A new article is
        compared against recently saved articles before it is stored.

        Args:
            draft: Analysis results to save

        Returns:
            SaveResult with the stored record and "new" or "updated"
        """
        existing = await self.store.find_by_link(draft.article_link) if draft.article_link else None

        record = SavedArticle(
            id=existing.id if existing else str(uuid.uuid4()),
            saved_date=existing.saved_date if existing else utcnow(),
            summary=draft.summary,
            bias_score=draft.bias_score,
            bias_explanation=draft.bias_explanation,
            source_name=draft.source_name,
            article_link=draft.article_link,
            category=draft.category,
            neutral_summary=draft.neutral_summary,
            original_content=draft.original_content,
            similar_articles=list(draft.similar_articles),
        )

        if existing is None:
            pool = await self.store.list_all()
            record.similar_articles = await self.engine.find_similar(
                draft.original_content, pool, exclude_id=record.id
            )

        return await self.store.save(record)

    async def delete(self, article_id: str) -> bool:
        return await self.store.delete_by_id(article_id)

    async def get(self, article_id: str) -> Optional[SavedArticle]:
        return await self.store.get(article_id)

    async def find_by_link(self, link: str) -> Optional[SavedArticle]:
        """
        Look up a saved analysis by article link.

        Lookup failures are logged and reported as "not found" so that callers
        enriching live articles can carry on.
        """
        try:
            return await self.store.find_by_link(link)
        except Exception as e:
            logger.warning(f"Error finding saved analysis by link '{link}': {e}")
            return None

    async def details_for_linking(self, article_ids: List[str]) -> List[Dict[str, Optional[str]]]:
        """
        Short descriptions of saved articles, for rendering similarity links.
        """
        if not article_ids:
            return []
        by_id = {a.id: a for a in await self.store.list_all()}
        details = []
        for article_id in article_ids:
            article = by_id.get(article_id)
            if article is None:
                continue
            details.append({
                'id': article.id,
                'title': article.summary[:70] + "...",
                'source_name': article.source_name,
                'category': article.category,
                'link': article.article_link,
            })
        return details

    async def search(self, query: str) -> List[SavedArticle]:
        """
        Search saved analyses.

        Derives its own synonym groups from the query, independently of the
        groups used for live feeds.

        Args:
            query: Raw search query

        Returns:
            Matching saved articles, newest first
        """
        if not query or not query.strip():
            return []

        groups = await self.expander.expand_query(query)
        if not groups:
            return []

        articles = await self.store.list_all()
        results = []
        for article in articles:
            fields = [
                article.summary,
                article.original_content,
                article.source_name,
                article.category,
                article.bias_explanation,
                article.neutral_summary,
            ] + [link.reasoning for link in article.similar_articles]
            if matches_any_field(fields, groups):
                results.append(article)
        return results
