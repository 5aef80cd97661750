"""
Persistence of saved article analyses.

The CSV store reads the whole file, modifies the rows in memory and writes the
whole file back on every mutation. Concurrent writers from separate processes
are not coordinated: the last write wins.
"""
import abc
import asyncio
import csv
import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from newscompass.core.article import SaveResult, SavedArticle, SimilarityLink

logger = logging.getLogger(__name__)

ARTICLE_COLUMNS = [
    'id', 'savedDate', 'sourceName', 'articleLink', 'category', 'summary',
    'biasScore', 'biasExplanation', 'neutralSummary', 'originalContent', 'similarArticlesData',
]


class StoreError(Exception):
    """Raised when the underlying storage cannot be read or written."""


class ArticleStore(abc.ABC):
    """
    Storage contract for saved analyses.
    """
    @abc.abstractmethod
    async def list_all(self) -> List[SavedArticle]:
        """Return every saved article."""

    @abc.abstractmethod
    async def save(self, record: SavedArticle) -> SaveResult:
        """Insert a record, or update the record that has the same article link."""

    @abc.abstractmethod
    async def delete_by_id(self, article_id: str) -> bool:
        """Delete a record and drop its id from every other record's similarity links."""

    async def find_by_link(self, link: str) -> Optional[SavedArticle]:
        if not link or not link.strip():
            return None
        for article in await self.list_all():
            if article.article_link == link:
                return article
        return None

    async def get(self, article_id: str) -> Optional[SavedArticle]:
        if not article_id or not article_id.strip():
            return None
        for article in await self.list_all():
            if article.id == article_id:
                return article
        return None


def _parse_date(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def _optional(value: str) -> Optional[str]:
    return value if value else None


def _merge(existing: SavedArticle, incoming: SavedArticle) -> SavedArticle:
    return SavedArticle(
        id=existing.id,
        saved_date=existing.saved_date,
        summary=incoming.summary,
        bias_score=incoming.bias_score,
        bias_explanation=incoming.bias_explanation,
        source_name=incoming.source_name or existing.source_name,
        article_link=existing.article_link,
        category=incoming.category or existing.category,
        neutral_summary=incoming.neutral_summary or existing.neutral_summary,
        original_content=incoming.original_content or existing.original_content,
        similar_articles=incoming.similar_articles or existing.similar_articles,
    )


class CsvArticleStore(ArticleStore):
    """
    Article store backed by a single CSV file.
    """
    def __init__(self, path: Union[str, Path]):
        """
        Initialize the CsvArticleStore.

        Args:
            path: Location of the CSV file; created on first use
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _write_header_only(self, reason: str) -> None:
        logger.warning(f"{reason} Re-initializing {self.path} with an empty article list.")
        self._write_rows([])

    def _read_rows(self) -> List[SavedArticle]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self._write_rows([])
                logger.info(f"Initialized empty {self.path.name} with header.")
                return []
            text = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise StoreError(f"Failed to read articles data: {e}") from e

        if not text.strip():
            self._write_header_only("Article file is empty.")
            return []

        try:
            reader = csv.DictReader(io.StringIO(text))
            header = [h.strip().lower() for h in (reader.fieldnames or [])]
            if header != [c.lower() for c in ARTICLE_COLUMNS]:
                self._write_header_only(f"Article file header is malformed (found: {','.join(header)}).")
                return []
            rows = list(reader)
        except csv.Error as e:
            self._write_header_only(f"Article file could not be parsed ({e}).")
            return []

        articles = []
        for row in rows:
            article = self._row_to_article(row)
            if article is not None:
                articles.append(article)
        return articles

    def _row_to_article(self, row: dict) -> Optional[SavedArticle]:
        row = {k: (v or '') for k, v in row.items() if k is not None}
        saved_date = _parse_date(row.get('savedDate', ''))
        if not row.get('id') or saved_date is None or not row.get('summary'):
            logger.debug(f"Skipping incomplete article row: {row.get('id') or 'unknown'}")
            return None

        links = []
        raw_links = row.get('similarArticlesData', '').strip()
        if raw_links:
            try:
                links = [SimilarityLink.from_dict(item) for item in json.loads(raw_links)]
            except (ValueError, TypeError, KeyError) as e:
                logger.warning(f"Failed to parse similar articles for article {row['id']}: {e}")
                links = []

        return SavedArticle(
            id=row['id'],
            saved_date=saved_date,
            summary=row['summary'],
            bias_score=row.get('biasScore', ''),
            bias_explanation=row.get('biasExplanation', ''),
            source_name=_optional(row.get('sourceName', '')),
            article_link=_optional(row.get('articleLink', '')),
            category=_optional(row.get('category', '')),
            neutral_summary=_optional(row.get('neutralSummary', '')),
            original_content=_optional(row.get('originalContent', '')),
            similar_articles=links,
        )

    def _write_rows(self, articles: List[SavedArticle]) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(ARTICLE_COLUMNS)
        for a in articles:
            links = json.dumps([link.to_dict() for link in a.similar_articles]) if a.similar_articles else ''
            writer.writerow([
                a.id,
                _format_date(a.saved_date),
                a.source_name or '',
                a.article_link or '',
                a.category or '',
                a.summary,
                a.bias_score or '',
                a.bias_explanation or '',
                a.neutral_summary or '',
                a.original_content or '',
                links,
            ])
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(buffer.getvalue(), encoding='utf-8')
        except OSError as e:
            raise StoreError(f"Failed to save articles to data file: {e}") from e

    async def list_all(self) -> List[SavedArticle]:
        """
        Read all saved articles, newest first.
        """
        articles = await asyncio.to_thread(self._read_rows)
        return sorted(articles, key=lambda a: a.saved_date, reverse=True)

    async def save(self, record: SavedArticle) -> SaveResult:
        """
        Save a record. A record whose article link is already stored updates the
        existing row and keeps its id and saved date.

        Args:
            record: The record to save

        Returns:
            SaveResult with the stored record and "new" or "updated"
        """
        async with self._lock:
            articles = await asyncio.to_thread(self._read_rows)

            if record.article_link and record.article_link.strip():
                for index, existing in enumerate(articles):
                    if existing.article_link == record.article_link:
                        updated = _merge(existing, record)
                        articles[index] = updated
                        await asyncio.to_thread(self._write_rows, articles)
                        logger.info(f"Updated existing analysis for article: {updated.article_link}")
                        return SaveResult(record=updated, operation='updated')

            articles.append(record)
            await asyncio.to_thread(self._write_rows, articles)
            logger.info(f"Saved new analysis for article: {record.article_link or record.summary[:30]}")
            return SaveResult(record=record, operation='new')

    async def delete_by_id(self, article_id: str) -> bool:
        """
        Delete a record and strip references to it from other records.

        Args:
            article_id: Id of the record to delete

        Returns:
            True once the file has been rewritten, even if the id was not present
        """
        async with self._lock:
            articles = await asyncio.to_thread(self._read_rows)
            remaining = [a for a in articles if a.id != article_id]
            if len(remaining) == len(articles):
                logger.warning(f"Saved article with id '{article_id}' not found for deletion.")

            for article in remaining:
                if any(link.id == article_id for link in article.similar_articles):
                    article.similar_articles = [
                        link for link in article.similar_articles if link.id != article_id
                    ]

            await asyncio.to_thread(self._write_rows, remaining)
            return True
