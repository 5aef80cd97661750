"""
Synonym expansion for search queries.
"""
import logging
from typing import List, Optional

from newscompass.core.cache import SynonymCache

logger = logging.getLogger(__name__)


def _unique(terms: List[str]) -> List[str]:
    seen = set()
    result = []
    for term in terms:
        if term not in seen:
            seen.add(term)
            result.append(term)
    return result


class SynonymExpander:
    """
    Expands search words into synonym groups using an external synonym service.

    The service must provide ``async synonyms(word) -> List[str]``. It is
    treated as unreliable: any failure degrades to the bare word.
    """
    def __init__(self, service, cache: Optional[SynonymCache] = None):
        """
        Initialize the SynonymExpander.

        Args:
            service: Synonym service used to look up each word
            cache: Optional cache of earlier lookups
        """
        self.service = service
        self.cache = cache

    async def _lookup(self, word: str) -> List[str]:
        if self.cache is not None:
            cached = self.cache.get(word)
            if cached is not None:
                logger.debug(f"Synonym cache hit for '{word}'")
                return cached

        synonyms = await self.service.synonyms(word)
        if not isinstance(synonyms, list):
            logger.warning(f"Synonym service returned {type(synonyms).__name__} for '{word}', ignoring it")
            synonyms = []
        synonyms = [s.strip() for s in synonyms if isinstance(s, str) and s.strip()]

        if self.cache is not None:
            self.cache.set(word, synonyms)
        return synonyms

    async def expand(self, word: str) -> List[str]:
        """
        Expand one word into its synonym group.

        Args:
            word: The search word

        Returns:
            The word followed by its synonyms, or ``[]`` for blank input
        """
        word = (word or "").strip()
        if not word:
            return []

        try:
            synonyms = await self._lookup(word)
        except Exception as e:
            logger.warning(f"Synonym lookup failed for '{word}', using the bare word: {e}")
            return [word]

        return _unique([word] + synonyms)

    async def expand_query(self, query: str) -> List[List[str]]:
        """
        Expand a query into one lower-cased synonym group per token.

        Args:
            query: Raw search query

        Returns:
            List of synonym groups, ``[]`` if the query has no tokens
        """
        groups = []
        for token in (query or "").split():
            group = await self.expand(token)
            if not group:
                continue
            lowered = [term.lower() for term in group]
            # The original word always leads its group
            groups.append(_unique([token.lower()] + lowered))
        logger.debug(f"Expanded query '{query}' into {len(groups)} synonym group(s)")
        return groups
