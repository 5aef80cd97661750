"""
Cache management for NewsCompass.
"""
import json
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

CACHE_DB_NAME = "synonym_cache.db"
CACHE_DURATION = timedelta(days=7)


class SynonymCache:
    """
    Caches synonym lookups to avoid repeated calls to the synonym service.
    """
    def __init__(self, directory: Union[str, Path] = "cache", duration: timedelta = CACHE_DURATION):
        self.directory = Path(directory)
        self.db_path = self.directory / CACHE_DB_NAME
        self.duration = duration
        self._init_cache_dir()
        self._init_db()

    def _init_cache_dir(self):
        """Initialize the cache directory."""
        self.directory.mkdir(parents=True, exist_ok=True)

    def _init_db(self):
        """Initialize the SQLite database for caching."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS synonyms (
                    word TEXT PRIMARY KEY,
                    terms TEXT,
                    timestamp TEXT
                )
            """)

    def get(self, word: str) -> Optional[List[str]]:
        """
        Get cached synonyms if they exist and are fresh.

        Args:
            word: The word that was expanded

        Returns:
            The cached synonym list if found and fresh, None otherwise
        """
        key = word.strip().lower()
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT terms, timestamp FROM synonyms WHERE word = ?",
                (key,)
            )
            result = cursor.fetchone()

            if result:
                terms, timestamp = result
                cache_time = datetime.fromisoformat(timestamp)
                if datetime.now() - cache_time < self.duration:
                    return json.loads(terms)
                # Clean up expired cache entry
                conn.execute("DELETE FROM synonyms WHERE word = ?", (key,))
                conn.commit()
            return None

    def set(self, word: str, synonyms: List[str]):
        """
        Cache the synonyms for a word.

        Args:
            word: The word that was expanded
            synonyms: The synonyms returned by the service
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO synonyms (word, terms, timestamp)
                VALUES (?, ?, ?)
                """,
                (word.strip().lower(), json.dumps(synonyms), datetime.now().isoformat())
            )
