"""
Configuration management for NewsCompass.
"""
import copy
import os
import json
import logging
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = 'NEWSCOMPASS_'

# Default configuration
DEFAULT_CONFIG = {
    "search": {
        "feed_timeout_seconds": 7,
        "max_feeds": 20,
        "max_articles_per_feed": 10,
        "auto_remove_bad_feeds": False,
        "max_concurrent_feeds": 1,
        "user_agent": "NewsCompassSearch/1.0"
    },
    "similarity": {
        "max_candidates": 10,
        "confidence_threshold": 0.7,
        "min_content_length": 50,
        "classifier_min_text_length": 100
    },
    "openai": {
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "timeout_seconds": 30
    },
    "storage": {
        "directory": "data",
        "articles_file": "articles.csv",
        "feeds_file": "feeds.csv"
    },
    "synonyms": {
        "cache_enabled": False,
        "cache_directory": "cache",
        "cache_duration_days": 7
    }
}

class Config:
    """
    Configuration manager for NewsCompass.
    """
    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file or use defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            try:
                path = Path(self.config_path)
                if path.exists():
                    if path.suffix.lower() in ['.yaml', '.yml']:
                        with open(path, 'r') as f:
                            user_config = yaml.safe_load(f) or {}
                    elif path.suffix.lower() == '.json':
                        with open(path, 'r') as f:
                            user_config = json.load(f)
                    else:
                        raise ValueError(f"Unsupported config file format: {path.suffix}")

                    # Update config with user settings
                    self._update_dict(config, user_config)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Error loading config from {self.config_path}: {e}")
                logger.warning("Using default configuration")

        # Override with environment variables
        self._override_from_env(config)

        return config

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _override_from_env(self, config: Dict, prefix: str = ENV_PREFIX) -> None:
        """
        Override configuration with environment variables.

        Nesting levels are separated by a double underscore, so
        ``NEWSCOMPASS_SEARCH__FEED_TIMEOUT_SECONDS=12`` sets
        ``search.feed_timeout_seconds``.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in os.environ.items():
            if not key.startswith(prefix) or key == f"{prefix}CONFIG_PATH":
                continue

            parts = key[len(prefix):].lower().split('__')

            # Navigate to the right place in the config
            current = config
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            try:
                current[parts[-1]] = json.loads(value)
            except json.JSONDecodeError:
                current[parts[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'search.max_feeds')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current

    def save(self, path: Optional[str] = None) -> bool:
        """
        Save the current configuration to a file.

        Args:
            path: Path to save the configuration to

        Returns:
            True if successful, False otherwise
        """
        save_path = path or self.config_path
        if not save_path:
            logger.error("No path specified for saving configuration")
            return False

        try:
            path = Path(save_path)
            if path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'w') as f:
                    yaml.dump(self.config, f, default_flow_style=False)
            elif path.suffix.lower() == '.json':
                with open(path, 'w') as f:
                    json.dump(self.config, f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

            return True
        except (OSError, ValueError) as e:
            logger.error(f"Error saving config to {save_path}: {e}")
            return False


def _positive(value: Any, default, cast=int):
    """Return ``value`` cast to a number when it is a positive number, else ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return cast(value)


@dataclass
class SearchSettings:
    """
    Limits and policies applied to a global feed search.
    """
    feed_timeout_seconds: float = 7
    max_feeds: int = 20
    max_articles_per_feed: int = 10
    auto_remove_bad_feeds: bool = False
    max_concurrent_feeds: int = 1
    user_agent: str = "NewsCompassSearch/1.0"

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "SearchSettings":
        cfg = cfg or config
        defaults = cls()
        auto_remove = cfg.get('search.auto_remove_bad_feeds', defaults.auto_remove_bad_feeds)
        return cls(
            feed_timeout_seconds=_positive(
                cfg.get('search.feed_timeout_seconds'), defaults.feed_timeout_seconds, float
            ),
            max_feeds=_positive(cfg.get('search.max_feeds'), defaults.max_feeds),
            max_articles_per_feed=_positive(
                cfg.get('search.max_articles_per_feed'), defaults.max_articles_per_feed
            ),
            auto_remove_bad_feeds=auto_remove if isinstance(auto_remove, bool) else defaults.auto_remove_bad_feeds,
            max_concurrent_feeds=_positive(
                cfg.get('search.max_concurrent_feeds'), defaults.max_concurrent_feeds
            ),
            user_agent=str(cfg.get('search.user_agent') or defaults.user_agent),
        )


@dataclass
class SimilaritySettings:
    """
    Tuning for the similarity check that runs when an article is saved.
    """
    max_candidates: int = 10
    confidence_threshold: float = 0.7
    min_content_length: int = 50
    classifier_min_text_length: int = 100

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "SimilaritySettings":
        cfg = cfg or config
        defaults = cls()
        threshold = cfg.get('similarity.confidence_threshold')
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            threshold = defaults.confidence_threshold
        return cls(
            max_candidates=_positive(cfg.get('similarity.max_candidates'), defaults.max_candidates),
            confidence_threshold=float(threshold),
            min_content_length=_positive(
                cfg.get('similarity.min_content_length'), defaults.min_content_length
            ),
            classifier_min_text_length=_positive(
                cfg.get('similarity.classifier_min_text_length'), defaults.classifier_min_text_length
            ),
        )


# Global configuration instance
config = Config(os.getenv(f'{ENV_PREFIX}CONFIG_PATH'))
