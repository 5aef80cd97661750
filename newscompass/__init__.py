"""
NewsCompass - feed search and article similarity core

Searches saved analyses and live RSS feeds with AI-expanded synonym
groups, and links newly saved articles to recent stories that cover the
same event.
"""

__version__ = "0.1.0"
