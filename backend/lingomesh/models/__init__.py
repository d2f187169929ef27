"""
ORM models.
"""

from lingomesh.models.translation_cache import TranslationCacheEntry

__all__ = ["TranslationCacheEntry"]
