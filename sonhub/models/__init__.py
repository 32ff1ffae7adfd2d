"""
Domain Models

Bible chapter/verse records and the community post record.
"""

from sonhub.models.bible import BibleVerse, BibleChapter, chapter_cache_key
from sonhub.models.post import CommunityPost, PostStatus

__all__ = ['BibleVerse', 'BibleChapter', 'chapter_cache_key', 'CommunityPost', 'PostStatus']
