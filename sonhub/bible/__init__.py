"""
Bible Package

Book registry and the remote chapter API client.
"""

from sonhub.bible.books import BibleBook, all_books, get_book, validate_reference, TOTAL_CHAPTERS
from sonhub.bible.client import BibleApiClient

__all__ = ['BibleBook', 'all_books', 'get_book', 'validate_reference', 'TOTAL_CHAPTERS', 'BibleApiClient']
