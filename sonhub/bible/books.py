"""
Bible Book Registry

Canonical book names, chapter counts and common aliases, used to normalize user
input before a chapter is looked up or downloaded.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sonhub.errors import BookNotFoundError, ChapterOutOfRangeError


@dataclass(frozen=True)
class BibleBook:
    id: str
    name: str
    abbreviation: str
    testament: str
    chapters: int
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, term: str) -> bool:
        term = term.strip().lower()
        return (
            term == self.id
            or term == self.name.lower()
            or term == self.abbreviation.lower()
            or any(term == alias.lower() for alias in self.aliases)
        )


# (id, name, abbreviation, chapters, extra aliases)
_OLD_TESTAMENT = [
    ("gen", "Genesis", "Gen", 50, ("Gn",)),
    ("exo", "Exodus", "Exo", 40, ("Ex", "Exod")),
    ("lev", "Leviticus", "Lev", 27, ("Lv",)),
    ("num", "Numbers", "Num", 36, ("Nm",)),
    ("deu", "Deuteronomy", "Deu", 34, ("Deut", "Dt")),
    ("jos", "Joshua", "Jos", 24, ("Josh",)),
    ("jdg", "Judges", "Jdg", 21, ("Judg",)),
    ("rut", "Ruth", "Rut", 4, ("Ru",)),
    ("1sa", "1 Samuel", "1Sa", 31, ("1 Sam", "1Sam")),
    ("2sa", "2 Samuel", "2Sa", 24, ("2 Sam", "2Sam")),
    ("1ki", "1 Kings", "1Ki", 22, ("1 Kgs", "1Kgs")),
    ("2ki", "2 Kings", "2Ki", 25, ("2 Kgs", "2Kgs")),
    ("1ch", "1 Chronicles", "1Ch", 29, ("1 Chr", "1Chr")),
    ("2ch", "2 Chronicles", "2Ch", 36, ("2 Chr", "2Chr")),
    ("ezr", "Ezra", "Ezr", 10, ()),
    ("neh", "Nehemiah", "Neh", 13, ()),
    ("est", "Esther", "Est", 10, ("Esth",)),
    ("job", "Job", "Job", 42, ()),
    ("psa", "Psalms", "Psa", 150, ("Psalm", "Ps")),
    ("pro", "Proverbs", "Pro", 31, ("Prov", "Prv")),
    ("ecc", "Ecclesiastes", "Ecc", 12, ("Eccl", "Qoh")),
    ("sng", "Song of Solomon", "Sng", 8, ("Song of Songs", "Song", "SOS")),
    ("isa", "Isaiah", "Isa", 66, ()),
    ("jer", "Jeremiah", "Jer", 52, ()),
    ("lam", "Lamentations", "Lam", 5, ()),
    ("ezk", "Ezekiel", "Ezk", 48, ("Ezek",)),
    ("dan", "Daniel", "Dan", 12, ("Dn",)),
    ("hos", "Hosea", "Hos", 14, ()),
    ("jol", "Joel", "Jol", 3, ()),
    ("amo", "Amos", "Amo", 9, ("Am",)),
    ("oba", "Obadiah", "Oba", 1, ("Obad",)),
    ("jon", "Jonah", "Jon", 4, ()),
    ("mic", "Micah", "Mic", 7, ()),
    ("nam", "Nahum", "Nam", 3, ("Nah",)),
    ("hab", "Habakkuk", "Hab", 3, ()),
    ("zep", "Zephaniah", "Zep", 3, ("Zeph",)),
    ("hag", "Haggai", "Hag", 2, ()),
    ("zec", "Zechariah", "Zec", 14, ("Zech",)),
    ("mal", "Malachi", "Mal", 4, ()),
]

_NEW_TESTAMENT = [
    ("mat", "Matthew", "Mat", 28, ("Matt", "Mt")),
    ("mrk", "Mark", "Mar", 16, ("Mk", "Mrk")),
    ("luk", "Luke", "Luk", 24, ("Lk",)),
    ("jhn", "John", "Joh", 21, ("Jn", "Jhn")),
    ("act", "Acts", "Act", 28, ()),
    ("rom", "Romans", "Rom", 16, ("Ro",)),
    ("1co", "1 Corinthians", "1Co", 16, ("1 Cor", "1Cor")),
    ("2co", "2 Corinthians", "2Co", 13, ("2 Cor", "2Cor")),
    ("gal", "Galatians", "Gal", 6, ()),
    ("eph", "Ephesians", "Eph", 6, ()),
    ("php", "Philippians", "Php", 4, ("Phil",)),
    ("col", "Colossians", "Col", 4, ()),
    ("1th", "1 Thessalonians", "1Th", 5, ("1 Thess", "1Thess")),
    ("2th", "2 Thessalonians", "2Th", 3, ("2 Thess", "2Thess")),
    ("1ti", "1 Timothy", "1Ti", 6, ("1 Tim", "1Tim")),
    ("2ti", "2 Timothy", "2Ti", 4, ("2 Tim", "2Tim")),
    ("tit", "Titus", "Tit", 3, ()),
    ("phm", "Philemon", "Phm", 1, ("Philem",)),
    ("heb", "Hebrews", "Heb", 13, ()),
    ("jas", "James", "Jas", 5, ("Jm",)),
    ("1pe", "1 Peter", "1Pe", 5, ("1 Pet", "1Pet")),
    ("2pe", "2 Peter", "2Pe", 3, ("2 Pet", "2Pet")),
    ("1jn", "1 John", "1Jn", 5, ("1 Jn",)),
    ("2jn", "2 John", "2Jn", 1, ("2 Jn",)),
    ("3jn", "3 John", "3Jn", 1, ("3 Jn",)),
    ("jud", "Jude", "Jud", 1, ()),
    ("rev", "Revelation", "Rev", 22, ("Revelations", "Rv")),
]


def _build_registry() -> List[BibleBook]:
    books = []
    for testament, rows in (("old", _OLD_TESTAMENT), ("new", _NEW_TESTAMENT)):
        for book_id, name, abbreviation, chapters, aliases in rows:
            books.append(BibleBook(
                id=book_id,
                name=name,
                abbreviation=abbreviation,
                testament=testament,
                chapters=chapters,
                aliases=aliases,
            ))
    return books


BIBLE_BOOKS: List[BibleBook] = _build_registry()

_BY_NAME: Dict[str, BibleBook] = {book.name: book for book in BIBLE_BOOKS}

TOTAL_CHAPTERS = sum(book.chapters for book in BIBLE_BOOKS)


def all_books(testament: Optional[str] = None) -> List[BibleBook]:
    """All books in canonical order, optionally restricted to "old" or "new"."""
    if testament is None:
        return list(BIBLE_BOOKS)
    return [book for book in BIBLE_BOOKS if book.testament == testament]


def get_book(term: str) -> Optional[BibleBook]:
    """
    Find a book by id, name, abbreviation or alias (case-insensitive).

    Args:
        term: User-supplied book reference

    Returns:
        Matching BibleBook or None
    """
    if not term:
        return None
    exact = _BY_NAME.get(term.strip())
    if exact:
        return exact
    for book in BIBLE_BOOKS:
        if book.matches(term):
            return book
    return None


def validate_reference(book: str, chapter: int) -> BibleBook:
    """
    Resolve a book reference and check that the chapter exists.

    Raises:
        BookNotFoundError: If the book is unknown
        ChapterOutOfRangeError: If the chapter is outside 1..book.chapters
    """
    found = get_book(book)
    if found is None:
        raise BookNotFoundError(f'Book "{book}" not found. Please check the spelling.')
    if chapter < 1 or chapter > found.chapters:
        raise ChapterOutOfRangeError(
            f"Chapter {chapter} does not exist in {found.name}. "
            f"{found.name} has {found.chapters} chapters."
        )
    return found
