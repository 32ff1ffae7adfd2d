"""
Bible Data Models

Chapter and verse records shared by the Bible API client and the chapter cache.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional


@dataclass
class BibleVerse:
    """A single verse of a specific translation."""

    book: str
    chapter: int
    verse: int
    text: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BibleVerse":
        return cls(
            book=data["book"],
            chapter=int(data["chapter"]),
            verse=int(data["verse"]),
            text=data["text"],
            version=data["version"],
        )


@dataclass
class BibleChapter:
    """
    A chapter of a specific translation.

    Two chapters with the same book and number but different versions are
    distinct records, which is reflected in cache_key.
    """

    book: str
    chapter: int
    version: str
    verses: List[BibleVerse] = field(default_factory=list)

    @property
    def cache_key(self) -> str:
        return chapter_cache_key(self.book, self.chapter, self.version)

    def get_verse(self, verse_number: int) -> Optional[BibleVerse]:
        for verse in self.verses:
            if verse.verse == verse_number:
                return verse
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "book": self.book,
            "chapter": self.chapter,
            "version": self.version,
            "verses": [verse.to_dict() for verse in self.verses],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BibleChapter":
        return cls(
            book=data["book"],
            chapter=int(data["chapter"]),
            version=data["version"],
            verses=[BibleVerse.from_dict(v) for v in data.get("verses", [])],
        )

    @classmethod
    def from_api_payload(cls, book: str, chapter: int, version: str,
                         payload: Dict[str, Any]) -> "BibleChapter":
        """
        Build a chapter from a bible-api.com style payload.

        Args:
            book: Canonical book name
            chapter: Chapter number
            version: Translation identifier
            payload: Response body containing a "verses" array of {verse, text}

        Returns:
            BibleChapter with stripped verse text

        Raises:
            ValueError: If the payload contains no verses
        """
        raw_verses = payload.get("verses") or []
        if not raw_verses:
            raise ValueError(f"No verses found in response for {book} {chapter} ({version})")

        verses = [
            BibleVerse(
                book=book,
                chapter=chapter,
                verse=int(raw["verse"]),
                text=str(raw.get("text", "")).strip(),
                version=version,
            )
            for raw in raw_verses
        ]
        return cls(book=book, chapter=chapter, version=version, verses=verses)


def chapter_cache_key(book: str, chapter: int, version: str) -> str:
    """Composite cache key for a chapter of a translation."""
    return f"{book}-{chapter}-{version}"
