"""
ArchiveRecord: one file in the idGames Archive, as reported by the API and
stored in the catalog.
"""
import os
from dataclasses import dataclass, field, fields
from typing import List, Optional, Protocol, runtime_checkable

from exceptions import CatalogError, ErrorKind


@runtime_checkable
class ChecksumSource(Protocol):
    """Anything carrying a content checksum (records, opened containers)"""

    checksum: Optional[str]


@runtime_checkable
class PathResolver(Protocol):
    """Anything that knows its path inside the archive tree"""

    @property
    def path(self) -> str: ...

    def local_path(self, root: str) -> str: ...


@dataclass
class Review:
    text: Optional[str] = None
    vote: Optional[float] = None


@dataclass
class ArchiveRecord:
    # Declaration order is the column order of the 'files' table
    id: Optional[int] = None
    title: Optional[str] = None
    dir: Optional[str] = None
    filename: Optional[str] = None
    size: Optional[int] = None
    date: Optional[str] = None
    author: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    credits: Optional[str] = None
    base: Optional[str] = None
    buildtime: Optional[str] = None
    editors: Optional[str] = None
    bugs: Optional[str] = None
    rating: Optional[float] = None
    vote_count: Optional[int] = None
    checksum: Optional[str] = None
    levels: List[str] = field(default_factory=list)
    # Not stored in 'files'
    url: Optional[str] = None
    idgamesurl: Optional[str] = None
    reviews: List[Review] = field(default_factory=list)

    @classmethod
    def attributes(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def stored_attributes(cls):
        return [name for name in cls.attributes() if name not in TRANSIENT_FIELDS]

    @property
    def path(self):
        return f"{self.dir or ''}{self.filename or ''}"

    def local_path(self, root):
        return os.path.join(root, *(self.dir or "").strip("/").split("/"), self.filename or "")

    def serialize(self):
        """Column values for the 'files' table, in declaration order"""
        values = []
        for name in self.stored_attributes():
            value = getattr(self, name)
            if name == "levels":
                value = ",".join(value) if value else None
            values.append(value)
        return tuple(values)

    @classmethod
    def deserialize(cls, row):
        """Inverse of serialize(); `row` is a positional 'files' row"""
        record = cls()
        for name, value in zip(cls.stored_attributes(), row):
            if name == "levels":
                value = value.split(",") if value else []
            setattr(record, name, value)
        return record

    def populate(self, data) -> Optional[CatalogError]:
        """
        Fill this record from a normalised API payload (see parsers.py).

        Returns None on success, or a 'populate' CatalogError when the API
        reported an error/warning or the content is unusable.
        """
        if not isinstance(data, dict):
            return _populate_error("Response payload is not a mapping")

        for key in ("error", "warning"):
            if key in data:
                problem = data[key] or {}
                return _populate_error(
                    f"idGames API returned {key}: {problem.get('message') or 'no message'}",
                    raw=problem.get("type"),
                )

        content = data.get("content")
        if not isinstance(content, dict):
            return _populate_error("Response has no 'content' block")

        missing = [key for key in ("id", "dir", "filename") if not content.get(key)]
        if missing:
            return _populate_error(f"Content is missing field(s): {', '.join(missing)}")

        try:
            file_id = int(content["id"])
            size = _optional(int, content.get("size"))
            rating = _optional(float, content.get("rating"))
            vote_count = _optional(int, content.get("vote_count"))
            reviews = [
                Review(text=review.get("text"), vote=_optional(float, review.get("vote")))
                for review in content.get("reviews") or []
            ]
        except (TypeError, ValueError, AttributeError) as e:
            return _populate_error("Content has malformed values", raw=str(e))

        if file_id < 1:
            return _populate_error(f"Invalid file ID {file_id}")

        for name in ("title", "dir", "filename", "date", "author", "email", "description",
                     "credits", "base", "buildtime", "editors", "bugs", "url", "idgamesurl"):
            setattr(self, name, content.get(name))
        self.id = file_id
        self.size = size
        self.rating = rating
        self.vote_count = vote_count
        self.reviews = reviews
        return None


TRANSIENT_FIELDS = ("url", "idgamesurl", "reviews")


def _optional(convert, value):
    if value is None or value == "":
        return None
    return convert(value)


def _populate_error(message, raw=None):
    return CatalogError(kind=ErrorKind.POPULATE, message=message, raw=raw, context="file.populate")
