# catalog/openlibrary/records.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthorRecord:
    source_id: str
    name: str


@dataclass(frozen=True)
class WorkRecord:
    source_id: str
    title: str
    first_publish_year: Optional[int] = None
    primary_edition_source_id: Optional[str] = None


@dataclass(frozen=True)
class EditionRecord:
    source_id: str
    title: str
    publish_year: Optional[int] = None
    publish_date: Optional[str] = None
    publish_date_raw: Optional[str] = None
    isbn13: Optional[str] = None
    cover_url: Optional[str] = None
    language: Optional[str] = None
