# catalog/openlibrary/parsing.py
import re
from datetime import datetime, UTC
from typing import Any, Iterable, Optional

from dateutil import parser as date_parser

COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-M.jpg"

# Order matters, the first matching prefix wins
KEY_PREFIXES = ("/authors/", "/works/", "/books/", "/languages/")

_YEAR_ONLY = re.compile(r"^\d{4}$")
_YEAR_IN_TEXT = re.compile(r"\b(1\d{3}|20\d{2})\b")
_ISBN13 = re.compile(r"^\d{13}$")

# Missing date parts are filled from here, so "March 2005" becomes 2005-03-01
_DEFAULT_DATE = datetime(1970, 1, 1)


def normalize_key(key: str) -> str:
    """Strip the OpenLibrary resource prefix from a key

    "/authors/OL23919A" -> "OL23919A". Unknown slash-prefixed keys lose exactly
    one leading slash, anything else is returned untouched.
    """
    for prefix in KEY_PREFIXES:
        if key.startswith(prefix):
            return key[len(prefix):]
    if key.startswith("/"):
        return key[1:]
    return key


def parse_date(value: Optional[str]) -> Optional[str]:
    """Parse a free-form OpenLibrary publish date into ISO YYYY-MM-DD

    Bare years are rejected (they carry no day), so is text without a
    plausible year and anything dateutil can't make sense of.
    """
    if value is None:
        return None
    value = value.strip()
    if not value or _YEAR_ONLY.match(value) or parse_year(value) is None:
        return None

    try:
        parsed = date_parser.parse(value, default=_DEFAULT_DATE)
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC)
    return parsed.date().isoformat()


def parse_year(value: Optional[str]) -> Optional[int]:
    """Return the first plausible year (1000-2099) found in the text"""
    if not value:
        return None
    match = _YEAR_IN_TEXT.search(value)
    if not match:
        return None
    return int(match.group(1))


def build_cover_url(cover_id: Any) -> str:
    return COVER_URL_TEMPLATE.format(cover_id=cover_id)


def first_isbn13(values: Optional[Iterable[Any]]) -> Optional[str]:
    for value in values or []:
        if isinstance(value, str) and _ISBN13.match(value.strip()):
            return value.strip()
    return None


def first_cover_url(covers: Optional[Iterable[Any]]) -> Optional[str]:
    # OpenLibrary uses -1 as a "no cover" placeholder
    for cover_id in covers or []:
        if isinstance(cover_id, int) and cover_id > 0:
            return build_cover_url(cover_id)
    return None


def first_language(languages: Optional[Iterable[Any]]) -> Optional[str]:
    for language in languages or []:
        if isinstance(language, dict) and isinstance(language.get("key"), str):
            return normalize_key(language["key"])
    return None
