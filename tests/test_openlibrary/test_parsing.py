import pytest
from catalog.openlibrary.parsing import (
    normalize_key, parse_date, parse_year, build_cover_url,
    first_isbn13, first_cover_url, first_language,
)


@pytest.mark.parametrize("key,expected", [
    ("/authors/OL23919A", "OL23919A"),
    ("/works/OL82563W", "OL82563W"),
    ("/books/OL7353617M", "OL7353617M"),
    ("/languages/eng", "eng"),
    ("/unknown/OL123", "unknown/OL123"),
    ("/", ""),
    ("/authors/", ""),
    ("/AUTHORS/X", "AUTHORS/X"),
    ("OL23919A", "OL23919A"),
])
def test_normalize_key(key, expected):
    """Test stripping of OpenLibrary key prefixes."""
    assert normalize_key(key) == expected


@pytest.mark.parametrize("value", [
    None, "", "   ", "2023", "not a date at all", "12", "1/2", "000000000001", "March 15",
])
def test_parse_date_rejects(value):
    """Test that blank, year-only, yearless and garbage input yields no date."""
    assert parse_date(value) is None


@pytest.mark.parametrize("value,expected", [
    ("2023-01-15", "2023-01-15"),
    ("2023-01-15T10:30:00Z", "2023-01-15"),
    ("January 15, 2023", "2023-01-15"),
    ("01/15/2023", "2023-01-15"),
    ("Mar 3, 1998", "1998-03-03"),
])
def test_parse_date_formats(value, expected):
    """Test the accepted date formats."""
    assert parse_date(value) == expected


def test_parse_date_converts_offsets_to_utc():
    """Test that timezone-aware input is truncated in UTC."""
    assert parse_date("2023-01-15T02:00:00+05:00") == "2023-01-14"


@pytest.mark.parametrize("value,expected", [
    ("1998", 1998),
    ("March 2005", 2005),
    ("c. 1850 reprint", 1850),
    ("2020-2023", 2020),
    ("1000", 1000),
    ("2099", 2099),
    ("999", None),
    ("2100", None),
    ("ISBN9782023123456", None),
    (None, None),
    ("", None),
])
def test_parse_year(value, expected):
    """Test extraction of the first plausible year."""
    assert parse_year(value) == expected


def test_build_cover_url():
    assert build_cover_url(12345) == "https://covers.openlibrary.org/b/id/12345-M.jpg"


def test_first_isbn13_skips_malformed():
    """Test that only 13-digit ISBNs are picked."""
    assert first_isbn13(["123", "978-0-00-000000-0", "9780261103573"]) == "9780261103573"
    assert first_isbn13(None) is None


def test_first_cover_url_skips_placeholders():
    """Test that the -1 'no cover' placeholder is ignored."""
    assert first_cover_url([-1, 8739161]) == "https://covers.openlibrary.org/b/id/8739161-M.jpg"
    assert first_cover_url([-1]) is None


def test_first_language():
    assert first_language([{"key": "/languages/eng"}]) == "eng"
    assert first_language([]) is None
