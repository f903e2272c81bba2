import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError
from catalog.errors import NotFoundInSource
from catalog.openlibrary import AuthorRecord, EditionRecord
from catalog.sa.models import CatalogAuthor, CatalogEdition
from catalog.services.cache import CatalogCache


@pytest.fixture
def cache(db_session, mock_client, now):
    return CatalogCache(db_session, mock_client, clock=lambda: now)


def test_fresh_author_is_served_from_cache(cache, mock_client, catalog_author):
    """Test that a fresh hit never calls OpenLibrary."""
    author = cache.resolve_author("OL23919A")
    assert author.id == catalog_author.id
    mock_client.fetch_author.assert_not_called()


def test_stale_author_is_refetched(cache, db_session, mock_client, catalog_author, now):
    catalog_author.expires_at = now - timedelta(seconds=1)
    db_session.commit()
    mock_client.fetch_author.return_value = AuthorRecord(source_id="OL23919A", name="Joanne Rowling")

    author = cache.resolve_author("OL23919A")

    mock_client.fetch_author.assert_called_once_with("OL23919A")
    assert author.id == catalog_author.id
    assert author.name == "Joanne Rowling"
    assert author.fetched_at == now
    assert author.expires_at == now + timedelta(days=7)


def test_expiry_boundary_is_stale(cache, catalog_author, now):
    catalog_author.expires_at = now
    assert not cache.is_fresh(catalog_author)
    assert cache.is_fresh(catalog_author, now - timedelta(seconds=1))


def test_missing_author_not_found(cache, db_session, mock_client):
    mock_client.fetch_author.side_effect = NotFoundInSource("nope")
    with pytest.raises(NotFoundInSource):
        cache.resolve_author("OL404A")
    assert db_session.query(CatalogAuthor).count() == 0


def test_broken_lookup_falls_through_to_source(cache, mock_client, db_session):
    """Test that a failing cache read is treated as a miss."""
    mock_client.fetch_author.return_value = AuthorRecord(source_id="OL7A", name="Fetched")
    with patch.object(cache, "get_author", side_effect=SQLAlchemyError("db down")):
        author = cache.resolve_author("OL7A")
    assert author.name == "Fetched"
    assert db_session.query(CatalogAuthor).count() == 1


def test_resolve_edition_miss_stores_edition(cache, db_session, mock_client, catalog_work):
    mock_client.fetch_edition.return_value = EditionRecord(
        source_id="OL9M", title="Hardcover", publish_year=1998, publish_date="1998-09-01",
        publish_date_raw="September 1, 1998", isbn13="9780590353427", language="eng",
    )

    edition = cache.resolve_edition("OL9M", catalog_work.id)

    assert edition.work_id == catalog_work.id
    assert edition.publish_date.isoformat() == "1998-09-01"
    assert edition.publish_date_raw == "September 1, 1998"
    assert db_session.query(CatalogEdition).count() == 1


def test_fresh_edition_is_served_from_cache(cache, mock_client, catalog_edition, catalog_work):
    assert cache.resolve_edition("OL22856696M", catalog_work.id).id == catalog_edition.id
    mock_client.fetch_edition.assert_not_called()
