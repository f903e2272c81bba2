import pytest
from datetime import timedelta
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from catalog.sa.models import (
    Author, CatalogAuthor, ManualAuthor, Work, Edition, CatalogEdition, Profile,
    UserAuthor, UserWork, UserWorkStatus, CatalogProvenance, ManualProvenance,
)
from tests.conftest import USER_ID


def test_polymorphic_loading(db_session, catalog_author, manual_author):
    """Test that rows come back as their provenance variant."""
    db_session.expire_all()
    loaded = {author.id: author for author in db_session.query(Author).all()}
    assert isinstance(loaded[catalog_author.id], CatalogAuthor)
    assert isinstance(loaded[manual_author.id], ManualAuthor)


def test_provenance_values(catalog_author, manual_author):
    assert catalog_author.manual is False
    assert manual_author.manual is True
    assert isinstance(catalog_author.provenance, CatalogProvenance)
    assert catalog_author.provenance.source_id == "OL23919A"
    assert manual_author.provenance == ManualProvenance(owner_user_id=USER_ID)


def test_datetimes_are_timezone_aware(db_session, catalog_author, now):
    """Test that stored timestamps come back as aware UTC datetimes."""
    db_session.expire_all()
    author = db_session.get(Author, catalog_author.id)
    assert author.expires_at.tzinfo is not None
    assert author.expires_at == now + timedelta(days=6)


def test_manual_row_with_source_id_is_rejected(db_session):
    """Test that the provenance check constraint rejects mixed rows."""
    with pytest.raises(IntegrityError):
        db_session.execute(text(
            "INSERT INTO author (id, name, manual, owner_user_id, source_id, created_at, updated_at) "
            "VALUES ('x', 'Mixed', 1, 'someone', 'OL1A', '2024-01-01', '2024-01-01')"
        ))
    db_session.rollback()


def test_catalog_row_without_source_id_is_rejected(db_session):
    with pytest.raises(IntegrityError):
        db_session.add(CatalogAuthor(name="Nameless"))
        db_session.commit()
    db_session.rollback()


def test_duplicate_source_id_is_rejected(db_session, catalog_author):
    with pytest.raises(IntegrityError):
        db_session.add(CatalogAuthor(source_id=catalog_author.source_id, name="Copy"))
        db_session.commit()
    db_session.rollback()


def test_counters_follow_attachments(db_session, profile, catalog_author, catalog_work):
    """Test that attach and detach keep the profile counters in step."""
    user_author = UserAuthor(user_id=USER_ID, author_id=catalog_author.id)
    user_work = UserWork(user_id=USER_ID, work_id=catalog_work.id)
    db_session.add_all([user_author, user_work])
    db_session.commit()

    refreshed = db_session.get(Profile, USER_ID, populate_existing=True)
    assert refreshed.author_count == 1
    assert refreshed.work_count == 1

    db_session.delete(user_work)
    db_session.commit()
    refreshed = db_session.get(Profile, USER_ID, populate_existing=True)
    assert refreshed.author_count == 1
    assert refreshed.work_count == 0


def test_user_work_defaults(db_session, profile, catalog_work):
    user_work = UserWork(user_id=USER_ID, work_id=catalog_work.id)
    db_session.add(user_work)
    db_session.commit()
    assert user_work.status == UserWorkStatus.TO_READ
    assert user_work.available_in_source is None
    assert user_work.status_updated_at is not None


def test_deleting_primary_edition_clears_it(db_session, catalog_work, catalog_edition):
    """Test that the primary edition reference is nulled when the edition goes."""
    catalog_work.primary_edition = catalog_edition
    db_session.commit()

    db_session.execute(text("DELETE FROM edition WHERE id = :id"), {"id": catalog_edition.id})
    db_session.commit()
    db_session.expire_all()

    assert db_session.get(Work, catalog_work.id).primary_edition_id is None


def test_deleting_work_cascades_editions(db_session, catalog_work, catalog_edition):
    db_session.execute(text("DELETE FROM work WHERE id = :id"), {"id": catalog_work.id})
    db_session.commit()
    db_session.expire_all()
    assert db_session.query(Edition).count() == 0


def test_sessions_enforce_foreign_keys(database):
    """Test that sessions handed out by the database run with foreign keys on."""
    session = database.get_session()
    try:
        assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1
    finally:
        session.close()
