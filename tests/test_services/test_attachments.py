import pytest
from catalog.errors import AlreadyAttached, NotAttached, EntityNotFound, QuotaExceeded, ValidationError
from catalog.sa.models import UserWork, UserWorkStatus
from catalog.sa.repositories import ProfileRepository
from catalog.services.attachments import AttachmentEngine
from tests.conftest import USER_ID, OTHER_USER_ID


@pytest.fixture
def engine(db_session):
    return AttachmentEngine(db_session)


def counters(db_session, user_id=USER_ID):
    return ProfileRepository(db_session).get_counters(user_id)


def test_attach_author(engine, db_session, profile, catalog_author):
    user_author = engine.attach_author(USER_ID, catalog_author.id)
    assert user_author.author_id == catalog_author.id
    assert counters(db_session).author_count == 1


def test_attach_author_twice(engine, profile, catalog_author):
    engine.attach_author(USER_ID, catalog_author.id)
    with pytest.raises(AlreadyAttached):
        engine.attach_author(USER_ID, catalog_author.id)


def test_attach_someone_elses_manual_author(engine, other_profile, manual_author):
    """Test that another user's manual author looks like it doesn't exist."""
    with pytest.raises(EntityNotFound):
        engine.attach_author(OTHER_USER_ID, manual_author.id)


def test_attach_author_over_quota(engine, db_session, profile, catalog_author):
    profile.max_authors = 0
    db_session.commit()
    with pytest.raises(QuotaExceeded):
        engine.attach_author(USER_ID, catalog_author.id)
    assert counters(db_session).author_count == 0


def test_detach_author_removes_its_works(engine, db_session, profile, other_profile, catalog_author,
                                          multiple_works, manual_work):
    """Test that detaching an author removes only this user's attachments to its works."""
    engine.attach_author(USER_ID, catalog_author.id)
    for work in multiple_works[:3]:
        engine.attach_work(USER_ID, work.id)
        engine.attach_work(OTHER_USER_ID, work.id)
    engine.attach_work(USER_ID, manual_work.id)

    detached = engine.detach_author(USER_ID, catalog_author.id)

    assert set(detached) == {work.id for work in multiple_works[:3]}
    user_counters = counters(db_session)
    assert user_counters.author_count == 0
    assert user_counters.work_count == 1
    assert counters(db_session, OTHER_USER_ID).work_count == 3
    assert db_session.query(UserWork).filter(UserWork.user_id == OTHER_USER_ID).count() == 3


def test_detach_unattached_author(engine, profile, catalog_author):
    with pytest.raises(NotAttached):
        engine.detach_author(USER_ID, catalog_author.id)


def test_attach_work_with_status(engine, profile, catalog_work):
    user_work = engine.attach_work(USER_ID, catalog_work.id, UserWorkStatus.IN_PROGRESS)
    assert user_work.status == UserWorkStatus.IN_PROGRESS
    with pytest.raises(AlreadyAttached):
        engine.attach_work(USER_ID, catalog_work.id)


def test_bulk_attach_reports_skipped(engine, db_session, profile, multiple_works, manual_work, other_profile):
    engine.attach_work(OTHER_USER_ID, multiple_works[0].id)
    engine.attach_work(USER_ID, multiple_works[0].id)
    ids = [work.id for work in multiple_works[:3]]

    result = engine.bulk_attach_works(OTHER_USER_ID, ids + [manual_work.id, ids[1]])

    assert result.added == ids[1:]
    assert result.skipped == [ids[0], manual_work.id]
    assert counters(db_session, OTHER_USER_ID).work_count == 3


def test_bulk_attach_over_quota_adds_nothing(engine, db_session, profile, multiple_works):
    profile.max_works = 4
    db_session.commit()
    with pytest.raises(QuotaExceeded):
        engine.bulk_attach_works(USER_ID, [work.id for work in multiple_works])
    assert counters(db_session).work_count == 0


def test_bulk_attach_empty(engine, profile):
    result = engine.bulk_attach_works(USER_ID, [])
    assert result.added == [] and result.skipped == []


def test_update_work_touches_status_timestamp_on_change(engine, profile, catalog_work):
    user_work = engine.attach_work(USER_ID, catalog_work.id)
    before = user_work.status_updated_at

    engine.update_work(USER_ID, catalog_work.id, {'available_in_source': True})
    assert user_work.status_updated_at == before
    assert user_work.available_in_source is True

    engine.update_work(USER_ID, catalog_work.id, {'status': UserWorkStatus.READ})
    assert user_work.status == UserWorkStatus.READ
    assert user_work.status_updated_at >= before


def test_update_work_rejects_empty_changes(engine, profile, catalog_work):
    engine.attach_work(USER_ID, catalog_work.id)
    with pytest.raises(ValidationError):
        engine.update_work(USER_ID, catalog_work.id, {})
    with pytest.raises(ValidationError):
        engine.update_work(USER_ID, catalog_work.id, {'status': None})


def test_update_unattached_work(engine, profile, catalog_work):
    with pytest.raises(NotAttached):
        engine.update_work(USER_ID, catalog_work.id, {'status': 'read'})


def test_bulk_update_skips_unattached(engine, profile, multiple_works):
    engine.attach_work(USER_ID, multiple_works[0].id)
    engine.attach_work(USER_ID, multiple_works[1].id)

    updated = engine.bulk_update_works(
        USER_ID, [work.id for work in multiple_works], {'status': 'hidden', 'available_in_source': None}
    )

    assert len(updated) == 2
    assert {user_work.status for user_work in updated} == {UserWorkStatus.HIDDEN}
    assert all(user_work.available_in_source is None for user_work in updated)


def test_detach_work(engine, db_session, profile, catalog_work):
    engine.attach_work(USER_ID, catalog_work.id)
    engine.detach_work(USER_ID, catalog_work.id)
    assert counters(db_session).work_count == 0
    with pytest.raises(NotAttached):
        engine.detach_work(USER_ID, catalog_work.id)


def test_bulk_attach_counts_distinct_ids_against_quota(engine, db_session, profile, multiple_works):
    """Test that [w1, w1, w2] needs two free slots, not one or three."""
    w1, w2 = multiple_works[0].id, multiple_works[1].id
    profile.max_works = 1
    db_session.commit()
    with pytest.raises(QuotaExceeded):
        engine.bulk_attach_works(USER_ID, [w1, w1, w2])
    assert db_session.query(UserWork).count() == 0

    profile.max_works = 2
    db_session.commit()
    assert engine.bulk_attach_works(USER_ID, [w1, w1, w2]).added == [w1, w2]


def test_detach_author_keeps_shared_work(engine, db_session, profile, catalog_author, catalog_work):
    engine.attach_author(USER_ID, catalog_author.id)
    engine.attach_work(USER_ID, catalog_work.id)
    engine.detach_author(USER_ID, catalog_author.id)
    assert engine.library_repo.get_user_work(USER_ID, catalog_work.id) is None
    assert engine.work_repo.get_by_id(catalog_work.id) is not None
