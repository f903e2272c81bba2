import pytest
from catalog.errors import ProfileNotFound, QuotaExceeded
from catalog.services.limits import LimitEnforcer
from tests.conftest import USER_ID


@pytest.fixture
def limits(db_session):
    return LimitEnforcer(db_session)


def test_missing_profile(limits):
    with pytest.raises(ProfileNotFound):
        limits.check_author_quota(USER_ID)
    with pytest.raises(ProfileNotFound):
        limits.admit_work(USER_ID)


def test_author_quota(limits, db_session, profile):
    quota = limits.admit_author(USER_ID)
    assert quota.count == 0
    assert quota.remaining == 500

    profile.author_count = 500
    db_session.commit()
    with pytest.raises(QuotaExceeded) as excinfo:
        limits.admit_author(USER_ID)
    assert excinfo.value.count == 500
    assert excinfo.value.max == 500


def test_work_batch_must_fit(limits, db_session, profile):
    """Test that a batch is admitted only if all of it fits."""
    profile.max_works = 10
    profile.work_count = 7
    db_session.commit()

    assert limits.admit_work_batch(USER_ID, 3).remaining == 3
    with pytest.raises(QuotaExceeded):
        limits.admit_work_batch(USER_ID, 4)
