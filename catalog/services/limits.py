# catalog/services/limits.py
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from catalog.errors import ProfileNotFound, QuotaExceeded
from catalog.sa.repositories import ProfileRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quota:
    count: int
    max: int

    @property
    def remaining(self) -> int:
        return max(0, self.max - self.count)


class LimitEnforcer:
    """Admission control for attachments against the profile quotas.

    Checks read the counters at call time and do not lock anything, so two
    concurrent admissions can both pass and briefly overshoot the quota.
    """

    def __init__(self, session: Session):
        self.profile_repo = ProfileRepository(session)

    def _counters(self, user_id: str):
        counters = self.profile_repo.get_counters(user_id)
        if counters is None:
            raise ProfileNotFound(f"Profile not found for user {user_id}")
        return counters

    def check_author_quota(self, user_id: str) -> Quota:
        counters = self._counters(user_id)
        return Quota(count=counters.author_count, max=counters.max_authors)

    def check_work_quota(self, user_id: str) -> Quota:
        counters = self._counters(user_id)
        return Quota(count=counters.work_count, max=counters.max_works)

    def admit_author(self, user_id: str) -> Quota:
        quota = self.check_author_quota(user_id)
        if quota.count >= quota.max:
            logger.info(f"User {user_id} hit the author limit ({quota.count}/{quota.max})")
            raise QuotaExceeded(
                f"Author limit reached ({quota.count}/{quota.max})",
                count=quota.count, max=quota.max
            )
        return quota

    def admit_work(self, user_id: str) -> Quota:
        return self.admit_work_batch(user_id, 1)

    def admit_work_batch(self, user_id: str, n: int) -> Quota:
        """Admit n new work attachments at once, all or nothing"""
        quota = self.check_work_quota(user_id)
        if quota.count + n > quota.max:
            logger.info(f"User {user_id} can't attach {n} works ({quota.count}/{quota.max})")
            raise QuotaExceeded(
                f"Work limit reached ({quota.count}/{quota.max}), cannot add {n}",
                count=quota.count, max=quota.max
            )
        return quota
