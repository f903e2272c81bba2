# catalog/services/attachments.py
import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog.errors import AlreadyAttached, NotAttached, EntityNotFound, ValidationError
from catalog.sa.models import UserAuthor, UserWork, UserWorkStatus, utcnow
from catalog.sa.repositories import AuthorRepository, WorkRepository, LibraryRepository
from .limits import LimitEnforcer
from .schemas import BulkAttachResult

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = ('status', 'available_in_source')


class AttachmentEngine:
    """Writes and removes the user-scoped links between a profile and catalog rows.

    Bulk operations commit per item, so a failure half way leaves the items
    already processed in place.
    """

    def __init__(self, session: Session, limits: LimitEnforcer = None):
        self.session = session
        self.limits = limits or LimitEnforcer(session)
        self.author_repo = AuthorRepository(session)
        self.work_repo = WorkRepository(session)
        self.library_repo = LibraryRepository(session)

    # Authors

    def attach_author(self, user_id: str, author_id: str) -> UserAuthor:
        """Attach an author to a user's library.

        Raises:
            ProfileNotFound: The user has no profile
            QuotaExceeded: The author quota is used up
            EntityNotFound: The author doesn't exist or isn't visible to the user
            AlreadyAttached: The author is already in the library
        """
        self.limits.admit_author(user_id)

        if not self.author_repo.get_accessible(author_id, user_id):
            raise EntityNotFound(f"Author {author_id} not found")
        if self.library_repo.get_user_author(user_id, author_id):
            raise AlreadyAttached(f"Author {author_id} is already attached")

        try:
            return self.library_repo.add_user_author(user_id, author_id)
        except IntegrityError as e:
            raise AlreadyAttached(f"Author {author_id} is already attached") from e

    def detach_author(self, user_id: str, author_id: str) -> List[str]:
        """Detach an author and every work of theirs from the user's library.

        Shared author, work and link rows are untouched, and so are other
        users' libraries.

        Returns:
            Ids of the works that were detached along with the author

        Raises:
            NotAttached: The author isn't in the library
        """
        user_author = self.library_repo.get_user_author(user_id, author_id)
        if user_author is None:
            raise NotAttached(f"Author {author_id} is not attached")

        work_ids = self.author_repo.get_linked_work_ids(author_id)
        user_works = self.library_repo.get_user_works(user_id, work_ids)
        logger.debug(f"Detaching author {author_id} and {len(user_works)} works for user {user_id}")

        # Works first, the author attachment last, so a retry after a crash still finds it
        self.library_repo.delete(*user_works)
        self.library_repo.delete(user_author)
        return [user_work.work_id for user_work in user_works]

    # Works

    def attach_work(self, user_id: str, work_id: str,
                    status: UserWorkStatus = UserWorkStatus.TO_READ) -> UserWork:
        """Attach a work to a user's library.

        Raises:
            ProfileNotFound: The user has no profile
            QuotaExceeded: The work quota is used up
            EntityNotFound: The work doesn't exist or isn't visible to the user
            AlreadyAttached: The work is already in the library
        """
        self.limits.admit_work(user_id)

        if not self.work_repo.get_accessible(work_id, user_id):
            raise EntityNotFound(f"Work {work_id} not found")
        return self._insert_user_work(user_id, work_id, status)

    def bulk_attach_works(self, user_id: str, work_ids: List[str],
                          status: UserWorkStatus = UserWorkStatus.TO_READ) -> BulkAttachResult:
        """Attach many works, admitting the whole deduplicated batch up front.

        Works that are already attached or not visible to the user are
        reported as skipped. A batch that doesn't fit the quota attaches
        nothing.

        Raises:
            ProfileNotFound: The user has no profile
            QuotaExceeded: The batch doesn't fit in the remaining quota
        """
        work_ids = list(dict.fromkeys(work_ids))
        result = BulkAttachResult()
        if not work_ids:
            return result

        self.limits.admit_work_batch(user_id, len(work_ids))

        accessible = self.work_repo.get_accessible_ids(work_ids, user_id)
        for work_id in work_ids:
            if work_id not in accessible:
                result.skipped.append(work_id)
                continue
            try:
                self._insert_user_work(user_id, work_id, status)
            except AlreadyAttached:
                result.skipped.append(work_id)
            else:
                result.added.append(work_id)

        logger.info(f"Bulk attach for user {user_id}: {len(result.added)} added, {len(result.skipped)} skipped")
        return result

    def update_work(self, user_id: str, work_id: str, changes: Dict[str, Any]) -> UserWork:
        """Change status and/or availability of one attached work.

        Raises:
            ValidationError: No change given
            NotAttached: The work isn't in the library
        """
        self._check_changes(changes)
        user_work = self.library_repo.get_user_work(user_id, work_id)
        if user_work is None:
            raise NotAttached(f"Work {work_id} is not attached")
        self._apply_changes(user_work, changes)
        self.session.commit()
        return user_work

    def bulk_update_works(self, user_id: str, work_ids: List[str],
                          changes: Dict[str, Any]) -> List[UserWork]:
        """Apply the same change to many attached works.

        Ids that aren't attached are silently left out.

        Args:
            user_id: Owner of the library
            work_ids: Works to change; duplicates are ignored
            changes: Column values keyed by 'status' and/or 'available_in_source'

        Returns:
            The updated attachments

        Raises:
            ValidationError: No change given
        """
        self._check_changes(changes)
        work_ids = list(dict.fromkeys(work_ids))
        user_works = self.library_repo.get_user_works(user_id, work_ids)
        for user_work in user_works:
            self._apply_changes(user_work, changes)
        self.session.commit()
        return user_works

    def detach_work(self, user_id: str, work_id: str) -> None:
        """Remove a work from a user's library.

        Raises:
            NotAttached: The work isn't in the library
        """
        user_work = self.library_repo.get_user_work(user_id, work_id)
        if user_work is None:
            raise NotAttached(f"Work {work_id} is not attached")
        self.library_repo.delete(user_work)

    def _insert_user_work(self, user_id: str, work_id: str, status: UserWorkStatus) -> UserWork:
        if self.library_repo.get_user_work(user_id, work_id):
            raise AlreadyAttached(f"Work {work_id} is already attached")
        try:
            return self.library_repo.add_user_work(user_id, work_id, status)
        except IntegrityError as e:
            raise AlreadyAttached(f"Work {work_id} is already attached") from e

    @staticmethod
    def _check_changes(changes: Dict[str, Any]) -> None:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValidationError(f"Cannot update {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("At least one of status or available is required")
        if 'status' in changes and changes['status'] is None:
            raise ValidationError("status cannot be null")

    @staticmethod
    def _apply_changes(user_work: UserWork, changes: Dict[str, Any]) -> None:
        if 'status' in changes:
            status = UserWorkStatus(changes['status'])
            if user_work.status != status:
                user_work.status = status
                user_work.status_updated_at = utcnow()
        if 'available_in_source' in changes:
            user_work.available_in_source = changes['available_in_source']
