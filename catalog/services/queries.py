# catalog/services/queries.py
import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from catalog.errors import CatalogError, ProfileNotFound
from catalog.sa.models import CatalogAuthor
from catalog.sa.repositories import ProfileRepository, LibraryRepository, EditionRepository
from .mutations import CatalogMutationService
from .schemas import (
    validate_command,
    ListUserAuthorsQuery, ListUserWorksQuery, ListAuthorWorksQuery, AttachAuthorCommand, AttachWorkCommand,
    AuthorView, WorkView, EditionView, UserWorkView, ProfileView,
    LibraryAuthorView, LibraryWorkView, LibraryAuthorList, LibraryWorkList, WorkList,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 20


class CatalogQueryService:
    """Read side of the catalog: profile, library listings, works and editions"""

    def __init__(self, session: Session, mutations: Optional[CatalogMutationService] = None, **kwargs: Any):
        """
        Args:
            session: Session for all reads
            mutations: Service used when a listing has to import from OpenLibrary;
                       built from session and kwargs when omitted
        """
        self.session = session
        self.mutations = mutations or CatalogMutationService(session, **kwargs)
        self.profile_repo = ProfileRepository(session)
        self.library_repo = LibraryRepository(session)
        self.edition_repo = EditionRepository(session)

    def get_profile(self, user_id: str) -> ProfileView:
        profile = self.profile_repo.get_by_user_id(user_id)
        if profile is None:
            raise ProfileNotFound(f"Profile not found for user {user_id}")
        return ProfileView.model_validate(profile)

    def get_author(self, user_id: str, author_id: str) -> AuthorView:
        command = validate_command(AttachAuthorCommand, author_id=author_id)
        return AuthorView.from_entity(self.mutations.get_accessible_author(user_id, command.author_id))

    def get_work(self, user_id: str, work_id: str) -> WorkView:
        command = validate_command(AttachWorkCommand, work_id=work_id)
        return WorkView.from_entity(self.mutations.get_accessible_work(user_id, command.work_id))

    def list_user_authors(self, user_id: str, page: int = 1, search: Optional[str] = None,
                          sort: str = 'name_asc') -> LibraryAuthorList:
        query = validate_command(ListUserAuthorsQuery, page=page, search=search, sort=sort)
        rows, total = self.library_repo.list_user_authors(
            user_id, page=query.page, page_size=PAGE_SIZE, search=query.search or None, sort=query.sort
        )
        return LibraryAuthorList(
            items=[
                LibraryAuthorView(author=AuthorView.from_entity(author), attached_at=user_author.created_at)
                for author, user_author in rows
            ],
            total=total,
            page=query.page,
            size=PAGE_SIZE,
        )

    def list_user_works(self, user_id: str, page: int = 1, status: Optional[List[str]] = None,
                        available: Optional[bool] = None, sort: str = 'published_desc',
                        author_id: Optional[str] = None, search: Optional[str] = None) -> LibraryWorkList:
        query = validate_command(ListUserWorksQuery, page=page, status=status, available=available,
                                 sort=sort, author_id=author_id, search=search)
        rows, total = self.library_repo.list_user_works(
            user_id, page=query.page, page_size=PAGE_SIZE, statuses=query.status,
            available=query.available, sort=query.sort, author_id=query.author_id,
            search=query.search or None,
        )
        return LibraryWorkList(
            items=[
                LibraryWorkView(
                    work=WorkView.from_entity(work, publish_year=publish_year),
                    user_work=UserWorkView.model_validate(user_work),
                )
                for user_work, work, publish_year in rows
            ],
            total=total,
            page=query.page,
            size=PAGE_SIZE,
        )

    def list_author_works(self, user_id: str, author_id: str, page: int = 1,
                          sort: str = 'published_desc', force_refresh: bool = False) -> WorkList:
        """List an author's works, importing them from OpenLibrary when none are stored yet.

        force_refresh re-fetches a catalog author first; if that fails the
        stored data is used. The automatic import skips works that fail and
        returns an empty page if OpenLibrary can't be reached at all.

        Raises:
            EntityNotFound: The author isn't visible to the user
        """
        query = validate_command(ListAuthorWorksQuery, author_id=author_id, page=page,
                                 sort=sort, force_refresh=force_refresh)
        author = self.mutations.get_accessible_author(user_id, query.author_id)

        if query.force_refresh and isinstance(author, CatalogAuthor):
            self._refresh_author(author)

        work_repo = self.mutations.work_repo
        if isinstance(author, CatalogAuthor) and self.mutations.author_repo.count_works(author.id) == 0:
            self._import_author_works(author)

        rows, total = work_repo.list_by_author(author.id, page=query.page, page_size=PAGE_SIZE, sort=query.sort)
        return WorkList(
            items=[WorkView.from_entity(work, publish_year=publish_year) for work, publish_year in rows],
            total=total,
            page=query.page,
            size=PAGE_SIZE,
        )

    def list_work_editions(self, user_id: str, work_id: str) -> List[EditionView]:
        command = validate_command(AttachWorkCommand, work_id=work_id)
        work = self.mutations.get_accessible_work(user_id, command.work_id)
        return [EditionView.from_entity(edition) for edition in self.edition_repo.list_for_work(work.id, user_id)]

    def _refresh_author(self, author: CatalogAuthor) -> None:
        try:
            record = self.mutations.client.fetch_author(author.source_id)
            self.mutations.cache.upsert_authors([record])
        except CatalogError as e:
            logger.warning(f"Refreshing author {author.source_id} failed, using stored data: {e}")

    def _import_author_works(self, author: CatalogAuthor) -> None:
        source_id = author.source_id
        try:
            records = self.mutations.client.fetch_author_works(source_id)
        except CatalogError as e:
            logger.error(f"Could not fetch works for author {source_id}: {e}")
            return

        imported = 0
        for record in records:
            try:
                self.mutations.import_work_record(author, record)
                imported += 1
            except CatalogError as e:
                logger.warning(f"Skipping work {record.source_id} of author {source_id}: {e}")
        logger.info(f"Imported {imported}/{len(records)} works for author {source_id}")
