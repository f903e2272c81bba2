# catalog/services/mutations.py
import logging
from concurrent.futures import Executor
from datetime import datetime
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.errors import EntityNotFound, RateLimited, ValidationError
from catalog.openlibrary import OpenLibraryClient, AuthorRecord, WorkRecord
from catalog.sa.models import Author, Work, ManualAuthor, UserWorkStatus, utcnow
from catalog.sa.repositories import (
    AuthorRepository, WorkRepository, EditionRepository, LibraryRepository,
)
from catalog.settings import Settings, get_settings
from catalog.utils.background import get_default_executor, spawn
from catalog.utils.rate_limit import SlidingWindowRateLimiter, get_rate_limiter
from .attachments import AttachmentEngine
from .cache import CatalogCache
from .edition_selector import EditionSelector
from .limits import LimitEnforcer
from .schemas import (
    validate_command,
    SearchAuthorsQuery, ImportAuthorCommand, ImportWorkCommand, ImportEditionCommand,
    AttachAuthorCommand, AttachWorkCommand, BulkAttachWorksCommand, BulkUpdateWorksCommand,
    WorkChanges, CreateAuthorCommand, CreateWorkCommand, CreateEditionCommand,
    SetPrimaryEditionCommand,
    AuthorView, WorkView, EditionView, UserAuthorView, UserWorkView,
    AuthorSearchResult, BulkAttachResult,
)

logger = logging.getLogger(__name__)

ATTACH_AUTHOR_LIMITER = "attach_author"


class CatalogMutationService:
    """Entry point for every write to the catalog and to a user's library.

    Raw caller input is validated here; the components below only ever see
    well-formed ids and values.
    """

    def __init__(self, session: Session,
                 client: Optional[OpenLibraryClient] = None,
                 settings: Optional[Settings] = None,
                 executor: Optional[Executor] = None,
                 rate_limiter: Optional[SlidingWindowRateLimiter] = None,
                 clock: Callable[[], datetime] = utcnow):
        """
        Initialize the service.

        Args:
            session: Session used for every synchronous read and write
            client: OpenLibrary client, built from settings when omitted
            settings: Runtime settings, read from the environment when omitted
            executor: Executor for fire-and-forget cache writes
            rate_limiter: Limiter for author attaches, shared process-wide by default
            clock: Returns the current aware UTC datetime
        """
        self.session = session
        self.settings = settings or get_settings()
        self.client = client or OpenLibraryClient.from_settings(self.settings)
        self.executor = executor or get_default_executor(self.settings.background_workers)
        self.rate_limiter = rate_limiter or get_rate_limiter(
            ATTACH_AUTHOR_LIMITER, self.settings.attach_rate_limit, self.settings.attach_rate_window
        )
        self.clock = clock

        self.cache = CatalogCache(session, self.client, ttl=self.settings.cache_ttl, clock=clock)
        self.selector = EditionSelector()
        self.limits = LimitEnforcer(session)
        self.attachments = AttachmentEngine(session, self.limits)
        self.author_repo = AuthorRepository(session)
        self.work_repo = WorkRepository(session)
        self.edition_repo = EditionRepository(session)
        self.library_repo = LibraryRepository(session)

    # Search and import

    def search_authors(self, q: str, limit: int = 10) -> List[AuthorSearchResult]:
        """Search OpenLibrary for authors, merging in fresh cached rows.

        OpenLibrary is always asked. Rows missing from the cache or stale are
        written back in the background; that write never affects the result.

        Raises:
            ValidationError: Bad query or limit
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        query = validate_command(SearchAuthorsQuery, q=q, limit=limit)
        records = self.client.search_authors(query.q, query.limit)
        if not records:
            return []

        try:
            cached = self.cache.find_authors(record.source_id for record in records)
        except SQLAlchemyError:
            logger.warning("Author cache lookup failed during search, ignoring cache", exc_info=True)
            self.session.rollback()
            cached = {}

        now = self.clock()
        expires_at = now + self.settings.cache_ttl
        results = []
        to_write = {}
        for record in records:
            row = cached.get(record.source_id)
            if row is not None and self.cache.is_fresh(row, now):
                results.append(AuthorSearchResult(
                    id=row.id, source_id=row.source_id, name=row.name,
                    fetched_at=row.fetched_at, expires_at=row.expires_at,
                ))
                continue
            results.append(AuthorSearchResult(
                id=row.id if row is not None else None,
                source_id=record.source_id, name=record.name,
                fetched_at=now, expires_at=expires_at,
            ))
            to_write.setdefault(record.source_id, record)

        if to_write:
            spawn(self.executor, self._write_authors_to_cache, list(to_write.values()), now,
                  name="cache_search_authors")
        return results

    def _write_authors_to_cache(self, records: List[AuthorRecord], fetched_at: datetime) -> None:
        # Runs on the executor, so it needs its own session
        with Session(bind=self.session.get_bind()) as session:
            cache = CatalogCache(session, self.client, ttl=self.settings.cache_ttl, clock=self.clock)
            cache.upsert_authors(records, fetched_at=fetched_at)
        logger.debug(f"Cached {len(records)} authors from search")

    def import_author(self, source_id: str) -> AuthorView:
        """Make a catalog author available locally without attaching it.

        Raises:
            ValidationError: Bad source id
            NotFoundInSource: OpenLibrary doesn't know the author
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        command = validate_command(ImportAuthorCommand, source_id=source_id)
        return AuthorView.from_entity(self.cache.resolve_author(command.source_id))

    def import_work(self, user_id: str, source_id: str, author_id: str) -> WorkView:
        """Import a work and its representative edition, and link it to an author.

        Raises:
            ValidationError: Bad source id or author id
            EntityNotFound: The author isn't visible to the user
            NotFoundInSource: OpenLibrary doesn't know the work
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        command = validate_command(ImportWorkCommand, source_id=source_id, author_id=author_id)
        author = self.get_accessible_author(user_id, command.author_id)
        record = self.client.fetch_work(command.source_id)
        return WorkView.from_entity(self.import_work_record(author, record))

    def import_work_record(self, author: Author, record: WorkRecord) -> Work:
        """Store a fetched work, pick and store its primary edition, link the author"""
        work = self.cache.upsert_work(record)
        editions = self.client.fetch_work_editions(record.source_id)
        chosen = self.selector.select(record, editions)
        if chosen is not None:
            edition = self.cache.upsert_edition(chosen, work.id)
            self.work_repo.set_primary_edition(work, edition)
        else:
            logger.info(f"No editions found for work {record.source_id}")
        self.work_repo.ensure_author_link(author.id, work.id)
        return work

    def import_edition(self, user_id: str, source_id: str, work_id: str) -> EditionView:
        """Import one edition into a work, reusing a fresh cached copy.

        Raises:
            ValidationError: Bad source id or work id
            EntityNotFound: The work isn't visible to the user
            NotFoundInSource: OpenLibrary doesn't know the edition
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        command = validate_command(ImportEditionCommand, source_id=source_id, work_id=work_id)
        work = self.get_accessible_work(user_id, command.work_id)
        return EditionView.from_entity(self.cache.resolve_edition(command.source_id, work.id))

    # Attachments

    def attach_author(self, user_id: str, author_id: str) -> UserAuthorView:
        """Attach an author, subject to the per-user rate limit and the author quota.

        Raises:
            ValidationError: Bad author id
            RateLimited: Too many attaches in the current window
            ProfileNotFound, QuotaExceeded, EntityNotFound, AlreadyAttached
        """
        command = validate_command(AttachAuthorCommand, author_id=author_id)
        if not self.rate_limiter.is_allowed(user_id):
            retry_after = self.rate_limiter.retry_after(user_id)
            raise RateLimited(f"Too many author attaches, retry in {retry_after:.0f}s",
                              retry_after=retry_after)

        user_author = self.attachments.attach_author(user_id, command.author_id)
        self.rate_limiter.record(user_id)
        return UserAuthorView.model_validate(user_author)

    def attach_author_by_source_id(self, user_id: str, source_id: str) -> UserAuthorView:
        """Import an author from OpenLibrary (cache first) and attach it"""
        author = self.import_author(source_id)
        return self.attach_author(user_id, author.id)

    def detach_author(self, user_id: str, author_id: str) -> List[str]:
        command = validate_command(AttachAuthorCommand, author_id=author_id)
        return self.attachments.detach_author(user_id, command.author_id)

    def attach_work(self, user_id: str, work_id: str,
                    status: UserWorkStatus = UserWorkStatus.TO_READ) -> UserWorkView:
        command = validate_command(AttachWorkCommand, work_id=work_id, status=status)
        user_work = self.attachments.attach_work(user_id, command.work_id, command.status)
        return UserWorkView.model_validate(user_work)

    def bulk_attach_works(self, user_id: str, work_ids: List[str],
                          status: UserWorkStatus = UserWorkStatus.TO_READ) -> BulkAttachResult:
        command = validate_command(BulkAttachWorksCommand, work_ids=work_ids, status=status)
        return self.attachments.bulk_attach_works(user_id, command.work_ids, command.status)

    def update_work(self, user_id: str, work_id: str, **changes: Any) -> UserWorkView:
        """Change one attached work; accepts status= and/or available="""
        command = validate_command(AttachWorkCommand, work_id=work_id)
        work_changes = validate_command(WorkChanges, **changes)
        user_work = self.attachments.update_work(user_id, command.work_id, work_changes.as_columns())
        return UserWorkView.model_validate(user_work)

    def bulk_update_works(self, user_id: str, work_ids: List[str], **changes: Any) -> List[UserWorkView]:
        """Change many attached works at once; accepts status= and/or available="""
        command = validate_command(BulkUpdateWorksCommand, work_ids=work_ids, **changes)
        user_works = self.attachments.bulk_update_works(user_id, command.work_ids, command.as_columns())
        return [UserWorkView.model_validate(user_work) for user_work in user_works]

    def detach_work(self, user_id: str, work_id: str) -> None:
        command = validate_command(AttachWorkCommand, work_id=work_id)
        self.attachments.detach_work(user_id, command.work_id)

    # Manual entities

    def create_manual_author(self, user_id: str, name: str) -> AuthorView:
        command = validate_command(CreateAuthorCommand, name=name)
        author = self.author_repo.create_manual_author(user_id, command.name)
        logger.info(f"User {user_id} created manual author {author.id}")
        return AuthorView.from_entity(author)

    def create_manual_work(self, user_id: str, title: str, author_ids: List[str],
                           first_publish_year: Optional[int] = None) -> WorkView:
        """Create a work owned by the user and link it to the given authors.

        Raises:
            ValidationError: Bad title, author ids or year
            EntityNotFound: An author isn't visible to the user
        """
        command = validate_command(CreateWorkCommand, title=title, author_ids=author_ids,
                                   first_publish_year=first_publish_year)
        authors = [self.get_accessible_author(user_id, author_id) for author_id in command.author_ids]

        work = self.work_repo.create_manual_work(user_id, command.title, command.first_publish_year)
        for author in authors:
            self.work_repo.ensure_author_link(author.id, work.id)
        logger.info(f"User {user_id} created manual work {work.id}")
        return WorkView.from_entity(work)

    def create_manual_edition(self, user_id: str, work_id: str, title: str, **fields: Any) -> EditionView:
        """Create an edition owned by the user under a visible work.

        Raises:
            ValidationError: Bad fields, or the ISBN is already taken
            EntityNotFound: The work isn't visible to the user
        """
        command = validate_command(CreateEditionCommand, work_id=work_id, title=title, **fields)
        work = self.get_accessible_work(user_id, command.work_id)
        values = command.model_dump(exclude={'work_id', 'title'})
        try:
            edition = self.edition_repo.create_manual_edition(user_id, work.id, command.title, **values)
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError(f"Could not create edition: {e.orig}") from e
        return EditionView.from_entity(edition)

    def set_primary_edition(self, user_id: str, work_id: str, edition_id: str) -> WorkView:
        """Point a work at one of its own editions.

        Raises:
            EntityNotFound: The work or edition isn't visible to the user
            ValidationError: The edition belongs to another work
        """
        command = validate_command(SetPrimaryEditionCommand, work_id=work_id, edition_id=edition_id)
        work = self.get_accessible_work(user_id, command.work_id)
        edition = self.edition_repo.get_accessible(command.edition_id, user_id)
        if edition is None:
            raise EntityNotFound(f"Edition {command.edition_id} not found")
        if edition.work_id != work.id:
            raise ValidationError("Primary edition does not belong to this work")
        return WorkView.from_entity(self.work_repo.set_primary_edition(work, edition))

    def delete_manual_author(self, user_id: str, author_id: str) -> None:
        """Delete a manual author owned by the user, cascading into user data.

        Works reachable only through this author lose every user's attachment,
        then every user's attachment to the author goes, then its links, then
        the author itself. The works stay. Each step is safe to repeat.

        Raises:
            EntityNotFound: No manual author with this id owned by the user
        """
        command = validate_command(AttachAuthorCommand, author_id=author_id)
        author = self.author_repo.get_by_id(command.author_id)
        if not isinstance(author, ManualAuthor) or author.owner_user_id != user_id:
            raise EntityNotFound(f"Manual author {command.author_id} not found")

        sole_work_ids = self.author_repo.get_solely_linked_work_ids(author.id)
        self.library_repo.delete(*self.library_repo.get_user_works_for_works(sole_work_ids))
        self.library_repo.delete(*self.library_repo.get_user_authors_for_author(author.id))
        self.library_repo.delete(*author.author_works)
        self.session.delete(author)
        self.session.commit()
        logger.info(f"User {user_id} deleted manual author {command.author_id} "
                    f"({len(sole_work_ids)} works left without authors)")

    # Lookups

    def get_accessible_author(self, user_id: str, author_id: str) -> Author:
        author = self.author_repo.get_accessible(author_id, user_id)
        if author is None:
            raise EntityNotFound(f"Author {author_id} not found")
        return author

    def get_accessible_work(self, user_id: str, work_id: str) -> Work:
        work = self.work_repo.get_accessible(work_id, user_id)
        if work is None:
            raise EntityNotFound(f"Work {work_id} not found")
        return work
