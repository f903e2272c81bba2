# catalog/services/cache.py
import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.openlibrary import OpenLibraryClient, AuthorRecord, WorkRecord, EditionRecord
from catalog.sa.models import CatalogAuthor, CatalogWork, CatalogEdition, utcnow
from catalog.sa.repositories import AuthorRepository, WorkRepository, EditionRepository

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


class CatalogCache:
    """Freshness policy and write-through for shared catalog rows.

    The rows themselves are the cache: every catalog author, work and
    edition carries fetched_at and expires_at, and a row is trusted while
    expires_at lies in the future.
    """

    def __init__(self, session: Session, client: OpenLibraryClient,
                 ttl: timedelta = DEFAULT_TTL,
                 clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.client = client
        self.ttl = ttl
        self.clock = clock
        self.author_repo = AuthorRepository(session)
        self.work_repo = WorkRepository(session)
        self.edition_repo = EditionRepository(session)

    def is_fresh(self, entity, now: Optional[datetime] = None) -> bool:
        expires_at = getattr(entity, "expires_at", None)
        if expires_at is None:
            return False
        return expires_at > (now or self.clock())

    def get_author(self, source_id: str) -> Optional[CatalogAuthor]:
        return self.author_repo.get_by_source_id(source_id)

    def get_edition(self, source_id: str) -> Optional[CatalogEdition]:
        return self.edition_repo.get_by_source_id(source_id)

    def find_authors(self, source_ids: Iterable[str]) -> Dict[str, CatalogAuthor]:
        return self.author_repo.find_by_source_ids(source_ids)

    def resolve_author(self, source_id: str) -> CatalogAuthor:
        """Return a fresh author, fetching from OpenLibrary only on a miss.

        Raises:
            NotFoundInSource: OpenLibrary doesn't know the id
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        cached = self._lookup(self.get_author, source_id)
        if cached is not None and self.is_fresh(cached):
            logger.debug(f"Author cache hit for {source_id}")
            return cached

        logger.debug(f"Author cache {'stale' if cached else 'miss'} for {source_id}, fetching")
        record = self.client.fetch_author(source_id)
        return self.upsert_authors([record])[0]

    def resolve_edition(self, source_id: str, work_id: str) -> CatalogEdition:
        """Return a fresh edition attached to work_id, fetching only on a miss.

        Raises:
            NotFoundInSource: OpenLibrary doesn't know the id
            SourceUnavailable: OpenLibrary couldn't be asked
        """
        cached = self._lookup(self.get_edition, source_id)
        if cached is not None and self.is_fresh(cached):
            logger.debug(f"Edition cache hit for {source_id}")
            return cached

        logger.debug(f"Edition cache {'stale' if cached else 'miss'} for {source_id}, fetching")
        record = self.client.fetch_edition(source_id)
        return self.upsert_edition(record, work_id)

    def upsert_authors(self, records: List[AuthorRecord],
                       fetched_at: Optional[datetime] = None) -> List[CatalogAuthor]:
        """Write a batch of authors in one statement with fresh timestamps"""
        fetched_at = fetched_at or self.clock()
        return self.author_repo.upsert_catalog_authors(
            [asdict(record) for record in records],
            fetched_at=fetched_at,
            expires_at=fetched_at + self.ttl,
        )

    def upsert_work(self, record: WorkRecord, fetched_at: Optional[datetime] = None) -> CatalogWork:
        fetched_at = fetched_at or self.clock()
        return self.work_repo.upsert_catalog_work(
            asdict(record), fetched_at=fetched_at, expires_at=fetched_at + self.ttl
        )

    def upsert_edition(self, record: EditionRecord, work_id: str,
                       fetched_at: Optional[datetime] = None) -> CatalogEdition:
        fetched_at = fetched_at or self.clock()
        return self.edition_repo.upsert_catalog_edition(
            asdict(record), work_id, fetched_at=fetched_at, expires_at=fetched_at + self.ttl
        )

    def _lookup(self, getter, source_id: str):
        # A broken cache read must not block an import, fall through to the source
        try:
            return getter(source_id)
        except SQLAlchemyError:
            logger.warning(f"Cache lookup for {source_id} failed, treating as miss", exc_info=True)
            self.session.rollback()
            return None
