# catalog/sa/repositories/author.py
from typing import Dict, Iterable, List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from ..models import Author, CatalogAuthor, ManualAuthor, AuthorWork, utcnow
from .base import accessible_to, upsert_catalog_rows


class AuthorRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, author_id: str) -> Optional[Author]:
        return self.session.get(Author, author_id)

    def get_accessible(self, author_id: str, user_id: str) -> Optional[Author]:
        """Get an author the user may see (any catalog author or one of their own)"""
        return (
            self.session.query(Author)
            .filter(Author.id == author_id, accessible_to(Author, user_id))
            .first()
        )

    def get_by_source_id(self, source_id: str) -> Optional[CatalogAuthor]:
        return self.session.query(CatalogAuthor).filter(CatalogAuthor.source_id == source_id).first()

    def find_by_source_ids(self, source_ids: Iterable[str]) -> Dict[str, CatalogAuthor]:
        """Batch lookup of catalog authors, keyed by source id"""
        source_ids = list(source_ids)
        if not source_ids:
            return {}
        authors = (
            self.session.query(CatalogAuthor)
            .filter(CatalogAuthor.source_id.in_(source_ids))
            .populate_existing()
            .all()
        )
        return {author.source_id: author for author in authors}

    def upsert_catalog_authors(self, records: List[Dict], fetched_at: datetime,
                               expires_at: datetime) -> List[CatalogAuthor]:
        """Insert or overwrite catalog authors keyed by source id.

        Args:
            records: Dicts with 'source_id' and 'name'
            fetched_at: Fetch timestamp written to every row
            expires_at: Expiry timestamp written to every row

        Returns:
            The stored authors, in the order of the records
        """
        if not records:
            return []
        now = utcnow()
        rows = [
            {
                'source_id': record['source_id'],
                'name': record['name'],
                'fetched_at': fetched_at,
                'expires_at': expires_at,
                'updated_at': now,
            }
            for record in records
        ]
        upsert_catalog_rows(self.session, Author.__table__, rows,
                            ['name', 'fetched_at', 'expires_at', 'updated_at'])
        self.session.commit()

        stored = self.find_by_source_ids(row['source_id'] for row in rows)
        return [stored[row['source_id']] for row in rows if row['source_id'] in stored]

    def create_manual_author(self, owner_user_id: str, name: str) -> ManualAuthor:
        author = ManualAuthor(owner_user_id=owner_user_id, name=name)
        self.session.add(author)
        self.session.commit()
        return author

    def get_linked_work_ids(self, author_id: str) -> List[str]:
        """Get ids of every work linked to the author"""
        rows = (
            self.session.query(AuthorWork.work_id)
            .filter(AuthorWork.author_id == author_id)
            .all()
        )
        return [row.work_id for row in rows]

    def get_solely_linked_work_ids(self, author_id: str) -> List[str]:
        """Get ids of works whose only linked author is this one"""
        work_ids = self.get_linked_work_ids(author_id)
        if not work_ids:
            return []
        shared = {
            row.work_id for row in (
                self.session.query(AuthorWork.work_id)
                .filter(AuthorWork.work_id.in_(work_ids), AuthorWork.author_id != author_id)
                .distinct()
                .all()
            )
        }
        return [work_id for work_id in work_ids if work_id not in shared]

    def count_works(self, author_id: str) -> int:
        return self.session.query(AuthorWork).filter(AuthorWork.author_id == author_id).count()
