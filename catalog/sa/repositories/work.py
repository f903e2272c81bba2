# catalog/sa/repositories/work.py
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func, desc
from sqlalchemy.orm import Session, aliased, joinedload
from ..models import Work, CatalogWork, ManualWork, AuthorWork, Edition, utcnow
from .base import accessible_to, upsert_catalog_rows


def effective_publish_year(edition_alias):
    """First publish year of the work, falling back to its primary edition's year"""
    return func.coalesce(Work.first_publish_year, edition_alias.publish_year)


class WorkRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, work_id: str) -> Optional[Work]:
        return self.session.get(Work, work_id)

    def get_accessible(self, work_id: str, user_id: str) -> Optional[Work]:
        """Get a work (with its primary edition) the user may see"""
        return (
            self.session.query(Work)
            .options(joinedload(Work.primary_edition))
            .filter(Work.id == work_id, accessible_to(Work, user_id))
            .first()
        )

    def get_accessible_ids(self, work_ids: List[str], user_id: str) -> set:
        if not work_ids:
            return set()
        rows = (
            self.session.query(Work.id)
            .filter(Work.id.in_(work_ids), accessible_to(Work, user_id))
            .all()
        )
        return {row.id for row in rows}

    def get_by_source_id(self, source_id: str) -> Optional[CatalogWork]:
        return self.session.query(CatalogWork).filter(CatalogWork.source_id == source_id).first()

    def upsert_catalog_work(self, record: Dict, fetched_at: datetime, expires_at: datetime) -> CatalogWork:
        """Insert or overwrite a catalog work keyed by source id.

        Args:
            record: Dict with 'source_id', 'title' and 'first_publish_year'
            fetched_at: Fetch timestamp
            expires_at: Expiry timestamp

        Returns:
            The stored CatalogWork
        """
        row = {
            'source_id': record['source_id'],
            'title': record['title'],
            'first_publish_year': record.get('first_publish_year'),
            'fetched_at': fetched_at,
            'expires_at': expires_at,
            'updated_at': utcnow(),
        }
        upsert_catalog_rows(self.session, Work.__table__, [row],
                            ['title', 'first_publish_year', 'fetched_at', 'expires_at', 'updated_at'])
        self.session.commit()
        return (
            self.session.query(CatalogWork)
            .filter(CatalogWork.source_id == record['source_id'])
            .populate_existing()
            .one()
        )

    def create_manual_work(self, owner_user_id: str, title: str,
                           first_publish_year: Optional[int] = None) -> ManualWork:
        work = ManualWork(owner_user_id=owner_user_id, title=title, first_publish_year=first_publish_year)
        self.session.add(work)
        self.session.commit()
        return work

    def set_primary_edition(self, work: Work, edition: Optional[Edition]) -> Work:
        work.primary_edition = edition
        self.session.commit()
        return work

    def ensure_author_link(self, author_id: str, work_id: str) -> AuthorWork:
        """Link an author and a work, doing nothing if the link already exists"""
        link = self.session.get(AuthorWork, (author_id, work_id))
        if link:
            return link
        link = AuthorWork(author_id=author_id, work_id=work_id)
        self.session.add(link)
        self.session.commit()
        return link

    def list_by_author(self, author_id: str, page: int = 1, page_size: int = 20,
                       sort: str = 'published_desc') -> Tuple[List[Tuple[Work, Optional[int]]], int]:
        """List the works of an author, paginated.

        Args:
            author_id: Author to list works for
            page: 1-based page number
            page_size: Rows per page
            sort: 'published_desc' (effective publish year, nulls last) or 'title_asc'

        Returns:
            Tuple of ([(work, effective publish year)], total count)
        """
        primary = aliased(Edition)
        publish_year = effective_publish_year(primary)
        query = (
            self.session.query(Work, publish_year.label('publish_year'))
            .join(AuthorWork, AuthorWork.work_id == Work.id)
            .outerjoin(primary, primary.id == Work.primary_edition_id)
            .filter(AuthorWork.author_id == author_id)
        )
        total = query.count()

        if sort == 'title_asc':
            query = query.order_by(Work.title.asc(), Work.id)
        else:
            query = query.order_by(desc(publish_year).nulls_last(), Work.title.asc(), Work.id)

        rows = query.offset((page - 1) * page_size).limit(page_size).all()
        return [(row[0], row[1]) for row in rows], total
