# catalog/sa/repositories/edition.py
from typing import Dict, List, Optional
from datetime import date, datetime
from sqlalchemy import desc
from sqlalchemy.orm import Session
from ..models import Edition, CatalogEdition, ManualEdition, utcnow
from .base import accessible_to, upsert_catalog_rows

EDITION_COLUMNS = (
    'title', 'publish_year', 'publish_date', 'publish_date_raw',
    'isbn13', 'cover_url', 'language',
)


def _to_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


class EditionRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, edition_id: str) -> Optional[Edition]:
        return self.session.get(Edition, edition_id)

    def get_accessible(self, edition_id: str, user_id: str) -> Optional[Edition]:
        return (
            self.session.query(Edition)
            .filter(Edition.id == edition_id, accessible_to(Edition, user_id))
            .first()
        )

    def get_by_source_id(self, source_id: str) -> Optional[CatalogEdition]:
        return self.session.query(CatalogEdition).filter(CatalogEdition.source_id == source_id).first()

    def upsert_catalog_edition(self, record: Dict, work_id: str, fetched_at: datetime,
                               expires_at: datetime) -> CatalogEdition:
        """Insert or overwrite a catalog edition keyed by source id.

        Args:
            record: Dict with 'source_id' plus the edition columns; publish_date is ISO text
            work_id: Work the edition belongs to
            fetched_at: Fetch timestamp
            expires_at: Expiry timestamp

        Returns:
            The stored CatalogEdition
        """
        row = {column: record.get(column) for column in EDITION_COLUMNS}
        row.update({
            'source_id': record['source_id'],
            'work_id': work_id,
            'publish_date': _to_date(record.get('publish_date')),
            'fetched_at': fetched_at,
            'expires_at': expires_at,
            'updated_at': utcnow(),
        })
        upsert_catalog_rows(self.session, Edition.__table__, [row],
                            list(EDITION_COLUMNS) + ['work_id', 'fetched_at', 'expires_at', 'updated_at'])
        self.session.commit()
        return (
            self.session.query(CatalogEdition)
            .filter(CatalogEdition.source_id == record['source_id'])
            .populate_existing()
            .one()
        )

    def create_manual_edition(self, owner_user_id: str, work_id: str, title: str, **fields) -> ManualEdition:
        """Create an edition typed in by a user.

        Args:
            owner_user_id: Owning user
            work_id: Work the edition belongs to
            title: Edition title
            fields: Optional edition columns (publish_year, publish_date, isbn13, ...)
        """
        values = {column: fields.get(column) for column in EDITION_COLUMNS if column != 'title'}
        values['publish_date'] = _to_date(values.get('publish_date'))
        edition = ManualEdition(owner_user_id=owner_user_id, work_id=work_id, title=title, **values)
        self.session.add(edition)
        self.session.commit()
        return edition

    def list_for_work(self, work_id: str, user_id: str) -> List[Edition]:
        """List the editions of a work visible to the user, newest first"""
        return (
            self.session.query(Edition)
            .filter(Edition.work_id == work_id, accessible_to(Edition, user_id))
            .order_by(desc(Edition.publish_year).nulls_last(), Edition.title)
            .all()
        )
