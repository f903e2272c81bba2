# catalog/sa/models/edition.py
from datetime import date
from sqlalchemy import String, Integer, Boolean, Date, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin, CatalogSourceMixin, ManualOwnerMixin, PROVENANCE_CHECK, new_id


class Edition(Base, TimestampMixin):
    __tablename__ = 'edition'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    work_id: Mapped[str] = mapped_column(ForeignKey('work.id', ondelete='CASCADE'), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    manual: Mapped[bool] = mapped_column(Boolean, nullable=False)
    publish_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    publish_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    publish_date_raw: Mapped[str | None] = mapped_column(String(255), nullable=True)
    isbn13: Mapped[str | None] = mapped_column(String(13), nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    work = relationship('Work', back_populates='editions', foreign_keys=[work_id])

    __mapper_args__ = {'polymorphic_on': 'manual'}

    __table_args__ = (
        CheckConstraint(PROVENANCE_CHECK, name='ck_edition_provenance'),
        Index('idx_edition_work_id', 'work_id'),
        Index('idx_edition_isbn13', 'isbn13'),
    )


class CatalogEdition(CatalogSourceMixin, Edition):
    __mapper_args__ = {'polymorphic_identity': False}


class ManualEdition(ManualOwnerMixin, Edition):
    __mapper_args__ = {'polymorphic_identity': True}
