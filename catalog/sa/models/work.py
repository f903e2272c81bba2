# catalog/sa/models/work.py
from datetime import datetime
from sqlalchemy import String, Integer, Boolean, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import (
    Base, TimestampMixin, CatalogSourceMixin, ManualOwnerMixin,
    PROVENANCE_CHECK, UTCDateTime, new_id, utcnow,
)


class AuthorWork(Base):
    """Shared link between an author and a work, never scoped to a user"""
    __tablename__ = 'author_work'

    author_id: Mapped[str] = mapped_column(ForeignKey('author.id', ondelete='CASCADE'), primary_key=True)
    work_id: Mapped[str] = mapped_column(ForeignKey('work.id', ondelete='CASCADE'), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # Relationships
    author = relationship('Author', back_populates='author_works')
    work = relationship('Work', back_populates='author_works')

    __table_args__ = (
        Index('idx_author_work_work_id', 'work_id'),
    )


class Work(Base, TimestampMixin):
    __tablename__ = 'work'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    manual: Mapped[bool] = mapped_column(Boolean, nullable=False)
    first_publish_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    primary_edition_id: Mapped[str | None] = mapped_column(
        ForeignKey('edition.id', ondelete='SET NULL', use_alter=True, name='fk_work_primary_edition'),
        nullable=True
    )

    # Relationships
    editions = relationship('Edition', back_populates='work', foreign_keys='Edition.work_id',
                            cascade='all', passive_deletes=True)
    primary_edition = relationship('Edition', foreign_keys=[primary_edition_id], post_update=True)
    author_works = relationship('AuthorWork', back_populates='work', cascade='all', passive_deletes=True)
    user_works = relationship('UserWork', back_populates='work', cascade='all', passive_deletes=True)

    # Convenience relationship
    authors = relationship('Author', secondary='author_work', viewonly=True)

    __mapper_args__ = {'polymorphic_on': 'manual'}

    __table_args__ = (
        CheckConstraint(PROVENANCE_CHECK, name='ck_work_provenance'),
        Index('idx_work_title', 'title'),
    )


class CatalogWork(CatalogSourceMixin, Work):
    __mapper_args__ = {'polymorphic_identity': False}


class ManualWork(ManualOwnerMixin, Work):
    __mapper_args__ = {'polymorphic_identity': True}
