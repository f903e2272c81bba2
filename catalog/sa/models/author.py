# catalog/sa/models/author.py
from sqlalchemy import String, Boolean, CheckConstraint, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin, CatalogSourceMixin, ManualOwnerMixin, PROVENANCE_CHECK, new_id


class Author(Base, TimestampMixin):
    __tablename__ = 'author'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    manual: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Relationships
    author_works = relationship('AuthorWork', back_populates='author', cascade='all', passive_deletes=True)
    user_authors = relationship('UserAuthor', back_populates='author', cascade='all', passive_deletes=True)

    # Convenience relationship
    works = relationship('Work', secondary='author_work', viewonly=True)

    __mapper_args__ = {'polymorphic_on': 'manual'}

    __table_args__ = (
        CheckConstraint(PROVENANCE_CHECK, name='ck_author_provenance'),
        Index('idx_author_name', 'name'),
    )


class CatalogAuthor(CatalogSourceMixin, Author):
    """Author imported from OpenLibrary, shared by every user"""
    __mapper_args__ = {'polymorphic_identity': False}


class ManualAuthor(ManualOwnerMixin, Author):
    """Author entered by hand and owned by one user"""
    __mapper_args__ = {'polymorphic_identity': True}
