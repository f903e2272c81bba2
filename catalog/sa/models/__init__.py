# catalog/sa/models/__init__.py
from .base import (
    Base, TimestampMixin, UTCDateTime, CatalogSourceMixin, ManualOwnerMixin,
    CatalogProvenance, ManualProvenance, utcnow, new_id,
)
from .author import Author, CatalogAuthor, ManualAuthor
from .work import Work, CatalogWork, ManualWork, AuthorWork
from .edition import Edition, CatalogEdition, ManualEdition
from .user import Profile, UserAuthor, UserWork, UserWorkStatus

__all__ = [
    'Base',
    'TimestampMixin',
    'UTCDateTime',
    'CatalogSourceMixin',
    'ManualOwnerMixin',
    'CatalogProvenance',
    'ManualProvenance',
    'utcnow',
    'new_id',
    'Author',
    'CatalogAuthor',
    'ManualAuthor',
    'Work',
    'CatalogWork',
    'ManualWork',
    'AuthorWork',
    'Edition',
    'CatalogEdition',
    'ManualEdition',
    'Profile',
    'UserAuthor',
    'UserWork',
    'UserWorkStatus',
]
