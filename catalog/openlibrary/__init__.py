# catalog/openlibrary/__init__.py
from .client import OpenLibraryClient
from .records import AuthorRecord, WorkRecord, EditionRecord

__all__ = [
    'OpenLibraryClient',
    'AuthorRecord',
    'WorkRecord',
    'EditionRecord',
]
