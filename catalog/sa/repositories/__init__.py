# catalog/sa/repositories/__init__.py
from .author import AuthorRepository
from .work import WorkRepository
from .edition import EditionRepository
from .profile import ProfileRepository
from .library import LibraryRepository

__all__ = [
    'AuthorRepository',
    'WorkRepository',
    'EditionRepository',
    'ProfileRepository',
    'LibraryRepository',
]
