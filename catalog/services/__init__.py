# catalog/services/__init__.py
from .cache import CatalogCache
from .edition_selector import EditionSelector
from .limits import LimitEnforcer, Quota
from .attachments import AttachmentEngine
from .mutations import CatalogMutationService
from .queries import CatalogQueryService

__all__ = [
    'CatalogCache',
    'EditionSelector',
    'LimitEnforcer',
    'Quota',
    'AttachmentEngine',
    'CatalogMutationService',
    'CatalogQueryService',
]
