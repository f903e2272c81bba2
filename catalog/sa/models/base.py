# catalog/sa/models/base.py
import uuid
from dataclasses import dataclass
from datetime import datetime, UTC
from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, mapped_column, Mapped
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """DateTime stored as naive UTC and always handed back timezone-aware"""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value == '':
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


class TimestampMixin:
    """Mixin to add created_at and updated_at columns"""
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


@dataclass(frozen=True)
class ManualProvenance:
    owner_user_id: str


@dataclass(frozen=True)
class CatalogProvenance:
    source_id: str
    fetched_at: datetime | None
    expires_at: datetime | None


class CatalogSourceMixin:
    """Columns carried by rows imported from OpenLibrary.

    Only the catalog variant of an entity maps these, so a manual row can
    never hold a source id.
    """
    source_id: Mapped[str | None] = mapped_column(String(25), unique=True, nullable=True)
    fetched_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def provenance(self) -> CatalogProvenance:
        return CatalogProvenance(self.source_id, self.fetched_at, self.expires_at)


class ManualOwnerMixin:
    """Columns carried by rows a user typed in themselves"""
    owner_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    @property
    def provenance(self) -> ManualProvenance:
        return ManualProvenance(self.owner_user_id)


# Shared by author, work and edition tables
PROVENANCE_CHECK = (
    "(manual AND owner_user_id IS NOT NULL AND source_id IS NULL "
    "AND fetched_at IS NULL AND expires_at IS NULL) "
    "OR (NOT manual AND owner_user_id IS NULL AND source_id IS NOT NULL)"
)
