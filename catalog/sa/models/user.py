# catalog/sa/models/user.py
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Integer, Boolean, ForeignKey, Index, event, update, case
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin, UTCDateTime, utcnow

DEFAULT_MAX_AUTHORS = 500
DEFAULT_MAX_WORKS = 5000


class UserWorkStatus(str, Enum):
    TO_READ = "to_read"
    IN_PROGRESS = "in_progress"
    READ = "read"
    HIDDEN = "hidden"


class Profile(Base, TimestampMixin):
    """Per-user quota and attachment counters.

    author_count and work_count are only ever changed by the attachment
    listeners at the bottom of this module.
    """
    __tablename__ = 'profile'

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    author_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    work_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_authors: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_AUTHORS)
    max_works: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_MAX_WORKS)

    # Relationships
    user_authors = relationship('UserAuthor', back_populates='profile', cascade='all', passive_deletes=True)
    user_works = relationship('UserWork', back_populates='profile', cascade='all', passive_deletes=True)


class UserAuthor(Base):
    __tablename__ = 'user_author'

    user_id: Mapped[str] = mapped_column(ForeignKey('profile.user_id', ondelete='CASCADE'), primary_key=True)
    author_id: Mapped[str] = mapped_column(ForeignKey('author.id', ondelete='CASCADE'), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # Relationships
    profile = relationship('Profile', back_populates='user_authors')
    author = relationship('Author', back_populates='user_authors')

    __table_args__ = (
        Index('idx_user_author_author_id', 'author_id'),
    )


class UserWork(Base, TimestampMixin):
    __tablename__ = 'user_work'

    user_id: Mapped[str] = mapped_column(ForeignKey('profile.user_id', ondelete='CASCADE'), primary_key=True)
    work_id: Mapped[str] = mapped_column(ForeignKey('work.id', ondelete='CASCADE'), primary_key=True)
    status: Mapped[UserWorkStatus] = mapped_column(
        SAEnum(UserWorkStatus, native_enum=False, length=20,
               values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=UserWorkStatus.TO_READ
    )
    # Unknown (None), available or not available in the external lending source
    available_in_source: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    status_updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # Relationships
    profile = relationship('Profile', back_populates='user_works')
    work = relationship('Work', back_populates='user_works')

    __table_args__ = (
        Index('idx_user_work_work_id', 'work_id'),
        Index('idx_user_work_user_status', 'user_id', 'status'),
    )


def _bump_counter(connection, user_id: str, column_name: str, delta: int) -> None:
    profile = Profile.__table__
    column = profile.c[column_name]
    if delta > 0:
        value = column + delta
    else:
        value = case((column + delta < 0, 0), else_=column + delta)
    connection.execute(
        update(profile).where(profile.c.user_id == user_id).values({column_name: value})
    )


@event.listens_for(UserAuthor, 'after_insert')
def _user_author_inserted(mapper, connection, target):
    _bump_counter(connection, target.user_id, 'author_count', 1)


@event.listens_for(UserAuthor, 'after_delete')
def _user_author_deleted(mapper, connection, target):
    _bump_counter(connection, target.user_id, 'author_count', -1)


@event.listens_for(UserWork, 'after_insert')
def _user_work_inserted(mapper, connection, target):
    _bump_counter(connection, target.user_id, 'work_count', 1)


@event.listens_for(UserWork, 'after_delete')
def _user_work_deleted(mapper, connection, target):
    _bump_counter(connection, target.user_id, 'work_count', -1)
