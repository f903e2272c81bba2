# catalog/services/schemas.py
import re
import uuid
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import (
    BaseModel, ConfigDict, Field, StringConstraints, AfterValidator,
    field_validator, model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from catalog.errors import ValidationError
from catalog.sa.models import UserWorkStatus

MAX_BULK_WORK_IDS = 100
MIN_PUBLISH_YEAR = 1500
MAX_PUBLISH_YEAR = 2100


def _check_uuid(value: str) -> str:
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise ValueError("must be a valid UUID")


def _check_source_id(value: str) -> str:
    if value.startswith("/"):
        raise ValueError("must be a short OpenLibrary id without a leading slash")
    return value


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


EntityId = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_uuid)]
SourceId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=25),
                     AfterValidator(_check_source_id)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
PublishYear = Annotated[int, Field(ge=MIN_PUBLISH_YEAR, le=MAX_PUBLISH_YEAR)]

CommandT = TypeVar("CommandT", bound=BaseModel)


def validate_command(model: Type[CommandT], **data: Any) -> CommandT:
    """Build a command model, turning pydantic failures into our ValidationError"""
    try:
        return model(**data)
    except PydanticValidationError as e:
        details = e.errors(include_url=False)
        fields = ", ".join(".".join(str(part) for part in error["loc"]) or "input" for error in details)
        raise ValidationError(f"Invalid {model.__name__}: {fields}", details=details) from e


# Commands

class SearchAuthorsQuery(BaseModel):
    q: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
    limit: int = Field(default=10, ge=1, le=50)


class ImportAuthorCommand(BaseModel):
    source_id: SourceId


class ImportWorkCommand(BaseModel):
    source_id: SourceId
    author_id: EntityId


class ImportEditionCommand(BaseModel):
    source_id: SourceId
    work_id: EntityId


class AttachAuthorCommand(BaseModel):
    author_id: EntityId


class AttachWorkCommand(BaseModel):
    work_id: EntityId
    status: UserWorkStatus = UserWorkStatus.TO_READ


class BulkAttachWorksCommand(BaseModel):
    work_ids: List[EntityId] = Field(min_length=1, max_length=MAX_BULK_WORK_IDS)
    status: UserWorkStatus = UserWorkStatus.TO_READ

    @field_validator("work_ids")
    @classmethod
    def dedupe_work_ids(cls, value: List[str]) -> List[str]:
        return _dedupe(value)


class WorkChanges(BaseModel):
    """Status and/or availability change for attached works.

    Only the fields the caller actually passed count as changes; passing
    available=None explicitly resets it to unknown.
    """
    status: Optional[UserWorkStatus] = None
    available: Optional[bool] = None

    @model_validator(mode="after")
    def require_a_change(self):
        if not {"status", "available"} & self.model_fields_set:
            raise ValueError("at least one of status or available is required")
        if "status" in self.model_fields_set and self.status is None:
            raise ValueError("status cannot be null")
        return self

    def as_columns(self) -> Dict[str, Any]:
        """Map the provided fields onto user_work column names"""
        columns = {}
        if "status" in self.model_fields_set:
            columns["status"] = self.status
        if "available" in self.model_fields_set:
            columns["available_in_source"] = self.available
        return columns


class BulkUpdateWorksCommand(WorkChanges):
    work_ids: List[EntityId] = Field(min_length=1, max_length=MAX_BULK_WORK_IDS)

    @field_validator("work_ids")
    @classmethod
    def dedupe_work_ids(cls, value: List[str]) -> List[str]:
        return _dedupe(value)


class CreateAuthorCommand(BaseModel):
    name: Name


class CreateWorkCommand(BaseModel):
    title: Name
    author_ids: List[EntityId] = Field(min_length=1)
    first_publish_year: Optional[PublishYear] = None

    @field_validator("author_ids")
    @classmethod
    def dedupe_author_ids(cls, value: List[str]) -> List[str]:
        return _dedupe(value)


class CreateEditionCommand(BaseModel):
    work_id: EntityId
    title: Name
    publish_year: Optional[PublishYear] = None
    publish_date: Optional[date] = None
    publish_date_raw: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]] = None
    isbn13: Optional[Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\d{13}$")]] = None
    cover_url: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=1024)]] = None
    language: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]] = None

    @field_validator("publish_date", mode="before")
    @classmethod
    def iso_date_only(cls, value):
        if isinstance(value, str) and not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value.strip()):
            raise ValueError("must be a YYYY-MM-DD date")
        return value


class SetPrimaryEditionCommand(BaseModel):
    work_id: EntityId
    edition_id: EntityId


class ListUserAuthorsQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    search: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]] = None
    sort: Literal["name_asc", "created_desc"] = "name_asc"


class ListUserWorksQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    status: Optional[List[UserWorkStatus]] = None
    available: Optional[bool] = None
    sort: Literal["published_desc", "title_asc"] = "published_desc"
    author_id: Optional[EntityId] = None
    search: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]] = None


class ListAuthorWorksQuery(BaseModel):
    author_id: EntityId
    page: int = Field(default=1, ge=1)
    sort: Literal["published_desc", "title_asc"] = "published_desc"
    force_refresh: bool = False


# Views

class AuthorView(BaseModel):
    id: str
    name: str
    manual: bool
    source_id: Optional[str] = None
    owner_user_id: Optional[str] = None
    fetched_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, author) -> "AuthorView":
        return cls(
            id=author.id,
            name=author.name,
            manual=author.manual,
            source_id=getattr(author, "source_id", None),
            owner_user_id=getattr(author, "owner_user_id", None),
            fetched_at=getattr(author, "fetched_at", None),
            expires_at=getattr(author, "expires_at", None),
            created_at=author.created_at,
            updated_at=author.updated_at,
        )


class EditionView(BaseModel):
    id: str
    work_id: str
    title: str
    manual: bool
    source_id: Optional[str] = None
    owner_user_id: Optional[str] = None
    publish_year: Optional[int] = None
    publish_date: Optional[date] = None
    publish_date_raw: Optional[str] = None
    isbn13: Optional[str] = None
    cover_url: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def from_entity(cls, edition) -> "EditionView":
        return cls(
            id=edition.id,
            work_id=edition.work_id,
            title=edition.title,
            manual=edition.manual,
            source_id=getattr(edition, "source_id", None),
            owner_user_id=getattr(edition, "owner_user_id", None),
            publish_year=edition.publish_year,
            publish_date=edition.publish_date,
            publish_date_raw=edition.publish_date_raw,
            isbn13=edition.isbn13,
            cover_url=edition.cover_url,
            language=edition.language,
        )


class WorkView(BaseModel):
    id: str
    title: str
    manual: bool
    source_id: Optional[str] = None
    owner_user_id: Optional[str] = None
    first_publish_year: Optional[int] = None
    publish_year: Optional[int] = None
    primary_edition: Optional[EditionView] = None

    @classmethod
    def from_entity(cls, work, publish_year: Optional[int] = None) -> "WorkView":
        primary = work.primary_edition
        if publish_year is None:
            publish_year = work.first_publish_year or (primary.publish_year if primary else None)
        return cls(
            id=work.id,
            title=work.title,
            manual=work.manual,
            source_id=getattr(work, "source_id", None),
            owner_user_id=getattr(work, "owner_user_id", None),
            first_publish_year=work.first_publish_year,
            publish_year=publish_year,
            primary_edition=EditionView.from_entity(primary) if primary else None,
        )


class UserAuthorView(BaseModel):
    user_id: str
    author_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserWorkView(BaseModel):
    user_id: str
    work_id: str
    status: UserWorkStatus
    available_in_source: Optional[bool] = None
    status_updated_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LibraryAuthorView(BaseModel):
    author: AuthorView
    attached_at: datetime


class LibraryWorkView(BaseModel):
    work: WorkView
    user_work: UserWorkView


class AuthorSearchResult(BaseModel):
    """One search hit; id is None when the author has never been stored"""
    id: Optional[str] = None
    source_id: str
    name: str
    fetched_at: datetime
    expires_at: datetime


class BulkAttachResult(BaseModel):
    added: List[str] = []
    skipped: List[str] = []


class ProfileView(BaseModel):
    user_id: str
    author_count: int
    work_count: int
    max_authors: int
    max_works: int

    model_config = ConfigDict(from_attributes=True)


class LibraryAuthorList(BaseModel):
    items: List[LibraryAuthorView]
    total: int
    page: int
    size: int


class LibraryWorkList(BaseModel):
    items: List[LibraryWorkView]
    total: int
    page: int
    size: int


class WorkList(BaseModel):
    items: List[WorkView]
    total: int
    page: int
    size: int
