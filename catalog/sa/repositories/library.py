# catalog/sa/repositories/library.py
from typing import Iterable, List, Optional, Tuple
from sqlalchemy import desc, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased
from ..models import Author, Work, Edition, AuthorWork, UserAuthor, UserWork, UserWorkStatus
from .work import effective_publish_year


class LibraryRepository:
    """Repository for a user's personal library: the authors and works attached to a profile.

    Attachments are always deleted through the session (never with bulk
    query deletes) so the profile counter listeners see every delete.
    """

    def __init__(self, session: Session):
        self.session = session

    # Authors

    def get_user_author(self, user_id: str, author_id: str) -> Optional[UserAuthor]:
        return self.session.get(UserAuthor, (user_id, author_id))

    def add_user_author(self, user_id: str, author_id: str) -> UserAuthor:
        """Attach an author to the user.

        Raises:
            IntegrityError: If the pair already exists (after rollback)
        """
        user_author = UserAuthor(user_id=user_id, author_id=author_id)
        self.session.add(user_author)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        return user_author

    def get_user_authors_for_author(self, author_id: str) -> List[UserAuthor]:
        return self.session.query(UserAuthor).filter(UserAuthor.author_id == author_id).all()

    def list_user_authors(self, user_id: str, page: int = 1, page_size: int = 20,
                          search: Optional[str] = None,
                          sort: str = 'name_asc') -> Tuple[List[Tuple[Author, UserAuthor]], int]:
        """List authors attached to a user.

        Args:
            user_id: Owner of the library
            page: 1-based page number
            page_size: Rows per page
            search: Case-insensitive substring filter on the author name
            sort: 'name_asc' or 'created_desc' (most recently attached first)

        Returns:
            Tuple of ([(author, attachment)], total count)
        """
        query = (
            self.session.query(Author, UserAuthor)
            .join(UserAuthor, UserAuthor.author_id == Author.id)
            .filter(UserAuthor.user_id == user_id)
        )
        if search:
            query = query.filter(Author.name.ilike(f"%{search}%"))
        total = query.count()

        if sort == 'created_desc':
            query = query.order_by(desc(UserAuthor.created_at), Author.name)
        else:
            query = query.order_by(Author.name.asc(), Author.id)

        rows = query.offset((page - 1) * page_size).limit(page_size).all()
        return [(row[0], row[1]) for row in rows], total

    # Works

    def get_user_work(self, user_id: str, work_id: str) -> Optional[UserWork]:
        return self.session.get(UserWork, (user_id, work_id))

    def get_user_works(self, user_id: str, work_ids: Iterable[str]) -> List[UserWork]:
        work_ids = list(work_ids)
        if not work_ids:
            return []
        return (
            self.session.query(UserWork)
            .filter(UserWork.user_id == user_id, UserWork.work_id.in_(work_ids))
            .all()
        )

    def get_user_works_for_works(self, work_ids: Iterable[str]) -> List[UserWork]:
        """Every user's attachments to the given works"""
        work_ids = list(work_ids)
        if not work_ids:
            return []
        return self.session.query(UserWork).filter(UserWork.work_id.in_(work_ids)).all()

    def add_user_work(self, user_id: str, work_id: str,
                      status: UserWorkStatus = UserWorkStatus.TO_READ) -> UserWork:
        """Attach a work to the user.

        Raises:
            IntegrityError: If the pair already exists (after rollback)
        """
        user_work = UserWork(user_id=user_id, work_id=work_id, status=status)
        self.session.add(user_work)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        return user_work

    def list_user_works(self, user_id: str, page: int = 1, page_size: int = 20,
                        statuses: Optional[List[UserWorkStatus]] = None,
                        available: Optional[bool] = None,
                        sort: str = 'published_desc',
                        author_id: Optional[str] = None,
                        search: Optional[str] = None) -> Tuple[List[Tuple[UserWork, Work, Optional[int]]], int]:
        """List works attached to a user.

        Args:
            user_id: Owner of the library
            page: 1-based page number
            page_size: Rows per page
            statuses: Only include these statuses
            available: Only include rows with this availability flag
            sort: 'published_desc' or 'title_asc'
            author_id: Only include works linked to this author
            search: Case-insensitive substring filter on the work title

        Returns:
            Tuple of ([(attachment, work, effective publish year)], total count)
        """
        primary = aliased(Edition)
        publish_year = effective_publish_year(primary)
        query = (
            self.session.query(UserWork, Work, publish_year.label('publish_year'))
            .join(Work, Work.id == UserWork.work_id)
            .outerjoin(primary, primary.id == Work.primary_edition_id)
            .filter(UserWork.user_id == user_id)
        )
        if statuses:
            query = query.filter(UserWork.status.in_(statuses))
        if available is not None:
            query = query.filter(UserWork.available_in_source.is_(available))
        if author_id:
            query = query.join(AuthorWork, AuthorWork.work_id == Work.id).filter(AuthorWork.author_id == author_id)
        if search:
            query = query.filter(Work.title.ilike(f"%{search}%"))
        total = query.count()

        if sort == 'title_asc':
            query = query.order_by(Work.title.asc(), Work.id)
        else:
            query = query.order_by(desc(publish_year).nulls_last(), Work.title.asc(), Work.id)

        rows = query.offset((page - 1) * page_size).limit(page_size).all()
        return [(row[0], row[1], row[2]) for row in rows], total

    # Shared

    def delete(self, *rows) -> None:
        """Delete attachment rows one by one and commit"""
        for row in rows:
            self.session.delete(row)
        self.session.commit()
