# catalog/sa/repositories/profile.py
from typing import Optional
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ..models import Profile


class ProfileRepository:
    """Repository for managing Profile entities."""

    def __init__(self, session: Session):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        return self.session.get(Profile, user_id, populate_existing=True)

    def get_counters(self, user_id: str) -> Optional[Row]:
        """Read the counters and limits straight from the table.

        Column queries bypass the identity map, so the values are never stale
        after the counter listeners ran.

        Returns:
            Row with author_count, max_authors, work_count, max_works or None
        """
        return (
            self.session.query(
                Profile.author_count, Profile.max_authors,
                Profile.work_count, Profile.max_works
            )
            .filter(Profile.user_id == user_id)
            .first()
        )

    def create_profile(self, user_id: str, max_authors: Optional[int] = None,
                       max_works: Optional[int] = None) -> Profile:
        """Create a profile for a user.

        Args:
            user_id: Id of the authenticated user
            max_authors: Author quota, defaults to the column default
            max_works: Work quota, defaults to the column default

        Returns:
            The created Profile

        Raises:
            ValueError: If the user already has a profile
        """
        if self.session.get(Profile, user_id):
            raise ValueError(f"Profile for user '{user_id}' already exists")

        profile = Profile(user_id=user_id)
        if max_authors is not None:
            profile.max_authors = max_authors
        if max_works is not None:
            profile.max_works = max_works
        self.session.add(profile)
        try:
            self.session.commit()
            return profile
        except IntegrityError:
            self.session.rollback()
            raise ValueError(f"Profile for user '{user_id}' already exists")
