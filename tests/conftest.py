import os
import sys
import pytest
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, UTC
from pathlib import Path
from unittest.mock import Mock
from sqlalchemy.sql import text

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sqlalchemy.orm import Session
from catalog.openlibrary import OpenLibraryClient
from catalog.sa.database import Database
from catalog.sa.models import (
    Base, Profile, CatalogAuthor, ManualAuthor, CatalogWork, ManualWork,
    CatalogEdition, AuthorWork,
)
from catalog.services import CatalogMutationService, CatalogQueryService
from catalog.settings import Settings
from catalog.utils.rate_limit import SlidingWindowRateLimiter

USER_ID = "3f1c9a52-5d0e-4a63-9a43-0c2e8f1b7d11"
OTHER_USER_ID = "8b7e2d40-1c3f-4e5a-b6d7-9f0a1b2c3d4e"


class InlineExecutor(Executor):
    """Executor running jobs immediately in the calling thread"""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory):
    """Create a temporary directory for the test database."""
    test_dir = tmp_path_factory.mktemp("test_db")
    return str(test_dir / "test_catalog.db")


@pytest.fixture(scope="session")
def database(test_db_path):
    """Create a test database instance"""
    db = Database(connection_string=f"sqlite:///{test_db_path}")

    # Drop all tables and recreate schema
    Base.metadata.drop_all(db.engine)
    Base.metadata.create_all(db.engine)

    yield db

    db.engine.dispose()
    try:
        os.remove(test_db_path)
    except OSError:
        pass  # Ignore errors if file doesn't exist


@pytest.fixture(scope="function")
def db_session(database):
    """Create a new database session for a test"""
    session: Session = database.get_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def cleanup_db(db_session):
    """Clean up database tables before each test"""
    # Delete all data from tables in reverse order of dependencies
    db_session.execute(text("DELETE FROM user_work"))
    db_session.execute(text("DELETE FROM user_author"))
    db_session.execute(text("DELETE FROM author_work"))
    db_session.execute(text("DELETE FROM edition"))
    db_session.execute(text("DELETE FROM work"))
    db_session.execute(text("DELETE FROM author"))
    db_session.execute(text("DELETE FROM profile"))
    db_session.commit()
    yield
    # Clean up after test as well
    db_session.rollback()


@pytest.fixture
def now():
    return datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def settings(test_db_path):
    return Settings(database_url=f"sqlite:///{test_db_path}")


@pytest.fixture
def mock_client():
    """OpenLibrary client double; tests set return values per call"""
    return Mock(spec=OpenLibraryClient)


@pytest.fixture
def executor():
    return InlineExecutor()


@pytest.fixture
def rate_limiter():
    return SlidingWindowRateLimiter(max_requests=10, window_seconds=60)


@pytest.fixture
def service(db_session, mock_client, settings, executor, rate_limiter, now):
    return CatalogMutationService(
        db_session,
        client=mock_client,
        settings=settings,
        executor=executor,
        rate_limiter=rate_limiter,
        clock=lambda: now,
    )


@pytest.fixture
def query_service(db_session, service):
    return CatalogQueryService(db_session, mutations=service)


@pytest.fixture
def profile(db_session):
    """Create a profile for the default test user."""
    profile = Profile(user_id=USER_ID)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def other_profile(db_session):
    profile = Profile(user_id=OTHER_USER_ID)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def catalog_author(db_session, now):
    """Create a fresh catalog author for testing."""
    author = CatalogAuthor(
        source_id="OL23919A",
        name="J. K. Rowling",
        fetched_at=now - timedelta(days=1),
        expires_at=now + timedelta(days=6),
    )
    db_session.add(author)
    db_session.commit()
    return author


@pytest.fixture
def manual_author(db_session):
    """Create a manual author owned by the default test user."""
    author = ManualAuthor(owner_user_id=USER_ID, name="Local Poet")
    db_session.add(author)
    db_session.commit()
    return author


@pytest.fixture
def catalog_work(db_session, catalog_author, now):
    """Create a catalog work linked to the catalog author."""
    work = CatalogWork(
        source_id="OL82563W",
        title="Harry Potter and the Philosopher's Stone",
        first_publish_year=1997,
        fetched_at=now,
        expires_at=now + timedelta(days=7),
    )
    db_session.add(work)
    db_session.commit()
    db_session.add(AuthorWork(author_id=catalog_author.id, work_id=work.id))
    db_session.commit()
    return work


@pytest.fixture
def catalog_edition(db_session, catalog_work, now):
    edition = CatalogEdition(
        source_id="OL22856696M",
        work_id=catalog_work.id,
        title="Harry Potter and the Philosopher's Stone",
        publish_year=2014,
        isbn13="9781408855652",
        fetched_at=now,
        expires_at=now + timedelta(days=7),
    )
    db_session.add(edition)
    db_session.commit()
    return edition


@pytest.fixture
def multiple_works(db_session, catalog_author, now):
    """Create five catalog works linked to the catalog author."""
    works = []
    for i in range(1, 6):
        work = CatalogWork(
            source_id=f"OL{i}W",
            title=f"Test Work {i}",
            first_publish_year=1990 + i,
            fetched_at=now,
            expires_at=now + timedelta(days=7),
        )
        db_session.add(work)
        works.append(work)
    db_session.commit()
    for work in works:
        db_session.add(AuthorWork(author_id=catalog_author.id, work_id=work.id))
    db_session.commit()
    return works


@pytest.fixture
def manual_work(db_session, manual_author):
    work = ManualWork(owner_user_id=USER_ID, title="Notebook Poems")
    db_session.add(work)
    db_session.commit()
    db_session.add(AuthorWork(author_id=manual_author.id, work_id=work.id))
    db_session.commit()
    return work
