# catalog/openlibrary/client.py

import logging
from typing import Any, Dict, List, Optional

import requests

from catalog.errors import NotFoundInSource, SourceUnavailable
from catalog.settings import Settings
from .parsing import (
    normalize_key, parse_date, parse_year,
    first_isbn13, first_cover_url, first_language,
)
from .records import AuthorRecord, WorkRecord, EditionRecord

DEFAULT_BASE_URL = "https://openlibrary.org"
DEFAULT_TIMEOUT = 10.0


class OpenLibraryClient:
    """Thin client for the OpenLibrary JSON API.

    Every failure is classified before it leaves this class: anything that
    means "we could not get a trustworthy answer" becomes SourceUnavailable, a
    404 on a lookup by id becomes NotFoundInSource. No retries are attempted.
    """

    def __init__(self,
                 base_url: str = DEFAULT_BASE_URL,
                 timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: OpenLibrary root URL
            timeout: Per-request timeout in seconds
            session: Optional requests session, mostly useful for tests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._setup_logging()

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenLibraryClient":
        return cls(base_url=settings.openlibrary_base_url, timeout=settings.openlibrary_timeout)

    def _setup_logging(self):
        """Set up logging for the client."""
        self.logger = logging.getLogger(self.__class__.__name__)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None,
                  not_found: Optional[str] = None) -> Any:
        """
        GET a path below the base URL and decode its JSON body.

        Args:
            path: Path starting with a slash
            params: Query parameters
            not_found: Message for NotFoundInSource when the server answers 404.
                       When None a 404 is treated like any other failure.

        Raises:
            SourceUnavailable: Timeout, network error, bad status or bad JSON
            NotFoundInSource: 404 and not_found was given
        """
        url = f"{self.base_url}{path}"
        self.logger.debug(f"GET {url} {params or ''}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise SourceUnavailable("OpenLibrary API request timed out") from e
        except requests.RequestException as e:
            raise SourceUnavailable(f"Failed to connect to OpenLibrary API: {e}") from e

        if response.status_code == 404 and not_found is not None:
            raise NotFoundInSource(not_found)

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise SourceUnavailable(f"OpenLibrary API returned status {response.status_code}") from e

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailable("Invalid response format from OpenLibrary API") from e

    def search_authors(self, query: str, limit: int = 10) -> List[AuthorRecord]:
        """Search authors by name. Entries without a key or a name are skipped."""
        data = self._get_json("/search/authors.json", params={"q": query, "limit": limit})
        docs = data.get("docs") if isinstance(data, dict) else None
        if not isinstance(docs, list):
            raise SourceUnavailable("Invalid response format from OpenLibrary API")

        results = []
        for doc in docs:
            if not isinstance(doc, dict):
                continue
            key, name = doc.get("key"), doc.get("name")
            if not isinstance(key, str) or not key or not isinstance(name, str) or not name.strip():
                continue
            results.append(AuthorRecord(source_id=normalize_key(key), name=name.strip()))
        return results

    def fetch_author(self, source_id: str) -> AuthorRecord:
        data = self._get_json(f"/authors/{source_id}.json",
                              not_found=f"Author {source_id} not found in OpenLibrary")
        if not isinstance(data, dict):
            raise SourceUnavailable("Invalid response format from OpenLibrary API")
        key, name = data.get("key"), data.get("name")
        if not isinstance(key, str) or not key or not isinstance(name, str) or not name.strip():
            raise SourceUnavailable("Invalid author data from OpenLibrary API")
        return AuthorRecord(source_id=normalize_key(key), name=name.strip())

    def fetch_work(self, source_id: str) -> WorkRecord:
        data = self._get_json(f"/works/{source_id}.json",
                              not_found=f"Work {source_id} not found in OpenLibrary")
        work = self._parse_work(data) if isinstance(data, dict) else None
        if work is None:
            raise SourceUnavailable("Invalid work data from OpenLibrary API")
        return work

    def fetch_work_editions(self, work_source_id: str, limit: int = 50) -> List[EditionRecord]:
        """Fetch the editions of a work. Entries that can't be parsed are dropped."""
        data = self._get_json(f"/works/{work_source_id}/editions.json",
                              params={"limit": limit},
                              not_found=f"Work {work_source_id} not found in OpenLibrary")
        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise SourceUnavailable("Invalid response format from OpenLibrary API")

        editions = []
        for entry in entries:
            edition = self._parse_edition(entry) if isinstance(entry, dict) else None
            if edition is not None:
                editions.append(edition)
        return editions

    def fetch_edition(self, source_id: str) -> EditionRecord:
        data = self._get_json(f"/books/{source_id}.json",
                              not_found=f"Edition {source_id} not found in OpenLibrary")
        edition = self._parse_edition(data) if isinstance(data, dict) else None
        if edition is None:
            raise SourceUnavailable("Invalid edition data from OpenLibrary API")
        return edition

    def fetch_author_works(self, author_source_id: str, limit: int = 50) -> List[WorkRecord]:
        data = self._get_json(f"/authors/{author_source_id}/works.json",
                              params={"limit": limit},
                              not_found=f"Author {author_source_id} not found in OpenLibrary")
        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise SourceUnavailable("Invalid response format from OpenLibrary API")

        works = []
        for entry in entries:
            work = self._parse_work(entry) if isinstance(entry, dict) else None
            if work is not None:
                works.append(work)
        return works

    def _parse_work(self, data: Dict[str, Any]) -> Optional[WorkRecord]:
        key, title = data.get("key"), data.get("title")
        if not isinstance(key, str) or not key or not isinstance(title, str) or not title.strip():
            return None

        primary_edition = None
        cover_edition = data.get("cover_edition")
        if isinstance(cover_edition, dict) and isinstance(cover_edition.get("key"), str):
            primary_edition = normalize_key(cover_edition["key"])

        first_publish_date = data.get("first_publish_date")
        return WorkRecord(
            source_id=normalize_key(key),
            title=title.strip(),
            first_publish_year=parse_year(first_publish_date) if isinstance(first_publish_date, str) else None,
            primary_edition_source_id=primary_edition,
        )

    def _parse_edition(self, data: Dict[str, Any]) -> Optional[EditionRecord]:
        key, title = data.get("key"), data.get("title")
        if not isinstance(key, str) or not key or not isinstance(title, str) or not title.strip():
            self.logger.debug(f"Skipping edition without key or title: {key}")
            return None

        raw_date = data.get("publish_date")
        raw_date = raw_date.strip() if isinstance(raw_date, str) and raw_date.strip() else None
        return EditionRecord(
            source_id=normalize_key(key),
            title=title.strip(),
            publish_year=parse_year(raw_date),
            publish_date=parse_date(raw_date),
            publish_date_raw=raw_date,
            isbn13=first_isbn13(data.get("isbn_13")),
            cover_url=first_cover_url(data.get("covers")),
            language=first_language(data.get("languages")),
        )
