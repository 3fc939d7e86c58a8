import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from bookmanager.config import settings
from bookmanager.services.http_client import HTTPClient

logger = logging.getLogger(__name__)


@dataclass
class OpenLibraryBookData:
    """Normalized book metadata from the Open Library Books API"""
    isbn: str
    title: str = ""
    authors: List[str] = field(default_factory=list)
    publisher: str = ""
    published_date: str = ""
    description: str = ""
    cover_url: str = ""


class OpenLibraryError(Exception):
    """Base exception for Open Library lookups"""

    def __init__(self, isbn: str, message: str) -> None:
        super().__init__(message)
        self.isbn = isbn


class OpenLibraryTransportError(OpenLibraryError):
    """Request failed, returned a non-success status, or the body was unusable"""
    pass


class OpenLibraryNoDataError(OpenLibraryError):
    """The response parsed but holds no entry for the requested ISBN"""
    pass


class OpenLibraryService:
    """Looks up book metadata by ISBN on Open Library."""

    def __init__(self, http_client: Optional[HTTPClient] = None, base_url: Optional[str] = None,
                 cover_url_template: Optional[str] = None) -> None:
        self.http_client = http_client or HTTPClient()
        self.base_url = base_url or settings.openlibrary_api_url
        self.cover_url_template = cover_url_template or settings.openlibrary_cover_url

    def query_params(self, isbn: str) -> Dict[str, str]:
        return {"bibkeys": f"ISBN:{isbn}", "format": "json", "jscmd": "data"}

    def cover_url(self, isbn: str) -> str:
        """Covers are never fetched, only derived from the ISBN."""
        return self.cover_url_template.format(isbn=isbn)

    def fetch(self, isbn: str) -> OpenLibraryBookData:
        """Fetch and normalize the metadata for a single ISBN.

        Raises:
            OpenLibraryTransportError: network failure, non-2xx status, or an
                empty or unparseable body.
            OpenLibraryNoDataError: the body has no usable entry for the ISBN.
        """
        start = time.time()
        try:
            response = self.http_client.get(self.base_url, params=self.query_params(isbn))
        except httpx.RequestError as exc:
            logger.warning(f"Open Library request failed for ISBN {isbn}: {exc}")
            raise OpenLibraryTransportError(isbn, f"Open Library unreachable: {exc}") from exc

        elapsed_ms = int((time.time() - start) * 1000)
        logger.info(f"Open Library lookup: isbn={isbn}, status={response.status_code}, time={elapsed_ms}ms")

        if not response.is_success:
            raise OpenLibraryTransportError(isbn, f"Open Library returned status {response.status_code}")

        body = response.text
        if not body or not body.strip():
            raise OpenLibraryTransportError(isbn, "Open Library returned an empty body")

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise OpenLibraryTransportError(isbn, f"Could not parse Open Library response: {exc}") from exc

        entry = payload.get(f"ISBN:{isbn}") if isinstance(payload, dict) else None
        if not isinstance(entry, dict) or not entry:
            raise OpenLibraryNoDataError(isbn, f"No data found for ISBN: {isbn}")

        return self._normalize(isbn, entry)

    def _normalize(self, isbn: str, entry: Dict[str, Any]) -> OpenLibraryBookData:
        return OpenLibraryBookData(
            isbn=isbn,
            title=self._as_text(entry.get("title")),
            publisher=self._first_publisher(entry.get("publishers")),
            published_date=self._as_text(entry.get("publish_date")),
            description=self._description(entry.get("description")),
            cover_url=self.cover_url(isbn)
        )

    @staticmethod
    def _as_text(value: Any) -> str:
        if value is None or isinstance(value, (dict, list)):
            return ""
        return str(value)

    @staticmethod
    def _first_publisher(publishers: Any) -> str:
        if not isinstance(publishers, list) or not publishers:
            return ""
        first = publishers[0]
        # jscmd=data lists publishers as {"name": ...} objects
        if isinstance(first, dict):
            return OpenLibraryService._as_text(first.get("name"))
        return OpenLibraryService._as_text(first)

    @staticmethod
    def _description(description: Any) -> str:
        if isinstance(description, dict):
            return OpenLibraryService._as_text(description.get("value"))
        return OpenLibraryService._as_text(description)

    def close(self) -> None:
        self.http_client.close()
