"""Checks against the real Open Library Books API.

Deselected by default; run with ``pytest -m integration``.
"""

import pytest

from bookmanager.services.open_library_service import OpenLibraryNoDataError, OpenLibraryService

pytestmark = pytest.mark.integration


@pytest.fixture
def lookup():
    svc = OpenLibraryService()
    yield svc
    svc.close()


def test_fetch_known_isbn(lookup):
    data = lookup.fetch("9780140328721")
    assert "Matilda" in data.title
    assert data.cover_url.endswith("9780140328721-L.jpg")


def test_fetch_unknown_isbn(lookup):
    with pytest.raises(OpenLibraryNoDataError):
        lookup.fetch("0000000000")
