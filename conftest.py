import json

import httpx
import pytest

from bookmanager.services.http_client import HTTPClient
from bookmanager.service import create_service

OPEN_LIBRARY_URL = "https://openlibrary.test/api/books"

MATILDA = {
    "title": "Matilda",
    "publishers": ["Puffin"],
    "publish_date": "1988",
    "description": {"value": "A story about a gifted girl"},
}


class FakeOpenLibrary:
    """Stands in for the Open Library Books API behind an httpx.MockTransport."""

    def __init__(self):
        self.entries = {}
        self.raw = {}
        self.requests = []

    def add(self, isbn, entry):
        self.entries[isbn] = entry

    def respond(self, isbn, status_code=200, text=""):
        """Serve a raw status and body for one ISBN."""
        self.raw[isbn] = (status_code, text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.params.get("bibkeys", "")
        isbn = key[len("ISBN:"):] if key.startswith("ISBN:") else key
        if isbn in self.raw:
            status_code, text = self.raw[isbn]
            return httpx.Response(status_code, text=text)
        if isbn in self.entries:
            return httpx.Response(200, text=json.dumps({key: self.entries[isbn]}))
        return httpx.Response(200, text="{}")


@pytest.fixture
def open_library():
    fake = FakeOpenLibrary()
    fake.add("9780140328721", MATILDA)
    return fake


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file per test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def service(db_file, open_library):
    http_client = HTTPClient(timeout=2.0, transport=httpx.MockTransport(open_library.handler))
    svc = create_service(db_file=db_file, http_client=http_client, base_url=OPEN_LIBRARY_URL)
    yield svc
    svc.close()


@pytest.fixture
def user(service):
    return service.register_user("Ada Lovelace", "ada@example.com")
