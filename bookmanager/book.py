from __future__ import annotations

import json
import uuid


class Book:
    """A single book in one user's collection."""

    def __init__(self, isbn: str, user_id: str, title: str = "", authors: list | None = None,
                 publisher: str = "", published_date: str = "", description: str = "",
                 cover_url: str | None = None, rating: int | None = None,
                 id: str | None = None, created_at: str | None = None) -> None:
        self.id = id or str(uuid.uuid4())
        self.isbn = isbn
        # Owner is fixed at creation
        self.user_id = user_id
        self.title = title
        self.authors = list(authors or [])
        self.publisher = publisher
        self.published_date = published_date
        self.description = description
        self.cover_url = cover_url
        self.rating = rating
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} (ISBN: {self.isbn})"

    def matches_isbn(self, isbn: str) -> bool:
        return self.isbn.lower() == isbn.lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "isbn": self.isbn,
            "user_id": self.user_id,
            "title": self.title,
            "authors": list(self.authors),
            "publisher": self.publisher,
            "published_date": self.published_date,
            "description": self.description,
            "cover_url": self.cover_url,
            "rating": self.rating,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        # Authors are stored as a JSON array in SQLite
        authors = data.get("authors")
        if isinstance(authors, str):
            try:
                authors = json.loads(authors)
            except ValueError:
                authors = [authors] if authors else []

        return Book(
            id=data.get("id"),
            isbn=data["isbn"],
            user_id=data["user_id"],
            title=data.get("title") or "",
            authors=authors,
            publisher=data.get("publisher") or "",
            published_date=data.get("published_date") or "",
            description=data.get("description") or "",
            cover_url=data.get("cover_url"),
            rating=data.get("rating"),
            created_at=data.get("created_at"),
        )
