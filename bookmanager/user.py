from __future__ import annotations

import uuid

from bookmanager.book import Book


class User:
    """A library user and the books they own."""

    def __init__(self, name: str, email: str, id: str | None = None,
                 books: list[Book] | None = None, created_at: str | None = None) -> None:
        self.id = id or str(uuid.uuid4())
        self.name = name
        self.email = email
        self.books: list[Book] = list(books or [])
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} <{self.email}>"

    def to_dict(self, include_books: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at,
        }
        if include_books:
            data["books"] = [book.to_dict() for book in self.books]
        return data

    @staticmethod
    def from_dict(data: dict, books: list[Book] | None = None) -> "User":
        return User(
            id=data.get("id"),
            name=data["name"],
            email=data["email"],
            books=books,
            created_at=data.get("created_at"),
        )
