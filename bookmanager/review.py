from __future__ import annotations

import uuid


class Review:
    """A rated, free-text review bound to exactly one book."""

    def __init__(self, book_id: str, rating: int, review_text: str,
                 id: str | None = None, created_at: str | None = None) -> None:
        self.id = id or str(uuid.uuid4())
        self.book_id = book_id
        self.rating = rating
        self.review_text = review_text
        self.created_at = created_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "rating": self.rating,
            "review_text": self.review_text,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Review":
        return Review(
            id=data.get("id"),
            book_id=data["book_id"],
            rating=data["rating"],
            review_text=data["review_text"],
            created_at=data.get("created_at"),
        )
