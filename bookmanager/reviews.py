import logging
from typing import List

from bookmanager.book import Book
from bookmanager.database import Database
from bookmanager.exceptions import ReviewNotFoundError
from bookmanager.review import Review

logger = logging.getLogger(__name__)


class ReviewLedger:
    """Reviews, always scoped to the book that owns them.

    Ratings and texts arrive already validated.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def add(self, book: Book, rating: int, review_text: str) -> Review:
        review = Review(book_id=book.id, rating=rating, review_text=review_text)
        conn = self.database.connect()
        try:
            conn.execute(
                "INSERT INTO reviews (id, book_id, rating, review_text) VALUES (?, ?, ?, ?)",
                (review.id, review.book_id, review.rating, review.review_text)
            )
            conn.commit()
            row = conn.execute("SELECT created_at FROM reviews WHERE id = ?", (review.id,)).fetchone()
            if row:
                review.created_at = row["created_at"]
        finally:
            conn.close()
        logger.info(f"Added review {review.id} to book {book.id}")
        return review

    def list_all(self, book: Book) -> List[Review]:
        conn = self.database.connect()
        try:
            rows = conn.execute(
                "SELECT id, book_id, rating, review_text, created_at FROM reviews WHERE book_id = ? ORDER BY rowid",
                (book.id,)
            ).fetchall()
            return [Review.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def update(self, book: Book, review_id: str, rating: int, review_text: str) -> Review:
        review = self._get_for_book(book, review_id)
        conn = self.database.connect()
        try:
            conn.execute(
                "UPDATE reviews SET rating = ?, review_text = ? WHERE id = ? AND book_id = ?",
                (rating, review_text, review.id, book.id)
            )
            conn.commit()
        finally:
            conn.close()
        review.rating = rating
        review.review_text = review_text
        return review

    def delete(self, book: Book, review_id: str) -> None:
        review = self._get_for_book(book, review_id)
        conn = self.database.connect()
        try:
            conn.execute("DELETE FROM reviews WHERE id = ? AND book_id = ?", (review.id, book.id))
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Deleted review {review.id} from book {book.id}")

    def _get_for_book(self, book: Book, review_id: str) -> Review:
        """A review id from another book is treated as missing."""
        conn = self.database.connect()
        try:
            row = conn.execute(
                "SELECT id, book_id, rating, review_text, created_at FROM reviews WHERE id = ?",
                (review_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None or row["book_id"] != book.id:
            raise ReviewNotFoundError(review_id)
        return Review.from_dict(dict(row))
