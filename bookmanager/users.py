import json
import logging
import sqlite3
from typing import List, Optional

from bookmanager.book import Book
from bookmanager.database import Database
from bookmanager.exceptions import UserAlreadyExistsError, UserNotFoundError
from bookmanager.user import User

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = """
    id, user_id, isbn, title, authors, publisher, published_date,
    description, cover_url, rating, created_at
"""


class UserDirectory:
    """Loads and persists users together with the books they own."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def get_by_id(self, user_id: str) -> User:
        conn = self.database.connect()
        try:
            row = conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            if row is None:
                raise UserNotFoundError(user_id)
            return User.from_dict(dict(row), books=self._load_books(conn, user_id))
        finally:
            conn.close()

    def find_by_email(self, email: str) -> Optional[User]:
        """Exact, case-sensitive email match."""
        conn = self.database.connect()
        try:
            row = conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE email = ?", (email,)
            ).fetchone()
            if row is None:
                return None
            return User.from_dict(dict(row), books=self._load_books(conn, row["id"]))
        finally:
            conn.close()

    def list_all(self) -> List[User]:
        conn = self.database.connect()
        try:
            rows = conn.execute("SELECT id, name, email, created_at FROM users ORDER BY rowid").fetchall()
            return [User.from_dict(dict(row), books=self._load_books(conn, row["id"])) for row in rows]
        finally:
            conn.close()

    def save(self, user: User) -> User:
        """Upsert the user row and every book in ``user.books`` in one transaction.

        Books dropped from ``user.books`` are not deleted here; removal goes
        through the explicit cascade in the database layer.
        """
        conn = self.database.connect()
        try:
            conn.execute(
                """
                INSERT INTO users (id, name, email) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, email = excluded.email
                """,
                (user.id, user.name, user.email)
            )
            for book in user.books:
                self._upsert_book(conn, book)
            conn.commit()

            row = conn.execute("SELECT created_at FROM users WHERE id = ?", (user.id,)).fetchone()
            if row:
                user.created_at = row["created_at"]
            for book in user.books:
                if book.created_at is None:
                    book_row = conn.execute("SELECT created_at FROM books WHERE id = ?", (book.id,)).fetchone()
                    if book_row:
                        book.created_at = book_row["created_at"]
            return user
        except sqlite3.IntegrityError as e:
            conn.rollback()
            # The UNIQUE constraint is the authority on email collisions
            if "users.email" in str(e):
                raise UserAlreadyExistsError(user.email) from e
            raise
        finally:
            conn.close()

    def delete(self, user_id: str) -> None:
        conn = self.database.connect()
        try:
            if not self.database.delete_user_cascade(conn, user_id):
                raise UserNotFoundError(user_id)
            conn.commit()
        finally:
            conn.close()

    # ------------------------- Helpers ------------------------- #
    @staticmethod
    def _load_books(conn: sqlite3.Connection, user_id: str) -> List[Book]:
        rows = conn.execute(
            f"SELECT {_BOOK_COLUMNS} FROM books WHERE user_id = ? ORDER BY rowid", (user_id,)
        ).fetchall()
        return [Book.from_dict(dict(row)) for row in rows]

    @staticmethod
    def _upsert_book(conn: sqlite3.Connection, book: Book) -> None:
        # user_id and isbn are left alone on conflict: ownership is immutable
        conn.execute(
            """
            INSERT INTO books (
                id, user_id, isbn, title, authors, publisher,
                published_date, description, cover_url, rating
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                authors = excluded.authors,
                publisher = excluded.publisher,
                published_date = excluded.published_date,
                description = excluded.description,
                cover_url = excluded.cover_url,
                rating = excluded.rating
            """,
            (
                book.id, book.user_id, book.isbn, book.title, json.dumps(book.authors),
                book.publisher, book.published_date, book.description, book.cover_url,
                book.rating
            )
        )
