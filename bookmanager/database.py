import logging
import sqlite3
from typing import Iterable, List, Optional

from bookmanager.config import settings

logger = logging.getLogger(__name__)


class Database:
    """SQLite storage for users, their books and the books' reviews.

    A new connection is opened for every operation and closed by the caller.
    Deletes never rely on an implicit cascade: the ``delete_*_cascade``
    helpers remove dependents first, inside the caller's transaction.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or settings.database_file

    def connect(self) -> sqlite3.Connection:
        """Open a connection to the SQLite database with foreign keys enforced."""
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def initialize(self) -> None:
        """Create the tables and indexes if they do not exist yet."""
        conn = self.connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # One row per book owned by a user; the same ISBN may appear
            # under several users.
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS books (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    isbn TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    authors TEXT NOT NULL DEFAULT '[]',
                    publisher TEXT NOT NULL DEFAULT '',
                    published_date TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    cover_url TEXT,
                    rating INTEGER CHECK(rating IS NULL OR (rating >= 1 AND rating <= 5)),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (user_id) REFERENCES users(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS reviews (
                    id TEXT PRIMARY KEY,
                    book_id TEXT NOT NULL,
                    rating INTEGER NOT NULL CHECK(rating >= 1 AND rating <= 5),
                    review_text TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (book_id) REFERENCES books(id)
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_user_id ON books(user_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_user_isbn ON books(user_id, isbn COLLATE NOCASE)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_reviews_book_id ON reviews(book_id)")
            conn.commit()
        finally:
            conn.close()

    # ------------------------- Cascades ------------------------- #
    @staticmethod
    def delete_book_cascade(conn: sqlite3.Connection, book_ids: Iterable[str]) -> int:
        """Delete the given books, removing their reviews first.

        Returns the number of book rows deleted. Does not commit.
        """
        ids: List[str] = list(book_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        conn.execute(f"DELETE FROM reviews WHERE book_id IN ({placeholders})", ids)
        cursor = conn.execute(f"DELETE FROM books WHERE id IN ({placeholders})", ids)
        return cursor.rowcount

    @classmethod
    def delete_user_cascade(cls, conn: sqlite3.Connection, user_id: str) -> bool:
        """Delete a user after its books and their reviews. Does not commit."""
        rows = conn.execute("SELECT id FROM books WHERE user_id = ?", (user_id,)).fetchall()
        removed = cls.delete_book_cascade(conn, [row["id"] for row in rows])
        cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        if cursor.rowcount > 0:
            logger.info(f"Deleted user {user_id} with {removed} book(s)")
            return True
        return False
