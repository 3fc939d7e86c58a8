import logging
from typing import List, Optional

from bookmanager.book import Book
from bookmanager.database import Database
from bookmanager.exceptions import BookNotFoundError, InvalidBookError
from bookmanager.services.open_library_service import (
    OpenLibraryNoDataError,
    OpenLibraryService,
    OpenLibraryTransportError,
)
from bookmanager.user import User
from bookmanager.users import UserDirectory
from bookmanager.validators import RatingValidator

logger = logging.getLogger(__name__)


class BookCollection:
    """Manages the books owned by a user.

    Books are persisted through their owner (``UserDirectory.save``); only
    deletion goes to the database directly so that reviews are removed with
    the book.
    """

    def __init__(self, lookup: OpenLibraryService, users: UserDirectory, database: Database) -> None:
        self.lookup = lookup
        self.users = users
        self.database = database

    # ------------------------- Core operations ------------------------- #
    def add_by_isbn(self, user: User, isbn: str) -> Book:
        """Fetch metadata from Open Library by ISBN, create the book and add it to the user.

        The same ISBN may be added more than once; every call creates a new book.
        """
        try:
            data = self.lookup.fetch(isbn)
        except OpenLibraryNoDataError as e:
            raise InvalidBookError(f"No data found for ISBN: {isbn}") from e
        except OpenLibraryTransportError as e:
            raise InvalidBookError(f"Fetch failed for ISBN: {isbn}") from e

        book = Book(
            isbn=isbn,
            user_id=user.id,
            title=data.title,
            authors=data.authors,
            publisher=data.publisher,
            published_date=data.published_date,
            description=data.description,
            cover_url=data.cover_url,
        )
        user.books.append(book)
        self.users.save(user)
        logger.info(f"Added book {book.isbn} ({book.id}) for user {user.id}")
        return book

    def find_by_isbn(self, user: User, isbn: str) -> Book:
        for book in user.books:
            if book.matches_isbn(isbn):
                return book
        raise BookNotFoundError(isbn)

    def update_rating(self, user: User, isbn: str, rating: int) -> Book:
        RatingValidator.check(rating)
        book = self.find_by_isbn(user, isbn)
        book.rating = rating
        self.users.save(user)
        return book

    def update_details(self, user: User, isbn: str, *, title: Optional[str] = None,
                       authors: Optional[List[str]] = None, description: Optional[str] = None,
                       cover_url: Optional[str] = None) -> Book:
        """Overwrite only the descriptive fields that are given."""
        book = self.find_by_isbn(user, isbn)
        if title is not None:
            book.title = title
        if authors is not None:
            book.authors = list(authors)
        if description is not None:
            book.description = description
        if cover_url is not None:
            book.cover_url = cover_url
        self.users.save(user)
        return book

    def delete(self, user: User, isbn: str) -> None:
        book = self.find_by_isbn(user, isbn)
        user.books.remove(book)
        conn = self.database.connect()
        try:
            self.database.delete_book_cascade(conn, [book.id])
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Deleted book {book.isbn} ({book.id}) for user {user.id}")

    # ------------------------- Queries ------------------------- #
    def list_filtered(self, user: User, rating: Optional[int] = None) -> List[Book]:
        if rating is None:
            return list(user.books)
        RatingValidator.check(rating)
        # Unrated books never match a numeric filter
        return [book for book in user.books if book.rating == rating]

    def search(self, user: User, title: Optional[str] = None, author: Optional[str] = None,
               year: Optional[int] = None) -> List[Book]:
        """Filter the collection; every given criterion must match.

        ``year`` is matched as a substring of the free-text published date,
        so "1937 (reprint 2013)" matches both 1937 and 2013.
        """
        results = list(user.books)
        if title is not None:
            needle = title.lower()
            results = [b for b in results if needle in (b.title or "").lower()]
        if author is not None:
            needle = author.lower()
            results = [b for b in results if any(needle in a.lower() for a in b.authors)]
        if year is not None:
            needle = str(year)
            results = [b for b in results if needle in (b.published_date or "")]
        return results
