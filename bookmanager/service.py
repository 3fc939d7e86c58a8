import logging
from typing import Any, List, Optional

from bookmanager.book import Book
from bookmanager.database import Database
from bookmanager.exceptions import UserAlreadyExistsError, ValidationFailure
from bookmanager.library import BookCollection
from bookmanager.review import Review
from bookmanager.reviews import ReviewLedger
from bookmanager.services.http_client import HTTPClient
from bookmanager.services.open_library_service import OpenLibraryService
from bookmanager.user import User
from bookmanager.users import UserDirectory
from bookmanager.validators import EmailValidator, RatingValidator, TextValidator

logger = logging.getLogger(__name__)


class CollectionService:
    """Use-cases over users, their books and the books' reviews.

    Every operation resolves the user first; book and review operations then
    resolve the book by ISBN within that user's collection.
    """

    def __init__(self, users: UserDirectory, books: BookCollection, reviews: ReviewLedger) -> None:
        self.users = users
        self.books = books
        self.reviews = reviews

    # ------------------------- Users ------------------------- #
    def register_user(self, name: str, email: str) -> User:
        TextValidator.require(name, "Name")
        EmailValidator.require(email)
        # Racy pre-check; the UNIQUE constraint in storage has the final word
        if self.users.find_by_email(email) is not None:
            raise UserAlreadyExistsError(email)
        user = self.users.save(User(name=name, email=email))
        logger.info(f"Registered user {user.id}")
        return user

    def list_users(self) -> List[User]:
        return self.users.list_all()

    def get_user(self, user_id: str) -> User:
        return self.users.get_by_id(user_id)

    def update_user(self, user_id: str, name: str, email: str) -> User:
        TextValidator.require(name, "Name")
        EmailValidator.require(email)
        user = self.users.get_by_id(user_id)
        user.name = name
        user.email = email
        return self.users.save(user)

    def delete_user(self, user_id: str) -> None:
        self.users.delete(user_id)

    # ------------------------- Books ------------------------- #
    def add_book(self, user_id: str, isbn: str) -> Book:
        TextValidator.require(isbn, "ISBN")
        user = self.users.get_by_id(user_id)
        return self.books.add_by_isbn(user, isbn)

    def get_book(self, user_id: str, isbn: str) -> Book:
        user = self.users.get_by_id(user_id)
        return self.books.find_by_isbn(user, isbn)

    def update_book_rating(self, user_id: str, isbn: str, rating: Any) -> Book:
        RatingValidator.check(rating)
        user = self.users.get_by_id(user_id)
        return self.books.update_rating(user, isbn, rating)

    def update_book_details(self, user_id: str, isbn: str, *, title: Optional[str] = None,
                            authors: Optional[List[str]] = None, description: Optional[str] = None,
                            cover_url: Optional[str] = None) -> Book:
        if title is None and authors is None and description is None and cover_url is None:
            raise ValidationFailure("Nothing to update. Provide title, authors, description or cover_url.")
        user = self.users.get_by_id(user_id)
        return self.books.update_details(
            user, isbn, title=title, authors=authors, description=description, cover_url=cover_url
        )

    def delete_book(self, user_id: str, isbn: str) -> None:
        user = self.users.get_by_id(user_id)
        self.books.delete(user, isbn)

    def list_books(self, user_id: str, rating: Optional[int] = None) -> List[Book]:
        user = self.users.get_by_id(user_id)
        return self.books.list_filtered(user, rating)

    def search_books(self, user_id: str, title: Optional[str] = None, author: Optional[str] = None,
                     year: Optional[int] = None) -> List[Book]:
        user = self.users.get_by_id(user_id)
        return self.books.search(user, title=title, author=author, year=year)

    # ------------------------- Reviews ------------------------- #
    def add_review(self, user_id: str, isbn: str, rating: Any, review_text: Optional[str]) -> Review:
        self._check_review(rating, review_text)
        book = self.get_book(user_id, isbn)
        return self.reviews.add(book, rating, review_text)

    def list_reviews(self, user_id: str, isbn: str) -> List[Review]:
        book = self.get_book(user_id, isbn)
        return self.reviews.list_all(book)

    def update_review(self, user_id: str, isbn: str, review_id: str, rating: Any,
                      review_text: Optional[str]) -> Review:
        self._check_review(rating, review_text)
        book = self.get_book(user_id, isbn)
        return self.reviews.update(book, review_id, rating, review_text)

    def delete_review(self, user_id: str, isbn: str, review_id: str) -> None:
        book = self.get_book(user_id, isbn)
        self.reviews.delete(book, review_id)

    @staticmethod
    def _check_review(rating: Any, review_text: Optional[str]) -> None:
        if rating is None:
            raise ValidationFailure("Rating is required.")
        RatingValidator.check(rating)
        TextValidator.require(review_text, "Review text")

    def close(self) -> None:
        self.books.lookup.close()


def create_service(db_file: Optional[str] = None, http_client: Optional[HTTPClient] = None,
                   base_url: Optional[str] = None) -> CollectionService:
    """Wire a CollectionService with its storage and lookup collaborators."""
    database = Database(db_file)
    database.initialize()
    users = UserDirectory(database)
    lookup = OpenLibraryService(http_client=http_client, base_url=base_url)
    return CollectionService(
        users=users,
        books=BookCollection(lookup=lookup, users=users, database=database),
        reviews=ReviewLedger(database),
    )
