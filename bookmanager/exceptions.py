"""Error taxonomy shared by the collection components and the HTTP layer.

Every error carries a machine-readable ``kind`` and the HTTP status the API
answers with. Messages are meant for end users.
"""


class BookManagerError(Exception):
    """Base class for recoverable, user-facing errors."""

    kind = "BookManagerError"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UserNotFoundError(BookManagerError):
    kind = "UserNotFound"
    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class BookNotFoundError(BookManagerError):
    kind = "BookNotFound"
    status_code = 404

    def __init__(self, isbn: str) -> None:
        super().__init__(f"Book not found for ISBN: {isbn}")
        self.isbn = isbn


class ReviewNotFoundError(BookManagerError):
    kind = "ReviewNotFound"
    status_code = 404

    def __init__(self, review_id: str) -> None:
        super().__init__(f"Review not found: {review_id}")
        self.review_id = review_id


class InvalidBookError(BookManagerError):
    """Raised when no book can be built from the lookup source."""

    kind = "InvalidBook"
    status_code = 400


class InvalidRatingError(BookManagerError):
    kind = "InvalidRating"
    status_code = 400

    def __init__(self, rating: object) -> None:
        super().__init__(f"Rating must be between 1 and 5 (got {rating!r}).")
        self.rating = rating


class UserAlreadyExistsError(BookManagerError):
    kind = "UserAlreadyExists"
    status_code = 409

    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email {email} already exists.")
        self.email = email


class ValidationFailure(BookManagerError):
    """Malformed input, e.g. a blank review text or a missing field."""

    kind = "ValidationFailure"
    status_code = 400
