import re
from typing import Any, Optional

from bookmanager.exceptions import InvalidRatingError, ValidationFailure

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RatingValidator:
    """Ratings are whole numbers from 1 to 5 on books and reviews alike."""

    MIN_RATING = 1
    MAX_RATING = 5

    @staticmethod
    def is_valid_rating(rating: Any) -> bool:
        # bool is an int subclass but never a rating
        if isinstance(rating, bool) or not isinstance(rating, int):
            return False
        return RatingValidator.MIN_RATING <= rating <= RatingValidator.MAX_RATING

    @staticmethod
    def check(rating: Any) -> int:
        if not RatingValidator.is_valid_rating(rating):
            raise InvalidRatingError(rating)
        return rating


class TextValidator:
    """Presence checks for free-text input."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not str(text).strip()

    @staticmethod
    def require(text: Optional[str], field_name: str) -> str:
        if TextValidator.is_blank(text):
            raise ValidationFailure(f"{field_name} must not be blank.")
        return text


class EmailValidator:

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if email is None:
            return False
        return bool(_EMAIL_RE.match(email))

    @staticmethod
    def require(email: Optional[str]) -> str:
        TextValidator.require(email, "Email")
        if not EmailValidator.is_valid_email(email):
            raise ValidationFailure(f"Email must be valid (got {email!r}).")
        return email
