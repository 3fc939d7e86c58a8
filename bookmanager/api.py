import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictInt

from bookmanager.config import configure_logging, settings
from bookmanager.exceptions import BookManagerError, ValidationFailure
from bookmanager.service import CollectionService, create_service

logger = logging.getLogger(__name__)


# --- Models ---
class UserCreateModel(BaseModel):
    name: str
    email: str


class UserModel(BaseModel):
    id: str
    name: str
    email: str
    created_at: str | None = None


class IsbnRequestModel(BaseModel):
    isbn: str = Field(description="ISBN to look up on Open Library")


class RatingUpdateModel(BaseModel):
    rating: StrictInt


class BookUpdateModel(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    authors: List[str] | None = None
    description: str | None = Field(default=None, max_length=5000)
    cover_url: str | None = Field(default=None, max_length=2048)


class BookModel(BaseModel):
    id: str
    isbn: str
    user_id: str
    title: str
    authors: List[str]
    publisher: str
    published_date: str
    description: str
    cover_url: str | None = None
    rating: int | None = None
    created_at: str | None = None


class ReviewRequestModel(BaseModel):
    rating: StrictInt
    review_text: str


class ReviewModel(BaseModel):
    id: str
    book_id: str
    rating: int
    review_text: str
    created_at: str | None = None


class ErrorModel(BaseModel):
    kind: str
    detail: str


# --- Dependencies ---
def get_service(request: Request) -> CollectionService:
    return request.app.state.service


# --- Error handlers ---
async def handle_book_manager_error(request: Request, exc: BookManagerError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"kind": exc.kind, "detail": exc.message})


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=ValidationFailure.status_code,
        content={"kind": ValidationFailure.kind, "detail": "; ".join(messages)},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"kind": "InternalError", "detail": "An unexpected error occurred."},
    )


def create_app(service: Optional[CollectionService] = None) -> FastAPI:
    """Build the API around an injected (or freshly wired) CollectionService."""
    configure_logging()
    service = service or create_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            service.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.service = service

    app.add_exception_handler(BookManagerError, handle_book_manager_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    error_responses = {
        400: {"model": ErrorModel},
        404: {"model": ErrorModel},
    }

    # --- Health ---
    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.app_version,
        }

    # --- Users ---
    @app.post("/users", response_model=UserModel, status_code=201, responses={409: {"model": ErrorModel}})
    def create_user(payload: UserCreateModel, service: CollectionService = Depends(get_service)):
        user = service.register_user(payload.name, payload.email)
        return UserModel(**user.to_dict(include_books=False))

    @app.get("/users", response_model=List[UserModel])
    def list_users(service: CollectionService = Depends(get_service)):
        return [UserModel(**u.to_dict(include_books=False)) for u in service.list_users()]

    @app.get("/users/{user_id}", response_model=UserModel, responses=error_responses)
    def get_user(user_id: str, service: CollectionService = Depends(get_service)):
        return UserModel(**service.get_user(user_id).to_dict(include_books=False))

    @app.put("/users/{user_id}", response_model=UserModel, responses=error_responses)
    def update_user(user_id: str, payload: UserCreateModel, service: CollectionService = Depends(get_service)):
        user = service.update_user(user_id, payload.name, payload.email)
        return UserModel(**user.to_dict(include_books=False))

    @app.delete("/users/{user_id}", status_code=204, responses=error_responses)
    def delete_user(user_id: str, service: CollectionService = Depends(get_service)):
        service.delete_user(user_id)
        return Response(status_code=204)

    # --- Books ---
    @app.post("/users/{user_id}/books", response_model=BookModel, status_code=201, responses=error_responses)
    def add_book(user_id: str, payload: IsbnRequestModel, service: CollectionService = Depends(get_service)):
        return BookModel(**service.add_book(user_id, payload.isbn).to_dict())

    @app.get("/users/{user_id}/books", response_model=List[BookModel], responses=error_responses)
    def list_books(user_id: str, rating: Optional[int] = Query(None, description="Only books with this rating"),
                   service: CollectionService = Depends(get_service)):
        return [BookModel(**b.to_dict()) for b in service.list_books(user_id, rating)]

    # Declared before /{isbn} so "search" is not taken for an ISBN
    @app.get("/users/{user_id}/books/search", response_model=List[BookModel], responses=error_responses)
    def search_books(user_id: str, title: Optional[str] = None, author: Optional[str] = None,
                     year: Optional[int] = None, service: CollectionService = Depends(get_service)):
        books = service.search_books(user_id, title=title, author=author, year=year)
        return [BookModel(**b.to_dict()) for b in books]

    @app.get("/users/{user_id}/books/{isbn}", response_model=BookModel, responses=error_responses)
    def get_book(user_id: str, isbn: str, service: CollectionService = Depends(get_service)):
        return BookModel(**service.get_book(user_id, isbn).to_dict())

    @app.put("/users/{user_id}/books/{isbn}", response_model=BookModel, responses=error_responses)
    def update_book_rating(user_id: str, isbn: str, payload: RatingUpdateModel,
                           service: CollectionService = Depends(get_service)):
        return BookModel(**service.update_book_rating(user_id, isbn, payload.rating).to_dict())

    @app.patch("/users/{user_id}/books/{isbn}", response_model=BookModel, responses=error_responses)
    def update_book_details(user_id: str, isbn: str, payload: BookUpdateModel,
                            service: CollectionService = Depends(get_service)):
        book = service.update_book_details(
            user_id, isbn,
            title=payload.title,
            authors=payload.authors,
            description=payload.description,
            cover_url=payload.cover_url,
        )
        return BookModel(**book.to_dict())

    @app.delete("/users/{user_id}/books/{isbn}", status_code=204, responses=error_responses)
    def delete_book(user_id: str, isbn: str, service: CollectionService = Depends(get_service)):
        service.delete_book(user_id, isbn)
        return Response(status_code=204)

    # --- Reviews ---
    @app.post("/users/{user_id}/books/{isbn}/reviews", response_model=ReviewModel, status_code=201,
              responses=error_responses)
    def add_review(user_id: str, isbn: str, payload: ReviewRequestModel,
                   service: CollectionService = Depends(get_service)):
        review = service.add_review(user_id, isbn, payload.rating, payload.review_text)
        return ReviewModel(**review.to_dict())

    @app.get("/users/{user_id}/books/{isbn}/reviews", response_model=List[ReviewModel], responses=error_responses)
    def list_reviews(user_id: str, isbn: str, service: CollectionService = Depends(get_service)):
        return [ReviewModel(**r.to_dict()) for r in service.list_reviews(user_id, isbn)]

    @app.put("/users/{user_id}/books/{isbn}/reviews/{review_id}", response_model=ReviewModel,
             responses=error_responses)
    def update_review(user_id: str, isbn: str, review_id: str, payload: ReviewRequestModel,
                      service: CollectionService = Depends(get_service)):
        review = service.update_review(user_id, isbn, review_id, payload.rating, payload.review_text)
        return ReviewModel(**review.to_dict())

    @app.delete("/users/{user_id}/books/{isbn}/reviews/{review_id}", status_code=204, responses=error_responses)
    def delete_review(user_id: str, isbn: str, review_id: str, service: CollectionService = Depends(get_service)):
        service.delete_review(user_id, isbn, review_id)
        return Response(status_code=204)
