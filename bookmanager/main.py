import json
import subprocess
import sys
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bookmanager.book import Book
from bookmanager.config import configure_logging, settings
from bookmanager.exceptions import BookManagerError
from bookmanager.review import Review
from bookmanager.service import CollectionService, create_service
from bookmanager.user import User

APP_NAME = "Book Manager CLI"
OUTPUT_MODES = {"plain", "json", "rich"}

console = Console()

app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(None, "--db", help="SQLite database file (default: LIBRARY_DB_FILE)"),
    output: str = typer.Option("plain", "--output", "-o", help="Output format: plain | json | rich"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log lookups and storage operations"),
):
    """Global CLI options (database file, output mode)."""
    configure_logging("INFO" if verbose else "WARNING")
    mode = (output or "").lower().strip()
    ctx.obj = {
        "db_file": db or settings.database_file,
        "output": mode if mode in OUTPUT_MODES else "plain",
    }


def _service(ctx: typer.Context) -> CollectionService:
    return create_service(db_file=ctx.obj["db_file"])


def _call(ctx: typer.Context, operation: str, *args, **kwargs):
    """Run one CollectionService operation; user-facing errors end the command."""
    service = _service(ctx)
    try:
        return getattr(service, operation)(*args, **kwargs)
    except BookManagerError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    finally:
        service.close()


# --- Output helpers ---
def _print_users(ctx: typer.Context, users: List[User]) -> None:
    mode = ctx.obj["output"]
    if not users:
        print("No users found.")
        return
    if mode == "json":
        print(json.dumps([u.to_dict(include_books=False) for u in users], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Users", box=box.SIMPLE, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name")
        table.add_column("Email")
        table.add_column("Books", justify="right")
        for u in users:
            table.add_row(u.id, u.name, u.email, str(len(u.books)))
        console.print(table)
    else:
        for u in users:
            print(f"{u.id} - {u.name} <{u.email}> ({len(u.books)} books)")


def _print_books(ctx: typer.Context, books: List[Book]) -> None:
    mode = ctx.obj["output"]
    if not books:
        print("No books in collection.")
        return
    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title")
        table.add_column("Publisher")
        table.add_column("Published")
        table.add_column("Rating", justify="center")
        for b in books:
            table.add_row(b.isbn, b.title, b.publisher, b.published_date, str(b.rating or "-"))
        console.print(table)
    else:
        for b in books:
            rating = f" [{b.rating}/5]" if b.rating else ""
            print(f"{b.isbn} - {b.title or '(untitled)'}{rating}")


def _print_book(ctx: typer.Context, book: Book) -> None:
    mode = ctx.obj["output"]
    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
        return
    lines = [
        f"Title: {book.title}",
        f"Authors: {', '.join(book.authors) or '-'}",
        f"Publisher: {book.publisher or '-'}",
        f"Published: {book.published_date or '-'}",
        f"ISBN: {book.isbn}",
        f"Rating: {book.rating or '-'}",
        f"Cover: {book.cover_url}",
    ]
    if mode == "rich":
        console.print(Panel.fit("\n".join(lines), title="Book", border_style="blue"))
    else:
        print("Book Found")
        for line in lines:
            print(line)


def _print_reviews(ctx: typer.Context, reviews: List[Review]) -> None:
    mode = ctx.obj["output"]
    if not reviews:
        print("No reviews for this book.")
        return
    if mode == "json":
        print(json.dumps([r.to_dict() for r in reviews], ensure_ascii=False))
        return
    for r in reviews:
        print(f"{r.id} - {r.rating}/5: {r.review_text}")


# --- Users ---
@app.command("users")
def cli_users(ctx: typer.Context):
    """List all users."""
    _print_users(ctx, _call(ctx, "list_users"))


@app.command("add-user")
def cli_add_user(ctx: typer.Context, name: str, email: str):
    """Register a new user."""
    user = _call(ctx, "register_user", name, email)
    print(f"Registered user: {user.name} ({user.id})")


# --- Books ---
@app.command("add")
def cli_add(ctx: typer.Context, user_id: str, isbn: str):
    """Add a book to a user's collection by ISBN via Open Library."""
    book = _call(ctx, "add_book", user_id, isbn)
    print(f"Successfully added: {book.title} (ISBN: {book.isbn})")


@app.command("list")
def cli_list(ctx: typer.Context, user_id: str,
             rating: Optional[int] = typer.Option(None, "--rating", "-r", help="Only books with this rating")):
    """List a user's books, optionally filtered by rating."""
    _print_books(ctx, _call(ctx, "list_books", user_id, rating))


@app.command("find")
def cli_find(ctx: typer.Context, user_id: str, isbn: str):
    """Show the details of one book."""
    _print_book(ctx, _call(ctx, "get_book", user_id, isbn))


@app.command("rate")
def cli_rate(ctx: typer.Context, user_id: str, isbn: str, rating: int):
    """Set a book's rating (1-5)."""
    book = _call(ctx, "update_book_rating", user_id, isbn, rating)
    print(f"Rated {book.title or book.isbn}: {book.rating}/5")


@app.command("remove")
def cli_remove(ctx: typer.Context, user_id: str, isbn: str):
    """Remove a book and its reviews."""
    _call(ctx, "delete_book", user_id, isbn)
    print(f"Book with ISBN {isbn} has been removed.")


@app.command("search")
def cli_search(
    ctx: typer.Context,
    user_id: str,
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Title contains"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="An author contains"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Published date contains year"),
):
    """Search a user's books by title, author and year."""
    _print_books(ctx, _call(ctx, "search_books", user_id, title=title, author=author, year=year))


# --- Reviews ---
@app.command("review")
def cli_review(ctx: typer.Context, user_id: str, isbn: str, rating: int, text: str):
    """Add a review to a book."""
    review = _call(ctx, "add_review", user_id, isbn, rating, text)
    print(f"Review added: {review.id}")


@app.command("reviews")
def cli_reviews(ctx: typer.Context, user_id: str, isbn: str):
    """List the reviews of a book."""
    _print_reviews(ctx, _call(ctx, "list_reviews", user_id, isbn))


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart on code changes")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "bookmanager.api:create_app",
        "--factory",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    subprocess.run(args)


if __name__ == "__main__":
    app()
