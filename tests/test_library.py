import pytest

from bookmanager.exceptions import BookNotFoundError, InvalidBookError, InvalidRatingError

MATILDA_ISBN = "9780140328721"


@pytest.fixture
def shelf(service, open_library, user):
    """A user owning three books with assorted metadata."""
    open_library.add("9780261102217", {"title": "The Hobbit", "publish_date": "1937 (reprint 2013)"})
    open_library.add("9780547928227", {"title": "The Hobbit: Illustrated", "publish_date": "September 18, 2012"})
    service.add_book(user.id, MATILDA_ISBN)
    service.add_book(user.id, "9780261102217")
    service.add_book(user.id, "9780547928227")
    service.update_book_details(user.id, "9780261102217", authors=["J. R. R. Tolkien"])
    service.update_book_details(user.id, "9780547928227", authors=["J.R.R. Tolkien", "Alan Lee"])
    service.update_book_details(user.id, MATILDA_ISBN, authors=["Roald Dahl"])
    return user


def test_add_by_isbn_creates_unrated_book(service, user):
    book = service.add_book(user.id, MATILDA_ISBN)
    assert book.title == "Matilda"
    assert book.publisher == "Puffin"
    assert book.published_date == "1988"
    assert book.description == "A story about a gifted girl"
    assert book.cover_url.endswith("9780140328721-L.jpg")
    assert book.rating is None
    assert book.user_id == user.id
    assert book.authors == []


def test_added_book_is_persisted_with_owner(service, user):
    added = service.add_book(user.id, MATILDA_ISBN)
    reloaded = service.get_user(user.id)
    assert [b.id for b in reloaded.books] == [added.id]
    assert reloaded.books[0].created_at is not None


def test_cover_url_contains_isbn_without_upstream_cover(service, open_library, user):
    open_library.add("1234567890", {"title": "Coverless"})
    book = service.add_book(user.id, "1234567890")
    assert "1234567890" in book.cover_url


def test_add_with_no_data_raises_invalid_book(service, user):
    with pytest.raises(InvalidBookError, match="No data found for ISBN: 0000000000"):
        service.add_book(user.id, "0000000000")
    assert service.list_books(user.id) == []


def test_add_with_upstream_failure_raises_invalid_book(service, open_library, user):
    open_library.respond("9999999999", 503, "")
    with pytest.raises(InvalidBookError, match="Fetch failed for ISBN: 9999999999"):
        service.add_book(user.id, "9999999999")
    assert service.list_books(user.id) == []


def test_same_isbn_twice_creates_two_books(service, user):
    first = service.add_book(user.id, MATILDA_ISBN)
    second = service.add_book(user.id, MATILDA_ISBN)
    assert first.id != second.id
    assert len(service.list_books(user.id)) == 2
    # Lookups resolve to the first entry
    assert service.get_book(user.id, MATILDA_ISBN).id == first.id


def test_isbn_is_scoped_per_user(service, user):
    other = service.register_user("Grace Hopper", "grace@example.com")
    mine = service.add_book(user.id, MATILDA_ISBN)
    theirs = service.add_book(other.id, MATILDA_ISBN)
    assert mine.id != theirs.id
    assert service.get_book(other.id, MATILDA_ISBN).user_id == other.id


def test_find_by_isbn_is_case_insensitive(service, open_library, user):
    open_library.add("080442957X", {"title": "Case Test"})
    book = service.add_book(user.id, "080442957X")
    assert service.get_book(user.id, "080442957x").id == book.id


def test_find_missing_isbn(service, user):
    with pytest.raises(BookNotFoundError):
        service.get_book(user.id, "nope")


@pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
def test_update_rating_is_persisted_and_idempotent(service, user, rating):
    service.add_book(user.id, MATILDA_ISBN)
    service.update_book_rating(user.id, MATILDA_ISBN, rating)
    assert service.get_book(user.id, MATILDA_ISBN).rating == rating
    service.update_book_rating(user.id, MATILDA_ISBN, rating)
    assert service.get_book(user.id, MATILDA_ISBN).rating == rating


@pytest.mark.parametrize("rating", [0, 6, -1, 100, True, "3", 2.5])
def test_update_rating_rejects_out_of_range(service, user, rating):
    service.add_book(user.id, MATILDA_ISBN)
    service.update_book_rating(user.id, MATILDA_ISBN, 4)
    with pytest.raises(InvalidRatingError):
        service.update_book_rating(user.id, MATILDA_ISBN, rating)
    assert service.get_book(user.id, MATILDA_ISBN).rating == 4


def test_invalid_rating_checked_before_book_lookup(service, user):
    with pytest.raises(InvalidRatingError):
        service.update_book_rating(user.id, "not-in-collection", 6)


def test_update_details_only_touches_given_fields(service, user):
    service.add_book(user.id, MATILDA_ISBN)
    book = service.update_book_details(user.id, MATILDA_ISBN, authors=["Roald Dahl"])
    assert book.authors == ["Roald Dahl"]
    assert book.title == "Matilda"
    reloaded = service.get_book(user.id, MATILDA_ISBN)
    assert reloaded.authors == ["Roald Dahl"]
    assert reloaded.description == "A story about a gifted girl"


def test_delete_removes_book_and_reviews(service, user, db_file):
    book = service.add_book(user.id, MATILDA_ISBN)
    service.add_review(user.id, MATILDA_ISBN, 5, "Wonderful")
    service.add_review(user.id, MATILDA_ISBN, 4, "Still great")

    service.delete_book(user.id, MATILDA_ISBN)

    with pytest.raises(BookNotFoundError):
        service.get_book(user.id, MATILDA_ISBN)
    with pytest.raises(BookNotFoundError):
        service.list_reviews(user.id, MATILDA_ISBN)

    conn = service.reviews.database.connect()
    try:
        count = conn.execute("SELECT COUNT(*) FROM reviews WHERE book_id = ?", (book.id,)).fetchone()[0]
    finally:
        conn.close()
    assert count == 0


def test_delete_missing_book(service, user):
    with pytest.raises(BookNotFoundError):
        service.delete_book(user.id, MATILDA_ISBN)


def test_list_without_filter_keeps_insertion_order(service, shelf):
    isbns = [b.isbn for b in service.list_books(shelf.id)]
    assert isbns == [MATILDA_ISBN, "9780261102217", "9780547928227"]


def test_list_filtered_by_rating(service, shelf):
    service.update_book_rating(shelf.id, MATILDA_ISBN, 5)
    service.update_book_rating(shelf.id, "9780261102217", 3)

    assert [b.isbn for b in service.list_books(shelf.id, 5)] == [MATILDA_ISBN]
    assert [b.isbn for b in service.list_books(shelf.id, 3)] == ["9780261102217"]
    # Unrated books never match
    assert service.list_books(shelf.id, 1) == []


@pytest.mark.parametrize("rating", [0, 6])
def test_list_filtered_rejects_out_of_range(service, shelf, rating):
    with pytest.raises(InvalidRatingError):
        service.list_books(shelf.id, rating)


def test_search_without_criteria_returns_everything(service, shelf):
    assert [b.id for b in service.search_books(shelf.id)] == [b.id for b in service.list_books(shelf.id)]


def test_search_title_is_case_insensitive_substring(service, shelf):
    results = service.search_books(shelf.id, title="hobbit")
    assert {b.isbn for b in results} == {"9780261102217", "9780547928227"}


def test_search_author_matches_any_author(service, shelf):
    assert [b.isbn for b in service.search_books(shelf.id, author="alan")] == ["9780547928227"]
    assert len(service.search_books(shelf.id, author="TOLKIEN")) == 2


def test_search_year_is_substring_of_published_date(service, shelf):
    assert [b.isbn for b in service.search_books(shelf.id, year=2013)] == ["9780261102217"]
    assert [b.isbn for b in service.search_books(shelf.id, year=1937)] == ["9780261102217"]
    assert [b.isbn for b in service.search_books(shelf.id, year=1988)] == [MATILDA_ISBN]


def test_search_criteria_are_combined(service, shelf):
    results = service.search_books(shelf.id, title="hobbit", author="tolkien", year=2012)
    assert [b.isbn for b in results] == ["9780547928227"]


@pytest.mark.parametrize("criteria", [
    {"title": "the"},
    {"author": "dahl"},
    {"year": 19},
    {"title": "zzz"},
])
def test_single_criterion_never_grows_results(service, shelf, criteria):
    everything = service.search_books(shelf.id)
    narrowed = service.search_books(shelf.id, **criteria)
    assert len(narrowed) <= len(everything)
    assert {b.id for b in narrowed} <= {b.id for b in everything}
