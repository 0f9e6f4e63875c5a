"""
Tests for the book repository.

These tests cover:
1. Creation defaults and ISBN uniqueness
2. Search by title or author
3. Partial updates and the copy-count invariant
"""

import pytest
from pydantic import ValidationError

from library_api.database.book_repository import BookCreateSchema, BookUpdateSchema
from library_api.database.errors import DuplicateError, InvalidInputError, NotFoundError


class TestBookCreate:
    def test_create_with_defaults(self, book_repo):
        book = book_repo.create(
            BookCreateSchema(title="Dune", author="Frank Herbert", isbn="9780441013593")
        )

        assert book.id is not None
        assert book.total_copies == 1
        assert book.available_copies == 1
        assert book.category is None
        assert book.publication_year is None

    def test_available_defaults_to_total(self, sample_book):
        assert sample_book.total_copies == 2
        assert sample_book.available_copies == 2

    def test_available_above_total_rejected(self, book_repo):
        with pytest.raises(InvalidInputError, match="cannot exceed"):
            book_repo.create(
                BookCreateSchema(
                    title="Dune",
                    author="Frank Herbert",
                    isbn="9780441013593",
                    total_copies=1,
                    available_copies=2,
                )
            )
        assert book_repo.get_all() == []

    def test_duplicate_isbn_is_conflict(self, book_repo, sample_book):
        with pytest.raises(DuplicateError, match=sample_book.isbn):
            book_repo.create(
                BookCreateSchema(title="Another", author="Someone", isbn=sample_book.isbn)
            )

        books = book_repo.get_all()
        assert len(books) == 1
        assert books[0].title == "The Hobbit"

    @pytest.mark.parametrize("field", ["title", "author", "isbn"])
    def test_required_fields_must_not_be_blank(self, field):
        data = {"title": "Dune", "author": "Frank Herbert", "isbn": "9780441013593"}
        data[field] = "   "
        with pytest.raises(ValidationError):
            BookCreateSchema(**data)


class TestBookRead:
    def test_get_by_id(self, book_repo, sample_book):
        assert book_repo.get_by_id(sample_book.id) == sample_book

    def test_get_missing_returns_none(self, book_repo):
        assert book_repo.get_by_id(999) is None

    def test_get_all_orders_by_id(self, book_repo):
        for isbn, title in [("1", "Zebra"), ("2", "Apple")]:
            book_repo.create(BookCreateSchema(title=title, author="A", isbn=isbn))

        assert [b.title for b in book_repo.get_all()] == ["Zebra", "Apple"]


class TestBookSearch:
    @pytest.fixture
    def catalog(self, book_repo):
        for isbn, title, author in [
            ("1", "The Silmarillion", "J.R.R. Tolkien"),
            ("2", "Dune", "Frank Herbert"),
            ("3", "Brave New World", "Aldous Huxley"),
        ]:
            book_repo.create(BookCreateSchema(title=title, author=author, isbn=isbn))

    def test_matches_title_case_insensitive(self, book_repo, catalog):
        assert [b.title for b in book_repo.search("DUNE")] == ["Dune"]

    def test_matches_author_substring(self, book_repo, catalog):
        assert [b.title for b in book_repo.search("tolk")] == ["The Silmarillion"]

    def test_results_ordered_by_title(self, book_repo, catalog):
        results = book_repo.search("e")
        assert [b.title for b in results] == sorted(b.title for b in results)
        assert len(results) == 3

    def test_no_match(self, book_repo, catalog):
        assert book_repo.search("nothing like this") == []

    @pytest.mark.parametrize("term", [None, "", "   "])
    def test_blank_term_rejected(self, book_repo, term):
        with pytest.raises(InvalidInputError):
            book_repo.search(term)


class TestBookUpdate:
    def test_partial_update_changes_only_given_fields(self, book_repo, sample_book):
        updated = book_repo.update(sample_book.id, BookUpdateSchema(category="Classics"))

        assert updated.category == "Classics"
        assert updated.title == sample_book.title
        assert updated.total_copies == sample_book.total_copies

    def test_nullable_field_can_be_cleared(self, book_repo, sample_book):
        updated = book_repo.update(sample_book.id, BookUpdateSchema(publication_year=None))
        assert updated.publication_year is None

    def test_copies_merged_with_current_values(self, book_repo, sample_book):
        # total 2 -> 1 while available stays 2 would break the invariant
        with pytest.raises(InvalidInputError, match="cannot exceed"):
            book_repo.update(sample_book.id, BookUpdateSchema(total_copies=1))

        unchanged = book_repo.get_by_id(sample_book.id)
        assert unchanged.total_copies == 2
        assert unchanged.available_copies == 2

    def test_update_both_copy_counts(self, book_repo, sample_book):
        updated = book_repo.update(
            sample_book.id, BookUpdateSchema(total_copies=5, available_copies=4)
        )
        assert updated.total_copies == 5
        assert updated.available_copies == 4

    def test_empty_patch_rejected(self, book_repo, sample_book):
        with pytest.raises(InvalidInputError, match="No fields"):
            book_repo.update(sample_book.id, BookUpdateSchema())

    def test_missing_book(self, book_repo):
        with pytest.raises(NotFoundError, match="Book with ID 42 not found"):
            book_repo.update(42, BookUpdateSchema(title="Ghost"))

    def test_duplicate_isbn_on_update(self, book_repo, sample_book):
        other = book_repo.create(BookCreateSchema(title="Dune", author="F", isbn="555"))
        with pytest.raises(DuplicateError):
            book_repo.update(other.id, BookUpdateSchema(isbn=sample_book.isbn))

        assert book_repo.get_by_id(other.id).isbn == "555"

    def test_explicit_null_on_required_field_rejected(self):
        with pytest.raises(ValidationError):
            BookUpdateSchema(title=None)
