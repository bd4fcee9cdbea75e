import logging
import math
import sqlite3
import uuid
from typing import Iterable, List, Optional, Tuple

from library_api import database
from library_api.author import Author
from library_api.book import Book
from library_api.database import get_db_connection, initialize_database
from library_api.models import AuthorDto
from library_api.resource_parameters import AuthorsResourceParameters
from library_api.services.property_mapping import (
    PropertyMappingService,
    build_order_by,
    property_mapping_service,
)

logger = logging.getLogger(__name__)

AUTHOR_COLUMNS = "id, first_name, last_name, date_of_birth, date_of_death, genre"
BOOK_COLUMNS = "id, title, description, author_id"


class PersistenceError(Exception):
    """Raised when staged changes could not be written to the store."""


class PagedList(list):
    """One page of results plus the paging metadata of the whole filtered set."""

    def __init__(self, items: Iterable, total_count: int, page_number: int, page_size: int) -> None:
        super().__init__(items)
        self.total_count = total_count
        self.page_size = page_size
        self.current_page = page_number
        self.total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Library:
    """Repository over the authors and books tables.

    Reads hit the database immediately. Writes are staged and only reach the
    database when ``save()`` commits them together in one transaction.
    """

    def __init__(self, db_file: Optional[str] = None,
                 mapping_service: PropertyMappingService = property_mapping_service) -> None:
        # Allow tests (and callers) to point the module-level helpers in
        # database.py at another file.
        if db_file:
            database.DATABASE_FILE = db_file
            initialize_database()
        self.mapping_service = mapping_service
        self._pending: List[Tuple[str, tuple]] = []

    # ------------------------- Authors ------------------------- #
    def get_authors_page(self, parameters: AuthorsResourceParameters) -> PagedList:
        """Filter, search, sort and page the authors table."""
        where: List[str] = []
        args: List = []

        if parameters.genre and parameters.genre.strip():
            where.append("genre = ?")
            args.append(parameters.genre.strip())

        if parameters.search_query and parameters.search_query.strip():
            pattern = f"%{_escape_like(parameters.search_query.strip().casefold())}%"
            where.append(
                "(casefold(first_name || ' ' || last_name) LIKE ? ESCAPE '\\' "
                "OR casefold(genre) LIKE ? ESCAPE '\\')"
            )
            args.extend([pattern, pattern])

        where_sql = f" WHERE {' AND '.join(where)}" if where else ""

        mapping = self.mapping_service.get_property_mapping(AuthorDto, Author)
        order_terms = build_order_by(parameters.order_by, mapping)
        order_sql = f" ORDER BY {', '.join(order_terms)}" if order_terms else ""

        offset = (parameters.page_number - 1) * parameters.page_size
        conn = get_db_connection()
        try:
            total_count = conn.execute(f"SELECT COUNT(*) FROM authors{where_sql}", args).fetchone()[0]
            rows = conn.execute(
                f"SELECT {AUTHOR_COLUMNS} FROM authors{where_sql}{order_sql} LIMIT ? OFFSET ?",
                [*args, parameters.page_size, offset],
            ).fetchall()
        finally:
            conn.close()

        authors = [Author.from_dict(dict(row)) for row in rows]
        return PagedList(authors, total_count, parameters.page_number, parameters.page_size)

    def get_authors(self, author_ids: Iterable[uuid.UUID]) -> List[Author]:
        ids = [str(author_id) for author_id in author_ids]
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        conn = get_db_connection()
        try:
            rows = conn.execute(
                f"SELECT {AUTHOR_COLUMNS} FROM authors WHERE id IN ({placeholders}) "
                "ORDER BY first_name, last_name",
                ids,
            ).fetchall()
            return [Author.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get_author(self, author_id: uuid.UUID) -> Optional[Author]:
        conn = get_db_connection()
        try:
            row = conn.execute(f"SELECT {AUTHOR_COLUMNS} FROM authors WHERE id = ?", (str(author_id),)).fetchone()
            return Author.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def author_exists(self, author_id: uuid.UUID) -> bool:
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT 1 FROM authors WHERE id = ?", (str(author_id),)).fetchone()
            return row is not None
        finally:
            conn.close()

    def add_author(self, author: Author) -> None:
        """Stage an insert for the author and any books attached to it."""
        author.id = uuid.uuid4()
        self._pending.append((
            "INSERT INTO authors (id, first_name, last_name, date_of_birth, date_of_death, genre) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(author.id), author.first_name, author.last_name,
                author.date_of_birth.isoformat(),
                author.date_of_death.isoformat() if author.date_of_death else None,
                author.genre,
            ),
        ))
        for book in author.books:
            book.id = uuid.uuid4()
            self._stage_book_insert(author.id, book)

    def delete_author(self, author: Author) -> None:
        # books go with it through ON DELETE CASCADE
        self._pending.append(("DELETE FROM authors WHERE id = ?", (str(author.id),)))

    # ------------------------- Books ------------------------- #
    def get_books_for_author(self, author_id: uuid.UUID) -> List[Book]:
        conn = get_db_connection()
        try:
            rows = conn.execute(
                f"SELECT {BOOK_COLUMNS} FROM books WHERE author_id = ? ORDER BY title",
                (str(author_id),),
            ).fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get_book_for_author(self, author_id: uuid.UUID, book_id: uuid.UUID) -> Optional[Book]:
        conn = get_db_connection()
        try:
            row = conn.execute(
                f"SELECT {BOOK_COLUMNS} FROM books WHERE author_id = ? AND id = ?",
                (str(author_id), str(book_id)),
            ).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def add_book_for_author(self, author_id: uuid.UUID, book: Book) -> None:
        """Stage an insert. A caller-supplied book id is kept (upserts rely on it)."""
        if book.id is None:
            book.id = uuid.uuid4()
        self._stage_book_insert(author_id, book)

    def update_book_for_author(self, book: Book) -> None:
        self._pending.append((
            "UPDATE books SET title = ?, description = ? WHERE id = ? AND author_id = ?",
            (book.title, book.description, str(book.id), str(book.author_id)),
        ))

    def delete_book(self, book: Book) -> None:
        self._pending.append(("DELETE FROM books WHERE id = ?", (str(book.id),)))

    def _stage_book_insert(self, author_id: uuid.UUID, book: Book) -> None:
        book.author_id = author_id
        self._pending.append((
            "INSERT INTO books (id, title, description, author_id) VALUES (?, ?, ?, ?)",
            (str(book.id), book.title, book.description, str(author_id)),
        ))

    # ------------------------- Persistence ------------------------- #
    def save(self) -> bool:
        """Commit every staged change in one transaction.

        Returns False (after rolling back) when the store rejects any of them.
        """
        pending, self._pending = self._pending, []
        if not pending:
            return True

        conn = get_db_connection()
        try:
            for sql, params in pending:
                conn.execute(sql, params)
            conn.commit()
            logger.info(f"Committed {len(pending)} change(s)")
            return True
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Failed to save changes, rolled back: {e}")
            return False
        finally:
            conn.close()
