import logging
import sqlite3
import uuid
from typing import List, Tuple

from library_api.config import settings

logger = logging.getLogger(__name__)

# Default database file. Tests (and callers) may override this module attribute
# before the first connection is opened.
DATABASE_FILE = settings.database_file

# (first_name, last_name, date_of_birth, genre, [(title, description), ...])
SEED_AUTHORS: List[Tuple[str, str, str, str, List[Tuple[str, str]]]] = [
    ("Stephen", "King", "1947-09-21", "Horror", [
        ("The Shining", "A family heads to an isolated hotel for the winter where an evil presence influences the father."),
        ("Misery", "A novelist is held captive by a psychotic fan after a car accident."),
        ("It", "Seven children are terrorized by an entity that exploits the fears of its victims."),
        ("The Stand", "Survivors of a deadly pandemic gather around two opposing figures."),
    ]),
    ("George", "RR Martin", "1948-09-20", "Fantasy", [
        ("A Game of Thrones", "The first novel in A Song of Ice and Fire."),
        ("The Winds of Winter", "The forthcoming sixth novel in A Song of Ice and Fire."),
        ("A Dance with Dragons", "The fifth of seven planned novels in A Song of Ice and Fire."),
    ]),
    ("Neil", "Gaiman", "1960-11-10", "Fantasy", [
        ("American Gods", "A blend of Americana, fantasy and ancient and modern mythology."),
    ]),
    ("Tom", "Lanoye", "1958-08-27", "Various", [
        ("Speechless", "A novel about the death of the author's mother."),
    ]),
    ("Douglas", "Adams", "1952-03-11", "Science fiction", [
        ("The Hitchhiker's Guide to the Galaxy", "A comic science fiction series about the last surviving man."),
    ]),
    ("Jens", "Lapidus", "1974-05-24", "Thriller", [
        ("Easy Money", "The first book in the Stockholm Noir trilogy."),
    ]),
]


def get_db_connection() -> sqlite3.Connection:
    """Open a connection to the SQLite database with foreign keys enforced."""
    conn = sqlite3.connect(DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    # Needed for ON DELETE CASCADE from authors to books
    conn.execute("PRAGMA foreign_keys = ON;")
    # SQLite's LOWER() only folds ASCII
    conn.create_function("casefold", 1, str.casefold, deterministic=True)
    return conn

def create_tables() -> None:
    """Create the authors and books tables if they do not exist yet."""
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS authors (
                id TEXT PRIMARY KEY,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                date_of_birth TEXT NOT NULL,
                date_of_death TEXT,
                genre TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                author_id TEXT NOT NULL,
                FOREIGN KEY (author_id) REFERENCES authors(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_authors_genre ON authors(genre)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_authors_name ON authors(first_name, last_name)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author_id ON books(author_id)")
        conn.commit()
    finally:
        conn.close()

def seed_database() -> int:
    """Insert the sample authors and their books into an empty store.

    Returns the number of authors inserted; 0 when the store already holds data.
    """
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM authors")
        if cursor.fetchone()[0] > 0:
            return 0

        for first_name, last_name, date_of_birth, genre, books in SEED_AUTHORS:
            author_id = str(uuid.uuid4())
            cursor.execute(
                "INSERT INTO authors (id, first_name, last_name, date_of_birth, genre) VALUES (?, ?, ?, ?, ?)",
                (author_id, first_name, last_name, date_of_birth, genre),
            )
            cursor.executemany(
                "INSERT INTO books (id, title, description, author_id) VALUES (?, ?, ?, ?)",
                [(str(uuid.uuid4()), title, description, author_id) for title, description in books],
            )
        conn.commit()
        logger.info(f"Seeded {len(SEED_AUTHORS)} authors into {DATABASE_FILE}")
        return len(SEED_AUTHORS)
    finally:
        conn.close()

def initialize_database(seed: bool = False) -> None:
    """Create the schema and optionally seed sample data."""
    create_tables()
    if seed:
        seed_database()
