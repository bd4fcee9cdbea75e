from datetime import date

import pytest
from fastapi.testclient import TestClient

from library_api.author import Author
from library_api.library import Library


@pytest.fixture
def lib(tmp_path):
    # Each test gets its own database file
    db_file = str(tmp_path / "library_test.db")
    yield Library(db_file=db_file)


@pytest.fixture
def add_author(lib):
    """Insert an author straight through the repository and return it."""
    def _add(first_name, last_name, genre="Fantasy", date_of_birth=date(1960, 1, 1), books=None):
        author = Author(first_name, last_name, date_of_birth, genre, books=books or [])
        lib.add_author(author)
        assert lib.save()
        return author
    return _add


@pytest.fixture
def client(lib):
    from library_api.api import app
    return TestClient(app)
