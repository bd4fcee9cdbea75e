from __future__ import annotations

import uuid
from datetime import date

from library_api.book import Book


class Author:
    """Represents an author and the books they wrote."""

    def __init__(self, first_name: str, last_name: str, date_of_birth: date, genre: str,
                 date_of_death: date | None = None, id: uuid.UUID | None = None,
                 books: list[Book] | None = None) -> None:
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self.date_of_birth = date_of_birth
        self.date_of_death = date_of_death
        self.genre = genre
        self.books = books or []

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def current_age(self, today: date | None = None) -> int:
        """Whole years from the date of birth to the date of death, or to today."""
        end = self.date_of_death or today or date.today()
        age = end.year - self.date_of_birth.year
        if (end.month, end.day) < (self.date_of_birth.month, self.date_of_birth.day):
            age -= 1
        return age

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} ({self.genre})"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth.isoformat(),
            "date_of_death": self.date_of_death.isoformat() if self.date_of_death else None,
            "genre": self.genre,
        }

    @staticmethod
    def from_dict(data: dict) -> "Author":
        # SQLite stores dates as ISO strings
        death = data.get("date_of_death")
        return Author(
            id=uuid.UUID(data["id"]) if data.get("id") else None,
            first_name=data["first_name"],
            last_name=data["last_name"],
            date_of_birth=date.fromisoformat(data["date_of_birth"]),
            date_of_death=date.fromisoformat(death) if death else None,
            genre=data["genre"],
        )
