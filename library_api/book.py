from __future__ import annotations

import uuid


class Book:
    """Represents a single book written by an author."""

    def __init__(self, title: str, description: str | None = None, author_id: uuid.UUID | None = None,
                 id: uuid.UUID | None = None) -> None:
        self.id = id
        self.title = title
        self.description = description
        self.author_id = author_id

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} ({self.id})"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "title": self.title,
            "description": self.description,
            "author_id": str(self.author_id) if self.author_id else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=uuid.UUID(data["id"]) if data.get("id") else None,
            title=data["title"],
            description=data.get("description"),
            author_id=uuid.UUID(data["author_id"]) if data.get("author_id") else None,
        )
