"""Transfer objects for the HTTP surface and the explicit entity <-> DTO mappings."""

from __future__ import annotations

import uuid
from datetime import date
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from library_api.author import Author
from library_api.book import Book


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# --- Output models ---
class AuthorDto(CamelModel):
    id: uuid.UUID
    name: str
    age: int
    genre: str

class BookDto(CamelModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    author_id: uuid.UUID


# --- Input models ---
class BookForManipulationDto(CamelModel):
    title: str = Field(..., min_length=1, max_length=100, description="Title is required")
    description: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _description_differs_from_title(self) -> "BookForManipulationDto":
        if self.description is not None and self.title == self.description:
            raise ValueError("The provided description should be different from the title.")
        return self

class BookForCreationDto(BookForManipulationDto):
    pass

class BookForUpdateDto(BookForManipulationDto):
    description: str = Field(..., max_length=500, description="Description is required when updating")

class AuthorForCreationDto(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    date_of_death: date | None = None
    genre: str = Field(..., min_length=1, max_length=50)
    books: List[BookForCreationDto] = Field(default_factory=list)


# --- Mapping functions ---
def author_to_dto(author: Author) -> AuthorDto:
    return AuthorDto(
        id=author.id,
        name=author.name,
        age=author.current_age(),
        genre=author.genre,
    )

def author_from_creation_dto(dto: AuthorForCreationDto) -> Author:
    return Author(
        first_name=dto.first_name,
        last_name=dto.last_name,
        date_of_birth=dto.date_of_birth,
        date_of_death=dto.date_of_death,
        genre=dto.genre,
        books=[book_from_dto(b) for b in dto.books],
    )

def book_to_dto(book: Book) -> BookDto:
    return BookDto(
        id=book.id,
        title=book.title,
        description=book.description,
        author_id=book.author_id,
    )

def book_from_dto(dto: BookForManipulationDto, id: uuid.UUID | None = None) -> Book:
    return Book(title=dto.title, description=dto.description, id=id)

def book_to_update_payload(book: Book | None = None) -> dict:
    """Wire-shaped dict of the updatable fields, used as a JSON Patch target.

    With no book the fields are present but empty, so ``replace`` operations
    still apply when a patch upserts a new book.
    """
    if book is None:
        return {"title": None, "description": None}
    return {"title": book.title, "description": book.description}

def apply_update_to_book(dto: BookForUpdateDto, book: Book) -> Book:
    book.title = dto.title
    book.description = dto.description
    return book
