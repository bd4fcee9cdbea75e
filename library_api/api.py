import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import jsonpatch
import jsonpointer
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from library_api.author import Author
from library_api.config import settings
from library_api.database import get_db_connection, initialize_database
from library_api.library import Library, PagedList, PersistenceError
from library_api.models import (
    AuthorDto,
    AuthorForCreationDto,
    BookDto,
    BookForCreationDto,
    BookForUpdateDto,
    apply_update_to_book,
    author_from_creation_dto,
    author_to_dto,
    book_from_dto,
    book_to_dto,
    book_to_update_payload,
)
from library_api.resource_parameters import AuthorsResourceParameters
from library_api.services.data_shaper import shape_data, shape_item
from library_api.services.property_mapping import property_mapping_service
from library_api.services.type_helper import type_helper_service

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema (and optional sample data) before the first request
    initialize_database(seed=settings.seed_on_startup)
    yield

app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)


def get_library() -> Library:
    """Dependency: one repository (and one set of staged changes) per request."""
    return Library()


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected fault happened. Try again later."},
    )

# --- Health check ---
@app.get("/health")
def health():
    """Lightweight liveness probe that also tries the database."""
    db_ok = True
    try:
        conn = get_db_connection()
        conn.execute("SELECT 1")
        conn.close()
    except Exception:
        db_ok = False
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
        "version": settings.app_version,
    }

# --- Helper functions ---
def _parse_ids(ids: str) -> List[uuid.UUID]:
    """Parse a comma-separated id list; raises 400 when it is blank or any id is malformed."""
    try:
        parsed = [uuid.UUID(part.strip()) for part in ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="Ids must be a comma-separated list of GUIDs.")
    if not parsed:
        raise HTTPException(status_code=400, detail="At least one author id is required.")
    return parsed

def _create_authors_resource_uri(request: Request, parameters: AuthorsResourceParameters,
                                 page_number: int) -> str:
    url = request.url_for("GetAuthors").include_query_params(**parameters.to_query_params(page_number))
    return str(url)

def _pagination_metadata(request: Request, parameters: AuthorsResourceParameters,
                         authors: PagedList) -> Dict[str, Any]:
    previous_link = (
        _create_authors_resource_uri(request, parameters, authors.current_page - 1)
        if authors.has_previous else None
    )
    next_link = (
        _create_authors_resource_uri(request, parameters, authors.current_page + 1)
        if authors.has_next else None
    )
    return {
        "totalCount": authors.total_count,
        "pageSize": authors.page_size,
        "currentPage": authors.current_page,
        "totalPages": authors.total_pages,
        "previousPageLink": previous_link,
        "nextPageLink": next_link,
    }

def _created(request: Request, route_name: str, content: Any, **path_params: str) -> JSONResponse:
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(content),
        headers={"Location": str(request.url_for(route_name, **path_params))},
    )

def _require_author(library: Library, author_id: uuid.UUID) -> None:
    if not library.author_exists(author_id):
        raise HTTPException(status_code=404, detail="Author not found.")

# --- Authors ---
@app.get("/api/authors", name="GetAuthors")
def get_authors(
    request: Request,
    response: Response,
    parameters: AuthorsResourceParameters = Depends(),
    library: Library = Depends(get_library),
) -> List[Dict[str, Any]]:
    """Paged, filtered, searchable, sortable and shapeable list of authors."""
    if not property_mapping_service.valid_mapping_exists_for(AuthorDto, Author, parameters.order_by):
        logger.warning(f"Rejected orderBy={parameters.order_by!r}")
        raise HTTPException(status_code=400, detail=f"Cannot order authors by {parameters.order_by!r}.")

    if not type_helper_service.type_has_properties(AuthorDto, parameters.fields):
        logger.warning(f"Rejected fields={parameters.fields!r}")
        raise HTTPException(status_code=400, detail=f"Unknown fields requested: {parameters.fields!r}.")

    authors = library.get_authors_page(parameters)

    metadata = _pagination_metadata(request, parameters, authors)
    response.headers["X-Pagination"] = json.dumps(metadata)

    return shape_data([author_to_dto(a) for a in authors], parameters.fields)

@app.get("/api/authors/{id}", name="GetAuthor")
def get_author(
    id: uuid.UUID,
    fields: Optional[str] = Query(None, description="Comma-separated fields to include"),
    library: Library = Depends(get_library),
) -> Dict[str, Any]:
    """A single author, optionally shaped to the requested fields."""
    if not type_helper_service.type_has_properties(AuthorDto, fields):
        raise HTTPException(status_code=400, detail=f"Unknown fields requested: {fields!r}.")

    author = library.get_author(id)
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found.")
    return shape_item(author_to_dto(author), fields)

@app.post("/api/authors", status_code=201, response_model=AuthorDto)
def create_author(
    request: Request,
    author: Optional[AuthorForCreationDto] = Body(None),
    library: Library = Depends(get_library),
):
    """Create an author, together with any books in the payload."""
    if author is None:
        raise HTTPException(status_code=400, detail="An author payload is required.")

    author_entity = author_from_creation_dto(author)
    library.add_author(author_entity)
    if not library.save():
        raise PersistenceError("Creating an author failed on save.")

    logger.info(f"Created author {author_entity.id} with {len(author_entity.books)} book(s)")
    return _created(request, "GetAuthor", author_to_dto(author_entity), id=str(author_entity.id))

@app.post("/api/authors/{id}")
def block_author_creation(id: uuid.UUID, library: Library = Depends(get_library)):
    """POSTing to an existing author's URI is a conflict, otherwise not found."""
    if library.author_exists(id):
        raise HTTPException(status_code=409, detail="Author already exists.")
    raise HTTPException(status_code=404, detail="Author not found.")

@app.delete("/api/authors/{id}", status_code=204)
def delete_author(id: uuid.UUID, library: Library = Depends(get_library)):
    """Delete an author; their books go with them."""
    author = library.get_author(id)
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found.")

    library.delete_author(author)
    if not library.save():
        raise PersistenceError(f"Deleting author {id} failed on save.")

    logger.info(f"Deleted author {id}")
    return Response(status_code=204)

# --- Author collections ---
@app.post("/api/authorcollections", status_code=201, response_model=List[AuthorDto])
def create_author_collection(
    request: Request,
    author_collection: Optional[List[AuthorForCreationDto]] = Body(None),
    library: Library = Depends(get_library),
):
    """Create several authors at once; all of them are saved or none are."""
    if author_collection is None:
        raise HTTPException(status_code=400, detail="An array of authors is required.")

    author_entities = [author_from_creation_dto(a) for a in author_collection]
    for author_entity in author_entities:
        library.add_author(author_entity)

    if not library.save():
        raise PersistenceError("Creating a collection of authors failed on save.")

    authors_to_return = [author_to_dto(a) for a in author_entities]
    ids_as_string = ",".join(str(a.id) for a in authors_to_return)
    logger.info(f"Created author collection ({ids_as_string})")
    return _created(request, "GetAuthorCollection", authors_to_return, ids=ids_as_string)

@app.get("/api/authorcollections/({ids})", name="GetAuthorCollection", response_model=List[AuthorDto])
def get_author_collection(ids: str, library: Library = Depends(get_library)):
    """Authors for a parenthesised, comma-separated id list; 404 unless all exist."""
    author_ids = _parse_ids(ids)
    author_entities = library.get_authors(author_ids)
    if len(author_ids) != len(author_entities):
        raise HTTPException(status_code=404, detail="One or more authors were not found.")
    return [author_to_dto(a) for a in author_entities]

@app.delete("/api/authorcollections/({ids})", status_code=204)
def delete_author_collection(ids: str, library: Library = Depends(get_library)):
    """Delete several authors; nothing is deleted unless every id exists."""
    author_ids = _parse_ids(ids)
    author_entities = library.get_authors(author_ids)
    if len(author_ids) != len(author_entities):
        raise HTTPException(status_code=404, detail="One or more authors were not found.")

    for author_entity in author_entities:
        library.delete_author(author_entity)

    if not library.save():
        raise PersistenceError("Deleting a collection of authors failed on save.")

    logger.info(f"Deleted author collection ({ids})")
    return Response(status_code=204)

# --- Books ---
@app.get("/api/authors/{author_id}/books", response_model=List[BookDto])
def get_books_for_author(author_id: uuid.UUID, library: Library = Depends(get_library)):
    """All books of an author."""
    _require_author(library, author_id)
    return [book_to_dto(b) for b in library.get_books_for_author(author_id)]

@app.get("/api/authors/{author_id}/books/{id}", name="GetBookForAuthor", response_model=BookDto)
def get_book_for_author(author_id: uuid.UUID, id: uuid.UUID, library: Library = Depends(get_library)):
    """A single book of an author."""
    _require_author(library, author_id)
    book = library.get_book_for_author(author_id, id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found.")
    return book_to_dto(book)

@app.post("/api/authors/{author_id}/books", status_code=201, response_model=BookDto)
def create_book_for_author(
    request: Request,
    author_id: uuid.UUID,
    book: Optional[BookForCreationDto] = Body(None),
    library: Library = Depends(get_library),
):
    """Add a book to an author."""
    if book is None:
        raise HTTPException(status_code=400, detail="A book payload is required.")
    _require_author(library, author_id)

    book_entity = book_from_dto(book)
    library.add_book_for_author(author_id, book_entity)
    if not library.save():
        raise PersistenceError(f"Creating a book for author {author_id} failed on save.")

    return _created(request, "GetBookForAuthor", book_to_dto(book_entity),
                    author_id=str(author_id), id=str(book_entity.id))

@app.delete("/api/authors/{author_id}/books/{id}", status_code=204)
def delete_book_for_author(author_id: uuid.UUID, id: uuid.UUID, library: Library = Depends(get_library)):
    """Delete one of an author's books."""
    _require_author(library, author_id)
    book = library.get_book_for_author(author_id, id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found.")

    library.delete_book(book)
    if not library.save():
        raise PersistenceError(f"Deleting book {id} for author {author_id} failed on save.")
    return Response(status_code=204)

def _upsert_book(request: Request, library: Library, author_id: uuid.UUID, id: uuid.UUID,
                 update: BookForUpdateDto) -> JSONResponse:
    """Create a missing book under the caller-supplied id."""
    book_to_add = book_from_dto(update, id=id)
    library.add_book_for_author(author_id, book_to_add)
    if not library.save():
        raise PersistenceError(f"Upserting book {id} for author {author_id} failed on save.")

    logger.info(f"Upserted book {id} for author {author_id}")
    return _created(request, "GetBookForAuthor", book_to_dto(book_to_add),
                    author_id=str(author_id), id=str(id))

@app.put("/api/authors/{author_id}/books/{id}", status_code=204)
def update_book_for_author(
    request: Request,
    author_id: uuid.UUID,
    id: uuid.UUID,
    book: Optional[BookForUpdateDto] = Body(None),
    library: Library = Depends(get_library),
):
    """Full update of a book; creates it with this id when it does not exist."""
    if book is None:
        raise HTTPException(status_code=400, detail="A book payload is required.")
    _require_author(library, author_id)

    book_from_repo = library.get_book_for_author(author_id, id)
    if book_from_repo is None:
        return _upsert_book(request, library, author_id, id, book)

    apply_update_to_book(book, book_from_repo)
    library.update_book_for_author(book_from_repo)
    if not library.save():
        raise PersistenceError(f"Updating book {id} for author {author_id} failed on save.")
    return Response(status_code=204)

@app.patch("/api/authors/{author_id}/books/{id}", status_code=204)
def partially_update_book_for_author(
    request: Request,
    author_id: uuid.UUID,
    id: uuid.UUID,
    patch_doc: Optional[List[Dict[str, Any]]] = Body(None),
    library: Library = Depends(get_library),
):
    """JSON Patch (RFC 6902) update of a book; creates it when it does not exist."""
    if patch_doc is None:
        raise HTTPException(status_code=400, detail="A JSON Patch document is required.")
    _require_author(library, author_id)

    book_from_repo = library.get_book_for_author(author_id, id)

    try:
        patched = jsonpatch.JsonPatch(patch_doc).apply(book_to_update_payload(book_from_repo))
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as e:
        raise HTTPException(status_code=400, detail=f"Invalid patch document: {e}")

    try:
        book_to_patch = BookForUpdateDto.model_validate(patched)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=jsonable_encoder(e.errors(include_url=False, include_context=False)),
        )

    if book_from_repo is None:
        return _upsert_book(request, library, author_id, id, book_to_patch)

    apply_update_to_book(book_to_patch, book_from_repo)
    library.update_book_for_author(book_from_repo)
    if not library.save():
        raise PersistenceError(f"Patching book {id} for author {author_id} failed on save.")
    return Response(status_code=204)
