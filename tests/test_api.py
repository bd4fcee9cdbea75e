import json
import uuid
from datetime import date

import pytest

from library_api.book import Book
from library_api.library import Library


AUTHOR_PAYLOAD = {
    "firstName": "Neil",
    "lastName": "Gaiman",
    "dateOfBirth": "1960-11-10",
    "genre": "Fantasy",
}


def _pagination(response):
    return json.loads(response.headers["X-Pagination"])


# --- Authors ---
def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["db"] is True

def test_get_authors_empty(client):
    response = client.get("/api/authors")
    assert response.status_code == 200
    assert response.json() == []
    metadata = _pagination(response)
    assert metadata["totalCount"] == 0
    assert metadata["pageSize"] == 10
    assert metadata["currentPage"] == 1
    assert metadata["totalPages"] == 0
    assert metadata["previousPageLink"] is None
    assert metadata["nextPageLink"] is None

def test_get_authors_returns_every_field_by_default(client, add_author):
    author = add_author("Neil", "Gaiman", genre="Fantasy", date_of_birth=date(1960, 11, 10))
    body = client.get("/api/authors").json()
    assert body == [{
        "id": str(author.id),
        "name": "Neil Gaiman",
        "age": author.current_age(),
        "genre": "Fantasy",
    }]

def test_get_authors_shapes_fields(client, add_author):
    add_author("Neil", "Gaiman")
    response = client.get("/api/authors", params={"fields": "name,Genre"})
    assert response.status_code == 200
    assert response.json() == [{"name": "Neil Gaiman", "genre": "Fantasy"}]

def test_get_authors_rejects_unknown_sort_field(client):
    response = client.get("/api/authors", params={"orderBy": "title"})
    assert response.status_code == 400
    assert "X-Pagination" not in response.headers

def test_get_authors_rejects_unknown_field(client):
    response = client.get("/api/authors", params={"fields": "id,title"})
    assert response.status_code == 400

def test_get_authors_page_links_keep_parameters(client, add_author):
    for i in range(5):
        add_author(f"Author{i}", "Test", genre="Horror")

    response = client.get("/api/authors", params={
        "genre": "Horror", "searchQuery": "test", "orderBy": "name desc",
        "fields": "id", "pageNumber": 2, "pageSize": 2,
    })
    assert response.status_code == 200
    assert len(response.json()) == 2

    metadata = _pagination(response)
    assert metadata["totalCount"] == 5
    assert metadata["totalPages"] == 3
    assert metadata["currentPage"] == 2

    for link, page in ((metadata["previousPageLink"], 1), (metadata["nextPageLink"], 3)):
        assert link.startswith("http://testserver/api/authors?")
        assert f"pageNumber={page}" in link
        assert "pageSize=2" in link
        assert "genre=Horror" in link
        assert "searchQuery=test" in link
        assert "orderBy=name+desc" in link
        assert "fields=id" in link

def test_get_authors_page_size_is_capped(client, add_author):
    for i in range(22):
        add_author(f"Author{i:02d}", "Test")
    response = client.get("/api/authors", params={"pageSize": 50})
    assert len(response.json()) == 20
    assert _pagination(response)["pageSize"] == 20

def test_get_author(client, add_author):
    author = add_author("Neil", "Gaiman")
    response = client.get(f"/api/authors/{author.id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Neil Gaiman"

def test_get_author_shaped(client, add_author):
    author = add_author("Neil", "Gaiman")
    response = client.get(f"/api/authors/{author.id}", params={"fields": "genre"})
    assert response.json() == {"genre": "Fantasy"}

def test_get_author_unknown_field(client, add_author):
    author = add_author("Neil", "Gaiman")
    assert client.get(f"/api/authors/{author.id}", params={"fields": "books"}).status_code == 400

def test_get_author_not_found(client):
    assert client.get(f"/api/authors/{uuid.uuid4()}").status_code == 404

def test_create_author(client):
    response = client.post("/api/authors", json=AUTHOR_PAYLOAD)
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Neil Gaiman"
    assert body["genre"] == "Fantasy"
    assert response.headers["Location"] == f"http://testserver/api/authors/{body['id']}"
    assert client.get(response.headers["Location"]).status_code == 200

def test_create_author_with_books(client):
    payload = {**AUTHOR_PAYLOAD, "books": [
        {"title": "American Gods", "description": "Old and new gods"},
        {"title": "Coraline"},
    ]}
    response = client.post("/api/authors", json=payload)
    assert response.status_code == 201
    author_id = response.json()["id"]

    books = client.get(f"/api/authors/{author_id}/books").json()
    assert [b["title"] for b in books] == ["American Gods", "Coraline"]
    assert all(b["authorId"] == author_id for b in books)

def test_create_author_without_payload(client):
    assert client.post("/api/authors").status_code == 400

def test_create_author_invalid_payload(client):
    response = client.post("/api/authors", json={"firstName": "Neil"})
    assert response.status_code == 422

@pytest.mark.parametrize("field", ["firstName", "lastName", "genre"])
def test_create_author_blank_name_or_genre(client, field):
    response = client.post("/api/authors", json={**AUTHOR_PAYLOAD, field: "   "})
    assert response.status_code == 422
    assert client.get("/api/authors").json() == []

def test_create_author_trims_names(client):
    response = client.post("/api/authors", json={**AUTHOR_PAYLOAD, "firstName": "  Neil ", "genre": " Fantasy"})
    assert response.status_code == 201
    assert response.json()["name"] == "Neil Gaiman"
    assert response.json()["genre"] == "Fantasy"

def test_create_author_save_failure_is_500(client, monkeypatch):
    monkeypatch.setattr(Library, "save", lambda self: False)
    response = client.post("/api/authors", json=AUTHOR_PAYLOAD)
    assert response.status_code == 500

def test_post_to_existing_author_is_conflict(client, add_author):
    author = add_author("Neil", "Gaiman")
    assert client.post(f"/api/authors/{author.id}").status_code == 409
    assert client.post(f"/api/authors/{uuid.uuid4()}").status_code == 404

def test_delete_author(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline")])
    response = client.delete(f"/api/authors/{author.id}")
    assert response.status_code == 204
    assert client.get(f"/api/authors/{author.id}").status_code == 404
    assert client.get(f"/api/authors/{author.id}/books").status_code == 404

def test_delete_author_not_found(client):
    assert client.delete(f"/api/authors/{uuid.uuid4()}").status_code == 404

# --- Author collections ---
def test_create_and_get_author_collection(client):
    payload = [AUTHOR_PAYLOAD, {**AUTHOR_PAYLOAD, "firstName": "Terry", "lastName": "Pratchett"}]
    response = client.post("/api/authorcollections", json=payload)
    assert response.status_code == 201
    ids = [a["id"] for a in response.json()]
    assert response.headers["Location"] == f"http://testserver/api/authorcollections/({','.join(ids)})"

    fetched = client.get(response.headers["Location"])
    assert fetched.status_code == 200
    assert sorted(a["id"] for a in fetched.json()) == sorted(ids)

def test_create_author_collection_without_payload(client):
    assert client.post("/api/authorcollections").status_code == 400

def test_get_author_collection_with_missing_id(client, add_author):
    author = add_author("Neil", "Gaiman")
    response = client.get(f"/api/authorcollections/({author.id},{uuid.uuid4()})")
    assert response.status_code == 404

def test_get_author_collection_with_malformed_id(client):
    assert client.get("/api/authorcollections/(not-a-guid)").status_code == 400

@pytest.mark.parametrize("ids", [" ", " , "])
def test_author_collection_with_blank_ids(client, add_author, ids):
    add_author("Neil", "Gaiman")
    assert client.get(f"/api/authorcollections/({ids})").status_code == 400
    assert client.delete(f"/api/authorcollections/({ids})").status_code == 400
    assert len(client.get("/api/authors").json()) == 1

# --- Books ---
def test_get_books_for_unknown_author(client):
    assert client.get(f"/api/authors/{uuid.uuid4()}/books").status_code == 404

def test_create_and_get_book(client, add_author):
    author = add_author("Neil", "Gaiman")
    response = client.post(f"/api/authors/{author.id}/books",
                           json={"title": "Stardust", "description": "A fallen star"})
    assert response.status_code == 201
    book = response.json()
    assert book["authorId"] == str(author.id)
    assert response.headers["Location"].endswith(f"/api/authors/{author.id}/books/{book['id']}")

    fetched = client.get(f"/api/authors/{author.id}/books/{book['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == book

def test_create_book_for_unknown_author(client):
    response = client.post(f"/api/authors/{uuid.uuid4()}/books", json={"title": "Stardust"})
    assert response.status_code == 404

def test_create_book_without_payload(client, add_author):
    author = add_author("Neil", "Gaiman")
    assert client.post(f"/api/authors/{author.id}/books").status_code == 400

@pytest.mark.parametrize("payload", [
    {"title": "Same", "description": "Same"},
    {"description": "No title"},
    {"title": "x" * 101},
    {"title": "Fine", "description": "y" * 501},
])
def test_create_book_validation(client, add_author, payload):
    author = add_author("Neil", "Gaiman")
    response = client.post(f"/api/authors/{author.id}/books", json=payload)
    assert response.status_code == 422

def test_get_book_not_found(client, add_author):
    author = add_author("Neil", "Gaiman")
    assert client.get(f"/api/authors/{author.id}/books/{uuid.uuid4()}").status_code == 404

def test_delete_book(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline")])
    book_id = author.books[0].id
    assert client.delete(f"/api/authors/{author.id}/books/{book_id}").status_code == 204
    assert client.delete(f"/api/authors/{author.id}/books/{book_id}").status_code == 404

def test_put_updates_existing_book(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    book_id = author.books[0].id
    response = client.put(f"/api/authors/{author.id}/books/{book_id}",
                          json={"title": "Coraline", "description": "Buttons for eyes"})
    assert response.status_code == 204
    assert client.get(f"/api/authors/{author.id}/books/{book_id}").json()["description"] == "Buttons for eyes"

def test_put_requires_description(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    response = client.put(f"/api/authors/{author.id}/books/{author.books[0].id}", json={"title": "Coraline"})
    assert response.status_code == 422

def test_put_title_equal_to_description(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    response = client.put(f"/api/authors/{author.id}/books/{author.books[0].id}",
                          json={"title": "Coraline", "description": "Coraline"})
    assert response.status_code == 422

def test_put_unknown_author(client):
    response = client.put(f"/api/authors/{uuid.uuid4()}/books/{uuid.uuid4()}",
                          json={"title": "Coraline", "description": "Doors"})
    assert response.status_code == 404

def test_patch_updates_only_patched_fields(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    book_id = author.books[0].id
    response = client.patch(f"/api/authors/{author.id}/books/{book_id}",
                            json=[{"op": "replace", "path": "/title", "value": "Coraline (10th anniversary)"}])
    assert response.status_code == 204

    book = client.get(f"/api/authors/{author.id}/books/{book_id}").json()
    assert book["title"] == "Coraline (10th anniversary)"
    assert book["description"] == "Doors"

def test_patch_upserts_missing_book(client, add_author):
    author = add_author("Neil", "Gaiman")
    book_id = uuid.uuid4()
    response = client.patch(f"/api/authors/{author.id}/books/{book_id}", json=[
        {"op": "replace", "path": "/title", "value": "Neverwhere"},
        {"op": "replace", "path": "/description", "value": "London Below"},
    ])
    assert response.status_code == 201
    assert response.json()["id"] == str(book_id)
    assert client.get(f"/api/authors/{author.id}/books/{book_id}").status_code == 200

def test_padded_title_and_description_still_must_differ(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    books_url = f"/api/authors/{author.id}/books"
    existing_url = f"{books_url}/{author.books[0].id}"

    assert client.post(books_url, json={"title": "Same", "description": " Same "}).status_code == 422
    assert client.put(f"{books_url}/{uuid.uuid4()}", json={"title": "T", "description": "T "}).status_code == 422
    assert client.put(existing_url, json={"title": " Coraline", "description": "Coraline "}).status_code == 422
    response = client.patch(existing_url, json=[{"op": "replace", "path": "/description", "value": "  Coraline"}])
    assert response.status_code == 422
    response = client.patch(f"{books_url}/{uuid.uuid4()}", json=[
        {"op": "replace", "path": "/title", "value": "Neverwhere "},
        {"op": "replace", "path": "/description", "value": " Neverwhere"},
    ])
    assert response.status_code == 422

    books = client.get(books_url).json()
    assert [(b["title"], b["description"]) for b in books] == [("Coraline", "Doors")]

def test_blank_title_is_rejected(client, add_author):
    author = add_author("Neil", "Gaiman")
    response = client.post(f"/api/authors/{author.id}/books", json={"title": "   ", "description": "Blank"})
    assert response.status_code == 422

def test_patch_resulting_in_invalid_book(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    response = client.patch(f"/api/authors/{author.id}/books/{author.books[0].id}",
                            json=[{"op": "replace", "path": "/description", "value": "Coraline"}])
    assert response.status_code == 422

def test_patch_remove_required_field(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    response = client.patch(f"/api/authors/{author.id}/books/{author.books[0].id}",
                            json=[{"op": "remove", "path": "/description"}])
    assert response.status_code == 422

def test_patch_with_invalid_document(client, add_author):
    author = add_author("Neil", "Gaiman", books=[Book("Coraline", "Doors")])
    url = f"/api/authors/{author.id}/books/{author.books[0].id}"
    assert client.patch(url, json=[{"op": "frobnicate", "path": "/title"}]).status_code == 400
    assert client.patch(url, json=[{"op": "replace", "path": "/missing/deep", "value": 1}]).status_code == 400
    assert client.patch(url).status_code == 400
