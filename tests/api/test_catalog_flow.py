"""
End-to-end catalog behaviour through the HTTP API, backed by an
in-memory collection.
"""

import pytest


def create(client, book_id, title="Dune", author="Herbert", publisher="Ace", isbn="0441013597"):
    return client.post(f"/books/{book_id}/{title}/{author}/{publisher}/{isbn}")


def test_checkout_lifecycle(live_client):
    response = create(live_client, "42")
    assert response.status_code == 201
    assert response.json()["book"]["avail"] is True

    response = live_client.put("/books/42?avail=false&who=alice&due=2025-01-01")
    assert response.status_code == 200
    book = response.json()["book"]
    assert book["avail"] is False
    assert book["who"] == "alice"
    assert book["due"] == "2025-01-01"

    response = live_client.delete("/books/42")
    assert response.status_code == 200
    assert response.json() == {"message": "Book with id 42 deleted"}

    response = live_client.get("/books/42")
    assert response.status_code == 404
    assert response.json() == {"error": "Book not found"}


def test_new_book_defaults(live_client):
    create(live_client, "7", title="Emma", author="Austen", publisher="Penguin", isbn="0141439580")

    response = live_client.get("/books/7")

    assert response.status_code == 200
    assert response.json() == {
        "id": "7",
        "title": "Emma",
        "author": "Austen",
        "publisher": "Penguin",
        "isbn": "0141439580",
        "avail": True,
        "who": None,
        "due": None
    }


def test_duplicate_create_keeps_first_book(live_client, books_collection):
    create(live_client, "42")

    response = create(live_client, "42", title="Other", author="Someone")

    assert response.status_code == 403
    assert response.json() == {"error": "Book with id 42 already exists"}
    assert len(books_collection.docs) == 1
    assert live_client.get("/books/42").json()["title"] == "Dune"


def test_mongo_id_not_exposed(live_client):
    response = create(live_client, "42")

    assert "_id" not in response.json()["book"]
    assert "_id" not in live_client.get("/books/42").json()


@pytest.fixture
def stocked_client(live_client):
    create(live_client, "1", title="Dune")
    create(live_client, "2", title="Emma")
    create(live_client, "3", title="Ulysses")
    live_client.put("/books/2?avail=false&who=bob")
    return live_client


@pytest.mark.parametrize("query,expected_ids", [
    ("?avail=true", ["1", "3"]),
    ("?avail=false", ["2"]),
    ("", ["1", "2", "3"]),
    ("?avail=maybe", ["1", "2", "3"]),
])
def test_list_filters_on_availability(stocked_client, query, expected_ids):
    response = stocked_client.get(f"/books{query}")

    assert response.status_code == 200
    assert [book["id"] for book in response.json()] == expected_ids
    assert all(set(book) == {"id", "title"} for book in response.json())


def test_invalid_field_leaves_book_unchanged(live_client):
    create(live_client, "42")
    before = live_client.get("/books/42").json()

    response = live_client.put("/books/42?foo=bar&title=Changed")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid field(s): foo"}
    assert live_client.get("/books/42").json() == before


def test_avail_query_stores_boolean(live_client, books_collection):
    create(live_client, "42")
    live_client.put("/books/42?avail=false")

    live_client.put("/books/42?avail=true")

    assert books_collection.docs[0]["avail"] is True


def test_body_merge_touches_only_given_fields(live_client):
    create(live_client, "42")

    response = live_client.put("/books/42", json={"who": "carol", "due": "2025-03-01"})

    book = response.json()["book"]
    assert book["who"] == "carol"
    assert book["due"] == "2025-03-01"
    assert book["title"] == "Dune"
    assert book["avail"] is True


def test_body_ignored_with_query_param(live_client):
    create(live_client, "42")

    response = live_client.put("/books/42?who=dave", json={"title": "Ignored"})

    book = response.json()["book"]
    assert book["who"] == "dave"
    assert book["title"] == "Dune"


def test_update_missing_book(live_client):
    response = live_client.put("/books/404?title=X")

    assert response.status_code == 404


def test_delete_missing_book_is_no_content(live_client):
    response = live_client.delete("/books/nope")

    assert response.status_code == 204
    assert response.content == b""
