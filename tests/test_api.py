from __future__ import annotations

import re
from datetime import datetime

import pytest
from flask.testing import FlaskClient


OWNER = {"X-Forwarded-For": "203.0.113.7"}
STRANGER = {"X-Forwarded-For": "198.51.100.23, 10.0.0.1"}


def _create(client: FlaskClient, headers: dict | None = None, **payload) -> dict:
    payload.setdefault("content", "Lorem ipsum dolor sit amet")
    response = client.post("/api/v1/paste", json=payload, headers=headers or OWNER)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def test_create_with_minimal_request(client: FlaskClient, clock) -> None:
    response = client.post("/api/v1/paste", json={"content": "validContent"})

    assert response.status_code == 201
    assert response.headers["Cache-Control"] == "no-cache"
    body = response.get_json()
    assert re.fullmatch(r"[a-z0-9]{40}", body["id"])
    assert body["content"] == "validContent"
    assert body["sizeInBytes"] == 12
    assert body["isPublic"] is True
    assert body["isErasable"] is True
    assert body["isPermanent"] is False
    assert datetime.fromisoformat(body["dateCreated"]) == clock.now


def test_create_with_all_options_and_trailing_slash(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/paste/",
        json={
            "title": "  someTitle  ",
            "content": "someContent",
            "exposure": "PUBLIC",
            "isEncrypted": True,
            "expiry": "NEVER",
        },
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["title"] == "someTitle"
    assert body["isEncrypted"] is True
    assert body["isPermanent"] is True
    assert body["dateOfExpiry"] is None


@pytest.mark.parametrize(
    "kwargs",
    [
        pytest.param({"data": "", "content_type": "application/json"}, id="body blank"),
        pytest.param({"data": "not json", "content_type": "application/json"}, id="body not json"),
        pytest.param({"json": {"title": "   ", "content": "    "}}, id="content blank"),
        pytest.param({"json": {"title": "X" * 256, "content": "validContent"}}, id="title too long"),
        pytest.param({"json": {"content": "1234"}}, id="content too short"),
        pytest.param({"json": {"content": "X" * 4097}}, id="content too long"),
        pytest.param({"json": {"content": "validContent", "exposure": "SECRET"}}, id="unknown exposure"),
        pytest.param({"json": {"content": "validContent", "expiry": "FOREVER"}}, id="unknown expiry"),
    ],
)
@pytest.mark.parametrize("path", ["/api/v1/paste", "/api/v1/paste/"])
def test_create_rejects_invalid_input(client: FlaskClient, path: str, kwargs: dict) -> None:
    response = client.post(path, **kwargs)

    assert response.status_code == 400
    assert "error" in response.get_json()
    assert client.get("/api/v1/paste").get_json() == {"pastes": []}


def test_rule_violation_names_the_field(client: FlaskClient) -> None:
    response = client.post("/api/v1/paste", json={"content": "1234"})
    assert response.get_json()["field"] == "content"


# ---------------------------------------------------------------------------
# Viewing
# ---------------------------------------------------------------------------


def test_unknown_paste_is_404_without_cache_header(client: FlaskClient) -> None:
    response = client.get("/api/v1/paste/47116941fd49eda1b6c8abec63dbf8afe2fad088")

    assert response.status_code == 404
    assert response.data == b""
    assert "Cache-Control" not in response.headers


def test_permanent_public_paste_is_cached_for_an_hour(client: FlaskClient) -> None:
    paste = _create(client, expiry="NEVER")

    response = client.get(f"/api/v1/paste/{paste['id']}", headers=STRANGER)

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "max-age=3600"
    assert response.get_json()["isErasable"] is False


def test_public_paste_is_cached_only_until_expiry(client: FlaskClient, clock) -> None:
    paste = _create(client, expiry="ONE_HOUR")
    clock.advance(minutes=59, seconds=10)

    response = client.get(f"/api/v1/paste/{paste['id']}")

    assert response.status_code == 200
    assert re.fullmatch(r"max-age=(50|[1-4][0-9]|[0-9]), must-revalidate", response.headers["Cache-Control"])


def test_public_paste_expiring_in_two_hours_uses_ceiling(client: FlaskClient, clock) -> None:
    paste = _create(client, expiry="ONE_DAY")
    clock.advance(hours=22)

    response = client.get(f"/api/v1/paste/{paste['id']}")

    assert response.headers["Cache-Control"] == "max-age=3600"


def test_expired_paste_is_404(client: FlaskClient, clock) -> None:
    paste = _create(client, expiry="ONE_HOUR")
    clock.advance(hours=1, seconds=1)

    response = client.get(f"/api/v1/paste/{paste['id']}")

    assert response.status_code == 404
    assert "Cache-Control" not in response.headers


def test_once_paste_is_served_once_and_never_cached(client: FlaskClient) -> None:
    paste = _create(client, exposure="ONCE")

    first = client.get(f"/api/v1/paste/{paste['id']}", headers=STRANGER)
    second = client.get(f"/api/v1/paste/{paste['id']}", headers=OWNER)

    assert first.status_code == 200
    assert first.headers["Cache-Control"] == "no-store, no-cache"
    assert first.get_json()["content"] == "Lorem ipsum dolor sit amet"
    assert second.status_code == 404
    assert second.data == b""


def test_unlisted_paste_is_viewable_but_hidden(client: FlaskClient) -> None:
    paste = _create(client, exposure="UNLISTED", content="where is the quokka")

    response = client.get(f"/api/v1/paste/{paste['id']}")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-store, no-cache"
    assert client.get("/api/v1/paste").get_json() == {"pastes": []}
    assert client.get("/api/v1/paste/search?term=quokka").get_json() == {"pastes": []}


# ---------------------------------------------------------------------------
# Listing and search
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("path", ["/api/v1/paste", "/api/v1/paste/"])
def test_list_public_pastes_without_cache_header(client: FlaskClient, path: str) -> None:
    paste = _create(client, title="someTitle")

    response = client.get(path)

    assert response.status_code == 200
    assert "Cache-Control" not in response.headers
    pastes = response.get_json()["pastes"]
    assert [item["id"] for item in pastes] == [paste["id"]]
    assert pastes[0]["title"] == "someTitle"
    assert "content" not in pastes[0]


def test_search_decodes_term_and_sets_cache_header(client: FlaskClient) -> None:
    paste = _create(client, content="smile :-) please")

    response = client.get("/api/v1/paste/search?term=%3A-)")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "max-age=60"
    hits = response.get_json()["pastes"]
    assert [hit["id"] for hit in hits] == [paste["id"]]
    assert ":-)" in hits[0]["highlight"]


@pytest.mark.parametrize("query", ["", "?term=", "?term=ab"])
def test_search_with_short_term_is_empty(client: FlaskClient, query: str) -> None:
    _create(client, content="ab ab ab ab")

    response = client.get(f"/api/v1/paste/search{query}")

    assert response.status_code == 200
    assert response.get_json() == {"pastes": []}


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


def test_delete_always_returns_204(client: FlaskClient) -> None:
    response = client.delete("/api/v1/paste/47116941fd49eda1b6c8abec63dbf8afe2fad088")

    assert response.status_code == 204
    assert response.data == b""
    assert response.headers["Cache-Control"] == "no-cache"


def test_delete_by_stranger_keeps_paste(client: FlaskClient) -> None:
    paste = _create(client)

    response = client.delete(f"/api/v1/paste/{paste['id']}", headers=STRANGER)

    assert response.status_code == 204
    assert client.get(f"/api/v1/paste/{paste['id']}").status_code == 200


def test_delete_by_creator_removes_paste(client: FlaskClient) -> None:
    paste = _create(client)

    response = client.delete(f"/api/v1/paste/{paste['id']}", headers=OWNER)

    assert response.status_code == 204
    assert client.get(f"/api/v1/paste/{paste['id']}").status_code == 404
