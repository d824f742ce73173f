import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

import social_feed.db as db
from social_feed.api import app
from social_feed.models import Image

from conftest import data_url

pytestmark = pytest.mark.api


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _create(client, **overrides):
    body = {"autor": "Ana", "categoria": "post", "publicacao": "Olá!"}
    body.update(overrides)
    return client.post("/posts", json=body)


def test_create_returns_201_and_post_shape(client, png_bytes):
    r = _create(client, imagem=data_url(png_bytes))

    assert r.status_code == 201
    post = r.json()
    assert set(post) == {"id", "autor", "categoria", "publicacao", "imagem", "created_at", "updated_at"}
    assert post["imagem"].startswith("data:image/png;base64,")
    assert post["created_at"].endswith("Z")


def test_create_missing_required_fields_is_422(client):
    r = client.post("/posts", json={"autor": "Ana"})
    assert r.status_code == 422
    errors = r.json()["errors"]
    assert "categoria" in errors
    assert "publicacao" in errors


def test_create_with_bad_category_is_422(client):
    r = _create(client, categoria="video")
    assert r.status_code == 422
    assert "categoria" in r.json()["errors"]


def test_create_with_too_long_author_is_422(client):
    r = _create(client, autor="x" * 61)
    assert r.status_code == 422
    assert "autor" in r.json()["errors"]


def test_create_with_bad_image_is_422(client):
    r = _create(client, imagem="data:image/png;base64,%%%")
    assert r.status_code == 422
    assert r.json()["errors"] == {"imagem": ["Imagem em base64 inválida."]}


def test_create_storage_failure_is_500(client, monkeypatch, png_bytes):
    def boom(session, data):
        raise SQLAlchemyError("boom")

    monkeypatch.setattr(db, "_store_image", boom)

    r = _create(client, imagem=data_url(png_bytes))
    assert r.status_code == 500
    assert r.json() == {"error": "Erro ao criar post"}
    assert client.get("/posts").json()["data"] == []


def test_get_post(client):
    created = _create(client).json()

    r = client.get(f"/posts/{created['id']}")
    assert r.status_code == 200
    assert r.json() == created


def test_get_unknown_post_is_404(client):
    r = client.get("/posts/999")
    assert r.status_code == 404


@pytest.mark.parametrize("method", ["put", "patch"])
def test_partial_update(client, method, png_bytes):
    created = _create(client, imagem=data_url(png_bytes)).json()

    r = getattr(client, method)(f"/posts/{created['id']}", json={"categoria": "artigo"})

    assert r.status_code == 200
    post = r.json()
    assert post["categoria"] == "artigo"
    assert post["autor"] == "Ana"
    assert post["imagem"] == created["imagem"]


def test_update_with_bad_category_is_422(client):
    created = _create(client).json()
    r = client.put(f"/posts/{created['id']}", json={"categoria": "grupao"})
    assert r.status_code == 422


def test_update_with_explicit_null_is_422(client):
    created = _create(client).json()
    r = client.put(f"/posts/{created['id']}", json={"autor": None})
    assert r.status_code == 422


def test_update_with_null_image_keeps_image(client, png_bytes):
    created = _create(client, imagem=data_url(png_bytes)).json()
    r = client.put(f"/posts/{created['id']}", json={"imagem": None})
    assert r.status_code == 200
    assert r.json()["imagem"] == created["imagem"]


def test_update_unknown_post_is_404(client):
    r = client.put("/posts/999", json={"autor": "x"})
    assert r.status_code == 404


def test_delete_returns_204_and_removes_image(client, png_bytes):
    created = _create(client, imagem=data_url(png_bytes)).json()

    r = client.delete(f"/posts/{created['id']}")
    assert r.status_code == 204
    assert r.content == b""

    assert client.get(f"/posts/{created['id']}").status_code == 404
    with Session(db.get_engine()) as session:
        assert session.exec(select(Image)).all() == []


def test_delete_unknown_post_is_404(client):
    assert client.delete("/posts/999").status_code == 404


def test_list_posts_default_page(client):
    for n in range(3):
        _create(client, publicacao=f"n{n}")

    r = client.get("/posts")
    assert r.status_code == 200
    body = r.json()
    assert [p["publicacao"] for p in body["data"]] == ["n2", "n1", "n0"]
    assert body["meta"]["per_page"] == 15
    assert body["meta"]["current_page"] == 1
    assert body["meta"]["last_page"] == 1


@pytest.mark.parametrize("requested, expected", [(100, 50), (1, 5), ("abc", 5), ("", 15), ("20abc", 20)])
def test_list_posts_clamps_per_page(client, requested, expected):
    r = client.get("/posts", params={"per_page": requested})
    assert r.json()["meta"]["per_page"] == expected


def test_list_posts_second_page(client):
    for n in range(6):
        _create(client, publicacao=f"n{n}")

    body = client.get("/posts", params={"page": 2, "per_page": 5}).json()
    assert [p["publicacao"] for p in body["data"]] == ["n0"]
    assert body["meta"] == {"current_page": 2, "last_page": 2, "per_page": 5, "total": 6}


def test_list_posts_lenient_page(client):
    _create(client)

    for page in ("abc", "0", "-2"):
        r = client.get("/posts", params={"page": page})
        assert r.status_code == 200
        assert r.json()["meta"]["current_page"] == 1


@pytest.mark.parametrize("field, value", [("autor", "   "), ("autor", ""), ("publicacao", ""), ("publicacao", " \n ")])
def test_create_with_blank_text_is_422(client, field, value):
    r = _create(client, **{field: value})

    assert r.status_code == 422
    assert field in r.json()["errors"]
    assert client.get("/posts").json()["meta"]["total"] == 0


@pytest.mark.parametrize("method", ["put", "patch"])
@pytest.mark.parametrize("field", ["autor", "publicacao"])
def test_update_with_blank_text_is_422(client, method, field):
    post_id = _create(client).json()["id"]

    r = getattr(client, method)(f"/posts/{post_id}", json={field: "  "})

    assert r.status_code == 422
    assert field in r.json()["errors"]
    assert client.get(f"/posts/{post_id}").json()[field] == {"autor": "Ana", "publicacao": "Olá!"}[field]


def test_create_trims_text_fields(client):
    post = _create(client, autor="  Ana  ", publicacao=" Olá! ").json()
    assert post["autor"] == "Ana"
    assert post["publicacao"] == "Olá!"
