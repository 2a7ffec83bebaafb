import io

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

import config
from models import Comment


def _broken_commit(self):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def _post(client, product_id, headers, **data):
    return client.post(f"/api/products/{product_id}/comments", data=data, headers=headers)


def _png():
    return ("photo.png", io.BytesIO(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32), "image/png")


class TestCreateComment:
    def test_create_top_level(self, client, create_product, user_headers):
        product = create_product()

        resp = _post(client, product["id"], user_headers, text="  Jak nastavit koncáky?  ")

        assert resp.status_code == 201
        body = resp.json()
        assert body["text"] == "Jak nastavit koncáky?"
        assert body["parent_id"] is None
        assert body["user"]["username"] == "jan_novak"
        assert body["likes"] == []
        assert body["likes_count"] == 0
        assert body["reply_count"] == 0

    def test_text_or_image_required(self, client, create_product, user_headers):
        product = create_product()
        resp = _post(client, product["id"], user_headers, text="   ")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Either comment text or image is required"

    def test_text_too_long(self, client, create_product, user_headers):
        product = create_product()
        resp = _post(client, product["id"], user_headers, text="x" * 1001)
        assert resp.status_code == 400

    def test_image_only(self, client, create_product, user_headers):
        product = create_product()

        resp = client.post(
            f"/api/products/{product['id']}/comments",
            files={"image": _png()},
            headers=user_headers,
        )

        assert resp.status_code == 201
        image = resp.json()["image"]
        assert image.startswith("/images/comments/comment-")
        assert (config.PUBLIC_DIR / image.lstrip("/")).is_file()

    def test_failed_commit_discards_image(self, client, create_product, user_headers, monkeypatch):
        product = create_product()
        stored = set(config.COMMENT_IMAGES_DIR.iterdir())
        monkeypatch.setattr(Session, "commit", _broken_commit)

        with pytest.raises(OperationalError):
            client.post(
                f"/api/products/{product['id']}/comments",
                data={"text": "Fotka"},
                files={"image": _png()},
                headers=user_headers,
            )

        assert set(config.COMMENT_IMAGES_DIR.iterdir()) == stored

    def test_unknown_product(self, client, user_headers):
        resp = _post(client, 404, user_headers, text="Haló")
        assert resp.status_code == 404

    def test_requires_auth(self, client, create_product):
        product = create_product()
        resp = client.post(f"/api/products/{product['id']}/comments", data={"text": "Ahoj"})
        assert resp.status_code == 401

    def test_reply_increments_parent(self, client, create_product, user_headers, db_session):
        product = create_product()
        parent = _post(client, product["id"], user_headers, text="Otázka").json()

        resp = _post(client, product["id"], user_headers, text="Odpověď", parent_id=str(parent["id"]))

        assert resp.status_code == 201
        assert resp.json()["parent_id"] == parent["id"]
        row = db_session.query(Comment).filter(Comment.id == parent["id"]).one()
        assert row.reply_count == 1

    def test_reply_parent_on_other_product(self, client, create_product, user_headers):
        first = create_product()
        second = create_product(sku="HS-OTHER")
        parent = _post(client, first["id"], user_headers, text="Otázka").json()

        resp = _post(client, second["id"], user_headers, text="Odpověď", parent_id=str(parent["id"]))

        assert resp.status_code == 400


class TestListComments:
    def test_top_level_newest_first_and_replies_oldest_first(self, client, create_product, user_headers):
        product = create_product()
        older = _post(client, product["id"], user_headers, text="První").json()
        newer = _post(client, product["id"], user_headers, text="Druhý").json()
        r1 = _post(client, product["id"], user_headers, text="R1", parent_id=str(older["id"])).json()
        r2 = _post(client, product["id"], user_headers, text="R2", parent_id=str(older["id"])).json()

        top = client.get(f"/api/products/{product['id']}/comments").json()
        assert [c["id"] for c in top] == [newer["id"], older["id"]]
        assert top[1]["reply_count"] == 2

        replies = client.get(f"/api/comments/{older['id']}/replies").json()
        assert [c["id"] for c in replies] == [r1["id"], r2["id"]]


class TestLikes:
    def test_like_and_unlike(self, client, create_product, make_user, user_headers):
        product = create_product()
        comment = _post(client, product["id"], user_headers, text="Díky").json()
        other, other_headers = make_user(username="druhy")

        resp = client.post(f"/api/comments/{comment['id']}/like", headers=other_headers)
        assert resp.status_code == 200
        assert resp.json() == {"likes": [other.id], "likes_count": 1}

        again = client.post(f"/api/comments/{comment['id']}/like", headers=other_headers)
        assert again.status_code == 400
        assert again.json()["message"] == "Comment already liked"

        resp = client.delete(f"/api/comments/{comment['id']}/like", headers=other_headers)
        assert resp.json() == {"likes": [], "likes_count": 0}

    def test_like_missing_comment(self, client, user_headers):
        resp = client.post("/api/comments/999/like", headers=user_headers)
        assert resp.status_code == 404


class TestDeleteComment:
    def test_author_deletes_thread_with_replies(self, client, create_product, user_headers, make_user, db_session):
        product = create_product()
        _, other_headers = make_user(username="druhy")
        parent = _post(client, product["id"], user_headers, text="Vlákno").json()
        _post(client, product["id"], other_headers, text="Reakce", parent_id=str(parent["id"]))

        resp = client.delete(f"/api/comments/{parent['id']}", headers=user_headers)

        assert resp.status_code == 200
        assert db_session.query(Comment).count() == 0

    def test_parent_owner_can_delete_reply(self, client, create_product, user_headers, make_user, db_session):
        product = create_product()
        _, other_headers = make_user(username="druhy")
        parent = _post(client, product["id"], user_headers, text="Vlákno").json()
        reply = _post(client, product["id"], other_headers, text="Spam", parent_id=str(parent["id"])).json()

        resp = client.delete(f"/api/comments/{reply['id']}", headers=user_headers)

        assert resp.status_code == 200
        row = db_session.query(Comment).filter(Comment.id == parent["id"]).one()
        assert row.reply_count == 0

    def test_stranger_forbidden(self, client, create_product, user_headers, make_user):
        product = create_product()
        _, other_headers = make_user(username="druhy")
        comment = _post(client, product["id"], user_headers, text="Moje").json()

        resp = client.delete(f"/api/comments/{comment['id']}", headers=other_headers)

        assert resp.status_code == 403

    def test_admin_can_delete(self, client, create_product, user_headers, admin_headers):
        product = create_product()
        comment = _post(client, product["id"], user_headers, text="Moje").json()
        resp = client.delete(f"/api/comments/{comment['id']}", headers=admin_headers)
        assert resp.status_code == 200

    def test_image_file_removed(self, client, create_product, user_headers):
        product = create_product()
        comment = client.post(
            f"/api/products/{product['id']}/comments",
            data={"text": "Fotka"},
            files={"image": _png()},
            headers=user_headers,
        ).json()
        path = config.PUBLIC_DIR / comment["image"].lstrip("/")
        assert path.is_file()

        client.delete(f"/api/comments/{comment['id']}", headers=user_headers)

        assert not path.exists()
