from jwt_utils import create_user_token
from models import Comment, User

SIGNUP = {
    "email": "Petra.Svobodova@Example.com",
    "password": "tajneheslo1",
    "first_name": "Petra",
    "last_name": "Svobodová",
    "username": "petra_s",
}


def _signup(client, **overrides):
    return client.post("/api/auth/signup", json={**SIGNUP, **overrides})


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


class TestSignupLogin:
    def test_signup_returns_token_and_user(self, client):
        resp = _signup(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["token"]
        assert body["user"]["email"] == "petra.svobodova@example.com"
        assert body["user"]["role"] == "user"
        assert "password_hash" not in body["user"]

    def test_duplicate_email(self, client):
        _signup(client)
        resp = _signup(client, username="jina_petra", email="PETRA.SVOBODOVA@example.com")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email already registered"

    def test_duplicate_username(self, client):
        _signup(client)
        resp = _signup(client, email="other@example.com", username="PETRA_S")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Username is already taken"

    def test_password_rules(self, client):
        resp = _signup(client, password="bezcisla")
        assert resp.status_code == 400
        assert "password" in resp.json()["errors"]

    def test_username_rules(self, client):
        resp = _signup(client, username="ab")
        assert resp.status_code == 400
        assert "username" in resp.json()["errors"]

    def test_login_updates_last_login(self, client, db_session):
        _signup(client)

        resp = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": SIGNUP["password"]})

        assert resp.status_code == 200
        assert resp.json()["token"]
        user = db_session.query(User).filter(User.username == "petra_s").one()
        assert user.last_login is not None

    def test_login_bad_password(self, client):
        _signup(client)
        resp = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "spatneheslo1"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid credentials"}

    def test_invalid_token(self, client):
        resp = client.get("/api/auth/me", headers=_auth("nonsense"))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid token"}

    def test_expired_token(self, client, make_user):
        user, _ = make_user()
        resp = client.get("/api/auth/me", headers=_auth(create_user_token(user.id, expires_minutes=-5)))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Token expired"}

    def test_missing_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"message": "Authentication required"}


class TestProfile:
    def test_me(self, client, user_headers):
        resp = client.get("/api/auth/me", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["username"] == "jan_novak"

    def test_check_username(self, client, user_headers):
        assert client.get("/api/auth/check-username/JAN_NOVAK").json() == {"available": False}
        assert client.get("/api/auth/check-username/volny_nick").json() == {"available": True}

    def test_update_profile(self, client, user_headers):
        resp = client.put(
            "/api/auth/me",
            json={
                "first_name": "Jan",
                "last_name": "Dvořák",
                "username": "jan_dvorak",
                "company": "Vrata s.r.o.",
                "profile_image": "data:image/png;base64,iVBORw0KGgo=",
            },
            headers=user_headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["last_name"] == "Dvořák"
        assert body["username"] == "jan_dvorak"
        assert body["company"] == "Vrata s.r.o."
        assert body["profile_image"].startswith("data:image")

    def test_update_profile_rejects_plain_url(self, client, user_headers):
        resp = client.put(
            "/api/auth/me",
            json={"first_name": "Jan", "last_name": "Novák", "profile_image": "https://example.com/a.png"},
            headers=user_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid image format. Must be a data URL."

    def test_update_profile_username_taken(self, client, make_user, user_headers):
        make_user(username="obsazeno")
        resp = client.put(
            "/api/auth/me",
            json={"first_name": "Jan", "last_name": "Novák", "username": "obsazeno"},
            headers=user_headers,
        )
        assert resp.status_code == 400

    def test_update_profile_case_only_rename(self, client, user_headers, db_session):
        resp = client.put(
            "/api/auth/me",
            json={"first_name": "Jan", "last_name": "Novák", "username": "Jan_Novak"},
            headers=user_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["username"] == "Jan_Novak"
        assert db_session.query(User).filter(User.username == "Jan_Novak").count() == 1


class TestPasswordAndDeletion:
    def test_change_password(self, client):
        token = _signup(client).json()["token"]

        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": SIGNUP["password"], "new_password": "novejsiheslo2"},
            headers=_auth(token),
        )

        assert resp.status_code == 200
        login = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "novejsiheslo2"})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client):
        token = _signup(client).json()["token"]
        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": "nespravne1", "new_password": "novejsiheslo2"},
            headers=_auth(token),
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Current password is incorrect"

    def test_delete_account_removes_comments(self, client, create_product, make_user, db_session):
        product = create_product()
        token = _signup(client).json()["token"]
        _, other_headers = make_user(username="cizi_uzivatel")

        own = client.post(
            f"/api/products/{product['id']}/comments", data={"text": "Moje vlákno"}, headers=_auth(token)
        ).json()
        client.post(
            f"/api/products/{product['id']}/comments",
            data={"text": "Odpověď", "parent_id": own["id"]},
            headers=other_headers,
        )
        foreign = client.post(
            f"/api/products/{product['id']}/comments", data={"text": "Cizí vlákno"}, headers=other_headers
        ).json()
        client.post(
            f"/api/products/{product['id']}/comments",
            data={"text": "Moje odpověď", "parent_id": foreign["id"]},
            headers=_auth(token),
        )

        resp = client.request(
            "DELETE", "/api/auth/delete-account", json={"password": SIGNUP["password"]}, headers=_auth(token)
        )

        assert resp.status_code == 200
        assert db_session.query(User).filter(User.username == "petra_s").first() is None
        texts = [c.text for c in db_session.query(Comment).all()]
        assert texts == ["Cizí vlákno"]
        foreign_row = db_session.query(Comment).filter(Comment.id == foreign["id"]).one()
        assert foreign_row.reply_count == 0

    def test_delete_account_wrong_password(self, client):
        token = _signup(client).json()["token"]
        resp = client.request(
            "DELETE", "/api/auth/delete-account", json={"password": "nespravne1"}, headers=_auth(token)
        )
        assert resp.status_code == 401
