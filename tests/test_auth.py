from datetime import datetime, timedelta, timezone

from jose import jwt

from config import settings


def test_register_returns_token_and_public_user(client):
    response = client.post("/api/auth/register", json={
        "name": "Ada Creator",
        "email": "Ada@Creator.io",
        "password": "secret123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "ada@creator.io"
    assert body["user"]["theme_preference"] == "system"
    assert "password_hash" not in body["user"]


def test_register_stores_hashed_password(client, mongo):
    client.post("/api/auth/register", json={"name": "Ada", "email": "ada@creator.io", "password": "secret123"})
    stored = mongo["user"].find_one({"email": "ada@creator.io"})
    assert stored["password_hash"] != "secret123"
    assert stored["password_hash"].startswith("$2")


def test_register_duplicate_email_is_rejected(client, make_user):
    make_user(email="ada@creator.io")
    response = client.post("/api/auth/register", json={
        "name": "Someone Else",
        "email": "ADA@creator.io",
        "password": "another123",
    })
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User with this email already exists"}


def test_register_requires_all_fields(client):
    response = client.post("/api/auth/register", json={"email": "ada@creator.io"})
    assert response.status_code == 400
    assert response.json()["message"] == "Please provide name, email, and password"


def test_register_rejects_short_password(client):
    response = client.post("/api/auth/register", json={"name": "Ada", "email": "ada@creator.io", "password": "123"})
    assert response.status_code == 400
    assert "at least 6 characters" in response.json()["message"]


def test_register_rejects_invalid_email(client):
    response = client.post("/api/auth/register", json={"name": "Ada", "email": "not-an-email", "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_login_with_valid_credentials(client, make_user):
    make_user(email="ada@creator.io", password="secret123")
    response = client.post("/api/auth/login", json={"email": "ada@creator.io", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["token"]
    assert response.json()["user"]["name"] == "Ada Creator"


def test_login_with_wrong_password(client, make_user):
    make_user(email="ada@creator.io", password="secret123")
    response = client.post("/api/auth/login", json={"email": "ada@creator.io", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_with_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "nobody@creator.io", "password": "secret123"})
    assert response.status_code == 401


def test_login_requires_fields(client):
    response = client.post("/api/auth/login", json={"email": "ada@creator.io"})
    assert response.status_code == 400


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token provided"


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_me_rejects_expired_token(client, make_user, mongo):
    make_user()
    user_id = str(mongo["user"].find_one()["_id"])
    past = datetime.now(timezone.utc) - timedelta(days=1)
    token = jwt.encode({"sub": user_id, "exp": int(past.timestamp())}, settings.JWT_SECRET,
                       algorithm=settings.JWT_ALGORITHM)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Token has expired"


def test_me_rejects_token_of_deleted_user(client, auth_headers, mongo):
    mongo["user"].delete_many({})
    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 401
    assert response.json()["message"] == "User no longer exists"


def test_me_returns_current_user(client, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "ada@creator.io"


def test_update_profile(client, auth_headers):
    response = client.put("/api/auth/me", headers=auth_headers, json={"name": "Ada L.", "theme_preference": "dark"})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["name"] == "Ada L."
    assert user["theme_preference"] == "dark"


def test_update_profile_email_taken(client, auth_headers, other_headers):
    response = client.put("/api/auth/me", headers=auth_headers, json={"email": "grace@creator.io"})
    assert response.status_code == 400
    assert response.json()["message"] == "Email already exists"


def test_update_theme(client, auth_headers):
    response = client.put("/api/auth/theme", headers=auth_headers, json={"theme_preference": "light"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "theme_preference": "light"}


def test_update_theme_rejects_unknown_value(client, auth_headers):
    response = client.put("/api/auth/theme", headers=auth_headers, json={"theme_preference": "neon"})
    assert response.status_code == 400


def test_change_password(client, auth_headers):
    response = client.put("/api/auth/password", headers=auth_headers, json={
        "current_password": "secret123",
        "new_password": "brandnew456",
    })
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": "ada@creator.io", "password": "brandnew456"})
    assert login.status_code == 200


def test_change_password_requires_current_password(client, auth_headers):
    response = client.put("/api/auth/password", headers=auth_headers, json={
        "current_password": "wrong-one",
        "new_password": "brandnew456",
    })
    assert response.status_code == 401
