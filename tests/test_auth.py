from datetime import datetime, timedelta

from conftest import AVATAR, bearer, register


def test_register_creates_user_with_hosted_avatar(client, collection, images):
    response = register(client, name="Alice", email="A@X.com", password="p1")

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["token"]
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["avatar"] == {
        "public_id": "avatars/img1",
        "url": "https://res.cloudinary.test/avatars/img1.png",
    }
    assert "password" not in data["user"]

    stored = collection.by_email("a@x.com")
    assert stored["password"] != "p1"
    assert stored["password"].startswith("$2")
    assert stored["avatar"]["public_id"] == images.uploaded[0]
    assert stored["role"] == "user"


def test_register_sets_http_only_session_cookie(client):
    response = register(client)

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "HttpOnly" in cookie
    assert client.cookies.get("token") == response.json()["token"]


def test_register_duplicate_email(client, images):
    register(client, email="a@x.com")
    response = register(client, email="a@x.com")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Duplicate email Entered"}
    # the second upload is released again
    assert images.destroyed == ["avatars/img2"]


def test_register_aborts_when_upload_fails(client, collection, images):
    images.fail_upload = True

    response = register(client)

    assert response.status_code == 500
    assert response.json()["message"] == "Image host error: Invalid image file"
    assert collection.documents == []


def test_register_rejects_remote_avatar_url(client, images):
    response = register(client, avatar="https://example.com/me.png")

    assert response.status_code == 400
    assert "avatar" in response.json()["message"]
    assert images.uploaded == []


def test_register_rejects_overlong_password_before_upload(client, collection, images):
    response = register(client, password="x" * 73)

    assert response.status_code == 400
    assert "72 bytes" in response.json()["message"]
    assert images.uploaded == []
    assert images.destroyed == []
    assert collection.documents == []


def test_login_success(client):
    register(client, email="a@x.com", password="p1")
    client.cookies.clear()

    response = client.post("/api/v1/login", json={"email": "a@x.com", "password": "p1"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "a@x.com"
    assert client.cookies.get("token")


def test_login_is_case_insensitive_on_email(client):
    register(client, email="a@x.com", password="p1")

    response = client.post("/api/v1/login", json={"email": " A@X.COM ", "password": "p1"})

    assert response.status_code == 200


def test_login_missing_credentials(client):
    response = client.post("/api/v1/login", json={"email": "a@x.com"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Please Enter all the details"}


def test_login_does_not_reveal_which_part_was_wrong(client):
    register(client, email="a@x.com", password="p1")

    wrong_password = client.post("/api/v1/login", json={"email": "a@x.com", "password": "nope"})
    unknown_email = client.post("/api/v1/login", json={"email": "b@x.com", "password": "p1"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {
        "success": False,
        "message": "Invalid details",
    }


def test_logout_expires_cookie(client):
    register(client)

    response = client.get("/api/v1/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged Out"}
    cookie = response.headers["set-cookie"]
    assert cookie.startswith('token=""') or cookie.startswith("token=;")
    assert "Max-Age=0" in cookie
    assert "HttpOnly" in cookie
    assert client.get("/api/v1/me").status_code == 401


def test_logout_without_session_still_succeeds(client):
    assert client.post("/api/v1/logout").status_code == 200


def test_me_requires_session(client):
    response = client.get("/api/v1/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Please Login to access this resource"


def test_me_with_bearer_token(client):
    token = register(client, email="a@x.com").json()["token"]
    client.cookies.clear()

    response = client.get("/api/v1/me", headers=bearer(token))

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "a@x.com"


def test_me_with_malformed_token(client):
    response = client.get("/api/v1/me", headers=bearer("not.a.jwt"))

    assert response.status_code == 400
    assert response.json()["message"] == "Token is invalid, try again"


def test_me_with_expired_token(client, settings):
    from app.core.security import create_session_token

    token = register(client).json()["token"]
    user_id = client.get("/api/v1/me", headers=bearer(token)).json()["user"]["_id"]
    client.cookies.clear()
    expired = create_session_token(user_id, settings.model_copy(update={"JWT_EXPIRE_DAYS": -1}))

    response = client.get("/api/v1/me", headers=bearer(expired))

    assert response.status_code == 400
    assert response.json()["message"] == "Token is expired, try again"


def test_forgot_password_emails_reset_link(client, collection, mailer):
    register(client, email="a@x.com")

    response = client.post("/api/v1/password/forgot", json={"email": "a@x.com"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Email sent to a@x.com successfully"}

    sent = mailer.outbox[-1]
    assert sent["to"] == "a@x.com"
    assert sent["subject"] == "Ecommerce Password Recovery"
    token = mailer.last_reset_token()
    assert f"http://shop.test/password/reset/{token}" in sent["body"]

    stored = collection.by_email("a@x.com")
    assert stored["reset_password_token"] != token
    assert len(stored["reset_password_token"]) == 64
    assert stored["reset_password_expire"] > datetime.utcnow() + timedelta(minutes=14)


def test_forgot_password_unknown_user(client, mailer):
    response = client.post("/api/v1/password/forgot", json={"email": "nobody@x.com"})

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"
    assert mailer.outbox == []


def test_forgot_password_rolls_back_when_email_fails(client, collection, mailer):
    register(client, email="a@x.com")
    mailer.fail = True

    response = client.post("/api/v1/password/forgot", json={"email": "a@x.com"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "SMTP connection refused"}
    stored = collection.by_email("a@x.com")
    assert "reset_password_token" not in stored
    assert "reset_password_expire" not in stored


def test_reset_token_is_single_use(client, collection, mailer):
    register(client, email="a@x.com", password="p1")
    client.post("/api/v1/password/forgot", json={"email": "a@x.com"})
    token = mailer.last_reset_token()
    body = {"password": "p2", "confirmPassword": "p2"}

    first = client.put(f"/api/v1/password/reset/{token}", json=body)
    second = client.put(f"/api/v1/password/reset/{token}", json=body)

    assert first.status_code == 200
    assert first.json()["token"]
    assert "reset_password_token" not in collection.by_email("a@x.com")
    assert second.status_code == 400
    assert second.json()["message"] == "Reset Password Token is invalid or has been expired"


def test_reset_token_expires(client, collection, mailer):
    register(client, email="a@x.com")
    client.post("/api/v1/password/forgot", json={"email": "a@x.com"})
    token = mailer.last_reset_token()
    collection.by_email("a@x.com")["reset_password_expire"] = datetime.utcnow() - timedelta(seconds=1)

    response = client.put(
        f"/api/v1/password/reset/{token}",
        json={"password": "p2", "confirmPassword": "p2"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Reset Password Token is invalid or has been expired"


def test_reset_password_confirmation_mismatch(client, collection, mailer):
    register(client, email="a@x.com")
    client.post("/api/v1/password/forgot", json={"email": "a@x.com"})
    token = mailer.last_reset_token()

    response = client.put(
        f"/api/v1/password/reset/{token}",
        json={"password": "p2", "confirmPassword": "p3"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Password does not match"
    # token survives a mismatched confirmation
    assert "reset_password_token" in collection.by_email("a@x.com")


def test_account_lifecycle_scenario(client, mailer):
    registered = register(client, email="a@x.com", password="p1", avatar=AVATAR)
    assert registered.status_code == 201
    assert "token=" in registered.headers["set-cookie"]

    wrong = client.post("/api/v1/login", json={"email": "a@x.com", "password": "wrong"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid details"

    forgot = client.post("/api/v1/password/forgot", json={"email": "a@x.com"})
    assert forgot.status_code == 200
    token = mailer.last_reset_token()

    reset = client.put(
        f"/api/v1/password/reset/{token}",
        json={"password": "p2", "confirmPassword": "p2"},
    )
    assert reset.status_code == 200
    assert "token=" in reset.headers["set-cookie"]

    old = client.post("/api/v1/login", json={"email": "a@x.com", "password": "p1"})
    assert old.status_code == 401

    new = client.post("/api/v1/login", json={"email": "a@x.com", "password": "p2"})
    assert new.status_code == 200


def test_reset_rejects_overlong_password(client, collection, mailer):
    register(client, email="a@x.com")
    client.post("/api/v1/password/forgot", json={"email": "a@x.com"})
    token = mailer.last_reset_token()
    body = {"password": "é" * 37, "confirmPassword": "é" * 37}

    response = client.put(f"/api/v1/password/reset/{token}", json=body)

    assert response.status_code == 400
    assert "72 bytes" in response.json()["message"]
    assert "reset_password_token" in collection.by_email("a@x.com")
