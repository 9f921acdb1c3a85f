from devalyze.models.user import User

from helpers import STRONG_PASSWORD, bearer


def test_get_me_returns_public_profile(client, auth_headers):
    res = client.get("/api/users/me", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "ada@example.com"
    assert body["fullName"] == "Ada Lovelace"
    assert "password" not in body


def test_patch_me_updates_only_given_fields(client, auth_headers):
    res = client.patch("/api/users/me", json={"country": "UK", "language": "en"}, headers=auth_headers)
    assert res.status_code == 200
    assert (res.json()["country"], res.json()["language"]) == ("UK", "en")
    assert res.json()["fullName"] == "Ada Lovelace"

    res = client.patch("/api/users/me", json={"fullName": "Augusta Ada King"}, headers=auth_headers)
    assert (res.json()["surname"], res.json()["otherNames"]) == ("Augusta", "Ada King")


def test_patch_me_cannot_touch_private_fields(client, auth_headers):
    client.patch("/api/users/me", json={"email": "evil@example.com", "isVerified": True, "tokenVersion": 9}, headers=auth_headers)
    user = User.objects.first()
    assert user.email == "ada@example.com"
    assert user.is_verified is False
    assert user.token_version == 0


def test_change_password_endpoint(client, auth_headers):
    payload = {"currentPassword": STRONG_PASSWORD, "newPassword": "N3w!Passw0rd"}
    res = client.patch("/api/users/me/password", json=payload, headers=auth_headers)
    assert res.status_code == 200
    new_headers = bearer(res.json()["token"])

    assert client.get("/api/users/me", headers=auth_headers).status_code == 401
    assert client.get("/api/users/me", headers=new_headers).status_code == 200


def test_change_password_wrong_current(client, auth_headers):
    payload = {"currentPassword": "Wr0ng!Pass", "newPassword": "N3w!Passw0rd"}
    res = client.patch("/api/users/me/password", json=payload, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_CREDENTIALS"


def test_change_password_reuse_is_rejected(client, auth_headers):
    first = client.patch(
        "/api/users/me/password",
        json={"currentPassword": STRONG_PASSWORD, "newPassword": "N3w!Passw0rd"},
        headers=auth_headers,
    )
    res = client.patch(
        "/api/users/me/password",
        json={"currentPassword": "N3w!Passw0rd", "newPassword": STRONG_PASSWORD},
        headers=bearer(first.json()["token"]),
    )
    assert res.status_code == 400
    assert res.json()["code"] == "PASSWORD_REUSED"


def test_security_headers_present(client):
    res = client.get("/health")
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Frame-Options"] == "DENY"
