from fastapi.testclient import TestClient

from main import app


STRONG_PASSWORD = "Str0ng!Pass"


def csrf_client() -> TestClient:
    """A client that already holds the CSRF cookie and echoes it in the header."""
    client = TestClient(app)
    res = client.get("/api/csrf-token")
    client.headers["X-CSRF-Token"] = res.json()["csrfToken"]
    return client


def register(client: TestClient, email: str = "ada@example.com", password: str = STRONG_PASSWORD, full_name: str = "Ada Lovelace") -> dict:
    res = client.post("/api/auth/register", json={"fullName": full_name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
