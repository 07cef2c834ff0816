"""
Authentication integration tests.

Verifies:
- Registration and login flows
- Session management
- Protected route access
- CSRF protection
- Language preference
"""
from fastapi.testclient import TestClient

from app.config import CSRF_COOKIE_NAME, LOCALE_COOKIE, SESSION_COOKIE


class TestRegistration:
    """Test account creation."""

    def test_register_logs_user_in(self, client: TestClient):
        response = client.post("/api/auth/register", json={
            "email": "New.Student@Example.com",
            "password": "NewStudent123",
            "name": "New Student",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "new.student@example.com"
        assert "password_hash" not in data["user"]
        assert SESSION_COOKIE in response.cookies

        profile = client.get("/api/user/profile")
        assert profile.status_code == 200
        assert profile.json()["user"]["name"] == "New Student"

    def test_register_uses_request_locale(self, client: TestClient):
        response = client.post("/api/auth/register?lang=es", json={
            "email": "ana@example.com",
            "password": "AnaPass12345",
            "name": "Ana",
        })

        assert response.status_code == 201
        assert response.json()["user"]["preferred_language"] == "es"

    def test_register_duplicate_email(self, client: TestClient, test_user: dict):
        response = client.post("/api/auth/register", json={
            "email": test_user["email"],
            "password": "Whatever123",
            "name": "Copy",
        })

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_register_invalid_data(self, client: TestClient):
        response = client.post("/api/auth/register", json={
            "email": "nope",
            "password": "short",
            "name": "",
        })

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert set(error["fields"]) == {"email", "password", "name"}

    def test_register_missing_body_fields(self, client: TestClient):
        response = client.post("/api/auth/register", json={"email": "a@b.co"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "password" in response.json()["error"]["fields"]


class TestLoginFlow:
    """Test login and logout."""

    def test_login_with_valid_credentials(self, client: TestClient, test_user: dict):
        response = client.post("/api/auth/login", json={
            "email": test_user["email"],
            "password": test_user["password"],
        })

        assert response.status_code == 200
        assert response.json()["user"]["id"] == test_user["id"]
        assert SESSION_COOKIE in response.cookies

    def test_login_email_is_case_insensitive(self, client: TestClient, test_user: dict):
        response = client.post("/api/auth/login", json={
            "email": test_user["email"].upper(),
            "password": test_user["password"],
        })

        assert response.status_code == 200

    def test_login_with_invalid_password(self, client: TestClient, test_user: dict):
        response = client.post("/api/auth/login", json={
            "email": test_user["email"],
            "password": "wrongpassword",
        })

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"

    def test_login_with_nonexistent_user(self, client: TestClient):
        response = client.post("/api/auth/login", json={
            "email": "ghost@example.com",
            "password": "somepass123",
        })

        assert response.status_code == 401

    def test_logout_ends_session(self, authenticated_client: TestClient, csrf_headers):
        response = authenticated_client.post("/api/auth/logout", headers=csrf_headers(authenticated_client))
        assert response.status_code == 200

        assert authenticated_client.get("/api/user/profile").status_code == 401


class TestSessionManagement:
    """Test session cookie and access control."""

    def test_protected_routes_require_session(self, client: TestClient):
        for path in ("/api/user/profile", "/api/progress", "/api/admin/reviews/pending"):
            response = client.get(path)

            assert response.status_code == 401, path
            assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    def test_invalid_session_cookie(self, client: TestClient):
        response = client.get("/api/user/profile", headers={"Cookie": f"{SESSION_COOKIE}=not-a-session"})

        assert response.status_code == 401

    def test_profile(self, authenticated_client: TestClient, test_user: dict):
        response = authenticated_client.get("/api/user/profile")

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == test_user["email"]
        assert user["role"] == "user"


class TestCSRFProtection:

    def test_post_without_token_is_rejected(self, authenticated_client: TestClient):
        response = authenticated_client.put("/api/user/language", json={"language": "es"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "CSRF_ERROR"

    def test_post_with_wrong_token_is_rejected(self, authenticated_client: TestClient, csrf_headers):
        csrf_headers(authenticated_client)

        response = authenticated_client.put(
            "/api/user/language",
            json={"language": "es"},
            headers={"X-CSRF-Token": "forged"},
        )

        assert response.status_code == 403

    def test_csrf_cookie_issued_on_get(self, client: TestClient):
        client.get("/api/health")

        assert client.cookies.get(CSRF_COOKIE_NAME)


class TestLanguagePreference:

    def test_update_language(self, authenticated_client: TestClient, csrf_headers):
        response = authenticated_client.put(
            "/api/user/language",
            json={"language": "es"},
            headers=csrf_headers(authenticated_client),
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "language": "es",
            "message": "Preferencia de idioma actualizada",
        }
        assert response.cookies.get(LOCALE_COOKIE) == "es"

        profile = authenticated_client.get("/api/user/profile").json()["user"]
        assert profile["preferred_language"] == "es"

    def test_invalid_language(self, authenticated_client: TestClient, csrf_headers):
        response = authenticated_client.put(
            "/api/user/language",
            json={"language": "fr"},
            headers=csrf_headers(authenticated_client),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == 'Invalid language. Must be "en" or "es".'
