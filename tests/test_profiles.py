"""Tests for profiles and share links."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from murmur.services.auth import AuthService
from murmur.services.profile import ProfileService


class TestOwnProfile:
    """Tests for the signed-in recipient's profile."""

    def test_get_profile_with_share_link(self, client: TestClient, test_user: dict):
        """Profile includes a share link ending in the username."""
        response = client.get(
            "/api/v1/profile",
            headers={"Authorization": f"Bearer {test_user['token']}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "tester"
        assert data["display_name"] == "Test User"
        assert data["share_link"] == "http://testserver/send/tester"

    def test_update_display_name(self, client: TestClient, test_user: dict):
        """Display name can be changed; username stays the same."""
        response = client.patch(
            "/api/v1/profile",
            json={"display_name": "Renamed"},
            headers={"Authorization": f"Bearer {test_user['token']}"},
        )
        assert response.status_code == 200
        assert response.json()["display_name"] == "Renamed"
        assert response.json()["username"] == "tester"

    def test_update_display_name_rejects_empty(self, client: TestClient, test_user: dict):
        """Empty display names fail validation."""
        response = client.patch(
            "/api/v1/profile",
            json={"display_name": ""},
            headers={"Authorization": f"Bearer {test_user['token']}"},
        )
        assert response.status_code == 422

    def test_update_display_name_web(self, client: TestClient, test_user: dict):
        """Dashboard form updates the display name and redirects with a notice."""
        client.cookies.set("murmur_auth_token", test_user["token"])
        response = client.post("/profile", data={"display_name": "Web Name"}, follow_redirects=False)
        assert response.status_code == 303
        assert "notice=" in response.headers["location"]

        page = client.get("/")
        assert "Welcome back, Web Name!" in page.text

    def test_profile_requires_auth(self, client: TestClient):
        """Profile requires authentication."""
        response = client.get("/api/v1/profile")
        assert response.status_code == 401


class TestPublicProfile:
    """Tests for public profile lookup."""

    def test_lookup_by_username(self, client: TestClient, test_user: dict):
        """Anyone can resolve a username to its display name."""
        response = client.get("/api/v1/profiles/tester")
        assert response.status_code == 200
        assert response.json() == {"username": "tester", "display_name": "Test User"}

    def test_lookup_is_exact_match(self, client: TestClient, test_user: dict):
        """Share links resolve only the exact stored handle."""
        response = client.get("/api/v1/profiles/TESTER")
        assert response.status_code == 404

    def test_lookup_unknown_user(self, client: TestClient):
        """Unknown usernames answer 404."""
        response = client.get("/api/v1/profiles/ghost")
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"


class TestUsernameRules:
    """Tests for username validation."""

    def test_valid_usernames(self):
        service = ProfileService()
        for username in ("abc", "user_01", "A" * 32):
            assert service.validate_username(username) is None

    def test_invalid_usernames(self):
        service = ProfileService()
        for username in ("ab", "has space", "dash-ed", "x" * 33, ""):
            assert service.validate_username(username) is not None

    def test_username_taken_ignores_case(self, db_session: Session, test_user: dict):
        assert ProfileService().is_username_taken(db_session, "Tester")

    def test_underscore_is_not_a_wildcard(self, db_session: Session):
        """A handle differing only where the other has an underscore is still free."""
        auth_service = AuthService()
        first = auth_service.register(db_session, "x@example.com", "password123", "johnxdoe")
        assert first.success

        assert not ProfileService().is_username_taken(db_session, "john_doe")
        second = auth_service.register(db_session, "u@example.com", "password123", "john_doe")
        assert second.success
        assert second.username == "john_doe"
