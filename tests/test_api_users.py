"""
Integration tests for the user endpoints through FastAPI's TestClient.

The app runs with an in-memory store and test settings injected through
dependency overrides, so no database is needed.
"""

import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from usergate.api.dependencies import get_session_coordinator, get_user_store
from usergate.core.config import Settings, get_settings
from usergate.core.config import settings as app_settings
from usergate.core.tokens import verify_access_token
from usergate.main import app
from usergate.services.user_store import InMemoryUserStore

PREFIX = app_settings.API_PREFIX
PASSWORD = "Passw0rd1"


def _settings(**overrides: object) -> Settings:
    values = {
        "JWT_ACCESS_SECRET": "test-access-secret",
        "JWT_REFRESH_SECRET": "test-refresh-secret",
        "BCRYPT_ROUNDS": 4,
    }
    values.update(overrides)
    return Settings(**values)


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryUserStore()
        self.settings = _settings()
        app.dependency_overrides[get_user_store] = lambda: self.store
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def register(self, email: str = "a@example.com", name: str = "A", role: str | None = None) -> dict:
        body = {"name": name, "email": email, "password": PASSWORD}
        if role:
            body["role"] = role
        resp = self.client.post(f"{PREFIX}/register", json=body)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


class TestRegisterEndpoint(ApiTestCase):
    def test_register_scenario(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/register",
            json={"name": "A", "email": "a@x.com", "password": PASSWORD},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "User created successfully")
        self.assertNotIn("errors", body)
        data = body["data"]
        self.assertEqual(data["user"]["email"], "a@x.com")
        self.assertEqual(data["user"]["role"], "User")
        self.assertNotIn("password", data["user"])
        self.assertNotIn("passwordHash", data["user"])
        self.assertNotIn("refreshTokens", data["user"])
        self.assertIn("accessToken", data)

        refreshed = self.client.post(f"{PREFIX}/refresh", json={"refreshToken": data["refreshToken"]})
        self.assertEqual(refreshed.status_code, 200)

    def test_duplicate_email_by_case(self) -> None:
        self.register(email="a@example.com")
        resp = self.client.post(
            f"{PREFIX}/register",
            json={"name": "B", "email": "A@Example.com", "password": PASSWORD},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertFalse(resp.json()["success"])
        self.assertEqual(resp.json()["message"], "Email already exists")

    def test_invalid_email(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/register",
            json={"name": "A", "email": "invalid-email", "password": PASSWORD},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertGreater(len(resp.json()["errors"]), 0)
        self.assertEqual(resp.json()["errors"][0]["field"], "email")

    def test_weak_password_lists_every_violation(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/register",
            json={"name": "A", "email": "a@example.com", "password": "123"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(len(resp.json()["errors"]), 3)

    def test_missing_fields(self) -> None:
        resp = self.client.post(f"{PREFIX}/register", json={"email": "a@example.com"})
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["errors"]}
        self.assertEqual(fields, {"name", "password"})

    def test_unknown_role_is_rejected(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/register",
            json={"name": "A", "email": "a@example.com", "password": PASSWORD, "role": "Root"},
        )
        self.assertEqual(resp.status_code, 400)


class TestLoginEndpoint(ApiTestCase):
    def test_login_success(self) -> None:
        self.register()
        resp = self.client.post(f"{PREFIX}/login", json={"email": "a@example.com", "password": PASSWORD})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Login successful")
        self.assertEqual(set(resp.json()["data"]), {"accessToken", "refreshToken"})

    def test_failures_are_indistinguishable(self) -> None:
        self.register()
        unknown = self.client.post(f"{PREFIX}/login", json={"email": "nope@x.com", "password": "anything"})
        wrong = self.client.post(f"{PREFIX}/login", json={"email": "a@example.com", "password": "wrongpass"})
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(unknown.status_code, wrong.status_code)
        self.assertEqual(unknown.json(), wrong.json())
        self.assertEqual(unknown.json()["message"], "Invalid email or password")

    def test_missing_password(self) -> None:
        resp = self.client.post(f"{PREFIX}/login", json={"email": "a@example.com"})
        self.assertEqual(resp.status_code, 400)


class TestRefreshLogoutEndpoints(ApiTestCase):
    def test_refreshed_access_token_carries_identity(self) -> None:
        data = self.register(role="Moderator")
        resp = self.client.post(f"{PREFIX}/refresh", json={"refreshToken": data["refreshToken"]})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Token refreshed successfully")
        self.assertEqual(set(resp.json()["data"]), {"accessToken"})
        claims = verify_access_token(resp.json()["data"]["accessToken"], self.settings)
        self.assertEqual(claims.id, data["user"]["id"])
        self.assertEqual(claims.role.value, "Moderator")

    def test_refresh_invalid_token(self) -> None:
        resp = self.client.post(f"{PREFIX}/refresh", json={"refreshToken": "invalid_token"})
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()["success"])

    def test_refresh_missing_token(self) -> None:
        resp = self.client.post(f"{PREFIX}/refresh", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Refresh token is required")

    def test_logout_then_refresh_fails(self) -> None:
        data = self.register()
        resp = self.client.post(
            f"{PREFIX}/logout",
            json={"refreshToken": data["refreshToken"]},
            headers=self.bearer(data["accessToken"]),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Logout successful")
        self.assertIsNone(resp.json()["data"])

        again = self.client.post(f"{PREFIX}/refresh", json={"refreshToken": data["refreshToken"]})
        self.assertEqual(again.status_code, 401)

    def test_logout_without_authentication(self) -> None:
        data = self.register()
        resp = self.client.post(f"{PREFIX}/logout", json={"refreshToken": data["refreshToken"]})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "No token provided")

    def test_logout_missing_refresh_token(self) -> None:
        data = self.register()
        resp = self.client.post(f"{PREFIX}/logout", json={}, headers=self.bearer(data["accessToken"]))
        self.assertEqual(resp.status_code, 400)


class TestProfileEndpoints(ApiTestCase):
    def test_get_profile(self) -> None:
        data = self.register(name="Profile User")
        resp = self.client.get(f"{PREFIX}/profile", headers=self.bearer(data["accessToken"]))
        self.assertEqual(resp.status_code, 200)
        profile = resp.json()["data"]
        self.assertEqual(profile["name"], "Profile User")
        self.assertNotIn("password", profile)
        self.assertNotIn("refreshTokens", profile)

    def test_no_token(self) -> None:
        resp = self.client.get(f"{PREFIX}/profile")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "No token provided")

    def test_malformed_header_is_401(self) -> None:
        data = self.register()
        resp = self.client.get(f"{PREFIX}/profile", headers={"Authorization": data["accessToken"]})
        self.assertEqual(resp.status_code, 401)

    def test_invalid_token_is_403(self) -> None:
        resp = self.client.get(f"{PREFIX}/profile", headers=self.bearer("invalid_token"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "Invalid token")

    def test_refresh_token_is_not_an_access_token(self) -> None:
        data = self.register()
        resp = self.client.get(f"{PREFIX}/profile", headers=self.bearer(data["refreshToken"]))
        self.assertEqual(resp.status_code, 403)

    def test_update_name_and_email(self) -> None:
        data = self.register()
        resp = self.client.put(
            f"{PREFIX}/profile",
            json={"name": "Updated Name", "email": "Updated@Example.com"},
            headers=self.bearer(data["accessToken"]),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Profile updated successfully")
        self.assertEqual(resp.json()["data"]["name"], "Updated Name")
        self.assertEqual(resp.json()["data"]["email"], "updated@example.com")

    def test_update_email_conflict(self) -> None:
        self.register(email="a@example.com")
        other = self.register(email="b@example.com", name="B")
        resp = self.client.put(
            f"{PREFIX}/profile",
            json={"email": "a@example.com"},
            headers=self.bearer(other["accessToken"]),
        )
        self.assertEqual(resp.status_code, 409)

    def test_update_invalid_fields(self) -> None:
        data = self.register()
        for body in ({"email": "invalid-email"}, {"name": "R2D2"}, {"name": "x"}):
            with self.subTest(body=body):
                resp = self.client.put(
                    f"{PREFIX}/profile", json=body, headers=self.bearer(data["accessToken"])
                )
                self.assertEqual(resp.status_code, 400)
                self.assertGreater(len(resp.json()["errors"]), 0)

    def test_update_name_is_checked_after_stripping(self) -> None:
        data = self.register(name="Alice")
        for name in ("   ", " x ", "Ann\nLee", "Ann\tLee"):
            with self.subTest(name=name):
                resp = self.client.put(
                    f"{PREFIX}/profile", json={"name": name}, headers=self.bearer(data["accessToken"])
                )
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["errors"][0]["field"], "name")
        self.assertEqual(self.store.find_by_email("a@example.com").name, "Alice")

        resp = self.client.put(
            f"{PREFIX}/profile", json={"name": "  Ann Lee  "}, headers=self.bearer(data["accessToken"])
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["name"], "Ann Lee")

    def test_update_without_authentication(self) -> None:
        resp = self.client.put(f"{PREFIX}/profile", json={"name": "New Name"})
        self.assertEqual(resp.status_code, 401)


class TestAdminEndpoints(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = self.register(email="admin@example.com", name="Admin", role="Admin")
        self.user = self.register(email="user@example.com", name="Plain User")
        self.moderator = self.register(email="mod@example.com", name="Mod", role="Moderator")

    def test_list_users_as_admin(self) -> None:
        resp = self.client.get(f"{PREFIX}/all", headers=self.bearer(self.admin["accessToken"]))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(len(data["users"]), 3)
        self.assertEqual(data["pagination"]["totalItems"], 3)
        for user in data["users"]:
            self.assertNotIn("password", user)
            self.assertNotIn("passwordHash", user)
            self.assertNotIn("refreshTokens", user)

    def test_list_users_with_search_and_paging(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/all",
            params={"search": "user", "sortBy": "name", "order": "asc", "limit": 1},
            headers=self.bearer(self.admin["accessToken"]),
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual([u["name"] for u in data["users"]], ["Plain User"])
        self.assertEqual(data["pagination"]["pageSize"], 1)

    def test_list_users_no_match(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/all",
            params={"search": "zzz"},
            headers=self.bearer(self.admin["accessToken"]),
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "No users found")

    def test_list_users_bad_limit(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/all", params={"limit": 500}, headers=self.bearer(self.admin["accessToken"])
        )
        self.assertEqual(resp.status_code, 400)

    def test_non_admin_roles_are_forbidden(self) -> None:
        for who in (self.user, self.moderator):
            resp = self.client.get(f"{PREFIX}/all", headers=self.bearer(who["accessToken"]))
            self.assertEqual(resp.status_code, 403)
            self.assertEqual(resp.json()["message"], "Access denied: insufficient permissions")

    def test_list_users_without_token(self) -> None:
        self.assertEqual(self.client.get(f"{PREFIX}/all").status_code, 401)

    def test_get_user_by_id(self) -> None:
        user_id = self.user["user"]["id"]
        resp = self.client.get(f"{PREFIX}/{user_id}", headers=self.bearer(self.admin["accessToken"]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["email"], "user@example.com")
        self.assertNotIn("refreshTokens", resp.json()["data"])

    def test_get_unknown_user(self) -> None:
        resp = self.client.get(f"{PREFIX}/missing-id", headers=self.bearer(self.admin["accessToken"]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "User not found")

    def test_get_user_by_id_forbidden_for_user(self) -> None:
        user_id = self.admin["user"]["id"]
        resp = self.client.get(f"{PREFIX}/{user_id}", headers=self.bearer(self.user["accessToken"]))
        self.assertEqual(resp.status_code, 403)


class TestUnexpectedErrors(ApiTestCase):
    def test_unhandled_exception_is_generic_500(self) -> None:
        broken = MagicMock()
        broken.login.side_effect = RuntimeError("store exploded")
        app.dependency_overrides[get_session_coordinator] = lambda: broken
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.post(f"{PREFIX}/login", json={"email": "a@example.com", "password": PASSWORD})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["message"], "Something went wrong!")
        self.assertFalse(resp.json()["success"])


class TestHealthEndpoint(ApiTestCase):
    def test_health_memory_store(self) -> None:
        resp = self.client.get("/health/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "ok")
        self.assertEqual(resp.json()["store"], "memory")
        self.assertIsNone(resp.json()["database"])


if __name__ == "__main__":
    unittest.main()
