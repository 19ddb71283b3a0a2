"""HTTP tests for the auth routes, session cookie gate and admin listing (FastAPI TestClient)."""

import unittest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.routes.auth import get_mailer
from app.core.database import get_db
from app.core.security import TokenService, get_token_service
from app.main import app
from app.models import Base
from app.services.auth import create_user
from app.services.mailer import MailError

REGISTRATION = {
    "name": "A",
    "mobile": "9999999999",
    "email": "a@x.com",
    "password": "pw1",
}


class _RecordingMailer:
    """Stands in for SmtpMailer; records messages or raises the configured error."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[tuple[str, str, str]] = []

    async def send_mail(self, to: str, subject: str, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((to, subject, text))


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.SessionTesting = sessionmaker(bind=engine, autoflush=False)
        self.tokens = TokenService("api-test-secret")
        self.mailer = _RecordingMailer()

        def override_get_db():
            db = self.SessionTesting()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        app.dependency_overrides[get_mailer] = lambda: self.mailer
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _register(self, **overrides: str) -> None:
        resp = self.client.post("/register", json={**REGISTRATION, **overrides})
        self.assertEqual(resp.status_code, 200, resp.text)

    def _login(self, identifier: str = "a@x.com", password: str = "pw1"):
        return self.client.post("/login", json={"identifier": identifier, "password": password})


class TestRegisterEndpoint(ApiTestCase):
    def test_register(self) -> None:
        resp = self.client.post("/register", json=REGISTRATION)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "User registered successfully")

    def test_duplicate(self) -> None:
        self._register()
        resp = self.client.post("/register", json={**REGISTRATION, "email": "b@x.com"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "User already exists")

    def test_missing_field(self) -> None:
        body = dict(REGISTRATION)
        del body["password"]
        resp = self.client.post("/register", json=body)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json()["detail"], "Name, mobile number, email, and password are required"
        )

    def test_numeric_mobile_accepted(self) -> None:
        resp = self.client.post("/register", json={**REGISTRATION, "mobile": 9999999999})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(self._login("9999999999").status_code, 200)

    def test_numeric_mobile_still_validated(self) -> None:
        resp = self.client.post("/register", json={**REGISTRATION, "mobile": 12345})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Mobile number must be 10 digits")

    def test_wrong_type_is_400(self) -> None:
        for field, value in (("mobile", [9999999999]), ("mobile", True), ("name", 7)):
            with self.subTest(field=field, value=value):
                resp = self.client.post("/register", json={**REGISTRATION, field: value})
                self.assertEqual(resp.status_code, 400)

    def test_email_unique_ignoring_case(self) -> None:
        self._register()
        resp = self.client.post(
            "/register", json={**REGISTRATION, "mobile": "8888888888", "email": "A@X.com"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "User already exists")

    def test_role_in_body_ignored(self) -> None:
        self.client.post("/register", json={**REGISTRATION, "role": "admin"})
        resp = self._login()
        claims = self.tokens.verify_session(resp.json()["access_token"])
        self.assertEqual(claims.role, "user")


class TestLoginLogout(ApiTestCase):
    def test_login_sets_http_only_cookie(self) -> None:
        self._register()
        resp = self._login()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["expires_in"], 3600)
        set_cookie = resp.headers["set-cookie"]
        self.assertTrue(set_cookie.startswith("token="))
        self.assertIn("HttpOnly", set_cookie)
        self.assertEqual(self.client.cookies.get("token"), body["access_token"])

    def test_login_by_mobile(self) -> None:
        self._register()
        self.assertEqual(self._login("9999999999").status_code, 200)

    def test_login_by_numeric_mobile(self) -> None:
        self._register()
        resp = self.client.post("/login", json={"identifier": 9999999999, "password": "pw1"})
        self.assertEqual(resp.status_code, 200, resp.text)

    def test_login_email_ignores_case(self) -> None:
        self._register()
        self.assertEqual(self._login("A@X.COM").status_code, 200)

    def test_failures_are_indistinguishable(self) -> None:
        self._register()
        unknown = self._login("nobody@x.com", "pw1")
        wrong = self._login("a@x.com", "wrongpw")
        self.assertEqual(unknown.status_code, 400)
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(unknown.json(), wrong.json())
        self.assertNotIn("set-cookie", wrong.headers)

    def test_missing_credentials(self) -> None:
        resp = self.client.post("/login", json={"identifier": "a@x.com"})
        self.assertEqual(resp.status_code, 400)

    def test_logout_clears_cookie(self) -> None:
        self._register()
        self._login()
        resp = self.client.post("/logout")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Logout successful")
        self.assertIsNone(self.client.cookies.get("token"))
        self.assertEqual(self.client.put("/change-name", json={"name": "X"}).status_code, 401)

    def test_logout_without_session(self) -> None:
        self.assertEqual(self.client.post("/logout").status_code, 200)


class TestProtectedRoutes(ApiTestCase):
    def test_requires_session(self) -> None:
        for path, body in (
            ("/change-name", {"name": "X"}),
            ("/change-mobile", {"mobile": "8888888888"}),
            ("/change-password", {"oldPassword": "pw1", "newPassword": "pw2"}),
        ):
            with self.subTest(path=path):
                self.assertEqual(self.client.put(path, json=body).status_code, 401)

    def test_invalid_cookie(self) -> None:
        self.client.cookies.set("token", "not-a-jwt")
        self.assertEqual(self.client.put("/change-name", json={"name": "X"}).status_code, 401)

    def test_reset_token_rejected_as_session(self) -> None:
        self._register()
        self.client.cookies.set("token", self.tokens.issue_reset(1))
        self.assertEqual(self.client.put("/change-name", json={"name": "X"}).status_code, 401)

    def test_bearer_header_accepted(self) -> None:
        self._register()
        token = self._login().json()["access_token"]
        self.client.cookies.clear()
        resp = self.client.put(
            "/change-name",
            json={"name": "X"},
            headers={"Authorization": f"Bearer {token}"},
        )
        self.assertEqual(resp.status_code, 200)

    def test_change_name(self) -> None:
        self._register()
        self._login()
        resp = self.client.put("/change-name", json={"name": ""})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Name updated successfully")

    def test_change_name_requires_string(self) -> None:
        self._register()
        self._login()
        self.assertEqual(self.client.put("/change-name", json={}).status_code, 400)

    def test_change_mobile(self) -> None:
        self._register()
        self._login()
        self.assertEqual(
            self.client.put("/change-mobile", json={"mobile": "12"}).status_code, 400
        )
        resp = self.client.put("/change-mobile", json={"mobile": "8888888888"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._login("8888888888").status_code, 200)

    def test_change_mobile_numeric(self) -> None:
        self._register()
        self._login()
        resp = self.client.put("/change-mobile", json={"mobile": 8888888888})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(self._login("8888888888").status_code, 200)

    def test_change_mobile_to_taken_number(self) -> None:
        self._register()
        self._register(mobile="8888888888", email="b@x.com")
        self._login("b@x.com")
        resp = self.client.put("/change-mobile", json={"mobile": "9999999999"})
        self.assertEqual(resp.status_code, 400)

    def test_change_password_scenario(self) -> None:
        self._register()
        self._login()
        wrong = self.client.put(
            "/change-password", json={"oldPassword": "nope", "newPassword": "pw2"}
        )
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(wrong.json()["detail"], "Invalid old password")

        ok = self.client.put(
            "/change-password", json={"oldPassword": "pw1", "newPassword": "pw2"}
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self._login("a@x.com", "pw1").status_code, 400)
        self.assertEqual(self._login("a@x.com", "pw2").status_code, 200)

    def test_session_for_removed_user(self) -> None:
        self.client.cookies.set("token", self.tokens.issue_session(999, "user"))
        resp = self.client.put("/change-name", json={"name": "Ghost"})
        self.assertEqual(resp.status_code, 404)


class TestPasswordResetFlow(ApiTestCase):
    def test_forgot_then_reset(self) -> None:
        self._register()
        resp = self.client.post("/forgot-password", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json()["message"], "Password reset link has been sent to your email"
        )
        self.assertEqual(len(self.mailer.sent), 1)
        token = self.mailer.sent[0][2].split("token=", 1)[1]

        resp = self.client.post("/reset-password", json={"token": token, "newPassword": "pw9"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Password has been reset successfully")
        self.assertEqual(self._login("a@x.com", "pw9").status_code, 200)

    def test_forgot_unknown_email(self) -> None:
        resp = self.client.post("/forgot-password", json={"email": "nobody@x.com"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.mailer.sent, [])

    def test_forgot_missing_email(self) -> None:
        self.assertEqual(self.client.post("/forgot-password", json={}).status_code, 400)

    def test_mail_failure_is_500(self) -> None:
        self._register()
        self.mailer.error = MailError("Error sending email")
        resp = self.client.post("/forgot-password", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["detail"], "Error sending email")

    def test_reset_with_bad_token(self) -> None:
        self._register()
        resp = self.client.post(
            "/reset-password", json={"token": "bad.token.value", "newPassword": "pw9"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Invalid or expired token")
        self.assertEqual(self._login("a@x.com", "pw1").status_code, 200)

    def test_reset_with_session_token(self) -> None:
        self._register()
        session_token = self._login().json()["access_token"]
        resp = self.client.post(
            "/reset-password", json={"token": session_token, "newPassword": "pw9"}
        )
        self.assertEqual(resp.status_code, 400)

    def test_reset_missing_fields(self) -> None:
        resp = self.client.post("/reset-password", json={"token": "x"})
        self.assertEqual(resp.status_code, 400)


class TestAdminUsers(ApiTestCase):
    def test_plain_user_forbidden(self) -> None:
        self._register()
        self._login()
        self.assertEqual(self.client.get("/api/admin/users").status_code, 403)

    def test_anonymous_unauthorized(self) -> None:
        self.assertEqual(self.client.get("/api/admin/users").status_code, 401)

    def test_admin_lists_users_without_hashes(self) -> None:
        self._register()
        db = self.SessionTesting()
        try:
            create_user(db, "Admin", "7777777777", "admin@x.com", "adminpw", role="admin")
        finally:
            db.close()
        self._login("admin@x.com", "adminpw")
        resp = self.client.get("/api/admin/users")
        self.assertEqual(resp.status_code, 200)
        users = resp.json()["users"]
        self.assertEqual([u["email"] for u in users], ["a@x.com", "admin@x.com"])
        self.assertEqual([u["role"] for u in users], ["user", "admin"])
        for user in users:
            self.assertNotIn("password_hash", user)


class TestHealth(ApiTestCase):
    def test_health_reports_database(self) -> None:
        resp = self.client.get("/api/health/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")


if __name__ == "__main__":
    unittest.main()
