"""Validation rules of app.core.config.Settings."""

import unittest

from pydantic import ValidationError

from app.core.config import DEFAULT_JWT_SECRET, Settings


class TestSettingsValidation(unittest.TestCase):
    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        self.assertEqual(s.JWT_EXPIRE_MINUTES, 60)
        self.assertEqual(s.RESET_TOKEN_EXPIRE_MINUTES, 60)
        self.assertEqual(s.SESSION_COOKIE_NAME, "token")

    def test_rejects_non_postgres_url(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(DATABASE_URL="mysql://root@localhost/db1")

    def test_rejects_blank_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(JWT_SECRET="   ")

    def test_prod_requires_real_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(APP_ENV="prod", JWT_SECRET=DEFAULT_JWT_SECRET)
        s = Settings(APP_ENV="prod", JWT_SECRET="rotated-secret-value")
        self.assertEqual(s.JWT_SECRET.get_secret_value(), "rotated-secret-value")

    def test_token_lifetime_bounds(self) -> None:
        for field in ("JWT_EXPIRE_MINUTES", "RESET_TOKEN_EXPIRE_MINUTES"):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    Settings(**{field: 0})

    def test_reset_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(PASSWORD_RESET_URL="ftp://example.edu/reset")

    def test_blank_smtp_host_means_unconfigured(self) -> None:
        self.assertIsNone(Settings(SMTP_HOST="  ").SMTP_HOST)

    def test_tls_modes_exclusive(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(SMTP_USE_TLS=True, SMTP_START_TLS=True)
        self.assertTrue(Settings(SMTP_USE_TLS=True, SMTP_START_TLS=False).SMTP_USE_TLS)

    def test_api_prefix_normalized(self) -> None:
        self.assertEqual(Settings(API_PREFIX="/api/").API_PREFIX, "/api")
        with self.assertRaises(ValidationError):
            Settings(API_PREFIX="api")


if __name__ == "__main__":
    unittest.main()
