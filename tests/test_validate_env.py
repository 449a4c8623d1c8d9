from __future__ import annotations

import os
import unittest
from unittest import mock

import validate_env


class ValidateEnvTestCase(unittest.TestCase):
    def test_defaults_are_valid(self):
        env = {"SECRET_KEY": "k" * 40}
        with mock.patch.dict(os.environ, env, clear=True):
            is_valid, missing, warnings = validate_env.validate_environment()
        self.assertTrue(is_valid, missing)
        self.assertEqual(warnings, [])

    def test_missing_secret_key(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            is_valid, missing, _ = validate_env.validate_environment()
        self.assertFalse(is_valid)
        self.assertIn("SECRET_KEY", missing)

    def test_bad_market_settings(self):
        env = {
            "SECRET_KEY": "k" * 40,
            "PLATFORM_FEE_RATE": "5",
            "DEFAULT_DELIVERY_FEE": "two",
            "DEFAULT_LOCALE": "fr",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            problems = validate_env.check_market_settings()
        self.assertEqual(len(problems), 3)

    def test_half_configured_admin_warns(self):
        env = {"SECRET_KEY": "short", "INITIAL_ADMIN_EMAIL": "admin@example.com"}
        with mock.patch.dict(os.environ, env, clear=True):
            _, _, warnings = validate_env.validate_environment()
        self.assertEqual(len(warnings), 2)


if __name__ == "__main__":
    unittest.main()
