import logging
import os
import shutil
import tempfile
import unittest

from application.policy import LOGIN_BY_USERNAME
from infrastructure.config import (
    STORE_MEMORY,
    STORE_POSTGRES,
    STORE_SQLITE,
    ConfigurationError,
    load_settings,
)
from infrastructure.db.account_store_memory import InMemoryAccountStore
from infrastructure.db.account_store_sqlite import SqliteAccountStore
from infrastructure.logging_setup import configure_logging
from web_main import build_account_store, build_app


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = load_settings({})
        self.assertEqual(settings.account_store, STORE_SQLITE)
        self.assertEqual(settings.db_path, "auth.db")
        self.assertEqual(settings.bcrypt_rounds, 12)
        self.assertIsNone(settings.postgres_params)
        self.assertTrue(settings.policy.reveal_conflict_fields)
        self.assertFalse(settings.policy.username_case_sensitive)
        self.assertEqual(settings.policy.password.min_length, 6)

    def test_overrides(self):
        settings = load_settings(
            {
                "ACCOUNT_STORE": "Memory",
                "BCRYPT_ROUNDS": "4",
                "LOGIN_IDENTIFIER": "username",
                "USERNAME_CASE_SENSITIVE": "yes",
                "REVEAL_CONFLICT_FIELDS": "false",
                "PASSWORD_MIN_LENGTH": "10",
                "PASSWORD_REQUIRE_DIGIT": "0",
                "PORT": "9000",
                "LOG_LEVEL": "debug",
            }
        )
        self.assertEqual(settings.account_store, STORE_MEMORY)
        self.assertEqual(settings.bcrypt_rounds, 4)
        self.assertEqual(settings.policy.login_identifier, LOGIN_BY_USERNAME)
        self.assertTrue(settings.policy.username_case_sensitive)
        self.assertFalse(settings.policy.reveal_conflict_fields)
        self.assertEqual(settings.policy.password.min_length, 10)
        self.assertFalse(settings.policy.password.require_digit)
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_postgres_parameters(self):
        settings = load_settings(
            {"ACCOUNT_STORE": "postgres", "POSTGRES_HOST": "db", "POSTGRES_PORT": "6543"}
        )
        self.assertEqual(settings.account_store, STORE_POSTGRES)
        self.assertEqual(settings.postgres_params["host"], "db")
        self.assertEqual(settings.postgres_params["port"], 6543)

    def test_invalid_values_name_the_variable(self):
        bad = [
            {"ACCOUNT_STORE": "redis"},
            {"BCRYPT_ROUNDS": "two"},
            {"BCRYPT_ROUNDS": "40"},
            {"USERNAME_CASE_SENSITIVE": "maybe"},
            {"LOGIN_IDENTIFIER": "phone"},
            {"POSTGRES_POOL_MIN": "5", "POSTGRES_POOL_MAX": "2"},
            {"PASSWORD_MIN_LENGTH": "0"},
            {"LOG_LEVEL": "verbose"},
        ]
        for env in bad:
            with self.assertRaises(ConfigurationError, msg=str(env)):
                load_settings(env)

    def test_unknown_log_level_is_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_settings({"LOG_LEVEL": "verbose"})
        self.assertIn("LOG_LEVEL", str(ctx.exception))
        self.assertEqual(load_settings({"LOG_LEVEL": "Warning"}).log_level, "WARNING")


class WiringTests(unittest.TestCase):
    def test_memory_store(self):
        settings = load_settings({"ACCOUNT_STORE": "memory"})
        self.assertIsInstance(build_account_store(settings), InMemoryAccountStore)

    def test_sqlite_store_and_app(self):
        tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp_dir, ignore_errors=True)
        settings = load_settings(
            {"DB_PATH": os.path.join(tmp_dir, "auth.db"), "BCRYPT_ROUNDS": "4"}
        )
        self.assertIsInstance(build_account_store(settings), SqliteAccountStore)
        paths = {route.path for route in build_app(settings).routes}
        self.assertTrue({"/", "/account/register", "/account/login"} <= paths)

    def test_configure_logging_is_idempotent(self):
        root = logging.getLogger()
        before = len(root.handlers)
        configure_logging("INFO")
        configure_logging("INFO")
        self.assertLessEqual(len(root.handlers), before + 1)


if __name__ == "__main__":
    unittest.main()
