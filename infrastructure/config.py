"""Settings for the credential service, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from application.policy import LOGIN_BY_EMAIL, LOGIN_BY_USERNAME, CredentialPolicy, PasswordPolicy

STORE_MEMORY = "memory"
STORE_SQLITE = "sqlite"
STORE_POSTGRES = "postgres"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigurationError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    account_store: str = STORE_SQLITE
    db_path: str = "auth.db"
    postgres_params: Optional[dict] = None
    postgres_pool_min: int = 1
    postgres_pool_max: int = 10
    bcrypt_rounds: int = 12
    policy: CredentialPolicy = field(default_factory=CredentialPolicy)
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _get_choice(env: Mapping[str, str], name: str, default: str, choices: tuple) -> str:
    value = (env.get(name) or default).strip().lower()
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build `Settings` from environment variables.

    `environ` defaults to `os.environ`; callers that want values from a
    `.env` file should run `dotenv.load_dotenv()` first.
    """

    env = os.environ if environ is None else environ

    account_store = _get_choice(
        env, "ACCOUNT_STORE", STORE_SQLITE, (STORE_MEMORY, STORE_SQLITE, STORE_POSTGRES)
    )

    postgres_params = None
    if account_store == STORE_POSTGRES:
        postgres_params = {
            "host": env.get("POSTGRES_HOST", "localhost"),
            "port": _get_int(env, "POSTGRES_PORT", 5432),
            "dbname": env.get("POSTGRES_DB", "auth"),
            "user": env.get("POSTGRES_USER", "postgres"),
            "password": env.get("POSTGRES_PASSWORD", ""),
        }

    pool_min = _get_int(env, "POSTGRES_POOL_MIN", 1)
    pool_max = _get_int(env, "POSTGRES_POOL_MAX", 10)
    if pool_min < 1 or pool_max < pool_min:
        raise ConfigurationError(
            "POSTGRES_POOL_MIN must be at least 1 and not above POSTGRES_POOL_MAX"
        )

    bcrypt_rounds = _get_int(env, "BCRYPT_ROUNDS", 12)
    if not 4 <= bcrypt_rounds <= 31:
        raise ConfigurationError(f"BCRYPT_ROUNDS must be between 4 and 31, got {bcrypt_rounds}")

    min_length = _get_int(env, "PASSWORD_MIN_LENGTH", 6)
    if min_length < 1:
        raise ConfigurationError("PASSWORD_MIN_LENGTH must be at least 1")

    policy = CredentialPolicy(
        login_identifier=_get_choice(
            env, "LOGIN_IDENTIFIER", LOGIN_BY_EMAIL, (LOGIN_BY_EMAIL, LOGIN_BY_USERNAME)
        ),
        username_case_sensitive=_get_bool(env, "USERNAME_CASE_SENSITIVE", False),
        reveal_conflict_fields=_get_bool(env, "REVEAL_CONFLICT_FIELDS", True),
        password=PasswordPolicy(
            min_length=min_length,
            require_digit=_get_bool(env, "PASSWORD_REQUIRE_DIGIT", True),
            require_lowercase=_get_bool(env, "PASSWORD_REQUIRE_LOWER", True),
            require_uppercase=_get_bool(env, "PASSWORD_REQUIRE_UPPER", True),
            require_non_alphanumeric=_get_bool(env, "PASSWORD_REQUIRE_NON_ALPHANUMERIC", True),
        ),
    )

    return Settings(
        account_store=account_store,
        db_path=env.get("DB_PATH", "auth.db"),
        postgres_params=postgres_params,
        postgres_pool_min=pool_min,
        postgres_pool_max=pool_max,
        bcrypt_rounds=bcrypt_rounds,
        policy=policy,
        host=env.get("HOST", "0.0.0.0"),
        port=_get_int(env, "PORT", 8000),
        log_level=_get_choice(env, "LOG_LEVEL", "info", _LOG_LEVELS).upper(),
    )
