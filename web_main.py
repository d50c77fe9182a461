import logging

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from application.services import CredentialService
from domain.repositories import AccountStore
from infrastructure.config import STORE_MEMORY, STORE_POSTGRES, Settings, load_settings
from infrastructure.db.account_store_memory import InMemoryAccountStore
from infrastructure.db.account_store_sqlite import SqliteAccountStore
from infrastructure.logging_setup import configure_logging
from infrastructure.security.bcrypt_hasher import BcryptPasswordHasher
from interfaces.http.app import create_app

logger = logging.getLogger(__name__)


def build_account_store(settings: Settings) -> AccountStore:
    case_sensitive = settings.policy.username_case_sensitive
    if settings.account_store == STORE_MEMORY:
        return InMemoryAccountStore(username_case_sensitive=case_sensitive)
    if settings.account_store == STORE_POSTGRES:
        # psycopg2 is only needed for the Postgres backend.
        from infrastructure.db.account_store_postgres import PostgresAccountStore

        return PostgresAccountStore(
            settings.postgres_params,
            username_case_sensitive=case_sensitive,
            min_connections=settings.postgres_pool_min,
            max_connections=settings.postgres_pool_max,
        )
    return SqliteAccountStore(settings.db_path, username_case_sensitive=case_sensitive)


def build_app(settings: Settings) -> FastAPI:
    store = build_account_store(settings)
    hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    service = CredentialService(store, hasher, settings.policy)
    logger.info(
        "Credential service ready (store=%s, login by %s)",
        settings.account_store,
        settings.policy.login_identifier,
    )
    return create_app(service)


def main() -> None:
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)

    app = build_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
