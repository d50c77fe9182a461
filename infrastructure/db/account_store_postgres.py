from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

from domain.errors import StorageUnavailableError
from domain.models import CredentialRecord, normalize_email, normalize_username
from domain.repositories import EMAIL_FIELD, USERNAME_FIELD, AccountStore, CreateResult

_COLUMNS = (
    "id, username, email, normalized_username, normalized_email, "
    "password_hash, created_at"
)

# Errors that mean "try again later" rather than "bad data".
_TRANSIENT_ERRORS = (
    psycopg2.OperationalError,
    psycopg2.InterfaceError,
    psycopg2.pool.PoolError,
)


class PostgresAccountStore(AccountStore):
    """
    Postgres-backed implementation of `AccountStore`.

    Connections come from a `ThreadedConnectionPool` owned by the store and
    are held for one operation only. Uniqueness is enforced by unique
    constraints on the normalized columns; `create_if_absent` relies on
    `INSERT ... ON CONFLICT DO NOTHING`, which never lets two colliding
    inserts both succeed.
    """

    def __init__(
        self,
        db_params: dict,
        username_case_sensitive: bool = False,
        min_connections: int = 1,
        max_connections: int = 10,
    ) -> None:
        self._username_case_sensitive = username_case_sensitive
        try:
            self._pool = ThreadedConnectionPool(min_connections, max_connections, **db_params)
        except _TRANSIENT_ERRORS as exc:
            raise StorageUnavailableError("connect", exc) from exc
        self._ensure_table()

    @contextmanager
    def _get_connection(self, operation: str) -> Iterator["psycopg2.extensions.connection"]:
        try:
            conn = self._pool.getconn()
        except _TRANSIENT_ERRORS as exc:
            raise StorageUnavailableError(operation, exc) from exc

        broken = False
        try:
            with conn:
                yield conn
        except _TRANSIENT_ERRORS as exc:
            broken = True
            raise StorageUnavailableError(operation, exc) from exc
        finally:
            self._pool.putconn(conn, close=broken or bool(conn.closed))

    def _ensure_table(self) -> None:
        with self._get_connection("ensure_table") as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS accounts (
                        id BIGSERIAL PRIMARY KEY,
                        username TEXT NOT NULL,
                        email TEXT NOT NULL,
                        normalized_username TEXT NOT NULL UNIQUE,
                        normalized_email TEXT NOT NULL UNIQUE,
                        password_hash TEXT NOT NULL CHECK (password_hash <> ''),
                        created_at TIMESTAMPTZ NOT NULL
                    )
                    """
                )

    @staticmethod
    def _to_domain(row: tuple) -> CredentialRecord:
        return CredentialRecord(
            id=int(row[0]),
            username=row[1],
            email=row[2],
            normalized_username=row[3],
            normalized_email=row[4],
            password_hash=row[5],
            created_at=row[6],
        )

    def _find_one(self, operation: str, column: str, value: str) -> Optional[CredentialRecord]:
        with self._get_connection(operation) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM accounts WHERE {column} = %s",
                    (value,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                return self._to_domain(row)

    def find_by_email(self, email: str) -> Optional[CredentialRecord]:
        return self._find_one("find_by_email", "normalized_email", normalize_email(email))

    def find_by_username(self, username: str) -> Optional[CredentialRecord]:
        return self._find_one(
            "find_by_username",
            "normalized_username",
            normalize_username(username, self._username_case_sensitive),
        )

    def create_if_absent(self, record: CredentialRecord) -> CreateResult:
        with self._get_connection("create_if_absent") as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO accounts (
                        username, email, normalized_username, normalized_email,
                        password_hash, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT DO NOTHING
                    RETURNING id
                    """,
                    (
                        record.username,
                        record.email,
                        record.normalized_username,
                        record.normalized_email,
                        record.password_hash,
                        record.created_at,
                    ),
                )
                row = cur.fetchone()
                if row:
                    return CreateResult.success(replace(record, id=int(row[0])))

                cur.execute(
                    """
                    SELECT normalized_username, normalized_email
                    FROM accounts
                    WHERE normalized_username = %s OR normalized_email = %s
                    """,
                    (record.normalized_username, record.normalized_email),
                )
                rows = cur.fetchall()

        conflicts: List[str] = []
        if any(r[0] == record.normalized_username for r in rows):
            conflicts.append(USERNAME_FIELD)
        if any(r[1] == record.normalized_email for r in rows):
            conflicts.append(EMAIL_FIELD)
        return CreateResult.conflict(conflicts)

    def close(self) -> None:
        self._pool.closeall()
