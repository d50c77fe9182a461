from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator, List, Optional

from domain.errors import StorageUnavailableError
from domain.models import CredentialRecord, normalize_email, normalize_username
from domain.repositories import EMAIL_FIELD, USERNAME_FIELD, AccountStore, CreateResult

_COLUMNS = (
    "id, username, email, normalized_username, normalized_email, "
    "password_hash, created_at"
)


class SqliteAccountStore(AccountStore):
    """
    SQLite-backed implementation of `AccountStore`.

    Owns the `accounts` table and is self-initialising. Uniqueness of the
    normalized username and email is enforced by UNIQUE constraints, so the
    single INSERT in `create_if_absent` is the whole check-and-insert step.

    Every operation opens its own connection; `db_path` must therefore name
    a file, not ":memory:".
    """

    def __init__(
        self,
        db_path: str,
        username_case_sensitive: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._db_path = db_path
        self._username_case_sensitive = username_case_sensitive
        self._timeout = timeout
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection inside a transaction.

        Driver errors other than constraint violations are re-raised as
        `StorageUnavailableError`; constraint violations are left for the
        caller to interpret.
        """

        try:
            conn = self._get_connection()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(operation, exc) from exc
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise StorageUnavailableError(operation, exc) from exc
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        with self._connection("ensure_table") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    email TEXT NOT NULL,
                    normalized_username TEXT NOT NULL UNIQUE,
                    normalized_email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL CHECK (password_hash <> ''),
                    created_at TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> CredentialRecord:
        return CredentialRecord(
            id=int(row["id"]),
            username=row["username"],
            email=row["email"],
            normalized_username=row["normalized_username"],
            normalized_email=row["normalized_email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _find_one(self, operation: str, column: str, value: str) -> Optional[CredentialRecord]:
        with self._connection(operation) as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM accounts WHERE {column} = ?",
                (value,),
            ).fetchone()
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

    def _find_conflicts(self, record: CredentialRecord) -> List[str]:
        with self._connection("create_if_absent") as conn:
            rows = conn.execute(
                """
                SELECT normalized_username, normalized_email
                FROM accounts
                WHERE normalized_username = ? OR normalized_email = ?
                """,
                (record.normalized_username, record.normalized_email),
            ).fetchall()

        conflicts: List[str] = []
        if any(row["normalized_username"] == record.normalized_username for row in rows):
            conflicts.append(USERNAME_FIELD)
        if any(row["normalized_email"] == record.normalized_email for row in rows):
            conflicts.append(EMAIL_FIELD)
        return conflicts

    def create_if_absent(self, record: CredentialRecord) -> CreateResult:
        try:
            with self._connection("create_if_absent") as conn:
                cur = conn.execute(
                    """
                    INSERT INTO accounts (
                        username, email, normalized_username, normalized_email,
                        password_hash, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.username,
                        record.email,
                        record.normalized_username,
                        record.normalized_email,
                        record.password_hash,
                        record.created_at.isoformat(),
                    ),
                )
                record_id = cur.lastrowid
        except sqlite3.IntegrityError:
            return CreateResult.conflict(self._find_conflicts(record))

        return CreateResult.success(replace(record, id=record_id))
