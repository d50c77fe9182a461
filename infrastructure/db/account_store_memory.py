from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from domain.models import CredentialRecord, normalize_email, normalize_username
from domain.repositories import EMAIL_FIELD, USERNAME_FIELD, AccountStore, CreateResult


class InMemoryAccountStore(AccountStore):
    """
    Process-local implementation of `AccountStore`.

    Records live in two dicts keyed by normalized username and normalized
    email. A single lock covers the uniqueness check and the insert, which is
    enough to make `create_if_absent` atomic across threads. Contents are
    lost when the process exits.
    """

    def __init__(self, username_case_sensitive: bool = False) -> None:
        self._username_case_sensitive = username_case_sensitive
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._by_username: Dict[str, CredentialRecord] = {}
        self._by_email: Dict[str, CredentialRecord] = {}

    def find_by_email(self, email: str) -> Optional[CredentialRecord]:
        with self._lock:
            return self._by_email.get(normalize_email(email))

    def find_by_username(self, username: str) -> Optional[CredentialRecord]:
        key = normalize_username(username, self._username_case_sensitive)
        with self._lock:
            return self._by_username.get(key)

    def create_if_absent(self, record: CredentialRecord) -> CreateResult:
        with self._lock:
            conflicts: List[str] = []
            if record.normalized_username in self._by_username:
                conflicts.append(USERNAME_FIELD)
            if record.normalized_email in self._by_email:
                conflicts.append(EMAIL_FIELD)
            if conflicts:
                return CreateResult.conflict(conflicts)

            stored = replace(record, id=next(self._ids))
            self._by_username[stored.normalized_username] = stored
            self._by_email[stored.normalized_email] = stored
            return CreateResult.success(stored)

    def count(self) -> int:
        with self._lock:
            return len(self._by_email)
