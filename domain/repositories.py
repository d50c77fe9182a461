from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from .models import CredentialRecord

USERNAME_FIELD = "username"
EMAIL_FIELD = "email"


@dataclass
class CreateResult:
    """
    Outcome of `AccountStore.create_if_absent`.

    Exactly one of `record` (created) and `conflicts` (not created) is set.
    `conflicts` lists the identity fields that collided with an existing
    account, in `[USERNAME_FIELD, EMAIL_FIELD]` order.
    """

    created: bool
    record: Optional[CredentialRecord] = None
    conflicts: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, record: CredentialRecord) -> "CreateResult":
        return cls(created=True, record=record)

    @classmethod
    def conflict(cls, conflicts: List[str]) -> "CreateResult":
        return cls(created=False, conflicts=list(conflicts))


class AccountStore(Protocol):
    """
    Persistence abstraction for credential records.

    Implementations are responsible for:
    - Mapping between database rows and `CredentialRecord`.
    - Enforcing username and email uniqueness atomically on creation.
    - Raising `StorageUnavailableError` when the backend cannot complete
      an operation, instead of leaking driver exceptions.
    """

    def find_by_email(self, email: str) -> Optional[CredentialRecord]:
        """Return the record whose email matches case-insensitively, or None."""

        ...

    def find_by_username(self, username: str) -> Optional[CredentialRecord]:
        """
        Return the record for `username`, or None.

        Matching follows the store's configured username case sensitivity.
        """

        ...

    def create_if_absent(self, record: CredentialRecord) -> CreateResult:
        """
        Insert `record` unless its username or email is already taken.

        The uniqueness check and the insert form one indivisible step: of
        several concurrent calls with colliding identities, at most one
        succeeds. The returned record carries the assigned `id`.
        """

        ...


class PasswordHasher(Protocol):
    """One-way, salted password hashing."""

    max_password_bytes: Optional[int]

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        """Check `password` against a stored hash in constant time."""

        ...

    def verify_dummy(self, password: str) -> None:
        """
        Spend the same effort as `verify` without a stored hash.

        Used when no account matches so that a missing account and a wrong
        password take about the same time.
        """

        ...
