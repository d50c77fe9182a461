from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def normalize_email(email: str) -> str:
    """
    Emails are always compared case-insensitively.

    Plain lowercasing is used rather than full Unicode case folding, so
    addresses such as "straße@x.com" and "strasse@x.com" stay distinct.
    """

    return (email or "").strip().lower()


def normalize_username(username: str, case_sensitive: bool = False) -> str:
    stripped = (username or "").strip()
    if case_sensitive:
        return stripped
    return stripped.lower()


@dataclass(frozen=True)
class AccountIdentity:
    """
    The externally visible identity of an account.

    Both the username and the email must be unique across all accounts.
    Uniqueness is checked on the normalized forms, so the store never
    holds two records whose identities differ only by letter case.
    """

    username: str
    email: str


@dataclass
class CredentialRecord:
    """
    Stored credentials for one account.

    Only the account store creates and owns these records. `password_hash`
    is the full output of the password hasher (algorithm, cost and salt
    included); the plaintext password is never part of a record.
    """

    username: str
    email: str
    normalized_username: str
    normalized_email: str
    password_hash: str = field(repr=False)
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.password_hash:
            raise ValueError("A credential record requires a password hash")

    @property
    def identity(self) -> AccountIdentity:
        return AccountIdentity(username=self.username, email=self.email)


@dataclass(frozen=True)
class AccountView:
    """Public view of an account, safe to hand back to callers."""

    id: int
    identity: AccountIdentity

    @property
    def username(self) -> str:
        return self.identity.username

    @property
    def email(self) -> str:
        return self.identity.email

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "AccountView":
        return cls(id=record.id, identity=record.identity)


@dataclass
class RegistrationRequest:
    username: str
    email: str
    password: str = field(repr=False)
    confirm_password: str = field(repr=False)


@dataclass
class LoginRequest:
    """
    A single login attempt.

    `identifier` is an email or a username depending on how the service is
    configured.
    """

    identifier: str
    password: str = field(repr=False)
