from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from domain.errors import (
    DUPLICATE_IDENTITY,
    EMPTY_PASSWORD,
    PASSWORD_MISMATCH,
    IdentityError,
    StorageUnavailableError,
    duplicate_email,
    duplicate_username,
)
from domain.models import (
    AccountIdentity,
    AccountView,
    CredentialRecord,
    LoginRequest,
    RegistrationRequest,
    normalize_email,
    normalize_username,
)
from domain.repositories import EMAIL_FIELD, USERNAME_FIELD, AccountStore, PasswordHasher

from .policy import LOGIN_BY_EMAIL, CredentialPolicy

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid login attempt."
STORAGE_UNAVAILABLE_MESSAGE = "Service temporarily unavailable."


class RegistrationOutcome(str, Enum):
    REGISTERED = "registered"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class LoginOutcome(str, Enum):
    AUTHENTICATED = "authenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class RegistrationResult:
    """Result of a registration attempt."""

    outcome: RegistrationOutcome
    account: Optional[AccountView] = None
    errors: List[IdentityError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome is RegistrationOutcome.REGISTERED


@dataclass
class LoginResult:
    """
    Result of a login attempt.

    Every failed attempt carries the same message whatever the cause, so a
    caller cannot tell a missing account from a wrong password.
    """

    outcome: LoginOutcome
    account: Optional[AccountView] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome is LoginOutcome.AUTHENTICATED


def _invalid_credentials() -> LoginResult:
    return LoginResult(
        outcome=LoginOutcome.INVALID_CREDENTIALS,
        error_message=INVALID_LOGIN_MESSAGE,
    )


class CredentialService:
    """
    Registration and password login on top of an `AccountStore`.

    The service holds no mutable state of its own and can be shared between
    threads. Password hashing happens before the store is touched, so
    concurrent registrations only contend inside `create_if_absent`.
    """

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        policy: Optional[CredentialPolicy] = None,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._policy = policy or CredentialPolicy()

    @property
    def policy(self) -> CredentialPolicy:
        return self._policy

    def _validate(self, request: RegistrationRequest) -> List[IdentityError]:
        password = request.password or ""
        if not password.strip():
            return [EMPTY_PASSWORD]

        if password != (request.confirm_password or ""):
            return [PASSWORD_MISMATCH]

        errors = self._policy.check_identity(request.username, request.email)
        errors.extend(
            self._policy.password.check(password, self._hasher.max_password_bytes)
        )
        return errors

    def _conflict_errors(
        self,
        conflicts: List[str],
        identity: AccountIdentity,
    ) -> List[IdentityError]:
        if not self._policy.reveal_conflict_fields:
            return [DUPLICATE_IDENTITY]

        errors = []
        if USERNAME_FIELD in conflicts:
            errors.append(duplicate_username(identity.username))
        if EMAIL_FIELD in conflicts:
            errors.append(duplicate_email(identity.email))
        return errors or [DUPLICATE_IDENTITY]

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Create an account from a registration request.

        Checks run in a fixed order and the first failing step decides the
        result:
        1. the password must not be blank;
        2. the password must match its confirmation exactly;
        3. username, email and password strength rules (all reported together).

        A valid request is hashed and handed to the store, which rejects it
        when the username or email is already taken. No record is written on
        any failure path.
        """

        errors = self._validate(request)
        if errors:
            logger.info(
                "Registration rejected for %r: %s",
                request.username,
                ", ".join(e.code for e in errors),
            )
            return RegistrationResult(
                outcome=RegistrationOutcome.VALIDATION_ERROR,
                errors=errors,
            )

        identity = AccountIdentity(
            username=request.username.strip(),
            email=request.email.strip(),
        )
        record = CredentialRecord(
            username=identity.username,
            email=identity.email,
            normalized_username=normalize_username(
                identity.username, self._policy.username_case_sensitive
            ),
            normalized_email=normalize_email(identity.email),
            password_hash=self._hasher.hash(request.password),
        )

        try:
            created = self._store.create_if_absent(record)
        except StorageUnavailableError as exc:
            logger.error("Registration for %r failed: %s", identity.username, exc)
            return RegistrationResult(
                outcome=RegistrationOutcome.STORAGE_UNAVAILABLE,
                errors=[IdentityError("StorageUnavailable", STORAGE_UNAVAILABLE_MESSAGE)],
            )

        if not created.created:
            logger.info(
                "Registration for %r conflicts on %s",
                identity.username,
                ", ".join(created.conflicts),
            )
            return RegistrationResult(
                outcome=RegistrationOutcome.CONFLICT,
                errors=self._conflict_errors(created.conflicts, identity),
            )

        account = AccountView.from_record(created.record)
        logger.info("Registered account %s (%r)", account.id, account.username)
        return RegistrationResult(outcome=RegistrationOutcome.REGISTERED, account=account)

    def login(self, request: LoginRequest) -> LoginResult:
        """
        Check a password against the stored credentials.

        Lookup uses the identifier configured on the policy (email by
        default). When no account matches, a dummy verification still runs so
        both failure paths cost about the same.
        """

        identifier = (request.identifier or "").strip()
        password = request.password or ""

        try:
            if not identifier:
                record = None
            elif self._policy.login_identifier == LOGIN_BY_EMAIL:
                record = self._store.find_by_email(identifier)
            else:
                record = self._store.find_by_username(identifier)
        except StorageUnavailableError as exc:
            logger.error("Login lookup failed: %s", exc)
            return LoginResult(
                outcome=LoginOutcome.STORAGE_UNAVAILABLE,
                error_message=STORAGE_UNAVAILABLE_MESSAGE,
            )

        if record is None or not password:
            self._hasher.verify_dummy(password)
            verified = False
        else:
            verified = self._hasher.verify(password, record.password_hash)

        if not verified:
            logger.info("Failed login attempt for %r", identifier)
            return _invalid_credentials()

        account = AccountView.from_record(record)
        logger.info("Account %s authenticated", account.id)
        return LoginResult(outcome=LoginOutcome.AUTHENTICATED, account=account)
