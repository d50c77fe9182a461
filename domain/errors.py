from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityError:
    """
    A single user-facing problem with a registration.

    `code` is stable and meant for programs; `description` is the message
    shown to the person registering.
    """

    code: str
    description: str

    def to_dict(self) -> dict:
        return {"code": self.code, "description": self.description}


EMPTY_PASSWORD = IdentityError("EmptyPassword", "Password cannot be null or empty.")
PASSWORD_MISMATCH = IdentityError("PasswordMismatch", "Passwords do not match.")
DUPLICATE_IDENTITY = IdentityError(
    "DuplicateIdentity", "Username or email is already taken."
)


def invalid_username(username: str) -> IdentityError:
    return IdentityError(
        "InvalidUserName",
        f"Username '{username}' is invalid, can only contain letters or digits.",
    )


def invalid_email(email: str) -> IdentityError:
    return IdentityError("InvalidEmail", f"Email '{email}' is invalid.")


def duplicate_username(username: str) -> IdentityError:
    return IdentityError("DuplicateUserName", f"Username '{username}' is already taken.")


def duplicate_email(email: str) -> IdentityError:
    return IdentityError("DuplicateEmail", f"Email '{email}' is already taken.")


class StorageUnavailableError(Exception):
    """
    Raised by account stores when an operation could not be completed
    (connection failure, locked database, aborted transaction).

    The failure is transient from the caller's point of view: retrying the
    same request later is safe.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f" ({type(cause).__name__})" if cause is not None else ""
        super().__init__(f"Account store unavailable during {operation}{detail}")
