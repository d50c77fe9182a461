from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from typing import List, Optional

from domain.errors import IdentityError, invalid_email, invalid_username

LOGIN_BY_EMAIL = "email"
LOGIN_BY_USERNAME = "username"

DEFAULT_USERNAME_CHARACTERS = string.ascii_letters + string.digits + "-._@+"

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class PasswordPolicy:
    """
    Strength rules applied to new passwords.

    The defaults require at least six characters with a digit, a lowercase
    letter, an uppercase letter and a non-alphanumeric character.
    """

    min_length: int = 6
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True

    def check(self, password: str, max_bytes: Optional[int] = None) -> List[IdentityError]:
        errors: List[IdentityError] = []
        if len(password) < self.min_length:
            errors.append(
                IdentityError(
                    "PasswordTooShort",
                    f"Passwords must be at least {self.min_length} characters.",
                )
            )
        if max_bytes is not None and len(password.encode("utf-8")) > max_bytes:
            errors.append(
                IdentityError(
                    "PasswordTooLong",
                    f"Passwords must be at most {max_bytes} bytes long.",
                )
            )
        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresNonAlphanumeric",
                    "Passwords must have at least one non alphanumeric character.",
                )
            )
        if self.require_digit and not any(c in string.digits for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresDigit",
                    "Passwords must have at least one digit ('0'-'9').",
                )
            )
        if self.require_lowercase and not any(c in string.ascii_lowercase for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresLower",
                    "Passwords must have at least one lowercase ('a'-'z').",
                )
            )
        if self.require_uppercase and not any(c in string.ascii_uppercase for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresUpper",
                    "Passwords must have at least one uppercase ('A'-'Z').",
                )
            )
        return errors


@dataclass(frozen=True)
class CredentialPolicy:
    """
    Deployment-level knobs for the credential service.

    - `login_identifier`: whether logins are looked up by email or username.
    - `username_case_sensitive`: whether "Alice" and "alice" are distinct.
      Must match the setting the account store was built with.
    - `reveal_conflict_fields`: when False, a duplicate registration reports
      a single generic error instead of naming the username or email, which
      stops callers from probing for existing accounts.
    """

    login_identifier: str = LOGIN_BY_EMAIL
    username_case_sensitive: bool = False
    reveal_conflict_fields: bool = True
    allowed_username_characters: str = DEFAULT_USERNAME_CHARACTERS
    password: PasswordPolicy = field(default_factory=PasswordPolicy)

    def __post_init__(self) -> None:
        if self.login_identifier not in (LOGIN_BY_EMAIL, LOGIN_BY_USERNAME):
            raise ValueError(f"Unsupported login identifier: {self.login_identifier!r}")

    def check_identity(self, username: str, email: str) -> List[IdentityError]:
        errors: List[IdentityError] = []
        stripped = (username or "").strip()
        if not stripped or any(c not in self.allowed_username_characters for c in stripped):
            errors.append(invalid_username(username or ""))
        if not EMAIL_RE.match((email or "").strip()):
            errors.append(invalid_email(email or ""))
        return errors
