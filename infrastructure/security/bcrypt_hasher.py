"""bcrypt-backed implementation of `PasswordHasher`."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import bcrypt

from domain.repositories import PasswordHasher

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 12

# bcrypt ignores (or, in recent releases, rejects) input past this length.
BCRYPT_MAX_PASSWORD_BYTES = 72


class BcryptPasswordHasher(PasswordHasher):
    """
    Salted bcrypt hashing with a configurable cost.

    Each call to `hash` draws a fresh salt; the salt and cost are embedded in
    the returned string, so `verify` needs nothing but the stored hash.
    bcrypt releases the GIL while it works, so hashes computed from different
    threads run in parallel.
    """

    max_password_bytes: Optional[int] = BCRYPT_MAX_PASSWORD_BYTES

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self._rounds = rounds
        self._dummy_hash: Optional[bytes] = None
        self._dummy_lock = threading.Lock()

    def hash(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes and cannot be hashed"
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(self._rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            # Could never have been stored; still pay for one comparison.
            self.verify_dummy("")
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed; treating as mismatch")
            return False

    def _get_dummy_hash(self) -> bytes:
        with self._dummy_lock:
            if self._dummy_hash is None:
                self._dummy_hash = bcrypt.hashpw(b"dummy", bcrypt.gensalt(self._rounds))
            return self._dummy_hash

    def verify_dummy(self, password: str) -> None:
        encoded = password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]
        bcrypt.checkpw(encoded, self._get_dummy_hash())
