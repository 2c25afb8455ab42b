"""
Password hashing with bcrypt.
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


class BcryptPasswordHasher:
    """Salted, adaptive one-way hash for user passwords."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            # Malformed or non-bcrypt hash stored for the user.
            return False
