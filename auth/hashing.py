"""
auth/hashing.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

bcrypt only reads the first 72 bytes of a password, and bcrypt 5 raises
ValueError for anything longer instead of truncating. The sign-up rule counts
characters, not bytes, so 20 multi-byte characters can exceed 72 bytes in
UTF-8. Both hash() and verify() cut the encoded password to MAX_PASSWORD_BYTES
themselves so such passwords hash and verify consistently.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:MAX_PASSWORD_BYTES]


class PasswordHasher:
    """Salted one-way hash + verify over bcrypt with a fixed cost factor.

    The cost factor is fixed per instance. Tests construct PasswordHasher(rounds=4)
    to keep the suite fast; production uses Settings.bcrypt_rounds (10).
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash [C1]. Computed once so the first
        # failed sign-in is not measurably slower than later ones.
        self._dummy_hash = self.hash("authservice_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext reproduces the hash.

        bcrypt.checkpw compares in constant time. A malformed hash or a
        non-string argument is a failed verification, never a crash.
        """
        try:
            return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
        except Exception:
            return False

    def burn(self, plain: str) -> None:
        """Spend one verify's worth of CPU against the dummy hash.

        Called when the account does not exist so unknown-email and
        wrong-password sign-ins take the same time [C1].
        """
        self.verify(plain, self._dummy_hash)
