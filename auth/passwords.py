"""
auth/passwords.py -- bcrypt password hashing.

bcrypt digests are self-describing ($2b$<cost>$<22-char salt><31-char hash>),
so verification needs nothing but the digest itself. gensalt() draws a fresh
random salt on every call, so hashing the same password twice never produces
the same digest.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x
rejects. Inputs over 72 bytes are refused at registration (see
auth/service.py) and simply fail verification here.
"""

from __future__ import annotations

import bcrypt

MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, deliberately slow one-way hashing.

    rounds is the bcrypt cost factor (log2 of the iteration count). Production
    uses Settings.bcrypt_rounds; tests pass 4 to keep the suite fast.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Timing equalization: login runs a verify against this digest when the
        # email is unknown, so response time does not reveal which accounts exist.
        self._dummy_hash = self.hash("postboard_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain with a fresh random salt."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches the digest.

        Malformed digests and over-long passwords return False instead of
        raising -- both sides of this call can be attacker-controlled.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def dummy_verify(self, plain: str) -> None:
        self.verify(plain, self._dummy_hash)
